from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.db.base import Base, IDMixin, TimestampMixin


MAX_ANNOUNCEMENT_VIEWS = 2


class Announcement(IDMixin, TimestampMixin, Base):
    __tablename__ = "announcements"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    announcement_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    created_by_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_by: Mapped[Optional["User"]] = relationship()
    views: Mapped[List["AnnouncementView"]] = relationship(back_populates="announcement", cascade="all, delete-orphan")


class AnnouncementView(IDMixin, TimestampMixin, Base):
    __tablename__ = "announcement_views"
    __table_args__ = (UniqueConstraint("announcement_id", "user_id", name="uq_announcement_views_announcement_user"),)

    announcement_id: Mapped[int] = mapped_column(ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    announcement: Mapped[Announcement] = relationship(back_populates="views")
