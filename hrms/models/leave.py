from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.db.base import Base, IDMixin, TimestampMixin
from hrms.models.enums import HalfDayType, LeaveKind, LeaveStatus


SHORT_DAY_MARKERS = ("shortday", "short-day", "short day")


def name_is_short_day(name: str | None) -> bool:
    lowered = (name or "").lower()
    return any(marker in lowered for marker in SHORT_DAY_MARKERS)


class LeaveType(IDMixin, TimestampMixin, Base):
    __tablename__ = "leave_types"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    max_days: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_short_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    leaves: Mapped[list["Leave"]] = relationship(back_populates="leave_type")


class Leave(IDMixin, TimestampMixin, Base):
    __tablename__ = "leaves"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type_id: Mapped[int] = mapped_column(ForeignKey("leave_types.id"), nullable=False, index=True)
    kind: Mapped[LeaveKind] = mapped_column(
        Enum(LeaveKind, name="leave_kind"),
        default=LeaveKind.REQUEST,
        nullable=False,
        index=True,
    )
    status: Mapped[LeaveStatus] = mapped_column(
        Enum(LeaveStatus, name="leave_status"),
        default=LeaveStatus.PENDING,
        nullable=False,
        index=True,
    )

    days: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    remaining_days: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    remaining_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    remaining_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    carry_forward: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    half_day_type: Mapped[Optional[HalfDayType]] = mapped_column(Enum(HalfDayType, name="half_day_type"), nullable=True)
    short_day_time: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    medical_report: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    approved_by_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    allotted_by_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    allotted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship(back_populates="leaves", foreign_keys=[user_id])
    leave_type: Mapped[LeaveType] = relationship(back_populates="leaves")
    approved_by: Mapped[Optional["User"]] = relationship(foreign_keys=[approved_by_user_id])
    allotted_by: Mapped[Optional["User"]] = relationship(foreign_keys=[allotted_by_user_id])

    @property
    def total_minutes(self) -> int:
        return (self.hours or 0) * 60 + (self.minutes or 0)
