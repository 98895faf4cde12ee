from __future__ import annotations

from typing import List

from sqlalchemy import Column, ForeignKey, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.db.base import Base, IDMixin, TimestampMixin


feed_post_mentions = Table(
    "feed_post_mentions",
    Base.metadata,
    Column("post_id", ForeignKey("feed_posts.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class FeedPost(IDMixin, TimestampMixin, Base):
    __tablename__ = "feed_posts"

    author_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    author: Mapped["User"] = relationship()
    mentions: Mapped[List["User"]] = relationship(secondary=feed_post_mentions, order_by="User.full_name")
