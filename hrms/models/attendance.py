from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.db.base import Base, IDMixin, TimestampMixin
from hrms.models.enums import AttendanceStatus


class Attendance(IDMixin, TimestampMixin, Base):
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("user_id", "work_date", name="uq_attendance_user_work_date"),)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    work_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    clock_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    clock_out: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    hours_worked: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    status: Mapped[AttendanceStatus] = mapped_column(
        Enum(AttendanceStatus, name="attendance_status"),
        default=AttendanceStatus.PRESENT,
        nullable=False,
    )

    user: Mapped["User"] = relationship()


class Penalty(IDMixin, TimestampMixin, Base):
    __tablename__ = "penalties"
    __table_args__ = (UniqueConstraint("user_id", "penalty_date", name="uq_penalties_user_penalty_date"),)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    penalty_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    late_arrival_date: Mapped[date] = mapped_column(Date, nullable=False)
    clock_in_time: Mapped[str] = mapped_column(String(8), nullable=False)
    time_limit: Mapped[str] = mapped_column(String(8), nullable=False)
    max_late_days: Mapped[int] = mapped_column(Integer, nullable=False)
    late_arrival_count: Mapped[int] = mapped_column(Integer, nullable=False)
    leave_deducted: Mapped[float] = mapped_column(Float, nullable=False)
    leave_id: Mapped[Optional[int]] = mapped_column(ForeignKey("leaves.id", ondelete="SET NULL"), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship()
