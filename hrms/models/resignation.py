from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Enum, ForeignKey, Numeric, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.db.base import Base, IDMixin, TimestampMixin
from hrms.models.enums import ClearanceDepartment, ClearanceStatus, FnFStatus, ResignationStatus


def default_clearances() -> dict:
    return {department.value: {"status": ClearanceStatus.PENDING.value} for department in ClearanceDepartment}


class Resignation(IDMixin, TimestampMixin, Base):
    __tablename__ = "resignations"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    resignation_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    assets: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list, nullable=False)
    status: Mapped[ResignationStatus] = mapped_column(
        Enum(ResignationStatus, name="resignation_status"),
        default=ResignationStatus.PENDING,
        nullable=False,
        index=True,
    )
    approved_by_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notice_period_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notice_period_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notice_period_complied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    knowledge_transfer_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    handover_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    handover_completed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    assets_returned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    assets_return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    assets_return_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # {department: {status, approved_by, approved_at, notes}}
    clearances: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        default=default_clearances,
        nullable=False,
    )

    exit_interview_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    exit_interview_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    exit_interview_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    fnf_status: Mapped[FnFStatus] = mapped_column(
        Enum(FnFStatus, name="fnf_status"),
        default=FnFStatus.PENDING,
        nullable=False,
    )
    fnf_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    fnf_processed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    fnf_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # {experience_letter, relieving_letter, uploaded_at}
    exit_documents: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=dict, nullable=False)

    system_access_deactivated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    system_access_deactivated_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    exit_closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    exit_closed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    exit_closed_by_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)

    user: Mapped["User"] = relationship(foreign_keys=[user_id])
    approved_by: Mapped[Optional["User"]] = relationship(foreign_keys=[approved_by_user_id])
