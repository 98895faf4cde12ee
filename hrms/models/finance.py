from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.db.base import Base, IDMixin, TimestampMixin
from hrms.models.enums import FinanceStatus


class Finance(IDMixin, TimestampMixin, Base):
    __tablename__ = "finance_records"
    __table_args__ = (UniqueConstraint("user_id", "month", "year", name="uq_finance_records_user_period"),)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    allowances: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    status: Mapped[FinanceStatus] = mapped_column(
        Enum(FinanceStatus, name="finance_status"),
        default=FinanceStatus.PENDING,
        nullable=False,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payslip_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    user: Mapped["User"] = relationship()

    def recompute_total(self) -> Decimal:
        self.total_salary = (
            Decimal(self.base_salary or 0)
            + Decimal(self.allowances or 0)
            + Decimal(self.bonus or 0)
            - Decimal(self.deductions or 0)
        )
        return self.total_salary
