from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from hrms.models.enums import FinanceStatus
from hrms.schemas.base import ORMModel, UserBrief


class FinanceCreate(ORMModel):
    user_id: int
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    base_salary: Decimal = Field(ge=0)
    allowances: Decimal = Field(default=Decimal("0.00"), ge=0)
    deductions: Decimal = Field(default=Decimal("0.00"), ge=0)
    bonus: Decimal = Field(default=Decimal("0.00"), ge=0)
    status: FinanceStatus = FinanceStatus.PENDING
    payslip_url: Optional[str] = Field(default=None, max_length=500)


class FinanceUpdate(ORMModel):
    base_salary: Optional[Decimal] = Field(default=None, ge=0)
    allowances: Optional[Decimal] = Field(default=None, ge=0)
    deductions: Optional[Decimal] = Field(default=None, ge=0)
    bonus: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[FinanceStatus] = None
    payslip_url: Optional[str] = Field(default=None, max_length=500)


class FinanceRead(ORMModel):
    id: int
    user_id: int
    user: Optional[UserBrief] = None
    month: int
    year: int
    base_salary: Decimal
    allowances: Decimal
    deductions: Decimal
    bonus: Decimal
    total_salary: Decimal
    status: FinanceStatus
    paid_at: Optional[datetime] = None
    payslip_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
