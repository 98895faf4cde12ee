from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from hrms.models.enums import ClearanceDepartment, ClearanceStatus, FnFStatus, ResignationStatus
from hrms.schemas.base import ORMModel, UserBrief


ProcessField = Literal[
    "notice_period_complied",
    "knowledge_transfer_completed",
    "assets_returned",
    "clearance",
    "exit_interview_completed",
    "fnf_status",
    "exit_documents",
    "system_access_deactivated",
    "exit_closed",
]


class ResignationCreate(ORMModel):
    resignation_date: date
    reason: str = Field(min_length=1, max_length=5000)
    feedback: Optional[str] = Field(default=None, max_length=5000)
    handover_notes: Optional[str] = Field(default=None, max_length=5000)
    assets: List[str] = Field(default_factory=list)
    notice_period_start_date: Optional[date] = None
    notice_period_end_date: Optional[date] = None

    @field_validator("assets", mode="before")
    @classmethod
    def normalize_assets(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(item).strip() for item in value if item is not None and str(item).strip()]

    @model_validator(mode="after")
    def validate_notice_period(self) -> "ResignationCreate":
        start, end = self.notice_period_start_date, self.notice_period_end_date
        if start and end and end < start:
            raise ValueError("notice period end cannot be before its start")
        return self


class ResignationDecision(ORMModel):
    status: Literal["approved", "rejected"]
    rejection_reason: Optional[str] = Field(default=None, max_length=5000)


class ResignationProcessUpdate(ORMModel):
    field: ProcessField
    value: Optional[bool] = None
    department: Optional[ClearanceDepartment] = None
    status: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    effective_date: Optional[date] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    files: Optional[Dict[str, str]] = None

    @model_validator(mode="after")
    def validate_step(self) -> "ResignationProcessUpdate":
        if self.field == "clearance":
            if self.department is None:
                raise ValueError("Invalid department")
            allowed = {item.value for item in ClearanceStatus} - {ClearanceStatus.IN_PROGRESS.value}
            if self.status not in allowed:
                raise ValueError("Invalid clearance status")
        elif self.field == "fnf_status":
            if self.status not in {item.value for item in FnFStatus}:
                raise ValueError("Invalid FnF status")
        elif self.field == "exit_documents":
            allowed_files = {"experience_letter", "relieving_letter"}
            if not self.files or not set(self.files) <= allowed_files:
                raise ValueError("files must contain experience_letter and/or relieving_letter")
        elif self.value is None:
            raise ValueError("value is required")
        return self


class ClearanceEntry(ORMModel):
    status: ClearanceStatus = ClearanceStatus.PENDING
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None


class ResignationRead(ORMModel):
    id: int
    user_id: int
    user: Optional[UserBrief] = None
    resignation_date: date
    reason: str
    feedback: Optional[str] = None
    assets: List[str] = Field(default_factory=list)
    status: ResignationStatus
    approved_by_user_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notice_period_start_date: Optional[date] = None
    notice_period_end_date: Optional[date] = None
    notice_period_complied: bool
    knowledge_transfer_completed: bool
    handover_notes: Optional[str] = None
    handover_completed_date: Optional[date] = None
    assets_returned: bool
    assets_return_date: Optional[date] = None
    assets_return_notes: Optional[str] = None
    clearances: Dict[str, ClearanceEntry] = Field(default_factory=dict)
    clearance_status: ClearanceStatus = ClearanceStatus.PENDING
    exit_progress: int = 0
    exit_interview_completed: bool
    exit_interview_date: Optional[date] = None
    exit_interview_feedback: Optional[str] = None
    fnf_status: FnFStatus
    fnf_amount: Optional[Decimal] = None
    fnf_processed_date: Optional[date] = None
    fnf_notes: Optional[str] = None
    exit_documents: Dict[str, str] = Field(default_factory=dict)
    system_access_deactivated: bool
    system_access_deactivated_date: Optional[date] = None
    exit_closed: bool
    exit_closed_date: Optional[date] = None
    exit_closed_by_user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
