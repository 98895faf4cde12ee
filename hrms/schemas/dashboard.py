from __future__ import annotations

from hrms.schemas.base import ORMModel


class AdminStats(ORMModel):
    total_employees: int
    employee_count: int
    hr_count: int
    pending_approvals: int
    pending_leaves: int
    clocked_in_today: int
    on_leave_today: int
    pending_resignations: int


class HRStats(ORMModel):
    pending_leaves: int
    approved_leaves: int
    today_attendance: int
    on_leave_today: int
