from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    HR = "hr"
    EMPLOYEE = "employee"


class LeaveKind(str, Enum):
    REQUEST = "request"
    ALLOTMENT = "allotment"
    PENALTY = "penalty"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HalfDayType(str, Enum):
    FIRST_HALF = "first-half"
    SECOND_HALF = "second-half"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half-day"


class FinanceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class ResignationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ClearanceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    IN_PROGRESS = "in-progress"


class ClearanceDepartment(str, Enum):
    REPORTING_MANAGER = "reporting_manager"
    IT = "it"
    ADMIN = "admin"
    FINANCE = "finance"


class FnFStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class NotificationType(str, Enum):
    LEAVE_REQUESTED = "leave_requested"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    LEAVE_ALLOTTED = "leave_allotted"
    PENALTY_APPLIED = "penalty_applied"
    RESIGNATION_SUBMITTED = "resignation_submitted"
    RESIGNATION_DECIDED = "resignation_decided"
    ANNOUNCEMENT = "announcement"
    ACCOUNT_APPROVED = "account_approved"
    FEED_MENTION = "feed_mention"
    GENERAL = "general"
