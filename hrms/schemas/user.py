from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from hrms.models.enums import Role
from hrms.schemas.base import ORMModel, UserBrief


_CLOCK_IN = re.compile(r"^(([01]\d|2[0-3]):[0-5]\d|N/R)$")


def _validate_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not re.search(r"[A-Za-z]", value) or not re.search(r"\d", value):
        raise ValueError("Password must contain letters and numbers")
    return value


def _validate_clock_in(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    value = value.strip()
    if not _CLOCK_IN.match(value):
        raise ValueError("clock_in_time must be HH:MM or N/R")
    return value


class SignupRequest(ORMModel):
    email: EmailStr
    password: str
    full_name: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _validate_password(value)


class UserCreate(SignupRequest):
    role: Role = Role.EMPLOYEE
    designation: Optional[str] = None
    joining_year: Optional[int] = Field(default=None, ge=1990, le=2100)
    clock_in_time: Optional[str] = None

    @field_validator("clock_in_time")
    @classmethod
    def validate_clock_in(cls, value: Optional[str]) -> Optional[str]:
        return _validate_clock_in(value)


class UserUpdate(ORMModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    role: Optional[Role] = None
    designation: Optional[str] = None
    joining_year: Optional[int] = Field(default=None, ge=1990, le=2100)
    clock_in_time: Optional[str] = None
    mobile_number: Optional[str] = Field(default=None, max_length=20)
    is_active: Optional[bool] = None

    @field_validator("clock_in_time")
    @classmethod
    def validate_clock_in(cls, value: Optional[str]) -> Optional[str]:
        return _validate_clock_in(value)


class ProfileUpdate(ORMModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    mobile_number: Optional[str] = Field(default=None, max_length=20)
    date_of_birth: Optional[date] = None
    profile_image: Optional[str] = Field(default=None, max_length=500)
    bank_name: Optional[str] = Field(default=None, max_length=120)
    account_number: Optional[str] = Field(default=None, max_length=40)
    ifsc_code: Optional[str] = Field(default=None, max_length=20)
    pan_number: Optional[str] = Field(default=None, max_length=20)
    aadhar_number: Optional[str] = Field(default=None, max_length=20)

    @field_validator("ifsc_code", "pan_number")
    @classmethod
    def upper(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value


class UserRead(ORMModel):
    id: int
    email: str
    full_name: str
    role: Role
    is_active: bool
    is_approved: bool
    email_verified: bool
    emp_id: Optional[str] = None
    joining_year: Optional[int] = None
    designation: Optional[str] = None
    mobile_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    profile_image: Optional[str] = None
    clock_in_time: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime


class ProfileRead(UserRead):
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    pan_number: Optional[str] = None
    aadhar_number: Optional[str] = None


class LoginResponse(ORMModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class PasswordResetRequest(ORMModel):
    email: EmailStr


class PasswordResetConfirm(ORMModel):
    token: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _validate_password(value)


class PasswordChange(ORMModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _validate_password(value)


class DirectoryEntry(UserBrief):
    role: Role
    designation: Optional[str] = None
    mobile_number: Optional[str] = None


class UpcomingBirthday(UserBrief):
    designation: Optional[str] = None
    date_of_birth: date
    next_birthday: date
    days_until: int
