"""Employee lookups shared by every signed-in user."""
from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from hrms.models.enums import Role
from hrms.models.user import User

MIN_SEARCH_LENGTH = 2
SEARCH_LIMIT = 20
UPCOMING_BIRTHDAY_LIMIT = 10


def search_employees(db: Session, query: str, *, limit: int = SEARCH_LIMIT) -> list[User]:
    """Active employees whose name, email or mobile number contains ``query``."""
    term = query.strip().lower()
    if len(term) < MIN_SEARCH_LENGTH:
        return []
    pattern = "%{}%".format(term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_"))
    stmt = (
        select(User)
        .where(
            User.role == Role.EMPLOYEE,
            User.is_active.is_(True),
            or_(
                func.lower(User.full_name).like(pattern, escape="\\"),
                func.lower(User.email).like(pattern, escape="\\"),
                User.mobile_number.like(pattern, escape="\\"),
            ),
        )
        .order_by(User.full_name.asc())
        .limit(limit)
    )
    return list(db.scalars(stmt))


def next_birthday(born: date, today: date) -> date:
    """Next occurrence on or after ``today``; 29 February falls on the 28th in common years."""
    def in_year(year: int) -> date:
        if born.month == 2 and born.day == 29 and not calendar.isleap(year):
            return date(year, 2, 28)
        return born.replace(year=year)

    upcoming = in_year(today.year)
    return upcoming if upcoming >= today else in_year(today.year + 1)


def upcoming_birthdays(db: Session, *, today: Optional[date] = None, include_all: bool = False) -> list[dict]:
    today = today or datetime.now(timezone.utc).date()
    users = db.scalars(select(User).where(User.is_active.is_(True), User.date_of_birth.isnot(None))).all()
    rows = []
    for user in users:
        upcoming = next_birthday(user.date_of_birth, today)
        rows.append(
            {
                "id": user.id,
                "full_name": user.full_name,
                "email": user.email,
                "emp_id": user.emp_id,
                "profile_image": user.profile_image,
                "designation": user.designation,
                "date_of_birth": user.date_of_birth,
                "next_birthday": upcoming,
                "days_until": (upcoming - today).days,
            }
        )
    if include_all:
        rows.sort(key=lambda row: (row["date_of_birth"].month, row["date_of_birth"].day, row["full_name"]))
        return rows
    rows.sort(key=lambda row: (row["days_until"], row["full_name"]))
    return rows[:UPCOMING_BIRTHDAY_LIMIT]
