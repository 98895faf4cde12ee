from __future__ import annotations

import argparse
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from hrms.core.security import get_password_hash
from hrms.core.settings import settings
from hrms.db.base import Base
from hrms.db.session import SessionLocal, engine
from hrms.models.enums import Role
from hrms.models.leave import LeaveType, name_is_short_day
from hrms.models.user import User
from hrms.schemas.leave import AllocationIn
from hrms.services.activity import log_activity
from hrms.services.employee_ids import assign_employee_id
from hrms.services.leave import find_allotment
from hrms.services.leave_allotment import allot_leave
from hrms.services.system_config import DEFAULT_CLOCK_IN_TIME_LIMIT, MAX_LATE_DAYS, get_config, set_config

SEED_PASSWORD = "Password123"

LEAVE_TYPES = [
    ("Casual Leave", "General purpose leave", 12),
    ("Sick Leave", "Illness or medical appointments", 10),
    ("Earned Leave", "Accrued annual leave", 18),
    ("Short Day Leave", "Leave of a few hours within a working day", None),
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the HRMS database with demo data")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables before seeding")
    return parser.parse_args()


def reset_db() -> None:
    if settings.is_production:
        raise RuntimeError("Refusing to reset the database in production.")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def get_or_create_user(
    db: Session,
    *,
    email: str,
    role: Role,
    full_name: str,
    designation: str | None = None,
) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        email=email,
        hashed_password=get_password_hash(SEED_PASSWORD),
        role=role,
        full_name=full_name,
        designation=designation,
        joining_year=datetime.now(timezone.utc).year,
        is_active=True,
        is_approved=True,
        email_verified=True,
    )
    db.add(user)
    db.flush()
    assign_employee_id(db, user)
    return user


def seed_leave_types(db: Session) -> dict[str, LeaveType]:
    leave_types: dict[str, LeaveType] = {}
    for name, description, max_days in LEAVE_TYPES:
        leave_type = db.query(LeaveType).filter(LeaveType.name == name).first()
        if not leave_type:
            leave_type = LeaveType(
                name=name,
                description=description,
                max_days=max_days,
                is_active=True,
                is_short_day=name_is_short_day(name),
            )
            db.add(leave_type)
            db.flush()
        leave_types[name] = leave_type
    return leave_types


def seed_allotments(db: Session, *, admin: User, employees: list[User], leave_types: dict[str, LeaveType]) -> int:
    created = 0
    for employee in employees:
        for name, leave_type in leave_types.items():
            if find_allotment(db, user_id=employee.id, leave_type_id=leave_type.id):
                continue
            if leave_type.is_short_day:
                item = AllocationIn(user_id=employee.id, leave_type_id=leave_type.id, hours=8, minutes=0)
            else:
                item = AllocationIn(user_id=employee.id, leave_type_id=leave_type.id, days=min(6, leave_type.max_days or 6))
            allot_leave(db, allocator=admin, item=item)
            created += 1
    return created


def seed_settings(db: Session) -> None:
    if get_config(db, DEFAULT_CLOCK_IN_TIME_LIMIT) is None:
        set_config(db, DEFAULT_CLOCK_IN_TIME_LIMIT, "10:00")
    if get_config(db, MAX_LATE_DAYS) is None:
        set_config(db, MAX_LATE_DAYS, "3")


def main() -> None:
    args = parse_args()
    if args.reset:
        reset_db()
    else:
        Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        admin_exists = db.query(User).filter(User.email == "admin@example.com").first()
        if admin_exists and not args.reset:
            print("Seed appears to have already run. Use --reset to reseed.")
            return

        admin = get_or_create_user(db, email="admin@example.com", role=Role.ADMIN, full_name="Admin")
        get_or_create_user(db, email="hr@example.com", role=Role.HR, full_name="HR Manager", designation="HR")
        employees = [
            get_or_create_user(db, email="asha@example.com", role=Role.EMPLOYEE, full_name="Asha Rao", designation="Engineer"),
            get_or_create_user(db, email="vikram@example.com", role=Role.EMPLOYEE, full_name="Vikram Shah", designation="Designer"),
        ]
        leave_types = seed_leave_types(db)
        created = seed_allotments(db, admin=admin, employees=employees, leave_types=leave_types)
        seed_settings(db)
        log_activity(
            db,
            actor_user_id=admin.id,
            activity_type="SEED_COMPLETED",
            message=f"Seed complete: {created} allotments",
        )

        db.commit()
        print("Seed complete.")
        print(f"Admin login: admin@example.com / {SEED_PASSWORD}")


if __name__ == "__main__":
    main()
