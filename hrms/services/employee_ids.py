from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from hrms.models.support import Counter
from hrms.models.user import User


def next_sequence(db: Session, name: str) -> int:
    """Increment and return the named counter, creating it on first use."""
    counter = db.query(Counter).filter(Counter.name == name).with_for_update().first()
    if counter is None:
        counter = Counter(name=name, seq=0)
        db.add(counter)
    counter.seq += 1
    db.flush()
    return counter.seq


def generate_employee_id(db: Session, joining_year: int) -> str:
    """``2024EMP-007`` style identifier drawn from a per-year sequence."""
    seq = next_sequence(db, f"emp_id_{joining_year}")
    return f"{joining_year}EMP-{seq:03d}"


def assign_employee_id(db: Session, user: User, *, force: bool = False) -> Optional[str]:
    """Give ``user`` an employee ID when a joining year is known.

    With ``force`` the ID is regenerated, e.g. after the joining year changed.
    """
    if not user.joining_year:
        return user.emp_id
    if user.emp_id and not force:
        return user.emp_id
    user.emp_id = generate_employee_id(db, user.joining_year)
    db.add(user)
    db.flush()
    return user.emp_id


def backfill_employee_ids(db: Session) -> int:
    """Assign IDs to approved users that have a joining year but no ID, oldest first."""
    users = (
        db.query(User)
        .filter(User.emp_id.is_(None), User.joining_year.isnot(None), User.is_approved.is_(True))
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )
    for user in users:
        assign_employee_id(db, user)
    return len(users)
