from __future__ import annotations

from hrms.db.session import SessionLocal
from hrms.services.employee_ids import backfill_employee_ids


def main() -> None:
    with SessionLocal() as db:
        updated = backfill_employee_ids(db)
        db.commit()
    print(f"Assigned employee IDs to {updated} user(s).")


if __name__ == "__main__":
    main()
