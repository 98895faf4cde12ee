"""Central router registry."""
from __future__ import annotations

from fastapi import FastAPI

from hrms.routers import (
    announcements,
    attendance,
    auth,
    dashboard,
    feed,
    finance,
    leave,
    leave_types,
    notifications,
    profile,
    resignation,
    settings,
    teams,
    users,
)

ALL_ROUTERS = (
    auth.router,
    users.router,
    profile.router,
    leave_types.router,
    leave.router,
    attendance.router,
    settings.router,
    finance.router,
    resignation.router,
    notifications.router,
    announcements.router,
    teams.router,
    feed.router,
    dashboard.router,
)


def include_all_routers(app: FastAPI) -> None:
    for router in ALL_ROUTERS:
        app.include_router(router)
