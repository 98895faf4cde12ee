from __future__ import annotations

from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from hrms.core.deps import get_current_user, require_privileged
from hrms.db.session import get_db
from hrms.models.team import Team, team_members
from hrms.models.user import User
from hrms.schemas.team import TeamCreate, TeamRead, TeamUpdate
from hrms.services.activity import log_activity

router = APIRouter(prefix="/api/teams", tags=["teams"])


def _get_team_or_404(db: Session, team_id: int) -> Team:
    team = db.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return team


def _resolve_members(db: Session, leader_id: int, member_ids: Iterable[int]) -> List[User]:
    """Active users for ``member_ids``; the leader is always included."""
    wanted = set(member_ids) | {leader_id}
    users = db.query(User).filter(User.id.in_(wanted)).all()
    found = {user.id for user in users}
    missing = sorted(wanted - found)
    if missing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown users: {missing}")
    inactive = sorted(user.id for user in users if not user.is_active)
    if inactive:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Inactive users: {inactive}")
    return users


@router.get("", response_model=List[TeamRead])
def list_teams(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_privileged),
) -> List[TeamRead]:
    teams = db.query(Team).order_by(Team.name.asc()).all()
    return [TeamRead.model_validate(team) for team in teams]


@router.get("/my-team", response_model=Optional[TeamRead])
def my_team(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Optional[TeamRead]:
    team = (
        db.query(Team)
        .join(team_members, team_members.c.team_id == Team.id)
        .filter(team_members.c.user_id == current_user.id)
        .order_by(Team.created_at.desc())
        .first()
    )
    if team is None:
        team = db.query(Team).filter(Team.leader_id == current_user.id).first()
    return TeamRead.model_validate(team) if team else None


@router.post("", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
def create_team(
    body: TeamCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> TeamRead:
    members = _resolve_members(db, body.leader_id, body.member_ids)
    team = Team(
        name=body.name.strip(),
        description=body.description,
        leader_id=body.leader_id,
        created_by_user_id=current_user.id,
    )
    team.members = members
    db.add(team)
    db.flush()
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="TEAM_CREATED",
        message=f"Team created: {team.name}",
        payload={"team_id": team.id, "member_ids": sorted(user.id for user in members)},
    )
    db.commit()
    db.refresh(team)
    return TeamRead.model_validate(team)


@router.get("/{team_id}", response_model=TeamRead)
def get_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TeamRead:
    team = _get_team_or_404(db, team_id)
    if not current_user.is_privileged and current_user.id not in {member.id for member in team.members}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorised")
    return TeamRead.model_validate(team)


@router.patch("/{team_id}", response_model=TeamRead)
def update_team(
    team_id: int,
    body: TeamUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> TeamRead:
    team = _get_team_or_404(db, team_id)
    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("name"):
        team.name = update_data["name"].strip()
    if "description" in update_data:
        team.description = update_data["description"]
    if update_data.get("leader_id") is not None:
        team.leader_id = update_data["leader_id"]

    member_ids = update_data.get("member_ids")
    if member_ids is None:
        member_ids = [member.id for member in team.members]
    team.members = _resolve_members(db, team.leader_id, member_ids)

    db.add(team)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="TEAM_UPDATED",
        message=f"Team updated: {team.name}",
        payload={"team_id": team.id, "fields": sorted(update_data.keys())},
    )
    db.commit()
    db.refresh(team)
    return TeamRead.model_validate(team)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> None:
    team = _get_team_or_404(db, team_id)
    db.delete(team)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="TEAM_DELETED",
        message=f"Team deleted: {team_id}",
        payload={"team_id": team_id},
    )
    db.commit()
    return None
