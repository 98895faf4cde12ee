"""Company feed posts and @mention resolution."""
from __future__ import annotations

import re
from typing import Iterable, Optional

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from hrms.models.enums import NotificationType
from hrms.models.feed import FeedPost
from hrms.models.user import User
from hrms.services.activity import log_activity
from hrms.services.notifications import create_notification

# "@asha@example.com" or "@Asha"; an "@" inside a word (a plain email address) is not a mention.
_MENTION = re.compile(r"(?<![\w.+-])@([\w.+-]+@[\w-]+(?:\.[\w-]+)+|\w+)")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _match_mention(db: Session, token: str) -> Optional[User]:
    active = select(User).where(User.is_active.is_(True)).order_by(User.id.asc()).limit(1)
    lowered = token.lower()
    if "@" in token:
        return db.scalar(active.where(func.lower(User.email) == lowered))
    pattern = _escape_like(lowered)
    name = func.lower(User.full_name)
    return db.scalar(
        active.where(
            or_(
                name == lowered,
                name.like(f"{pattern} %", escape="\\"),
                func.lower(User.email).like(f"{pattern}@%", escape="\\"),
            )
        )
    )


def resolve_mentions(db: Session, content: str) -> list[User]:
    """Users named by ``@first-name``, ``@email-local-part`` or ``@full@email`` tokens, in order of appearance."""
    found: dict[int, User] = {}
    for token in _MENTION.findall(content):
        user = _match_mention(db, token)
        if user is not None:
            found.setdefault(user.id, user)
    return list(found.values())


def _explicit_mentions(db: Session, user_ids: Iterable[int]) -> list[User]:
    wanted = set(user_ids)
    if not wanted:
        return []
    users = db.scalars(select(User).where(User.id.in_(wanted), User.is_active.is_(True))).all()
    missing = sorted(wanted - {user.id for user in users})
    if missing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown users: {missing}")
    return sorted(users, key=lambda user: user.id)


def create_post(db: Session, *, author: User, content: str, mentioned_user_ids: Iterable[int] = ()) -> FeedPost:
    mentioned: dict[int, User] = {}
    for user in [*resolve_mentions(db, content), *_explicit_mentions(db, mentioned_user_ids)]:
        mentioned.setdefault(user.id, user)

    post = FeedPost(author_user_id=author.id, content=content, mentions=list(mentioned.values()))
    db.add(post)
    db.flush()

    for user in post.mentions:
        if user.id == author.id:
            continue
        create_notification(
            db,
            user_id=user.id,
            notif_type=NotificationType.FEED_MENTION,
            title="You were mentioned in a post",
            message=f"{author.full_name} mentioned you: {content[:200]}",
            payload={"post_id": post.id, "author_user_id": author.id},
        )
    log_activity(
        db,
        actor_user_id=author.id,
        activity_type="FEED_POST_CREATED",
        message=f"Feed post created: {post.id}",
        payload={"post_id": post.id, "mentions": [user.id for user in post.mentions]},
    )
    return post


def list_posts(db: Session, *, before_id: Optional[int] = None, limit: int = 50) -> list[FeedPost]:
    stmt = select(FeedPost).order_by(FeedPost.id.desc()).limit(limit)
    if before_id is not None:
        stmt = stmt.where(FeedPost.id < before_id)
    return list(db.scalars(stmt))
