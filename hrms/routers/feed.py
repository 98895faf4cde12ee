from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrms.core import rbac
from hrms.core.deps import get_current_user
from hrms.db.session import get_db
from hrms.models.feed import FeedPost
from hrms.models.user import User
from hrms.schemas.feed import FeedPostCreate, FeedPostRead
from hrms.services import feed
from hrms.services.activity import log_activity

router = APIRouter(prefix="/api/feed", tags=["feed"])


@router.get("", response_model=List[FeedPostRead])
def list_feed(
    before_id: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> List[FeedPost]:
    return feed.list_posts(db, before_id=before_id, limit=limit)


@router.post("", response_model=FeedPostRead, status_code=status.HTTP_201_CREATED)
def create_feed_post(
    body: FeedPostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FeedPost:
    post = feed.create_post(
        db,
        author=current_user,
        content=body.content,
        mentioned_user_ids=body.mentioned_user_ids,
    )
    db.commit()
    db.refresh(post)
    return post


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feed_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    post = db.get(FeedPost, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if post.author_user_id != current_user.id and not rbac.is_privileged(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorised")
    db.delete(post)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="FEED_POST_DELETED",
        message=f"Feed post deleted: {post_id}",
        payload={"post_id": post_id},
    )
    db.commit()
    return None
