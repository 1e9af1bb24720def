"""
Change feed: clients poll here for what their partner just did
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ourlittleworld.api.deps import get_current_user, get_db
from ourlittleworld.application.changes import current_cursor, list_changes
from ourlittleworld.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/changes", tags=["changes"])


@router.get("")
def get_changes(
    couple_id: str | None = Query(None, alias="coupleId"),
    after: int = 0,
    limit: int | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Events with id > after, oldest first"""
    return list_changes(db, user, couple_id, after=after, limit=limit)


@router.get("/cursor")
def get_cursor(
    couple_id: str | None = Query(None, alias="coupleId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"cursor": current_cursor(db, user, couple_id)}
