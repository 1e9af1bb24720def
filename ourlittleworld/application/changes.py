"""
Change feed query: what happened in the couple's world after a cursor
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ourlittleworld.application.access import require_membership
from ourlittleworld.application.errors import ValidationError
from ourlittleworld.config import get_settings
from ourlittleworld.infrastructure.eventlog.repository import EventLogRepository


def list_changes(
    db: Session,
    user,
    couple_id: Optional[str],
    after: int = 0,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Returns:
        {"events": [...], "cursor": last id returned (or `after` when empty)}
    """
    require_membership(user, couple_id)
    if after < 0:
        raise ValidationError("Invalid cursor")

    max_limit = get_settings().CHANGES_BATCH_LIMIT
    limit = min(limit or max_limit, max_limit)

    events = EventLogRepository(db).list_events_since(couple_id, after_id=after, limit=limit)
    items: List[Dict[str, Any]] = [
        {
            "id": e.id,
            "event_type": e.event_type,
            "entity_id": e.entity_id,
            "actor_user_id": e.actor_user_id,
            "payload": e.payload_json,
            "occurred_at": e.occurred_at.isoformat() if e.occurred_at else None,
        }
        for e in events
    ]
    return {"events": items, "cursor": items[-1]["id"] if items else after}


def current_cursor(db: Session, user, couple_id: Optional[str]) -> int:
    """Id of the newest event; a client that just loaded fresh data starts polling from here"""
    require_membership(user, couple_id)
    return EventLogRepository(db).latest_event_id(couple_id)
