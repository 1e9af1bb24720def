"""
Event Log Repository - append-only change log per couple

Use cases append one event per mutation; clients poll list_events_since()
as their realtime change feed.
"""
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session

from ourlittleworld.infrastructure.db.models import EventLog


class EventLogRepository:

    def __init__(self, db: Session):
        self.db = db

    def append_event(
        self,
        couple_id: str,
        event_type: str,
        payload: Dict[str, Any],
        entity_id: Optional[str] = None,
        actor_user_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> int:
        """
        Append an event (flushed, not committed - the caller owns the transaction)

        Args:
            couple_id: tenant the change belongs to
            event_type: e.g. "transaction_created"
            payload: JSON-serializable entity snapshot (or ids only for deletes)
            entity_id: id of the changed entity
            actor_user_id: who made the change
            occurred_at: default now

        Returns:
            event_id

        Example:
            >>> repo = EventLogRepository(db)
            >>> event_id = repo.append_event(
            ...     couple_id=couple.id,
            ...     event_type="transaction_deleted",
            ...     payload={"id": tx_id},
            ...     entity_id=tx_id,
            ... )
        """
        if occurred_at is None:
            occurred_at = datetime.now(timezone.utc)

        event = EventLog(
            couple_id=couple_id,
            actor_user_id=actor_user_id,
            event_type=event_type,
            entity_id=entity_id,
            payload_json=payload,
            occurred_at=occurred_at,
        )

        self.db.add(event)
        self.db.flush()

        return event.id

    def list_events_since(
        self,
        couple_id: str,
        after_id: int = 0,
        limit: int = 200,
        event_types: Optional[List[str]] = None,
    ) -> List[EventLog]:
        """
        Events with id > after_id, oldest first

        Args:
            couple_id: tenant
            after_id: client cursor (last event id it has applied)
            limit: batch size
            event_types: optional filter
        """
        query = (
            self.db.query(EventLog)
            .filter(
                EventLog.couple_id == couple_id,
                EventLog.id > after_id
            )
        )

        if event_types:
            query = query.filter(EventLog.event_type.in_(event_types))

        return query.order_by(EventLog.id.asc()).limit(limit).all()

    def latest_event_id(self, couple_id: str) -> int:
        """Cursor a freshly connected client should start from"""
        last = (
            self.db.query(EventLog.id)
            .filter(EventLog.couple_id == couple_id)
            .order_by(EventLog.id.desc())
            .first()
        )
        return last[0] if last else 0
