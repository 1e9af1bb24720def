"""
Realtime change feed consumer.

Polls /api/v1/changes for the couple and folds each event into the query
cache with id-keyed upserts / removes. Events for the caller's own
mutations come back too; applying them is an idempotent overwrite.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from ourlittleworld.application.errors import DomainError
from ourlittleworld.client.api import OurLittleWorldClient
from ourlittleworld.client.cache import QueryCache, remove_by_id, upsert_by_id
from ourlittleworld.client.mutations import (
    budget_summary_prefix, goals_key, moods_key, posts_key, transactions_key,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0

_COLLECTIONS = {
    "transaction": transactions_key,
    "goal": goals_key,
    "post": posts_key,
    "mood": moods_key,
}

# a changed transaction moves the month's numbers
_DEPENDENTS = {
    "transaction": (budget_summary_prefix,),
    "budget": (budget_summary_prefix,),
}


class RealtimeFeed:
    """
    Usage:
        feed = RealtimeFeed(api, cache, couple_id, cursor=await api.cursor(couple_id))
        stop = asyncio.Event()
        task = asyncio.create_task(feed.run(stop))
        ...
        stop.set(); await task
    """

    def __init__(
        self,
        api: OurLittleWorldClient,
        cache: QueryCache,
        couple_id: str,
        cursor: int = 0,
        interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.api = api
        self.cache = cache
        self.couple_id = couple_id
        self.cursor = cursor
        self.interval = interval

    def apply_event(self, event: Dict[str, Any]) -> None:
        """Fold one change event into the cache"""
        event_type = event.get("event_type") or ""
        entity, _, action = event_type.rpartition("_")
        payload: Optional[Dict[str, Any]] = event.get("payload")

        for dependent in _DEPENDENTS.get(entity, ()):
            self.cache.invalidate(dependent(self.couple_id))

        key_for = _COLLECTIONS.get(entity)
        if key_for is None:
            if entity not in _DEPENDENTS:
                logger.debug("Ignoring change event %s", event_type)
            return
        key = key_for(self.couple_id)

        entity_id = event.get("entity_id") or (payload or {}).get("id")
        if action == "deleted" and entity_id:
            if key in self.cache:
                self.cache.set_query_data(key, lambda items: remove_by_id(items, entity_id))
            return

        if not payload or "id" not in payload:
            self.cache.invalidate(key)
            return
        if key not in self.cache:
            # nothing loaded yet; the first fetch will include it
            return

        self.cache.set_query_data(key, lambda items: upsert_by_id(items, payload))

    async def poll_once(self) -> int:
        """
        Fetch and apply everything after the cursor.

        Returns:
            number of events applied
        """
        data = await self.api.changes(self.couple_id, after=self.cursor)
        events = data.get("events") or []
        for event in events:
            self.apply_event(event)
        self.cursor = data.get("cursor", self.cursor)
        return len(events)

    async def run(self, stop: asyncio.Event) -> None:
        """Poll until `stop` is set; a failed poll is logged and retried next tick"""
        while not stop.is_set():
            try:
                applied = await self.poll_once()
                if applied:
                    logger.debug("Applied %d change events (cursor %s)", applied, self.cursor)
            except DomainError:
                logger.exception("Change feed poll failed for couple %s", self.couple_id)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
