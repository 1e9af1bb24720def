"""
Client-side query cache.

One cache per signed-in session. Values are treated as immutable: every
write goes through a pure transform old -> new (see set_query_data), so a
value read earlier stays a valid snapshot for rollback.

Collections are lists of dicts matched by their "id" key, never by index.

Usage:
    cache = QueryCache()
    cache.set_query_data(("transactions", couple_id), rows)
    cache.set_query_data(("transactions", couple_id), lambda old: prepend(old, tx))
"""
import logging
from typing import Any, Dict, Hashable, Iterable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

QueryKey = Tuple[Hashable, ...]
Entity = Dict[str, Any]

# "no value": snapshot of an empty key, or an updater result that leaves the key empty
MISSING = object()


# === Pure collection transforms ===

def prepend(items: Optional[List[Entity]], entity: Entity) -> List[Entity]:
    """New entity first; any older copy with the same id is dropped"""
    return [entity] + [i for i in (items or []) if i.get("id") != entity.get("id")]


def replace_by_id(items: Optional[List[Entity]], entity_id: str, entity: Entity) -> List[Entity]:
    """
    Put `entity` in the slot of `entity_id` (e.g. a temp id).

    If `entity`'s own id is already present elsewhere (a realtime push got
    there first) that copy is dropped, so the id appears exactly once.
    If `entity_id` is gone, behaves like upsert_by_id.
    """
    items = items or []
    if not any(i.get("id") == entity_id for i in items):
        return upsert_by_id(items, entity)
    result = []
    for item in items:
        if item.get("id") == entity_id:
            result.append(entity)
        elif item.get("id") != entity.get("id"):
            result.append(item)
    return result


def merge_by_id(items: Optional[List[Entity]], entity_id: str, changes: Dict[str, Any]) -> List[Entity]:
    return [{**i, **changes} if i.get("id") == entity_id else i for i in (items or [])]


def remove_by_id(items: Optional[List[Entity]], entity_id: str) -> List[Entity]:
    return [i for i in (items or []) if i.get("id") != entity_id]


def upsert_by_id(items: Optional[List[Entity]], entity: Entity) -> List[Entity]:
    """Overwrite in place when the id is known, otherwise prepend"""
    items = items or []
    if any(i.get("id") == entity.get("id") for i in items):
        return [entity if i.get("id") == entity.get("id") else i for i in items]
    return [entity] + list(items)


def insert_at(items: Optional[List[Entity]], entity: Entity, index: int) -> List[Entity]:
    """Re-insert a removed entity at its old position (no-op if the id is back already)"""
    items = list(items or [])
    if any(i.get("id") == entity.get("id") for i in items):
        return items
    index = max(0, min(index, len(items)))
    return items[:index] + [entity] + items[index:]


def find_by_id(items: Optional[List[Entity]], entity_id: str) -> Tuple[Optional[Entity], int]:
    """(entity, index) or (None, -1)"""
    for index, item in enumerate(items or []):
        if item.get("id") == entity_id:
            return item, index
    return None, -1


# === Cache ===

class QueryCache:
    """Per-session query cache with stale marking"""

    def __init__(self):
        self._data: Dict[QueryKey, Any] = {}
        self._stale: Set[QueryKey] = set()

    def get(self, key: QueryKey, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._data

    def keys(self) -> List[QueryKey]:
        return list(self._data)

    def set_query_data(self, key: QueryKey, updater: Any) -> Any:
        """
        Store a new value for `key`.

        Args:
            updater: a plain value, or a callable old -> new (old is None
                when the key is empty). The callable must not mutate old.
                Returning MISSING leaves the key empty.

        Returns:
            the stored value
        """
        if callable(updater):
            value = updater(self._data.get(key))
        else:
            value = updater
        if value is MISSING:
            self._data.pop(key, None)
            self._stale.discard(key)
            return None
        self._data[key] = value
        self._stale.discard(key)
        return value

    def snapshot(self, key: QueryKey) -> Any:
        """Current value of `key` (or MISSING) for a later restore()"""
        return self._data.get(key, MISSING)

    def restore(self, key: QueryKey, snapshot: Any) -> None:
        if snapshot is MISSING:
            self._data.pop(key, None)
        else:
            self._data[key] = snapshot

    def invalidate(self, prefix: QueryKey) -> List[QueryKey]:
        """
        Mark every key starting with `prefix` stale; the data stays readable
        until the owner refetches.

        Returns:
            keys that were marked
        """
        marked = [k for k in self._data if k[:len(prefix)] == tuple(prefix)]
        self._stale.update(marked)
        if marked:
            logger.debug("Invalidated %d queries under %r", len(marked), prefix)
        return marked

    def invalidate_many(self, prefixes: Iterable[QueryKey]) -> None:
        for prefix in prefixes:
            self.invalidate(prefix)

    def is_stale(self, key: QueryKey) -> bool:
        return key in self._stale

    def needs_fetch(self, key: QueryKey) -> bool:
        """True when `key` is empty or stale"""
        return key not in self._data or key in self._stale

    def clear(self) -> None:
        """Drop everything (logout)"""
        self._data.clear()
        self._stale.clear()
