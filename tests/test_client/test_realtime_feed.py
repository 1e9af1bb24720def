"""
Tests for folding change events into the query cache
"""
import asyncio

from ourlittleworld.application.errors import UpstreamFailure
from ourlittleworld.client.cache import QueryCache
from ourlittleworld.client.mutations import budget_summary_key, goals_key, posts_key, transactions_key
from ourlittleworld.client.realtime import RealtimeFeed

COUPLE = "c1"


def _event(event_type, payload, entity_id=None, event_id=1):
    return {
        "id": event_id,
        "event_type": event_type,
        "entity_id": entity_id or (payload or {}).get("id"),
        "payload": payload,
    }


def _feed(cache, api=None, **kwargs):
    return RealtimeFeed(api, cache, COUPLE, **kwargs)


def test_same_event_twice_leaves_one_entry():
    cache = QueryCache()
    cache.set_query_data(transactions_key(COUPLE), [{"id": "t0"}])
    feed = _feed(cache)
    event = _event("transaction_created", {"id": "t1", "amount": "9.99"})

    feed.apply_event(event)
    feed.apply_event(event)

    assert [t["id"] for t in cache.get(transactions_key(COUPLE))] == ["t1", "t0"]


def test_update_overwrites_in_place_and_delete_removes():
    cache = QueryCache()
    cache.set_query_data(goals_key(COUPLE), [{"id": "g1", "title": "Old"}, {"id": "g2"}])
    feed = _feed(cache)

    feed.apply_event(_event("goal_updated", {"id": "g1", "title": "New"}))
    assert cache.get(goals_key(COUPLE))[0] == {"id": "g1", "title": "New"}

    feed.apply_event(_event("goal_deleted", {"id": "g2"}))
    assert [g["id"] for g in cache.get(goals_key(COUPLE))] == ["g1"]


def test_transaction_events_invalidate_the_summary():
    cache = QueryCache()
    cache.set_query_data(budget_summary_key(COUPLE), {"percentage": 3})
    feed = _feed(cache)

    feed.apply_event(_event("budget_updated", {"monthly_total": 100.0}))
    assert cache.is_stale(budget_summary_key(COUPLE))

    cache.set_query_data(budget_summary_key(COUPLE), {"percentage": 3})
    feed.apply_event(_event("transaction_deleted", {"id": "t1"}))
    assert cache.is_stale(budget_summary_key(COUPLE))


def test_unloaded_queries_are_left_alone():
    cache = QueryCache()
    feed = _feed(cache)

    feed.apply_event(_event("post_created", {"id": "p1"}))
    feed.apply_event(_event("reminder_sent", {"id": "r1"}))

    assert cache.keys() == []


def test_event_without_payload_marks_query_stale():
    cache = QueryCache()
    cache.set_query_data(posts_key(COUPLE), [{"id": "p1"}])
    feed = _feed(cache)

    feed.apply_event({"id": 5, "event_type": "post_updated", "entity_id": "p1", "payload": None})

    assert cache.is_stale(posts_key(COUPLE))
    assert cache.get(posts_key(COUPLE)) == [{"id": "p1"}]


class ScriptedChanges:
    """changes() plays back a list of results; the last call sets `stop`"""

    def __init__(self, script, stop):
        self.script = list(script)
        self.stop = stop
        self.afters = []

    async def changes(self, couple_id, after=0, limit=None):
        self.afters.append(after)
        result = self.script.pop(0)
        if not self.script:
            self.stop.set()
        if isinstance(result, Exception):
            raise result
        return result


def test_run_survives_a_failed_poll_and_advances_cursor():
    cache = QueryCache()
    cache.set_query_data(transactions_key(COUPLE), [])

    async def scenario():
        stop = asyncio.Event()
        api = ScriptedChanges(
            [
                UpstreamFailure("down"),
                {"events": [_event("transaction_created", {"id": "t1"}, event_id=7)], "cursor": 7},
            ],
            stop,
        )
        feed = _feed(cache, api=api, cursor=3, interval=0)
        await feed.run(stop)
        return feed, api

    feed, api = asyncio.run(scenario())

    assert api.afters == [3, 3]
    assert feed.cursor == 7
    assert [t["id"] for t in cache.get(transactions_key(COUPLE))] == ["t1"]
