"""
Tests for entity mutations against a stubbed API
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from ourlittleworld.application.errors import InvalidBudget, NotFound, UpstreamFailure
from ourlittleworld.client import mutations
from ourlittleworld.client.cache import QueryCache
from ourlittleworld.client.coordinator import is_temp_id
from ourlittleworld.domain import feed
from ourlittleworld.domain.feed import PostValidationError

COUPLE = "c1"


def stub_api(**responses):
    """Mock API whose async methods return the canned response, or raise it when it is an exception"""
    api = Mock()
    for name, result in responses.items():
        if isinstance(result, Exception):
            setattr(api, name, AsyncMock(side_effect=result))
        else:
            setattr(api, name, AsyncMock(return_value=result))
    return api


def _posts(metadata):
    return [{"id": "p1", "content": "hi", "metadata": metadata}]


def test_create_transaction_replaces_temp_entry():
    cache = QueryCache()
    cache.set_query_data(mutations.transactions_key(COUPLE), [{"id": "old"}])
    cache.set_query_data(mutations.budget_summary_key(COUPLE), {"percentage": 10})
    api = stub_api(create_transaction={"id": "srv-1", "amount": "12.50", "payer": "HIS"})
    seen = []

    result = asyncio.run(mutations.create_transaction(
        api, cache, COUPLE, Decimal("12.50"), "Food", "his",
        on_applied=lambda variables: seen.append(cache.get(mutations.transactions_key(COUPLE))[0]),
    ))

    assert result.ok
    assert is_temp_id(seen[0]["id"])
    assert seen[0]["payer"] == "HIS"
    assert seen[0]["type"] == "EXPENSE"
    assert [t["id"] for t in cache.get(mutations.transactions_key(COUPLE))] == ["srv-1", "old"]
    assert cache.is_stale(mutations.budget_summary_key(COUPLE))
    api.create_transaction.assert_awaited_once()


def test_delete_transaction_failure_puts_row_back_in_place():
    rows = [{"id": "a"}, {"id": "b"}, {"id": "c"}]
    cache = QueryCache()
    cache.set_query_data(mutations.transactions_key(COUPLE), rows)
    api = stub_api(delete_transaction=UpstreamFailure("Network error"))
    messages = []

    result = asyncio.run(mutations.delete_transaction(
        api, cache, COUPLE, "b", on_rollback=lambda variables, message: messages.append(message),
    ))

    assert not result.ok
    assert cache.get(mutations.transactions_key(COUPLE)) == rows
    assert messages and "connection" in messages[0]


def test_update_budget_mismatch_rolls_back_summary():
    summary = {"month": "2026-02", "budget_goals": None, "percentage": 0}
    cache = QueryCache()
    cache.set_query_data(mutations.budget_summary_key(COUPLE, "2026-02"), summary)
    api = stub_api(update_budget=InvalidBudget("Add 100", difference=Decimal("100")))

    result = asyncio.run(mutations.update_budget(api, cache, COUPLE, 2000, 600, 500, 800, month="2026-02"))

    assert result.error.difference == Decimal("100")
    assert cache.get(mutations.budget_summary_key(COUPLE, "2026-02")) == summary


def test_update_budget_recomputes_cached_balance():
    key = mutations.budget_summary_key(COUPLE, "2026-02")
    summary = {
        "month": "2026-02",
        "income": {"his": 0.0, "hers": 0.0, "shared": 50.0, "total": 50.0},
        "expenses": {"his": 100.0, "hers": 0.0, "shared": 0.0, "total": 100.0},
        "balance": {"his": 500.0, "hers": 500.0, "shared": 950.0, "total": 1950.0},
        "budget_goals": {"monthly_total": 2000.0, "his_budget": 600.0, "hers_budget": 500.0, "shared_budget": 900.0},
        "percentage": 5,
        "status": "healthy",
    }
    cache = QueryCache()
    cache.set_query_data(key, summary)
    api = stub_api(update_budget={"monthly_total": 200.0})
    optimistic = []

    result = asyncio.run(mutations.update_budget(
        api, cache, COUPLE, 200, 60, 40, 100, month="2026-02",
        on_applied=lambda variables: optimistic.append(cache.get(key)),
    ))

    assert result.ok
    patched = optimistic[0]
    assert patched["budget_goals"]["monthly_total"] == 200.0
    assert patched["balance"] == {"his": -40.0, "hers": 40.0, "shared": 150.0, "total": 150.0}
    assert patched["percentage"] == 50
    assert patched["status"] == "healthy"
    assert patched["income"] == summary["income"]
    assert cache.is_stale(key)


def test_update_budget_leaves_unloaded_summary_empty():
    key = mutations.budget_summary_key(COUPLE, "2026-02")
    cache = QueryCache()
    api = stub_api(update_budget={"monthly_total": 2000.0})

    result = asyncio.run(mutations.update_budget(api, cache, COUPLE, 2000, 600, 500, 900, month="2026-02"))

    assert result.ok
    assert key not in cache
    assert cache.needs_fetch(key)


def test_update_goal_marks_completion_optimistically():
    goal = {"id": "g1", "title": "Trip", "target_amount": "1000", "current_amount": "250",
            "is_completed": False, "completed_at": None}
    cache = QueryCache()
    cache.set_query_data(mutations.goals_key(COUPLE), [goal])
    api = stub_api(update_goal=UpstreamFailure("down"))
    optimistic = []

    asyncio.run(mutations.update_goal(
        api, cache, COUPLE, "g1", {"is_completed": True, "current_amount": "1000"},
        on_applied=lambda variables: optimistic.append(dict(cache.get(mutations.goals_key(COUPLE))[0])),
    ))

    assert optimistic[0]["is_completed"] is True
    assert optimistic[0]["completed_at"] is not None
    assert optimistic[0]["progress"] == "100.00"
    assert cache.get(mutations.goals_key(COUPLE)) == [goal]
    api.update_goal.assert_awaited_once_with("g1", {"isCompleted": True, "currentAmount": "1000"})


def test_create_goal_rollback_removes_provisional():
    cache = QueryCache()
    cache.set_query_data(mutations.goals_key(COUPLE), [])
    api = stub_api(create_goal=UpstreamFailure("down"))

    result = asyncio.run(mutations.create_goal(api, cache, COUPLE, "Car", "5000", priority="HIGH"))

    assert result.provisional["priority"] == "high"
    assert result.provisional["progress"] == "0.00"
    assert cache.get(mutations.goals_key(COUPLE)) == []


def test_like_rollback_restores_previous_likes():
    cache = QueryCache()
    cache.set_query_data(mutations.posts_key(COUPLE), _posts(feed.recount(None)))
    api = stub_api(toggle_like=UpstreamFailure("down"))

    asyncio.run(mutations.toggle_like(api, cache, COUPLE, "p1", "u1"))

    metadata = cache.get(mutations.posts_key(COUPLE))[0]["metadata"]
    assert metadata["likes"] == []
    assert metadata["likes_count"] == 0


def test_like_confirm_takes_server_likes():
    cache = QueryCache()
    cache.set_query_data(mutations.posts_key(COUPLE), _posts(feed.recount(None)))
    server_md, _ = feed.toggle_like({"likes": ["u2"]}, "u1")
    api = stub_api(toggle_like={"liked": True, "likes_count": 2, "post": {"id": "p1", "metadata": server_md}})

    asyncio.run(mutations.toggle_like(api, cache, COUPLE, "p1", "u1"))

    metadata = cache.get(mutations.posts_key(COUPLE))[0]["metadata"]
    assert metadata["likes"] == ["u2", "u1"]
    assert metadata["likes_count"] == 2


def test_comment_confirm_keeps_other_pending_comments():
    in_flight, _ = feed.add_comment(None, "u2", "still sending", comment_id="temp-1-aaaa")
    cache = QueryCache()
    cache.set_query_data(mutations.posts_key(COUPLE), _posts(in_flight))
    server_md, _ = feed.add_comment(None, "u1", "hello", comment_id="srv-c1")
    api = stub_api(add_comment={"comment": server_md["comments"][0], "comments_count": 1,
                               "post": {"id": "p1", "metadata": server_md}})

    asyncio.run(mutations.add_comment(api, cache, COUPLE, "p1", "u1", "hello"))

    metadata = cache.get(mutations.posts_key(COUPLE))[0]["metadata"]
    assert [c["id"] for c in metadata["comments"]] == ["srv-c1", "temp-1-aaaa"]
    assert metadata["comments_count"] == 2


def test_comment_failure_removes_only_its_own_entry():
    in_flight, _ = feed.add_comment(None, "u2", "still sending", comment_id="temp-1-aaaa")
    cache = QueryCache()
    cache.set_query_data(mutations.posts_key(COUPLE), _posts(in_flight))
    api = stub_api(add_comment=UpstreamFailure("down"))

    asyncio.run(mutations.add_comment(api, cache, COUPLE, "p1", "u1", "hello"))

    metadata = cache.get(mutations.posts_key(COUPLE))[0]["metadata"]
    assert [c["id"] for c in metadata["comments"]] == ["temp-1-aaaa"]
    assert metadata["comments_count"] == 1


def test_invalid_comment_or_reply_never_reaches_the_server():
    md, comment = feed.add_comment(None, "u1", "hi", comment_id="srv-c1")
    cache = QueryCache()
    cache.set_query_data(mutations.posts_key(COUPLE), _posts(md))
    api = stub_api(add_comment={}, add_reply={})

    with pytest.raises(PostValidationError):
        asyncio.run(mutations.add_comment(api, cache, COUPLE, "p1", "u1", "   "))
    with pytest.raises(NotFound):
        asyncio.run(mutations.add_reply(api, cache, COUPLE, "p1", "missing", "u1", "hey"))

    api.add_comment.assert_not_called()
    api.add_reply.assert_not_called()
    assert cache.get(mutations.posts_key(COUPLE))[0]["metadata"] == md
