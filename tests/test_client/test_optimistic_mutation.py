"""
Tests for the optimistic mutation state machine
"""
import asyncio

import pytest

from ourlittleworld.application.errors import InvalidBudget, NotFound, Unauthorized, UpstreamFailure, ValidationError
from ourlittleworld.client.cache import QueryCache, prepend, remove_by_id, replace_by_id
from ourlittleworld.client.coordinator import (
    APPLIED, CONFIRMED, IDLE, ROLLED_BACK,
    MutationScope, OptimisticMutation, is_temp_id, make_temp_id, user_message,
)

KEY = ("transactions", "c1")
SERVER_ROWS = [{"id": "a"}, {"id": "b"}]


class Recorder:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.events = []

    async def request(self, variables):
        self.calls.append(variables)
        if self.error is not None:
            raise self.error
        return self.response


def _mutation(cache, recorder, **kwargs):
    return OptimisticMutation(
        cache=cache,
        key=KEY,
        request=recorder.request,
        synthesize=lambda variables: {"id": make_temp_id(), **variables},
        apply=lambda current, provisional, variables: prepend(current, provisional),
        reconcile=lambda current, provisional, response, variables: replace_by_id(current, provisional["id"], response),
        rollback=lambda current, provisional, variables: remove_by_id(current, provisional["id"]),
        on_applied=lambda variables: recorder.events.append(("applied", [i["id"] for i in cache.get(KEY)])),
        on_rollback=lambda variables, message: recorder.events.append(("rollback", message)),
        on_success=lambda response: recorder.events.append(("success", response["id"])),
        **kwargs,
    )


def test_temp_ids():
    temp = make_temp_id(1700000000000)
    assert temp.startswith("temp-1700000000000-")
    assert is_temp_id(temp)
    assert not is_temp_id("3f1c2d9e-0000-4000-8000-000000000000")
    assert not is_temp_id(None)


def test_success_swaps_provisional_for_server_entity():
    cache = QueryCache()
    cache.set_query_data(KEY, list(SERVER_ROWS))
    cache.set_query_data(("budget-summary", "c1", None), {"percentage": 0})
    recorder = Recorder(response={"id": "srv-1", "amount": "5"})
    mutation = _mutation(cache, recorder, invalidate=[("budget-summary", "c1")])

    result = asyncio.run(mutation.run({"amount": "5"}))

    assert result.ok
    assert mutation.history == [IDLE, APPLIED, CONFIRMED]
    assert [i["id"] for i in cache.get(KEY)] == ["srv-1", "a", "b"]
    assert not any(is_temp_id(i["id"]) for i in cache.get(KEY))
    assert cache.is_stale(("budget-summary", "c1", None))
    assert len(recorder.calls) == 1

    applied, success = recorder.events
    assert applied[0] == "applied" and is_temp_id(applied[1][0])
    assert success == ("success", "srv-1")


def test_failure_restores_cache_and_reports_message():
    cache = QueryCache()
    cache.set_query_data(KEY, list(SERVER_ROWS))
    recorder = Recorder(error=ValidationError("Amount must be greater than zero"))
    mutation = _mutation(cache, recorder)

    result = asyncio.run(mutation.run({"amount": "0"}))

    assert result.state == ROLLED_BACK
    assert mutation.history == [IDLE, APPLIED, ROLLED_BACK]
    assert cache.get(KEY) == SERVER_ROWS
    assert recorder.events[-1] == ("rollback", "Amount must be greater than zero")
    assert len(recorder.calls) == 1


def test_default_rollback_restores_snapshot():
    cache = QueryCache()
    recorder = Recorder(error=InvalidBudget("doesn't match", difference=100))
    mutation = OptimisticMutation(
        cache=cache,
        key=("budget-summary", "c1", None),
        request=recorder.request,
        apply=lambda current, provisional, variables: {"budget_goals": variables},
    )

    result = asyncio.run(mutation.run({"monthly_total": 2000.0}))

    assert ("budget-summary", "c1", None) not in cache
    assert isinstance(result.error, InvalidBudget)
    assert result.error.difference == 100


def test_unexpected_exception_becomes_upstream_failure():
    cache = QueryCache()
    cache.set_query_data(KEY, [])
    mutation = _mutation(cache, Recorder(error=ConnectionResetError("reset by peer")))

    result = asyncio.run(mutation.run({"amount": "1"}))

    assert isinstance(result.error, UpstreamFailure)
    assert result.message == user_message(UpstreamFailure())
    assert cache.get(KEY) == []


def test_closed_scope_silences_ui_but_still_reconciles():
    cache = QueryCache()
    cache.set_query_data(KEY, [])
    scope = MutationScope()
    recorder = Recorder(response={"id": "srv-2"})

    async def request_after_unmount(variables):
        scope.close()
        return await recorder.request(variables)

    mutation = _mutation(cache, recorder, scope=scope)
    mutation.request = request_after_unmount

    result = asyncio.run(mutation.run({"amount": "1"}))

    assert result.ok
    assert [e[0] for e in recorder.events] == ["applied"]
    assert [i["id"] for i in cache.get(KEY)] == ["srv-2"]


def test_instances_are_single_use():
    cache = QueryCache()
    mutation = _mutation(cache, Recorder(response={"id": "x"}))
    asyncio.run(mutation.run({}))

    with pytest.raises(RuntimeError):
        asyncio.run(mutation.run({}))


def test_user_messages_are_friendly():
    assert "sign in" in user_message(Unauthorized())
    assert user_message(NotFound("Transaction not found")) == "This item no longer exists."
    assert user_message(KeyError("x")) == "Something went wrong. Please try again."


def test_cancelled_request_rolls_back_cache_without_ui_callbacks():
    cache = QueryCache()
    cache.set_query_data(KEY, list(SERVER_ROWS))
    recorder = Recorder()
    mutation = _mutation(cache, recorder)

    async def never_answers(variables):
        await asyncio.Event().wait()

    mutation.request = never_answers

    async def scenario():
        task = asyncio.create_task(mutation.run({"amount": "3"}))
        await asyncio.sleep(0)
        assert is_temp_id(cache.get(KEY)[0]["id"])
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert mutation.state == ROLLED_BACK
    assert cache.get(KEY) == SERVER_ROWS
    assert [e[0] for e in recorder.events] == ["applied"]


def test_timeout_rolls_back_default_snapshot():
    cache = QueryCache()
    cache.set_query_data(("budget-summary", "c1", None), {"budget_goals": None})

    async def slow(variables):
        await asyncio.sleep(10)

    mutation = OptimisticMutation(
        cache=cache,
        key=("budget-summary", "c1", None),
        request=slow,
        apply=lambda current, provisional, variables: {"budget_goals": variables},
    )

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(asyncio.wait_for(mutation.run({"monthly_total": 2000.0}), timeout=0.01))

    assert mutation.state == ROLLED_BACK
    assert cache.get(("budget-summary", "c1", None)) == {"budget_goals": None}
