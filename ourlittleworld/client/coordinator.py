"""
Optimistic mutation coordinator.

One OptimisticMutation instance handles exactly one user action:

    IDLE -> APPLIED -> CONFIRMED
                    -> ROLLED_BACK

1. synthesize() builds a provisional entity (temp id), apply() patches the
   cache with it, on_applied() closes the form. All before the request.
2. request() is awaited exactly once. No retries.
3. Success: reconcile() swaps the provisional entity for the server one in
   the same slot, dependent queries are invalidated.
   Failure: rollback() undoes the patch (default: restore the snapshot taken
   before apply), on_rollback() reopens the form with a readable message.
   Cancellation: the patch is undone the same way, no UI callback runs and
   CancelledError propagates.

The cache outlives any screen, so it is always reconciled. A closed
MutationScope only silences the UI callbacks of a late response.
"""
import asyncio
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from ourlittleworld.application.errors import (
    DomainError, Forbidden, InvalidBudget, NotFound, Unauthorized, UpstreamFailure, ValidationError,
)
from ourlittleworld.client.cache import QueryCache, QueryKey

logger = logging.getLogger(__name__)

IDLE = "idle"
APPLIED = "applied"
CONFIRMED = "confirmed"
ROLLED_BACK = "rolled_back"

TEMP_ID_PREFIX = "temp-"

DEFAULT_ERROR_MESSAGE = "Something went wrong. Please try again."


def make_temp_id(now_ms: Optional[int] = None) -> str:
    """temp-<ms>-<random>; server ids are uuid4 and never start with "temp-" """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{TEMP_ID_PREFIX}{now_ms}-{secrets.token_hex(4)}"


def is_temp_id(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(TEMP_ID_PREFIX)


def user_message(exc: BaseException) -> str:
    """Non-technical text for a failed action"""
    if isinstance(exc, InvalidBudget):
        return exc.message or "Your budget split doesn't add up to the total."
    if isinstance(exc, ValidationError):
        return exc.message or "Please check the form and try again."
    if isinstance(exc, Unauthorized):
        return "Your session has expired. Please sign in again."
    if isinstance(exc, Forbidden):
        return "You don't have access to this world."
    if isinstance(exc, NotFound):
        return "This item no longer exists."
    if isinstance(exc, UpstreamFailure):
        return "We couldn't reach the server. Check your connection and try again."
    return DEFAULT_ERROR_MESSAGE


class MutationScope:
    """
    Lifetime of the screen that started a mutation.

    Close it on unmount; responses that settle afterwards no longer call
    on_applied / on_rollback / on_success.
    """

    def __init__(self):
        self.active = True

    def close(self) -> None:
        self.active = False


@dataclass
class MutationResult:
    state: str
    data: Any = None
    provisional: Any = None
    error: Optional[DomainError] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == CONFIRMED


@dataclass
class OptimisticMutation:
    """
    Generic optimistic write against one cache key.

    Args:
        cache: the session's QueryCache
        key: cache key being patched
        request: async variables -> server response
        apply: (current, provisional, variables) -> patched value
        synthesize: variables -> provisional entity (None for no entity)
        reconcile: (current, provisional, response, variables) -> value;
            when omitted the optimistic value stays as is
        rollback: (current, provisional, variables) -> value; when omitted
            the snapshot captured before apply() is restored
        invalidate: key prefixes marked stale after success
        on_applied / on_rollback / on_success: UI callbacks
    """
    cache: QueryCache
    key: QueryKey
    request: Callable[[Any], Awaitable[Any]]
    apply: Callable[[Any, Any, Any], Any]
    synthesize: Optional[Callable[[Any], Any]] = None
    reconcile: Optional[Callable[[Any, Any, Any, Any], Any]] = None
    rollback: Optional[Callable[[Any, Any, Any], Any]] = None
    invalidate: Iterable[QueryKey] = ()
    on_applied: Optional[Callable[[Any], None]] = None
    on_rollback: Optional[Callable[[Any, str], None]] = None
    on_success: Optional[Callable[[Any], None]] = None
    scope: Optional[MutationScope] = None
    state: str = IDLE
    history: List[str] = field(default_factory=lambda: [IDLE])

    def _transition(self, state: str) -> None:
        self.state = state
        self.history.append(state)

    def _ui_alive(self) -> bool:
        return self.scope is None or self.scope.active

    async def run(self, variables: Any) -> MutationResult:
        """
        Apply, send, reconcile. Never raises for request failures; the
        outcome is in the returned MutationResult.

        Raises:
            RuntimeError: the instance was already used for another action
            asyncio.CancelledError: the awaiting task was cancelled; the patch
                is undone first
        """
        if self.state != IDLE:
            raise RuntimeError("OptimisticMutation instances are single-use")

        provisional = self.synthesize(variables) if self.synthesize else None
        snapshot = self.cache.snapshot(self.key)
        self.cache.set_query_data(self.key, lambda current: self.apply(current, provisional, variables))
        self._transition(APPLIED)
        if self.on_applied and self._ui_alive():
            self.on_applied(variables)

        try:
            response = await self.request(variables)
        except asyncio.CancelledError:
            # the caller gave up; undo the patch without touching the UI, then propagate
            logger.warning("Mutation on %r cancelled, rolling back", self.key)
            self._undo(snapshot, provisional, variables)
            raise
        except Exception as exc:
            if not isinstance(exc, DomainError):
                logger.exception("Unexpected failure in optimistic mutation on %r", self.key)
                exc = UpstreamFailure(str(exc) or type(exc).__name__)
            else:
                logger.warning("Mutation on %r rolled back: %s", self.key, exc.message)
            return self._roll_back(snapshot, provisional, variables, exc)

        if self.reconcile:
            self.cache.set_query_data(
                self.key, lambda current: self.reconcile(current, provisional, response, variables)
            )
        self.cache.invalidate_many(self.invalidate)
        self._transition(CONFIRMED)
        if self.on_success and self._ui_alive():
            self.on_success(response)
        return MutationResult(state=CONFIRMED, data=response, provisional=provisional)

    def _undo(self, snapshot: Any, provisional: Any, variables: Any) -> None:
        if self.rollback:
            self.cache.set_query_data(self.key, lambda current: self.rollback(current, provisional, variables))
        else:
            self.cache.restore(self.key, snapshot)
        self._transition(ROLLED_BACK)

    def _roll_back(self, snapshot: Any, provisional: Any, variables: Any, exc: DomainError) -> MutationResult:
        self._undo(snapshot, provisional, variables)

        message = user_message(exc)
        if self.on_rollback and self._ui_alive():
            self.on_rollback(variables, message)
        return MutationResult(state=ROLLED_BACK, provisional=provisional, error=exc, message=message)
