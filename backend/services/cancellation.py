"""
Cancellation tokens and the request wrapper shared by location search and routing.

Every logical operation (one field's search, the dispatch form's route
computation) owns a ``TokenSource``. Issuing a new token cancels the previous
one, so only the most recently issued request is ever allowed to write state.
Cancelling aborts the underlying task on a best-effort basis; the result is
discarded either way.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from domain.models import LocationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """Opaque per-request handle. Once cancelled it stays cancelled."""

    def __init__(self, operation: str, generation: int) -> None:
        self.operation = operation
        self.generation = generation
        self._cancelled = False
        self._task: Optional[asyncio.Future] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def attach(self, task: asyncio.Future) -> None:
        """Bind the task doing the work so cancelling can abort it."""
        self._task = task
        if self._cancelled:
            task.cancel()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise LocationError.cancelled()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "live"
        return f"<CancelToken {self.operation}#{self.generation} {state}>"


class TokenSource:
    """Hands out tokens for one logical operation; only the newest is live."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.generation = 0
        self._current: Optional[CancelToken] = None

    @property
    def current(self) -> Optional[CancelToken]:
        return self._current

    def issue(self) -> CancelToken:
        self.cancel()
        self.generation += 1
        self._current = CancelToken(self.operation, self.generation)
        return self._current

    def cancel(self) -> None:
        if self._current is not None:
            self._current.cancel()

    def is_current(self, token: CancelToken) -> bool:
        return token is self._current and not token.cancelled


class OutcomeStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one wrapped request; callers branch on ``status``."""
    status: OutcomeStatus
    value: Optional[T] = None
    error: Optional[LocationError] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @property
    def cancelled(self) -> bool:
        return self.status == OutcomeStatus.CANCELLED


_CANCELLED: Outcome[Any] = Outcome(OutcomeStatus.CANCELLED)


async def issue(
    work: Callable[[CancelToken], Awaitable[T]],
    token: CancelToken,
    *,
    timeout: Optional[float] = None,
) -> Outcome[T]:
    """
    Run one outbound lookup under ``token``.

    The token is checked before dispatch and again on completion. A request
    whose token was invalidated in between comes back as CANCELLED no matter
    what the provider answered. Timeouts and unexpected exceptions become
    FAILED outcomes with a ``network`` error so nothing escapes to the caller.
    """
    if token.cancelled:
        return _CANCELLED

    task = asyncio.ensure_future(work(token))
    token.attach(task)
    try:
        value = await asyncio.wait_for(task, timeout)
    except asyncio.CancelledError:
        if token.cancelled:
            logger.debug("Discarding cancelled request %r", token)
            return _CANCELLED
        raise
    except asyncio.TimeoutError:
        error = LocationError.network(f"The {token.operation} request timed out.")
    except LocationError as exc:
        error = exc
    except Exception as exc:
        logger.warning("Unexpected error during %s request: %s", token.operation, exc)
        error = LocationError.network()
    else:
        if token.cancelled:
            logger.debug("Discarding late result for %r", token)
            return _CANCELLED
        return Outcome(OutcomeStatus.OK, value=value)

    if token.cancelled or error.is_cancellation:
        return _CANCELLED
    logger.warning("%s request failed (%s): %s", token.operation, error.kind.value, error.message)
    return Outcome(OutcomeStatus.FAILED, error=error)
