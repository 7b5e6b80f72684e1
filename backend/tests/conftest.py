import asyncio
import sys
from pathlib import Path
from typing import Any, List, Tuple

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


class PendingCall:
    """One provider call whose answer the test decides."""

    def __init__(self, args: Tuple[Any, ...], token, future: asyncio.Future):
        self.args = args
        self.token = token
        self.future = future

    def resolve(self, value):
        if not self.future.done():
            self.future.set_result(value)

    def fail(self, error: BaseException):
        if not self.future.done():
            self.future.set_exception(error)


class ControlledProvider:
    """
    Stand-in for search_locations / calculate_route.

    Every call blocks until the test resolves it. The answer is shielded from
    cancellation so a superseded call can still "arrive" late, like a real
    HTTP response that was already on the wire.
    """

    def __init__(self):
        self.calls: List[PendingCall] = []

    async def __call__(self, *args):
        *params, token = args
        future = asyncio.get_running_loop().create_future()
        self.calls.append(PendingCall(tuple(params), token, future))
        return await asyncio.shield(future)

    async def wait_for_calls(self, count: int, timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while len(self.calls) < count:
            if loop.time() > deadline:
                raise AssertionError(f"expected {count} calls, got {len(self.calls)}")
            await asyncio.sleep(0.001)


class ImmediateProvider:
    """Answers every call at once with a fixed value or error."""

    def __init__(self, value=None, error: BaseException = None):
        self.value = value
        self.error = error
        self.calls: List[Tuple[Any, ...]] = []

    async def __call__(self, *args):
        *params, _token = args
        self.calls.append(tuple(params))
        if self.error is not None:
            raise self.error
        return self.value


@pytest.fixture
def controlled_provider() -> ControlledProvider:
    return ControlledProvider()


@pytest.fixture
def immediate_provider():
    return ImmediateProvider


@pytest.fixture(autouse=True)
def no_nominatim_throttle(monkeypatch):
    from services import geocoding

    monkeypatch.setattr(geocoding, "_MIN_INTERVAL_SEC", 0.0)
