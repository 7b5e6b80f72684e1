"""
Route planning for the trip dispatch form.

Observes the resolved origin and destination. Whenever the pair changes the
previous route computation is cancelled and, if both ends are set, a new one
is started. Only the newest computation can write the route summary.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from domain.models import ROUTE_FAILED_MESSAGE, ResolvedLocation, RouteResult, RouteSummary
from services.cancellation import CancelToken, TokenSource, issue
from services.routing import calculate_route
from settings import settings

logger = logging.getLogger(__name__)

RouteFn = Callable[[float, float, float, float, CancelToken], Awaitable[RouteResult]]


class RoutePlanner:
    def __init__(
        self,
        *,
        route: RouteFn = calculate_route,
        rate_per_km: Optional[float] = None,
        timeout_sec: Optional[float] = None,
        on_update: Optional[Callable[[RouteSummary], None]] = None,
    ):
        self.route_result: Optional[RouteResult] = None
        self.route_loading = False
        self.route_error: Optional[str] = None
        self.origin: Optional[ResolvedLocation] = None
        self.destination: Optional[ResolvedLocation] = None

        self.rate_per_km = settings.FUEL_RATE_PER_KM if rate_per_km is None else rate_per_km
        self._route = route
        self._timeout = settings.PROVIDER_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        self._on_update = on_update
        self._tokens = TokenSource("route")
        self._tasks: Set[asyncio.Task] = set()

    @property
    def summary(self) -> RouteSummary:
        return RouteSummary(
            route_result=self.route_result,
            route_loading=self.route_loading,
            route_error=self.route_error,
        )

    @property
    def can_dispatch(self) -> bool:
        return self.summary.can_dispatch

    def observe(
        self,
        origin: Optional[ResolvedLocation],
        destination: Optional[ResolvedLocation],
    ) -> None:
        """Feed the current pair of resolved locations; no-op if unchanged."""
        if origin == self.origin and destination == self.destination:
            return
        self.origin = origin
        self.destination = destination
        self.refresh()

    def refresh(self) -> None:
        """Recompute the route for the current pair, dropping any in-flight work."""
        origin, destination = self.origin, self.destination
        if origin is None or destination is None:
            self._tokens.cancel()
            self.route_result = None
            self.route_error = None
            self.route_loading = False
            self._notify()
            return

        token = self._tokens.issue()
        self.route_loading = True
        self.route_error = None
        self.route_result = None
        self._notify()

        task = asyncio.get_running_loop().create_task(self._compute(origin, destination, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _compute(
        self,
        origin: ResolvedLocation,
        destination: ResolvedLocation,
        token: CancelToken,
    ) -> None:
        logger.debug("Route %r: %s -> %s", token, origin.name, destination.name)
        outcome = await issue(
            lambda t: self._route(origin.lat, origin.lon, destination.lat, destination.lon, t),
            token,
            timeout=self._timeout,
        )
        if outcome.cancelled:
            return

        if outcome.ok and outcome.value is not None:
            result = outcome.value
            if result.fuel_cost is None:
                result = result.with_fuel_cost(self.rate_per_km)
            self.route_result = result
        else:
            message = outcome.error.message if outcome.error else None
            self.route_error = message or ROUTE_FAILED_MESSAGE
        self.route_loading = False
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.summary)

    async def settle(self) -> None:
        while True:
            outstanding = [t for t in self._tasks if not t.done()]
            if not outstanding:
                return
            await asyncio.wait(outstanding)

    def close(self) -> None:
        self._tokens.cancel()
        for task in list(self._tasks):
            task.cancel()
