"""
Driving distance and duration via OSRM (Open Source Routing Machine).

Shares the HTTP session and User-Agent with the Nominatim geocoder.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import requests

from domain.models import LocationError, RouteResult, round_half_up
from services.cancellation import CancelToken
from services.geocoding import _session, _ua_value
from settings import settings

logger = logging.getLogger(__name__)

OSRM_HEADERS = {"User-Agent": _ua_value}


def _check_waypoints(data: dict, max_snap_distance_m: float) -> None:
    # OSRM snaps each coordinate to the nearest road and reports how far it
    # moved it; a large snap means the point is off the road network.
    for waypoint in data.get("waypoints") or []:
        snapped_m = float(waypoint.get("distance") or 0.0)
        if snapped_m > max_snap_distance_m:
            name = waypoint.get("name") or "unknown"
            raise LocationError.no_route(
                f'Location "{name}" is too far from any road '
                f"({snapped_m / 1000:.1f} km). Choose a more specific address."
            )


def parse_route_response(
    data: Any,
    *,
    rate_per_km: Optional[float] = None,
    max_snap_distance_m: Optional[float] = None,
    min_distance_km: Optional[float] = None,
) -> RouteResult:
    """Turn an OSRM /route payload into a priced RouteResult."""
    if not isinstance(data, dict):
        raise LocationError.network("OSRM returned an unexpected response.")

    code = data.get("code")
    if code == "NoRoute":
        raise LocationError.no_route("No driving route exists between these locations.")
    if code == "NoSegment":
        raise LocationError.no_route("One or both locations are not near any road.")
    routes = data.get("routes") or []
    if code != "Ok" or not routes:
        raise LocationError.no_route(
            data.get("message") or "No driving route found between these locations."
        )

    _check_waypoints(
        data,
        settings.MAX_SNAP_DISTANCE_M if max_snap_distance_m is None else max_snap_distance_m,
    )

    route = routes[0]
    distance_km = round_half_up(float(route.get("distance", 0.0)) / 1000, 1)
    duration_min = int(round_half_up(float(route.get("duration", 0.0)) / 60))

    min_km = settings.MIN_ROUTE_DISTANCE_KM if min_distance_km is None else min_distance_km
    if distance_km < min_km:
        raise LocationError.no_route(
            "Origin and destination are too close or resolve to the same point."
        )

    result = RouteResult(distance_km=distance_km, duration_min=duration_min)
    return result.with_fuel_cost(settings.FUEL_RATE_PER_KM if rate_per_km is None else rate_per_km)


def calculate_route_sync(
    origin_lat: float,
    origin_lon: float,
    dest_lat: float,
    dest_lon: float,
    *,
    base_url: Optional[str] = None,
    timeout: float = 10.0,
) -> RouteResult:
    """
    Calculate the driving route between two coordinates.

    Raises:
        LocationError: ``no_route`` when OSRM finds no usable route,
            ``network`` on transport errors and bad statuses
    """
    base = (base_url or settings.OSRM_BASE_URL).rstrip("/")
    # OSRM expects lon,lat order
    coords = f"{origin_lon},{origin_lat};{dest_lon},{dest_lat}"
    url = f"{base}/route/v1/driving/{coords}"
    try:
        resp = _session.get(
            url, params={"overview": "false"}, headers=OSRM_HEADERS, timeout=timeout
        )
    except requests.RequestException as exc:
        logger.warning("OSRM route error for %s: %s", coords, exc)
        raise LocationError.network("Route calculation failed. Check your connection.") from exc

    if not resp.ok:
        raise LocationError.network(f"OSRM error: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("OSRM route JSON error for %s: %s", coords, exc)
        raise LocationError.network("OSRM returned an unreadable response.") from exc

    result = parse_route_response(data)
    logger.debug(
        "OSRM route %s: %.1f km, %d min", coords, result.distance_km, result.duration_min
    )
    return result


async def calculate_route(
    origin_lat: float,
    origin_lon: float,
    dest_lat: float,
    dest_lon: float,
    cancel_token: Optional[CancelToken] = None,
) -> RouteResult:
    """Async routing entry point used by the route planner."""
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    result = await asyncio.to_thread(
        calculate_route_sync,
        origin_lat,
        origin_lon,
        dest_lat,
        dest_lon,
        timeout=settings.PROVIDER_TIMEOUT_SEC,
    )
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    return result
