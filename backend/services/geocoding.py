"""Forward geocoding (address autocomplete) using OpenStreetMap Nominatim.

Nominatim asks for at most one request per second and a descriptive
User-Agent; the UI layer debounces keystrokes and this module throttles what
still gets through.
"""

from __future__ import annotations

import asyncio
import logging
import re
import threading
import time
from typing import Any, List, Optional

import requests

from domain.models import LocationError, Suggestion
from services.cancellation import CancelToken
from settings import settings

logger = logging.getLogger(__name__)
_session = requests.Session()
_last_request_ts: float = 0.0
_lock = threading.Lock()
_MIN_INTERVAL_SEC = settings.NOMINATIM_MIN_INTERVAL
_logged_ua = False

FALLBACK_UA = "FleetFlowCommandCenter/1.0"
if settings.LOCATION_USER_AGENT is None:
    logger.warning(
        "LOCATION_USER_AGENT not set in environment; using fallback UA. "
        "This may violate Nominatim usage policy."
    )


def _redact_email(ua: str) -> str:
    if "@" not in ua:
        return ua
    return re.sub(r"\S+@\S+", "<redacted>", ua)


_ua_value = settings.LOCATION_USER_AGENT or FALLBACK_UA
NOMINATIM_HEADERS = {
    "User-Agent": _ua_value,
    "Accept": "application/json",
}


def _throttled_get(
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
) -> requests.Response:
    """Perform a GET request with a simple global rate limit."""
    global _last_request_ts
    with _lock:
        now = time.time()
        delta = now - _last_request_ts
        if delta < _MIN_INTERVAL_SEC:
            time.sleep(_MIN_INTERVAL_SEC - delta)
        _last_request_ts = time.time()
    return _session.get(url, params=params, headers=headers, timeout=timeout)


def _parse_suggestions(data: Any, limit: int) -> List[Suggestion]:
    if not isinstance(data, list):
        raise LocationError.network("Nominatim returned an unexpected response.")
    suggestions: List[Suggestion] = []
    for item in data[:limit]:
        try:
            suggestions.append(
                Suggestion(
                    place_id=str(item["place_id"]),
                    display_name=str(item.get("display_name", "")),
                    lat=float(item["lat"]),
                    lon=float(item["lon"]),
                    type=str(item.get("type") or ""),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed Nominatim item %r: %s", item, exc)
    return suggestions


def search_locations_sync(
    query: str,
    limit: int = 5,
    *,
    base_url: Optional[str] = None,
    timeout: float = 10.0,
) -> List[Suggestion]:
    """
    Search Nominatim for places matching ``query``.

    Returns up to ``limit`` suggestions in provider rank order. A blank query
    returns an empty list without touching the network.

    Raises:
        LocationError: ``network`` kind on transport errors, non-2xx
            statuses or unreadable payloads
    """
    if not query.strip():
        return []

    global _logged_ua
    if not _logged_ua:
        logger.debug("Nominatim User-Agent: %s", _redact_email(_ua_value))
        _logged_ua = True

    base = (base_url or settings.NOMINATIM_BASE_URL).rstrip("/")
    params = {
        "q": query,
        "format": "json",
        "addressdetails": "1",
        "limit": str(limit),
    }
    try:
        resp = _throttled_get(
            f"{base}/search", params=params, headers=NOMINATIM_HEADERS, timeout=timeout
        )
    except requests.RequestException as exc:
        logger.warning("Nominatim search error for q=%r: %s", query, exc)
        raise LocationError.network() from exc

    if not resp.ok:
        raise LocationError.network(f"Nominatim error: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("Nominatim search JSON error for q=%r: %s", query, exc)
        raise LocationError.network("Nominatim returned an unreadable response.") from exc

    suggestions = _parse_suggestions(data, limit)
    logger.debug("Nominatim search q=%r got %d results", query, len(suggestions))
    return suggestions


async def search_locations(
    query: str,
    limit: int = 5,
    cancel_token: Optional[CancelToken] = None,
) -> List[Suggestion]:
    """Async geocoder entry point used by location fields."""
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    results = await asyncio.to_thread(
        search_locations_sync, query, limit, timeout=settings.PROVIDER_TIMEOUT_SEC
    )
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    return results
