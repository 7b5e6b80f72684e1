"""
Location search API routes.
"""
import logging
from typing import List
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from domain.models import Suggestion, shorten_display_name
from services.cancellation import TokenSource, issue
from services.geocoding import search_locations
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)


class SuggestionResponse(BaseModel):
    place_id: str
    display_name: str
    short_name: str
    primary: str
    secondary: str
    lat: float
    lon: float
    type: str


def suggestion_to_response(suggestion: Suggestion) -> SuggestionResponse:
    """Convert domain Suggestion to API response."""
    return SuggestionResponse(
        place_id=suggestion.place_id,
        display_name=suggestion.display_name,
        short_name=shorten_display_name(suggestion.display_name),
        primary=suggestion.primary_label,
        secondary=suggestion.secondary_label,
        lat=suggestion.lat,
        lon=suggestion.lon,
        type=suggestion.type,
    )


@router.get("/search", response_model=List[SuggestionResponse])
async def search(
    q: str = Query("", description="Free-text address or place name"),
    limit: int = Query(5, ge=1, le=10),
):
    """Autocomplete suggestions for a free-text location query."""
    if not q.strip():
        return []

    token = TokenSource("search").issue()
    outcome = await issue(
        lambda t: search_locations(q, limit, t),
        token,
        timeout=settings.PROVIDER_TIMEOUT_SEC,
    )
    if not outcome.ok:
        detail = outcome.error.message if outcome.error else "Search failed"
        raise HTTPException(status_code=502, detail=detail)
    suggestions = outcome.value or []
    logger.debug("Location search q=%r returned %d results", q, len(suggestions))
    return [suggestion_to_response(s) for s in suggestions]
