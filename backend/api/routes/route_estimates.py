"""
Route estimate API routes.

Distance, duration and fuel cost between two coordinates.
"""
import logging
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from domain.models import LocationErrorKind, RouteResult
from services.cancellation import TokenSource, issue
from services.routing import calculate_route
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)


class RouteEstimateResponse(BaseModel):
    distance_km: float
    duration_min: int
    duration_label: str
    fuel_cost: float
    fuel_rate_per_km: float


def route_to_response(result: RouteResult, rate_per_km: float) -> RouteEstimateResponse:
    if result.fuel_cost is None:
        result = result.with_fuel_cost(rate_per_km)
    return RouteEstimateResponse(
        distance_km=result.distance_km,
        duration_min=result.duration_min,
        duration_label=result.duration_label,
        fuel_cost=result.fuel_cost,
        fuel_rate_per_km=rate_per_km,
    )


@router.get("/estimate", response_model=RouteEstimateResponse)
async def estimate(
    origin_lat: float = Query(..., ge=-90, le=90),
    origin_lon: float = Query(..., ge=-180, le=180),
    dest_lat: float = Query(..., ge=-90, le=90),
    dest_lon: float = Query(..., ge=-180, le=180),
):
    """Driving route estimate used by the dispatch summary strip."""
    token = TokenSource("route").issue()
    outcome = await issue(
        lambda t: calculate_route(origin_lat, origin_lon, dest_lat, dest_lon, t),
        token,
        timeout=settings.PROVIDER_TIMEOUT_SEC,
    )
    if outcome.ok and outcome.value is not None:
        return route_to_response(outcome.value, settings.FUEL_RATE_PER_KM)

    error = outcome.error
    if error is not None and error.kind == LocationErrorKind.NO_ROUTE:
        raise HTTPException(status_code=404, detail=error.message)
    logger.warning("Route estimate failed for %s,%s -> %s,%s", origin_lat, origin_lon, dest_lat, dest_lon)
    raise HTTPException(
        status_code=502, detail=error.message if error else "Route calculation failed."
    )
