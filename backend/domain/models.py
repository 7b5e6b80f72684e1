"""
Core domain models for trip dispatch location resolution and route planning.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union


NOT_FOUND_MESSAGE = "Location not found — try a different search."
SEARCH_FAILED_MESSAGE = "Search failed. Check your connection."
ROUTE_FAILED_MESSAGE = "Route calculation failed."


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a pocket calculator (2.5 -> 3), not like round() (2.5 -> 2)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def shorten_display_name(display_name: str, segments: int = 3) -> str:
    """Keep the first few comma-separated parts of a geocoder display name."""
    parts = [p.strip() for p in display_name.split(",")]
    return ", ".join(parts[:segments])


def format_duration(minutes: int) -> str:
    """Render a duration as '3h 15m' or '45 min'."""
    if minutes >= 60:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes} min"


class LocationErrorKind(str, Enum):
    """Why a geocoding or routing call did not produce a result."""
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"
    NO_ROUTE = "no_route"
    NETWORK = "network"  # transport, 5xx, unreadable payloads and timeouts


class LocationError(Exception):
    """
    Error raised by the geocoding and routing providers.

    Callers branch on ``kind`` rather than on the exception type, so a
    cancellation can always be told apart from a provider failure.
    """

    def __init__(self, kind: LocationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @classmethod
    def cancelled(cls) -> "LocationError":
        return cls(LocationErrorKind.CANCELLED, "Request cancelled")

    @classmethod
    def network(cls, message: Optional[str] = None) -> "LocationError":
        return cls(LocationErrorKind.NETWORK, message or SEARCH_FAILED_MESSAGE)

    @classmethod
    def no_route(cls, message: str) -> "LocationError":
        return cls(LocationErrorKind.NO_ROUTE, message)

    @property
    def is_cancellation(self) -> bool:
        return self.kind == LocationErrorKind.CANCELLED

    def __repr__(self) -> str:
        return f"LocationError({self.kind.value!r}, {self.message!r})"


@dataclass(frozen=True)
class Suggestion:
    """One geocoding candidate, valid for the lifetime of a single response."""
    place_id: str  # unique within one response batch
    display_name: str  # comma-segmented, most specific first
    lat: float
    lon: float
    type: str = ""  # OSM place type (city, town, village, ...)

    @property
    def primary_label(self) -> str:
        """First two segments, the bold line of a dropdown row."""
        return ",".join(self.display_name.split(",")[:2]).strip()

    @property
    def secondary_label(self) -> str:
        return ",".join(self.display_name.split(",")[2:]).strip()


@dataclass(frozen=True)
class ResolvedLocation:
    """A place the user explicitly confirmed, with coordinates for routing."""
    name: str
    lat: float
    lon: float

    @classmethod
    def from_suggestion(cls, suggestion: Suggestion) -> "ResolvedLocation":
        return cls(
            name=shorten_display_name(suggestion.display_name),
            lat=suggestion.lat,
            lon=suggestion.lon,
        )


@dataclass(frozen=True)
class RouteResult:
    """Driving distance, duration and fuel estimate between two resolved points."""
    distance_km: float
    duration_min: int
    fuel_cost: Optional[float] = None  # None until priced at the fleet fuel rate

    def with_fuel_cost(self, rate_per_km: float) -> "RouteResult":
        return replace(self, fuel_cost=round_half_up(self.distance_km * rate_per_km, 2))

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration_min)


# ============================================
# Location field phases
# ============================================

class FieldStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    RESULTS = "results"
    ERROR_SHOWN = "error_shown"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Idle:
    """No query and no selection."""
    status: ClassVar[FieldStatus] = FieldStatus.IDLE


@dataclass(frozen=True)
class Searching:
    """
    Debounce timer pending or request in flight.

    Suggestions from the previous search stay visible until the new outcome
    replaces them.
    """
    suggestions: Tuple[Suggestion, ...] = ()
    status: ClassVar[FieldStatus] = FieldStatus.SEARCHING


@dataclass(frozen=True)
class Results:
    suggestions: Tuple[Suggestion, ...]
    status: ClassVar[FieldStatus] = FieldStatus.RESULTS


@dataclass(frozen=True)
class ErrorShown:
    message: str
    status: ClassVar[FieldStatus] = FieldStatus.ERROR_SHOWN


@dataclass(frozen=True)
class Resolved:
    location: ResolvedLocation
    status: ClassVar[FieldStatus] = FieldStatus.RESOLVED


FieldPhase = Union[Idle, Searching, Results, ErrorShown, Resolved]


@dataclass(frozen=True)
class RouteSummary:
    """What the dispatch form renders in its route strip."""
    route_result: Optional[RouteResult] = None
    route_loading: bool = False
    route_error: Optional[str] = None

    @property
    def can_dispatch(self) -> bool:
        return not self.route_loading and self.route_error is None


@dataclass(frozen=True)
class TripDraft:
    """Payload handed to the trip service when a trip is dispatched."""
    vehicle_id: str
    driver_id: str
    origin_name: str
    origin_lat: float
    origin_lon: float
    destination_name: str
    destination_lat: float
    destination_lon: float
    cargo_weight_kg: float = 0.0
    distance_km: float = 0.0
    duration_min: int = 0
    fuel_cost: float = 0.0

    @property
    def eta_label(self) -> str:
        return format_duration(self.duration_min)
