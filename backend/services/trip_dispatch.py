"""
Trip dispatch form: two location fields wired to one route planner.

Dispatch is allowed only when the form validates and no route is loading or
failed. Field-level search errors do not block dispatch; the user can simply
search again.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from domain.models import ResolvedLocation, RouteSummary, TripDraft
from services.location_field import LocationField, SearchFn
from services.geocoding import search_locations
from services.route_planner import RouteFn, RoutePlanner
from services.routing import calculate_route

logger = logging.getLogger(__name__)

FormErrors = Dict[str, Optional[str]]


def is_form_valid(errors: FormErrors) -> bool:
    return all(message is None for message in errors.values())


class TripDispatchForm:
    def __init__(
        self,
        *,
        search: SearchFn = search_locations,
        route: RouteFn = calculate_route,
        debounce_sec: Optional[float] = None,
        rate_per_km: Optional[float] = None,
        timeout_sec: Optional[float] = None,
    ):
        self.form_errors: FormErrors = {}
        self.planner = RoutePlanner(
            route=route,
            rate_per_km=rate_per_km,
            timeout_sec=timeout_sec,
            on_update=self._on_route_update,
        )
        self.origin = LocationField(
            "Origin",
            search=search,
            on_change=self._on_origin_change,
            debounce_sec=debounce_sec,
            timeout_sec=timeout_sec,
        )
        self.destination = LocationField(
            "Destination",
            search=search,
            on_change=self._on_destination_change,
            debounce_sec=debounce_sec,
            timeout_sec=timeout_sec,
        )

    @property
    def route(self) -> RouteSummary:
        return self.planner.summary

    @property
    def can_dispatch(self) -> bool:
        return self.planner.can_dispatch

    def _on_origin_change(self, location: Optional[ResolvedLocation]) -> None:
        self.form_errors.pop("origin", None)
        self.origin.external_error = None
        self.planner.observe(location, self.destination.value)

    def _on_destination_change(self, location: Optional[ResolvedLocation]) -> None:
        self.form_errors.pop("destination", None)
        self.planner.observe(self.origin.value, location)
        self._sync_destination_error(self.planner.route_error)

    def _on_route_update(self, summary: RouteSummary) -> None:
        self._sync_destination_error(summary.route_error)

    def _sync_destination_error(self, route_error: Optional[str]) -> None:
        self.destination.external_error = route_error or self.form_errors.get("destination")

    def validate(self, vehicle_id: str = "", driver_id: str = "") -> FormErrors:
        errors: FormErrors = {
            "vehicle": None if vehicle_id else "Vehicle is required",
            "driver": None if driver_id else "Driver is required",
            "origin": None if self.origin.value else "Origin is required",
            "destination": None if self.destination.value else "Destination is required",
        }
        self.form_errors = errors
        self.origin.external_error = errors["origin"]
        self._sync_destination_error(self.planner.route_error)
        return errors

    def build_draft(
        self, vehicle_id: str, driver_id: str, cargo_weight_kg: float = 0.0
    ) -> TripDraft:
        origin, destination = self.origin.value, self.destination.value
        if origin is None or destination is None:
            raise ValueError("Both origin and destination must be resolved")
        result = self.planner.route_result
        return TripDraft(
            vehicle_id=vehicle_id,
            driver_id=driver_id,
            origin_name=origin.name,
            origin_lat=origin.lat,
            origin_lon=origin.lon,
            destination_name=destination.name,
            destination_lat=destination.lat,
            destination_lon=destination.lon,
            cargo_weight_kg=cargo_weight_kg,
            distance_km=result.distance_km if result else 0.0,
            duration_min=result.duration_min if result else 0,
            fuel_cost=(result.fuel_cost or 0.0) if result else 0.0,
        )

    def dispatch(
        self, vehicle_id: str, driver_id: str, cargo_weight_kg: float = 0.0
    ) -> Optional[TripDraft]:
        """Validate and build the trip payload; None when dispatch is blocked."""
        if not is_form_valid(self.validate(vehicle_id, driver_id)):
            return None
        if not self.can_dispatch:
            logger.debug("Dispatch blocked: %s", self.route)
            return None
        draft = self.build_draft(vehicle_id, driver_id, cargo_weight_kg)
        logger.info(
            "Dispatching %s -> %s (%.1f km)",
            draft.origin_name,
            draft.destination_name,
            draft.distance_km,
        )
        return draft

    def reset(self) -> None:
        self.form_errors = {}
        self.origin.set_value(None)
        self.destination.set_value(None)
        self.origin.external_error = None
        self.destination.external_error = None

    async def settle(self) -> None:
        await self.origin.settle()
        await self.destination.settle()
        await self.planner.settle()

    def close(self) -> None:
        self.origin.close()
        self.destination.close()
        self.planner.close()
