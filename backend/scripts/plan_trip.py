"""Resolve an origin and a destination and print the route estimate.

Usage:
    python -m scripts.plan_trip "Mumbai" "Pune"

Drives the same pipeline as the dispatch form: the text is typed into each
location field, the top suggestion is picked with the keyboard (ArrowDown,
Enter), and the route planner prices the trip. Hits live Nominatim and OSRM.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from domain.models import FieldStatus
from services.keyboard import Key
from services.location_field import LocationField
from services.trip_dispatch import TripDispatchForm

LOG = logging.getLogger("plan_trip")


async def resolve(field: LocationField, text: str) -> bool:
    field.focus()
    field.on_input(text)
    await field.settle()
    if field.status != FieldStatus.RESULTS:
        LOG.error("%s: %s", field.label, field.display_error or "no suggestions")
        return False
    for idx, suggestion in enumerate(field.suggestions):
        LOG.info("%s option %d: %s", field.label, idx + 1, suggestion.display_name)
    field.handle_key(Key.ARROW_DOWN)
    field.handle_key(Key.ENTER)
    return field.value is not None


async def plan(origin: str, destination: str, form: TripDispatchForm | None = None) -> int:
    form = form or TripDispatchForm()
    try:
        if not await resolve(form.origin, origin):
            return 1
        if not await resolve(form.destination, destination):
            return 1
        await form.settle()

        summary = form.route
        if summary.route_error:
            print(f"Route unavailable: {summary.route_error}")
            return 2
        result = summary.route_result
        if result is None:
            print("Route unavailable")
            return 2
        print(f"{form.origin.value.name} -> {form.destination.value.name}")
        print(f"  Distance: {result.distance_km} km")
        print(f"  Duration: {result.duration_label}")
        print(f"  Fuel:     ₹{result.fuel_cost:,.2f} ({form.planner.rate_per_km:g}/km)")
        return 0
    finally:
        form.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("origin", help="Pickup location text")
    parser.add_argument("destination", help="Delivery location text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(plan(args.origin, args.destination))


if __name__ == "__main__":
    sys.exit(main())
