import os

# Basic settings helper to read environment configuration.


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    return float(val)


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    return int(val)


class Settings:
    def __init__(self) -> None:
        self.NOMINATIM_BASE_URL: str = os.getenv(
            "NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org"
        )
        self.OSRM_BASE_URL: str = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")
        self.LOCATION_USER_AGENT: str | None = os.getenv("LOCATION_USER_AGENT")
        self.NOMINATIM_MIN_INTERVAL: float = _as_float(os.getenv("NOMINATIM_MIN_INTERVAL"), 1.0)

        self.SEARCH_DEBOUNCE_SEC: float = _as_float(os.getenv("SEARCH_DEBOUNCE_SEC"), 0.4)
        self.SEARCH_RESULT_LIMIT: int = _as_int(os.getenv("SEARCH_RESULT_LIMIT"), 5)
        self.PROVIDER_TIMEOUT_SEC: float = _as_float(os.getenv("PROVIDER_TIMEOUT_SEC"), 10.0)

        # Average fuel cost per km for a fleet truck (INR).
        self.FUEL_RATE_PER_KM: float = _as_float(os.getenv("FUEL_RATE_PER_KM"), 12.0)
        self.MAX_SNAP_DISTANCE_M: float = _as_float(os.getenv("MAX_SNAP_DISTANCE_M"), 25_000.0)
        self.MIN_ROUTE_DISTANCE_KM: float = _as_float(os.getenv("MIN_ROUTE_DISTANCE_KM"), 0.5)


settings = Settings()
