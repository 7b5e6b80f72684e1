from unittest.mock import MagicMock, patch

import pytest
import requests

from domain.models import LocationError, LocationErrorKind, format_duration, round_half_up
from services.routing import calculate_route_sync, parse_route_response


def _osrm(distance_m, duration_s, code="Ok", snaps=(10.0, 12.0)):
    return {
        "code": code,
        "routes": [{"distance": distance_m, "duration": duration_s}],
        "waypoints": [
            {"distance": snap, "name": f"Road {i}", "location": [72.8, 19.0]}
            for i, snap in enumerate(snaps)
        ],
    }


def test_parse_route_rounds_and_prices():
    result = parse_route_response(_osrm(148_040.0, 11_710.0), rate_per_km=12)

    assert result.distance_km == 148.0
    assert result.duration_min == 195
    assert result.fuel_cost == 1776.0


def test_round_half_up_matches_fixed_point_formatting():
    assert round_half_up(2.5) == 3
    assert round_half_up(148.25, 1) == 148.3
    assert round_half_up(0.125, 2) == 0.13


@pytest.mark.parametrize(
    "code,message",
    [
        ("NoRoute", "No driving route exists between these locations."),
        ("NoSegment", "One or both locations are not near any road."),
    ],
)
def test_parse_route_known_failure_codes(code, message):
    with pytest.raises(LocationError) as excinfo:
        parse_route_response({"code": code})
    assert excinfo.value.kind == LocationErrorKind.NO_ROUTE
    assert excinfo.value.message == message


def test_parse_route_unknown_code_uses_provider_message():
    with pytest.raises(LocationError) as excinfo:
        parse_route_response({"code": "InvalidQuery", "message": "Query string malformed"})
    assert excinfo.value.message == "Query string malformed"

    with pytest.raises(LocationError) as excinfo:
        parse_route_response({"code": "Ok", "routes": []})
    assert excinfo.value.message == "No driving route found between these locations."


def test_parse_route_rejects_far_snapped_waypoint():
    with pytest.raises(LocationError) as excinfo:
        parse_route_response(_osrm(500_000.0, 30_000.0, snaps=(5.0, 31_400.0)))

    assert excinfo.value.kind == LocationErrorKind.NO_ROUTE
    assert 'Location "Road 1" is too far from any road (31.4 km)' in excinfo.value.message


def test_parse_route_rejects_near_zero_distance():
    with pytest.raises(LocationError) as excinfo:
        parse_route_response(_osrm(120.0, 30.0))
    assert excinfo.value.message == (
        "Origin and destination are too close or resolve to the same point."
    )


def test_format_duration():
    assert format_duration(195) == "3h 15m"
    assert format_duration(60) == "1h 0m"
    assert format_duration(45) == "45 min"


@patch("services.routing._session.get")
def test_calculate_route_uses_lon_lat_order(mock_get):
    resp = MagicMock()
    resp.ok = True
    resp.status_code = 200
    resp.json.return_value = _osrm(148_000.0, 11_700.0)
    mock_get.return_value = resp

    result = calculate_route_sync(19.0760, 72.8777, 18.5204, 73.8567)

    url = mock_get.call_args[0][0]
    assert url.endswith("/route/v1/driving/72.8777,19.076;73.8567,18.5204")
    assert mock_get.call_args[1]["params"] == {"overview": "false"}
    assert result.distance_km == 148.0
    assert result.duration_min == 195


@patch("services.routing._session.get")
def test_calculate_route_bad_status(mock_get):
    resp = MagicMock()
    resp.ok = False
    resp.status_code = 502
    mock_get.return_value = resp

    with pytest.raises(LocationError) as excinfo:
        calculate_route_sync(19.0760, 72.8777, 18.5204, 73.8567)
    assert excinfo.value.kind == LocationErrorKind.NETWORK
    assert excinfo.value.message == "OSRM error: 502"


@patch("services.routing._session.get")
def test_calculate_route_timeout_is_network_error(mock_get):
    mock_get.side_effect = requests.Timeout("slow")

    with pytest.raises(LocationError) as excinfo:
        calculate_route_sync(19.0760, 72.8777, 18.5204, 73.8567)
    assert excinfo.value.kind == LocationErrorKind.NETWORK
