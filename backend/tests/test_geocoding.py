import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from domain.models import LocationErrorKind, LocationError, ResolvedLocation, Suggestion, shorten_display_name
from services.cancellation import CancelToken
from services.geocoding import search_locations, search_locations_sync


def _response(json_data, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = json_data
    return resp


NOMINATIM_PUNE = [
    {
        "place_id": 282390519,
        "display_name": "Pune, Pune City, Pune District, Maharashtra, 411001, India",
        "lat": "18.5213738",
        "lon": "73.8545071",
        "type": "city",
    },
    {
        "place_id": 11942170,
        "display_name": "Pune Junction, Station Road, Pune, Maharashtra, India",
        "lat": "18.5289",
        "lon": "73.8744",
        "type": "station",
    },
]


def test_shorten_display_name_keeps_three_segments():
    assert shorten_display_name("Pune, Pune City, Pune District, Maharashtra, India") == (
        "Pune, Pune City, Pune District"
    )
    assert shorten_display_name("Goa") == "Goa"


def test_resolved_location_from_suggestion():
    suggestion = Suggestion("1", " Andheri ,Mumbai, Maharashtra, India", 19.11, 72.84)
    location = ResolvedLocation.from_suggestion(suggestion)
    assert location == ResolvedLocation("Andheri, Mumbai, Maharashtra", 19.11, 72.84)


@patch("services.geocoding._session.get")
def test_search_parses_suggestions_in_rank_order(mock_get):
    mock_get.return_value = _response(NOMINATIM_PUNE)

    results = search_locations_sync("Pune", 5)

    assert [s.place_id for s in results] == ["282390519", "11942170"]
    assert results[0].lat == pytest.approx(18.5213738)
    assert results[0].lon == pytest.approx(73.8545071)
    assert results[0].type == "city"
    assert results[0].primary_label == "Pune, Pune City"
    assert results[0].secondary_label == "Pune District, Maharashtra, 411001, India"

    _, kwargs = mock_get.call_args
    assert kwargs["params"]["q"] == "Pune"
    assert kwargs["params"]["limit"] == "5"
    assert kwargs["params"]["format"] == "json"
    assert "User-Agent" in kwargs["headers"]


@patch("services.geocoding._session.get")
def test_search_blank_query_skips_network(mock_get):
    assert search_locations_sync("   ") == []
    mock_get.assert_not_called()


@patch("services.geocoding._session.get")
def test_search_bad_status_raises_network_error(mock_get):
    mock_get.return_value = _response([], status_code=503)

    with pytest.raises(LocationError) as excinfo:
        search_locations_sync("Pune")

    assert excinfo.value.kind == LocationErrorKind.NETWORK
    assert excinfo.value.message == "Nominatim error: 503"


@patch("services.geocoding._session.get")
def test_search_transport_error_raises_network_error(mock_get):
    mock_get.side_effect = requests.ConnectionError("offline")

    with pytest.raises(LocationError) as excinfo:
        search_locations_sync("Pune")

    assert excinfo.value.kind == LocationErrorKind.NETWORK
    assert excinfo.value.message == "Search failed. Check your connection."


@patch("services.geocoding._session.get")
def test_search_skips_malformed_items(mock_get):
    mock_get.return_value = _response([{"display_name": "No coordinates"}] + NOMINATIM_PUNE)

    results = search_locations_sync("Pune")
    assert len(results) == 2


@patch("services.geocoding._session.get")
def test_async_search_honours_cancelled_token(mock_get):
    token = CancelToken("search", 1)
    token.cancel()

    with pytest.raises(LocationError) as excinfo:
        asyncio.run(search_locations("Pune", 5, token))

    assert excinfo.value.is_cancellation
    mock_get.assert_not_called()


@patch("services.geocoding._session.get")
def test_async_search_runs_request(mock_get):
    mock_get.return_value = _response(NOMINATIM_PUNE[:1])

    results = asyncio.run(search_locations("Pune", 5, CancelToken("search", 1)))
    assert [s.display_name for s in results] == [NOMINATIM_PUNE[0]["display_name"]]
