from unittest import mock

import pytest
import requests

from app.utils import geo


@pytest.fixture
def maps_key(monkeypatch):
    monkeypatch.setattr(geo.settings, "GOOGLE_MAPS_API_KEY", "test-key")


def _response(payload):
    response = mock.Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def test_geo_endpoints_need_api_key(client, monkeypatch):
    monkeypatch.setattr(geo.settings, "GOOGLE_MAPS_API_KEY", "")
    assert client.get("/api/v1/geo/geocode", params={"address": "Rayong"}).status_code == 503
    assert client.get("/api/v1/geo/distance", params={"lat": 13.0, "lng": 101.0}).status_code == 503


def test_geocode_returns_first_result(client, maps_key):
    payload = {
        "status": "OK",
        "results": [{"geometry": {"location": {"lat": 12.68, "lng": 101.27}}, "formatted_address": "Rayong"}],
    }
    with mock.patch.object(geo.requests, "get", return_value=_response(payload)) as get:
        response = client.get("/api/v1/geo/geocode", params={"address": "Rayong"})
    assert response.status_code == 200
    assert response.json() == {"lat": 12.68, "lng": 101.27, "formatted_address": "Rayong"}
    params = get.call_args.kwargs["params"]
    assert params["key"] == "test-key"
    assert params["region"] == "th"


def test_geocode_zero_results_is_404(client, maps_key):
    with mock.patch.object(geo.requests, "get", return_value=_response({"status": "ZERO_RESULTS", "results": []})):
        assert client.get("/api/v1/geo/geocode", params={"address": "nowhere"}).status_code == 404


def test_distance_in_km(client, maps_key):
    payload = {
        "status": "OK",
        "rows": [{"elements": [{"status": "OK", "distance": {"value": 18254}, "duration": {"value": 1500}}]}],
    }
    with mock.patch.object(geo.requests, "get", return_value=_response(payload)):
        body = client.get("/api/v1/geo/distance", params={"lat": 13.6, "lng": 100.3}).json()
    assert body["distance_km"] == 18.25
    assert body["duration_seconds"] == 1500
    assert body["destination"] == {"lat": 13.6, "lng": 100.3}


def test_distance_lookup_failure_is_502(client, maps_key):
    with mock.patch.object(geo.requests, "get", side_effect=requests.exceptions.Timeout("slow")):
        assert client.get("/api/v1/geo/distance", params={"lat": 13.6, "lng": 100.3}).status_code == 502


def test_blank_address_is_not_sent(maps_key):
    with mock.patch.object(geo.requests, "get") as get:
        assert geo.geocode_address("   ") is None
    get.assert_not_called()


def test_result_without_geometry_is_a_miss(maps_key):
    payload = {"status": "OK", "results": [{"formatted_address": "no geometry"}]}
    with mock.patch.object(geo.requests, "get", return_value=_response(payload)):
        assert geo.geocode_address("Somewhere") is None
