from datetime import datetime, timezone
from urllib.parse import unquote

import httpx
import pytest

from fleetroute.config import Settings
from fleetroute.errors import ProviderError
from fleetroute.models.domain import RouteRequest, TrafficModel, Waypoint
from fleetroute.services.routing.providers import (
    GoogleMapsProvider,
    MapboxProvider,
    StraightLineProvider,
    select_provider,
)

ORIGIN = Waypoint(0.0, 0.0)
STOP = Waypoint(0.0, 0.1)
DESTINATION = Waypoint(0.0, 0.2)

GOOGLE_RESPONSE = {
    "status": "OK",
    "routes": [
        {
            "legs": [
                {
                    "distance": {"value": 12000},
                    "duration": {"value": 900},
                    "duration_in_traffic": {"value": 1000},
                    "steps": [
                        {"start_location": {"lat": 0.0001, "lng": 0.0001}},
                        {"start_location": {"lat": 0.0, "lng": 0.05}},
                    ],
                },
                {
                    "distance": {"value": 8000},
                    "duration": {"value": 600},
                    "steps": [{"start_location": {"lat": 0.0, "lng": 0.1}}],
                },
            ]
        }
    ],
}

MAPBOX_RESPONSE = {
    "code": "Ok",
    "routes": [
        {
            "distance": 22500.0,
            "duration": 1800.0,
            "geometry": {"coordinates": [[0.0001, 0.0], [0.05, 0.001], [0.1, 0.0], [0.1999, 0.0]]},
        }
    ],
}


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _json_handler(payload, captured=None, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        return httpx.Response(status_code, json=payload)

    return handler


def _request(**kwargs) -> RouteRequest:
    return RouteRequest(origin=ORIGIN, destination=DESTINATION, waypoints=(STOP,), vehicle_class="VAN", **kwargs)


def test_straight_line_fallback_shape() -> None:
    route = StraightLineProvider().compute_route(
        RouteRequest(origin=Waypoint(0, 0), destination=Waypoint(0, 1), vehicle_class="CAR")
    )
    assert route.path == (Waypoint(0, 0), Waypoint(0, 1))
    assert route.total_distance_km == pytest.approx(111.2, abs=0.05)
    assert route.estimated_duration_min == pytest.approx(133.4, abs=0.05)
    assert route.estimated_fuel_cost == 0.0
    assert route.estimated_toll_cost == 0.0
    assert route.traffic_conditions == "estimated"
    assert route.waypoints == ()


def test_straight_line_keeps_waypoint_order_and_ignores_detours() -> None:
    far_stop = Waypoint(1.0, 0.1)
    request = RouteRequest(origin=ORIGIN, destination=DESTINATION, waypoints=(far_stop, STOP))
    route = StraightLineProvider().compute_route(request)
    assert route.path == (ORIGIN, far_stop, STOP, DESTINATION)
    assert len(route.path) == len(request.waypoints) + 2
    assert route.total_distance_km == pytest.approx(StraightLineProvider().compute_route(
        RouteRequest(origin=ORIGIN, destination=DESTINATION)
    ).total_distance_km)


def test_straight_line_is_deterministic() -> None:
    provider = StraightLineProvider()
    assert provider.compute_route(_request()) == provider.compute_route(_request())


def test_google_parses_legs_and_steps() -> None:
    captured: list[httpx.Request] = []
    provider = GoogleMapsProvider("secret", client=_client(_json_handler(GOOGLE_RESPONSE, captured)))

    route = provider.compute_route(_request())

    assert route.path == (ORIGIN, Waypoint(0.0, 0.05), Waypoint(0.0, 0.1), DESTINATION)
    assert route.total_distance_km == pytest.approx(20.0)
    assert route.estimated_duration_min == pytest.approx(25.0)
    assert route.traffic_conditions == "real-time"
    assert route.estimated_fuel_cost == 0.0
    assert route.waypoints == (STOP,)
    assert provider.requests_made == 1

    params = captured[0].url.params
    assert params["origin"] == "0.0,0.0"
    assert params["destination"] == "0.0,0.2"
    assert params["waypoints"] == "optimize:true|0.0,0.1"
    assert params["traffic_model"] == "best_guess"
    assert params["departure_time"] == "now"
    assert params["key"] == "secret"


def test_google_passes_traffic_model_and_departure_time() -> None:
    captured: list[httpx.Request] = []
    provider = GoogleMapsProvider("secret", client=_client(_json_handler(GOOGLE_RESPONSE, captured)))
    departure = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)

    provider.compute_route(
        RouteRequest(
            origin=ORIGIN,
            destination=DESTINATION,
            traffic_model=TrafficModel.PESSIMISTIC,
            departure_time=departure,
        )
    )

    params = captured[0].url.params
    assert params["traffic_model"] == "pessimistic"
    assert params["departure_time"] == str(int(departure.timestamp()))
    assert "waypoints" not in params


def test_google_without_live_traffic_is_estimated() -> None:
    payload = {"status": "OK", "routes": [{"legs": [dict(GOOGLE_RESPONSE["routes"][0]["legs"][1])]}]}
    provider = GoogleMapsProvider("secret", client=_client(_json_handler(payload)))
    assert provider.compute_route(_request()).traffic_conditions == "estimated"


def test_google_error_status_raises() -> None:
    payload = {"status": "OVER_QUERY_LIMIT", "error_message": "quota exceeded", "routes": []}
    provider = GoogleMapsProvider("secret", client=_client(_json_handler(payload)))
    with pytest.raises(ProviderError, match="quota exceeded"):
        provider.compute_route(_request())


def test_google_malformed_payload_raises() -> None:
    provider = GoogleMapsProvider("secret", client=_client(_json_handler({"status": "OK", "routes": []})))
    with pytest.raises(ProviderError):
        provider.compute_route(_request())


def test_http_error_status_raises() -> None:
    provider = GoogleMapsProvider("secret", client=_client(_json_handler({}, status_code=503)))
    with pytest.raises(ProviderError, match="HTTP 503"):
        provider.compute_route(_request())


def test_timeout_raises_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    provider = MapboxProvider("token", client=_client(handler), timeout=0.5)
    with pytest.raises(ProviderError, match="timed out"):
        provider.compute_route(_request())


def test_invalid_json_raises_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>not json</html>")

    provider = MapboxProvider("token", client=_client(handler))
    with pytest.raises(ProviderError):
        provider.compute_route(_request())


def test_mapbox_parses_geojson_geometry() -> None:
    captured: list[httpx.Request] = []
    provider = MapboxProvider("token", client=_client(_json_handler(MAPBOX_RESPONSE, captured)))

    route = provider.compute_route(_request())

    assert route.path == (ORIGIN, Waypoint(0.001, 0.05), Waypoint(0.0, 0.1), DESTINATION)
    assert route.total_distance_km == pytest.approx(22.5)
    assert route.estimated_duration_min == pytest.approx(30.0)
    assert route.traffic_conditions == "estimated"

    request = captured[0]
    assert unquote(request.url.path).endswith("/0.0,0.0;0.1,0.0;0.2,0.0")
    assert request.url.params["access_token"] == "token"
    assert request.url.params["geometries"] == "geojson"


def test_mapbox_error_code_raises() -> None:
    payload = {"code": "NoRoute", "message": "No route found"}
    provider = MapboxProvider("token", client=_client(_json_handler(payload)))
    with pytest.raises(ProviderError, match="No route found"):
        provider.compute_route(_request())


def test_request_counters_are_per_instance() -> None:
    first = GoogleMapsProvider("secret", client=_client(_json_handler(GOOGLE_RESPONSE)))
    second = GoogleMapsProvider("secret", client=_client(_json_handler(GOOGLE_RESPONSE)))
    first.compute_route(_request())
    first.compute_route(_request())
    assert first.requests_made == 2
    assert second.requests_made == 0


def test_missing_credentials_are_rejected() -> None:
    with pytest.raises(ValueError):
        GoogleMapsProvider("", client=_client(_json_handler({})))
    with pytest.raises(ValueError):
        MapboxProvider("", client=_client(_json_handler({})))


def test_select_provider_prefers_google() -> None:
    config = Settings(_env_file=None, google_maps_api_key="g-key", mapbox_access_token="m-token")
    with select_provider(config) as provider:
        assert isinstance(provider, GoogleMapsProvider)


def test_select_provider_uses_mapbox_as_secondary() -> None:
    config = Settings(_env_file=None, google_maps_api_key=None, mapbox_access_token="m-token")
    with select_provider(config) as provider:
        assert isinstance(provider, MapboxProvider)


def test_select_provider_falls_back_without_credentials() -> None:
    config = Settings(_env_file=None, google_maps_api_key="  ", mapbox_access_token=None, fallback_speed_kmh=40)
    provider = select_provider(config)
    assert isinstance(provider, StraightLineProvider)
    assert provider.average_speed_kmh == 40
