"""Route providers: external directions services and the straight-line fallback."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

import httpx

from ...config import Settings, settings
from ...errors import ProviderError
from ...models.domain import OptimizedRoute, RouteRequest, TrafficModel, Waypoint
from ..geospatial import distance_km

logger = logging.getLogger(__name__)


def _anchor_path(request: RouteRequest, interior: Sequence[Waypoint]) -> tuple[Waypoint, ...]:
    """Path that starts at the requested origin and ends at the requested destination.

    Providers snap the endpoints to the road network; the snapped copies are
    replaced by the requested points.
    """
    return (request.origin, *interior, request.destination)


class RouteProvider(ABC):
    """Contract for path-finding sources."""

    name: str = "provider"

    @abstractmethod
    def compute_route(self, request: RouteRequest) -> OptimizedRoute:
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the provider."""

    def __enter__(self) -> "RouteProvider":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class StraightLineProvider(RouteProvider):
    """Great-circle fallback used when no external provider is configured.

    The distance only covers origin to destination; detours through the
    intermediate waypoints are not counted.
    """

    name = "straight_line"

    def __init__(self, average_speed_kmh: float | None = None) -> None:
        self.average_speed_kmh = average_speed_kmh or settings.fallback_speed_kmh

    def compute_route(self, request: RouteRequest) -> OptimizedRoute:
        distance = distance_km(request.origin, request.destination)
        duration = (distance / self.average_speed_kmh) * 60.0
        return OptimizedRoute(
            path=(request.origin, *request.waypoints, request.destination),
            total_distance_km=distance,
            estimated_duration_min=duration,
            estimated_fuel_cost=0.0,
            estimated_toll_cost=0.0,
            traffic_conditions="estimated",
            waypoints=tuple(request.waypoints),
        )


class HttpRouteProvider(RouteProvider):
    """Shared HTTP plumbing for directions APIs.

    Each instance owns its HTTP client and request counter; nothing is shared
    between providers.
    """

    def __init__(self, *, timeout: float | None = None, client: httpx.Client | None = None) -> None:
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self._client = client or httpx.Client(timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)))
        self._owns_client = client is None
        self.requests_made = 0

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _get_json(self, url: str, params: dict[str, Any]) -> dict:
        self.requests_made += 1
        try:
            response = self._client.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as exc:
            logger.warning(f"{self.name} request timed out after {self.timeout}s: {exc}")
            raise ProviderError(self.name, f"request timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.warning(f"{self.name} returned HTTP {status_code}")
            raise ProviderError(self.name, f"HTTP {status_code}") from exc
        except httpx.HTTPError as exc:
            logger.warning(f"{self.name} request failed: {exc}")
            raise ProviderError(self.name, f"request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(self.name, "response is not valid JSON") from exc

    def compute_route(self, request: RouteRequest) -> OptimizedRoute:
        data = self._fetch(request)
        try:
            return self._parse(request, data)
        except ProviderError:
            raise
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            raise ProviderError(self.name, f"unexpected response structure: {exc}") from exc

    @abstractmethod
    def _fetch(self, request: RouteRequest) -> dict:
        raise NotImplementedError

    @abstractmethod
    def _parse(self, request: RouteRequest, data: dict) -> OptimizedRoute:
        raise NotImplementedError


class GoogleMapsProvider(HttpRouteProvider):
    """Google Maps Directions API (primary provider)."""

    name = "google_maps"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.base_url = base_url or settings.google_directions_url
        super().__init__(timeout=timeout, client=client)

    def _params(self, request: RouteRequest) -> dict[str, Any]:
        params: dict[str, Any] = {
            "origin": f"{request.origin.latitude},{request.origin.longitude}",
            "destination": f"{request.destination.latitude},{request.destination.longitude}",
            "traffic_model": (request.traffic_model or TrafficModel.BEST_GUESS).value,
            "departure_time": int(request.departure_time.timestamp()) if request.departure_time else "now",
            "key": self.api_key,
        }
        if request.waypoints:
            stops = "|".join(f"{wp.latitude},{wp.longitude}" for wp in request.waypoints)
            params["waypoints"] = f"optimize:true|{stops}"
        return params

    def _fetch(self, request: RouteRequest) -> dict:
        return self._get_json(self.base_url, self._params(request))

    def _parse(self, request: RouteRequest, data: dict) -> OptimizedRoute:
        status = data.get("status")
        if status != "OK":
            message = data.get("error_message") or status or "unknown error"
            raise ProviderError(self.name, f"directions request failed: {message}")

        route = data["routes"][0]
        legs = route["legs"]
        step_starts = [
            Waypoint(latitude=step["start_location"]["lat"], longitude=step["start_location"]["lng"])
            for leg in legs
            for step in leg["steps"]
        ]
        total_meters = sum(leg["distance"]["value"] for leg in legs)
        total_seconds = sum(leg["duration"]["value"] for leg in legs)
        live = bool(legs) and "duration_in_traffic" in legs[0]

        return OptimizedRoute(
            path=_anchor_path(request, step_starts[1:]),
            total_distance_km=total_meters / 1000.0,
            estimated_duration_min=total_seconds / 60.0,
            estimated_fuel_cost=0.0,
            estimated_toll_cost=0.0,
            traffic_conditions="real-time" if live else "estimated",
            waypoints=tuple(request.waypoints),
        )


class MapboxProvider(HttpRouteProvider):
    """Mapbox Directions API (secondary provider)."""

    name = "mapbox"

    def __init__(
        self,
        access_token: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.access_token = access_token or settings.mapbox_access_token
        if not self.access_token:
            raise ValueError("Mapbox access token is not configured.")
        self.base_url = (base_url or settings.mapbox_directions_url).rstrip("/")
        super().__init__(timeout=timeout, client=client)

    def _fetch(self, request: RouteRequest) -> dict:
        # Mapbox expects "lon,lat;lon,lat;..."
        points = (request.origin, *request.waypoints, request.destination)
        coordinate_str = ";".join(f"{wp.longitude},{wp.latitude}" for wp in points)
        params = {
            "access_token": self.access_token,
            "overview": "full",
            "geometries": "geojson",
            "steps": "true",
        }
        return self._get_json(f"{self.base_url}/{coordinate_str}", params)

    def _parse(self, request: RouteRequest, data: dict) -> OptimizedRoute:
        if data.get("code") != "Ok":
            message = data.get("message") or data.get("code") or "unknown error"
            raise ProviderError(self.name, f"directions request failed: {message}")

        route = data["routes"][0]
        coordinates = route["geometry"]["coordinates"]
        interior = [Waypoint(latitude=lat, longitude=lon) for lon, lat in coordinates[1:-1]]

        return OptimizedRoute(
            path=_anchor_path(request, interior),
            total_distance_km=route["distance"] / 1000.0,
            estimated_duration_min=route["duration"] / 60.0,
            estimated_fuel_cost=0.0,
            estimated_toll_cost=0.0,
            traffic_conditions="estimated",
            waypoints=tuple(request.waypoints),
        )


def select_provider(config: Settings | None = None) -> RouteProvider:
    """Pick the provider from configured credentials: Google, then Mapbox, then straight line."""

    config = config or settings
    if config.google_maps_api_key:
        logger.info("Using Google Maps directions provider")
        return GoogleMapsProvider(
            config.google_maps_api_key,
            base_url=config.google_directions_url,
            timeout=config.provider_timeout_seconds,
        )
    if config.mapbox_access_token:
        logger.info("Using Mapbox directions provider")
        return MapboxProvider(
            config.mapbox_access_token,
            base_url=config.mapbox_directions_url,
            timeout=config.provider_timeout_seconds,
        )
    logger.info("No mapping credentials configured; using straight-line routing")
    return StraightLineProvider(config.fallback_speed_kmh)
