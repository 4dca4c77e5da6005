"""Routing orchestration service.

``RouteEngine`` ties together the route provider, cost model, tour planner and
traffic signal, and keeps the persisted route records for orders in step with
what the vehicle actually does.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ...config import settings
from ...errors import (
    DuplicateRoute,
    InvalidTransition,
    LocationUnavailable,
    NotFound,
    ProviderError,
    RouteAlreadyComplete,
    RouteClosed,
    RouteComputationError,
)
from ...models.domain import (
    NearbyTransporter,
    OptimizedRoute,
    OrderEstimate,
    PersistedRoute,
    RouteProgress,
    RouteRequest,
    RouteStatus,
    TrackingPoint,
    TrafficCondition,
    Transporter,
    VehicleClassLike,
    Waypoint,
    utcnow,
)
from ...persistence.store import LocationFeed, RecordStore
from ..costs import estimate_order_cost, fuel_cost, toll_cost
from ..geospatial import closest_point_index, distance_km
from .providers import RouteProvider, select_provider
from .tour import NearestNeighborTourPlanner, TourPlanner
from .traffic import RandomTrafficSignal, TrafficSignal

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[RouteStatus, frozenset[RouteStatus]] = {
    RouteStatus.PLANNED: frozenset({RouteStatus.IN_PROGRESS, RouteStatus.CANCELLED}),
    RouteStatus.IN_PROGRESS: frozenset({RouteStatus.COMPLETED, RouteStatus.CANCELLED}),
    RouteStatus.COMPLETED: frozenset(),
    RouteStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({RouteStatus.COMPLETED, RouteStatus.CANCELLED})


def can_transition(current: RouteStatus, requested: RouteStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def remaining_path(path: Sequence[Waypoint], current_location: Waypoint) -> list[Waypoint]:
    """Path points strictly after the point closest to ``current_location``."""
    if not path:
        return []
    return list(path[closest_point_index(path, current_location) + 1 :])


def progress_percent(path: Sequence[Waypoint], current_location: Waypoint) -> int:
    """Share of the path already covered, from the nearest path point. Halves round up."""
    if len(path) == 1:
        return 100
    index = closest_point_index(path, current_location)
    return math.floor(index / (len(path) - 1) * 100 + 0.5)


class RouteEngine:
    def __init__(
        self,
        store: RecordStore,
        *,
        location_feed: LocationFeed | None = None,
        provider: RouteProvider | None = None,
        traffic_signal: TrafficSignal | None = None,
        tour_planner: TourPlanner | None = None,
    ) -> None:
        if location_feed is None:
            if not isinstance(store, LocationFeed):
                raise ValueError("A location feed is required when the store does not track locations.")
            location_feed = store
        self.store = store
        self.location_feed = location_feed
        self.provider = provider or select_provider()
        self.traffic_signal = traffic_signal or RandomTrafficSignal()
        self.tour_planner = tour_planner or NearestNeighborTourPlanner()

    def calculate_optimal_route(self, request: RouteRequest) -> OptimizedRoute:
        logger.info(
            f"Calculating optimal route from ({request.origin.latitude}, {request.origin.longitude}) "
            f"to ({request.destination.latitude}, {request.destination.longitude}) "
            f"via {len(request.waypoints)} waypoint(s) using {self.provider.name}"
        )
        try:
            route = self.provider.compute_route(request)
        except ProviderError as exc:
            logger.error(f"Route calculation failed: {exc}")
            raise RouteComputationError(f"Failed to calculate optimal route: {exc}") from exc

        route = replace(
            route,
            estimated_fuel_cost=fuel_cost(route.total_distance_km, request.vehicle_class),
            estimated_toll_cost=toll_cost(route.path),
        )
        logger.info(
            f"Route calculation completed: {route.total_distance_km:.2f} km, "
            f"{route.estimated_duration_min:.1f} min, "
            f"cost {route.estimated_fuel_cost + route.estimated_toll_cost:.2f}"
        )
        return route

    def create_route(self, order_id: str, transporter_id: str, request: RouteRequest) -> PersistedRoute:
        if self.store.get_route_for_order(order_id) is not None:
            raise DuplicateRoute(f"Order '{order_id}' already has a route.")

        optimized = self.calculate_optimal_route(request)
        route = PersistedRoute(
            id=str(uuid.uuid4()),
            order_id=order_id,
            transporter_id=transporter_id,
            vehicle_class=request.vehicle_class,
            path=optimized.path,
            total_distance_km=optimized.total_distance_km,
            estimated_duration_min=optimized.estimated_duration_min,
            estimated_fuel_cost=optimized.estimated_fuel_cost,
            estimated_toll_cost=optimized.estimated_toll_cost,
            traffic_conditions=optimized.traffic_conditions,
            waypoints=optimized.waypoints,
            status=RouteStatus.PLANNED,
        )
        # the store re-checks the order so a concurrent create still fails
        saved = self.store.add_route(route)
        logger.info(f"Route created: route_id={saved.id}, order_id={order_id}, transporter_id={transporter_id}")
        return saved

    def get_route(self, route_id: str) -> PersistedRoute:
        route = self.store.get_route(route_id)
        if route is None:
            raise NotFound("Route", route_id)
        return route

    def update_status(
        self,
        route_id: str,
        new_status: RouteStatus,
        actual_duration_min: Optional[float] = None,
    ) -> PersistedRoute:
        new_status = RouteStatus(new_status)
        if actual_duration_min is not None and actual_duration_min <= 0:
            raise ValueError("Actual duration must be positive.")

        route = self.get_route(route_id)
        if not can_transition(route.status, new_status):
            raise InvalidTransition(route.status.value, new_status.value)

        route.status = new_status
        if actual_duration_min is not None:
            route.actual_duration_min = actual_duration_min
        route.updated_at = utcnow()
        saved = self.store.save_route(route)
        logger.info(f"Route status updated: route_id={route_id}, status={new_status.value}")
        return saved

    def optimize_multi_stop(self, transporter_id: str, stops: Sequence[Waypoint]) -> OptimizedRoute:
        if len(stops) < 2:
            raise ValueError("At least two delivery points are required.")
        logger.info(f"Optimizing {len(stops)} deliveries for transporter {transporter_id}")

        transporter = self.store.get_transporter(transporter_id)
        if transporter is None:
            raise NotFound("Transporter", transporter_id)
        if transporter.current_location is None:
            raise LocationUnavailable(f"Location of transporter '{transporter_id}' is not available.")

        origin = transporter.current_location
        ordered = self.tour_planner.order_stops(origin, stops)
        request = RouteRequest(
            origin=origin,
            destination=ordered[-1],
            waypoints=tuple(ordered[:-1]),
            vehicle_class=transporter.vehicle_class,
        )
        return self.calculate_optimal_route(request)

    def recalculate(self, route_id: str, current_location: Waypoint) -> OptimizedRoute:
        route = self.get_route(route_id)
        if route.status in TERMINAL_STATUSES:
            raise RouteClosed(f"Route '{route_id}' is {route.status.value} and cannot be recalculated.")
        remaining = remaining_path(route.path, current_location)
        if not remaining:
            raise RouteAlreadyComplete(f"Route '{route_id}' has no waypoints left after the current location.")

        request = RouteRequest(
            origin=current_location,
            destination=remaining[-1],
            waypoints=tuple(remaining[:-1]),
            vehicle_class=route.vehicle_class,
        )
        new_route = self.calculate_optimal_route(request)

        route.apply(new_route)
        self.store.save_route(route)
        logger.info(f"Route recalculated: route_id={route_id}, remaining_points={len(remaining)}")
        return new_route

    def progress(self, route_id: str) -> RouteProgress:
        route = self.get_route(route_id)
        tracked = self.location_feed.latest_location(route.transporter_id, route.order_id)

        percent = 0
        if tracked is not None and route.path:
            percent = progress_percent(route.path, tracked.location)

        return RouteProgress(
            route=route,
            current_location=tracked,
            progress_percent=percent,
            estimated_time_remaining_min=route.estimated_duration_min * (1 - percent / 100),
        )

    def traffic_update(self, route_id: str) -> list[TrafficCondition]:
        route = self.get_route(route_id)
        return self.traffic_signal.sample(route.path)

    def register_transporter(
        self,
        transporter_id: str,
        vehicle_class: VehicleClassLike,
        location: Optional[Waypoint] = None,
        is_available: Optional[bool] = None,
    ) -> Transporter:
        existing = self.store.get_transporter(transporter_id)
        transporter = existing or Transporter(id=transporter_id, vehicle_class=vehicle_class)
        transporter.vehicle_class = vehicle_class
        if location is not None:
            transporter.current_location = location
        if is_available is not None:
            transporter.is_available = is_available
        transporter.updated_at = utcnow()
        return self.store.save_transporter(transporter)

    def available_transporters(
        self,
        near: Optional[Waypoint] = None,
        radius_km: Optional[float] = None,
        vehicle_class: Optional[VehicleClassLike] = None,
    ) -> list[NearbyTransporter]:
        """Available transporters, optionally limited to those within ``radius_km`` of ``near``.

        With a reference point, transporters without a known location are left out
        and the rest are ordered nearest first. The radius is inclusive.
        """
        radius = settings.nearby_radius_km if radius_km is None else radius_km
        if radius <= 0:
            raise ValueError("Search radius must be positive.")

        matches: list[NearbyTransporter] = []
        for transporter in self.store.list_transporters(available_only=True):
            if vehicle_class is not None and transporter.vehicle_class != vehicle_class:
                continue
            if near is None:
                matches.append(NearbyTransporter(transporter))
                continue
            if transporter.current_location is None:
                continue
            distance = distance_km(near, transporter.current_location)
            if distance <= radius:
                matches.append(NearbyTransporter(transporter, distance))

        if near is not None:
            matches.sort(key=lambda match: match.distance_km)
        return matches

    def transporter_routes(
        self,
        transporter_id: str,
        status: Optional[RouteStatus] = None,
    ) -> list[PersistedRoute]:
        routes = self.store.list_routes(transporter_id=transporter_id, status=status)
        return sorted(routes, key=lambda route: route.created_at, reverse=True)

    def estimate_order_cost(
        self,
        pickup: Waypoint,
        delivery: Waypoint,
        weight_kg: float,
        pickup_time: datetime,
    ) -> OrderEstimate:
        estimate = estimate_order_cost(pickup, delivery, weight_kg, pickup_time)
        logger.info(
            f"Order estimate: {estimate.distance_km:.2f} km, {weight_kg} kg, "
            f"peak={estimate.peak_time}, cost {estimate.estimated_cost:.2f}"
        )
        return estimate

    def record_location(
        self,
        transporter_id: str,
        location: Waypoint,
        order_id: Optional[str] = None,
    ) -> TrackingPoint:
        transporter = self.store.get_transporter(transporter_id)
        if transporter is None:
            raise NotFound("Transporter", transporter_id)

        point = TrackingPoint(transporter_id=transporter_id, order_id=order_id, location=location)
        transporter.current_location = location
        transporter.updated_at = point.timestamp
        self.store.save_transporter(transporter)
        self.location_feed.record_location(point)
        logger.debug(f"Transporter location updated: transporter_id={transporter_id}, location={location.as_tuple()}")
        return point
