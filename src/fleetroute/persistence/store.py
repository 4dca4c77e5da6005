"""Record store and live-location feed interfaces with an in-memory implementation."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional

from ..errors import DuplicateRoute
from ..models.domain import PersistedRoute, RouteStatus, TrackingPoint, Transporter


class RecordStore(ABC):
    """Create/read/update access to routes and transporters."""

    @abstractmethod
    def add_route(self, route: PersistedRoute) -> PersistedRoute:
        raise NotImplementedError

    @abstractmethod
    def get_route(self, route_id: str) -> Optional[PersistedRoute]:
        raise NotImplementedError

    @abstractmethod
    def get_route_for_order(self, order_id: str) -> Optional[PersistedRoute]:
        raise NotImplementedError

    @abstractmethod
    def save_route(self, route: PersistedRoute) -> PersistedRoute:
        raise NotImplementedError

    @abstractmethod
    def list_routes(
        self,
        transporter_id: Optional[str] = None,
        status: Optional[RouteStatus] = None,
    ) -> list[PersistedRoute]:
        raise NotImplementedError

    @abstractmethod
    def get_transporter(self, transporter_id: str) -> Optional[Transporter]:
        raise NotImplementedError

    @abstractmethod
    def list_transporters(self, available_only: bool = False) -> list[Transporter]:
        raise NotImplementedError

    @abstractmethod
    def save_transporter(self, transporter: Transporter) -> Transporter:
        raise NotImplementedError


class LocationFeed(ABC):
    """Most recent tracked positions of transporters."""

    @abstractmethod
    def latest_location(self, transporter_id: str, order_id: Optional[str] = None) -> Optional[TrackingPoint]:
        raise NotImplementedError

    @abstractmethod
    def record_location(self, point: TrackingPoint) -> TrackingPoint:
        raise NotImplementedError


class InMemoryRecordStore(RecordStore, LocationFeed):
    """Process-local store used for development and tests.

    Records are copied on the way in and out so callers only change stored
    state through ``save_*``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._routes: dict[str, PersistedRoute] = {}
        self._route_by_order: dict[str, str] = {}
        self._transporters: dict[str, Transporter] = {}
        self._tracking: list[TrackingPoint] = []

    def add_route(self, route: PersistedRoute) -> PersistedRoute:
        with self._lock:
            if route.order_id in self._route_by_order:
                raise DuplicateRoute(f"Order '{route.order_id}' already has a route.")
            self._routes[route.id] = replace(route)
            self._route_by_order[route.order_id] = route.id
        return replace(route)

    def get_route(self, route_id: str) -> Optional[PersistedRoute]:
        with self._lock:
            route = self._routes.get(route_id)
            return replace(route) if route else None

    def get_route_for_order(self, order_id: str) -> Optional[PersistedRoute]:
        with self._lock:
            route_id = self._route_by_order.get(order_id)
            return replace(self._routes[route_id]) if route_id else None

    def save_route(self, route: PersistedRoute) -> PersistedRoute:
        with self._lock:
            self._routes[route.id] = replace(route)
        return replace(route)

    def list_routes(
        self,
        transporter_id: Optional[str] = None,
        status: Optional[RouteStatus] = None,
    ) -> list[PersistedRoute]:
        with self._lock:
            return [
                replace(route)
                for route in self._routes.values()
                if (transporter_id is None or route.transporter_id == transporter_id)
                and (status is None or route.status == status)
            ]

    def get_transporter(self, transporter_id: str) -> Optional[Transporter]:
        with self._lock:
            transporter = self._transporters.get(transporter_id)
            return replace(transporter) if transporter else None

    def list_transporters(self, available_only: bool = False) -> list[Transporter]:
        with self._lock:
            return [
                replace(transporter)
                for transporter in self._transporters.values()
                if transporter.is_available or not available_only
            ]

    def save_transporter(self, transporter: Transporter) -> Transporter:
        with self._lock:
            self._transporters[transporter.id] = replace(transporter)
        return replace(transporter)

    def latest_location(self, transporter_id: str, order_id: Optional[str] = None) -> Optional[TrackingPoint]:
        with self._lock:
            candidates = [
                point
                for point in self._tracking
                if point.transporter_id == transporter_id and (order_id is None or point.order_id == order_id)
            ]
        if not candidates:
            return None
        # equal timestamps resolve to the most recently recorded sample
        latest = candidates[0]
        for point in candidates[1:]:
            if point.timestamp >= latest.timestamp:
                latest = point
        return latest

    def record_location(self, point: TrackingPoint) -> TrackingPoint:
        with self._lock:
            self._tracking.append(point)
        return point
