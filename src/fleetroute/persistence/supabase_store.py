"""Supabase-backed record store and location feed."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from postgrest.exceptions import APIError
from pydantic import TypeAdapter

from ..errors import DuplicateRoute
from ..models.domain import (
    PersistedRoute,
    RouteStatus,
    TrackingPoint,
    Transporter,
    VehicleClass,
    VehicleClassLike,
    Waypoint,
)
from .store import LocationFeed, RecordStore

logger = logging.getLogger(__name__)

ROUTES_TABLE = "routes"
TRANSPORTERS_TABLE = "transporters"
TRACKING_TABLE = "tracking_data"

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"

_timestamp_adapter = TypeAdapter(datetime)


def waypoint_to_dict(waypoint: Waypoint) -> dict[str, Any]:
    data: dict[str, Any] = {"latitude": waypoint.latitude, "longitude": waypoint.longitude}
    if waypoint.address is not None:
        data["address"] = waypoint.address
    if waypoint.estimated_arrival is not None:
        data["estimated_arrival"] = waypoint.estimated_arrival.isoformat()
    return data


def waypoint_from_dict(data: dict[str, Any]) -> Waypoint:
    arrival = data.get("estimated_arrival")
    return Waypoint(
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        address=data.get("address"),
        estimated_arrival=_parse_timestamp(arrival) if arrival else None,
    )


def _parse_timestamp(value: Any) -> datetime:
    """Parse a PostgREST timestamp, which may carry fewer than six fractional digits."""
    if isinstance(value, datetime):
        return value
    return _timestamp_adapter.validate_python(value)


def _vehicle_class(value: str) -> VehicleClassLike:
    try:
        return VehicleClass(value)
    except ValueError:
        return value


def _vehicle_value(value: VehicleClassLike) -> str:
    return str(getattr(value, "value", value))


def route_to_row(route: PersistedRoute) -> dict[str, Any]:
    return {
        "id": route.id,
        "order_id": route.order_id,
        "transporter_id": route.transporter_id,
        "vehicle_class": _vehicle_value(route.vehicle_class),
        "status": route.status.value,
        "optimized_path": [waypoint_to_dict(point) for point in route.path],
        "waypoints": [waypoint_to_dict(point) for point in route.waypoints],
        "distance_km": route.total_distance_km,
        "estimated_duration_min": route.estimated_duration_min,
        "fuel_cost": route.estimated_fuel_cost,
        "toll_cost": route.estimated_toll_cost,
        "traffic_conditions": route.traffic_conditions,
        "actual_duration_min": route.actual_duration_min,
        "created_at": route.created_at.isoformat(),
        "updated_at": route.updated_at.isoformat(),
    }


def route_from_row(row: dict[str, Any]) -> PersistedRoute:
    return PersistedRoute(
        id=str(row["id"]),
        order_id=str(row["order_id"]),
        transporter_id=str(row["transporter_id"]),
        vehicle_class=_vehicle_class(row["vehicle_class"]),
        path=tuple(waypoint_from_dict(point) for point in row.get("optimized_path") or []),
        total_distance_km=float(row["distance_km"]),
        estimated_duration_min=float(row["estimated_duration_min"]),
        estimated_fuel_cost=float(row.get("fuel_cost") or 0.0),
        estimated_toll_cost=float(row.get("toll_cost") or 0.0),
        traffic_conditions=row.get("traffic_conditions") or "estimated",
        waypoints=tuple(waypoint_from_dict(point) for point in row.get("waypoints") or []),
        status=RouteStatus(row["status"]),
        actual_duration_min=row.get("actual_duration_min"),
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"]),
    )


def transporter_from_row(row: dict[str, Any]) -> Transporter:
    location = row.get("current_location")
    transporter = Transporter(
        id=str(row["id"]),
        vehicle_class=_vehicle_class(row["vehicle_type"]),
        current_location=waypoint_from_dict(location) if location else None,
        is_available=bool(row.get("is_available", True)),
    )
    if row.get("updated_at"):
        transporter.updated_at = _parse_timestamp(row["updated_at"])
    return transporter


class SupabaseRecordStore(RecordStore, LocationFeed):
    """Record store over the ``routes``, ``transporters`` and ``tracking_data`` tables."""

    def __init__(self, client) -> None:
        self.client = client

    def _first(self, response) -> Optional[dict[str, Any]]:
        rows = response.data or []
        return rows[0] if rows else None

    def add_route(self, route: PersistedRoute) -> PersistedRoute:
        if self.get_route_for_order(route.order_id) is not None:
            raise DuplicateRoute(f"Order '{route.order_id}' already has a route.")
        try:
            self.client.table(ROUTES_TABLE).insert(route_to_row(route)).execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise DuplicateRoute(f"Order '{route.order_id}' already has a route.") from exc
            raise
        logger.info(f"Inserted route {route.id} for order {route.order_id}")
        return route

    def get_route(self, route_id: str) -> Optional[PersistedRoute]:
        response = self.client.table(ROUTES_TABLE).select("*").eq("id", route_id).limit(1).execute()
        row = self._first(response)
        return route_from_row(row) if row else None

    def get_route_for_order(self, order_id: str) -> Optional[PersistedRoute]:
        response = self.client.table(ROUTES_TABLE).select("*").eq("order_id", order_id).limit(1).execute()
        row = self._first(response)
        return route_from_row(row) if row else None

    def save_route(self, route: PersistedRoute) -> PersistedRoute:
        row = route_to_row(route)
        row.pop("id")
        row.pop("created_at")
        self.client.table(ROUTES_TABLE).update(row).eq("id", route.id).execute()
        return route

    def list_routes(
        self,
        transporter_id: Optional[str] = None,
        status: Optional[RouteStatus] = None,
    ) -> list[PersistedRoute]:
        query = self.client.table(ROUTES_TABLE).select("*")
        if transporter_id:
            query = query.eq("transporter_id", transporter_id)
        if status:
            query = query.eq("status", status.value)
        response = query.order("created_at", desc=True).execute()
        return [route_from_row(row) for row in response.data or []]

    def get_transporter(self, transporter_id: str) -> Optional[Transporter]:
        response = self.client.table(TRANSPORTERS_TABLE).select("*").eq("id", transporter_id).limit(1).execute()
        row = self._first(response)
        return transporter_from_row(row) if row else None

    def list_transporters(self, available_only: bool = False) -> list[Transporter]:
        query = self.client.table(TRANSPORTERS_TABLE).select("*")
        if available_only:
            query = query.eq("is_available", True)
        response = query.execute()
        return [transporter_from_row(row) for row in response.data or []]

    def save_transporter(self, transporter: Transporter) -> Transporter:
        self.client.table(TRANSPORTERS_TABLE).upsert({
            "id": transporter.id,
            "vehicle_type": _vehicle_value(transporter.vehicle_class),
            "current_location": waypoint_to_dict(transporter.current_location)
            if transporter.current_location
            else None,
            "is_available": transporter.is_available,
            "updated_at": transporter.updated_at.isoformat(),
        }).execute()
        return transporter

    def latest_location(self, transporter_id: str, order_id: Optional[str] = None) -> Optional[TrackingPoint]:
        query = self.client.table(TRACKING_TABLE).select("*").eq("transporter_id", transporter_id)
        if order_id:
            query = query.eq("order_id", order_id)
        response = query.order("timestamp", desc=True).limit(1).execute()
        row = self._first(response)
        if not row:
            return None
        return TrackingPoint(
            transporter_id=str(row["transporter_id"]),
            order_id=row.get("order_id"),
            location=Waypoint(latitude=float(row["latitude"]), longitude=float(row["longitude"])),
            timestamp=_parse_timestamp(row["timestamp"]),
        )

    def record_location(self, point: TrackingPoint) -> TrackingPoint:
        self.client.table(TRACKING_TABLE).insert({
            "transporter_id": point.transporter_id,
            "order_id": point.order_id,
            "latitude": point.location.latitude,
            "longitude": point.location.longitude,
            "timestamp": point.timestamp.isoformat(),
        }).execute()
        return point
