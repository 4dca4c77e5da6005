"""Routing request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import (
    OptimizedRoute,
    OrderEstimate,
    PersistedRoute,
    RouteProgress,
    RouteRequest,
    RouteStatus,
    TrackingPoint,
    TrafficCondition,
    TrafficModel,
    VehicleClass,
    Waypoint,
)


class WaypointModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    estimated_arrival: Optional[datetime] = None

    def to_domain(self) -> Waypoint:
        return Waypoint(
            latitude=self.latitude,
            longitude=self.longitude,
            address=self.address,
            estimated_arrival=self.estimated_arrival,
        )

    @classmethod
    def from_domain(cls, waypoint: Waypoint) -> "WaypointModel":
        return cls(
            latitude=waypoint.latitude,
            longitude=waypoint.longitude,
            address=waypoint.address,
            estimated_arrival=waypoint.estimated_arrival,
        )


class RouteCalculationRequest(BaseModel):
    origin: WaypointModel
    destination: WaypointModel
    waypoints: List[WaypointModel] = Field(default_factory=list)
    vehicle_type: VehicleClass
    traffic_model: Optional[TrafficModel] = None
    departure_time: Optional[datetime] = None

    def to_domain(self) -> RouteRequest:
        return RouteRequest(
            origin=self.origin.to_domain(),
            destination=self.destination.to_domain(),
            waypoints=tuple(waypoint.to_domain() for waypoint in self.waypoints),
            vehicle_class=self.vehicle_type,
            traffic_model=self.traffic_model,
            departure_time=self.departure_time,
        )


class CreateRouteRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    transporter_id: str = Field(..., min_length=1)
    route_request: RouteCalculationRequest


class OptimizeDeliveriesRequest(BaseModel):
    transporter_id: str = Field(..., min_length=1)
    delivery_points: List[WaypointModel] = Field(..., min_length=2)


class UpdateStatusRequest(BaseModel):
    status: RouteStatus
    actual_duration: Optional[float] = Field(default=None, gt=0, description="Actual duration in minutes.")


class RecalculateRouteRequest(BaseModel):
    current_location: WaypointModel


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    order_id: Optional[str] = None


class OptimizedRouteModel(BaseModel):
    path: List[WaypointModel]
    total_distance_km: float
    estimated_duration_min: float
    estimated_fuel_cost: float
    estimated_toll_cost: float
    traffic_conditions: str
    waypoints: List[WaypointModel]

    @classmethod
    def from_domain(cls, route: OptimizedRoute) -> "OptimizedRouteModel":
        return cls(
            path=[WaypointModel.from_domain(point) for point in route.path],
            total_distance_km=route.total_distance_km,
            estimated_duration_min=route.estimated_duration_min,
            estimated_fuel_cost=route.estimated_fuel_cost,
            estimated_toll_cost=route.estimated_toll_cost,
            traffic_conditions=route.traffic_conditions,
            waypoints=[WaypointModel.from_domain(point) for point in route.waypoints],
        )


class RouteRecordModel(OptimizedRouteModel):
    id: str
    order_id: str
    transporter_id: str
    vehicle_type: str
    status: RouteStatus
    actual_duration_min: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, route: PersistedRoute) -> "RouteRecordModel":
        base = OptimizedRouteModel.from_domain(route.to_optimized())
        return cls(
            **base.model_dump(),
            id=route.id,
            order_id=route.order_id,
            transporter_id=route.transporter_id,
            vehicle_type=str(getattr(route.vehicle_class, "value", route.vehicle_class)),
            status=route.status,
            actual_duration_min=route.actual_duration_min,
            created_at=route.created_at,
            updated_at=route.updated_at,
        )


class TrackingPointModel(BaseModel):
    transporter_id: str
    order_id: Optional[str] = None
    latitude: float
    longitude: float
    timestamp: datetime

    @classmethod
    def from_domain(cls, point: TrackingPoint) -> "TrackingPointModel":
        return cls(
            transporter_id=point.transporter_id,
            order_id=point.order_id,
            latitude=point.location.latitude,
            longitude=point.location.longitude,
            timestamp=point.timestamp,
        )


class TrafficConditionModel(BaseModel):
    start: WaypointModel
    end: WaypointModel
    heading_degrees: float
    condition: str
    delay_min: float

    @classmethod
    def from_domain(cls, condition: TrafficCondition) -> "TrafficConditionModel":
        return cls(
            start=WaypointModel.from_domain(condition.segment.start),
            end=WaypointModel.from_domain(condition.segment.end),
            heading_degrees=condition.segment.heading_degrees,
            condition=condition.condition,
            delay_min=condition.delay_min,
        )


class TrafficUpdateResponse(BaseModel):
    route_id: str
    traffic_conditions: List[TrafficConditionModel]
    timestamp: datetime


class RouteTrackingResponse(BaseModel):
    route: RouteRecordModel
    current_location: Optional[TrackingPointModel] = None
    progress: int
    estimated_time_remaining: float
    last_update: Optional[datetime] = None

    @classmethod
    def from_domain(cls, progress: RouteProgress) -> "RouteTrackingResponse":
        return cls(
            route=RouteRecordModel.from_record(progress.route),
            current_location=TrackingPointModel.from_domain(progress.current_location)
            if progress.current_location
            else None,
            progress=progress.progress_percent,
            estimated_time_remaining=progress.estimated_time_remaining_min,
            last_update=progress.last_update,
        )


class OrderEstimateRequest(BaseModel):
    pickup_location: WaypointModel
    delivery_location: WaypointModel
    weight: float = Field(..., ge=0, description="Load weight in kilograms.")
    pickup_time: datetime


class OrderEstimateModel(BaseModel):
    distance_km: float
    weight: float
    peak_time: bool
    estimated_cost: float

    @classmethod
    def from_domain(cls, estimate: OrderEstimate) -> "OrderEstimateModel":
        return cls(
            distance_km=estimate.distance_km,
            weight=estimate.weight_kg,
            peak_time=estimate.peak_time,
            estimated_cost=estimate.estimated_cost,
        )
