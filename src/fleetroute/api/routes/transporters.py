"""Transporter endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from ...errors import RoutingError
from ...models.domain import RouteStatus, Transporter, VehicleClass, Waypoint
from ...schemas.routing import LocationUpdateRequest, RouteRecordModel, TrackingPointModel, WaypointModel
from ...services.routing.engine import RouteEngine
from ..dependencies import get_engine
from .routes import to_http_error

router = APIRouter(prefix="/transporters", tags=["transporters"])


class RegisterTransporterRequest(BaseModel):
    vehicle_type: VehicleClass
    current_location: WaypointModel | None = None
    is_available: bool | None = None


class TransporterModel(BaseModel):
    id: str
    vehicle_type: str
    current_location: WaypointModel | None = None
    is_available: bool = True
    distance_km: float | None = None

    @classmethod
    def from_domain(cls, transporter: Transporter, distance_km: float | None = None) -> "TransporterModel":
        return cls(
            id=transporter.id,
            vehicle_type=str(getattr(transporter.vehicle_class, "value", transporter.vehicle_class)),
            current_location=WaypointModel.from_domain(transporter.current_location)
            if transporter.current_location
            else None,
            is_available=transporter.is_available,
            distance_km=distance_km,
        )


@router.get("/available", response_model=List[TransporterModel])
def available_transporters(
    near_latitude: Optional[float] = Query(default=None, ge=-90, le=90),
    near_longitude: Optional[float] = Query(default=None, ge=-180, le=180),
    radius_km: Optional[float] = Query(default=None, gt=0),
    vehicle_type: Optional[VehicleClass] = None,
    engine: RouteEngine = Depends(get_engine),
) -> List[TransporterModel]:
    """Available transporters, nearest first when a reference point is given."""
    if (near_latitude is None) != (near_longitude is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="near_latitude and near_longitude must be given together.",
        )
    near = Waypoint(near_latitude, near_longitude) if near_latitude is not None else None
    try:
        matches = engine.available_transporters(near, radius_km, vehicle_type)
    except (RoutingError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return [TransporterModel.from_domain(match.transporter, match.distance_km) for match in matches]


@router.put("/{transporter_id}", response_model=TransporterModel, status_code=status.HTTP_200_OK)
def register_transporter(
    transporter_id: str, payload: RegisterTransporterRequest, engine: RouteEngine = Depends(get_engine)
) -> TransporterModel:
    transporter = engine.register_transporter(
        transporter_id,
        payload.vehicle_type,
        payload.current_location.to_domain() if payload.current_location else None,
        is_available=payload.is_available,
    )
    return TransporterModel.from_domain(transporter)


@router.get("/{transporter_id}/routes", response_model=List[RouteRecordModel])
def transporter_routes(
    transporter_id: str,
    route_status: Optional[RouteStatus] = Query(default=None, alias="status"),
    engine: RouteEngine = Depends(get_engine),
) -> List[RouteRecordModel]:
    """Routes assigned to a transporter, newest first."""
    routes = engine.transporter_routes(transporter_id, route_status)
    return [RouteRecordModel.from_record(route) for route in routes]


@router.put("/{transporter_id}/location", response_model=TrackingPointModel, status_code=status.HTTP_200_OK)
def update_location(
    transporter_id: str, payload: LocationUpdateRequest, engine: RouteEngine = Depends(get_engine)
) -> TrackingPointModel:
    """Record the transporter's current position."""
    try:
        point = engine.record_location(
            transporter_id,
            Waypoint(latitude=payload.latitude, longitude=payload.longitude),
            order_id=payload.order_id,
        )
    except RoutingError as exc:
        raise to_http_error(exc) from exc
    return TrackingPointModel.from_domain(point)
