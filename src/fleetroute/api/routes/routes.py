"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import (
    DuplicateRoute,
    InvalidTransition,
    LocationUnavailable,
    NotFound,
    RouteAlreadyComplete,
    RouteClosed,
    RouteComputationError,
    RoutingError,
)
from ...models.domain import utcnow
from ...schemas.routing import (
    CreateRouteRequest,
    OptimizeDeliveriesRequest,
    OptimizedRouteModel,
    RecalculateRouteRequest,
    RouteCalculationRequest,
    RouteRecordModel,
    RouteTrackingResponse,
    TrafficConditionModel,
    TrafficUpdateResponse,
    UpdateStatusRequest,
)
from ...services.routing.engine import RouteEngine
from ..dependencies import get_engine

router = APIRouter(prefix="/routes", tags=["routes"])

logger = logging.getLogger(__name__)

ERROR_STATUS: tuple[tuple[type[Exception], int], ...] = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (DuplicateRoute, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (RouteClosed, status.HTTP_409_CONFLICT),
    (LocationUnavailable, status.HTTP_400_BAD_REQUEST),
    (RouteAlreadyComplete, status.HTTP_400_BAD_REQUEST),
    (RouteComputationError, status.HTTP_502_BAD_GATEWAY),
    (ValueError, status.HTTP_400_BAD_REQUEST),
)


def to_http_error(exc: Exception) -> HTTPException:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    logger.exception(f"Unhandled routing error: {exc}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/calculate", response_model=OptimizedRouteModel, status_code=status.HTTP_200_OK)
def calculate(payload: RouteCalculationRequest, engine: RouteEngine = Depends(get_engine)) -> OptimizedRouteModel:
    try:
        route = engine.calculate_optimal_route(payload.to_domain())
    except (RoutingError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return OptimizedRouteModel.from_domain(route)


@router.post("", response_model=RouteRecordModel, status_code=status.HTTP_201_CREATED)
def create_route(payload: CreateRouteRequest, engine: RouteEngine = Depends(get_engine)) -> RouteRecordModel:
    try:
        route = engine.create_route(payload.order_id, payload.transporter_id, payload.route_request.to_domain())
    except (RoutingError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return RouteRecordModel.from_record(route)


@router.post("/optimize", response_model=OptimizedRouteModel, status_code=status.HTTP_200_OK)
def optimize_deliveries(
    payload: OptimizeDeliveriesRequest, engine: RouteEngine = Depends(get_engine)
) -> OptimizedRouteModel:
    """Order several drops for one transporter and route through them."""
    try:
        route = engine.optimize_multi_stop(
            payload.transporter_id,
            [point.to_domain() for point in payload.delivery_points],
        )
    except (RoutingError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return OptimizedRouteModel.from_domain(route)


@router.get("/{route_id}", response_model=RouteRecordModel)
def get_route(route_id: str, engine: RouteEngine = Depends(get_engine)) -> RouteRecordModel:
    try:
        return RouteRecordModel.from_record(engine.get_route(route_id))
    except RoutingError as exc:
        raise to_http_error(exc) from exc


@router.put("/{route_id}/status", response_model=RouteRecordModel)
def update_status(
    route_id: str, payload: UpdateStatusRequest, engine: RouteEngine = Depends(get_engine)
) -> RouteRecordModel:
    try:
        route = engine.update_status(route_id, payload.status, payload.actual_duration)
    except (RoutingError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return RouteRecordModel.from_record(route)


@router.get("/{route_id}/traffic", response_model=TrafficUpdateResponse)
def traffic(route_id: str, engine: RouteEngine = Depends(get_engine)) -> TrafficUpdateResponse:
    try:
        conditions = engine.traffic_update(route_id)
    except RoutingError as exc:
        raise to_http_error(exc) from exc
    return TrafficUpdateResponse(
        route_id=route_id,
        traffic_conditions=[TrafficConditionModel.from_domain(condition) for condition in conditions],
        timestamp=utcnow(),
    )


@router.post("/{route_id}/recalculate", response_model=OptimizedRouteModel)
def recalculate(
    route_id: str, payload: RecalculateRouteRequest, engine: RouteEngine = Depends(get_engine)
) -> OptimizedRouteModel:
    try:
        route = engine.recalculate(route_id, payload.current_location.to_domain())
    except (RoutingError, ValueError) as exc:
        raise to_http_error(exc) from exc
    return OptimizedRouteModel.from_domain(route)


@router.get("/{route_id}/tracking", response_model=RouteTrackingResponse)
def tracking(route_id: str, engine: RouteEngine = Depends(get_engine)) -> RouteTrackingResponse:
    try:
        progress = engine.progress(route_id)
    except RoutingError as exc:
        raise to_http_error(exc) from exc
    return RouteTrackingResponse.from_domain(progress)
