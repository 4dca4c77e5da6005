"""Order pricing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...schemas.routing import OrderEstimateModel, OrderEstimateRequest
from ...services.routing.engine import RouteEngine
from ..dependencies import get_engine
from .routes import to_http_error

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/estimate", response_model=OrderEstimateModel, status_code=status.HTTP_200_OK)
def estimate(payload: OrderEstimateRequest, engine: RouteEngine = Depends(get_engine)) -> OrderEstimateModel:
    """Quote an order before it is placed."""
    try:
        result = engine.estimate_order_cost(
            payload.pickup_location.to_domain(),
            payload.delivery_location.to_domain(),
            payload.weight,
            payload.pickup_time,
        )
    except ValueError as exc:
        raise to_http_error(exc) from exc
    return OrderEstimateModel.from_domain(result)
