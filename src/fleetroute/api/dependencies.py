"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from ..persistence import get_store
from ..services.routing.engine import RouteEngine


@lru_cache()
def get_engine() -> RouteEngine:
    """Process-wide engine built from the configured store and provider."""
    return RouteEngine(get_store())
