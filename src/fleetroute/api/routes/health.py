"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.routing.engine import RouteEngine
from ..dependencies import get_engine

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/provider", status_code=status.HTTP_200_OK)
def health_provider(engine: RouteEngine = Depends(get_engine)) -> dict:
    """Report which route provider is active."""
    return {
        "provider": engine.provider.name,
        "fallback": engine.provider.name == "straight_line",
    }


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and route storage status."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set FLEETROUTE_SUPABASE_URL and FLEETROUTE_SUPABASE_KEY environment variables.",
        }

    try:
        response = supabase.table("routes").select("id", count="exact").limit(1).execute()
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
    return {
        "configured": True,
        "connected": True,
        "routes_count": getattr(response, "count", None),
        "message": "Database connected.",
    }
