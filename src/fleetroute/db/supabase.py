"""Supabase client for Python backend."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.info("Supabase credentials not configured (missing URL or key)")
        return None

    return create_client(settings.supabase_url, settings.supabase_key)


# Tables used by the record store:
#
#   routes         id, order_id (unique), transporter_id, vehicle_class, status,
#                  optimized_path (jsonb), waypoints (jsonb), distance_km,
#                  estimated_duration_min, fuel_cost, toll_cost,
#                  traffic_conditions, actual_duration_min, created_at, updated_at
#   transporters   id, vehicle_type, current_location (jsonb), is_available, updated_at
#   tracking_data  id, transporter_id, order_id, latitude, longitude, timestamp
