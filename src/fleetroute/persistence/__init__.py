"""Record store selection."""

from __future__ import annotations

import logging

from ..db.supabase import get_supabase_client
from .store import InMemoryRecordStore, LocationFeed, RecordStore
from .supabase_store import SupabaseRecordStore


def get_store() -> RecordStore:
    """Supabase store when credentials are configured, otherwise a process-local store."""
    client = get_supabase_client()
    if client is None:
        logging.info("Supabase not configured - routes are kept in memory")
        return InMemoryRecordStore()
    return SupabaseRecordStore(client)


__all__ = [
    "InMemoryRecordStore",
    "LocationFeed",
    "RecordStore",
    "SupabaseRecordStore",
    "get_store",
]
