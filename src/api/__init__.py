"""API module"""
from .supabase_client import (
    SupabaseStore,
    MockSupabaseStore,
    get_store,
)
from .map_service import MapService, AddressResult

__all__ = [
    "SupabaseStore",
    "MockSupabaseStore",
    "get_store",
    "MapService",
    "AddressResult",
]
