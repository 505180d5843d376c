"""
Record Store Module

Persistence for knowledge records.
"""

from app.integrations.store.base import (
    RecordStore,
    StoreError,
    DuplicateRecordError,
    RecordNotFoundError,
)
from app.integrations.store.memory_store import InMemoryRecordStore
from app.integrations.store.supabase_store import SupabaseRecordStore

__all__ = [
    "RecordStore",
    "StoreError",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "InMemoryRecordStore",
    "SupabaseRecordStore",
]
