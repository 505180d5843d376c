"""
Unit Tests for SupabaseRecordStore

The supabase AsyncClient is replaced by a mocked query builder, so these
tests check query construction and error mapping without a database.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from postgrest.exceptions import APIError

from app.config import Settings
from app.integrations.store import (
    SupabaseRecordStore,
    StoreError,
    DuplicateRecordError,
    RecordNotFoundError,
)

ROW = {
    "id": "5f0c",
    "main_category": "Technology & Engineering",
    "sub_category": "React Hooks",
    "content": "Hooks let you use state.",
    "tags": ["react"],
    "source": "text",
    "strength_score": None,
    "created_at": "2026-01-01T00:00:00+00:00",
    "last_updated": "2026-01-01T00:00:00+00:00",
}


def make_client(data=None, error=None):
    """Build a client whose query builder chains and whose execute() is awaitable."""
    query = MagicMock()
    for method in ("select", "eq", "limit", "insert", "update", "delete", "order", "or_", "is_"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=MagicMock(data=data), side_effect=error)

    client = MagicMock()
    client.table.return_value = query
    return client, query


@pytest.mark.asyncio
async def test_find_by_sub_category_found():
    client, query = make_client(data=[ROW])
    store = SupabaseRecordStore(client)

    record = await store.find_by_sub_category("React Hooks")

    client.table.assert_called_with("knowledge_items")
    query.eq.assert_called_with("sub_category", "React Hooks")
    assert record.id == "5f0c"
    assert record.tags == ["react"]


@pytest.mark.asyncio
async def test_find_by_sub_category_missing():
    client, _ = make_client(data=[])
    store = SupabaseRecordStore(client)

    assert await store.find_by_sub_category("Nothing") is None


@pytest.mark.asyncio
async def test_insert_serializes_datetimes():
    client, query = make_client(data=[ROW])
    store = SupabaseRecordStore(client)
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    await store.insert({"sub_category": "React Hooks", "created_at": now})

    payload = query.insert.call_args[0][0]
    assert payload["created_at"] == now.isoformat()


@pytest.mark.asyncio
async def test_insert_unique_violation_maps_to_duplicate():
    error = APIError({"message": "duplicate key value", "code": "23505"})
    client, _ = make_client(error=error)
    store = SupabaseRecordStore(client)

    with pytest.raises(DuplicateRecordError) as exc_info:
        await store.insert({"sub_category": "React Hooks"})

    assert exc_info.value.sub_category == "React Hooks"


@pytest.mark.asyncio
async def test_other_api_errors_map_to_store_error():
    error = APIError({"message": "permission denied", "code": "42501"})
    client, _ = make_client(error=error)
    store = SupabaseRecordStore(client)

    with pytest.raises(StoreError) as exc_info:
        await store.insert({"sub_category": "React Hooks"})

    assert not isinstance(exc_info.value, DuplicateRecordError)


@pytest.mark.asyncio
async def test_connection_failure_maps_to_store_error():
    client, _ = make_client(error=ConnectionError("connection refused"))
    store = SupabaseRecordStore(client)

    with pytest.raises(StoreError):
        await store.find_by_sub_category("React Hooks")


@pytest.mark.asyncio
async def test_update_missing_row_raises_not_found():
    client, query = make_client(data=[])
    store = SupabaseRecordStore(client)

    with pytest.raises(RecordNotFoundError):
        await store.update("missing", {"content": "x"})

    query.eq.assert_called_with("id", "missing")


@pytest.mark.asyncio
async def test_search_sanitizes_filter_characters():
    client, query = make_client(data=[ROW])
    store = SupabaseRecordStore(client)

    results = await store.search("hooks, (state)")

    filters = query.or_.call_args[0][0]
    assert "content.ilike.%hooks   state%" in filters
    assert filters.count(",") == 2
    assert len(results) == 1


@pytest.mark.asyncio
async def test_search_blank_term_skips_query():
    client, query = make_client(data=[ROW])
    store = SupabaseRecordStore(client)

    assert await store.search("(,)") == []
    query.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_legacy_records_filters_null_main_category():
    client, query = make_client(data=[{"id": "1", "category": "Old"}])
    store = SupabaseRecordStore(client)

    rows = await store.list_legacy_records()

    query.is_.assert_called_with("main_category", "null")
    assert rows == [{"id": "1", "category": "Old"}]


@pytest.mark.asyncio
async def test_health_check_reports_unhealthy():
    client, _ = make_client(error=ConnectionError("down"))
    store = SupabaseRecordStore(client)

    health = await store.health_check()
    assert health["status"] == "unhealthy"


@pytest.mark.asyncio
async def test_connect_requires_configuration():
    settings = Settings(supabase_url="", supabase_key="")

    with pytest.raises(StoreError):
        await SupabaseRecordStore.connect(settings)
