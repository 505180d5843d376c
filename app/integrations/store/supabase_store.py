"""
Supabase Record Store

RecordStore backed by the `knowledge_items` table in Supabase
(Postgres + pgvector), accessed through the async supabase-py client.

Responsibilities:
- Point lookups by sub_category and id
- Insert / update / delete
- Listing, filtering and substring search
- Mapping PostgREST errors to StoreError subclasses
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from app.config import Settings
from app.integrations.store.base import (
    RecordStore,
    StoreError,
    DuplicateRecordError,
    RecordNotFoundError,
)
from app.models.knowledge import KnowledgeRecord

logger = logging.getLogger(__name__)

RECORD_COLUMNS = (
    "id, main_category, sub_category, content, tags, source, "
    "strength_score, created_at, last_updated"
)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

# Characters with meaning inside a PostgREST `or=(...)` filter
_FILTER_SPECIAL_CHARS = re.compile(r"[,()%*]")


def _to_row(data: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize datetimes so the payload is JSON-encodable."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in data.items()
    }


class SupabaseRecordStore(RecordStore):
    """
    Supabase-backed record store.

    Usage:
        store = await SupabaseRecordStore.connect(settings)
        record = await store.find_by_sub_category("React Hooks")
        await store.close()
    """

    def __init__(self, client: AsyncClient, table: str = "knowledge_items"):
        self._client = client
        self.table = table

    @classmethod
    async def connect(cls, settings: Settings) -> "SupabaseRecordStore":
        """Create the async client from settings."""
        if not settings.supabase_url or not settings.supabase_key:
            raise StoreError("SUPABASE_URL and SUPABASE_KEY must be configured")

        client = await acreate_client(settings.supabase_url, settings.supabase_key)
        logger.info(f"Connected to Supabase: {settings.supabase_url}")
        return cls(client, table=settings.knowledge_table)

    async def close(self) -> None:
        """Release the underlying HTTP session."""
        try:
            await self._client.postgrest.aclose()
        except Exception as e:
            logger.warning(f"Error closing Supabase client: {e}")

    def _query(self):
        return self._client.table(self.table)

    def _raise_store_error(self, action: str, error: Exception) -> None:
        logger.error(f"Supabase {action} failed on {self.table}: {error}")
        raise StoreError(f"Failed to {action} knowledge record: {error}") from error

    async def find_by_sub_category(self, sub_category: str) -> Optional[KnowledgeRecord]:
        try:
            result = (
                await self._query()
                .select(RECORD_COLUMNS)
                .eq("sub_category", sub_category)
                .limit(1)
                .execute()
            )
        except Exception as e:
            self._raise_store_error("look up", e)

        if not result.data:
            return None
        return KnowledgeRecord.from_row(result.data[0])

    async def get(self, record_id: str) -> Optional[KnowledgeRecord]:
        try:
            result = (
                await self._query()
                .select(RECORD_COLUMNS)
                .eq("id", record_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            self._raise_store_error("read", e)

        if not result.data:
            return None
        return KnowledgeRecord.from_row(result.data[0])

    async def insert(self, data: Dict[str, Any]) -> KnowledgeRecord:
        try:
            result = await self._query().insert(_to_row(data)).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.info(
                    f"Unique constraint hit inserting sub-category '{data.get('sub_category')}'"
                )
                raise DuplicateRecordError(data.get("sub_category", "")) from e
            self._raise_store_error("insert", e)
        except Exception as e:
            self._raise_store_error("insert", e)

        if not result.data:
            raise StoreError("Insert returned no row")
        return KnowledgeRecord.from_row(result.data[0])

    async def update(self, record_id: str, data: Dict[str, Any]) -> KnowledgeRecord:
        try:
            result = (
                await self._query().update(_to_row(data)).eq("id", record_id).execute()
            )
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateRecordError(data.get("sub_category", "")) from e
            self._raise_store_error("update", e)
        except Exception as e:
            self._raise_store_error("update", e)

        if not result.data:
            raise RecordNotFoundError(record_id)
        return KnowledgeRecord.from_row(result.data[0])

    async def delete(self, record_id: str) -> None:
        try:
            result = await self._query().delete().eq("id", record_id).execute()
        except Exception as e:
            self._raise_store_error("delete", e)

        if not result.data:
            raise RecordNotFoundError(record_id)
        logger.info(f"Deleted knowledge record {record_id}")

    async def list_records(
        self,
        main_category: Optional[str] = None,
        sub_category: Optional[str] = None,
    ) -> List[KnowledgeRecord]:
        query = self._query().select(RECORD_COLUMNS)
        if main_category is not None:
            query = query.eq("main_category", main_category)
        if sub_category is not None:
            query = query.eq("sub_category", sub_category)

        try:
            result = await query.order("created_at", desc=True).execute()
        except Exception as e:
            self._raise_store_error("list", e)

        return [KnowledgeRecord.from_row(row) for row in result.data or []]

    async def search(self, term: str, limit: int = 20) -> List[KnowledgeRecord]:
        safe_term = _FILTER_SPECIAL_CHARS.sub(" ", term).strip()
        if not safe_term:
            return []

        pattern = f"%{safe_term}%"
        filters = ",".join(
            f"{column}.ilike.{pattern}"
            for column in ("content", "main_category", "sub_category")
        )
        try:
            result = (
                await self._query()
                .select(RECORD_COLUMNS)
                .or_(filters)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            self._raise_store_error("search", e)

        return [KnowledgeRecord.from_row(row) for row in result.data or []]

    async def list_legacy_records(self) -> List[Dict[str, Any]]:
        try:
            result = (
                await self._query()
                .select("id, category, content, tags")
                .is_("main_category", "null")
                .execute()
            )
        except Exception as e:
            self._raise_store_error("list legacy", e)

        return result.data or []

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self._query().select("id").limit(1).execute()
            return {
                "status": "healthy",
                "backend": "supabase",
                "timestamp": datetime.now().isoformat(),
            }
        except Exception as e:
            logger.warning(f"Supabase health check failed: {e}")
            return {"status": "unhealthy", "backend": "supabase", "error": str(e)}
