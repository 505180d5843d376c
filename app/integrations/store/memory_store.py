"""
In-Memory Record Store

Dict-backed RecordStore used for local development (RECORD_STORE_BACKEND=memory)
and tests. Enforces the same unique sub_category constraint as the database.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from app.integrations.store.base import (
    RecordStore,
    DuplicateRecordError,
    RecordNotFoundError,
)
from app.models.knowledge import KnowledgeRecord

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """Keeps raw rows in a dict keyed by id."""

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    def _find_row_id(self, sub_category: str) -> Optional[str]:
        for row_id, row in self._rows.items():
            if row.get("sub_category") == sub_category:
                return row_id
        return None

    def _sorted_records(self, rows: List[Dict[str, Any]]) -> List[KnowledgeRecord]:
        records = [KnowledgeRecord.from_row(row) for row in rows]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def find_by_sub_category(self, sub_category: str) -> Optional[KnowledgeRecord]:
        row_id = self._find_row_id(sub_category)
        if row_id is None:
            return None
        return KnowledgeRecord.from_row(self._rows[row_id])

    async def get(self, record_id: str) -> Optional[KnowledgeRecord]:
        row = self._rows.get(record_id)
        return KnowledgeRecord.from_row(row) if row else None

    async def insert(self, data: Dict[str, Any]) -> KnowledgeRecord:
        async with self._lock:
            sub_category = data.get("sub_category")
            if sub_category and self._find_row_id(sub_category) is not None:
                raise DuplicateRecordError(sub_category)

            row_id = str(uuid4())
            row = dict(data)
            row["id"] = row_id
            self._rows[row_id] = row

        logger.debug(f"Inserted in-memory record {row_id}")
        return KnowledgeRecord.from_row(row)

    async def update(self, record_id: str, data: Dict[str, Any]) -> KnowledgeRecord:
        async with self._lock:
            if record_id not in self._rows:
                raise RecordNotFoundError(record_id)

            sub_category = data.get("sub_category")
            if sub_category:
                owner = self._find_row_id(sub_category)
                if owner is not None and owner != record_id:
                    raise DuplicateRecordError(sub_category)

            self._rows[record_id].update(data)
            row = self._rows[record_id]

        logger.debug(f"Updated in-memory record {record_id}")
        return KnowledgeRecord.from_row(row)

    async def delete(self, record_id: str) -> None:
        async with self._lock:
            if self._rows.pop(record_id, None) is None:
                raise RecordNotFoundError(record_id)

    async def list_records(
        self,
        main_category: Optional[str] = None,
        sub_category: Optional[str] = None,
    ) -> List[KnowledgeRecord]:
        rows = [
            row
            for row in self._rows.values()
            if (main_category is None or row.get("main_category") == main_category)
            and (sub_category is None or row.get("sub_category") == sub_category)
        ]
        return self._sorted_records(rows)

    async def search(self, term: str, limit: int = 20) -> List[KnowledgeRecord]:
        needle = term.lower()
        rows = [
            row
            for row in self._rows.values()
            if any(
                needle in (row.get(field) or "").lower()
                for field in ("content", "main_category", "sub_category")
            )
        ]
        return self._sorted_records(rows)[:limit]

    async def list_legacy_records(self) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._rows.values() if not row.get("main_category")]

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "backend": "memory",
            "records": len(self._rows),
            "timestamp": datetime.now().isoformat(),
        }
