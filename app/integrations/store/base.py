"""
Record Store Interface

Keyed storage for knowledge records. Implementations must enforce a unique
constraint on `sub_category` and report violations as DuplicateRecordError.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from app.models.knowledge import KnowledgeRecord


class StoreError(Exception):
    """
    Raised when a read or write against the record store fails.
    This is a system error (503) - nothing was saved.
    """

    pass


class DuplicateRecordError(StoreError):
    """Raised by insert when a record with the same sub_category already exists."""

    def __init__(self, sub_category: str):
        super().__init__(f"A record for sub-category '{sub_category}' already exists")
        self.sub_category = sub_category


class RecordNotFoundError(StoreError):
    """Raised when updating or deleting an id that does not exist."""

    def __init__(self, record_id: str):
        super().__init__(f"Knowledge record not found: {record_id}")
        self.record_id = record_id


class RecordStore(ABC):
    """
    Abstract base class for knowledge record storage.

    All `data` dicts use KnowledgeRecord field names. Timestamps are supplied
    by the caller so that the upsert policy owns `created_at`/`last_updated`.
    """

    @abstractmethod
    async def find_by_sub_category(self, sub_category: str) -> Optional[KnowledgeRecord]:
        """Return the single record with this sub_category, or None."""
        pass

    @abstractmethod
    async def get(self, record_id: str) -> Optional[KnowledgeRecord]:
        """Return the record with this id, or None."""
        pass

    @abstractmethod
    async def insert(self, data: Dict[str, Any]) -> KnowledgeRecord:
        """Insert a record and return it with its assigned id."""
        pass

    @abstractmethod
    async def update(self, record_id: str, data: Dict[str, Any]) -> KnowledgeRecord:
        """Apply `data` to the record with this id and return the updated record."""
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """Delete the record with this id."""
        pass

    @abstractmethod
    async def list_records(
        self,
        main_category: Optional[str] = None,
        sub_category: Optional[str] = None,
    ) -> List[KnowledgeRecord]:
        """List records newest first, optionally filtered by category."""
        pass

    @abstractmethod
    async def search(self, term: str, limit: int = 20) -> List[KnowledgeRecord]:
        """Case-insensitive substring search over content and categories."""
        pass

    @abstractmethod
    async def list_legacy_records(self) -> List[Dict[str, Any]]:
        """Return raw rows that have no main_category (pre-migration schema)."""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Check if the store is reachable."""
        pass
