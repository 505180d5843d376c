"""
Knowledge Models

This module defines the data models for knowledge records and upsert candidates.
"""

import json
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from enum import Enum
from pydantic import BaseModel, Field

from app.utils import coerce_tags

DEFAULT_MAIN_CATEGORY = "General Studies"
DEFAULT_SOURCE = "text"


class ActionType(str, Enum):
    """How incoming content is composed with any existing record."""

    CREATE_NEW = "create_new"  # Use content verbatim (overwrites on a match)
    UPDATE = "update"  # Content is already fully composed by the caller
    MERGE = "merge"  # Append content to the existing record


class UpsertOperation(str, Enum):
    """What the upsert actually did in the store."""

    CREATED = "created"
    UPDATED = "updated"


class KnowledgeCandidate(BaseModel):
    """
    A knowledge item waiting to be written.

    Fields are deliberately permissive: required-ness and tag parsing are
    checked by KnowledgeUpsertPolicy so callers get its ValidationError.
    """

    main_category: Optional[str] = Field(None, description="Coarse classification")
    sub_category: Optional[str] = Field(
        None, description="Fine-grained classification, used as the dedup key"
    )
    content: Optional[str] = Field(None, description="Curated knowledge text")
    tags: Any = Field(
        None, description="Tags as a list, a JSON array string, or a single string"
    )
    action_type: Any = Field(
        ActionType.CREATE_NEW,
        description="Action hint from the recommendation: create_new, update or merge",
    )
    source: Optional[str] = Field(None, description="Origin of the content")


class KnowledgeRecord(BaseModel):
    """
    A persisted knowledge item.
    """

    id: str = Field(..., description="Store-assigned identifier")
    main_category: str = Field(..., description="Coarse classification")
    sub_category: str = Field(..., description="Fine-grained classification")
    content: str = Field(..., description="Curated knowledge text")
    tags: List[str] = Field(default_factory=list, description="Semantic tags")
    embedding: Optional[List[float]] = Field(
        None, description="Content embedding; absent for degraded records"
    )
    source: str = Field(DEFAULT_SOURCE, description="Origin of the content")
    strength_score: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Mastery score set by self-testing"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the record was inserted",
    )
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the record was last written",
    )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "KnowledgeRecord":
        """
        Build a record from a store row, filling defaults for legacy rows.

        Legacy rows have a single `category` column instead of the
        main/sub pair and may carry tags as a JSON-encoded string.

        Args:
            row: Raw row as returned by the record store

        Returns:
            KnowledgeRecord instance
        """
        embedding = row.get("embedding")
        if isinstance(embedding, str):
            # pgvector columns come back over PostgREST as "[0.1,0.2,...]"
            embedding = json.loads(embedding)

        return cls(
            id=str(row["id"]),
            main_category=row.get("main_category") or DEFAULT_MAIN_CATEGORY,
            sub_category=row.get("sub_category") or row.get("category") or "unknown",
            content=row.get("content") or "",
            tags=coerce_tags(row.get("tags")),
            embedding=embedding or None,
            source=row.get("source") or DEFAULT_SOURCE,
            strength_score=row.get("strength_score"),
            created_at=row.get("created_at") or datetime.now(timezone.utc),
            last_updated=row.get("last_updated")
            or row.get("created_at")
            or datetime.now(timezone.utc),
        )


class UpsertResult(BaseModel):
    """Outcome of a single upsert."""

    record: KnowledgeRecord
    operation: UpsertOperation
    embedding_updated: bool = Field(
        ..., description="Whether a fresh embedding was stored with this write"
    )
    warning: Optional[str] = Field(
        None, description="Non-fatal problem, e.g. embedding generation failed"
    )
