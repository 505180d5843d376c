"""
API Response Models

Pydantic models for consistent API response structures.
"""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any

from app.models.knowledge import UpsertOperation, UpsertResult
from app.models.recommendation import Recommendation

DEGRADED_EMBEDDING_MESSAGE = (
    "Saved, but search quality may be temporarily reduced for this item."
)


class UpsertResponse(BaseModel):
    """
    Response model for knowledge upsert endpoints.
    Used by both the direct upsert and applying a recommendation.
    """

    id: str = Field(..., description="Record identifier")
    main_category: str = Field(..., description="Main category")
    sub_category: str = Field(..., description="Sub-category")
    content: str = Field(..., description="Stored content")
    tags: List[str] = Field(default_factory=list, description="Stored tags")
    last_updated: datetime = Field(..., description="Last write timestamp")
    operation: UpsertOperation = Field(..., description="created or updated")

    embedding_updated: bool = Field(
        True, description="Whether a fresh embedding was stored"
    )
    warning: Optional[str] = Field(
        None, description="Non-fatal problem reported by the write"
    )
    message: str = Field(..., description="User-facing summary")

    @classmethod
    def from_result(cls, result: UpsertResult) -> "UpsertResponse":
        record = result.record
        verb = "created" if result.operation == UpsertOperation.CREATED else "updated"
        message = f"Successfully {verb}: {record.main_category} → {record.sub_category}"
        if result.warning:
            message = f"{message}. {DEGRADED_EMBEDDING_MESSAGE}"

        return cls(
            id=record.id,
            main_category=record.main_category,
            sub_category=record.sub_category,
            content=record.content,
            tags=record.tags,
            last_updated=record.last_updated,
            operation=result.operation,
            embedding_updated=result.embedding_updated,
            warning=result.warning,
            message=message,
        )


class BatchFailure(BaseModel):
    """A candidate that could not be written during a batch upsert."""

    sub_category: Optional[str] = Field(None, description="Dedup key of the item")
    error: str = Field(..., description="Why the write failed")


class BatchUpsertResponse(BaseModel):
    """Response model for batch upserts."""

    successful: List[UpsertResponse] = Field(default_factory=list)
    failed: List[BatchFailure] = Field(default_factory=list)
    total: int = Field(0, description="Number of candidates submitted")
    success_count: int = Field(0, description="Number of candidates written")
    error_count: int = Field(0, description="Number of candidates rejected")


class KnowledgeStats(BaseModel):
    """
    Statistics about the knowledge base.
    """

    total_items: int = Field(0, description="Total number of records")
    unique_main_categories: int = Field(0)
    unique_sub_categories: int = Field(0)
    unique_tags: int = Field(0)
    unique_sources: int = Field(0)
    avg_strength_score: float = Field(
        0.0, description="Average over records that have a strength score"
    )
    items_with_strength_score: int = Field(0)
    strong_items: int = Field(0, description="Records with strength >= 0.8")
    weak_items: int = Field(0, description="Records with strength < 0.5")
    main_categories: List[str] = Field(default_factory=list)
    sub_categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)


class CategoryGroup(BaseModel):
    """Records grouped under one main category."""

    main_category: str
    sub_categories: List[str] = Field(default_factory=list)
    total_items: int = 0


class MigrationFailure(BaseModel):
    id: str
    error: str


class MigrationResponse(BaseModel):
    """Result of moving legacy single-category rows to the main/sub schema."""

    migrated: int = Field(0, description="Rows rewritten")
    failed: int = Field(0, description="Rows that could not be rewritten")
    errors: List[MigrationFailure] = Field(default_factory=list)


class ProcessTextResponse(BaseModel):
    """
    Response model for the curate step: recommendations plus a preview.
    """

    status: str = Field(..., description="Status: success or error")
    recommendations: List[Recommendation] = Field(default_factory=list)
    preview: str = Field(..., description="Short summary of the submitted text")
    similar_main_category: Optional[str] = None
    similar_sub_category: Optional[str] = None
    similarity_score: Optional[float] = None
    goal_provided: bool = False
    goal_relevance_score: Optional[float] = None
    goal_relevance_explanation: Optional[str] = None


class PreviewResponse(BaseModel):
    preview: str
    text_length: int


class EmbeddingResponse(BaseModel):
    embedding: List[float]
    dimension: int
    text_length: int


class TransformResponse(BaseModel):
    processed_text: str
    text_length: int
    action_type: str


class ParsedFileResponse(BaseModel):
    filename: str
    text: str


class BackendCategoriesResponse(BaseModel):
    """Categories known to the recommendation service."""

    categories: List[Any] = Field(default_factory=list)


class BackendStatsResponse(BaseModel):
    """Knowledge statistics reported by the recommendation service."""

    total_knowledge_items: int = 0
    unique_tags: int = 0
    status: str = "success"


class HealthResponse(BaseModel):
    status: str = Field(..., description="healthy or degraded")
    service: str
    store: Dict[str, Any] = Field(default_factory=dict)
    recommendation_service: Dict[str, Any] = Field(
        default_factory=dict, description="Health reported by the recommendation backend"
    )
