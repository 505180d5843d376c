# Shared data models
from app.models.knowledge import (
    ActionType,
    UpsertOperation,
    KnowledgeCandidate,
    KnowledgeRecord,
    UpsertResult,
)
from app.models.recommendation import Recommendation, RecommendationResponse

__all__ = [
    "ActionType",
    "UpsertOperation",
    "KnowledgeCandidate",
    "KnowledgeRecord",
    "UpsertResult",
    "Recommendation",
    "RecommendationResponse",
]
