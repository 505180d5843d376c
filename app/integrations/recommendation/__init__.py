"""
Recommendation Service Integration

Client for the external classification and similarity backend.
"""

from app.integrations.recommendation.client import (
    RecommendationClient,
    RecommendationServiceError,
)

__all__ = ["RecommendationClient", "RecommendationServiceError"]
