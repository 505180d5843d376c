"""
API Dependencies

Providers for services constructed once at startup (see app.main lifespan)
and stored on app.state. Tests replace them with app.dependency_overrides.
"""

import logging

from fastapi import HTTPException, Request

from app.ai_core.embedding import EmbeddingProvider, EmbeddingProviderError
from app.ai_core.transformation import KnowledgeTransformer, TransformationError
from app.integrations.recommendation import (
    RecommendationClient,
    RecommendationServiceError,
)
from app.integrations.store import RecordNotFoundError, StoreError
from app.services.curation_orchestrator import CurationOrchestrator
from app.services.knowledge_service import KnowledgeService
from app.services.knowledge_upsert import KnowledgeUpsertPolicy, ValidationError

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = "We couldn't save this right now. Please try again."


def get_upsert_policy(request: Request) -> KnowledgeUpsertPolicy:
    return request.app.state.upsert_policy


def get_knowledge_service(request: Request) -> KnowledgeService:
    return request.app.state.knowledge_service


def get_orchestrator(request: Request) -> CurationOrchestrator:
    return request.app.state.orchestrator


def get_embedding_provider(request: Request) -> EmbeddingProvider:
    return request.app.state.embedding_provider


def get_transformer(request: Request) -> KnowledgeTransformer:
    return request.app.state.transformer


def get_recommendation_client(request: Request) -> RecommendationClient:
    return request.app.state.recommendation_client


def to_http_exception(error: Exception) -> HTTPException:
    """
    Map a service error to the HTTP error shown to the user.

    Distinguishes invalid input (422), unknown records (404), store outages
    (503) and upstream AI / recommendation failures (502).
    """
    if isinstance(error, HTTPException):
        return error
    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail=f"Invalid input: {error}")
    if isinstance(error, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StoreError):
        logger.error(f"Store error: {error}")
        return HTTPException(status_code=503, detail=STORE_UNAVAILABLE_MESSAGE)
    if isinstance(
        error, (RecommendationServiceError, TransformationError, EmbeddingProviderError)
    ):
        logger.error(f"Upstream service error: {error}")
        return HTTPException(status_code=502, detail=str(error))

    logger.error(f"Unexpected error: {error}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Internal server error: {error}")
