"""
Curate API Routes

The text-to-knowledge flow:
1. POST /api/curate/process-text - Recommendations + preview for raw text
2. POST /api/curate/apply - Transform text per a recommendation and store it
Helpers:
- POST /api/curate/preview - Main-ideas summary only
- POST /api/curate/embedding - Embedding for a text
- POST /api/curate/transform - LLM transformation without storing
- POST /api/curate/parse-file - Extract text from an uploaded .txt/.md file
- GET /api/curate/categories - Categories known to the recommendation service
- GET /api/curate/stats - Statistics reported by the recommendation service
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field

from app.ai_core.embedding import EmbeddingProvider
from app.ai_core.transformation import KnowledgeTransformer
from app.api.dependencies import (
    get_embedding_provider,
    get_orchestrator,
    get_recommendation_client,
    get_transformer,
    to_http_exception,
)
from app.config import get_settings
from app.integrations.recommendation import RecommendationClient
from app.models.api_responses import (
    BackendCategoriesResponse,
    BackendStatsResponse,
    EmbeddingResponse,
    ParsedFileResponse,
    PreviewResponse,
    ProcessTextResponse,
    TransformResponse,
    UpsertResponse,
)
from app.models.knowledge import ActionType
from app.models.recommendation import Recommendation
from app.services.curation_orchestrator import CurationOrchestrator
from app.utils import clean_embedding_text

logger = logging.getLogger(__name__)
router = APIRouter()

SUPPORTED_UPLOAD_EXTENSIONS = {"txt", "md"}


# Request models


class ProcessTextRequest(BaseModel):
    """Request model for the process-text endpoint."""

    text: str = Field(..., description="Raw text to classify")
    threshold: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Similarity threshold (defaults to settings)"
    )
    goal: Optional[str] = Field(None, description="Optional learning goal")


class ApplyRecommendationRequest(BaseModel):
    """Request model for applying a chosen recommendation."""

    text: str = Field(..., description="The text originally submitted")
    recommendation: Recommendation
    similar_knowledge: Optional[str] = Field(
        None, description="Category path of the most similar record, if any"
    )


class TextRequest(BaseModel):
    text: str = Field(..., description="Input text")


class TransformRequest(BaseModel):
    """Request model for a standalone transformation."""

    input_text: str
    instructions: str = ""
    action_type: ActionType = ActionType.CREATE_NEW
    main_category: str = ""
    sub_category: str = ""
    tags: List[str] = Field(default_factory=list)
    similar_knowledge: Optional[str] = None


def _require_text(text: str) -> None:
    if not text or not text.strip():
        raise HTTPException(
            status_code=400, detail="Text is required and must be a non-empty string"
        )


# API Endpoints


@router.post("/process-text", response_model=ProcessTextResponse)
async def process_text(
    request: ProcessTextRequest,
    orchestrator: CurationOrchestrator = Depends(get_orchestrator),
):
    threshold = (
        request.threshold
        if request.threshold is not None
        else get_settings().similarity_threshold
    )
    try:
        return await orchestrator.process_text(request.text, threshold, request.goal)
    except Exception as e:
        raise to_http_exception(e) from e


@router.post("/apply", response_model=UpsertResponse)
async def apply_recommendation(
    request: ApplyRecommendationRequest,
    orchestrator: CurationOrchestrator = Depends(get_orchestrator),
):
    try:
        result = await orchestrator.apply_recommendation(
            request.text,
            request.recommendation,
            similar_knowledge=request.similar_knowledge,
        )
    except Exception as e:
        raise to_http_exception(e) from e
    return UpsertResponse.from_result(result)


@router.post("/preview", response_model=PreviewResponse)
async def generate_preview(
    request: TextRequest,
    transformer: KnowledgeTransformer = Depends(get_transformer),
):
    _require_text(request.text)
    try:
        preview = await transformer.generate_preview(request.text)
    except Exception as e:
        raise to_http_exception(e) from e
    return PreviewResponse(preview=preview, text_length=len(preview))


@router.post("/embedding", response_model=EmbeddingResponse)
async def generate_embedding(
    request: TextRequest,
    embedding_provider: EmbeddingProvider = Depends(get_embedding_provider),
):
    _require_text(request.text)
    try:
        embedding = await embedding_provider.embed(request.text)
    except Exception as e:
        raise to_http_exception(e) from e
    return EmbeddingResponse(
        embedding=embedding,
        dimension=len(embedding),
        text_length=len(clean_embedding_text(request.text)),
    )


@router.post("/transform", response_model=TransformResponse)
async def transform_text(
    request: TransformRequest,
    transformer: KnowledgeTransformer = Depends(get_transformer),
):
    _require_text(request.input_text)
    try:
        processed = await transformer.transform(
            instructions=request.instructions,
            input_text=request.input_text,
            action_type=request.action_type,
            main_category=request.main_category,
            sub_category=request.sub_category,
            tags=request.tags,
            similar_knowledge=request.similar_knowledge,
        )
    except Exception as e:
        raise to_http_exception(e) from e
    return TransformResponse(
        processed_text=processed,
        text_length=len(processed),
        action_type=request.action_type.value,
    )


@router.post("/parse-file", response_model=ParsedFileResponse)
async def parse_file(file: UploadFile = File(...)):
    """Extract text from an uploaded file. Only .txt and .md are supported."""
    filename = file.filename or ""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension not in SUPPORTED_UPLOAD_EXTENSIONS:
        raise HTTPException(
            status_code=400, detail="Only .txt and .md parsing supported."
        )

    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail="File is not valid UTF-8 text") from e

    logger.info(f"Parsed uploaded file {filename} ({len(text)} chars)")
    return ParsedFileResponse(filename=filename, text=text)


@router.get("/categories", response_model=BackendCategoriesResponse)
async def backend_categories(
    client: RecommendationClient = Depends(get_recommendation_client),
):
    try:
        categories = await client.get_categories()
    except Exception as e:
        raise to_http_exception(e) from e
    return BackendCategoriesResponse(categories=categories)


@router.get("/stats", response_model=BackendStatsResponse)
async def backend_stats(
    client: RecommendationClient = Depends(get_recommendation_client),
):
    try:
        return BackendStatsResponse(**await client.get_stats())
    except Exception as e:
        raise to_http_exception(e) from e
