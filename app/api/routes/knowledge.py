"""
Knowledge API Routes

CRUD, search and statistics over stored knowledge records:
- POST /api/knowledge/upsert - Create or update the record for a sub-category
- POST /api/knowledge/batch - Upsert many items, collecting per-item failures
- GET /api/knowledge - List records (optionally filtered by category)
- GET /api/knowledge/search - Substring search
- GET /api/knowledge/stats - Knowledge base statistics
- GET /api/knowledge/categories - Records grouped by main category
- POST /api/knowledge/migrate - Move legacy rows to the main/sub schema
- GET/PATCH/DELETE /api/knowledge/{record_id}
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.api.dependencies import (
    get_knowledge_service,
    get_upsert_policy,
    to_http_exception,
)
from app.models.api_responses import (
    BatchUpsertResponse,
    CategoryGroup,
    KnowledgeStats,
    MigrationResponse,
    UpsertResponse,
)
from app.models.knowledge import KnowledgeCandidate, KnowledgeRecord
from app.services.knowledge_service import KnowledgeService
from app.services.knowledge_upsert import KnowledgeUpsertPolicy

logger = logging.getLogger(__name__)
router = APIRouter()


class BatchUpsertRequest(BaseModel):
    """Request model for batch upserts."""

    items: List[KnowledgeCandidate] = Field(..., description="Items to upsert")


@router.post("/upsert", response_model=UpsertResponse)
async def upsert_knowledge(
    candidate: KnowledgeCandidate,
    policy: KnowledgeUpsertPolicy = Depends(get_upsert_policy),
):
    """
    Create the record for a sub-category, or update it if it exists.

    Example request body:
    ```json
    {
        "main_category": "Technology & Engineering",
        "sub_category": "React Hooks",
        "content": "Hooks let you use state in function components.",
        "tags": ["react"],
        "action_type": "create_new"
    }
    ```

    A `warning` in the response means the record was saved without a fresh
    embedding.
    """
    try:
        result = await policy.upsert(candidate)
    except Exception as e:
        raise to_http_exception(e) from e
    return UpsertResponse.from_result(result)


@router.post("/batch", response_model=BatchUpsertResponse)
async def batch_upsert_knowledge(
    request: BatchUpsertRequest,
    service: KnowledgeService = Depends(get_knowledge_service),
):
    try:
        return await service.batch_upsert(request.items)
    except Exception as e:
        raise to_http_exception(e) from e


@router.get("", response_model=List[KnowledgeRecord])
async def list_knowledge(
    main_category: Optional[str] = Query(None, description="Filter by main category"),
    sub_category: Optional[str] = Query(None, description="Filter by sub-category"),
    service: KnowledgeService = Depends(get_knowledge_service),
):
    try:
        return await service.list_records(
            main_category=main_category, sub_category=sub_category
        )
    except Exception as e:
        raise to_http_exception(e) from e


@router.get("/search", response_model=List[KnowledgeRecord])
async def search_knowledge(
    q: str = Query(..., min_length=1, description="Search term"),
    limit: int = Query(20, ge=1, le=100),
    service: KnowledgeService = Depends(get_knowledge_service),
):
    try:
        return await service.search(q, limit=limit)
    except Exception as e:
        raise to_http_exception(e) from e


@router.get("/stats", response_model=KnowledgeStats)
async def knowledge_stats(service: KnowledgeService = Depends(get_knowledge_service)):
    try:
        return await service.get_stats()
    except Exception as e:
        raise to_http_exception(e) from e


@router.get("/categories", response_model=Dict[str, CategoryGroup])
async def knowledge_categories(
    service: KnowledgeService = Depends(get_knowledge_service),
):
    try:
        return await service.get_categories_grouped()
    except Exception as e:
        raise to_http_exception(e) from e


@router.post("/migrate", response_model=MigrationResponse)
async def migrate_legacy_knowledge(
    service: KnowledgeService = Depends(get_knowledge_service),
):
    """Move rows without a main category to "General Studies" / old category."""
    try:
        return await service.migrate_legacy_records()
    except Exception as e:
        raise to_http_exception(e) from e


@router.get("/{record_id}", response_model=KnowledgeRecord)
async def get_knowledge(
    record_id: str,
    service: KnowledgeService = Depends(get_knowledge_service),
):
    try:
        return await service.get(record_id)
    except Exception as e:
        raise to_http_exception(e) from e


@router.patch("/{record_id}", response_model=KnowledgeRecord)
async def update_knowledge(
    record_id: str,
    updates: Dict[str, Any],
    service: KnowledgeService = Depends(get_knowledge_service),
):
    try:
        return await service.update_record(record_id, updates)
    except Exception as e:
        raise to_http_exception(e) from e


@router.delete("/{record_id}")
async def delete_knowledge(
    record_id: str,
    service: KnowledgeService = Depends(get_knowledge_service),
):
    try:
        await service.delete(record_id)
    except Exception as e:
        raise to_http_exception(e) from e
    return {"status": "deleted", "id": record_id}
