"""
API Tests for /api/knowledge

Runs the routes against an in-memory store through FastAPI's TestClient.
Services are injected with dependency_overrides, so the lifespan (and its
Supabase / gen_ai_hub clients) never runs.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from app.ai_core.embedding import EmbeddingProviderError
from app.api.dependencies import (
    STORE_UNAVAILABLE_MESSAGE,
    get_knowledge_service,
    get_upsert_policy,
)
from app.integrations.store import InMemoryRecordStore, StoreError
from app.main import app
from app.models.api_responses import DEGRADED_EMBEDDING_MESSAGE
from app.services.knowledge_service import KnowledgeService
from app.services.knowledge_upsert import KnowledgeUpsertPolicy

ITEM = {
    "main_category": "Technology & Engineering",
    "sub_category": "React Hooks",
    "content": "Hooks let you use state in function components.",
    "tags": ["react"],
    "action_type": "create_new",
}


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def embedding_provider():
    provider = MagicMock()
    provider.embed = AsyncMock(return_value=[0.1, 0.2])
    return provider


@pytest.fixture
def client(store, embedding_provider):
    policy = KnowledgeUpsertPolicy(store, embedding_provider, merge_separator="\n\n---\n\n")
    service = KnowledgeService(store, embedding_provider, policy)
    app.dependency_overrides[get_upsert_policy] = lambda: policy
    app.dependency_overrides[get_knowledge_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_upsert_creates_then_updates(client):
    created = client.post("/api/knowledge/upsert", json=ITEM)
    assert created.status_code == 200
    body = created.json()
    assert body["operation"] == "created"
    assert body["message"] == "Successfully created: Technology & Engineering → React Hooks"
    assert body["warning"] is None

    merged = client.post(
        "/api/knowledge/upsert",
        json={**ITEM, "content": "useEffect runs after render.", "action_type": "merge"},
    )
    assert merged.status_code == 200
    body = merged.json()
    assert body["operation"] == "updated"
    assert body["id"] == created.json()["id"]
    assert body["content"].endswith("---\n\nuseEffect runs after render.")


def test_upsert_invalid_input_returns_422(client, embedding_provider):
    response = client.post("/api/knowledge/upsert", json={**ITEM, "content": "   "})

    assert response.status_code == 422
    assert response.json()["detail"].startswith("Invalid input")
    embedding_provider.embed.assert_not_awaited()


def test_upsert_degraded_embedding_still_succeeds(client, embedding_provider):
    embedding_provider.embed.side_effect = EmbeddingProviderError("quota")

    response = client.post("/api/knowledge/upsert", json=ITEM)

    assert response.status_code == 200
    body = response.json()
    assert body["embedding_updated"] is False
    assert body["warning"]
    assert DEGRADED_EMBEDDING_MESSAGE in body["message"]


def test_upsert_store_failure_returns_503(client, store):
    store.find_by_sub_category = AsyncMock(side_effect=StoreError("connection reset"))

    response = client.post("/api/knowledge/upsert", json=ITEM)

    assert response.status_code == 503
    assert response.json()["detail"] == STORE_UNAVAILABLE_MESSAGE


def test_batch_upsert(client):
    response = client.post(
        "/api/knowledge/batch",
        json={"items": [ITEM, {**ITEM, "sub_category": "Tries", "tags": 7}]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success_count"] == 1
    assert body["error_count"] == 1
    assert body["failed"][0]["sub_category"] == "Tries"


def test_list_search_and_filters(client):
    client.post("/api/knowledge/upsert", json=ITEM)
    client.post(
        "/api/knowledge/upsert",
        json={**ITEM, "main_category": "Mathematics", "sub_category": "Integrals",
              "content": "Area under a curve."},
    )

    assert len(client.get("/api/knowledge").json()) == 2

    maths = client.get("/api/knowledge", params={"main_category": "Mathematics"}).json()
    assert [r["sub_category"] for r in maths] == ["Integrals"]

    found = client.get("/api/knowledge/search", params={"q": "curve"}).json()
    assert [r["sub_category"] for r in found] == ["Integrals"]


def test_stats_and_categories(client):
    client.post("/api/knowledge/upsert", json=ITEM)

    stats = client.get("/api/knowledge/stats").json()
    assert stats["total_items"] == 1
    assert stats["tags"] == ["react"]

    categories = client.get("/api/knowledge/categories").json()
    assert categories["Technology & Engineering"]["sub_categories"] == ["React Hooks"]


def test_get_patch_delete(client):
    record_id = client.post("/api/knowledge/upsert", json=ITEM).json()["id"]

    assert client.get(f"/api/knowledge/{record_id}").json()["id"] == record_id

    patched = client.patch(f"/api/knowledge/{record_id}", json={"strength_score": 0.85})
    assert patched.status_code == 200
    assert patched.json()["strength_score"] == 0.85

    rejected = client.patch(f"/api/knowledge/{record_id}", json={"id": "other"})
    assert rejected.status_code == 422

    out_of_range = client.patch(f"/api/knowledge/{record_id}", json={"strength_score": 5})
    assert out_of_range.status_code == 422
    assert client.get("/api/knowledge/stats").status_code == 200

    deleted = client.delete(f"/api/knowledge/{record_id}")
    assert deleted.json() == {"status": "deleted", "id": record_id}

    assert client.get(f"/api/knowledge/{record_id}").status_code == 404
    assert client.delete(f"/api/knowledge/{record_id}").status_code == 404


def test_migrate(client, store):
    asyncio.run(store.insert({"category": "Old Topic", "content": "legacy"}))

    response = client.post("/api/knowledge/migrate")

    assert response.status_code == 200
    assert response.json()["migrated"] == 1
