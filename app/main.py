import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.ai_core.embedding import EmbeddingProvider
from app.ai_core.transformation import KnowledgeTransformer
from app.api.routes import curate, knowledge
from app.config import get_settings
from app.integrations.recommendation import (
    RecommendationClient,
    RecommendationServiceError,
)
from app.integrations.store import InMemoryRecordStore, RecordStore, SupabaseRecordStore
from app.models.api_responses import HealthResponse
from app.services.curation_orchestrator import CurationOrchestrator
from app.services.knowledge_service import KnowledgeService
from app.services.knowledge_upsert import KnowledgeUpsertPolicy

settings = get_settings()

# Configure application logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Set log level for app modules
logger = logging.getLogger("app")
logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)


async def create_record_store() -> RecordStore:
    if settings.record_store_backend == "memory":
        logger.warning("Using in-memory record store - data is lost on restart")
        return InMemoryRecordStore()
    return await SupabaseRecordStore.connect(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Construct shared clients once and release them at shutdown."""
    store = await create_record_store()
    embedding_provider = EmbeddingProvider()
    transformer = KnowledgeTransformer()
    recommendation_client = RecommendationClient()
    upsert_policy = KnowledgeUpsertPolicy(
        store, embedding_provider, merge_separator=settings.merge_separator
    )

    app.state.store = store
    app.state.embedding_provider = embedding_provider
    app.state.transformer = transformer
    app.state.recommendation_client = recommendation_client
    app.state.upsert_policy = upsert_policy
    app.state.knowledge_service = KnowledgeService(
        store, embedding_provider, upsert_policy
    )
    app.state.orchestrator = CurationOrchestrator(
        recommendation_client, transformer, upsert_policy, store
    )
    logger.info(f"{settings.app_name} services initialized")

    yield

    recommendation_client.close()
    if isinstance(store, SupabaseRecordStore):
        await store.close()
    logger.info(f"{settings.app_name} services shut down")


app = FastAPI(
    title=settings.app_name,
    description="Free text to curated, searchable knowledge base",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(knowledge.router, prefix="/api/knowledge", tags=["Knowledge"])
app.include_router(curate.router, prefix="/api/curate", tags=["Curate"])


@app.get("/")
async def root():
    return {
        "message": "Welcome to Curator - Free text to curated knowledge base",
        "version": "0.1.0",
        "endpoints": {
            "knowledge": "/api/knowledge",
            "curate": "/api/curate",
            "health": "/health",
            "docs": "/docs",
            "redoc": "/redoc",
        },
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    store_health = {}
    store = getattr(app.state, "store", None)
    if store is not None:
        store_health = await store.health_check()

    backend_health = {}
    recommendation_client = getattr(app.state, "recommendation_client", None)
    if recommendation_client is not None:
        try:
            backend_health = await recommendation_client.health_check()
        except RecommendationServiceError as e:
            logger.warning(f"Recommendation service health check failed: {e}")
            backend_health = {"status": "unhealthy", "error": str(e)}

    healthy = (
        store_health.get("status", "healthy") == "healthy"
        and backend_health.get("status") != "unhealthy"
    )
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        service=settings.app_name,
        store=store_health,
        recommendation_service=backend_health,
    )
