"""
Curation Orchestrator Service

Orchestrates the two curate steps:
1. Process text: recommendations from the external service + a preview
2. Apply a recommendation: LLM transformation, then the upsert policy
"""

import asyncio
import logging
from typing import Optional

from app.ai_core.prompts import PREVIEW_FALLBACK
from app.ai_core.transformation import KnowledgeTransformer, TransformationError
from app.integrations.recommendation import RecommendationClient
from app.integrations.store import RecordStore
from app.models.api_responses import ProcessTextResponse
from app.models.knowledge import ActionType, KnowledgeCandidate, UpsertResult
from app.models.recommendation import Recommendation
from app.services.knowledge_upsert import KnowledgeUpsertPolicy, ValidationError

logger = logging.getLogger(__name__)


class CurationOrchestrator:
    """
    Orchestrates the curate pipeline from raw text to a stored record.
    """

    def __init__(
        self,
        recommendation_client: RecommendationClient,
        transformer: KnowledgeTransformer,
        upsert_policy: KnowledgeUpsertPolicy,
        store: RecordStore,
    ):
        self.recommendation_client = recommendation_client
        self.transformer = transformer
        self.upsert_policy = upsert_policy
        self.store = store

    async def _preview_or_fallback(self, text: str) -> str:
        try:
            return await self.transformer.generate_preview(text) or PREVIEW_FALLBACK
        except TransformationError as e:
            logger.warning(f"Preview generation failed: {e}")
            return PREVIEW_FALLBACK

    async def process_text(
        self,
        text: str,
        threshold: float = 0.8,
        goal: Optional[str] = None,
    ) -> ProcessTextResponse:
        """
        Get recommendations and a preview for submitted text, concurrently.

        A failed preview degrades to a fallback string; a failed
        recommendation call propagates.

        Raises:
            ValidationError: Empty text
            RecommendationServiceError: The recommendation backend failed
        """
        if not text or not text.strip():
            raise ValidationError("Please enter some text to process")

        goal = goal.strip() if goal and goal.strip() else None
        logger.info(f"Processing text ({len(text)} chars), goal provided: {bool(goal)}")

        recommendations, preview = await asyncio.gather(
            self.recommendation_client.process_text(text, threshold, goal),
            self._preview_or_fallback(text),
        )

        return ProcessTextResponse(
            status="success",
            recommendations=recommendations.recommendations,
            preview=preview,
            similar_main_category=recommendations.similar_main_category,
            similar_sub_category=recommendations.similar_sub_category,
            similarity_score=recommendations.similarity_score,
            goal_provided=recommendations.goal_provided,
            goal_relevance_score=recommendations.goal_relevance_score,
            goal_relevance_explanation=recommendations.goal_relevance_explanation,
        )

    async def apply_recommendation(
        self,
        text: str,
        recommendation: Recommendation,
        similar_knowledge: Optional[str] = None,
    ) -> UpsertResult:
        """
        Transform the text as the recommendation instructs and store it.

        For update recommendations the stored content of the target
        sub-category is passed to the LLM so it can return the complete
        document. Merge recommendations get the same context but return only
        the new material, which the policy appends.

        Raises:
            ValidationError: Missing text, categories or instructions
            TransformationError: The LLM pass failed
            StoreError: The write failed
        """
        if not text or not text.strip():
            raise ValidationError("Please enter some text to process")
        if (
            not recommendation.main_category.strip()
            or not recommendation.sub_category.strip()
        ):
            raise ValidationError("Recommendation missing required category information")
        if not recommendation.instructions:
            raise ValidationError("Recommendation missing instructions")

        logger.info(
            f"Applying recommendation: {recommendation.main_category} → "
            f"{recommendation.sub_category} ({recommendation.action_type.value})"
        )

        existing_content = None
        if recommendation.action_type != ActionType.CREATE_NEW:
            # The upsert policy looks up the trimmed key
            existing = await self.store.find_by_sub_category(
                recommendation.sub_category.strip()
            )
            existing_content = existing.content if existing else None

        processed_text = await self.transformer.transform(
            instructions=recommendation.instructions,
            input_text=text,
            action_type=recommendation.action_type,
            main_category=recommendation.main_category,
            sub_category=recommendation.sub_category,
            tags=recommendation.tags,
            similar_knowledge=similar_knowledge,
            existing_content=existing_content,
        )

        candidate = KnowledgeCandidate(
            main_category=recommendation.main_category,
            sub_category=recommendation.sub_category,
            content=processed_text,
            tags=recommendation.tags or ["knowledge"],
            action_type=recommendation.action_type,
            source="text",
        )
        return await self.upsert_policy.upsert(candidate)
