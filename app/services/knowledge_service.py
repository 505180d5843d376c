"""
Knowledge Service

Read, administrative and bulk operations on the knowledge base. Single writes
go through KnowledgeUpsertPolicy; this service adds listing, search,
statistics, direct edits, deletion, batch upserts and the legacy schema
migration.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from app.ai_core.embedding import EmbeddingProvider, EmbeddingProviderError
from app.integrations.store import RecordStore, RecordNotFoundError, StoreError
from app.models.api_responses import (
    BatchFailure,
    BatchUpsertResponse,
    CategoryGroup,
    KnowledgeStats,
    MigrationFailure,
    MigrationResponse,
    UpsertResponse,
)
from app.models.knowledge import (
    DEFAULT_MAIN_CATEGORY,
    KnowledgeCandidate,
    KnowledgeRecord,
)
from app.services.knowledge_upsert import KnowledgeUpsertPolicy, ValidationError
from app.utils import TagParseError, parse_tags

logger = logging.getLogger(__name__)

STRONG_THRESHOLD = 0.8
WEAK_THRESHOLD = 0.5

# Fields a direct edit may change
EDITABLE_FIELDS = {
    "main_category",
    "sub_category",
    "content",
    "tags",
    "source",
    "strength_score",
}


def _validate_strength_score(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"strength_score must be a number, got {value!r}")
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"strength_score must be between 0 and 1, got {value}")
    return float(value)


class KnowledgeService:
    """
    Facade over the record store for everything except single upserts.
    """

    def __init__(
        self,
        store: RecordStore,
        embedding_provider: EmbeddingProvider,
        upsert_policy: KnowledgeUpsertPolicy,
    ):
        self.store = store
        self.embedding_provider = embedding_provider
        self.upsert_policy = upsert_policy

    async def list_all(self) -> List[KnowledgeRecord]:
        records = await self.store.list_records()
        logger.info(f"Loaded {len(records)} knowledge items")
        return records

    async def get(self, record_id: str) -> KnowledgeRecord:
        record = await self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    async def list_records(
        self,
        main_category: Optional[str] = None,
        sub_category: Optional[str] = None,
    ) -> List[KnowledgeRecord]:
        if main_category is None and sub_category is None:
            return await self.list_all()
        return await self.store.list_records(
            main_category=main_category, sub_category=sub_category
        )

    async def search(self, term: str, limit: int = 20) -> List[KnowledgeRecord]:
        if not term or not term.strip():
            return []
        return await self.store.search(term.strip(), limit=limit)

    async def update_record(
        self, record_id: str, updates: Dict[str, Any]
    ) -> KnowledgeRecord:
        """
        Apply a direct edit to a record.

        A new embedding is generated when content changes and the caller did
        not supply one. Embedding failures keep the previous embedding.

        Raises:
            ValidationError: Unknown field, blank required field, bad tags or
                a strength_score outside [0, 1]
            RecordNotFoundError: No record with this id
            StoreError: The write failed
        """
        unknown = set(updates) - EDITABLE_FIELDS - {"embedding"}
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        changes = dict(updates)
        for field in ("main_category", "sub_category", "content"):
            if field in changes and (
                not isinstance(changes[field], str) or not changes[field].strip()
            ):
                raise ValidationError(f"{field} cannot be empty")

        # Same keys the upsert policy would look up
        for field in ("main_category", "sub_category"):
            if field in changes:
                changes[field] = changes[field].strip()

        if "strength_score" in changes:
            changes["strength_score"] = _validate_strength_score(
                changes["strength_score"]
            )

        if "tags" in changes:
            try:
                changes["tags"] = parse_tags(changes["tags"])
            except TagParseError as e:
                raise ValidationError(f"Invalid tags: {e}") from e

        if changes.get("content") and not changes.get("embedding"):
            try:
                changes["embedding"] = await self.embedding_provider.embed(
                    changes["content"]
                )
            except EmbeddingProviderError as e:
                logger.warning(f"Keeping previous embedding for {record_id}: {e}")
                changes.pop("embedding", None)

        changes["last_updated"] = self.upsert_policy.clock()
        record = await self.store.update(record_id, changes)
        logger.info(f"Updated knowledge record {record_id}")
        return record

    async def delete(self, record_id: str) -> None:
        await self.store.delete(record_id)

    async def get_stats(self) -> KnowledgeStats:
        records = await self.list_all()

        main_categories: Dict[str, None] = {}
        sub_categories: Dict[str, None] = {}
        tags: Dict[str, None] = {}
        sources: Dict[str, None] = {}
        scores = []

        # dicts keep first-seen order
        for record in records:
            main_categories.setdefault(record.main_category)
            sub_categories.setdefault(record.sub_category)
            sources.setdefault(record.source)
            for tag in record.tags:
                tags.setdefault(tag)
            if record.strength_score is not None:
                scores.append(record.strength_score)

        return KnowledgeStats(
            total_items=len(records),
            unique_main_categories=len(main_categories),
            unique_sub_categories=len(sub_categories),
            unique_tags=len(tags),
            unique_sources=len(sources),
            avg_strength_score=sum(scores) / len(scores) if scores else 0.0,
            items_with_strength_score=len(scores),
            strong_items=sum(1 for s in scores if s >= STRONG_THRESHOLD),
            weak_items=sum(1 for s in scores if s < WEAK_THRESHOLD),
            main_categories=list(main_categories),
            sub_categories=list(sub_categories),
            tags=list(tags),
            sources=list(sources),
        )

    async def get_categories_grouped(self) -> Dict[str, CategoryGroup]:
        grouped: Dict[str, CategoryGroup] = {}
        for record in await self.list_all():
            group = grouped.setdefault(
                record.main_category,
                CategoryGroup(main_category=record.main_category),
            )
            if record.sub_category not in group.sub_categories:
                group.sub_categories.append(record.sub_category)
            group.total_items += 1
        return grouped

    async def batch_upsert(
        self, candidates: List[Union[KnowledgeCandidate, Dict[str, Any]]]
    ) -> BatchUpsertResponse:
        """
        Upsert candidates one by one; a failing item does not stop the batch.
        """
        logger.info(f"Batch upserting {len(candidates)} knowledge items")
        successful: List[UpsertResponse] = []
        failed: List[BatchFailure] = []

        for candidate in candidates:
            if isinstance(candidate, dict):
                sub_category = candidate.get("sub_category")
            else:
                sub_category = candidate.sub_category
            try:
                result = await self.upsert_policy.upsert(candidate)
                successful.append(UpsertResponse.from_result(result))
            except (ValidationError, StoreError) as e:
                logger.error(f"Error in batch upsert for '{sub_category}': {e}")
                failed.append(
                    BatchFailure(
                        sub_category=None if sub_category is None else str(sub_category),
                        error=str(e),
                    )
                )

        logger.info(
            f"Batch upsert completed: {len(successful)} successful, {len(failed)} failed"
        )
        return BatchUpsertResponse(
            successful=successful,
            failed=failed,
            total=len(candidates),
            success_count=len(successful),
            error_count=len(failed),
        )

    async def migrate_legacy_records(self) -> MigrationResponse:
        """
        Move rows from the single-category schema to main/sub categories.

        Legacy rows get main_category "General Studies" and their old
        `category` as sub_category.
        """
        legacy_rows = await self.store.list_legacy_records()
        logger.info(f"Found {len(legacy_rows)} items to migrate")

        migrated = 0
        errors: List[MigrationFailure] = []
        for row in legacy_rows:
            record_id = str(row["id"])
            sub_category = row.get("category") or "unknown"
            try:
                await self.store.update(
                    record_id,
                    {
                        "main_category": DEFAULT_MAIN_CATEGORY,
                        "sub_category": sub_category,
                        "last_updated": self.upsert_policy.clock(),
                    },
                )
                migrated += 1
                logger.info(
                    f"Migrated item {record_id}: {DEFAULT_MAIN_CATEGORY} → {sub_category}"
                )
            except StoreError as e:
                logger.error(f"Failed to migrate item {record_id}: {e}")
                errors.append(MigrationFailure(id=record_id, error=str(e)))

        logger.info(f"Migration completed: {migrated} successful, {len(errors)} failed")
        return MigrationResponse(migrated=migrated, failed=len(errors), errors=errors)
