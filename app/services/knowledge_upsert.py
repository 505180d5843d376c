"""
Knowledge Upsert Policy

Finalizes a knowledge write: decides between inserting a new record and
updating the existing record for the same sub-category, composes the stored
content from the action hint, and (re)generates the embedding.

The similarity decision has already been made upstream by the recommendation
service; this policy only keys on sub_category.

Content composition by action type:
- merge: existing content + separator + incoming content, both verbatim.
  The caller passes only the new material (see app.ai_core.prompts.transformation).
- update: incoming content is already fully composed and replaces the record.
- create_new: incoming content replaces the record if one exists.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import pydantic

from app.ai_core.embedding import EmbeddingProvider, EmbeddingProviderError
from app.config import get_settings
from app.integrations.store import RecordStore, StoreError, DuplicateRecordError
from app.models.knowledge import (
    ActionType,
    KnowledgeCandidate,
    KnowledgeRecord,
    UpsertOperation,
    UpsertResult,
    DEFAULT_SOURCE,
)
from app.utils import TagParseError, parse_tags, compose_merged_content

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """
    Raised when a candidate is missing a required field or has malformed tags.
    This is a caller error (422) - raised before any I/O, never retried.
    """

    pass


@dataclass
class _ValidCandidate:
    main_category: str
    sub_category: str
    content: str
    tags: List[str]
    action_type: ActionType
    source: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _required_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value


class KnowledgeUpsertPolicy:
    """
    Insert-or-update for knowledge records keyed by sub_category.

    The store must enforce uniqueness of sub_category. When two requests race
    to create the same sub-category, the loser's insert raises
    DuplicateRecordError and the policy continues down the update path
    against the winner's record.
    """

    def __init__(
        self,
        store: RecordStore,
        embedding_provider: EmbeddingProvider,
        merge_separator: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.embedding_provider = embedding_provider
        self.merge_separator = (
            merge_separator if merge_separator is not None else get_settings().merge_separator
        )
        self.clock = clock

    def validate(
        self, candidate: Union[KnowledgeCandidate, Dict[str, Any]]
    ) -> _ValidCandidate:
        """
        Check required fields and normalize tags and action type.

        Raises:
            ValidationError: On a missing/blank field, unparseable tags or an
                unknown action type
        """
        if isinstance(candidate, dict):
            try:
                candidate = KnowledgeCandidate(**candidate)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid knowledge item: {e}") from e

        main_category = _required_text(candidate.main_category, "main_category").strip()
        sub_category = _required_text(candidate.sub_category, "sub_category").strip()
        content = _required_text(candidate.content, "content")

        try:
            tags = parse_tags(candidate.tags)
        except TagParseError as e:
            raise ValidationError(f"Invalid tags: {e}") from e

        try:
            action_type = ActionType(candidate.action_type or ActionType.CREATE_NEW)
        except ValueError as e:
            raise ValidationError(
                f"Unknown action_type: {candidate.action_type!r}"
            ) from e

        return _ValidCandidate(
            main_category=main_category,
            sub_category=sub_category,
            content=content,
            tags=tags,
            action_type=action_type,
            source=(candidate.source or "").strip() or DEFAULT_SOURCE,
        )

    async def upsert(
        self, candidate: Union[KnowledgeCandidate, Dict[str, Any]]
    ) -> UpsertResult:
        """
        Create or update the record for the candidate's sub-category.

        Args:
            candidate: KnowledgeCandidate or a dict with the same fields

        Returns:
            UpsertResult with operation "created" or "updated"

        Raises:
            ValidationError: Candidate is invalid (no I/O performed)
            StoreError: A read or write failed
        """
        valid = self.validate(candidate)
        logger.info(
            f"Upserting {valid.main_category} → {valid.sub_category} "
            f"({valid.action_type.value})"
        )

        existing = await self.store.find_by_sub_category(valid.sub_category)
        if existing is None:
            try:
                return await self._create(valid)
            except DuplicateRecordError:
                logger.warning(
                    f"Sub-category '{valid.sub_category}' was created concurrently, "
                    f"updating instead"
                )
                existing = await self.store.find_by_sub_category(valid.sub_category)
                if existing is None:
                    raise StoreError(
                        f"Sub-category '{valid.sub_category}' reported as duplicate "
                        f"but could not be read back"
                    )

        return await self._update(existing, valid)

    async def _embed(self, text: str) -> Optional[List[float]]:
        try:
            return await self.embedding_provider.embed(text)
        except EmbeddingProviderError as e:
            logger.warning(f"Proceeding without embedding: {e}")
            return None

    async def _create(self, valid: _ValidCandidate) -> UpsertResult:
        embedding = await self._embed(valid.content)
        now = self.clock()

        data = {
            "main_category": valid.main_category,
            "sub_category": valid.sub_category,
            "content": valid.content,
            "tags": valid.tags,
            "source": valid.source,
            "created_at": now,
            "last_updated": now,
        }
        if embedding is not None:
            data["embedding"] = embedding

        record = await self.store.insert(data)
        logger.info(f"Created knowledge record {record.id} for '{valid.sub_category}'")

        return UpsertResult(
            record=record,
            operation=UpsertOperation.CREATED,
            embedding_updated=embedding is not None,
            warning=None if embedding is not None else "Embedding generation failed",
        )

    def _compose_content(self, existing_content: str, valid: _ValidCandidate) -> str:
        if valid.action_type == ActionType.MERGE and existing_content.strip():
            return compose_merged_content(
                existing_content, valid.content, self.merge_separator
            )
        return valid.content

    async def _update(
        self, existing: KnowledgeRecord, valid: _ValidCandidate
    ) -> UpsertResult:
        final_content = self._compose_content(existing.content, valid)
        embedding = await self._embed(final_content)

        data = {
            "main_category": valid.main_category,
            "sub_category": valid.sub_category,
            "content": final_content,
            "tags": valid.tags,
            "source": valid.source,
            "last_updated": self.clock(),
        }
        if embedding is not None:
            data["embedding"] = embedding

        record = await self.store.update(existing.id, data)
        logger.info(
            f"Updated knowledge record {record.id} for '{valid.sub_category}' "
            f"({valid.action_type.value})"
        )

        return UpsertResult(
            record=record,
            operation=UpsertOperation.UPDATED,
            embedding_updated=embedding is not None,
            warning=(
                None
                if embedding is not None
                else "Embedding generation failed; previous embedding kept"
            ),
        )
