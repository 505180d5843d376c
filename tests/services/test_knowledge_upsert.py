"""
Unit Tests for KnowledgeUpsertPolicy

Tests the create-vs-update decision, content composition per action type,
validation and degraded-embedding behaviour against the in-memory store.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from app.ai_core.embedding import EmbeddingProviderError
from app.integrations.store import (
    InMemoryRecordStore,
    StoreError,
    DuplicateRecordError,
)
from app.models.knowledge import KnowledgeCandidate, UpsertOperation
from app.services.knowledge_upsert import KnowledgeUpsertPolicy, ValidationError

SEPARATOR = "\n\n---\n\n"


class StepClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self):
        self.current = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def embedding_provider():
    provider = MagicMock()
    provider.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return provider


@pytest.fixture
def policy(store, embedding_provider):
    return KnowledgeUpsertPolicy(
        store, embedding_provider, merge_separator=SEPARATOR, clock=StepClock()
    )


def make_candidate(**overrides):
    data = {
        "main_category": "Technology & Engineering",
        "sub_category": "React Hooks",
        "content": "Hooks let you use state in function components.",
        "tags": ["react"],
        "action_type": "create_new",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_create_on_empty_store(policy, store, embedding_provider):
    """A new sub-category creates exactly one record with the given fields."""
    result = await policy.upsert(make_candidate())

    assert result.operation == UpsertOperation.CREATED
    assert result.embedding_updated is True
    assert result.warning is None

    record = result.record
    assert record.main_category == "Technology & Engineering"
    assert record.sub_category == "React Hooks"
    assert record.content == "Hooks let you use state in function components."
    assert record.tags == ["react"]
    assert record.source == "text"
    assert record.embedding == [0.1, 0.2, 0.3]
    assert record.created_at == record.last_updated

    assert len(await store.list_records()) == 1
    embedding_provider.embed.assert_awaited_once_with(
        "Hooks let you use state in function components."
    )


@pytest.mark.asyncio
async def test_update_replaces_content_and_advances_timestamp(policy, store):
    """Re-running with action_type update replaces content on the same record."""
    created = await policy.upsert(make_candidate())

    new_content = "Hooks let you use state and effects in function components."
    updated = await policy.upsert(
        make_candidate(action_type="update", content=new_content)
    )

    assert updated.operation == UpsertOperation.UPDATED
    assert updated.record.id == created.record.id
    assert updated.record.content == new_content
    assert updated.record.last_updated > created.record.last_updated
    assert updated.record.created_at == created.record.created_at
    assert len(await store.list_records()) == 1


@pytest.mark.asyncio
async def test_repeated_update_does_not_duplicate(policy, store):
    await policy.upsert(make_candidate(action_type="update", content="First"))
    await policy.upsert(make_candidate(action_type="update", content="First"))

    records = await store.list_records()
    assert len(records) == 1
    assert records[0].content == "First"


@pytest.mark.asyncio
async def test_merge_appends_with_separator(policy, embedding_provider):
    """Merge keeps existing then incoming content, separated by a rule."""
    await policy.upsert(make_candidate(content="A"))
    result = await policy.upsert(make_candidate(action_type="merge", content="B"))

    assert result.operation == UpsertOperation.UPDATED
    assert result.record.content == f"A{SEPARATOR}B"
    assert result.record.content.index("A") < result.record.content.index("---")
    assert result.record.content.index("---") < result.record.content.index("B")

    # Merged text is what gets re-embedded
    embedding_provider.embed.assert_awaited_with(f"A{SEPARATOR}B")


@pytest.mark.asyncio
async def test_merge_keeps_duplicate_text_verbatim(policy):
    await policy.upsert(make_candidate(content="Same fact."))
    result = await policy.upsert(make_candidate(action_type="merge", content="Same fact."))

    assert result.record.content == f"Same fact.{SEPARATOR}Same fact."


@pytest.mark.asyncio
async def test_merge_onto_blank_content_stores_incoming_text(policy, store):
    existing = await policy.upsert(make_candidate(content="A"))
    await store.update(existing.record.id, {"content": "   "})

    result = await policy.upsert(make_candidate(action_type="merge", content="B"))

    assert result.operation == UpsertOperation.UPDATED
    assert result.record.content == "B"


@pytest.mark.asyncio
async def test_create_new_on_existing_overwrites(policy, store):
    await policy.upsert(make_candidate(content="Old"))
    result = await policy.upsert(make_candidate(action_type="create_new", content="New"))

    assert result.operation == UpsertOperation.UPDATED
    assert result.record.content == "New"
    assert len(await store.list_records()) == 1


@pytest.mark.asyncio
async def test_update_replaces_tags(policy):
    """Tags are fully replaced, never unioned."""
    await policy.upsert(make_candidate(tags=["react", "hooks"]))
    result = await policy.upsert(make_candidate(action_type="update", tags=["state"]))

    assert result.record.tags == ["state"]


@pytest.mark.asyncio
async def test_dedup_ignores_main_category(policy, store):
    """Only sub_category is the key; a different main category updates the record."""
    created = await policy.upsert(make_candidate())
    result = await policy.upsert(
        make_candidate(main_category="Computer Science", action_type="update")
    )

    assert result.operation == UpsertOperation.UPDATED
    assert result.record.id == created.record.id
    assert result.record.main_category == "Computer Science"
    assert len(await store.list_records()) == 1


@pytest.mark.asyncio
async def test_accepts_candidate_model(policy):
    result = await policy.upsert(KnowledgeCandidate(**make_candidate()))
    assert result.operation == UpsertOperation.CREATED


@pytest.mark.asyncio
async def test_source_defaults_and_is_overwritten(policy):
    created = await policy.upsert(make_candidate(source="file"))
    assert created.record.source == "file"

    updated = await policy.upsert(make_candidate(action_type="update"))
    assert updated.record.source == "text"


# Validation


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"main_category": ""},
        {"main_category": None},
        {"sub_category": "   "},
        {"content": "   "},
        {"content": None},
        {"tags": 42},
        {"tags": '["unterminated'},
        {"tags": ["ok", 3]},
        {"action_type": "replace"},
    ],
)
async def test_invalid_candidates_raise_before_io(overrides):
    store = MagicMock()
    store.find_by_sub_category = AsyncMock()
    provider = MagicMock()
    provider.embed = AsyncMock()
    policy = KnowledgeUpsertPolicy(store, provider, merge_separator=SEPARATOR)

    with pytest.raises(ValidationError):
        await policy.upsert(make_candidate(**overrides))

    store.find_by_sub_category.assert_not_awaited()
    provider.embed.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_fields_raise_validation_error(policy):
    with pytest.raises(ValidationError):
        await policy.upsert({"main_category": "", "sub_category": "X", "content": "Y"})

    with pytest.raises(ValidationError):
        await policy.upsert({"main_category": "X", "sub_category": "Y", "content": "   "})


@pytest.mark.asyncio
async def test_tags_normalized(policy):
    bare = await policy.upsert(make_candidate(sub_category="One", tags="react"))
    assert bare.record.tags == ["react"]

    encoded = await policy.upsert(make_candidate(sub_category="Two", tags='["a", "b"]'))
    assert encoded.record.tags == ["a", "b"]

    missing = await policy.upsert(make_candidate(sub_category="Three", tags=None))
    assert missing.record.tags == []


@pytest.mark.asyncio
async def test_categories_are_trimmed(policy, store):
    await policy.upsert(make_candidate(sub_category="React Hooks "))
    result = await policy.upsert(
        make_candidate(sub_category=" React Hooks", action_type="update")
    )

    assert result.operation == UpsertOperation.UPDATED
    assert result.record.sub_category == "React Hooks"
    assert len(await store.list_records()) == 1


# Degraded embedding


@pytest.mark.asyncio
async def test_embedding_failure_on_create_is_not_fatal(policy, embedding_provider):
    embedding_provider.embed.side_effect = EmbeddingProviderError("quota exceeded")

    result = await policy.upsert(make_candidate())

    assert result.operation == UpsertOperation.CREATED
    assert result.embedding_updated is False
    assert result.warning is not None
    assert result.record.embedding is None


@pytest.mark.asyncio
async def test_embedding_failure_on_update_keeps_previous_embedding(
    policy, embedding_provider
):
    await policy.upsert(make_candidate())

    embedding_provider.embed.side_effect = EmbeddingProviderError("timeout")
    result = await policy.upsert(make_candidate(action_type="update", content="New"))

    assert result.operation == UpsertOperation.UPDATED
    assert result.record.content == "New"
    assert result.embedding_updated is False
    assert "Embedding" in result.warning
    assert result.record.embedding == [0.1, 0.2, 0.3]


# Store failures and races


@pytest.mark.asyncio
async def test_store_error_propagates(embedding_provider):
    store = MagicMock()
    store.find_by_sub_category = AsyncMock(return_value=None)
    store.insert = AsyncMock(side_effect=StoreError("connection reset"))
    policy = KnowledgeUpsertPolicy(store, embedding_provider, merge_separator=SEPARATOR)

    with pytest.raises(StoreError):
        await policy.upsert(make_candidate())


class RacingStore(InMemoryRecordStore):
    """Hides an existing record from the first lookup, as if created concurrently."""

    def __init__(self):
        super().__init__()
        self.lookups = 0

    async def find_by_sub_category(self, sub_category):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return await super().find_by_sub_category(sub_category)


@pytest.mark.asyncio
async def test_concurrent_create_falls_back_to_update(embedding_provider):
    store = RacingStore()
    policy = KnowledgeUpsertPolicy(
        store, embedding_provider, merge_separator=SEPARATOR, clock=StepClock()
    )
    await store.insert(
        {
            "main_category": "Technology & Engineering",
            "sub_category": "React Hooks",
            "content": "Winner",
            "tags": [],
        }
    )

    result = await policy.upsert(make_candidate(action_type="merge", content="Loser"))

    assert result.operation == UpsertOperation.UPDATED
    assert result.record.content == f"Winner{SEPARATOR}Loser"
    assert len(await store.list_records()) == 1


@pytest.mark.asyncio
async def test_duplicate_without_readable_winner_raises_store_error(embedding_provider):
    store = MagicMock()
    store.find_by_sub_category = AsyncMock(return_value=None)
    store.insert = AsyncMock(side_effect=DuplicateRecordError("React Hooks"))
    policy = KnowledgeUpsertPolicy(store, embedding_provider, merge_separator=SEPARATOR)

    with pytest.raises(StoreError):
        await policy.upsert(make_candidate())
