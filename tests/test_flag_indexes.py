"""Tests for flag / ledger index creation."""

from __future__ import annotations

import pytest

from errors import DuplicateEntryError
from services.flag_indexes import FLAG_INDEXES, LEDGER_UNIQUE_INDEX, ConsistencyIndexManager
from services.metadata_store import InMemoryMetadataStore
from tests.conftest import COURSE


class FailingIndexStore(InMemoryMetadataStore):
    """Rejects creation of the named indexes."""

    def __init__(self, failing: set[str]) -> None:
        super().__init__()
        self.failing = failing

    async def create_index(self, collection, keys, name, unique=False):
        if name in self.failing:
            raise RuntimeError(f"index {name} conflicts with an existing index")
        return await super().create_index(collection, keys, name, unique)


@pytest.mark.asyncio
async def test_all_flag_indexes_created(store, names):
    result = await ConsistencyIndexManager(store, names).ensure_flag_indexes(COURSE)
    assert result.success
    assert result.indexes_created == list(FLAG_INDEXES)
    assert result.errors == []
    assert sorted(store.index_names(f"{COURSE}_flags")) == sorted(FLAG_INDEXES)


@pytest.mark.asyncio
async def test_partial_failure_reported_not_raised():
    from services.collection_names import CollectionNameCache, course_record_resolver

    store = FailingIndexStore({"userId"})
    names = CollectionNameCache(course_record_resolver(store, "active-course-list"))
    result = await ConsistencyIndexManager(store, names).ensure_flag_indexes(COURSE)

    assert result.success is False
    assert "userId" not in result.indexes_created
    assert len(result.indexes_created) == 3
    assert len(result.errors) == 1
    assert result.errors[0].startswith("userId:")


@pytest.mark.asyncio
async def test_ledger_index_is_unique(store, names):
    result = await ConsistencyIndexManager(store, names).ensure_ledger_indexes(COURSE)
    assert result.indexes_created == [LEDGER_UNIQUE_INDEX]

    collection = f"{COURSE}_memory-agent"
    await store.insert_one(collection, {"userId": 1})
    with pytest.raises(DuplicateEntryError):
        await store.insert_one(collection, {"userId": 1})
