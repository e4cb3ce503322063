"""Tests for the in-memory metadata store and vector index."""

from __future__ import annotations

import pytest

from errors import DuplicateEntryError
from models.document import VectorPoint
from services.vector_index import _chroma_where, _clean_metadata


class TestInMemoryMetadataStore:
    @pytest.mark.asyncio
    async def test_returns_copies(self, store):
        await store.insert_one("c", {"id": "a", "tags": ["x"]})
        doc = await store.find_one("c", {"id": "a"})
        doc["tags"].append("y")
        assert (await store.find_one("c", {"id": "a"}))["tags"] == ["x"]

    @pytest.mark.asyncio
    async def test_in_filter_and_sort(self, store):
        for i, status in enumerate(["resolved", "unresolved", "resolved"]):
            await store.insert_one("c", {"id": i, "status": status})
        docs = await store.find("c", {"status": {"$in": ["resolved"]}}, sort=[("id", -1)])
        assert [d["id"] for d in docs] == [2, 0]

    @pytest.mark.asyncio
    async def test_find_one_and_update_returns_after(self, store):
        await store.insert_one("c", {"id": "a", "status": "unresolved"})
        updated = await store.find_one_and_update("c", {"id": "a"}, {"status": "resolved"})
        assert updated["status"] == "resolved"
        assert await store.find_one_and_update("c", {"id": "missing"}, {"status": "x"}) is None

    @pytest.mark.asyncio
    async def test_unique_index(self, store):
        await store.create_index("c", [("userId", 1)], name="userId_unique", unique=True)
        await store.insert_one("c", {"userId": 1})
        with pytest.raises(DuplicateEntryError) as exc_info:
            await store.insert_one("c", {"userId": 1})
        assert exc_info.value.key == {"userId": 1}
        await store.insert_one("c", {"userId": 2})
        assert store.count("c") == 2

    @pytest.mark.asyncio
    async def test_delete_counts(self, store):
        for i in range(3):
            await store.insert_one("c", {"id": i, "course": "A" if i else "B"})
        assert await store.delete_one("c", {"id": 99}) == 0
        assert await store.delete_many("c", {"course": "A"}) == 2
        assert store.count("c") == 1


class TestInMemoryVectorIndex:
    @pytest.mark.asyncio
    async def test_filter_delete(self, index):
        await index.upsert([
            VectorPoint(id="a", payload={"courseName": "X"}),
            VectorPoint(id="b", payload={"courseName": "Y"}),
        ])
        assert await index.delete_by_filter({"courseName": "X"}) == 1
        assert index.ids() == {"b"}

    @pytest.mark.asyncio
    async def test_filter_delete_requires_filter(self, index):
        with pytest.raises(ValueError):
            await index.delete_by_filter({})

    @pytest.mark.asyncio
    async def test_upsert_replaces(self, index):
        await index.upsert([VectorPoint(id="a", text="old")])
        await index.upsert([VectorPoint(id="a", text="new")])
        assert await index.count() == 1
        assert (await index.query_by_metadata({}))[0].text == "new"


def test_chroma_where_combines_with_and():
    assert _chroma_where({}) is None
    assert _chroma_where({"courseName": "X"}) == {"courseName": "X"}
    assert _chroma_where({"courseName": "X", "id": "d"}) == {
        "$and": [{"courseName": "X"}, {"id": "d"}],
    }


def test_clean_metadata_drops_unsupported_values():
    assert _clean_metadata({"a": 1, "b": None, "c": ["x"], "d": "s"}) == {"a": 1, "d": "s"}
