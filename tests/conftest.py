"""Shared pytest fixtures for lifecycle service tests.

Provides:
- ``store``: Fresh InMemoryMetadataStore per test
- ``index``: Fresh InMemoryVectorIndex per test
- ``names``: CollectionNameCache resolving against ``store``
- ``fake_embedder``: deterministic embedder, no network
- ``services``: full service bundle on the in-memory stores, installed as
  the process singleton so API routes use it
"""

from __future__ import annotations

import pytest

from services.collection_names import CollectionNameCache, course_record_resolver
from services.metadata_store import InMemoryMetadataStore
from services.registry import build_services, set_services
from services.vector_index import InMemoryVectorIndex

COURSE = "APSC 100"


class FakeEmbedder:
    """Returns a 3-d vector per text and records what it was asked to embed."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [[float(len(t)), float(i), 1.0] for i, t in enumerate(texts)]


async def add_user(store, user_id: int, name: str = "Ada", affiliation: str = "student", course: str = COURSE):
    await store.insert_one(
        f"{course}_users", {"userId": user_id, "name": name, "affiliation": affiliation},
    )


@pytest.fixture
def store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture
def names(store) -> CollectionNameCache:
    return CollectionNameCache(course_record_resolver(store, "active-course-list"))


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def services(store, index, fake_embedder):
    bundle = build_services(store, index, embedder=fake_embedder)
    set_services(bundle)
    yield bundle
    set_services(None)
