"""Vector index — similarity store for embedded course-material chunks.

The vector index and the metadata store fail independently.  Nothing in
this module knows about metadata records; keeping the two consistent is
the job of :mod:`course_backend.document_lifecycle`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from models.document import VectorPoint

logger = logging.getLogger(__name__)

# Chroma deletes reliably only up to a limited batch size
DELETE_BATCH_SIZE = 500


# ── Abstract Interface ───────────────────────────────────────


class VectorIndex(ABC):
    """Abstract vector index — implement for different backends."""

    @abstractmethod
    async def upsert(self, points: list[VectorPoint]) -> list[str]:
        """Insert or replace points.  Returns their ids in input order."""
        ...

    @abstractmethod
    async def delete_by_ids(self, ids: list[str]) -> None:
        ...

    @abstractmethod
    async def delete_by_filter(self, metadata_filter: dict[str, Any]) -> int:
        """Delete every point whose payload matches; returns the number removed."""
        ...

    @abstractmethod
    async def query_by_metadata(self, metadata_filter: dict[str, Any]) -> list[VectorPoint]:
        ...

    @abstractmethod
    async def drop_and_recreate(self) -> None:
        """Drop the whole collection and create it again, empty."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    async def close(self) -> None:
        return None


# ── In-Memory Implementation ────────────────────────────────


def _payload_matches(payload: dict[str, Any], metadata_filter: dict[str, Any]) -> bool:
    return all(payload.get(k) == v for k, v in metadata_filter.items())


class InMemoryVectorIndex(VectorIndex):
    """Dict-backed index for tests and local development."""

    def __init__(self) -> None:
        self._points: dict[str, VectorPoint] = {}

    async def upsert(self, points: list[VectorPoint]) -> list[str]:
        for point in points:
            self._points[point.id] = point.model_copy(deep=True)
        return [p.id for p in points]

    async def delete_by_ids(self, ids: list[str]) -> None:
        for point_id in ids:
            self._points.pop(point_id, None)

    async def delete_by_filter(self, metadata_filter: dict[str, Any]) -> int:
        if not metadata_filter:
            raise ValueError("delete_by_filter requires a non-empty filter")
        doomed = [pid for pid, p in self._points.items() if _payload_matches(p.payload, metadata_filter)]
        for pid in doomed:
            del self._points[pid]
        return len(doomed)

    async def query_by_metadata(self, metadata_filter: dict[str, Any]) -> list[VectorPoint]:
        return [
            p.model_copy(deep=True)
            for p in self._points.values()
            if _payload_matches(p.payload, metadata_filter)
        ]

    async def drop_and_recreate(self) -> None:
        self._points.clear()

    async def count(self) -> int:
        return len(self._points)

    def ids(self) -> set[str]:
        return set(self._points)


# ── Chroma Implementation ────────────────────────────────────


def _chroma_where(metadata_filter: dict[str, Any]) -> dict[str, Any] | None:
    """Chroma accepts one equality per ``where``; combine several with ``$and``."""
    if not metadata_filter:
        return None
    if len(metadata_filter) == 1:
        return dict(metadata_filter)
    return {"$and": [{k: v} for k, v in metadata_filter.items()]}


def _clean_metadata(payload: dict[str, Any]) -> dict[str, Any]:
    # Chroma rejects None values and non-scalar metadata
    return {
        k: v for k, v in payload.items()
        if v is not None and isinstance(v, (str, int, float, bool))
    }


class ChromaVectorIndex(VectorIndex):
    """ChromaDB-backed index using the async HTTP client."""

    def __init__(self, host: str, port: int, collection_name: str) -> None:
        self._host = host
        self._port = port
        self._collection_name = collection_name
        self._client = None
        self._collection = None

    async def _get_client(self):
        if self._client is None:
            import chromadb

            self._client = await chromadb.AsyncHttpClient(host=self._host, port=self._port)
            logger.info("Connected to Chroma at %s:%d", self._host, self._port)
        return self._client

    async def _get_collection(self):
        if self._collection is None:
            client = await self._get_client()
            self._collection = await client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        return self._collection

    async def upsert(self, points: list[VectorPoint]) -> list[str]:
        if not points:
            return []
        collection = await self._get_collection()
        await collection.upsert(
            ids=[p.id for p in points],
            embeddings=[p.vector for p in points],
            metadatas=[_clean_metadata(p.payload) for p in points],
            documents=[p.text for p in points],
        )
        return [p.id for p in points]

    async def delete_by_ids(self, ids: list[str]) -> None:
        if not ids:
            return
        collection = await self._get_collection()
        for start in range(0, len(ids), DELETE_BATCH_SIZE):
            await collection.delete(ids=ids[start:start + DELETE_BATCH_SIZE])

    async def delete_by_filter(self, metadata_filter: dict[str, Any]) -> int:
        where = _chroma_where(metadata_filter)
        if where is None:
            raise ValueError("delete_by_filter requires a non-empty filter")
        collection = await self._get_collection()
        matched = await collection.get(where=where, include=[])
        await collection.delete(where=where)
        return len(matched["ids"])

    async def query_by_metadata(self, metadata_filter: dict[str, Any]) -> list[VectorPoint]:
        collection = await self._get_collection()
        result = await collection.get(
            where=_chroma_where(metadata_filter),
            include=["metadatas", "documents"],
        )
        metadatas = result.get("metadatas") or []
        documents = result.get("documents") or []
        return [
            VectorPoint(
                id=point_id,
                payload=dict(metadatas[i] or {}) if i < len(metadatas) else {},
                text=(documents[i] or "") if i < len(documents) else "",
            )
            for i, point_id in enumerate(result["ids"])
        ]

    async def drop_and_recreate(self) -> None:
        client = await self._get_client()
        try:
            await client.delete_collection(self._collection_name)
        except Exception as exc:
            # Missing collection is the desired end state
            logger.warning("Chroma delete_collection('%s') failed: %s", self._collection_name, exc)
        self._collection = None
        await self._get_collection()
        logger.info("Recreated empty Chroma collection '%s'", self._collection_name)

    async def count(self) -> int:
        collection = await self._get_collection()
        return await collection.count()


# ── Module-level Singleton ───────────────────────────────────

_index: VectorIndex | None = None


def get_vector_index() -> VectorIndex:
    """Get the singleton vector index instance."""
    global _index
    if _index is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.vector_store_type == "chroma":
            _index = ChromaVectorIndex(
                host=settings.chroma_host,
                port=settings.chroma_port,
                collection_name=settings.vector_collection,
            )
            logger.info("Initialized ChromaVectorIndex (collection=%s)", settings.vector_collection)
        else:
            _index = InMemoryVectorIndex()
            logger.info("Initialized InMemoryVectorIndex")
    return _index
