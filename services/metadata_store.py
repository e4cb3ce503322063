"""Metadata store — the document-oriented store of record.

Flags, struggle-topic ledgers, course users and course-material records
all live here.  The interface is a narrow slice of a MongoDB collection
API so the in-memory implementation (tests, local development) and the
Motor-backed implementation are interchangeable.

Unique-index violations surface as :class:`errors.DuplicateEntryError`
from every implementation; callers never see backend error codes.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any

from errors import DuplicateEntryError

logger = logging.getLogger(__name__)

Document = dict[str, Any]
IndexKeys = list[tuple[str, int]]

# MongoDB write-error codes for duplicate keys
DUPLICATE_KEY_CODES = frozenset({11000, 11001})


# ── Abstract Interface ───────────────────────────────────────


class MetadataStore(ABC):
    """Abstract metadata store — implement for different backends."""

    @abstractmethod
    async def insert_one(self, collection: str, document: Document) -> None:
        """Insert a document.  Raises DuplicateEntryError on unique-index conflict."""
        ...

    @abstractmethod
    async def find_one(self, collection: str, query: Document) -> Document | None:
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        query: Document | None = None,
        sort: IndexKeys | None = None,
    ) -> list[Document]:
        ...

    @abstractmethod
    async def find_one_and_update(
        self, collection: str, query: Document, fields: Document,
    ) -> Document | None:
        """``$set`` *fields* on the first match and return the updated document."""
        ...

    @abstractmethod
    async def delete_one(self, collection: str, query: Document) -> int:
        ...

    @abstractmethod
    async def delete_many(self, collection: str, query: Document) -> int:
        ...

    @abstractmethod
    async def create_index(
        self, collection: str, keys: IndexKeys, name: str, unique: bool = False,
    ) -> str:
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


# ── In-Memory Implementation ────────────────────────────────


def _matches(document: Document, query: Document) -> bool:
    for key, expected in query.items():
        actual = document.get(key)
        if isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif actual != expected:
            return False
    return True


class InMemoryMetadataStore(MetadataStore):
    """Dict-of-lists store with equality / ``$in`` filters and unique indexes.

    Suitable for tests and single-process development.  Documents are
    deep-copied in and out so callers cannot mutate stored state.
    """

    def __init__(self) -> None:
        self._collections: dict[str, list[Document]] = {}
        self._indexes: dict[str, dict[str, tuple[IndexKeys, bool]]] = {}

    def _docs(self, collection: str) -> list[Document]:
        return self._collections.setdefault(collection, [])

    def _check_unique(self, collection: str, document: Document) -> None:
        for keys, unique in self._indexes.get(collection, {}).values():
            if not unique:
                continue
            key = {field: document.get(field) for field, _ in keys}
            if any(_matches(existing, key) for existing in self._docs(collection)):
                raise DuplicateEntryError(collection, key)

    async def insert_one(self, collection: str, document: Document) -> None:
        self._check_unique(collection, document)
        self._docs(collection).append(copy.deepcopy(document))

    async def find_one(self, collection: str, query: Document) -> Document | None:
        for document in self._docs(collection):
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    async def find(
        self,
        collection: str,
        query: Document | None = None,
        sort: IndexKeys | None = None,
    ) -> list[Document]:
        results = [
            copy.deepcopy(d) for d in self._docs(collection) if _matches(d, query or {})
        ]
        for field, direction in reversed(sort or []):
            results.sort(key=lambda d: d.get(field), reverse=direction < 0)
        return results

    async def find_one_and_update(
        self, collection: str, query: Document, fields: Document,
    ) -> Document | None:
        for document in self._docs(collection):
            if _matches(document, query):
                document.update(copy.deepcopy(fields))
                return copy.deepcopy(document)
        return None

    async def delete_one(self, collection: str, query: Document) -> int:
        docs = self._docs(collection)
        for i, document in enumerate(docs):
            if _matches(document, query):
                del docs[i]
                return 1
        return 0

    async def delete_many(self, collection: str, query: Document) -> int:
        docs = self._docs(collection)
        kept = [d for d in docs if not _matches(d, query)]
        removed = len(docs) - len(kept)
        docs[:] = kept
        return removed

    async def create_index(
        self, collection: str, keys: IndexKeys, name: str, unique: bool = False,
    ) -> str:
        self._indexes.setdefault(collection, {})[name] = (list(keys), unique)
        return name

    def index_names(self, collection: str) -> list[str]:
        return list(self._indexes.get(collection, {}))

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, []))


# ── MongoDB Implementation ───────────────────────────────────


class MongoMetadataStore(MetadataStore):
    """Motor-backed store for multi-worker deployments.

    The client is created timezone-aware so timestamps read back compare
    correctly with ``datetime.now(timezone.utc)``.
    """

    def __init__(self, mongo_uri: str, database: str) -> None:
        from motor.motor_asyncio import AsyncIOMotorClient

        self._client = AsyncIOMotorClient(mongo_uri, tz_aware=True)
        self._db = self._client[database]

    async def insert_one(self, collection: str, document: Document) -> None:
        from pymongo.errors import OperationFailure

        try:
            # insert_one adds _id to the dict it is given
            await self._db[collection].insert_one(dict(document))
        except OperationFailure as exc:
            if exc.code not in DUPLICATE_KEY_CODES:
                raise
            key = (exc.details or {}).get("keyValue") or {}
            raise DuplicateEntryError(collection, key) from exc

    async def find_one(self, collection: str, query: Document) -> Document | None:
        return await self._db[collection].find_one(query, {"_id": 0})

    async def find(
        self,
        collection: str,
        query: Document | None = None,
        sort: IndexKeys | None = None,
    ) -> list[Document]:
        cursor = self._db[collection].find(query or {}, {"_id": 0})
        if sort:
            cursor = cursor.sort(sort)
        return await cursor.to_list(length=None)

    async def find_one_and_update(
        self, collection: str, query: Document, fields: Document,
    ) -> Document | None:
        from pymongo import ReturnDocument

        return await self._db[collection].find_one_and_update(
            query,
            {"$set": fields},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_one(self, collection: str, query: Document) -> int:
        result = await self._db[collection].delete_one(query)
        return result.deleted_count

    async def delete_many(self, collection: str, query: Document) -> int:
        result = await self._db[collection].delete_many(query)
        return result.deleted_count

    async def create_index(
        self, collection: str, keys: IndexKeys, name: str, unique: bool = False,
    ) -> str:
        return await self._db[collection].create_index(
            keys, name=name, unique=unique, background=True,
        )

    async def ping(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except Exception:
            logger.warning("MongoDB ping failed", exc_info=True)
            return False

    async def close(self) -> None:
        self._client.close()


# ── Module-level Singleton ───────────────────────────────────

_store: MetadataStore | None = None


def get_metadata_store() -> MetadataStore:
    """Get the singleton metadata store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.metadata_store_type == "mongo":
            _store = MongoMetadataStore(settings.mongo_uri, settings.mongo_database)
            logger.info("Initialized MongoMetadataStore (db=%s)", settings.mongo_database)
        else:
            _store = InMemoryMetadataStore()
            logger.info("Initialized InMemoryMetadataStore")
    return _store
