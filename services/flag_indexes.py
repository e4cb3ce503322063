"""Secondary indexes for per-course flag and struggle-topic collections.

Index creation is attempted one index at a time.  A failure on one index
is recorded and the rest are still attempted, so a course with a single
conflicting legacy index still gets the others.
"""

from __future__ import annotations

import logging

from models.flag import IndexCreationResult
from services.collection_names import CollectionNameCache
from services.metadata_store import IndexKeys, MetadataStore

logger = logging.getLogger(__name__)

# name -> keys; 1 ascending, -1 descending
FLAG_INDEXES: dict[str, IndexKeys] = {
    "status_createdAt": [("status", 1), ("createdAt", -1)],
    "userId": [("userId", 1)],
    "courseName_status": [("courseName", 1), ("status", 1)],
    "flagType_status": [("flagType", 1), ("status", 1)],
}

# One ledger entry per user; concurrent first writes rely on this
LEDGER_UNIQUE_INDEX = "userId_unique"


class ConsistencyIndexManager:
    def __init__(self, store: MetadataStore, names: CollectionNameCache) -> None:
        self._store = store
        self._names = names

    async def ensure_flag_indexes(self, course_name: str) -> IndexCreationResult:
        collection = (await self._names.resolve(course_name)).flags
        created: list[str] = []
        errors: list[str] = []

        for name, keys in FLAG_INDEXES.items():
            try:
                await self._store.create_index(collection, keys, name=name)
                created.append(name)
            except Exception as exc:
                logger.warning("Index '%s' on '%s' failed: %s", name, collection, exc)
                errors.append(f"{name}: {exc}")

        logger.info(
            "Flag indexes for '%s': %d created, %d failed", collection, len(created), len(errors),
        )
        return IndexCreationResult(success=not errors, indexes_created=created, errors=errors)

    async def ensure_ledger_indexes(self, course_name: str) -> IndexCreationResult:
        collection = (await self._names.resolve(course_name)).memory_agent
        try:
            await self._store.create_index(
                collection, [("userId", 1)], name=LEDGER_UNIQUE_INDEX, unique=True,
            )
        except Exception as exc:
            logger.warning("Unique userId index on '%s' failed: %s", collection, exc)
            return IndexCreationResult(success=False, errors=[f"{LEDGER_UNIQUE_INDEX}: {exc}"])
        return IndexCreationResult(success=True, indexes_created=[LEDGER_UNIQUE_INDEX])
