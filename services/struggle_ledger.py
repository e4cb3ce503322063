"""Per-user struggle-topic ledger.

Each (user, course) pair owns at most one entry in the course's
memory-agent collection.  Entries are created lazily on first use and
rely on the unique ``userId`` index for race safety: when two requests
create the same entry concurrently the loser's duplicate-key error is
absorbed and the call still succeeds.

Merges write the sorted union only when something new arrives, so
repeated analysis of a stable conversation costs a read and no write.
"""

from __future__ import annotations

import logging

from errors import DuplicateEntryError, UserNotFoundError
from models.base import utc_now
from models.ledger import EntryCreation, LedgerRole, StruggleTopicEntry, UserIdentity
from services.collection_names import CollectionNameCache
from services.flag_indexes import ConsistencyIndexManager
from services.metadata_store import MetadataStore
from services.normalization import normalize_label, normalize_labels
from services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


class StruggleTopicLedger:
    def __init__(
        self,
        store: MetadataStore,
        names: CollectionNameCache,
        users: UserDirectory,
        indexes: ConsistencyIndexManager | None = None,
    ) -> None:
        self._store = store
        self._names = names
        self._users = users
        self._indexes = indexes or ConsistencyIndexManager(store, names)
        # courses whose unique userId index is known to exist
        self._indexed: set[str] = set()

    async def _collection(self, course_name: str) -> str:
        return (await self._names.resolve(course_name)).memory_agent

    async def _ensure_unique_index(self, course_name: str) -> None:
        if course_name in self._indexed:
            return
        result = await self._indexes.ensure_ledger_indexes(course_name)
        if result.success:
            self._indexed.add(course_name)

    async def _load(self, collection: str, user_id: int) -> StruggleTopicEntry | None:
        doc = await self._store.find_one(collection, {"userId": user_id})
        return StruggleTopicEntry.model_validate(doc) if doc else None

    async def ensure_entry_exists(
        self,
        user_id: int,
        course_name: str,
        seed: UserIdentity | None = None,
    ) -> EntryCreation:
        collection = await self._collection(course_name)
        if await self._store.find_one(collection, {"userId": user_id}) is not None:
            return EntryCreation.EXISTED

        if seed is None:
            seed = await self._users.lookup(user_id, course_name)
            if seed is None:
                raise UserNotFoundError(user_id, course_name)

        await self._ensure_unique_index(course_name)

        now = utc_now()
        entry = StruggleTopicEntry(
            user_id=user_id,
            name=seed.name,
            role=LedgerRole.from_affiliation(seed.affiliation),
            struggle_topics=[],
            created_at=now,
            updated_at=now,
        )
        try:
            await self._store.insert_one(collection, entry.to_document())
        except DuplicateEntryError:
            logger.info("Ledger entry for user %s in '%s' created concurrently", user_id, collection)
            return EntryCreation.CONFLICT_IGNORED

        logger.info("Created ledger entry for user %s in '%s' (role=%s)", user_id, collection, entry.role)
        return EntryCreation.CREATED

    async def _load_or_create(self, user_id: int, course_name: str) -> tuple[str, StruggleTopicEntry]:
        collection = await self._collection(course_name)
        entry = await self._load(collection, user_id)
        if entry is None:
            await self.ensure_entry_exists(user_id, course_name)
            entry = await self._load(collection, user_id)
            if entry is None:
                raise UserNotFoundError(user_id, course_name)
        return collection, entry

    async def get_topics(self, user_id: int, course_name: str) -> list[str]:
        entry = await self._load(await self._collection(course_name), user_id)
        return list(entry.struggle_topics) if entry else []

    async def merge_topics(self, user_id: int, course_name: str, labels: list[str]) -> StruggleTopicEntry:
        candidates = normalize_labels(labels)
        collection, entry = await self._load_or_create(user_id, course_name)

        existing = set(normalize_labels(entry.struggle_topics))
        new = [label for label in candidates if label not in existing]
        if not new:
            logger.debug("No new struggle topics for user %s", user_id)
            return entry

        merged = sorted(existing.union(new))
        updated = await self._store.find_one_and_update(
            collection,
            {"userId": user_id},
            {"struggleTopics": merged, "updatedAt": utc_now()},
        )
        logger.info("User %s: +%d struggle topics (%d total)", user_id, len(new), len(merged))
        return StruggleTopicEntry.model_validate(updated) if updated else entry

    async def remove_topic(self, user_id: int, course_name: str, label: str) -> bool:
        """Drop *label* case-insensitively.  Returns False if it was not present."""
        target = normalize_label(label)
        collection, entry = await self._load_or_create(user_id, course_name)

        remaining = [t for t in entry.struggle_topics if normalize_label(t) != target]
        if len(remaining) == len(entry.struggle_topics):
            return False

        await self._store.find_one_and_update(
            collection,
            {"userId": user_id},
            {"struggleTopics": remaining, "updatedAt": utc_now()},
        )
        logger.info("User %s: removed struggle topic '%s'", user_id, target)
        return True
