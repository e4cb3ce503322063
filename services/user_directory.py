"""Identity lookup for course users, used to seed new struggle-topic ledger entries."""

from __future__ import annotations

import logging

from models.ledger import UserIdentity
from services.collection_names import CollectionNameCache
from services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


class UserDirectory:
    """Reads the per-course users collection."""

    def __init__(self, store: MetadataStore, names: CollectionNameCache) -> None:
        self._store = store
        self._names = names

    async def lookup(self, user_id: int, course_name: str) -> UserIdentity | None:
        names = await self._names.resolve(course_name)
        user = await self._store.find_one(names.users, {"userId": user_id})
        if user is None:
            logger.info("User %s not found in '%s'", user_id, names.users)
            return None
        return UserIdentity(
            user_id=user_id,
            name=user.get("name") or "",
            affiliation=user.get("affiliation") or "student",
        )
