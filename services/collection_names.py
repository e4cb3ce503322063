"""Per-course collection-name resolution with a process-lifetime cache.

Newer course records persist their collection names under
``collections.{users,flags,memoryAgent}``; older ones predate that and
use the computed convention from :meth:`CollectionNames.computed`.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from models.store import CollectionNames
from services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

CourseRecordResolver = Callable[[str], Awaitable[CollectionNames | None]]


class CollectionNameCache:
    """Resolve and memoize the collection names a course uses.

    The cache is an explicit object handed to every service that needs
    it.  Entries never expire; course collections are not renamed while
    the process runs.
    """

    def __init__(self, resolver: CourseRecordResolver) -> None:
        self._resolver = resolver
        self._cache: dict[str, CollectionNames] = {}

    async def resolve(self, course_name: str) -> CollectionNames:
        cached = self._cache.get(course_name)
        if cached is not None:
            return cached

        names: CollectionNames | None = None
        try:
            names = await self._resolver(course_name)
        except Exception as exc:
            logger.warning(
                "Collection-name lookup failed for course '%s', using computed names: %s",
                course_name, exc,
            )

        if names is None:
            names = CollectionNames.computed(course_name)
            logger.info("Course '%s' has no stored collection names, using %s", course_name, names.flags)

        self._cache[course_name] = names
        return names

    def invalidate(self, course_name: str | None = None) -> None:
        if course_name is None:
            self._cache.clear()
        else:
            self._cache.pop(course_name, None)


def course_record_resolver(store: MetadataStore, course_list_collection: str) -> CourseRecordResolver:
    """Build a resolver reading ``collections`` off the active-course record."""

    async def _resolve(course_name: str) -> CollectionNames | None:
        course = await store.find_one(course_list_collection, {"courseName": course_name})
        stored = (course or {}).get("collections")
        if not stored:
            return None
        if not all(stored.get(key) for key in ("users", "flags", "memoryAgent")):
            return None
        return CollectionNames.model_validate(stored)

    return _resolve
