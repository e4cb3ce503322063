"""Flag reports: submission, the status state machine, statistics.

A flag moves between two states only::

    unresolved ⇄ resolved

Every status write goes through :func:`validate_transition`.  Writes are
single-document updates keyed by flag id; there is no optimistic
concurrency token, so two instructors resolving the same flag at the
same instant both succeed and the later write wins.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta

from errors import InvalidTransitionError, NotFoundError
from models.base import utc_now
from models.flag import (
    CollectionValidation,
    CollectionValidationStats,
    FlagRecord,
    FlagStatistics,
    FlagStatus,
    FlagSubmission,
    FlagType,
    RecentActivity,
    TransitionResult,
)
from services.collection_names import CollectionNameCache
from services.id_generator import flag_id as make_flag_id
from services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, list[str]] = {
    FlagStatus.UNRESOLVED.value: [FlagStatus.RESOLVED.value],
    FlagStatus.RESOLVED.value: [FlagStatus.UNRESOLVED.value],
}

_VALID_STATUSES = frozenset(s.value for s in FlagStatus)
_VALID_TYPES = frozenset(t.value for t in FlagType)

REQUIRED_FIELDS = (
    "id", "courseName", "date", "flagType", "reportType",
    "chatContent", "userId", "status", "createdAt", "updatedAt",
)

_ACTIVITY_WINDOWS = {
    "last_24_hours": timedelta(hours=24),
    "last_7_days": timedelta(days=7),
    "last_30_days": timedelta(days=30),
}


def validate_transition(current: str, new: str) -> TransitionResult:
    """Check a status change against the transition table.  Pure."""
    if new not in _VALID_STATUSES:
        return TransitionResult(
            valid=False,
            reason=f"Invalid status '{new}'. Must be one of: {', '.join(sorted(_VALID_STATUSES))}",
        )
    if current not in _VALID_STATUSES:
        return TransitionResult(valid=False, reason=f"Invalid current status '{current}'")

    allowed = ALLOWED_TRANSITIONS[current]
    if new not in allowed:
        return TransitionResult(
            valid=False,
            reason=f"Cannot transition from '{current}' to '{new}'",
            allowed=list(allowed),
        )
    return TransitionResult(valid=True, allowed=list(allowed))


class FlagService:
    """Flag persistence and the validated status state machine."""

    def __init__(self, store: MetadataStore, names: CollectionNameCache) -> None:
        self._store = store
        self._names = names

    async def _collection(self, course_name: str) -> str:
        return (await self._names.resolve(course_name)).flags

    # ── Submission & reads ───────────────────────────────────

    async def create_flag(self, course_name: str, submission: FlagSubmission) -> FlagRecord:
        collection = await self._collection(course_name)
        now = utc_now()
        date = submission.date or now
        record = FlagRecord(
            id=make_flag_id(submission.user_id, course_name, date, submission.chat_content),
            course_name=course_name,
            date=date,
            flag_type=submission.flag_type,
            report_type=submission.report_type,
            chat_content=submission.chat_content,
            user_id=submission.user_id,
            status=FlagStatus.UNRESOLVED,
            response="",
            created_at=now,
            updated_at=now,
        )
        await self._store.insert_one(collection, record.to_document())
        logger.info("Flag %s created in '%s' (type=%s)", record.id, collection, record.flag_type)
        return record

    async def get_flag(self, course_name: str, flag_id: str) -> FlagRecord:
        collection = await self._collection(course_name)
        doc = await self._store.find_one(collection, {"id": flag_id})
        if doc is None:
            raise NotFoundError("flag", flag_id)
        return FlagRecord.model_validate(doc)

    async def list_flags(self, course_name: str, status: FlagStatus | None = None) -> list[FlagRecord]:
        """All flags for a course, newest first, optionally filtered by status."""
        collection = await self._collection(course_name)
        query = {"status": FlagStatus(status).value} if status else {}
        docs = await self._store.find(collection, query, sort=[("createdAt", -1)])
        return [FlagRecord.model_validate(d) for d in docs]

    async def list_user_flags(self, course_name: str, user_id: int) -> list[FlagRecord]:
        collection = await self._collection(course_name)
        docs = await self._store.find(collection, {"userId": user_id}, sort=[("createdAt", -1)])
        return [FlagRecord.model_validate(d) for d in docs]

    # ── State machine ────────────────────────────────────────

    async def apply_status_change(
        self,
        course_name: str,
        flag_id: str,
        new_status: str,
        response: str | None = None,
        actor_id: str | None = None,
    ) -> FlagRecord:
        collection = await self._collection(course_name)
        doc = await self._store.find_one(collection, {"id": flag_id})
        if doc is None:
            raise NotFoundError("flag", flag_id)

        current = doc.get("status")
        result = validate_transition(current, new_status)
        if not result.valid:
            raise InvalidTransitionError(str(current), new_status, result.reason, result.allowed)

        now = utc_now()
        fields: dict = {"status": new_status, "updatedAt": now}
        if response is not None:
            fields["response"] = response
        if actor_id is not None:
            fields["lastUpdatedBy"] = actor_id
            fields["lastUpdatedAt"] = now

        updated = await self._store.find_one_and_update(collection, {"id": flag_id}, fields)
        if updated is None:
            # Deleted between the read and the write
            raise NotFoundError("flag", flag_id)

        logger.info("Flag %s: %s → %s (by %s)", flag_id, current, new_status, actor_id or "unknown")
        return FlagRecord.model_validate(updated)

    # ── Aggregates ───────────────────────────────────────────

    async def compute_statistics(self, course_name: str, now: datetime | None = None) -> FlagStatistics:
        collection = await self._collection(course_name)
        docs = await self._store.find(collection)
        now = now or utc_now()

        by_status: Counter[str] = Counter()
        by_type: Counter[str] = Counter()
        recent = dict.fromkeys(_ACTIVITY_WINDOWS, 0)

        for doc in docs:
            by_status[doc.get("status", "unknown")] += 1
            by_type[doc.get("flagType", "unknown")] += 1
            created_at = doc.get("createdAt")
            if not isinstance(created_at, datetime):
                continue
            for key, window in _ACTIVITY_WINDOWS.items():
                if created_at >= now - window:
                    recent[key] += 1

        return FlagStatistics(
            total=len(docs),
            unresolved=by_status.get(FlagStatus.UNRESOLVED.value, 0),
            resolved=by_status.get(FlagStatus.RESOLVED.value, 0),
            by_type=dict(by_type),
            by_status=dict(by_status),
            recent_activity=RecentActivity(**recent),
        )

    async def validate_collection(self, course_name: str) -> CollectionValidation:
        """Scan stored flags for missing fields and out-of-range values."""
        collection = await self._collection(course_name)
        docs = await self._store.find(collection)

        issues: list[str] = []
        invalid = 0
        for doc in docs:
            problems = _document_problems(doc)
            if problems:
                invalid += 1
                issues.append(f"Flag {doc.get('id', '<no id>')}: {'; '.join(problems)}")

        statuses = Counter(d.get("status") for d in docs)
        if invalid:
            logger.warning("Flag collection '%s' has %d invalid documents", collection, invalid)

        return CollectionValidation(
            is_valid=not issues,
            issues=issues,
            stats=CollectionValidationStats(
                total_flags=len(docs),
                unresolved_flags=statuses.get(FlagStatus.UNRESOLVED.value, 0),
                resolved_flags=statuses.get(FlagStatus.RESOLVED.value, 0),
                invalid_documents=invalid,
            ),
        )

    # ── Teardown ─────────────────────────────────────────────

    async def delete_flag(self, course_name: str, flag_id: str) -> None:
        collection = await self._collection(course_name)
        if not await self._store.delete_one(collection, {"id": flag_id}):
            raise NotFoundError("flag", flag_id)
        logger.info("Flag %s deleted from '%s'", flag_id, collection)

    async def delete_all_flags(self, course_name: str) -> int:
        collection = await self._collection(course_name)
        deleted = await self._store.delete_many(collection, {})
        logger.info("Deleted %d flags from '%s'", deleted, collection)
        return deleted


def _document_problems(doc: dict) -> list[str]:
    problems = [f"missing {field}" for field in REQUIRED_FIELDS if doc.get(field) is None]

    status = doc.get("status")
    if status is not None and status not in _VALID_STATUSES:
        problems.append(f"invalid status '{status}'")
    flag_type = doc.get("flagType")
    if flag_type is not None and flag_type not in _VALID_TYPES:
        problems.append(f"invalid flagType '{flag_type}'")
    user_id = doc.get("userId")
    if user_id is not None and (isinstance(user_id, bool) or not isinstance(user_id, int)):
        problems.append("userId must be a number")
    for field in ("date", "createdAt", "updatedAt"):
        value = doc.get(field)
        if value is not None and not isinstance(value, datetime):
            problems.append(f"{field} must be a date")
    return problems
