"""Domain-specific exceptions for the content & feedback lifecycle engine.

These exceptions let the API layer distinguish failure modes and answer
with the right HTTP status.  Partial failures of bulk operations are
returned as data (``WipeResult``, ``IndexCreationResult``) and never
raised; only :class:`IndexDeletionFailure` escapes a bulk wipe.
"""

from __future__ import annotations


class LifecycleError(Exception):
    """Base class for all lifecycle engine errors."""

    status_code = 500


class NotFoundError(LifecycleError):
    """A referenced entity (flag, document, vector reference) does not exist."""

    status_code = 404

    def __init__(self, entity_type: str, entity_id: str, detail: str = "") -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        message = f"{entity_type} '{entity_id}' not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    """The identity lookup has no record for a user in a course."""

    def __init__(self, user_id: int | str, course_name: str) -> None:
        self.user_id = user_id
        self.course_name = course_name
        super().__init__("user", str(user_id), f"not registered in course '{course_name}'")


class InvalidTransitionError(LifecycleError):
    """A flag status change was rejected by the state machine."""

    status_code = 400

    def __init__(self, current: str, requested: str, reason: str, allowed: list[str] | None = None) -> None:
        self.current = current
        self.requested = requested
        self.reason = reason
        self.allowed = allowed or []
        super().__init__(reason)


class DocumentValidationError(LifecycleError):
    """An upload request violates the text-xor-file or file-type rules."""

    status_code = 400


class DuplicateEntryError(LifecycleError):
    """A store rejected an insert because of a unique-index violation.

    Store implementations translate their native conflict error (e.g. the
    MongoDB 11000/11001 write error) into this type so callers can treat
    the conflict as an idempotent no-op without knowing the backend.
    """

    status_code = 409

    def __init__(self, collection: str, key: dict | None = None) -> None:
        self.collection = collection
        self.key = key or {}
        super().__init__(f"Duplicate entry in '{collection}': {self.key}")


class IndexDeletionFailure(LifecycleError):
    """Every vector-index deletion strategy failed; metadata was left untouched."""

    def __init__(self, course_name: str, attempted: int, errors: list[str]) -> None:
        self.course_name = course_name
        self.attempted = attempted
        self.errors = list(errors)
        super().__init__(
            f"Vector index deletion failed for course '{course_name}' "
            f"({attempted} references, {len(errors)} strategy errors)"
        )
