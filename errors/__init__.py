"""Custom exception hierarchy for the lifecycle engine."""

from errors.exceptions import (
    DocumentValidationError,
    DuplicateEntryError,
    IndexDeletionFailure,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    UserNotFoundError,
)

__all__ = [
    "DocumentValidationError",
    "DuplicateEntryError",
    "IndexDeletionFailure",
    "InvalidTransitionError",
    "LifecycleError",
    "NotFoundError",
    "UserNotFoundError",
]
