"""User-submitted flag reports against chat interactions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field, field_validator

from models.base import CamelModel, utc_now


class FlagStatus(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"


class FlagType(str, Enum):
    INACCURATE_RESPONSE = "inaccurate_response"
    HARASSMENT = "harassment"
    INAPPROPRIATE = "inappropriate"
    DISHONESTY = "dishonesty"
    INTERFACE_BUG = "interface bug"
    OTHER = "other"

    @classmethod
    def coerce(cls, value):
        """Map hyphenated spellings (``inaccurate-response``, ``interface-bug``) to stored values."""
        if isinstance(value, str):
            key = value.strip().lower()
            return _FLAG_TYPE_ALIASES.get(key, key)
        return value


_FLAG_TYPE_ALIASES = {
    "inaccurate-response": FlagType.INACCURATE_RESPONSE.value,
    "interface-bug": FlagType.INTERFACE_BUG.value,
    "interface_bug": FlagType.INTERFACE_BUG.value,
}


class FlagSubmission(CamelModel):
    """POST body for a new flag report."""

    user_id: int
    flag_type: FlagType
    report_type: str
    chat_content: str
    date: datetime | None = None

    @field_validator("flag_type", mode="before")
    @classmethod
    def _accept_aliases(cls, value):
        return FlagType.coerce(value)


class FlagRecord(CamelModel):
    """A stored flag report.

    ``chat_content`` is a snapshot taken at submission time and is never
    rewritten.  ``response`` is always a string at rest.
    """

    id: str
    course_name: str
    date: datetime
    flag_type: FlagType
    report_type: str
    chat_content: str
    user_id: int
    status: FlagStatus = FlagStatus.UNRESOLVED
    response: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_updated_by: str | None = None
    last_updated_at: datetime | None = None

    @field_validator("response", mode="before")
    @classmethod
    def _response_never_null(cls, value):
        return "" if value is None else value


class StatusChangeRequest(CamelModel):
    """PATCH body for a flag status change."""

    status: str
    response: str | None = None
    actor_id: str | None = None


class TransitionResult(CamelModel):
    """Outcome of :func:`services.flag_service.validate_transition`."""

    valid: bool
    reason: str = ""
    allowed: list[str] = Field(default_factory=list)


class RecentActivity(CamelModel):
    last_24_hours: int = 0
    last_7_days: int = 0
    last_30_days: int = 0


class FlagStatistics(CamelModel):
    """Read-only summary computed from a single scan of a course's flags."""

    total: int = 0
    unresolved: int = 0
    resolved: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    recent_activity: RecentActivity = Field(default_factory=RecentActivity)


class CollectionValidationStats(CamelModel):
    total_flags: int = 0
    unresolved_flags: int = 0
    resolved_flags: int = 0
    invalid_documents: int = 0


class CollectionValidation(CamelModel):
    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    stats: CollectionValidationStats = Field(default_factory=CollectionValidationStats)


class IndexCreationResult(CamelModel):
    """Partial-success report from the index manager."""

    success: bool
    indexes_created: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
