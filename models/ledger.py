"""Struggle-topic ledger models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from models.base import CamelModel, utc_now


class LedgerRole(str, Enum):
    STUDENT = "Student"
    INSTRUCTOR = "instructor"

    @classmethod
    def from_affiliation(cls, affiliation: str | None) -> LedgerRole:
        """``student`` maps to Student; every other affiliation is instructor."""
        if affiliation == "student":
            return cls.STUDENT
        return cls.INSTRUCTOR


class EntryCreation(str, Enum):
    """How :meth:`StruggleTopicLedger.ensure_entry_exists` resolved."""

    EXISTED = "existed"
    CREATED = "created"
    CONFLICT_IGNORED = "conflict_ignored"  # a concurrent caller won the insert


class UserIdentity(CamelModel):
    """Seed info for a ledger entry, from the course user directory."""

    user_id: int
    name: str
    affiliation: str = "student"


class StruggleTopicEntry(CamelModel):
    user_id: int
    name: str
    role: LedgerRole
    struggle_topics: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TopicsRequest(CamelModel):
    """POST body for merging candidate labels into a user's ledger."""

    topics: list[str]


class AnalyzeRequest(CamelModel):
    """POST body asking the label extractor to analyze a conversation."""

    system_prompt: str = ""
    user_messages: str
