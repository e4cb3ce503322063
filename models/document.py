"""Course material models: upload requests, stored records, wipe results."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from models.base import CamelModel, utc_now


class SourceType(str, Enum):
    TEXT = "text"
    FILE = "file"


class DocumentUpload(CamelModel):
    """An upload request: exactly one of ``text`` or ``file_bytes`` is set.

    The text-xor-file rule is checked by the coordinator rather than by a
    model validator so the violation surfaces as a domain error.
    """

    name: str
    course_name: str
    topic_or_week_title: str
    item_title: str
    text: str | None = None
    file_name: str | None = None
    file_bytes: bytes | None = Field(default=None, exclude=True)
    uploaded_by: str = "system"
    date: datetime | None = None


class TextUploadRequest(CamelModel):
    """POST body for a raw-text upload."""

    name: str
    topic_or_week_title: str
    item_title: str
    text: str
    uploaded_by: str = "system"


class DocumentRecord(CamelModel):
    """Metadata record for an uploaded course material.

    ``uploaded=True`` implies ``vector_ref`` is set.  ``vector_refs`` holds
    every chunk id so single-document deletion removes all of them.
    """

    id: str
    name: str
    course_name: str
    topic_or_week_title: str
    item_title: str
    source_type: SourceType
    file_name: str | None = None
    date: datetime = Field(default_factory=utc_now)
    uploaded: bool = False
    vector_ref: str | None = None
    vector_refs: list[str] = Field(default_factory=list)
    chunks_generated: int = 0
    uploaded_by: str = "system"


class VectorPoint(CamelModel):
    """One embedded chunk as stored in the vector index."""

    id: str
    vector: list[float] = Field(default_factory=list)
    payload: dict[str, Any] = Field(default_factory=dict)
    text: str = ""


class WipeResult(CamelModel):
    """Outcome of a bulk wipe; ``errors`` lists strategies that failed first."""

    deleted_count: int = 0  # documents whose vectors were removed
    vectors_deleted: int = 0
    errors: list[str] = Field(default_factory=list)
    strategy: str = "none"  # "none" | "by_ids" | "by_filter" | "drop_collection"
    metadata_cleared: int = 0
