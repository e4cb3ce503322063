"""Base model with camelCase serialization for stored documents and API output."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Timezone-aware current time; every stored timestamp uses UTC."""
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base class for stored records and API models — dumps as camelCase.

    Stored documents keep the camelCase field names the course database
    has always used (``courseName``, ``userId``, ``struggleTopics``), so
    records are written with ``model_dump(by_alias=True)`` and read back
    with ``model_validate``.  Unknown keys such as Mongo's ``_id`` are
    ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_document(self) -> dict:
        """Serialize for the metadata store (camelCase, ``None`` dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)
