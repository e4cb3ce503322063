"""Per-course store naming."""

from __future__ import annotations

from models.base import CamelModel


class CollectionNames(CamelModel):
    """The three logical collections a course owns in the metadata store."""

    users: str
    flags: str
    memory_agent: str

    @classmethod
    def computed(cls, course_name: str) -> CollectionNames:
        """Naming convention for courses created before names were persisted."""
        return cls(
            users=f"{course_name}_users",
            flags=f"{course_name}_flags",
            memory_agent=f"{course_name}_memory-agent",
        )
