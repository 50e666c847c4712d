"""TaskFlow models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, OwnedMixin, UTCDateTime
from .user import UserProfile
from .project import Project
from .task import Task
from .tag import Tag

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "OwnedMixin",
    "UTCDateTime",
    "UserProfile",
    "Project",
    "Task",
    "Tag",
]
