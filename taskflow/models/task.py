"""Task model."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..constants import DEFAULT_TASK_PRIORITY, DEFAULT_TASK_STATUS
from .base import Base, OwnedMixin, TimestampMixin, UTCDateTime, UUIDMixin


class Task(UUIDMixin, TimestampMixin, OwnedMixin, Base):
    __tablename__ = "task"
    __table_args__ = (
        Index("ix_task_user_project", "user_id", "project_id"),
        Index("ix_task_user_due", "user_id", "due_date"),
    )

    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default=DEFAULT_TASK_STATUS.value)
    priority: Mapped[str] = mapped_column(String(20), default=DEFAULT_TASK_PRIORITY.value)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Stored in UTC; "today" is resolved against the owner's timezone.
    due_date: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    due_time: Mapped[str | None] = mapped_column(String(5), default=None)
    start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)

    # Reference, not ownership: a task outlives a project reassignment.
    project_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, default=None)

    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    position: Mapped[int] = mapped_column(BigInteger, default=0)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    version: Mapped[int] = mapped_column(Integer, default=1)

    def __repr__(self) -> str:
        return f"<Task {self.title!r}>"
