"""Project model with denormalized task counters."""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from ..constants import DEFAULT_PROJECT_COLOR, DEFAULT_PROJECT_ICON
from .base import Base, OwnedMixin, TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, OwnedMixin, Base):
    __tablename__ = "project"
    __table_args__ = (
        # At most one default (Inbox) project per user and mode.
        Index(
            "uq_project_default_per_mode",
            "user_id",
            "mode",
            unique=True,
            sqlite_where=text("is_default"),
            postgresql_where=text("is_default"),
        ),
        Index("ix_project_user_mode", "user_id", "mode"),
    )

    name: Mapped[str] = mapped_column(String(50))
    description: Mapped[str] = mapped_column(Text, default="")
    mode: Mapped[str] = mapped_column(String(20))
    color: Mapped[str] = mapped_column(String(7), default=DEFAULT_PROJECT_COLOR)
    icon: Mapped[str] = mapped_column(String(16), default=DEFAULT_PROJECT_ICON)

    # Maintained by counter_svc; only ever changed through atomic increments
    # or a full recompute.
    task_count: Mapped[int] = mapped_column(Integer, default=0)
    completed_task_count: Mapped[int] = mapped_column(Integer, default=0)

    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    position: Mapped[int] = mapped_column(BigInteger, default=0)

    def __repr__(self) -> str:
        return f"<Project {self.name!r}>"
