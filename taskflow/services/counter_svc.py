"""Project task counters.

``Project.task_count`` is the number of non-deleted tasks referencing the
project and ``Project.completed_task_count`` the subset with
``completed=True``. Task mutations compute a per-project delta from the
task's before/after state and apply it with a single ``UPDATE ... SET
task_count = task_count + :delta`` in the same transaction as the task write,
so concurrent writers never lose an increment. The recompute functions rebuild
the counters from the task table and are the repair path for drift.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..events import PROJECTS, mark_changed
from ..models.project import Project
from ..models.task import Task

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskSnapshot:
    """The counter-relevant fields of a task at one point in time."""

    project_id: uuid.UUID | None
    completed: bool = False
    is_deleted: bool = False

    @classmethod
    def of(cls, task: Task) -> "TaskSnapshot":
        return cls(task.project_id, bool(task.completed), bool(task.is_deleted))

    @property
    def counted(self) -> bool:
        return self.project_id is not None and not self.is_deleted


@dataclass
class CounterDelta:
    total: int = 0
    completed: int = 0

    def __bool__(self) -> bool:
        return bool(self.total or self.completed)


def compute_counter_deltas(
    before: TaskSnapshot | None,
    after: TaskSnapshot | None,
) -> dict[uuid.UUID, CounterDelta]:
    """Per-project counter changes implied by a task going from *before* to *after*.

    ``before=None`` is a create; ``after=None`` (or a deleted snapshot) removes
    the task from its project. Projects whose delta nets out to zero are omitted.
    """
    deltas: dict[uuid.UUID, CounterDelta] = {}

    if before is not None and before.counted:
        delta = deltas.setdefault(before.project_id, CounterDelta())
        delta.total -= 1
        delta.completed -= int(before.completed)

    if after is not None and after.counted:
        delta = deltas.setdefault(after.project_id, CounterDelta())
        delta.total += 1
        delta.completed += int(after.completed)

    return {pid: delta for pid, delta in deltas.items() if delta}


def merge_deltas(*parts: dict[uuid.UUID, CounterDelta]) -> dict[uuid.UUID, CounterDelta]:
    merged: dict[uuid.UUID, CounterDelta] = {}
    for part in parts:
        for pid, delta in part.items():
            acc = merged.setdefault(pid, CounterDelta())
            acc.total += delta.total
            acc.completed += delta.completed
    return {pid: delta for pid, delta in merged.items() if delta}


async def apply_counter_deltas(
    db: AsyncSession,
    user_id: str,
    deltas: dict[uuid.UUID, CounterDelta],
) -> None:
    """Apply *deltas* as atomic increments. Does not commit."""
    for project_id, delta in deltas.items():
        await db.execute(
            update(Project)
            .where(Project.id == project_id, Project.user_id == user_id)
            .values(
                task_count=Project.task_count + delta.total,
                completed_task_count=Project.completed_task_count + delta.completed,
            )
            .execution_options(synchronize_session=False)
        )
        mark_changed(db, user_id, PROJECTS, project_id)


async def count_project_tasks(
    db: AsyncSession, user_id: str, project_id: uuid.UUID
) -> tuple[int, int]:
    """``(total, completed)`` over the project's non-deleted tasks."""
    stmt = select(
        func.count(Task.id),
        func.coalesce(func.sum(case((Task.completed.is_(True), 1), else_=0)), 0),
    ).where(
        Task.user_id == user_id,
        Task.project_id == project_id,
        Task.is_deleted.is_(False),
    )
    total, completed = (await db.execute(stmt)).one()
    return int(total), int(completed)


async def recompute_project_counts(
    db: AsyncSession,
    user_id: str,
    project_id: uuid.UUID,
    *,
    commit: bool = True,
) -> CounterDelta | None:
    """Reset one project's counters from the task table.

    Returns the correction applied (``None`` when the counters were already
    right or the project does not exist).
    """
    stmt = (
        select(Project)
        .where(Project.id == project_id, Project.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    project = (await db.execute(stmt)).scalar_one_or_none()
    if not project:
        return None

    total, completed = await count_project_tasks(db, user_id, project_id)
    if project.is_deleted:
        total, completed = 0, 0

    drift = CounterDelta(total - project.task_count, completed - project.completed_task_count)
    if not drift:
        return None

    log.warning(
        "Counter drift on project %s: task_count %d -> %d, completed %d -> %d",
        project_id, project.task_count, total, project.completed_task_count, completed,
    )
    project.task_count = total
    project.completed_task_count = completed
    if commit:
        await db.commit()
    return drift


async def reconcile_user_counters(
    db: AsyncSession, user_id: str
) -> dict[uuid.UUID, CounterDelta]:
    """Recompute counters for every project the user owns; returns corrections."""
    result = await db.execute(select(Project.id).where(Project.user_id == user_id))
    corrections: dict[uuid.UUID, CounterDelta] = {}
    for project_id in result.scalars().all():
        drift = await recompute_project_counts(db, user_id, project_id, commit=False)
        if drift:
            corrections[project_id] = drift
    await db.commit()
    return corrections
