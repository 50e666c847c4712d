"""Task service.

Every write runs in a single transaction together with the counter and tag
usage adjustments it implies. Deletes are soft: ``is_deleted`` is set and the
row stays for sync and audit.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import session_settings
from ..constants import (
    DEFAULT_TASK_PRIORITY,
    DEFAULT_TASK_STATUS,
    TaskPriority,
    TaskStatus,
)
from ..errors import ErrorCode, NotFound, TaskFlowError
from ..events import TASKS, ChangeFeed
from ..models.base import utcnow
from ..models.task import Task
from ..timeutil import coerce_datetime, local_day_bounds, now_ms
from ..validation import validate_task_create, validate_task_update
from . import counter_svc, project_svc, tag_svc, user_svc
from .counter_svc import TaskSnapshot

log = logging.getLogger(__name__)

_PLAIN_FIELDS = ("title", "description", "priority", "due_time", "position")


@dataclass
class TaskFilters:
    status: TaskStatus | str | None = None
    priority: TaskPriority | str | None = None
    project_id: uuid.UUID | None = None
    tag: str | None = None
    search: str | None = None
    include_completed: bool = True
    include_deleted: bool = False
    due_from: datetime | None = None
    due_to: datetime | None = None
    overdue: bool = False
    limit: int | None = None


def _value(value):
    return getattr(value, "value", value)


def _apply_completion(task: Task, completed: bool, now: datetime) -> None:
    task.completed = completed
    if completed:
        task.status = TaskStatus.COMPLETED.value
        task.completed_at = task.completed_at or now
    else:
        if task.status == TaskStatus.COMPLETED.value:
            task.status = TaskStatus.TODO.value
        task.completed_at = None


def _tag_diff(before: Iterable[str], after: Iterable[str]) -> tuple[list[str], list[str]]:
    old, new = Counter(before), Counter(after)
    return list((new - old).elements()), list((old - new).elements())


# ── Reads ──────────────────────────────────────────────────────────────────


async def get_task(
    db: AsyncSession,
    user_id: str,
    task_id: uuid.UUID,
    *,
    include_deleted: bool = False,
) -> Task:
    stmt = select(Task).where(Task.id == task_id, Task.user_id == user_id)
    if not include_deleted:
        stmt = stmt.where(Task.is_deleted.is_(False))
    task = (await db.execute(stmt)).scalar_one_or_none()
    if not task:
        raise NotFound("Task not found", ErrorCode.TASK_NOT_FOUND)
    return task


async def get_tasks(
    db: AsyncSession,
    user_id: str,
    filters: TaskFilters | None = None,
    *,
    now: datetime | None = None,
) -> list[Task]:
    filters = filters or TaskFilters()
    stmt = select(Task).where(Task.user_id == user_id)

    if not filters.include_deleted:
        stmt = stmt.where(Task.is_deleted.is_(False))
    if not filters.include_completed:
        stmt = stmt.where(Task.completed.is_(False))
    if filters.status:
        stmt = stmt.where(Task.status == _value(filters.status))
    if filters.priority:
        stmt = stmt.where(Task.priority == _value(filters.priority))
    if filters.project_id:
        stmt = stmt.where(Task.project_id == filters.project_id)
    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        stmt = stmt.where(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
    if filters.due_from:
        stmt = stmt.where(Task.due_date >= coerce_datetime(filters.due_from))
    if filters.due_to:
        stmt = stmt.where(Task.due_date < coerce_datetime(filters.due_to))
    if filters.overdue:
        tz = await user_svc.get_user_timezone(db, user_id)
        today_start, _ = local_day_bounds(tz, now)
        stmt = stmt.where(Task.completed.is_(False), Task.due_date < today_start)

    stmt = stmt.order_by(Task.position, Task.created_at)
    result = await db.execute(stmt)
    tasks = list(result.scalars().all())

    # JSON list membership is not portable across backends; filter here.
    if filters.tag:
        tasks = [t for t in tasks if filters.tag in (t.tags or [])]
    if filters.limit:
        tasks = tasks[: filters.limit]
    return tasks


async def get_today_tasks(
    db: AsyncSession,
    user_id: str,
    *,
    tz: str | None = None,
    now: datetime | None = None,
) -> list[Task]:
    """Tasks due within the user's local calendar day, compared in UTC."""
    tz = tz or await user_svc.get_user_timezone(db, user_id)
    start, end = local_day_bounds(tz, now)
    stmt = (
        select(Task)
        .where(
            Task.user_id == user_id,
            Task.is_deleted.is_(False),
            Task.due_date >= start,
            Task.due_date < end,
        )
        .order_by(Task.position, Task.created_at)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_task_statistics(
    db: AsyncSession, user_id: str, *, now: datetime | None = None
) -> dict:
    tz = await user_svc.get_user_timezone(db, user_id)
    today_start, today_end = local_day_bounds(tz, now)
    tasks = await get_tasks(db, user_id)

    by_status = {s.value: 0 for s in TaskStatus}
    by_priority = {p.value: 0 for p in TaskPriority}
    overdue = due_today = completed = 0
    for task in tasks:
        by_status[task.status] = by_status.get(task.status, 0) + 1
        by_priority[task.priority] = by_priority.get(task.priority, 0) + 1
        if task.completed:
            completed += 1
        elif task.due_date and task.due_date < today_start:
            overdue += 1
        if task.due_date and today_start <= task.due_date < today_end:
            due_today += 1

    total = len(tasks)
    return {
        "total": total,
        "completed": completed,
        "active": total - completed,
        "overdue": overdue,
        "due_today": due_today,
        "by_status": by_status,
        "by_priority": by_priority,
        "completion_rate": round(completed / total * 100) if total else 0,
    }


# ── Writes ─────────────────────────────────────────────────────────────────


async def create_task(
    db: AsyncSession,
    user_id: str,
    title: str,
    *,
    description: str = "",
    priority: TaskPriority | str | None = None,
    status: TaskStatus | str | None = None,
    tags: list[str] | None = None,
    due_date: object = None,
    due_time: str | None = None,
    start_date: object = None,
    project_id: uuid.UUID | None = None,
    now: datetime | None = None,
) -> Task:
    """Create a task; ``due_date`` defaults to the start of the user's local today."""
    tags = list(tags or [])
    validate_task_create(
        {
            "title": title,
            "description": description,
            "priority": priority,
            "status": status,
            "tags": tags,
            "due_date": due_date,
            "due_time": due_time,
            "start_date": start_date,
        }
    ).raise_for_errors()

    await user_svc.ensure_user(db, user_id)
    if project_id is not None:
        await project_svc.get_project(db, user_id, project_id)

    count_stmt = select(func.count(Task.id)).where(
        Task.user_id == user_id, Task.is_deleted.is_(False)
    )
    limit = session_settings(db).max_tasks_per_user
    if (await db.execute(count_stmt)).scalar_one() >= limit:
        raise TaskFlowError(
            f"Maximum of {limit} tasks reached",
            ErrorCode.RESOURCE_LIMIT_EXCEEDED,
        )

    tz = await user_svc.get_user_timezone(db, user_id)
    due_date = coerce_datetime(due_date, tz)
    if due_date is None:
        due_date, _ = local_day_bounds(tz, now)

    stamp = now or utcnow()
    task = Task(
        user_id=user_id,
        title=title.strip(),
        description=(description or "").strip(),
        priority=_value(priority or DEFAULT_TASK_PRIORITY),
        status=_value(status or DEFAULT_TASK_STATUS),
        tags=tags,
        due_date=due_date,
        due_time=due_time,
        start_date=coerce_datetime(start_date, tz),
        project_id=project_id,
        position=now_ms(),
        version=1,
    )
    _apply_completion(task, task.status == TaskStatus.COMPLETED.value, stamp)
    db.add(task)

    await counter_svc.apply_counter_deltas(
        db, user_id, counter_svc.compute_counter_deltas(None, TaskSnapshot.of(task))
    )
    await tag_svc.adjust_usage(db, user_id, added=tags)
    await db.commit()
    await db.refresh(task)
    log.debug("Created task %s for %s", task.id, user_id)
    return task


async def update_task(
    db: AsyncSession, user_id: str, task_id: uuid.UUID, **changes
) -> Task:
    validate_task_update(changes).raise_for_errors()
    task = await get_task(db, user_id, task_id)
    before = TaskSnapshot.of(task)
    old_tags = list(task.tags or [])
    now = utcnow()

    if changes.get("project_id") is not None:
        await project_svc.get_project(db, user_id, changes["project_id"])

    tz = None
    if "due_date" in changes or "start_date" in changes:
        tz = await user_svc.get_user_timezone(db, user_id)

    for key in _PLAIN_FIELDS:
        if key in changes:
            value = _value(changes[key])
            if key in ("title", "description") and isinstance(value, str):
                value = value.strip()
            setattr(task, key, value)
    if "project_id" in changes:
        task.project_id = changes["project_id"]
    if "tags" in changes:
        task.tags = list(changes["tags"] or [])
    if "due_date" in changes:
        task.due_date = coerce_datetime(changes["due_date"], tz)
    if "start_date" in changes:
        task.start_date = coerce_datetime(changes["start_date"], tz)

    if "completed" in changes:
        _apply_completion(task, changes["completed"], now)
        # Validation guarantees a supplied status agrees with ``completed``.
        if changes.get("status") is not None:
            task.status = _value(changes["status"])
    elif "status" in changes:
        task.status = _value(changes["status"])
        _apply_completion(task, task.status == TaskStatus.COMPLETED.value, now)

    task.version = (task.version or 0) + 1
    task.updated_at = now

    await counter_svc.apply_counter_deltas(
        db, user_id, counter_svc.compute_counter_deltas(before, TaskSnapshot.of(task))
    )
    if "tags" in changes:
        added, removed = _tag_diff(old_tags, task.tags)
        await tag_svc.adjust_usage(db, user_id, added=added, removed=removed)

    await db.commit()
    await db.refresh(task)
    return task


async def toggle_task_complete(
    db: AsyncSession, user_id: str, task_id: uuid.UUID, completed: bool
) -> Task:
    """Set the completion state. Repeating the same value changes no counters."""
    return await update_task(db, user_id, task_id, completed=completed)


async def delete_task(db: AsyncSession, user_id: str, task_id: uuid.UUID) -> Task:
    """Soft-delete a task. Deleting an already-deleted task changes nothing."""
    task = await get_task(db, user_id, task_id, include_deleted=True)
    if task.is_deleted:
        return task

    before = TaskSnapshot.of(task)
    now = utcnow()
    task.is_deleted = True
    task.deleted_at = now
    task.updated_at = now
    task.version = (task.version or 0) + 1

    await counter_svc.apply_counter_deltas(
        db, user_id, counter_svc.compute_counter_deltas(before, TaskSnapshot.of(task))
    )
    await tag_svc.adjust_usage(db, user_id, removed=task.tags or [])
    await db.commit()
    await db.refresh(task)
    return task


async def bulk_toggle_complete(
    db: AsyncSession,
    user_id: str,
    task_ids: Iterable[uuid.UUID],
    completed: bool,
) -> list[Task]:
    """Set ``completed`` on every task, or on none if any id is unknown."""
    task_ids = list(dict.fromkeys(task_ids))
    if not task_ids:
        return []

    result = await db.execute(
        select(Task).where(
            Task.user_id == user_id,
            Task.id.in_(task_ids),
            Task.is_deleted.is_(False),
        )
    )
    tasks = {task.id: task for task in result.scalars().all()}
    missing = [tid for tid in task_ids if tid not in tasks]
    if missing:
        raise NotFound(f"Task not found: {missing[0]}", ErrorCode.TASK_NOT_FOUND)

    now = utcnow()
    deltas = []
    for task in tasks.values():
        if task.completed == completed:
            continue
        before = TaskSnapshot.of(task)
        _apply_completion(task, completed, now)
        task.version = (task.version or 0) + 1
        task.updated_at = now
        deltas.append(counter_svc.compute_counter_deltas(before, TaskSnapshot.of(task)))

    await counter_svc.apply_counter_deltas(db, user_id, counter_svc.merge_deltas(*deltas))
    await db.commit()
    return [tasks[tid] for tid in task_ids]


async def update_task_positions(
    db: AsyncSession, user_id: str, positions: Iterable[tuple[uuid.UUID, int]]
) -> None:
    now = utcnow()
    for task_id, position in positions:
        task = await get_task(db, user_id, task_id)
        task.position = position
        task.version = (task.version or 0) + 1
        task.updated_at = now
    await db.commit()


def subscribe_to_tasks(feed: ChangeFeed, user_id: str, callback):
    """Call *callback* after every committed change to the user's tasks."""
    return feed.subscribe(user_id, TASKS, callback)
