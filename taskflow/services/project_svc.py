"""Project service.

Each user has exactly one default project ("Inbox") per mode, created lazily
and protected from rename and delete. Counter fields are owned by
``counter_svc``; nothing here writes them except the delete cascade.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import session_settings
from ..constants import (
    DEFAULT_INBOX_COLOR,
    DEFAULT_INBOX_ICON,
    DEFAULT_PROJECT_COLOR,
    DEFAULT_PROJECT_ICON,
    ProjectMode,
)
from ..errors import Conflict, ErrorCode, NotFound, TaskFlowError
from ..events import PROJECTS, ChangeFeed
from ..models.base import utcnow
from ..models.project import Project
from ..models.task import Task
from ..validation import validate_project_create, validate_project_update
from . import tag_svc, user_svc

log = logging.getLogger(__name__)

_UPDATABLE = {"name", "description", "color", "icon", "is_archived", "position"}


@dataclass
class ProjectDeletionCheck:
    can_delete: bool
    has_incomplete_tasks: bool
    incomplete_task_count: int
    total_task_count: int


def _coerce_mode(mode) -> ProjectMode:
    try:
        return ProjectMode(getattr(mode, "value", mode))
    except ValueError:
        raise TaskFlowError(f"Invalid project mode: {mode}", ErrorCode.INVALID_MODE) from None


def _project_query(user_id: str):
    return (
        select(Project)
        .where(Project.user_id == user_id, Project.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )


# ── Reads ──────────────────────────────────────────────────────────────────


async def get_project(db: AsyncSession, user_id: str, project_id: uuid.UUID) -> Project:
    stmt = _project_query(user_id).where(Project.id == project_id)
    project = (await db.execute(stmt)).scalar_one_or_none()
    if not project:
        raise NotFound("Project not found", ErrorCode.PROJECT_NOT_FOUND)
    return project


async def get_projects(
    db: AsyncSession,
    user_id: str,
    *,
    mode: ProjectMode | str | None = None,
    is_archived: bool | None = None,
    include_default: bool = True,
) -> list[Project]:
    stmt = _project_query(user_id)
    if mode is not None:
        stmt = stmt.where(Project.mode == _coerce_mode(mode).value)
    if is_archived is not None:
        stmt = stmt.where(Project.is_archived.is_(is_archived))
    if not include_default:
        stmt = stmt.where(Project.is_default.is_(False))
    stmt = stmt.order_by(Project.position, Project.created_at)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _next_position(db: AsyncSession, user_id: str, mode: str) -> int:
    stmt = select(func.max(Project.position)).where(
        Project.user_id == user_id,
        Project.mode == mode,
        Project.is_deleted.is_(False),
    )
    max_pos = (await db.execute(stmt)).scalar()
    return (max_pos or 0) + 1


# ── Writes ─────────────────────────────────────────────────────────────────


async def create_project(
    db: AsyncSession,
    user_id: str,
    name: str,
    mode: ProjectMode | str,
    *,
    description: str = "",
    color: str | None = None,
    icon: str | None = None,
) -> Project:
    validate_project_create(
        {"name": name, "mode": mode, "description": description, "color": color}
    ).raise_for_errors()
    mode = _coerce_mode(mode)

    # Serializes concurrent creates for this user until commit.
    await user_svc.ensure_user(db, user_id, lock=True)

    count_stmt = select(func.count(Project.id)).where(
        Project.user_id == user_id,
        Project.mode == mode.value,
        Project.is_default.is_(False),
        Project.is_deleted.is_(False),
    )
    existing = (await db.execute(count_stmt)).scalar_one()
    limit = session_settings(db).max_projects_per_mode
    if existing >= limit:
        await db.rollback()
        raise TaskFlowError(
            f"Maximum of {limit} projects allowed per mode",
            ErrorCode.PROJECT_LIMIT_EXCEEDED,
        )

    project = Project(
        user_id=user_id,
        name=name.strip(),
        description=(description or "").strip(),
        mode=mode.value,
        color=color or DEFAULT_PROJECT_COLOR,
        icon=icon or DEFAULT_PROJECT_ICON,
        position=await _next_position(db, user_id, mode.value),
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    log.info("Created project %s (%s) for %s", project.id, mode.value, user_id)
    return project


async def get_or_create_default_project(
    db: AsyncSession, user_id: str, mode: ProjectMode | str
) -> Project:
    mode = _coerce_mode(mode)
    stmt = _project_query(user_id).where(
        Project.mode == mode.value, Project.is_default.is_(True)
    )
    project = (await db.execute(stmt)).scalar_one_or_none()
    if project:
        return project

    await user_svc.ensure_user(db, user_id)
    project = Project(
        user_id=user_id,
        name=session_settings(db).default_project_name,
        description=f"Default project for {mode.value} tasks",
        mode=mode.value,
        color=DEFAULT_INBOX_COLOR,
        icon=DEFAULT_INBOX_ICON,
        is_default=True,
        position=0,
    )
    db.add(project)
    try:
        await db.commit()
    except IntegrityError:
        # Lost the race to a concurrent creator; the unique index kept one.
        await db.rollback()
        log.debug("Default %s project for %s created concurrently", mode.value, user_id)
        return (await db.execute(stmt)).scalar_one()
    await db.refresh(project)
    return project


async def update_project(
    db: AsyncSession, user_id: str, project_id: uuid.UUID, **changes
) -> Project:
    validate_project_update(changes).raise_for_errors()
    project = await get_project(db, user_id, project_id)

    if project.is_default and "name" in changes:
        raise TaskFlowError("Cannot rename default project", ErrorCode.CANNOT_RENAME_DEFAULT)

    for key, value in changes.items():
        if key not in _UPDATABLE:
            continue
        if isinstance(value, str) and key in ("name", "description"):
            value = value.strip()
        setattr(project, key, value)

    project.updated_at = utcnow()
    await db.commit()
    await db.refresh(project)
    return project


async def update_project_positions(
    db: AsyncSession, user_id: str, positions: Iterable[tuple[uuid.UUID, int]]
) -> None:
    now = utcnow()
    for project_id, position in positions:
        project = await get_project(db, user_id, project_id)
        project.position = position
        project.updated_at = now
    await db.commit()


async def check_project_deletion(
    db: AsyncSession, user_id: str, project_id: uuid.UUID
) -> ProjectDeletionCheck:
    project = await get_project(db, user_id, project_id)
    stmt = select(
        func.count(Task.id),
        func.coalesce(func.sum(case((Task.completed.is_(False), 1), else_=0)), 0),
    ).where(
        Task.user_id == user_id,
        Task.project_id == project_id,
        Task.is_deleted.is_(False),
    )
    total, incomplete = (await db.execute(stmt)).one()
    return ProjectDeletionCheck(
        can_delete=not project.is_default,
        has_incomplete_tasks=int(incomplete) > 0,
        incomplete_task_count=int(incomplete),
        total_task_count=int(total),
    )


async def delete_project(
    db: AsyncSession, user_id: str, project_id: uuid.UUID, *, confirm: bool = False
) -> int:
    """Soft-delete a project together with its tasks.

    Returns the number of tasks soft-deleted with it.
    """
    project = await get_project(db, user_id, project_id)
    if project.is_default:
        raise TaskFlowError("Cannot delete default project", ErrorCode.CANNOT_DELETE_DEFAULT)

    check = await check_project_deletion(db, user_id, project_id)
    if check.has_incomplete_tasks and not confirm:
        raise Conflict(
            f"Project has {check.incomplete_task_count} incomplete tasks. "
            "Confirmation required.",
            ErrorCode.CONFIRMATION_REQUIRED,
        )

    now = utcnow()
    result = await db.execute(
        select(Task).where(
            Task.user_id == user_id,
            Task.project_id == project_id,
            Task.is_deleted.is_(False),
        )
    )
    tasks = list(result.scalars().all())
    removed_tags: list[str] = []
    for task in tasks:
        task.is_deleted = True
        task.deleted_at = now
        task.updated_at = now
        task.version = (task.version or 0) + 1
        removed_tags.extend(task.tags or [])

    await tag_svc.adjust_usage(db, user_id, removed=removed_tags)

    project.is_deleted = True
    project.task_count = 0
    project.completed_task_count = 0
    project.updated_at = now
    await db.commit()
    log.info("Deleted project %s for %s with %d tasks", project_id, user_id, len(tasks))
    return len(tasks)


def subscribe_to_projects(feed: ChangeFeed, user_id: str, callback):
    """Call *callback* after every committed change to the user's projects."""
    return feed.subscribe(user_id, PROJECTS, callback)
