"""Task API routes."""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user_id
from ..constants import TaskPriority, TaskStatus
from ..database import get_db
from ..schemas.common import PositionUpdate, ok
from ..schemas.task import BulkComplete, TaskComplete, TaskCreate, TaskRead, TaskUpdate
from ..services import task_svc

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _task_out(task) -> dict:
    return TaskRead.model_validate(task).model_dump(mode="json")


@router.get("")
async def list_tasks(
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    project_id: uuid.UUID | None = None,
    tag: str | None = None,
    search: str | None = None,
    include_completed: bool = True,
    overdue: bool = False,
    due_from: datetime | None = None,
    due_to: datetime | None = None,
    limit: int | None = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    filters = task_svc.TaskFilters(
        status=status,
        priority=priority,
        project_id=project_id,
        tag=tag,
        search=search,
        include_completed=include_completed,
        overdue=overdue,
        due_from=due_from,
        due_to=due_to,
        limit=limit,
    )
    tasks = await task_svc.get_tasks(db, user_id, filters)
    return ok([_task_out(t) for t in tasks])


@router.post("", status_code=201)
async def create_task(
    data: TaskCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    task = await task_svc.create_task(db, user_id, **data.model_dump())
    return ok(_task_out(task))


@router.get("/today")
async def today_tasks(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    tasks = await task_svc.get_today_tasks(db, user_id)
    return ok([_task_out(t) for t in tasks])


@router.get("/stats")
async def task_stats(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(await task_svc.get_task_statistics(db, user_id))


@router.post("/bulk-complete")
async def bulk_complete(
    data: BulkComplete,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    tasks = await task_svc.bulk_toggle_complete(db, user_id, data.task_ids, data.completed)
    return ok([_task_out(t) for t in tasks])


@router.put("/positions")
async def update_positions(
    data: list[PositionUpdate],
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await task_svc.update_task_positions(
        db, user_id, [(p.id, p.position) for p in data]
    )
    return ok()


@router.get("/{task_id}")
async def get_task(
    task_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(_task_out(await task_svc.get_task(db, user_id, task_id)))


@router.put("/{task_id}")
async def update_task(
    task_id: uuid.UUID,
    data: TaskUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    task = await task_svc.update_task(db, user_id, task_id, **changes)
    return ok(_task_out(task))


@router.post("/{task_id}/complete")
async def toggle_complete(
    task_id: uuid.UUID,
    data: TaskComplete | None = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    task = await task_svc.toggle_task_complete(
        db, user_id, task_id, data.completed if data else True
    )
    return ok(_task_out(task))


@router.delete("/{task_id}")
async def delete_task(
    task_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await task_svc.delete_task(db, user_id, task_id)
    return ok()
