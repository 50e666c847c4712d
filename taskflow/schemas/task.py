"""Task request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from ..constants import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    title: str
    description: str = ""
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    tags: list[str] = []
    due_date: datetime | str | None = None
    due_time: str | None = None
    start_date: datetime | str | None = None
    project_id: uuid.UUID | None = None


class TaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    tags: list[str] | None = None
    due_date: datetime | str | None = None
    due_time: str | None = None
    start_date: datetime | str | None = None
    project_id: uuid.UUID | None = None
    completed: bool | None = None
    position: int | None = None


class TaskComplete(BaseModel):
    completed: bool = True


class BulkComplete(BaseModel):
    task_ids: list[uuid.UUID]
    completed: bool = True


class TaskRead(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    title: str
    description: str
    status: str
    priority: str
    tags: list[str]
    due_date: datetime | None
    due_time: str | None
    start_date: datetime | None
    project_id: uuid.UUID | None
    completed: bool
    completed_at: datetime | None
    position: int
    is_deleted: bool
    version: int
    created_at: datetime
    updated_at: datetime
