"""Project request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from ..constants import ProjectMode


class ProjectCreate(BaseModel):
    name: str
    mode: ProjectMode
    description: str = ""
    color: str | None = None
    icon: str | None = None


class ProjectUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    is_archived: bool | None = None
    position: int | None = None


class ProjectRead(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    description: str
    mode: str
    color: str
    icon: str
    task_count: int
    completed_task_count: int
    is_default: bool
    is_archived: bool
    position: int
    created_at: datetime
    updated_at: datetime


class DeletionCheckRead(BaseModel):
    model_config = {"from_attributes": True}

    can_delete: bool
    has_incomplete_tasks: bool
    incomplete_task_count: int
    total_task_count: int
