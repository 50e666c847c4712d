"""Tag request/response schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel


class TagCreate(BaseModel):
    name: str
    display_name: str | None = None
    description: str = ""
    color: str | None = None


class TagUpdate(BaseModel):
    display_name: str | None = None
    description: str | None = None
    color: str | None = None
    is_active: bool | None = None


class TagRead(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    display_name: str
    description: str
    color: str
    usage_count: int
    is_active: bool
