"""User profile schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ProfileUpdate(BaseModel):
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    preferences: dict | None = None


class ProfileRead(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    email: str | None
    display_name: str | None
    photo_url: str | None
    preferences: dict
    stats: dict
    is_active: bool
    last_active_at: datetime | None
    created_at: datetime
