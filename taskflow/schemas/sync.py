"""Sync status schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SyncResult(BaseModel):
    synced: int = 0
    conflicts: int = 0


class SyncStatus(BaseModel):
    is_running: bool = False
    is_online: bool = True
    state: str = "stopped"
    last_sync_time: datetime | None = None
    pending_changes: int = 0
    conflicts: int = 0
    last_error: str | None = None


class ConnectivityUpdate(BaseModel):
    online: bool
