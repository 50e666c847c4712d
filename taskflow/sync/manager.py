"""Background sync manager.

One manager per signed-in user. While running it periodically reconciles the
user's denormalized state (project counters, profile stats) against the task
table. Resolving conflicting offline edits is not implemented; ``conflicts``
is always reported as 0 until a real merge strategy exists.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import ErrorCode, TaskFlowError
from ..models.base import utcnow
from ..schemas.sync import SyncResult, SyncStatus
from ..services import counter_svc, user_svc

log = logging.getLogger(__name__)

SYNC_START = "sync_start"
SYNC_COMPLETE = "sync_complete"
SYNC_ERROR = "sync_error"
_EVENTS = (SYNC_START, SYNC_COMPLETE, SYNC_ERROR)


class SyncState(str, Enum):
    STOPPED = "stopped"
    IDLE = "idle"
    SYNCING = "syncing"
    PAUSED = "paused"
    OFFLINE = "offline"


class SyncManager:
    """Periodic reconciliation loop for a single user."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        user_id: str,
        *,
        interval: float = 30.0,
        enabled: bool = True,
    ) -> None:
        self.session_factory = session_factory
        self.user_id = user_id
        self.interval = interval
        self.enabled = enabled

        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._sync_lock = asyncio.Lock()
        self._listeners: dict[str, list[Callable]] = defaultdict(list)

        self._online = True
        self._paused = False
        self._syncing = False
        self.last_sync_time: datetime | None = None
        self.last_error: str | None = None
        self.pending_changes = 0
        self.conflicts = 0

    # ── Lifecycle ──────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def state(self) -> SyncState:
        if not self._online:
            return SyncState.OFFLINE
        if self._syncing:
            return SyncState.SYNCING
        if not self.is_running:
            return SyncState.STOPPED
        if self._paused:
            return SyncState.PAUSED
        return SyncState.IDLE

    def start_sync(self) -> None:
        if self.is_running or not self.enabled or not self._online:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name=f"sync-{self.user_id}")
        log.info("Sync started for %s (every %ss)", self.user_id, self.interval)

    async def stop_sync(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        log.info("Sync stopped for %s", self.user_id)

    def pause_sync(self) -> None:
        self._paused = True

    def resume_sync(self) -> None:
        self._paused = False

    async def set_online(self, online: bool) -> None:
        """Connectivity transition: going offline stops the loop, coming back restarts it."""
        was_online, self._online = self._online, online
        if was_online and not online:
            await self.stop_sync()
        elif online and not was_online:
            self.start_sync()

    async def update_config(
        self, *, interval: float | None = None, enabled: bool | None = None
    ) -> None:
        if interval is not None:
            self.interval = interval
        if enabled is not None:
            self.enabled = enabled
            if not enabled:
                await self.stop_sync()

    # ── Listeners ──────────────────────────────────────────────────────────

    def on(self, event: str, callback: Callable) -> Callable[[], None]:
        if event not in _EVENTS:
            raise ValueError(f"Unknown sync event: {event}")
        self._listeners[event].append(callback)

        def off() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        return off

    def _emit(self, event: str, payload=None) -> None:
        for callback in list(self._listeners[event]):
            try:
                callback(payload)
            except Exception:
                log.exception("Sync listener for %s failed", event)

    # ── Sync ───────────────────────────────────────────────────────────────

    def get_status(self) -> SyncStatus:
        return SyncStatus(
            is_running=self.is_running,
            is_online=self._online,
            state=self.state.value,
            last_sync_time=self.last_sync_time,
            pending_changes=self.pending_changes,
            conflicts=self.conflicts,
            last_error=self.last_error,
        )

    async def force_sync(self) -> SyncResult:
        if not self._online:
            raise TaskFlowError("Cannot sync while offline", ErrorCode.OFFLINE_MODE)
        return await self.perform_sync()

    async def perform_sync(self) -> SyncResult:
        async with self._sync_lock:
            self._syncing = True
            self._emit(SYNC_START)
            try:
                async with self.session_factory() as db:
                    corrections = await counter_svc.reconcile_user_counters(db, self.user_id)
                    await user_svc.refresh_stats(db, self.user_id)
            except Exception as exc:
                self.last_error = str(exc)
                log.exception("Sync failed for %s", self.user_id)
                self._emit(SYNC_ERROR, exc)
                raise
            finally:
                self._syncing = False

            result = SyncResult(synced=len(corrections), conflicts=self.conflicts)
            self.last_sync_time = utcnow()
            self.last_error = None
            self.pending_changes = 0
            log.debug("Sync complete for %s: %s", self.user_id, result)
            self._emit(SYNC_COMPLETE, result.model_dump())
            return result

    def clear_local_data(self) -> None:
        """Forget sync bookkeeping; server state is untouched."""
        self.last_sync_time = None
        self.last_error = None
        self.pending_changes = 0
        self.conflicts = 0
        log.info("Cleared sync state for %s", self.user_id)

    async def _run_loop(self) -> None:
        # First pass runs one interval after start.
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set() or self._paused:
                continue
            try:
                await self.perform_sync()
            except asyncio.CancelledError:
                raise
            except Exception:  # already logged and emitted
                pass


class SyncRegistry:
    """Lazily creates and owns the per-user managers of one application."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        interval: float = 30.0,
        enabled: bool = True,
    ) -> None:
        self.session_factory = session_factory
        self.interval = interval
        self.enabled = enabled
        self._managers: dict[str, SyncManager] = {}

    def get(self, user_id: str) -> SyncManager:
        manager = self._managers.get(user_id)
        if manager is None:
            manager = SyncManager(
                self.session_factory, user_id, interval=self.interval, enabled=self.enabled
            )
            self._managers[user_id] = manager
        return manager

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._managers

    def __len__(self) -> int:
        return len(self._managers)

    async def remove(self, user_id: str) -> None:
        """Stop and forget the user's manager (sign-out)."""
        manager = self._managers.pop(user_id, None)
        if manager is not None:
            await manager.stop_sync()

    async def stop_all(self) -> None:
        for manager in list(self._managers.values()):
            await manager.stop_sync()
        self._managers.clear()
