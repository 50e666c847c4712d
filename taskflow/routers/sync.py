"""Sync routes.

A client starts its background sync when it signs in and stops it when it
signs out; connectivity changes are reported through ``/sync/online``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..auth import get_current_user_id
from ..schemas.common import ok
from ..schemas.sync import ConnectivityUpdate
from ..sync.manager import SyncManager

router = APIRouter(prefix="/sync", tags=["sync"])


def _manager(request: Request, user_id: str) -> SyncManager:
    return request.app.state.sync_registry.get(user_id)


def _status(manager: SyncManager) -> dict:
    return ok(manager.get_status().model_dump(mode="json"))


@router.get("/status")
async def sync_status(request: Request, user_id: str = Depends(get_current_user_id)):
    return _status(_manager(request, user_id))


@router.post("/start")
async def start_sync(request: Request, user_id: str = Depends(get_current_user_id)):
    manager = _manager(request, user_id)
    manager.start_sync()
    return _status(manager)


@router.post("/stop")
async def stop_sync(request: Request, user_id: str = Depends(get_current_user_id)):
    await request.app.state.sync_registry.remove(user_id)
    return ok()


@router.post("/online")
async def set_online(
    data: ConnectivityUpdate,
    request: Request,
    user_id: str = Depends(get_current_user_id),
):
    manager = _manager(request, user_id)
    await manager.set_online(data.online)
    return _status(manager)


@router.post("/run")
async def run_sync(request: Request, user_id: str = Depends(get_current_user_id)):
    result = await _manager(request, user_id).force_sync()
    return ok(result.model_dump())
