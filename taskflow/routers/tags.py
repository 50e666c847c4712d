"""Tag API routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user_id
from ..database import get_db
from ..schemas.common import ok
from ..schemas.tag import TagCreate, TagRead, TagUpdate
from ..services import tag_svc

router = APIRouter(prefix="/tags", tags=["tags"])


def _tag_out(tag) -> dict:
    return TagRead.model_validate(tag).model_dump(mode="json")


@router.get("")
async def list_tags(
    active_only: bool = False,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    tags = await tag_svc.get_tags(db, user_id, active_only=active_only)
    return ok([_tag_out(t) for t in tags])


@router.post("", status_code=201)
async def create_tag(
    data: TagCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    kwargs = data.model_dump(exclude_none=True)
    tag = await tag_svc.create_tag(db, user_id, kwargs.pop("name"), **kwargs)
    return ok(_tag_out(tag))


@router.put("/{tag_id}")
async def update_tag(
    tag_id: uuid.UUID,
    data: TagUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    tag = await tag_svc.update_tag(db, user_id, tag_id, **data.model_dump(exclude_unset=True))
    return ok(_tag_out(tag))


@router.delete("/{tag_id}")
async def delete_tag(
    tag_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await tag_svc.delete_tag(db, user_id, tag_id)
    return ok()
