"""Current-user profile routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user_id
from ..database import get_db
from ..schemas.common import ok
from ..schemas.user import ProfileRead, ProfileUpdate
from ..services import user_svc

router = APIRouter(prefix="/users", tags=["users"])


def _profile_out(profile) -> dict:
    return ProfileRead.model_validate(profile).model_dump(mode="json")


@router.get("/me")
async def get_me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    profile = await user_svc.ensure_user(db, user_id)
    await db.commit()
    return ok(_profile_out(profile))


@router.put("/me")
async def update_me(
    data: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    profile = await user_svc.update_profile(db, user_id, **data.model_dump(exclude_unset=True))
    return ok(_profile_out(profile))


@router.get("/me/stats")
async def my_stats(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    profile = await user_svc.refresh_stats(db, user_id)
    return ok(profile.stats)
