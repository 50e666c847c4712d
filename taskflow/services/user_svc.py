"""User profile service: preferences, timezone and denormalized stats."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import session_settings
from ..constants import DEFAULT_USER_PREFERENCES, DEFAULT_USER_STATS
from ..errors import ErrorCode, NotFound
from ..models.base import utcnow
from ..models.task import Task
from ..models.user import UserProfile
from ..timeutil import local_day_bounds
from ..validation import validate_user_update

_UPDATABLE = {"display_name", "photo_url", "email"}


async def get_profile(db: AsyncSession, user_id: str) -> UserProfile:
    profile = await db.get(UserProfile, user_id)
    if not profile:
        raise NotFound("User not found", ErrorCode.USER_NOT_FOUND)
    return profile


async def ensure_user(
    db: AsyncSession,
    user_id: str,
    *,
    email: str | None = None,
    lock: bool = False,
) -> UserProfile:
    """Return the profile for *user_id*, creating it on first sight.

    With ``lock=True`` the row is selected ``FOR UPDATE`` so callers can
    serialize per-user check-then-insert sequences (no-op on SQLite).
    """
    stmt = select(UserProfile).where(UserProfile.id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    profile = (await db.execute(stmt)).scalar_one_or_none()
    if profile:
        return profile

    timezone = session_settings(db).default_timezone
    profile = UserProfile(
        id=user_id,
        email=email,
        preferences={**DEFAULT_USER_PREFERENCES, "timezone": timezone},
        stats=dict(DEFAULT_USER_STATS),
        last_active_at=utcnow(),
    )
    db.add(profile)
    try:
        await db.flush()
    except IntegrityError:
        # Another request created it first; this transaction had no other work yet.
        await db.rollback()
        profile = (await db.execute(stmt)).scalar_one()
    return profile


async def update_profile(db: AsyncSession, user_id: str, **changes) -> UserProfile:
    validate_user_update(changes).raise_for_errors()
    profile = await ensure_user(db, user_id)

    for key, value in changes.items():
        if key in _UPDATABLE:
            setattr(profile, key, value)

    preferences = changes.get("preferences")
    if preferences:
        profile.preferences = {**(profile.preferences or {}), **preferences}

    profile.last_active_at = utcnow()
    await db.commit()
    await db.refresh(profile)
    return profile


async def get_user_timezone(db: AsyncSession, user_id: str) -> str:
    profile = await db.get(UserProfile, user_id)
    if profile and profile.preferences:
        tz = profile.preferences.get("timezone")
        if tz:
            return tz
    return session_settings(db).default_timezone


async def compute_stats(
    db: AsyncSession, user_id: str, *, now: datetime | None = None
) -> dict[str, int]:
    tz = await get_user_timezone(db, user_id)
    today_start, _ = local_day_bounds(tz, now)
    stmt = select(
        func.count(Task.id),
        func.coalesce(func.sum(case((Task.completed.is_(True), 1), else_=0)), 0),
        func.coalesce(
            func.sum(
                case(
                    (and_(Task.completed.is_(False), Task.due_date < today_start), 1),
                    else_=0,
                )
            ),
            0,
        ),
    ).where(Task.user_id == user_id, Task.is_deleted.is_(False))
    total, completed, overdue = (await db.execute(stmt)).one()
    return {
        "total_tasks": int(total),
        "completed_tasks": int(completed),
        "active_tasks": int(total) - int(completed),
        "overdue_tasks": int(overdue),
    }


async def refresh_stats(
    db: AsyncSession, user_id: str, *, now: datetime | None = None
) -> UserProfile:
    """Recompute the profile's denormalized task stats from the task table."""
    profile = await ensure_user(db, user_id)
    profile.stats = {**(profile.stats or {}), **await compute_stats(db, user_id, now=now)}
    await db.commit()
    await db.refresh(profile)
    return profile
