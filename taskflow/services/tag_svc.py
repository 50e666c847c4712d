"""Tag service.

Tasks reference tags by slug name. ``usage_count`` tracks how many live tasks
carry each tag and is adjusted with atomic increments as task tags change.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Iterable

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import session_settings
from ..constants import DEFAULT_TAG_COLOR
from ..errors import Conflict, ErrorCode, NotFound, TaskFlowError
from ..events import TAGS, mark_changed
from ..models.tag import Tag
from ..models.task import Task
from ..validation import sanitize_tag_name, validate_tag_create, validate_tag_update

log = logging.getLogger(__name__)

_UPDATABLE = {"display_name", "description", "color", "is_active"}


async def get_tags(db: AsyncSession, user_id: str, *, active_only: bool = False) -> list[Tag]:
    stmt = select(Tag).where(Tag.user_id == user_id)
    if active_only:
        stmt = stmt.where(Tag.is_active.is_(True))
    stmt = stmt.order_by(Tag.name).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_tag(db: AsyncSession, user_id: str, tag_id: uuid.UUID) -> Tag:
    stmt = (
        select(Tag)
        .where(Tag.id == tag_id, Tag.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    tag = (await db.execute(stmt)).scalar_one_or_none()
    if not tag:
        raise NotFound("Tag not found", ErrorCode.TAG_NOT_FOUND)
    return tag


async def _count_tags(db: AsyncSession, user_id: str) -> int:
    stmt = select(func.count(Tag.id)).where(Tag.user_id == user_id)
    return (await db.execute(stmt)).scalar_one()


async def _check_limit(db: AsyncSession, user_id: str, adding: int = 1) -> None:
    limit = session_settings(db).max_tags_per_user
    if await _count_tags(db, user_id) + adding > limit:
        raise TaskFlowError(
            f"Maximum of {limit} tags reached",
            ErrorCode.RESOURCE_LIMIT_EXCEEDED,
        )


async def create_tag(
    db: AsyncSession,
    user_id: str,
    name: str,
    *,
    display_name: str | None = None,
    description: str = "",
    color: str = DEFAULT_TAG_COLOR,
) -> Tag:
    validate_tag_create(
        {"name": name, "display_name": display_name, "description": description, "color": color}
    ).raise_for_errors()

    existing = await db.execute(select(Tag.id).where(Tag.user_id == user_id, Tag.name == name))
    if existing.scalar_one_or_none():
        raise Conflict(f"Tag '{name}' already exists", ErrorCode.DUPLICATE_RESOURCE)
    await _check_limit(db, user_id)

    tag = Tag(
        user_id=user_id,
        name=name,
        display_name=display_name or name,
        description=description or "",
        color=color or DEFAULT_TAG_COLOR,
    )
    db.add(tag)
    await db.commit()
    await db.refresh(tag)
    return tag


async def update_tag(db: AsyncSession, user_id: str, tag_id: uuid.UUID, **changes) -> Tag:
    validate_tag_update(changes).raise_for_errors()
    tag = await get_tag(db, user_id, tag_id)
    for key, value in changes.items():
        if key in _UPDATABLE:
            setattr(tag, key, value)
    await db.commit()
    await db.refresh(tag)
    return tag


async def delete_tag(db: AsyncSession, user_id: str, tag_id: uuid.UUID) -> None:
    """Hard-delete a tag and strip its name from the owner's tasks."""
    tag = await get_tag(db, user_id, tag_id)

    result = await db.execute(select(Task).where(Task.user_id == user_id))
    stripped = 0
    for task in result.scalars().all():
        if task.tags and tag.name in task.tags:
            task.tags = [t for t in task.tags if t != tag.name]
            stripped += 1

    await db.delete(tag)
    await db.commit()
    log.info("Deleted tag %s for %s (removed from %d tasks)", tag.name, user_id, stripped)


async def get_or_create_tags(
    db: AsyncSession, user_id: str, names: Iterable[str]
) -> list[Tag]:
    """Resolve *names* to tags, creating missing ones. Does not commit."""
    wanted = []
    for raw in names:
        name = sanitize_tag_name(raw)
        if name and name not in wanted:
            wanted.append(name)
    if not wanted:
        return []

    result = await db.execute(select(Tag).where(Tag.user_id == user_id, Tag.name.in_(wanted)))
    found = {tag.name: tag for tag in result.scalars().all()}

    missing = [name for name in wanted if name not in found]
    if missing:
        await _check_limit(db, user_id, adding=len(missing))
        for name in missing:
            tag = Tag(user_id=user_id, name=name, display_name=name, color=DEFAULT_TAG_COLOR)
            db.add(tag)
            found[name] = tag
        await db.flush()

    return [found[name] for name in wanted]


async def adjust_usage(
    db: AsyncSession,
    user_id: str,
    added: Iterable[str] = (),
    removed: Iterable[str] = (),
) -> None:
    """Move ``usage_count`` by +1 per added and -1 per removed name, floored at 0.

    Added names that have no tag row yet are created. Does not commit.
    """
    deltas: Counter[str] = Counter()
    added = list(added)
    for name in added:
        deltas[name] += 1
    for name in removed:
        deltas[name] -= 1

    if added:
        await get_or_create_tags(db, user_id, added)

    for name, delta in deltas.items():
        if not delta:
            continue
        new_count = Tag.usage_count + delta
        await db.execute(
            update(Tag)
            .where(Tag.user_id == user_id, Tag.name == name)
            .values(usage_count=case((new_count < 0, 0), else_=new_count))
            .execution_options(synchronize_session=False)
        )
        mark_changed(db, user_id, TAGS)
