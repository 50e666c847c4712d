"""Test task service."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.errors import ErrorCode, NotFound, TaskFlowError, ValidationFailed
from taskflow.models.task import Task
from taskflow.services import project_svc, tag_svc, task_svc, user_svc
from taskflow.services.task_svc import TaskFilters


@pytest.mark.asyncio
async def test_create_task_defaults(db: AsyncSession, user_id: str):
    now = datetime(2026, 5, 10, 15, 0, tzinfo=timezone.utc)
    task = await task_svc.create_task(db, user_id, "  Buy milk  ", now=now)

    assert task.title == "Buy milk"
    assert task.status == "todo"
    assert task.priority == "medium"
    assert task.completed is False
    assert task.tags == []
    assert task.version == 1
    assert task.position > 0
    assert task.due_date == datetime(2026, 5, 10, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_default_due_date_uses_user_timezone(db: AsyncSession, user_id: str):
    await user_svc.ensure_user(db, user_id)
    await user_svc.update_profile(db, user_id, preferences={"timezone": "America/New_York"})

    # Evening of the 9th in New York.
    now = datetime(2026, 5, 10, 2, 0, tzinfo=timezone.utc)
    task = await task_svc.create_task(db, user_id, "Late", now=now)
    assert task.due_date == datetime(2026, 5, 9, 4, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_create_task_rejects_invalid_input(db: AsyncSession, user_id: str):
    with pytest.raises(ValidationFailed) as info:
        await task_svc.create_task(db, user_id, "")
    assert info.value.code == ErrorCode.MISSING_REQUIRED_FIELD

    with pytest.raises(ValidationFailed):
        await task_svc.create_task(db, user_id, "ok", priority="urgent")


@pytest.mark.asyncio
async def test_create_task_in_unknown_project(db: AsyncSession, user_id: str):
    with pytest.raises(NotFound) as info:
        await task_svc.create_task(db, user_id, "t", project_id=uuid.uuid4())
    assert info.value.code == ErrorCode.PROJECT_NOT_FOUND


@pytest.mark.asyncio
async def test_task_limit(open_session, user_id: str):
    async with open_session(max_tasks_per_user=2) as db:
        await task_svc.create_task(db, user_id, "one")
        await task_svc.create_task(db, user_id, "two")
        with pytest.raises(TaskFlowError) as info:
            await task_svc.create_task(db, user_id, "three")
    assert info.value.code == ErrorCode.RESOURCE_LIMIT_EXCEEDED


@pytest.mark.asyncio
async def test_update_task_bumps_version(db: AsyncSession, user_id: str):
    task = await task_svc.create_task(db, user_id, "Draft")
    updated = await task_svc.update_task(db, user_id, task.id, title="Final", priority="high")
    assert updated.title == "Final"
    assert updated.priority == "high"
    assert updated.version == 2


@pytest.mark.asyncio
async def test_completion_and_status_stay_in_step(db: AsyncSession, user_id: str):
    task = await task_svc.create_task(db, user_id, "t")

    task = await task_svc.update_task(db, user_id, task.id, completed=True)
    assert task.status == "completed"
    assert task.completed_at is not None

    task = await task_svc.update_task(db, user_id, task.id, completed=False)
    assert task.status == "todo"
    assert task.completed_at is None

    task = await task_svc.update_task(db, user_id, task.id, status="completed")
    assert task.completed is True

    task = await task_svc.update_task(db, user_id, task.id, status="in_progress")
    assert task.completed is False
    assert task.status == "in_progress"


@pytest.mark.asyncio
async def test_delete_is_soft(db: AsyncSession, user_id: str):
    task = await task_svc.create_task(db, user_id, "t")
    deleted = await task_svc.delete_task(db, user_id, task.id)
    assert deleted.is_deleted is True
    assert deleted.deleted_at is not None

    with pytest.raises(NotFound):
        await task_svc.get_task(db, user_id, task.id)
    assert (await task_svc.get_task(db, user_id, task.id, include_deleted=True)).id == task.id

    with pytest.raises(NotFound):
        await task_svc.update_task(db, user_id, task.id, title="again")


@pytest.mark.asyncio
async def test_tasks_are_scoped_to_owner(db: AsyncSession, user_id: str):
    task = await task_svc.create_task(db, user_id, "mine")
    with pytest.raises(NotFound) as info:
        await task_svc.get_task(db, "intruder", task.id)
    assert info.value.code == ErrorCode.TASK_NOT_FOUND
    assert await task_svc.get_tasks(db, "intruder") == []


@pytest.mark.asyncio
async def test_get_tasks_filters(db: AsyncSession, user_id: str):
    project = await project_svc.create_project(db, user_id, "Work", "professional")
    await task_svc.create_task(db, user_id, "Write design doc", priority="high", tags=["docs"])
    await task_svc.create_task(db, user_id, "Review PR", project_id=project.id)
    done = await task_svc.create_task(db, user_id, "Deploy", tags=["ops"])
    await task_svc.toggle_task_complete(db, user_id, done.id, True)

    titles = lambda tasks: sorted(t.title for t in tasks)  # noqa: E731

    assert titles(await task_svc.get_tasks(db, user_id)) == ["Deploy", "Review PR", "Write design doc"]
    assert titles(await task_svc.get_tasks(db, user_id, TaskFilters(priority="high"))) == ["Write design doc"]
    assert titles(await task_svc.get_tasks(db, user_id, TaskFilters(project_id=project.id))) == ["Review PR"]
    assert titles(await task_svc.get_tasks(db, user_id, TaskFilters(tag="ops"))) == ["Deploy"]
    assert titles(await task_svc.get_tasks(db, user_id, TaskFilters(search="design"))) == ["Write design doc"]
    assert titles(
        await task_svc.get_tasks(db, user_id, TaskFilters(include_completed=False))
    ) == ["Review PR", "Write design doc"]
    assert titles(await task_svc.get_tasks(db, user_id, TaskFilters(status="completed"))) == ["Deploy"]


@pytest.mark.asyncio
async def test_overdue_filter(db: AsyncSession, user_id: str):
    now = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)
    await task_svc.create_task(db, user_id, "old", due_date=now - timedelta(days=2), now=now)
    await task_svc.create_task(db, user_id, "today", now=now)

    overdue = await task_svc.get_tasks(db, user_id, TaskFilters(overdue=True), now=now)
    assert [t.title for t in overdue] == ["old"]


@pytest.mark.asyncio
async def test_today_tasks_use_timezone_range(db: AsyncSession, user_id: str):
    now = datetime(2026, 5, 10, 2, 0, tzinfo=timezone.utc)  # 9th, 22:00 in New York
    await task_svc.create_task(db, user_id, "utc-10th", due_date="2026-05-10T01:00:00Z")
    await task_svc.create_task(db, user_id, "utc-10th-late", due_date="2026-05-10T12:00:00Z")
    await task_svc.create_task(db, user_id, "utc-9th", due_date="2026-05-09T10:00:00Z")

    utc_today = await task_svc.get_today_tasks(db, user_id, tz="UTC", now=now)
    assert sorted(t.title for t in utc_today) == ["utc-10th", "utc-10th-late"]

    ny_today = await task_svc.get_today_tasks(db, user_id, tz="America/New_York", now=now)
    assert sorted(t.title for t in ny_today) == ["utc-10th", "utc-9th"]


@pytest.mark.asyncio
async def test_bulk_toggle_complete(db: AsyncSession, user_id: str):
    project = await project_svc.create_project(db, user_id, "P", "personal")
    a = await task_svc.create_task(db, user_id, "a", project_id=project.id)
    b = await task_svc.create_task(db, user_id, "b", project_id=project.id)

    tasks = await task_svc.bulk_toggle_complete(db, user_id, [a.id, b.id], True)
    assert all(t.completed for t in tasks)
    refreshed = await project_svc.get_project(db, user_id, project.id)
    assert refreshed.completed_task_count == 2


@pytest.mark.asyncio
async def test_bulk_toggle_is_all_or_nothing(db: AsyncSession, user_id: str):
    a = await task_svc.create_task(db, user_id, "a")
    with pytest.raises(NotFound):
        await task_svc.bulk_toggle_complete(db, user_id, [a.id, uuid.uuid4()], True)
    assert (await task_svc.get_task(db, user_id, a.id)).completed is False


@pytest.mark.asyncio
async def test_update_positions(db: AsyncSession, user_id: str):
    a = await task_svc.create_task(db, user_id, "a")
    b = await task_svc.create_task(db, user_id, "b")
    await task_svc.update_task_positions(db, user_id, [(a.id, 2), (b.id, 1)])
    assert [t.title for t in await task_svc.get_tasks(db, user_id)] == ["b", "a"]


@pytest.mark.asyncio
async def test_tag_usage_follows_task_tags(db: AsyncSession, user_id: str):
    task = await task_svc.create_task(db, user_id, "t", tags=["home", "errand"])
    usage = {t.name: t.usage_count for t in await tag_svc.get_tags(db, user_id)}
    assert usage == {"errand": 1, "home": 1}

    await task_svc.update_task(db, user_id, task.id, tags=["home", "urgent"])
    usage = {t.name: t.usage_count for t in await tag_svc.get_tags(db, user_id)}
    assert usage == {"errand": 0, "home": 1, "urgent": 1}

    await task_svc.delete_task(db, user_id, task.id)
    usage = {t.name: t.usage_count for t in await tag_svc.get_tags(db, user_id)}
    assert usage == {"errand": 0, "home": 0, "urgent": 0}


@pytest.mark.asyncio
async def test_task_statistics(db: AsyncSession, user_id: str):
    now = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)
    await task_svc.create_task(db, user_id, "today", priority="high", now=now)
    await task_svc.create_task(db, user_id, "late", due_date="2026-05-01", now=now)
    done = await task_svc.create_task(db, user_id, "done", now=now)
    await task_svc.toggle_task_complete(db, user_id, done.id, True)

    stats = await task_svc.get_task_statistics(db, user_id, now=now)
    assert stats["total"] == 3
    assert stats["completed"] == 1
    assert stats["active"] == 2
    assert stats["overdue"] == 1
    assert stats["due_today"] == 2
    assert stats["by_priority"]["high"] == 1
    assert stats["by_status"]["completed"] == 1
    assert stats["completion_rate"] == 33


@pytest.mark.asyncio
async def test_update_rejects_null_for_required_fields(db: AsyncSession, user_id: str):
    task = await task_svc.create_task(db, user_id, "t", priority="high")
    for field in ("status", "priority", "description", "position"):
        with pytest.raises(ValidationFailed) as info:
            await task_svc.update_task(db, user_id, task.id, **{field: None})
        assert info.value.code == ErrorCode.INVALID_INPUT

    current = await task_svc.get_task(db, user_id, task.id)
    assert current.priority == "high"
    assert current.status == "todo"
    assert current.version == 1


@pytest.mark.asyncio
async def test_null_completed_does_not_uncomplete(db: AsyncSession, user_id: str):
    project = await project_svc.create_project(db, user_id, "P", "personal")
    task = await task_svc.create_task(db, user_id, "t", project_id=project.id)
    await task_svc.toggle_task_complete(db, user_id, task.id, True)

    with pytest.raises(ValidationFailed):
        await task_svc.update_task(db, user_id, task.id, completed=None, title="y")

    current = await task_svc.get_task(db, user_id, task.id)
    assert current.completed is True
    assert current.title == "t"
    project = await project_svc.get_project(db, user_id, project.id)
    assert project.completed_task_count == 1


@pytest.mark.asyncio
async def test_unparseable_due_date_is_rejected(db: AsyncSession, user_id: str):
    with pytest.raises(ValidationFailed) as info:
        await task_svc.create_task(db, user_id, "x", due_date="next tuesday")
    assert info.value.code == ErrorCode.INVALID_FORMAT
    assert await task_svc.get_tasks(db, user_id) == []

    task = await task_svc.create_task(db, user_id, "x", due_date="2026-05-10")
    with pytest.raises(ValidationFailed) as info:
        await task_svc.update_task(db, user_id, task.id, start_date="someday")
    assert info.value.code == ErrorCode.INVALID_FORMAT
    assert (await task_svc.get_task(db, user_id, task.id)).start_date is None


@pytest.mark.asyncio
async def test_blank_due_date_defaults_to_today(db: AsyncSession, user_id: str):
    now = datetime(2026, 5, 10, 15, 0, tzinfo=timezone.utc)
    task = await task_svc.create_task(db, user_id, "x", due_date="", now=now)
    assert task.due_date == datetime(2026, 5, 10, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_completed_and_status_together(db: AsyncSession, user_id: str):
    task = await task_svc.create_task(db, user_id, "t")
    await task_svc.toggle_task_complete(db, user_id, task.id, True)

    reopened = await task_svc.update_task(
        db, user_id, task.id, completed=False, status="in_progress"
    )
    assert reopened.completed is False
    assert reopened.status == "in_progress"
    assert reopened.completed_at is None

    done = await task_svc.update_task(db, user_id, task.id, completed=True, status="completed")
    assert done.completed is True
    assert done.status == "completed"

    with pytest.raises(ValidationFailed):
        await task_svc.update_task(db, user_id, task.id, completed=True, status="todo")
    with pytest.raises(ValidationFailed):
        await task_svc.update_task(db, user_id, task.id, completed=False, status="completed")
    assert (await task_svc.get_task(db, user_id, task.id)).completed is True


@pytest.mark.asyncio
async def test_update_positions_stamps_updated_at(db: AsyncSession, user_id: str):
    stale = datetime(2020, 1, 1, tzinfo=timezone.utc)
    task = await task_svc.create_task(db, user_id, "a")
    await db.execute(update(Task).where(Task.id == task.id).values(updated_at=stale))
    await db.commit()

    await task_svc.update_task_positions(db, user_id, [(task.id, 7)])
    current = await task_svc.get_task(db, user_id, task.id)
    assert current.position == 7
    assert current.updated_at > stale
