"""Project API routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user_id
from ..constants import ProjectMode
from ..database import get_db
from ..schemas.common import PositionUpdate, ok
from ..schemas.project import DeletionCheckRead, ProjectCreate, ProjectRead, ProjectUpdate
from ..services import counter_svc, project_svc

router = APIRouter(prefix="/projects", tags=["projects"])


def _project_out(project) -> dict:
    return ProjectRead.model_validate(project).model_dump(mode="json")


@router.get("")
async def list_projects(
    mode: ProjectMode | None = None,
    is_archived: bool | None = None,
    include_default: bool = True,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    projects = await project_svc.get_projects(
        db, user_id, mode=mode, is_archived=is_archived, include_default=include_default
    )
    return ok([_project_out(p) for p in projects])


@router.post("", status_code=201)
async def create_project(
    data: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    project = await project_svc.create_project(
        db,
        user_id,
        data.name,
        data.mode,
        description=data.description,
        color=data.color,
        icon=data.icon,
    )
    return ok(_project_out(project))


@router.get("/default/{mode}")
async def default_project(
    mode: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    project = await project_svc.get_or_create_default_project(db, user_id, mode)
    return ok(_project_out(project))


@router.put("/positions")
async def update_positions(
    data: list[PositionUpdate],
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await project_svc.update_project_positions(
        db, user_id, [(p.id, p.position) for p in data]
    )
    return ok()


@router.get("/{project_id}")
async def get_project(
    project_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return ok(_project_out(await project_svc.get_project(db, user_id, project_id)))


@router.put("/{project_id}")
async def update_project(
    project_id: uuid.UUID,
    data: ProjectUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    project = await project_svc.update_project(db, user_id, project_id, **changes)
    return ok(_project_out(project))


@router.get("/{project_id}/deletion-check")
async def deletion_check(
    project_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    check = await project_svc.check_project_deletion(db, user_id, project_id)
    return ok(DeletionCheckRead.model_validate(check).model_dump())


@router.post("/{project_id}/reconcile")
async def reconcile_project(
    project_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await project_svc.get_project(db, user_id, project_id)
    drift = await counter_svc.recompute_project_counts(db, user_id, project_id)
    project = await project_svc.get_project(db, user_id, project_id)
    return ok({
        "project": _project_out(project),
        "corrected": drift is not None,
    })


@router.delete("/{project_id}")
async def delete_project(
    project_id: uuid.UUID,
    confirm: bool = False,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    deleted_tasks = await project_svc.delete_project(db, user_id, project_id, confirm=confirm)
    return ok({"deleted_tasks": deleted_tasks})
