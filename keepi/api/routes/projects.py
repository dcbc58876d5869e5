"""Project administration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.api.dependencies import get_resolve_user
from keepi.api.errors import raise_for_error
from keepi.core.auth import ResolveUser
from keepi.db.dependencies import get_db_session
from keepi.repositories.interfaces import ProjectRecord
from keepi.repositories.project_repository import SqlProjectRepository
from keepi.services.projects import (
    CreateProject,
    DeleteProject,
    DeleteProjectError,
    GetAllProjects,
    InvoiceItemInput,
    UpdateProject,
    UpdateProjectError,
)

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectCreatePayload(BaseModel):
    name: str
    enabled: bool = True
    user_ids: list[int] = Field(default_factory=list)
    invoice_item_names: list[str] = Field(default_factory=list)


class InvoiceItemPayload(BaseModel):
    id: int | None = None
    name: str


class ProjectUpdatePayload(BaseModel):
    name: str
    enabled: bool
    user_ids: list[int] = Field(default_factory=list)
    invoice_items: list[InvoiceItemPayload] = Field(default_factory=list)


def _serialize_project(project: ProjectRecord) -> dict[str, object]:
    return {
        "id": project.id,
        "name": project.name,
        "enabled": project.enabled,
        "users": [{"id": user.id, "name": user.name} for user in project.users],
        "invoice_items": [{"id": item.id, "name": item.name} for item in project.invoice_items],
    }


@router.get("")
async def list_projects(
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, list[object]]:
    result = await GetAllProjects(resolve_user=resolve_user, project_repository=SqlProjectRepository(db)).execute()
    succeeded, projects, error = result.try_success()
    if not succeeded:
        raise_for_error(error)
    return {"items": [_serialize_project(project) for project in projects]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreatePayload,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, int]:
    result = await CreateProject(resolve_user=resolve_user, project_repository=SqlProjectRepository(db)).execute(
        name=payload.name,
        enabled=payload.enabled,
        user_ids=payload.user_ids,
        invoice_item_names=payload.invoice_item_names,
    )
    succeeded, project_id, error = result.try_success()
    if not succeeded:
        raise_for_error(error)
    return {"id": project_id}


@router.put("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_project(
    project_id: int,
    payload: ProjectUpdatePayload,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    result = await UpdateProject(resolve_user=resolve_user, project_repository=SqlProjectRepository(db)).execute(
        project_id=project_id,
        name=payload.name,
        enabled=payload.enabled,
        user_ids=payload.user_ids,
        invoice_items=[InvoiceItemInput(id=item.id, name=item.name) for item in payload.invoice_items],
    )
    if not result.succeeded:
        raise_for_error(result.error, not_found=(UpdateProjectError.UNKNOWN_PROJECT_ID,))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    result = await DeleteProject(resolve_user=resolve_user, project_repository=SqlProjectRepository(db)).execute(
        project_id=project_id
    )
    if not result.succeeded:
        raise_for_error(result.error, not_found=(DeleteProjectError.UNKNOWN_PROJECT_ID,))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
