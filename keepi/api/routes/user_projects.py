"""Caller's projects and invoice item customization endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.api.dependencies import get_resolve_user
from keepi.api.errors import raise_for_error
from keepi.core.auth import ResolveUser
from keepi.core.color import Color
from keepi.db.dependencies import get_db_session
from keepi.repositories.interfaces import InvoiceItemCustomizationInput, UserProject
from keepi.repositories.user_project_repository import SqlUserProjectRepository
from keepi.services.user_projects import GetUserProjects, UpdateUserInvoiceItemCustomizations

router = APIRouter(prefix="/user", tags=["user"])


class InvoiceItemCustomizationPayload(BaseModel):
    invoice_item_id: int
    ordinal: int
    color: str | None = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str | None) -> str | None:
        if value is not None and Color.try_parse_hex_string(value) is None:
            raise ValueError("color must be formatted as #rrggbb")
        return value


class InvoiceItemCustomizationsPayload(BaseModel):
    invoice_items: list[InvoiceItemCustomizationPayload] = Field(default_factory=list)


def _serialize_user_project(project: UserProject) -> dict[str, object]:
    return {
        "id": project.id,
        "name": project.name,
        "enabled": project.enabled,
        "invoice_items": [
            {
                "id": item.id,
                "name": item.name,
                "customization": {
                    "ordinal": item.customization.ordinal,
                    "color": item.customization.color.to_hex_string() if item.customization.color else None,
                },
            }
            for item in project.invoice_items
        ],
    }


@router.get("/projects")
async def list_user_projects(
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, list[object]]:
    use_case = GetUserProjects(resolve_user=resolve_user, user_project_repository=SqlUserProjectRepository(db))
    succeeded, projects, error = (await use_case.execute()).try_success()
    if not succeeded:
        raise_for_error(error)
    return {"items": [_serialize_user_project(project) for project in projects]}


@router.put("/invoiceitemcustomizations", status_code=status.HTTP_204_NO_CONTENT)
async def update_invoice_item_customizations(
    payload: InvoiceItemCustomizationsPayload,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    use_case = UpdateUserInvoiceItemCustomizations(
        resolve_user=resolve_user, user_project_repository=SqlUserProjectRepository(db)
    )
    result = await use_case.execute(
        customizations=[
            InvoiceItemCustomizationInput(
                invoice_item_id=item.invoice_item_id,
                ordinal=item.ordinal,
                color=Color.from_hex_string(item.color) if item.color is not None else None,
            )
            for item in payload.invoice_items
        ]
    )
    if not result.succeeded:
        raise_for_error(result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
