"""Caller's entry category endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.api.dependencies import get_resolve_user
from keepi.api.errors import raise_for_error
from keepi.core.auth import ResolveUser
from keepi.db.dependencies import get_db_session
from keepi.repositories.interfaces import UserEntryCategoryData, UserEntryCategoryRecord, UserEntryCategoryUpdate
from keepi.repositories.user_entry_category_repository import SqlUserEntryCategoryRepository
from keepi.services.entry_categories import (
    CreateUserEntryCategory,
    DeleteUserEntryCategory,
    DeleteUserEntryCategoryError,
    GetUserEntryCategories,
    UpdateUserEntryCategories,
    UpdateUserEntryCategory,
    UpdateUserEntryCategoryError,
)

router = APIRouter(prefix="/user/entrycategories", tags=["entry categories"])


class UserEntryCategoryPayload(BaseModel):
    name: str
    ordinal: int
    enabled: bool = True
    active_from: date | None = None
    active_to: date | None = None

    def to_data(self) -> UserEntryCategoryData:
        return UserEntryCategoryData(
            name=self.name,
            ordinal=self.ordinal,
            enabled=self.enabled,
            active_from=self.active_from,
            active_to=self.active_to,
        )


class UserEntryCategoryListItemPayload(UserEntryCategoryPayload):
    id: int | None = None


class UserEntryCategoriesPayload(BaseModel):
    categories: list[UserEntryCategoryListItemPayload] = Field(default_factory=list)


def _serialize_category(category: UserEntryCategoryRecord) -> dict[str, object]:
    return {
        "id": category.id,
        "name": category.name,
        "ordinal": category.ordinal,
        "enabled": category.enabled,
        "active_from": category.active_from.isoformat() if category.active_from else None,
        "active_to": category.active_to.isoformat() if category.active_to else None,
    }


@router.get("")
async def list_entry_categories(
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, list[object]]:
    use_case = GetUserEntryCategories(
        resolve_user=resolve_user, category_repository=SqlUserEntryCategoryRepository(db)
    )
    succeeded, categories, error = (await use_case.execute()).try_success()
    if not succeeded:
        raise_for_error(error)
    return {"items": [_serialize_category(category) for category in categories]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_entry_category(
    payload: UserEntryCategoryPayload,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, int]:
    use_case = CreateUserEntryCategory(
        resolve_user=resolve_user, category_repository=SqlUserEntryCategoryRepository(db)
    )
    succeeded, category_id, error = (await use_case.execute(data=payload.to_data())).try_success()
    if not succeeded:
        raise_for_error(error)
    return {"id": category_id}


@router.put("", status_code=status.HTTP_204_NO_CONTENT)
async def replace_entry_categories(
    payload: UserEntryCategoriesPayload,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    use_case = UpdateUserEntryCategories(
        resolve_user=resolve_user, category_repository=SqlUserEntryCategoryRepository(db)
    )
    result = await use_case.execute(
        categories=[
            UserEntryCategoryUpdate(id=category.id, data=category.to_data()) for category in payload.categories
        ]
    )
    if not result.succeeded:
        raise_for_error(result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_entry_category(
    category_id: int,
    payload: UserEntryCategoryPayload,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    use_case = UpdateUserEntryCategory(
        resolve_user=resolve_user, category_repository=SqlUserEntryCategoryRepository(db)
    )
    result = await use_case.execute(category_id=category_id, data=payload.to_data())
    if not result.succeeded:
        raise_for_error(result.error, not_found=(UpdateUserEntryCategoryError.UNKNOWN_USER_ENTRY_CATEGORY,))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry_category(
    category_id: int,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    use_case = DeleteUserEntryCategory(
        resolve_user=resolve_user, category_repository=SqlUserEntryCategoryRepository(db)
    )
    result = await use_case.execute(category_id=category_id)
    if not result.succeeded:
        raise_for_error(result.error, not_found=(DeleteUserEntryCategoryError.UNKNOWN_USER_ENTRY_CATEGORY,))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
