"""Current user and user permission administration endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from keepi.api.dependencies import get_resolve_user, get_user_repository
from keepi.api.errors import raise_for_error
from keepi.core.auth import ResolvedUser, ResolveUser
from keepi.core.permissions import UserPermission
from keepi.repositories.interfaces import UserPermissions, UserRecord
from keepi.repositories.user_repository import SqlUserRepository
from keepi.services.users import GetAllUsers, GetUser, UpdateUserPermissions, UpdateUserPermissionsError

router = APIRouter(prefix="/users", tags=["users"])

PermissionLabel = Literal["none", "read", "read_and_modify"]


class UserPermissionsPayload(BaseModel):
    entries_permission: PermissionLabel
    exports_permission: PermissionLabel
    projects_permission: PermissionLabel
    users_permission: PermissionLabel


def _serialize_user(user: ResolvedUser | UserRecord) -> dict[str, object]:
    return {
        "id": user.id,
        "name": user.name,
        "email_address": user.email_address,
        "entries_permission": user.entries_permission.label,
        "exports_permission": user.exports_permission.label,
        "projects_permission": user.projects_permission.label,
        "users_permission": user.users_permission.label,
    }


@router.get("/me")
async def get_me(resolve_user: ResolveUser = Depends(get_resolve_user)) -> dict[str, object]:
    """Return the caller, registering them on first use."""

    result = await GetUser(resolve_user=resolve_user).execute()
    succeeded, user, error = result.try_success()
    if not succeeded:
        raise_for_error(error)
    return _serialize_user(user)


@router.get("")
async def list_users(
    resolve_user: ResolveUser = Depends(get_resolve_user),
    user_repository: SqlUserRepository = Depends(get_user_repository),
) -> dict[str, list[object]]:
    result = await GetAllUsers(resolve_user=resolve_user, user_repository=user_repository).execute()
    succeeded, users, error = result.try_success()
    if not succeeded:
        raise_for_error(error)
    return {"items": [_serialize_user(user) for user in users]}


@router.put("/{user_id}/permissions", status_code=status.HTTP_204_NO_CONTENT)
async def update_user_permissions(
    user_id: int,
    payload: UserPermissionsPayload,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    user_repository: SqlUserRepository = Depends(get_user_repository),
) -> Response:
    result = await UpdateUserPermissions(resolve_user=resolve_user, user_repository=user_repository).execute(
        user_id=user_id,
        permissions=UserPermissions(
            entries=UserPermission.from_label(payload.entries_permission),
            exports=UserPermission.from_label(payload.exports_permission),
            projects=UserPermission.from_label(payload.projects_permission),
            users=UserPermission.from_label(payload.users_permission),
        ),
    )
    if not result.succeeded:
        raise_for_error(result.error, not_found=(UpdateUserPermissionsError.UNKNOWN_USER_ID,))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
