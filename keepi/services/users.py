"""Use cases for reading users and administering their permissions."""

from __future__ import annotations

import enum
import logging

from keepi.core.auth import (
    ResolvedUser,
    ResolveUser,
    any_user,
    authorization_failure,
    authorize,
    can_modify_users,
    can_read_users,
)
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.repositories.interfaces import (
    UpdateUserPermissionsRepositoryError,
    UserPermissions,
    UserRecord,
    UserRepository,
)

logger = logging.getLogger(__name__)


class GetUserError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2


class GetUser:
    """Current caller, registering them on first use."""

    def __init__(self, *, resolve_user: ResolveUser) -> None:
        self.resolve_user = resolve_user

    async def execute(self) -> ValueOrErrorResult[ResolvedUser, GetUserError]:
        succeeded, user, error = (await authorize(self.resolve_user, any_user)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, GetUserError))
        return ValueOrErrorResult.success(user)


class GetAllUsersError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2


class GetAllUsers:
    def __init__(self, *, resolve_user: ResolveUser, user_repository: UserRepository) -> None:
        self.resolve_user = resolve_user
        self.user_repository = user_repository

    async def execute(self) -> ValueOrErrorResult[list[UserRecord], GetAllUsersError]:
        succeeded, _, error = (await authorize(self.resolve_user, can_read_users)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, GetAllUsersError))

        result = await self.user_repository.get_users()
        if not result.succeeded:
            logger.error("Unexpected error %s whilst getting all users", result.error.name)
            return ValueOrErrorResult.failure(GetAllUsersError.UNKNOWN)
        return ValueOrErrorResult.success(result.value)


class UpdateUserPermissionsError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    INCOMPATIBLE_USER_PERMISSIONS_COMBINATION = 3
    CANNOT_MODIFY_PERMISSIONS_OF_SELF = 4
    UNKNOWN_USER_ID = 5


class UpdateUserPermissions:
    def __init__(self, *, resolve_user: ResolveUser, user_repository: UserRepository) -> None:
        self.resolve_user = resolve_user
        self.user_repository = user_repository

    async def execute(
        self, *, user_id: int, permissions: UserPermissions
    ) -> MaybeErrorResult[UpdateUserPermissionsError]:
        succeeded, caller, error = (await authorize(self.resolve_user, can_modify_users)).try_success()
        if not succeeded:
            return MaybeErrorResult.failure(authorization_failure(error, UpdateUserPermissionsError))

        if caller.id == user_id:
            return MaybeErrorResult.failure(UpdateUserPermissionsError.CANNOT_MODIFY_PERMISSIONS_OF_SELF)
        # Assigning users to projects requires listing them.
        if permissions.projects.can_modify() and not permissions.users.can_read():
            return MaybeErrorResult.failure(UpdateUserPermissionsError.INCOMPATIBLE_USER_PERMISSIONS_COMBINATION)

        result = await self.user_repository.update_user_permissions(user_id, permissions)
        if result.succeeded:
            return MaybeErrorResult.success()

        match result.error:
            case UpdateUserPermissionsRepositoryError.UNKNOWN_USER_ID:
                return MaybeErrorResult.failure(UpdateUserPermissionsError.UNKNOWN_USER_ID)
            case _:
                logger.error(
                    "Unexpected error %s whilst updating permissions of user %s", result.error.name, user_id
                )
                return MaybeErrorResult.failure(UpdateUserPermissionsError.UNKNOWN)
