"""SQLAlchemy implementation of the user repository port."""

from __future__ import annotations

import logging

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.core.identity import UserIdentityProvider
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.models.entities import User
from keepi.repositories.interfaces import (
    GetUserError,
    GetUserExistsError,
    GetUsersError,
    SaveNewUserError,
    UpdateUserIdentityError,
    UpdateUserPermissionsRepositoryError,
    UserPermissions,
    UserRecord,
    UserWithPermissionsExistsError,
)

logger = logging.getLogger(__name__)


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        external_id=user.external_id,
        identity_provider=user.identity_provider,
        name=user.name,
        email_address=user.email_address,
        entries_permission=user.entries_permission,
        exports_permission=user.exports_permission,
        projects_permission=user.projects_permission,
        users_permission=user.users_permission,
    )


class SqlUserRepository:
    """Persistence operations for users and their permissions."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_user(
        self, external_id: str, identity_provider: UserIdentityProvider
    ) -> ValueOrErrorResult[UserRecord, GetUserError]:
        try:
            user = await self.db.scalar(
                select(User).where(
                    and_(User.external_id == external_id, User.identity_provider == identity_provider)
                )
            )
        except Exception:
            logger.exception("Failed to get %s user %s", identity_provider.value, external_id)
            return ValueOrErrorResult.failure(GetUserError.UNKNOWN)

        if user is None:
            return ValueOrErrorResult.failure(GetUserError.NOT_FOUND)
        return ValueOrErrorResult.success(_to_record(user))

    async def get_user_exists(
        self, external_id: str, identity_provider: UserIdentityProvider, email_address: str
    ) -> ValueOrErrorResult[bool, GetUserExistsError]:
        try:
            found = await self.db.scalar(
                select(
                    exists().where(
                        or_(
                            and_(User.external_id == external_id, User.identity_provider == identity_provider),
                            User.email_address == email_address,
                        )
                    )
                )
            )
        except Exception:
            logger.exception("Failed to check existence of %s user %s", identity_provider.value, external_id)
            return ValueOrErrorResult.failure(GetUserExistsError.UNKNOWN)
        return ValueOrErrorResult.success(bool(found))

    async def save_new_user(
        self,
        *,
        external_id: str,
        identity_provider: UserIdentityProvider,
        name: str,
        email_address: str,
        permissions: UserPermissions,
    ) -> MaybeErrorResult[SaveNewUserError]:
        self.db.add(
            User(
                external_id=external_id,
                identity_provider=identity_provider,
                name=name,
                email_address=email_address,
                entries_permission=permissions.entries,
                exports_permission=permissions.exports,
                projects_permission=permissions.projects,
                users_permission=permissions.users,
            )
        )
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return MaybeErrorResult.failure(SaveNewUserError.DUPLICATE_USER)
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to save new %s user %s", identity_provider.value, external_id)
            return MaybeErrorResult.failure(SaveNewUserError.UNKNOWN)
        return MaybeErrorResult.success()

    async def update_user_identity(
        self, user_id: int, email_address: str, name: str
    ) -> MaybeErrorResult[UpdateUserIdentityError]:
        try:
            user = await self.db.get(User, user_id)
            if user is None:
                return MaybeErrorResult.failure(UpdateUserIdentityError.UNKNOWN_USER_ID)
            user.email_address = email_address
            user.name = name
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to update identity of user %s", user_id)
            return MaybeErrorResult.failure(UpdateUserIdentityError.UNKNOWN)
        return MaybeErrorResult.success()

    async def user_with_permissions_exists(
        self, permissions: UserPermissions
    ) -> ValueOrErrorResult[bool, UserWithPermissionsExistsError]:
        try:
            found = await self.db.scalar(
                select(
                    exists().where(
                        and_(
                            User.entries_permission == permissions.entries,
                            User.exports_permission == permissions.exports,
                            User.projects_permission == permissions.projects,
                            User.users_permission == permissions.users,
                        )
                    )
                )
            )
        except Exception:
            logger.exception("Failed to check for user with permissions %s", permissions)
            return ValueOrErrorResult.failure(UserWithPermissionsExistsError.UNKNOWN)
        return ValueOrErrorResult.success(bool(found))

    async def get_users(self) -> ValueOrErrorResult[list[UserRecord], GetUsersError]:
        try:
            users = (await self.db.scalars(select(User).order_by(User.name.asc(), User.id.asc()))).all()
        except Exception:
            logger.exception("Failed to get users")
            return ValueOrErrorResult.failure(GetUsersError.UNKNOWN)
        return ValueOrErrorResult.success([_to_record(user) for user in users])

    async def update_user_permissions(
        self, user_id: int, permissions: UserPermissions
    ) -> MaybeErrorResult[UpdateUserPermissionsRepositoryError]:
        try:
            user = await self.db.get(User, user_id)
            if user is None:
                return MaybeErrorResult.failure(UpdateUserPermissionsRepositoryError.UNKNOWN_USER_ID)
            user.entries_permission = permissions.entries
            user.exports_permission = permissions.exports
            user.projects_permission = permissions.projects
            user.users_permission = permissions.users
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to update permissions of user %s", user_id)
            return MaybeErrorResult.failure(UpdateUserPermissionsRepositoryError.UNKNOWN)
        return MaybeErrorResult.success()
