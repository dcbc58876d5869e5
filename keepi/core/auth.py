"""Caller resolution and per-axis authorization helpers."""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from keepi.core.config import Settings
from keepi.core.identity import (
    LOCAL_APPLICATION_AUTHENTICATION_TYPE,
    LOCAL_USER_EMAIL_ADDRESS,
    IdentitySource,
    UserIdentityProvider,
)
from keepi.core.permissions import UserPermission
from keepi.core.result import ValueOrErrorResult
from keepi.repositories.interfaces import GetFirstAdminUserEmailAddressError, UserRecord
from keepi.services.registration import GetOrRegisterNewUser, GetOrRegisterNewUserError

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=enum.IntEnum)


@dataclass(frozen=True, slots=True)
class ResolvedUser:
    """Internal user behind the current request."""

    id: int
    name: str
    email_address: str
    entries_permission: UserPermission
    exports_permission: UserPermission
    projects_permission: UserPermission
    users_permission: UserPermission


class ResolveUserError(enum.IntEnum):
    UNKNOWN = 0
    UNSUPPORTED_IDENTITY_PROVIDER = 1
    MALFORMED_USER_CLAIMS = 2
    USER_NOT_AUTHENTICATED = 3
    USER_NOT_FOUND = 4
    USER_REGISTRATION_FAILED = 5
    UNEXPECTED_LOCAL_APPLICATION_USER = 6
    UNEXPECTED_NON_LOCAL_APPLICATION_USER = 7


class ResolveUser:
    """Resolve identity claims into a stored user, once per instance.

    One instance is created per request. The first successful resolution is
    cached; concurrent first calls wait on a lock so at most one lookup or
    registration happens. Failures are not cached.
    """

    def __init__(
        self,
        *,
        identity_source: IdentitySource,
        get_or_register_new_user: GetOrRegisterNewUser,
        identity_provider: UserIdentityProvider,
    ) -> None:
        self.identity_source = identity_source
        self.get_or_register_new_user = get_or_register_new_user
        self.identity_provider = identity_provider
        self._lock = asyncio.Lock()
        self._cached_user: UserRecord | None = None

    async def execute(self) -> ValueOrErrorResult[ResolvedUser, ResolveUserError]:
        if self._cached_user is None:
            async with self._lock:
                if self._cached_user is None:
                    succeeded, user, error = (await self._get_or_register_user()).try_success()
                    if not succeeded:
                        return ValueOrErrorResult.failure(error)
                    self._cached_user = user

        user = self._cached_user
        # SqlUserRepository already filters by origin; this only trips for stores that do not.
        if user.identity_provider != self.identity_provider:
            if user.identity_provider == UserIdentityProvider.LOCAL_APPLICATION:
                return ValueOrErrorResult.failure(ResolveUserError.UNEXPECTED_LOCAL_APPLICATION_USER)
            return ValueOrErrorResult.failure(ResolveUserError.UNEXPECTED_NON_LOCAL_APPLICATION_USER)

        return ValueOrErrorResult.success(
            ResolvedUser(
                id=user.id,
                name=user.name,
                email_address=user.email_address,
                entries_permission=user.entries_permission,
                exports_permission=user.exports_permission,
                projects_permission=user.projects_permission,
                users_permission=user.users_permission,
            )
        )

    async def _get_or_register_user(self) -> ValueOrErrorResult[UserRecord, ResolveUserError]:
        claims = self.identity_source.get_claims()
        if claims is None:
            return ValueOrErrorResult.failure(ResolveUserError.USER_NOT_AUTHENTICATED)

        if claims.authentication_type != self.identity_provider.authentication_type:
            if self.identity_provider == UserIdentityProvider.LOCAL_APPLICATION:
                return ValueOrErrorResult.failure(ResolveUserError.UNEXPECTED_NON_LOCAL_APPLICATION_USER)
            if claims.authentication_type == LOCAL_APPLICATION_AUTHENTICATION_TYPE:
                return ValueOrErrorResult.failure(ResolveUserError.UNEXPECTED_LOCAL_APPLICATION_USER)
            return ValueOrErrorResult.failure(ResolveUserError.UNSUPPORTED_IDENTITY_PROVIDER)

        external_id = (claims.external_id or "").strip()
        name = (claims.name or "").strip()
        email_address = (claims.email_address or "").strip()
        if not external_id or not name or not email_address:
            return ValueOrErrorResult.failure(ResolveUserError.MALFORMED_USER_CLAIMS)

        result = await self.get_or_register_new_user.execute(
            external_id=external_id,
            email_address=email_address,
            name=name,
            identity_provider=self.identity_provider,
        )
        succeeded, output, error = result.try_success()
        if succeeded:
            return ValueOrErrorResult.success(output.user)

        match error:
            case GetOrRegisterNewUserError.REGISTRATION_FAILED:
                return ValueOrErrorResult.failure(ResolveUserError.USER_REGISTRATION_FAILED)
            case _:
                return ValueOrErrorResult.failure(ResolveUserError.UNKNOWN)


class AuthorizationError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2


async def authorize(
    resolve_user: ResolveUser, allowed: Callable[[ResolvedUser], bool]
) -> ValueOrErrorResult[ResolvedUser, AuthorizationError]:
    """Resolve the caller and check a single permission axis."""

    succeeded, user, error = (await resolve_user.execute()).try_success()
    if not succeeded:
        match error:
            case ResolveUserError.USER_NOT_AUTHENTICATED:
                return ValueOrErrorResult.failure(AuthorizationError.UNAUTHENTICATED_USER)
            case _:
                logger.error("Unexpected error %s whilst resolving user", error.name)
                return ValueOrErrorResult.failure(AuthorizationError.UNKNOWN)

    if not allowed(user):
        return ValueOrErrorResult.failure(AuthorizationError.UNAUTHORIZED_USER)
    return ValueOrErrorResult.success(user)


def authorization_failure(error: AuthorizationError, error_type: type[E]) -> E:
    """Translate into a use-case error enum declaring the same member names."""

    return error_type[error.name]


def any_user(user: ResolvedUser) -> bool:
    return True


def can_read_entries(user: ResolvedUser) -> bool:
    return user.entries_permission.can_read()


def can_modify_entries(user: ResolvedUser) -> bool:
    return user.entries_permission.can_modify()


def can_read_exports(user: ResolvedUser) -> bool:
    return user.exports_permission.can_read()


def can_read_projects(user: ResolvedUser) -> bool:
    return user.projects_permission.can_read()


def can_modify_projects(user: ResolvedUser) -> bool:
    return user.projects_permission.can_modify()


def can_read_users(user: ResolvedUser) -> bool:
    return user.users_permission.can_read()


def can_modify_users(user: ResolvedUser) -> bool:
    return user.users_permission.can_modify()


class SettingsFirstAdminUserEmailAddress:
    """First administrator e-mail address taken from application settings."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def get_first_admin_user_email_address(
        self,
    ) -> ValueOrErrorResult[str, GetFirstAdminUserEmailAddressError]:
        if self.settings.identity_provider == UserIdentityProvider.LOCAL_APPLICATION.value:
            return ValueOrErrorResult.success(LOCAL_USER_EMAIL_ADDRESS)

        email_address = self.settings.first_admin_user_email_address.strip()
        if not email_address:
            return ValueOrErrorResult.failure(GetFirstAdminUserEmailAddressError.NOT_CONFIGURED)
        return ValueOrErrorResult.success(email_address)
