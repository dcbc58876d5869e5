"""Lookup and first-time registration of callers."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace

from keepi.core.identity import UserIdentityProvider
from keepi.core.result import ValueOrErrorResult
from keepi.repositories.interfaces import (
    FirstAdminUserEmailAddressSource,
    GetFirstAdminUserEmailAddressError,
    GetUserError,
    SaveNewUserError,
    UserPermissions,
    UserRecord,
    UserRepository,
)

logger = logging.getLogger(__name__)


class RegisterUserOutcome(enum.IntEnum):
    UNKNOWN = 0
    USER_ALREADY_EXISTS = 1
    USER_CREATED = 2


class RegisterUser:
    """Persist a first-time caller, promoting the configured first administrator."""

    def __init__(
        self,
        *,
        user_repository: UserRepository,
        first_admin_email_address: FirstAdminUserEmailAddressSource,
    ) -> None:
        self.user_repository = user_repository
        self.first_admin_email_address = first_admin_email_address

    async def execute(
        self,
        *,
        external_id: str,
        email_address: str,
        name: str,
        identity_provider: UserIdentityProvider,
    ) -> RegisterUserOutcome:
        exists_result = await self.user_repository.get_user_exists(external_id, identity_provider, email_address)
        succeeded, exists, error = exists_result.try_success()
        if not succeeded:
            logger.error(
                "Unexpected error %s whilst checking if user %s %s already exists",
                error.name,
                external_id,
                identity_provider.value,
            )
            return RegisterUserOutcome.UNKNOWN
        if exists:
            return RegisterUserOutcome.USER_ALREADY_EXISTS

        permissions = await self._initial_permissions(email_address)
        if permissions is None:
            return RegisterUserOutcome.UNKNOWN

        save_result = await self.user_repository.save_new_user(
            external_id=external_id,
            identity_provider=identity_provider,
            name=name,
            email_address=email_address,
            permissions=permissions,
        )
        if save_result.succeeded:
            if permissions == UserPermissions.administrator():
                logger.info("Registered %s user %s as first administrator", identity_provider.value, external_id)
            return RegisterUserOutcome.USER_CREATED
        if save_result.error == SaveNewUserError.DUPLICATE_USER:
            return RegisterUserOutcome.USER_ALREADY_EXISTS

        logger.error(
            "Unexpected error %s whilst saving new user %s %s",
            save_result.error.name,
            external_id,
            identity_provider.value,
        )
        return RegisterUserOutcome.UNKNOWN

    async def _initial_permissions(self, email_address: str) -> UserPermissions | None:
        admin_result = await self.user_repository.user_with_permissions_exists(UserPermissions.administrator())
        succeeded, admin_exists, error = admin_result.try_success()
        if not succeeded:
            logger.error("Unexpected error %s whilst checking for an existing administrator", error.name)
            return None
        if admin_exists:
            return UserPermissions.new_user()

        email_result = await self.first_admin_email_address.get_first_admin_user_email_address()
        succeeded, first_admin_email, error = email_result.try_success()
        if not succeeded:
            if error != GetFirstAdminUserEmailAddressError.NOT_CONFIGURED:
                logger.error("Unexpected error %s whilst reading the first admin e-mail address", error.name)
                return None
            logger.warning("No first admin e-mail address configured, registering regular user")
            return UserPermissions.new_user()

        if first_admin_email.strip().lower() == email_address.strip().lower():
            return UserPermissions.administrator()
        return UserPermissions.new_user()


class GetOrRegisterNewUserError(enum.IntEnum):
    UNKNOWN = 0
    REGISTRATION_FAILED = 1


@dataclass(frozen=True, slots=True)
class GetOrRegisterNewUserOutput:
    user: UserRecord
    newly_registered: bool


class GetOrRegisterNewUser:
    """Return the stored user for an identity, registering it on first sight."""

    def __init__(self, *, user_repository: UserRepository, register_user: RegisterUser) -> None:
        self.user_repository = user_repository
        self.register_user = register_user

    async def execute(
        self,
        *,
        external_id: str,
        email_address: str,
        name: str,
        identity_provider: UserIdentityProvider,
    ) -> ValueOrErrorResult[GetOrRegisterNewUserOutput, GetOrRegisterNewUserError]:
        get_result = await self.user_repository.get_user(external_id, identity_provider)
        succeeded, user, error = get_result.try_success()
        if succeeded:
            user = await self._refresh_identity(user, email_address=email_address, name=name)
            return ValueOrErrorResult.success(GetOrRegisterNewUserOutput(user=user, newly_registered=False))

        if error != GetUserError.NOT_FOUND:
            logger.error(
                "Failed to retrieve %s user %s due to %s", identity_provider.value, external_id, error.name
            )
            return ValueOrErrorResult.failure(GetOrRegisterNewUserError.UNKNOWN)

        logger.info("Attempting registration of first time %s user %s", identity_provider.value, external_id)
        outcome = await self.register_user.execute(
            external_id=external_id,
            email_address=email_address,
            name=name,
            identity_provider=identity_provider,
        )
        if outcome != RegisterUserOutcome.USER_CREATED:
            logger.error(
                "Failed to register first time %s user %s due to %s",
                identity_provider.value,
                external_id,
                outcome.name,
            )
            return ValueOrErrorResult.failure(GetOrRegisterNewUserError.REGISTRATION_FAILED)

        get_result = await self.user_repository.get_user(external_id, identity_provider)
        succeeded, user, error = get_result.try_success()
        if succeeded:
            return ValueOrErrorResult.success(GetOrRegisterNewUserOutput(user=user, newly_registered=True))

        logger.error(
            "Failed to retrieve first time %s user %s after registration due to %s",
            identity_provider.value,
            external_id,
            error.name,
        )
        return ValueOrErrorResult.failure(GetOrRegisterNewUserError.UNKNOWN)

    async def _refresh_identity(self, user: UserRecord, *, email_address: str, name: str) -> UserRecord:
        if user.email_address == email_address and user.name == name:
            return user

        update_result = await self.user_repository.update_user_identity(user.id, email_address, name)
        if not update_result.succeeded:
            # Stale name or e-mail is not worth failing the request over.
            logger.warning(
                "Failed to update identity of user %s due to %s", user.id, update_result.error.name
            )
            return user

        return replace(user, name=name, email_address=email_address)
