from __future__ import annotations

from dataclasses import replace
from unittest.mock import AsyncMock

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from keepi.core.identity import UserIdentityProvider
from keepi.core.permissions import UserPermission
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.models.entities import User
from keepi.repositories.interfaces import (
    FirstAdminUserEmailAddressSource,
    GetFirstAdminUserEmailAddressError,
    GetUserError,
    SaveNewUserError,
    UpdateUserIdentityError,
    UserPermissions,
    UserRecord,
    UserRepository,
)
from keepi.repositories.user_repository import SqlUserRepository
from keepi.services.registration import (
    GetOrRegisterNewUser,
    GetOrRegisterNewUserError,
    RegisterUser,
    RegisterUserOutcome,
)

GITHUB = UserIdentityProvider.GITHUB


def _user_repository(*, admin_exists: bool = False) -> AsyncMock:
    repository = AsyncMock(spec=UserRepository)
    repository.get_user_exists.return_value = ValueOrErrorResult.success(False)
    repository.user_with_permissions_exists.return_value = ValueOrErrorResult.success(admin_exists)
    repository.save_new_user.return_value = MaybeErrorResult.success()
    repository.update_user_identity.return_value = MaybeErrorResult.success()
    return repository


def _first_admin(email_address: str | None) -> AsyncMock:
    source = AsyncMock(spec=FirstAdminUserEmailAddressSource)
    if email_address is None:
        source.get_first_admin_user_email_address.return_value = ValueOrErrorResult.failure(
            GetFirstAdminUserEmailAddressError.NOT_CONFIGURED
        )
    else:
        source.get_first_admin_user_email_address.return_value = ValueOrErrorResult.success(email_address)
    return source


def _record(permissions: UserPermissions = UserPermissions.new_user()) -> UserRecord:
    return UserRecord(
        id=3,
        external_id="gh-3",
        identity_provider=GITHUB,
        name="Ada",
        email_address="ada@test.local",
        entries_permission=permissions.entries,
        exports_permission=permissions.exports,
        projects_permission=permissions.projects,
        users_permission=permissions.users,
    )


async def _register(repository: AsyncMock, source: AsyncMock, email_address: str) -> RegisterUserOutcome:
    register_user = RegisterUser(user_repository=repository, first_admin_email_address=source)
    return await register_user.execute(
        external_id="gh-3", email_address=email_address, name="Ada", identity_provider=GITHUB
    )


async def test_first_admin_is_registered_with_full_permissions() -> None:
    repository = _user_repository(admin_exists=False)

    outcome = await _register(repository, _first_admin("Admin@Test.Local"), "admin@test.local")

    assert outcome is RegisterUserOutcome.USER_CREATED
    assert repository.save_new_user.await_args.kwargs["permissions"] == UserPermissions.administrator()


async def test_later_callers_get_entry_permissions_only() -> None:
    repository = _user_repository(admin_exists=True)
    source = _first_admin("admin@test.local")

    outcome = await _register(repository, source, "admin@test.local")

    assert outcome is RegisterUserOutcome.USER_CREATED
    permissions = repository.save_new_user.await_args.kwargs["permissions"]
    assert permissions == UserPermissions.new_user()
    assert permissions.entries is UserPermission.READ_AND_MODIFY
    assert permissions.exports is permissions.projects is permissions.users is UserPermission.NONE
    source.get_first_admin_user_email_address.assert_not_awaited()


async def test_non_matching_or_unconfigured_admin_email_registers_regular_user() -> None:
    for source in (_first_admin("boss@test.local"), _first_admin(None)):
        repository = _user_repository()

        outcome = await _register(repository, source, "ada@test.local")

        assert outcome is RegisterUserOutcome.USER_CREATED
        assert repository.save_new_user.await_args.kwargs["permissions"] == UserPermissions.new_user()


async def test_existing_user_is_not_registered_again() -> None:
    repository = _user_repository()
    repository.get_user_exists.return_value = ValueOrErrorResult.success(True)

    outcome = await _register(repository, _first_admin(None), "ada@test.local")

    assert outcome is RegisterUserOutcome.USER_ALREADY_EXISTS
    repository.save_new_user.assert_not_awaited()


async def test_duplicate_on_save_is_reported_as_existing_user() -> None:
    repository = _user_repository()
    repository.save_new_user.return_value = MaybeErrorResult.failure(SaveNewUserError.DUPLICATE_USER)

    outcome = await _register(repository, _first_admin(None), "ada@test.local")

    assert outcome is RegisterUserOutcome.USER_ALREADY_EXISTS


async def test_get_or_register_returns_stored_user_with_refreshed_identity() -> None:
    repository = _user_repository()
    repository.get_user.return_value = ValueOrErrorResult.success(replace(_record(), name="Old name"))
    register_user = AsyncMock(spec=RegisterUser)

    result = await GetOrRegisterNewUser(user_repository=repository, register_user=register_user).execute(
        external_id="gh-3", email_address="ada@test.local", name="Ada", identity_provider=GITHUB
    )

    assert result.succeeded
    assert result.value.newly_registered is False
    assert result.value.user.name == "Ada"
    repository.update_user_identity.assert_awaited_once_with(3, "ada@test.local", "Ada")
    register_user.execute.assert_not_awaited()


async def test_identity_refresh_failure_keeps_stored_user() -> None:
    repository = _user_repository()
    repository.get_user.return_value = ValueOrErrorResult.success(replace(_record(), name="Old name"))
    repository.update_user_identity.return_value = MaybeErrorResult.failure(UpdateUserIdentityError.UNKNOWN)

    result = await GetOrRegisterNewUser(
        user_repository=repository, register_user=AsyncMock(spec=RegisterUser)
    ).execute(external_id="gh-3", email_address="ada@test.local", name="Ada", identity_provider=GITHUB)

    assert result.succeeded
    assert result.value.user.name == "Old name"


async def test_get_or_register_registers_unknown_user() -> None:
    repository = _user_repository()
    repository.get_user.side_effect = [
        ValueOrErrorResult.failure(GetUserError.NOT_FOUND),
        ValueOrErrorResult.success(_record()),
    ]
    register_user = AsyncMock(spec=RegisterUser)
    register_user.execute.return_value = RegisterUserOutcome.USER_CREATED

    result = await GetOrRegisterNewUser(user_repository=repository, register_user=register_user).execute(
        external_id="gh-3", email_address="ada@test.local", name="Ada", identity_provider=GITHUB
    )

    assert result.succeeded
    assert result.value.newly_registered is True
    assert repository.get_user.await_count == 2


async def test_get_or_register_reports_failed_registration() -> None:
    repository = _user_repository()
    repository.get_user.return_value = ValueOrErrorResult.failure(GetUserError.NOT_FOUND)
    register_user = AsyncMock(spec=RegisterUser)
    register_user.execute.return_value = RegisterUserOutcome.UNKNOWN

    result = await GetOrRegisterNewUser(user_repository=repository, register_user=register_user).execute(
        external_id="gh-3", email_address="ada@test.local", name="Ada", identity_provider=GITHUB
    )

    assert result.error is GetOrRegisterNewUserError.REGISTRATION_FAILED


async def test_get_or_register_maps_lookup_failures_to_unknown() -> None:
    repository = _user_repository()
    repository.get_user.return_value = ValueOrErrorResult.failure(GetUserError.UNKNOWN)
    register_user = AsyncMock(spec=RegisterUser)

    result = await GetOrRegisterNewUser(user_repository=repository, register_user=register_user).execute(
        external_id="gh-3", email_address="ada@test.local", name="Ada", identity_provider=GITHUB
    )

    assert result.error is GetOrRegisterNewUserError.UNKNOWN
    register_user.execute.assert_not_awaited()


async def test_sql_lookup_is_scoped_to_the_identity_origin(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        session.add(
            User(
                id=1,
                external_id="shared-id",
                identity_provider=UserIdentityProvider.LOCAL_APPLICATION,
                name="Ada",
                email_address="ada@test.local",
            )
        )
        await session.commit()

    async with session_factory() as session:
        repository = SqlUserRepository(session)
        github = await repository.get_user("shared-id", GITHUB)
        local = await repository.get_user("shared-id", UserIdentityProvider.LOCAL_APPLICATION)

    assert github.error is GetUserError.NOT_FOUND
    assert local.value.identity_provider is UserIdentityProvider.LOCAL_APPLICATION
