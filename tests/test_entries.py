from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from keepi.core.auth import ResolvedUser
from keepi.core.identity import UserIdentityProvider
from keepi.core.permissions import UserPermission
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.core.week_numbers import week_number_to_dates
from keepi.models.entities import InvoiceItem, Project, ProjectUser, User, UserEntry
from keepi.repositories.interfaces import (
    NewUserEntry,
    SaveUserEntriesError,
    UserEntryRecord,
    UserEntryRepository,
    UserProject,
    UserProjectInvoiceItem,
    UserProjectRepository,
)
from keepi.repositories.user_entry_repository import SqlUserEntryRepository
from keepi.repositories.user_project_repository import SqlUserProjectRepository
from keepi.services.entries import (
    GetUserEntriesForWeek,
    GetUserEntriesForWeekError,
    UpdateWeekUserEntries,
    UpdateWeekUserEntriesError,
    WeekDayEntry,
    WeekEntries,
)


def _user_project_repository(*, enabled: bool = True) -> AsyncMock:
    repository = AsyncMock(spec=UserProjectRepository)
    repository.get_user_projects.return_value = ValueOrErrorResult.success(
        [
            UserProject(
                id=1,
                name="Keepi",
                enabled=enabled,
                invoice_items=[UserProjectInvoiceItem(id=1, name="Development")],
            )
        ]
    )
    return repository


def _user_entry_repository(entries: list[UserEntryRecord] | None = None) -> AsyncMock:
    repository = AsyncMock(spec=UserEntryRepository)
    repository.get_user_entries_for_dates.return_value = ValueOrErrorResult.success(entries or [])
    repository.delete_user_entries_for_date_range.return_value = MaybeErrorResult.success()
    repository.save_user_entries.return_value = MaybeErrorResult.success()
    return repository


async def test_week_entries_are_bucketed_per_day(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _user_entry_repository(
        [
            UserEntryRecord(
                id=1, user_id=42, invoice_item_id=1, entry_date=date(2025, 6, 16), minutes=60, remark="Nieuwe feature"
            ),
            UserEntryRecord(id=2, user_id=42, invoice_item_id=1, entry_date=date(2025, 6, 17), minutes=30, remark=None),
        ]
    )
    use_case = GetUserEntriesForWeek(resolve_user=resolve_user_as(make_user(42)), user_entry_repository=repository)

    result = await use_case.execute(year=2025, week_number=25)

    assert result.succeeded
    week = result.value
    assert week.monday == [WeekDayEntry(invoice_item_id=1, minutes=60, remark="Nieuwe feature")]
    assert week.tuesday == [WeekDayEntry(invoice_item_id=1, minutes=30, remark=None)]
    assert week.wednesday == week.thursday == week.friday == week.saturday == week.sunday == []
    repository.get_user_entries_for_dates.assert_awaited_once_with(42, week_number_to_dates(2025, 25))


async def test_get_week_rejects_invalid_week_and_missing_permission(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _user_entry_repository()

    invalid = await GetUserEntriesForWeek(
        resolve_user=resolve_user_as(make_user()), user_entry_repository=repository
    ).execute(year=2025, week_number=53)
    denied = await GetUserEntriesForWeek(
        resolve_user=resolve_user_as(make_user(entries=UserPermission.NONE)), user_entry_repository=repository
    ).execute(year=2025, week_number=25)

    assert invalid.error is GetUserEntriesForWeekError.INVALID_WEEK_NUMBER
    assert denied.error is GetUserEntriesForWeekError.UNAUTHORIZED_USER
    repository.get_user_entries_for_dates.assert_not_awaited()


@pytest.mark.parametrize("year", [0, 10_000, 10**20])
async def test_years_outside_the_calendar_are_invalid_weeks(
    year: int, make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    entry_repository = _user_entry_repository()
    user = resolve_user_as(make_user())

    fetched = await GetUserEntriesForWeek(resolve_user=user, user_entry_repository=entry_repository).execute(
        year=year, week_number=1
    )
    updated = await UpdateWeekUserEntries(
        resolve_user=user,
        user_project_repository=_user_project_repository(),
        user_entry_repository=entry_repository,
    ).execute(year=year, week_number=1, entries=WeekEntries())

    assert fetched.error is GetUserEntriesForWeekError.INVALID_WEEK_NUMBER
    assert updated.error is UpdateWeekUserEntriesError.INVALID_WEEK_NUMBER
    entry_repository.get_user_entries_for_dates.assert_not_awaited()
    entry_repository.delete_user_entries_for_date_range.assert_not_awaited()


@pytest.mark.parametrize(
    "entry, enabled, expected",
    [
        (WeekDayEntry(invoice_item_id=9, minutes=60), True, UpdateWeekUserEntriesError.UNKNOWN_USER_INVOICE_ITEM),
        (WeekDayEntry(invoice_item_id=1, minutes=60), False, UpdateWeekUserEntriesError.INVALID_USER_INVOICE_ITEM),
        (WeekDayEntry(invoice_item_id=1, minutes=0), True, UpdateWeekUserEntriesError.INVALID_MINUTES),
        (WeekDayEntry(invoice_item_id=1, minutes=5, remark="x" * 257), True, UpdateWeekUserEntriesError.INVALID_REMARK),
    ],
)
async def test_invalid_entry_leaves_week_untouched(
    entry: WeekDayEntry,
    enabled: bool,
    expected: UpdateWeekUserEntriesError,
    make_user: Callable[..., ResolvedUser],
    resolve_user_as: Callable[..., AsyncMock],
) -> None:
    entry_repository = _user_entry_repository()
    use_case = UpdateWeekUserEntries(
        resolve_user=resolve_user_as(make_user()),
        user_project_repository=_user_project_repository(enabled=enabled),
        user_entry_repository=entry_repository,
    )
    monday = [WeekDayEntry(invoice_item_id=1, minutes=60)] if enabled else []

    result = await use_case.execute(
        year=2025, week_number=25, entries=WeekEntries(monday=monday, friday=[entry])
    )

    assert result.error is expected
    entry_repository.delete_user_entries_for_date_range.assert_not_awaited()
    entry_repository.save_user_entries.assert_not_awaited()


async def test_update_week_replaces_entries_of_enabled_projects(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    entry_repository = _user_entry_repository()
    use_case = UpdateWeekUserEntries(
        resolve_user=resolve_user_as(make_user(42)),
        user_project_repository=_user_project_repository(),
        user_entry_repository=entry_repository,
    )

    result = await use_case.execute(
        year=2025,
        week_number=25,
        entries=WeekEntries(
            monday=[WeekDayEntry(invoice_item_id=1, minutes=60, remark="Nieuwe feature")],
            sunday=[WeekDayEntry(invoice_item_id=1, minutes=15, remark="")],
        ),
    )

    assert result.succeeded
    entry_repository.delete_user_entries_for_date_range.assert_awaited_once_with(
        42, date(2025, 6, 16), date(2025, 6, 22), [1]
    )
    entry_repository.save_user_entries.assert_awaited_once_with(
        42,
        [
            NewUserEntry(invoice_item_id=1, entry_date=date(2025, 6, 16), minutes=60, remark="Nieuwe feature"),
            NewUserEntry(invoice_item_id=1, entry_date=date(2025, 6, 22), minutes=15, remark=None),
        ],
    )


# ---------- Against the database ----------
async def _seed(session: AsyncSession) -> None:
    session.add(
        User(
            id=42,
            external_id="gh-42",
            identity_provider=UserIdentityProvider.GITHUB,
            name="Ada",
            email_address="ada@test.local",
            entries_permission=UserPermission.READ_AND_MODIFY,
        )
    )
    session.add_all([Project(id=1, name="Keepi", enabled=True), Project(id=2, name="Archive", enabled=False)])
    await session.flush()
    session.add_all(
        [
            ProjectUser(project_id=1, user_id=42),
            ProjectUser(project_id=2, user_id=42),
            InvoiceItem(id=1, project_id=1, name="Development"),
            InvoiceItem(id=2, project_id=2, name="Legacy"),
        ]
    )
    await session.flush()
    session.add_all(
        [
            UserEntry(user_id=42, invoice_item_id=1, entry_date=date(2025, 6, 16), minutes=60, remark="Nieuwe feature"),
            UserEntry(user_id=42, invoice_item_id=1, entry_date=date(2025, 6, 17), minutes=30),
            UserEntry(user_id=42, invoice_item_id=2, entry_date=date(2025, 6, 18), minutes=45),
        ]
    )
    await session.commit()


async def _stored_entries(session_factory: async_sessionmaker[AsyncSession]) -> list[tuple[int, date, int]]:
    async with session_factory() as session:
        rows = await session.execute(
            select(UserEntry.invoice_item_id, UserEntry.entry_date, UserEntry.minutes).order_by(
                UserEntry.entry_date, UserEntry.id
            )
        )
        return [tuple(row) for row in rows]


class FailingSaveUserEntryRepository(SqlUserEntryRepository):
    async def save_user_entries(
        self, user_id: int, entries: Sequence[NewUserEntry]
    ) -> MaybeErrorResult[SaveUserEntriesError]:
        return MaybeErrorResult.failure(SaveUserEntriesError.UNKNOWN)


async def test_week_scenario_against_database(
    session_factory: async_sessionmaker[AsyncSession],
    make_user: Callable[..., ResolvedUser],
    resolve_user_as: Callable[..., AsyncMock],
) -> None:
    async with session_factory() as session:
        await _seed(session)

    async with session_factory() as session:
        result = await GetUserEntriesForWeek(
            resolve_user=resolve_user_as(make_user(42)), user_entry_repository=SqlUserEntryRepository(session)
        ).execute(year=2025, week_number=25)

    assert result.value.monday == [WeekDayEntry(invoice_item_id=1, minutes=60, remark="Nieuwe feature")]
    assert result.value.tuesday == [WeekDayEntry(invoice_item_id=1, minutes=30, remark=None)]
    assert result.value.wednesday == [WeekDayEntry(invoice_item_id=2, minutes=45, remark=None)]
    assert result.value.thursday == result.value.sunday == []


async def test_week_update_keeps_entries_of_disabled_projects(
    session_factory: async_sessionmaker[AsyncSession],
    make_user: Callable[..., ResolvedUser],
    resolve_user_as: Callable[..., AsyncMock],
) -> None:
    async with session_factory() as session:
        await _seed(session)

    async with session_factory() as session:
        result = await UpdateWeekUserEntries(
            resolve_user=resolve_user_as(make_user(42)),
            user_project_repository=SqlUserProjectRepository(session),
            user_entry_repository=SqlUserEntryRepository(session),
        ).execute(
            year=2025, week_number=25, entries=WeekEntries(friday=[WeekDayEntry(invoice_item_id=1, minutes=90)])
        )

    assert result.succeeded
    assert await _stored_entries(session_factory) == [(2, date(2025, 6, 18), 45), (1, date(2025, 6, 20), 90)]


async def test_failed_save_rolls_back_the_delete(
    session_factory: async_sessionmaker[AsyncSession],
    make_user: Callable[..., ResolvedUser],
    resolve_user_as: Callable[..., AsyncMock],
) -> None:
    async with session_factory() as session:
        await _seed(session)
    before = await _stored_entries(session_factory)

    async with session_factory() as session:
        result = await UpdateWeekUserEntries(
            resolve_user=resolve_user_as(make_user(42)),
            user_project_repository=SqlUserProjectRepository(session),
            user_entry_repository=FailingSaveUserEntryRepository(session),
        ).execute(
            year=2025, week_number=25, entries=WeekEntries(friday=[WeekDayEntry(invoice_item_id=1, minutes=90)])
        )

    assert result.error is UpdateWeekUserEntriesError.UNKNOWN
    assert await _stored_entries(session_factory) == before
