"""Week based reading and full replacement of the caller's time entries."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import date

from keepi.core.auth import ResolveUser, authorization_failure, authorize, can_modify_entries, can_read_entries
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.core.week_numbers import DAYS_PER_WEEK, week_number_to_dates
from keepi.repositories.interfaces import (
    NewUserEntry,
    UserEntryRepository,
    UserProject,
    UserProjectRepository,
    is_entry_allowed_for_date,
)
from keepi.services.validation import is_valid_remark

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True, slots=True)
class WeekDayEntry:
    invoice_item_id: int
    minutes: int
    remark: str | None = None


@dataclass(frozen=True, slots=True)
class WeekEntries:
    """Seven day grid of entries, Monday first."""

    monday: list[WeekDayEntry] = field(default_factory=list)
    tuesday: list[WeekDayEntry] = field(default_factory=list)
    wednesday: list[WeekDayEntry] = field(default_factory=list)
    thursday: list[WeekDayEntry] = field(default_factory=list)
    friday: list[WeekDayEntry] = field(default_factory=list)
    saturday: list[WeekDayEntry] = field(default_factory=list)
    sunday: list[WeekDayEntry] = field(default_factory=list)

    def days(self) -> list[list[WeekDayEntry]]:
        return [getattr(self, name) for name in WEEKDAY_NAMES]

    @classmethod
    def from_days(cls, days: list[list[WeekDayEntry]]) -> WeekEntries:
        if len(days) != DAYS_PER_WEEK:
            raise ValueError(f"Expected {DAYS_PER_WEEK} days, got {len(days)}")
        return cls(**dict(zip(WEEKDAY_NAMES, days)))


class GetUserEntriesForWeekError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    INVALID_WEEK_NUMBER = 3


class GetUserEntriesForWeek:
    def __init__(self, *, resolve_user: ResolveUser, user_entry_repository: UserEntryRepository) -> None:
        self.resolve_user = resolve_user
        self.user_entry_repository = user_entry_repository

    async def execute(
        self, *, year: int, week_number: int
    ) -> ValueOrErrorResult[WeekEntries, GetUserEntriesForWeekError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_read_entries)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, GetUserEntriesForWeekError))

        try:
            dates = week_number_to_dates(year, week_number)
        except ValueError:
            return ValueOrErrorResult.failure(GetUserEntriesForWeekError.INVALID_WEEK_NUMBER)

        result = await self.user_entry_repository.get_user_entries_for_dates(user.id, dates)
        if not result.succeeded:
            logger.error(
                "Unexpected error %s whilst getting entries of user %s for week %s/%s",
                result.error.name,
                user.id,
                year,
                week_number,
            )
            return ValueOrErrorResult.failure(GetUserEntriesForWeekError.UNKNOWN)

        day_index = {day: index for index, day in enumerate(dates)}
        days: list[list[WeekDayEntry]] = [[] for _ in range(DAYS_PER_WEEK)]
        for entry in result.value:
            index = day_index.get(entry.entry_date)
            if index is None:
                continue
            days[index].append(
                WeekDayEntry(invoice_item_id=entry.invoice_item_id, minutes=entry.minutes, remark=entry.remark)
            )
        return ValueOrErrorResult.success(WeekEntries.from_days(days))


class UpdateWeekUserEntriesError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    INVALID_WEEK_NUMBER = 3
    UNKNOWN_USER_INVOICE_ITEM = 4
    INVALID_USER_INVOICE_ITEM = 5
    INVALID_MINUTES = 6
    INVALID_REMARK = 7


class _WeekReplaceFailed(Exception):
    """Aborts the entry transaction after a repository failure."""


class UpdateWeekUserEntries:
    """Replace all of the caller's entries in one ISO week.

    Every entry is validated before anything is written. Existing entries
    under the caller's enabled projects are then deleted and the new set is
    inserted inside a single transaction.
    """

    def __init__(
        self,
        *,
        resolve_user: ResolveUser,
        user_project_repository: UserProjectRepository,
        user_entry_repository: UserEntryRepository,
    ) -> None:
        self.resolve_user = resolve_user
        self.user_project_repository = user_project_repository
        self.user_entry_repository = user_entry_repository

    async def execute(
        self, *, year: int, week_number: int, entries: WeekEntries
    ) -> MaybeErrorResult[UpdateWeekUserEntriesError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_modify_entries)).try_success()
        if not succeeded:
            return MaybeErrorResult.failure(authorization_failure(error, UpdateWeekUserEntriesError))

        try:
            dates = week_number_to_dates(year, week_number)
        except ValueError:
            return MaybeErrorResult.failure(UpdateWeekUserEntriesError.INVALID_WEEK_NUMBER)

        projects_result = await self.user_project_repository.get_user_projects(user.id)
        if not projects_result.succeeded:
            logger.error(
                "Unexpected error %s whilst getting projects of user %s", projects_result.error.name, user.id
            )
            return MaybeErrorResult.failure(UpdateWeekUserEntriesError.UNKNOWN)
        projects = projects_result.value

        validated = _validate_week_entries(projects, dates, entries)
        if not validated.succeeded:
            return MaybeErrorResult.failure(validated.error)

        enabled_project_ids = [project.id for project in projects if project.enabled]
        try:
            async with self.user_entry_repository.transaction():
                delete_result = await self.user_entry_repository.delete_user_entries_for_date_range(
                    user.id, dates[0], dates[-1], enabled_project_ids
                )
                if not delete_result.succeeded:
                    raise _WeekReplaceFailed(f"delete failed with {delete_result.error.name}")

                save_result = await self.user_entry_repository.save_user_entries(user.id, validated.value)
                if not save_result.succeeded:
                    raise _WeekReplaceFailed(f"save failed with {save_result.error.name}")
        except Exception:
            logger.exception(
                "Failed to replace entries of user %s for week %s/%s", user.id, year, week_number
            )
            return MaybeErrorResult.failure(UpdateWeekUserEntriesError.UNKNOWN)

        return MaybeErrorResult.success()


def _validate_week_entries(
    projects: list[UserProject], dates: list[date], entries: WeekEntries
) -> ValueOrErrorResult[list[NewUserEntry], UpdateWeekUserEntriesError]:
    item_projects = {item.id: project for project in projects for item in project.invoice_items}

    new_entries: list[NewUserEntry] = []
    for entry_date, day_entries in zip(dates, entries.days()):
        for entry in day_entries:
            project = item_projects.get(entry.invoice_item_id)
            if project is None:
                return ValueOrErrorResult.failure(UpdateWeekUserEntriesError.UNKNOWN_USER_INVOICE_ITEM)
            # Invoice items have no active range of their own.
            if not is_entry_allowed_for_date(
                enabled=project.enabled, active_from=None, active_to=None, value=entry_date
            ):
                return ValueOrErrorResult.failure(UpdateWeekUserEntriesError.INVALID_USER_INVOICE_ITEM)
            if entry.minutes < 1:
                return ValueOrErrorResult.failure(UpdateWeekUserEntriesError.INVALID_MINUTES)
            if not is_valid_remark(entry.remark):
                return ValueOrErrorResult.failure(UpdateWeekUserEntriesError.INVALID_REMARK)

            new_entries.append(
                NewUserEntry(
                    invoice_item_id=entry.invoice_item_id,
                    entry_date=entry_date,
                    minutes=entry.minutes,
                    remark=entry.remark or None,
                )
            )
    return ValueOrErrorResult.success(new_entries)
