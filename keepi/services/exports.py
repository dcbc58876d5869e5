"""Export of time entries over a date range."""

from __future__ import annotations

import enum
from collections.abc import AsyncIterator
from datetime import date

from keepi.core.auth import ResolveUser, authorization_failure, authorize, can_read_exports
from keepi.core.result import ValueOrErrorResult
from keepi.repositories.interfaces import ExportUserEntry, ExportUserEntryRepository


class ExportUserEntriesError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    START_GREATER_THAN_STOP = 3


class ExportUserEntries:
    """Lazily stream every user's entries dated ``start..stop``.

    The returned iterator is single pass; rows keep the order the store
    yields them and carry project and invoice item names as read.
    """

    def __init__(self, *, resolve_user: ResolveUser, export_repository: ExportUserEntryRepository) -> None:
        self.resolve_user = resolve_user
        self.export_repository = export_repository

    async def execute(
        self, *, start: date, stop: date
    ) -> ValueOrErrorResult[AsyncIterator[ExportUserEntry], ExportUserEntriesError]:
        succeeded, _, error = (await authorize(self.resolve_user, can_read_exports)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, ExportUserEntriesError))

        if start >= stop:
            return ValueOrErrorResult.failure(ExportUserEntriesError.START_GREATER_THAN_STOP)

        return ValueOrErrorResult.success(self.export_repository.get_export_user_entries(start, stop))
