"""SQLAlchemy implementations of the entry and export ports."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import date

from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.models.entities import InvoiceItem, Project, User, UserEntry
from keepi.repositories.interfaces import (
    DeleteUserEntriesForDateRangeError,
    ExportUserEntry,
    GetUserEntriesForDatesError,
    NewUserEntry,
    SaveUserEntriesError,
    UserEntryRecord,
)

logger = logging.getLogger(__name__)


class SqlUserEntryRepository:
    """Entry reads plus the delete and insert steps of a week replacement.

    The two write methods only flush; ``transaction()`` commits them together.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_user_entries_for_dates(
        self, user_id: int, dates: Sequence[date]
    ) -> ValueOrErrorResult[list[UserEntryRecord], GetUserEntriesForDatesError]:
        try:
            entries = (
                await self.db.scalars(
                    select(UserEntry)
                    .where(and_(UserEntry.user_id == user_id, UserEntry.entry_date.in_(list(dates))))
                    .order_by(UserEntry.entry_date.asc(), UserEntry.id.asc())
                )
            ).all()
        except Exception:
            logger.exception("Failed to get entries of user %s", user_id)
            return ValueOrErrorResult.failure(GetUserEntriesForDatesError.UNKNOWN)

        return ValueOrErrorResult.success(
            [
                UserEntryRecord(
                    id=entry.id,
                    user_id=entry.user_id,
                    invoice_item_id=entry.invoice_item_id,
                    entry_date=entry.entry_date,
                    minutes=entry.minutes,
                    remark=entry.remark,
                )
                for entry in entries
            ]
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
        except BaseException:
            await self.db.rollback()
            raise
        await self.db.commit()

    async def delete_user_entries_for_date_range(
        self, user_id: int, from_date: date, to_date_inclusive: date, project_ids: Sequence[int]
    ) -> MaybeErrorResult[DeleteUserEntriesForDateRangeError]:
        project_item_ids = select(InvoiceItem.id).where(InvoiceItem.project_id.in_(list(project_ids)))
        try:
            await self.db.execute(
                delete(UserEntry).where(
                    and_(
                        UserEntry.user_id == user_id,
                        UserEntry.entry_date >= from_date,
                        UserEntry.entry_date <= to_date_inclusive,
                        UserEntry.invoice_item_id.in_(project_item_ids),
                    )
                )
            )
        except Exception:
            logger.exception(
                "Failed to delete entries of user %s between %s and %s", user_id, from_date, to_date_inclusive
            )
            return MaybeErrorResult.failure(DeleteUserEntriesForDateRangeError.UNKNOWN)
        return MaybeErrorResult.success()

    async def save_user_entries(
        self, user_id: int, entries: Sequence[NewUserEntry]
    ) -> MaybeErrorResult[SaveUserEntriesError]:
        self.db.add_all(
            UserEntry(
                user_id=user_id,
                invoice_item_id=entry.invoice_item_id,
                entry_date=entry.entry_date,
                minutes=entry.minutes,
                remark=entry.remark,
            )
            for entry in entries
        )
        try:
            await self.db.flush()
        except Exception:
            logger.exception("Failed to save %s entries of user %s", len(entries), user_id)
            return MaybeErrorResult.failure(SaveUserEntriesError.UNKNOWN)
        return MaybeErrorResult.success()


class SqlExportUserEntryRepository:
    """Streams export rows from a dedicated session.

    The session is opened on first iteration so the stream can outlive the
    request session that produced it.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get_export_user_entries(self, start: date, stop: date) -> AsyncIterator[ExportUserEntry]:
        query = (
            select(
                UserEntry.id,
                UserEntry.user_id,
                User.name,
                UserEntry.entry_date,
                Project.id,
                Project.name,
                InvoiceItem.id,
                InvoiceItem.name,
                UserEntry.minutes,
                UserEntry.remark,
            )
            .join(User, User.id == UserEntry.user_id)
            .join(InvoiceItem, InvoiceItem.id == UserEntry.invoice_item_id)
            .join(Project, Project.id == InvoiceItem.project_id)
            .where(and_(UserEntry.entry_date >= start, UserEntry.entry_date <= stop))
            .order_by(UserEntry.entry_date.asc(), UserEntry.id.asc())
        )
        async with self.session_factory() as session:
            rows = await session.stream(query)
            async for row in rows:
                yield ExportUserEntry(
                    id=row[0],
                    user_id=row[1],
                    user_name=row[2],
                    entry_date=row[3],
                    project_id=row[4],
                    project_name=row[5],
                    invoice_item_id=row[6],
                    invoice_item_name=row[7],
                    minutes=row[8],
                    remark=row[9],
                )
