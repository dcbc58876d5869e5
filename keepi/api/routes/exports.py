"""CSV export of time entries."""

from __future__ import annotations

import csv
import io
from collections.abc import AsyncIterator
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from keepi.api.dependencies import get_resolve_user
from keepi.api.errors import raise_for_error
from keepi.core.auth import ResolveUser
from keepi.db.dependencies import get_db_session_factory
from keepi.repositories.interfaces import ExportUserEntry
from keepi.repositories.user_entry_repository import SqlExportUserEntryRepository
from keepi.services.exports import ExportUserEntries

router = APIRouter(prefix="/exports", tags=["exports"])

EXPORT_COLUMNS = (
    "id",
    "user_id",
    "user_name",
    "date",
    "project_id",
    "project",
    "invoice_item_id",
    "invoice_item",
    "minutes",
    "remark",
)


def _take(buffer: io.StringIO) -> str:
    chunk = buffer.getvalue()
    buffer.seek(0)
    buffer.truncate(0)
    return chunk


async def _csv_lines(entries: AsyncIterator[ExportUserEntry]) -> AsyncIterator[str]:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    yield _take(buffer)
    async for entry in entries:
        writer.writerow(
            (
                entry.id,
                entry.user_id,
                entry.user_name,
                entry.entry_date.isoformat(),
                entry.project_id,
                entry.project_name,
                entry.invoice_item_id,
                entry.invoice_item_name,
                entry.minutes,
                entry.remark or "",
            )
        )
        yield _take(buffer)


@router.get("/entries")
async def export_entries(
    start: date = Query(...),
    stop: date = Query(...),
    resolve_user: ResolveUser = Depends(get_resolve_user),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> StreamingResponse:
    """Stream every user's entries dated ``start..stop`` as CSV."""

    use_case = ExportUserEntries(
        resolve_user=resolve_user, export_repository=SqlExportUserEntryRepository(session_factory)
    )
    succeeded, entries, error = (await use_case.execute(start=start, stop=stop)).try_success()
    if not succeeded:
        raise_for_error(error)
    return StreamingResponse(
        _csv_lines(entries),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="keepi-entries-{start}-{stop}.csv"'},
    )
