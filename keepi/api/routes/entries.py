"""Week based time entry endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.api.dependencies import get_resolve_user
from keepi.api.errors import raise_for_error
from keepi.core.auth import ResolveUser
from keepi.db.dependencies import get_db_session
from keepi.repositories.user_entry_repository import SqlUserEntryRepository
from keepi.repositories.user_project_repository import SqlUserProjectRepository
from keepi.services.entries import (
    WEEKDAY_NAMES,
    GetUserEntriesForWeek,
    UpdateWeekUserEntries,
    WeekDayEntry,
    WeekEntries,
)

router = APIRouter(prefix="/user/entries", tags=["entries"])


class WeekDayEntryPayload(BaseModel):
    invoice_item_id: int
    minutes: int
    remark: str | None = None


class WeekEntriesPayload(BaseModel):
    monday: list[WeekDayEntryPayload] = Field(default_factory=list)
    tuesday: list[WeekDayEntryPayload] = Field(default_factory=list)
    wednesday: list[WeekDayEntryPayload] = Field(default_factory=list)
    thursday: list[WeekDayEntryPayload] = Field(default_factory=list)
    friday: list[WeekDayEntryPayload] = Field(default_factory=list)
    saturday: list[WeekDayEntryPayload] = Field(default_factory=list)
    sunday: list[WeekDayEntryPayload] = Field(default_factory=list)


def _serialize_week(entries: WeekEntries) -> dict[str, object]:
    return {
        name: [
            {"invoice_item_id": entry.invoice_item_id, "minutes": entry.minutes, "remark": entry.remark}
            for entry in day
        ]
        for name, day in zip(WEEKDAY_NAMES, entries.days())
    }


def _to_week_entries(payload: WeekEntriesPayload) -> WeekEntries:
    return WeekEntries.from_days(
        [
            [
                WeekDayEntry(invoice_item_id=entry.invoice_item_id, minutes=entry.minutes, remark=entry.remark)
                for entry in getattr(payload, name)
            ]
            for name in WEEKDAY_NAMES
        ]
    )


@router.get("/year/{year}/week/{week_number}")
async def get_week_entries(
    year: int,
    week_number: int,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    use_case = GetUserEntriesForWeek(resolve_user=resolve_user, user_entry_repository=SqlUserEntryRepository(db))
    succeeded, entries, error = (await use_case.execute(year=year, week_number=week_number)).try_success()
    if not succeeded:
        raise_for_error(error)
    return _serialize_week(entries)


@router.put("/year/{year}/week/{week_number}", status_code=status.HTTP_204_NO_CONTENT)
async def update_week_entries(
    year: int,
    week_number: int,
    payload: WeekEntriesPayload,
    resolve_user: ResolveUser = Depends(get_resolve_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    use_case = UpdateWeekUserEntries(
        resolve_user=resolve_user,
        user_project_repository=SqlUserProjectRepository(db),
        user_entry_repository=SqlUserEntryRepository(db),
    )
    result = await use_case.execute(year=year, week_number=week_number, entries=_to_week_entries(payload))
    if not result.succeeded:
        raise_for_error(result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
