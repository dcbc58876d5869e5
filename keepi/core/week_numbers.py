"""ISO-8601 week arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, timedelta

DAYS_PER_WEEK = 7


@dataclass(frozen=True, slots=True, order=True)
class IsoWeek:
    year: int
    number: int


def weeks_in_year(year: int) -> int:
    if not MINYEAR <= year <= MAXYEAR:
        raise ValueError(f"Year {year} is outside {MINYEAR}..{MAXYEAR}")
    # Dec 28th always falls in the last ISO week of its year.
    return date(year, 12, 28).isocalendar().week


def week_number_to_dates(year: int, week_number: int) -> list[date]:
    """Return the seven dates (Monday to Sunday) of an ISO week.

    Raises ``ValueError`` for a week number the year does not have, and for
    weeks that do not fit the supported calendar range.
    """

    if week_number < 1 or week_number > weeks_in_year(year):
        raise ValueError(f"Year {year} has no ISO week {week_number}")
    try:
        monday = date.fromisocalendar(year, week_number, 1)
        return [monday + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]
    except OverflowError as error:
        raise ValueError(f"ISO week {week_number} of {year} ends outside the calendar") from error


def get_week_for_date(value: date) -> IsoWeek:
    iso = value.isocalendar()
    return IsoWeek(year=iso.year, number=iso.week)


def get_next_week(week: IsoWeek) -> IsoWeek:
    if week.number >= weeks_in_year(week.year):
        return IsoWeek(year=week.year + 1, number=1)
    return IsoWeek(year=week.year, number=week.number + 1)


def get_previous_week(week: IsoWeek) -> IsoWeek:
    if week.number <= 1:
        return IsoWeek(year=week.year - 1, number=weeks_in_year(week.year - 1))
    return IsoWeek(year=week.year, number=week.number - 1)
