"""Input checks shared by use cases, applied before any repository call."""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from datetime import date

from keepi.models.entities import NAME_MAX_LENGTH, REMARK_MAX_LENGTH


def is_valid_name(value: str | None, max_length: int = NAME_MAX_LENGTH) -> bool:
    return value is not None and bool(value.strip()) and len(value) <= max_length


def has_duplicates(values: Iterable[Hashable]) -> bool:
    seen: set[Hashable] = set()
    for value in values:
        if value in seen:
            return True
        seen.add(value)
    return False


def is_valid_active_date_range(active_from: date | None, active_to: date | None) -> bool:
    return active_from is None or active_to is None or active_from < active_to


def is_valid_remark(value: str | None) -> bool:
    return value is None or len(value) <= REMARK_MAX_LENGTH
