"""Translation of use-case error enums into HTTP errors."""

from __future__ import annotations

import enum
from collections.abc import Collection
from typing import NoReturn

from fastapi import HTTPException, status

FORBIDDEN_ERROR_NAMES = frozenset({"UNAUTHORIZED_USER", "CANNOT_MODIFY_PERMISSIONS_OF_SELF"})


def status_code_for_error(error: enum.IntEnum, *, not_found: Collection[enum.IntEnum] = ()) -> int:
    """Status code of a use-case error; ``not_found`` lists errors naming a missing path resource."""

    if error.name == "UNAUTHENTICATED_USER":
        return status.HTTP_401_UNAUTHORIZED
    if error.name in FORBIDDEN_ERROR_NAMES:
        return status.HTTP_403_FORBIDDEN
    if any(error is member for member in not_found):
        return status.HTTP_404_NOT_FOUND
    if error.name == "UNKNOWN":
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


def raise_for_error(error: enum.IntEnum, *, not_found: Collection[enum.IntEnum] = ()) -> NoReturn:
    raise HTTPException(status_code=status_code_for_error(error, not_found=not_found), detail=error.name)
