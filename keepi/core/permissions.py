"""Per-axis user permission model."""

from __future__ import annotations

import enum


class UserPermission(enum.IntEnum):
    """Ordinal permission level evaluated on a single axis."""

    NONE = 0
    READ = 1
    READ_AND_MODIFY = 2

    def can_read(self) -> bool:
        return self in (UserPermission.READ, UserPermission.READ_AND_MODIFY)

    def can_modify(self) -> bool:
        return self is UserPermission.READ_AND_MODIFY

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> UserPermission:
        return cls[label.upper()]
