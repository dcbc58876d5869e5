"""RGB color used for per-user invoice item customization."""

from __future__ import annotations

import re
from dataclasses import dataclass

HEX_COLOR_PATTERN = re.compile(r"#[0-9A-Fa-f]{6}")
MAX_UINT24 = 0xFFFFFF


@dataclass(frozen=True, slots=True)
class Color:
    red: int
    green: int
    blue: int

    def __post_init__(self) -> None:
        for channel in (self.red, self.green, self.blue):
            if not 0 <= channel <= 0xFF:
                raise ValueError(f"Color channel out of byte range: {channel}")

    @classmethod
    def from_uint32(cls, value: int) -> Color:
        if value < 0 or value > MAX_UINT24:
            raise ValueError(f"Color value out of range: {value:#x}")
        return cls(red=(value >> 16) & 0xFF, green=(value >> 8) & 0xFF, blue=value & 0xFF)

    def to_uint32(self) -> int:
        return (self.red << 16) | (self.green << 8) | self.blue

    @classmethod
    def try_parse_hex_string(cls, value: str | None) -> Color | None:
        """Parse ``#rrggbb`` (any case); return ``None`` when malformed."""

        if value is None or HEX_COLOR_PATTERN.fullmatch(value) is None:
            return None
        return cls.from_uint32(int(value[1:], 16))

    @classmethod
    def from_hex_string(cls, value: str) -> Color:
        color = cls.try_parse_hex_string(value)
        if color is None:
            raise ValueError(f"Invalid hex color: {value!r}")
        return color

    def to_hex_string(self) -> str:
        return f"#{self.to_uint32():06x}"
