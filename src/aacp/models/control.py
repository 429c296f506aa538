"""Control command model."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import ControlCommandIdentifier, get_identifier


@dataclass(frozen=True, slots=True)
class ControlCommand:
    """One discrete device preference: identifier plus raw value bytes.

    Identity is the identifier; the most recently received value for an
    identifier is its status.
    """

    identifier: int
    value: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.identifier <= 0xFF:
            raise ValueError(f"identifier out of range: {self.identifier} (must be 0-255)")

    @property
    def known_identifier(self) -> ControlCommandIdentifier | None:
        return get_identifier(self.identifier)

    @property
    def first_byte(self) -> int | None:
        """First value byte, the usual enumerated option index."""
        return self.value[0] if self.value else None

    @property
    def enabled(self) -> bool:
        """Interpret a toggle value (0x01 on, 0x02 off)."""
        return self.first_byte == 0x01
