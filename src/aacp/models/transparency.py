"""Transparency mode tuning record (ATT handle 0x18)."""

from __future__ import annotations

from dataclasses import dataclass, field

EQ_BANDS = 8


def clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _flat_eq() -> tuple[float, ...]:
    return (0.0,) * EQ_BANDS


def _check_eq(name: str, bands: tuple[float, ...]) -> None:
    if len(bands) != EQ_BANDS:
        raise ValueError(f"{name} must have {EQ_BANDS} bands, got {len(bands)}")


@dataclass(frozen=True, slots=True)
class TransparencySettings:
    """Per-side transparency tuning as stored by the accessory.

    The record is immutable so a reader never sees a half-updated value.
    ``net_amplification`` and ``balance`` are derived from the raw per-side
    amplification exactly as the device reports it; building a record from
    UI controls goes through ``from_controls`` instead, which is not the
    inverse of these properties.
    """

    enabled: bool = False
    left_eq: tuple[float, ...] = field(default_factory=_flat_eq)
    right_eq: tuple[float, ...] = field(default_factory=_flat_eq)
    left_amplification: float = 0.0
    right_amplification: float = 0.0
    left_tone: float = 0.0
    right_tone: float = 0.0
    left_conversation_boost: bool = False
    right_conversation_boost: bool = False
    left_ambient_noise_reduction: float = 0.0
    right_ambient_noise_reduction: float = 0.0

    def __post_init__(self) -> None:
        # Accept lists from callers, store tuples
        object.__setattr__(self, "left_eq", tuple(self.left_eq))
        object.__setattr__(self, "right_eq", tuple(self.right_eq))
        _check_eq("left_eq", self.left_eq)
        _check_eq("right_eq", self.right_eq)

    @property
    def net_amplification(self) -> float:
        """Average of both sides, clamped to [-1, 1]."""
        return clamp((self.left_amplification + self.right_amplification) / 2)

    @property
    def balance(self) -> float:
        """Right minus left amplification, clamped to [-1, 1]."""
        return clamp(self.right_amplification - self.left_amplification)

    @classmethod
    def from_controls(
        cls,
        *,
        enabled: bool,
        amplification: float,
        balance: float,
        tone: float,
        conversation_boost: bool,
        ambient_noise_reduction: float,
        eq: tuple[float, ...] | list[float],
    ) -> TransparencySettings:
        """Build an outbound record from single-valued UI controls.

        Balance raises one side only: a negative balance adds to the left
        amplification, a positive one to the right. Both sides share tone,
        conversation boost, noise reduction and EQ.
        """
        return cls(
            enabled=enabled,
            left_eq=tuple(eq),
            right_eq=tuple(eq),
            left_amplification=amplification + (-balance if balance < 0 else 0.0),
            right_amplification=amplification + (balance if balance > 0 else 0.0),
            left_tone=tone,
            right_tone=tone,
            left_conversation_boost=conversation_boost,
            right_conversation_boost=conversation_boost,
            left_ambient_noise_reduction=ambient_noise_reduction,
            right_ambient_noise_reduction=ambient_noise_reduction,
        )
