"""Device status records decoded from AACP notifications."""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import (
    AudioSourceType,
    BatteryComponent,
    BatteryStatus,
    EarDetectionStatus,
    ProximityKeyType,
)
from .transparency import EQ_BANDS


@dataclass(frozen=True)
class BatteryInfo:
    """Charge level of one component."""

    component: BatteryComponent
    level: int
    status: BatteryStatus


@dataclass(frozen=True)
class EarDetection:
    """Placement of the primary and secondary pod."""

    primary: EarDetectionStatus
    secondary: EarDetectionStatus

    @property
    def any_in_ear(self) -> bool:
        return EarDetectionStatus.IN_EAR in (self.primary, self.secondary)


@dataclass(frozen=True)
class AudioSource:
    """Device currently owning the audio route."""

    mac: str
    type: AudioSourceType


@dataclass(frozen=True)
class ConnectedDevice:
    """One host the earbuds are connected to."""

    mac: str
    info1: int
    info2: int


@dataclass(frozen=True)
class ProximityKey:
    """Key material returned by the proximity keys exchange."""

    key_type: int
    data: bytes

    @property
    def known_type(self) -> ProximityKeyType | None:
        try:
            return ProximityKeyType(self.key_type)
        except ValueError:
            return None


@dataclass(frozen=True)
class DeviceInformation:
    """Identification strings from the information packet (0x1D)."""

    name: str = ""
    model_number: str = ""
    manufacturer: str = ""
    serial_number: str = ""
    version1: str = ""
    version2: str = ""
    hardware_revision: str = ""
    updater_identifier: str = ""
    left_serial_number: str = ""
    right_serial_number: str = ""
    version3: str = ""

    @classmethod
    def from_strings(cls, strings: list[str]) -> DeviceInformation:
        """Map positional strings onto fields; missing entries stay empty."""
        names = [
            "name", "model_number", "manufacturer", "serial_number",
            "version1", "version2", "hardware_revision", "updater_identifier",
            "left_serial_number", "right_serial_number", "version3",
        ]
        return cls(**dict(zip(names, strings)))


@dataclass(frozen=True)
class PhoneMediaEQ:
    """Headphone accommodation EQ and where it applies."""

    eq: tuple[float, ...] = field(default_factory=lambda: (0.5,) * EQ_BANDS)
    phone_enabled: bool = False
    media_enabled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "eq", tuple(self.eq))
        if len(self.eq) != EQ_BANDS:
            raise ValueError(f"eq must have {EQ_BANDS} bands, got {len(self.eq)}")
