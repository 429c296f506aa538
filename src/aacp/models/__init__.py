"""Data models for AACP accessories."""

from .control import ControlCommand
from .enums import (
    OPTION_ENUMS,
    AudioSourceType,
    BatteryComponent,
    BatteryStatus,
    ControlCommandIdentifier,
    EarDetectionStatus,
    ListeningMode,
    PressAndHoldDuration,
    PressSpeed,
    ProximityKeyType,
    StemPressBudType,
    StemPressType,
    VolumeSwipeSpeed,
    get_identifier,
)
from .status import (
    AudioSource,
    BatteryInfo,
    ConnectedDevice,
    DeviceInformation,
    EarDetection,
    PhoneMediaEQ,
    ProximityKey,
)
from .transparency import EQ_BANDS, TransparencySettings

__all__ = [
    "AudioSource",
    "AudioSourceType",
    "BatteryComponent",
    "BatteryInfo",
    "BatteryStatus",
    "ConnectedDevice",
    "ControlCommand",
    "ControlCommandIdentifier",
    "DeviceInformation",
    "EarDetection",
    "EarDetectionStatus",
    "EQ_BANDS",
    "ListeningMode",
    "OPTION_ENUMS",
    "PhoneMediaEQ",
    "PressAndHoldDuration",
    "PressSpeed",
    "ProximityKey",
    "ProximityKeyType",
    "StemPressBudType",
    "StemPressType",
    "TransparencySettings",
    "VolumeSwipeSpeed",
    "get_identifier",
]
