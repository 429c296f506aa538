"""AACP Accessory Protocol Package.

  Pure Python package for configuring AACP earbuds over L2CAP and ATT.
  """

from .coalescer import WriteCoalescer
from .device import AccessibilitySettings
from .dispatcher import ListenerRegistry, Subscription, SubscriptionScope
from .exceptions import (
    AACPError,
    ATTError,
    BTConnectionError,
    BTTimeoutError,
    DecodeError,
    ProtocolError,
    WriteError,
)
from .manager import AACPManager, Change, EventType
from .models.control import ControlCommand
from .models.enums import (
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
)
from .models.status import (
    AudioSource,
    BatteryInfo,
    ConnectedDevice,
    DeviceInformation,
    EarDetection,
    PhoneMediaEQ,
    ProximityKey,
)
from .models.transparency import TransparencySettings
from .protocol import AACP_PSM, ATT_PSM, TRANSPARENCY_HANDLE
from .sync import InitialSyncController, SyncState
from .transport import ATTSession, BleakATTSession, L2CAPATTSession, L2CAPLink, Link

__version__ = "0.1.0"

__all__ = [
    # Main API
    "AACPManager",
    "AccessibilitySettings",
    "EventType",
    "Change",
    # Transports
    "Link",
    "ATTSession",
    "L2CAPLink",
    "L2CAPATTSession",
    "BleakATTSession",
    # Coordination
    "InitialSyncController",
    "SyncState",
    "WriteCoalescer",
    "ListenerRegistry",
    "Subscription",
    "SubscriptionScope",
    # Exceptions
    "AACPError",
    "BTConnectionError",
    "BTTimeoutError",
    "WriteError",
    "ProtocolError",
    "DecodeError",
    "ATTError",
    # Models
    "ControlCommand",
    "TransparencySettings",
    "PhoneMediaEQ",
    "BatteryInfo",
    "EarDetection",
    "AudioSource",
    "ConnectedDevice",
    "ProximityKey",
    "DeviceInformation",
    # Enums
    "ControlCommandIdentifier",
    "BatteryComponent",
    "BatteryStatus",
    "EarDetectionStatus",
    "AudioSourceType",
    "ProximityKeyType",
    "StemPressType",
    "StemPressBudType",
    "PressSpeed",
    "PressAndHoldDuration",
    "VolumeSwipeSpeed",
    "ListeningMode",
    # Constants
    "AACP_PSM",
    "ATT_PSM",
    "TRANSPARENCY_HANDLE",
]
