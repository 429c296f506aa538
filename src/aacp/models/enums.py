from __future__ import annotations

from enum import IntEnum
from typing import Final


class ControlCommandIdentifier(IntEnum):
    """Identifiers carried by AACP control command packets (opcode 0x09)."""
    MIC_MODE = 0x01
    BUTTON_SEND_MODE = 0x05
    OWNS_CONNECTION = 0x06
    EAR_DETECTION_CONFIG = 0x0A
    LISTENING_MODE = 0x0D
    VOICE_TRIGGER = 0x12
    SINGLE_CLICK_MODE = 0x14
    DOUBLE_CLICK_MODE = 0x15
    CLICK_HOLD_MODE = 0x16
    DOUBLE_CLICK_INTERVAL = 0x17
    CLICK_HOLD_INTERVAL = 0x18
    LISTENING_MODE_CONFIGS = 0x1A
    ONE_BUD_ANC_MODE = 0x1B
    CROWN_ROTATION_DIRECTION = 0x1C
    AUTO_ANSWER_MODE = 0x1E
    CHIME_VOLUME = 0x1F
    AUTOMATIC_CONNECTION_CONFIG = 0x20
    VOLUME_SWIPE_INTERVAL = 0x23
    CALL_MANAGEMENT_CONFIG = 0x24
    VOLUME_SWIPE_MODE = 0x25
    ADAPTIVE_VOLUME_CONFIG = 0x26
    SOFTWARE_MUTE_CONFIG = 0x27
    CONVERSATION_DETECT_CONFIG = 0x28
    SSL = 0x29
    HEARING_AID = 0x2C
    AUTO_ANC_STRENGTH = 0x2E
    HPS_GAIN_SWIPE = 0x2F
    HRM_STATE = 0x30
    IN_CASE_TONE_CONFIG = 0x31
    SIRI_MULTITONE_CONFIG = 0x32
    HEARING_ASSIST_CONFIG = 0x33
    ALLOW_OFF_OPTION = 0x34
    SLEEP_DETECTION_CONFIG = 0x35
    ALLOW_AUTO_CONNECT = 0x36
    STEM_CONFIG = 0x39

    @property
    def label(self) -> str:
        """Human-readable name, e.g. "Double Click Interval"."""
        return _IDENTIFIER_LABELS.get(self, self.name.replace("_", " ").title())


_IDENTIFIER_LABELS: Final[dict[ControlCommandIdentifier, str]] = {
    ControlCommandIdentifier.ONE_BUD_ANC_MODE: "One Bud ANC Mode",
    ControlCommandIdentifier.SSL: "SSL",
    ControlCommandIdentifier.AUTO_ANC_STRENGTH: "Auto ANC Strength",
    ControlCommandIdentifier.HPS_GAIN_SWIPE: "HPS Gain Swipe",
    ControlCommandIdentifier.HRM_STATE: "HRM State",
}


def get_identifier(value: int) -> ControlCommandIdentifier | None:
    """Map a raw identifier byte to a known identifier, if any."""
    try:
        return ControlCommandIdentifier(value)
    except ValueError:
        return None


class BatteryComponent(IntEnum):
    """Battery-bearing parts of the set."""
    RIGHT = 0x02
    LEFT = 0x04
    CASE = 0x08


class BatteryStatus(IntEnum):
    """Charge state reported with each battery level."""
    CHARGING = 0x01
    NOT_CHARGING = 0x02
    DISCONNECTED = 0x04


class EarDetectionStatus(IntEnum):
    """Per-pod placement."""
    IN_EAR = 0x00
    OUT_OF_EAR = 0x01
    IN_CASE = 0x02
    DISCONNECTED = 0x03


class AudioSourceType(IntEnum):
    """Kind of audio currently routed to the earbuds."""
    NONE = 0x00
    CALL = 0x01
    MEDIA = 0x02


class ProximityKeyType(IntEnum):
    """Key types returned by the proximity keys exchange."""
    IRK = 0x01
    ENC_KEY = 0x04


class StemPressType(IntEnum):
    """Stem press gestures."""
    SINGLE_PRESS = 0x05
    DOUBLE_PRESS = 0x06
    TRIPLE_PRESS = 0x07
    LONG_PRESS = 0x08


class StemPressBudType(IntEnum):
    """Which pod the stem press came from."""
    LEFT = 0x01
    RIGHT = 0x02


class _OptionEnum(IntEnum):
    """Closed option set carried as a one-byte control command value.

    Every member has a display label; unknown bytes decode to ``default()``.
    """

    @classmethod
    def default(cls) -> _OptionEnum:
        raise NotImplementedError

    @classmethod
    def from_byte(cls, value: int | None) -> _OptionEnum:
        """Decode an option byte, falling back to the default variant."""
        if value is None:
            return cls.default()
        try:
            return cls(value)
        except ValueError:
            return cls.default()

    @classmethod
    def from_value(cls, value: bytes) -> _OptionEnum:
        """Decode the first byte of a control command value."""
        return cls.from_byte(value[0] if value else None)

    @classmethod
    def from_label(cls, label: str) -> _OptionEnum:
        """Inverse of ``label``; unknown labels map to the default variant."""
        for member in cls:
            if member.label == label:
                return member
        return cls.default()

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()

    def to_value(self) -> bytes:
        return bytes([self.value])


class PressSpeed(_OptionEnum):
    """Double click interval (identifier 0x17)."""
    DEFAULT = 0
    SLOWER = 1
    SLOWEST = 2

    @classmethod
    def default(cls) -> PressSpeed:
        return cls.DEFAULT


class PressAndHoldDuration(_OptionEnum):
    """Click and hold interval (identifier 0x18)."""
    DEFAULT = 0
    SLOWER = 1
    SLOWEST = 2

    @classmethod
    def default(cls) -> PressAndHoldDuration:
        return cls.DEFAULT


class VolumeSwipeSpeed(_OptionEnum):
    """Volume swipe interval (identifier 0x23)."""
    DEFAULT = 1
    LONGER = 2
    LONGEST = 3

    @classmethod
    def default(cls) -> VolumeSwipeSpeed:
        return cls.DEFAULT


class ListeningMode(_OptionEnum):
    """Noise control mode (identifier 0x0D)."""
    OFF = 1
    NOISE_CANCELLATION = 2
    TRANSPARENCY = 3
    ADAPTIVE = 4

    @classmethod
    def default(cls) -> ListeningMode:
        return cls.OFF


OPTION_ENUMS: Final[dict[ControlCommandIdentifier, type[_OptionEnum]]] = {
    ControlCommandIdentifier.DOUBLE_CLICK_INTERVAL: PressSpeed,
    ControlCommandIdentifier.CLICK_HOLD_INTERVAL: PressAndHoldDuration,
    ControlCommandIdentifier.VOLUME_SWIPE_INTERVAL: VolumeSwipeSpeed,
    ControlCommandIdentifier.LISTENING_MODE: ListeningMode,
}
