"""Transparency settings codec.

Layout (25 little-endian float32 values, 100 bytes):
    [enabled]
    [left_eq x 8][left_amplification][left_tone]
    [left_conversation_boost][left_ambient_noise_reduction]
    [right_eq x 8][right_amplification][right_tone]
    [right_conversation_boost][right_ambient_noise_reduction]

Frames coming from the accessory (read responses and notifications) carry a
one-byte frame type in front of the record. Outbound writes do not: the ATT
write request adds its own opcode and handle.
"""

from __future__ import annotations

import logging
import struct

from ..exceptions import DecodeError
from ..models.transparency import EQ_BANDS, TransparencySettings

_LOGGER = logging.getLogger(__name__)

TRANSPARENCY_HANDLE = 0x18
FLOAT_COUNT = 1 + 2 * (EQ_BANDS + 4)
RECORD_SIZE = FLOAT_COUNT * 4
FRAME_PREFIX_SIZE = 1

_RECORD = struct.Struct(f"<{FLOAT_COUNT}f")


def _as_bool(value: float) -> bool:
    return value > 0.5


def _from_bool(value: bool) -> float:
    return 1.0 if value else 0.0


def decode_transparency_settings(frame: bytes) -> TransparencySettings | None:
    """Decode a transparency settings frame.

    Args:
        frame: Frame from the accessory, including its leading frame-type byte

    Returns:
        Parsed settings, or None if fewer than 100 bytes follow the prefix
    """
    payload = frame[FRAME_PREFIX_SIZE:]
    if len(payload) < RECORD_SIZE:
        _LOGGER.debug(
            "Transparency frame too short: %d bytes (need %d)",
            len(frame),
            RECORD_SIZE + FRAME_PREFIX_SIZE,
        )
        return None

    values = _RECORD.unpack_from(payload)
    left = values[1:1 + EQ_BANDS + 4]
    right = values[1 + EQ_BANDS + 4:]

    return TransparencySettings(
        enabled=_as_bool(values[0]),
        left_eq=left[:EQ_BANDS],
        left_amplification=left[EQ_BANDS],
        left_tone=left[EQ_BANDS + 1],
        left_conversation_boost=_as_bool(left[EQ_BANDS + 2]),
        left_ambient_noise_reduction=left[EQ_BANDS + 3],
        right_eq=right[:EQ_BANDS],
        right_amplification=right[EQ_BANDS],
        right_tone=right[EQ_BANDS + 1],
        right_conversation_boost=_as_bool(right[EQ_BANDS + 2]),
        right_ambient_noise_reduction=right[EQ_BANDS + 3],
    )


def require_transparency_settings(frame: bytes) -> TransparencySettings:
    """Like decode_transparency_settings, but raise on short frames.

    Raises:
        DecodeError: If the frame does not hold a complete record
    """
    settings = decode_transparency_settings(frame)
    if settings is None:
        raise DecodeError(
            f"Transparency frame too short: {len(frame)} bytes "
            f"(need {RECORD_SIZE + FRAME_PREFIX_SIZE})"
        )
    return settings


def encode_transparency_settings(settings: TransparencySettings) -> bytes:
    """Encode settings as the 100-byte write payload (no frame-type byte)."""
    return _RECORD.pack(
        _from_bool(settings.enabled),
        *settings.left_eq,
        settings.left_amplification,
        settings.left_tone,
        _from_bool(settings.left_conversation_boost),
        settings.left_ambient_noise_reduction,
        *settings.right_eq,
        settings.right_amplification,
        settings.right_tone,
        _from_bool(settings.right_conversation_boost),
        settings.right_ambient_noise_reduction,
    )
