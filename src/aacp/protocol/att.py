"""ATT PDU framing used by the attribute channel."""

from __future__ import annotations

import struct
from enum import IntEnum

from ..exceptions import ATTError, DecodeError


class ATTOpcode(IntEnum):
    """Subset of ATT opcodes the engine speaks."""

    ERROR_RSP = 0x01
    READ_REQ = 0x0A
    READ_RSP = 0x0B
    WRITE_REQ = 0x12
    WRITE_RSP = 0x13
    HANDLE_VALUE_NTF = 0x1B
    HANDLE_VALUE_IND = 0x1D
    HANDLE_VALUE_CFM = 0x1E


# Known attribute handles
LOUD_SOUND_REDUCTION_HANDLE = 0x1B

CCCD_ENABLE_NOTIFICATIONS = b"\x01\x00"


def build_read_request(handle: int) -> bytes:
    """Build a read request: [0A][handle:2 LE]."""
    return bytes([ATTOpcode.READ_REQ]) + struct.pack("<H", handle)


def build_write_request(handle: int, value: bytes) -> bytes:
    """Build a write request: [12][handle:2 LE][value]."""
    return bytes([ATTOpcode.WRITE_REQ]) + struct.pack("<H", handle) + bytes(value)


def build_enable_notifications(handle: int) -> bytes:
    """Write 0x0001 to the client configuration descriptor after ``handle``."""
    return build_write_request(handle + 1, CCCD_ENABLE_NOTIFICATIONS)


def parse_error_response(pdu: bytes) -> ATTError:
    """Turn an error response PDU into an exception instance.

    Format: [01][request opcode:1][handle:2 LE][error code:1]
    """
    if len(pdu) < 5:
        raise DecodeError(f"ATT error response too short: {len(pdu)} bytes (need 5)")
    request_opcode = pdu[1]
    handle = struct.unpack_from("<H", pdu, 2)[0]
    return ATTError(request_opcode, handle, pdu[4])


def parse_notification(pdu: bytes) -> tuple[int, bytes]:
    """Split a notification/indication PDU into handle and frame.

    The returned frame keeps the leading opcode byte and drops the handle,
    so listeners always receive [frame type][value].

    Raises:
        DecodeError: If the PDU is too short
    """
    if len(pdu) < 3:
        raise DecodeError(f"ATT notification too short: {len(pdu)} bytes (need 3)")
    handle = struct.unpack_from("<H", pdu, 1)[0]
    return handle, pdu[:1] + pdu[3:]


def decode_loud_sound_reduction(frame: bytes) -> bool | None:
    """Read the loud sound reduction switch from a [frame type][value] frame.

    Any non-zero first value byte means enabled. Returns None if the frame
    carries no value.
    """
    if len(frame) < 2:
        return None
    return frame[1] != 0


def encode_loud_sound_reduction(enabled: bool) -> bytes:
    """Value written to the loud sound reduction handle: a single 0/1 byte."""
    return b"\x01" if enabled else b"\x00"
