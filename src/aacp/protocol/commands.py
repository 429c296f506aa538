"""AACP packet builders and protocol constants."""

from __future__ import annotations

import struct
from collections.abc import Iterable, Sequence
from enum import IntEnum

from ..models.transparency import EQ_BANDS


class Opcode(IntEnum):
    """AACP packet opcodes (first byte after the data header)."""

    BATTERY_INFO = 0x04
    EAR_DETECTION = 0x06
    CONTROL_COMMAND = 0x09
    TIPI_3 = 0x0C
    AUDIO_SOURCE = 0x0E
    REQUEST_NOTIFICATIONS = 0x0F
    SMART_ROUTING = 0x10
    SMART_ROUTING_RESP = 0x11
    SEND_CONNECTED_MAC = 0x14
    HEADTRACKING = 0x17
    STEM_PRESS = 0x19
    INFORMATION = 0x1D
    RENAME = 0x1E
    CONNECTED_DEVICES = 0x2E
    PROXIMITY_KEYS_REQ = 0x30
    PROXIMITY_KEYS_RSP = 0x31
    CONVERSATION_AWARENESS = 0x4B
    SET_FEATURE_FLAGS = 0x4D
    EQ_DATA = 0x53


# L2CAP channels
AACP_PSM = 0x1001
ATT_PSM = 0x001F

# Every AACP data packet starts with this header
HEADER_BYTES = bytes([0x04, 0x00, 0x04, 0x00])

# Control command values are always sent as 4 bytes
CONTROL_VALUE_SIZE = 4

# Phone/media EQ enable flags use sentinels, not 0/1
EQ_FLAG_ENABLED = 0x01
EQ_FLAG_DISABLED = 0x02

# Phone/media EQ layout: [53 00][84 00][02 02][phone][media][4 x 8 floats]
EQ_DATA_PREFIX = bytes([0x84, 0x00, 0x02, 0x02])
EQ_DATA_BLOCKS = 4

HANDSHAKE_PACKET = bytes([
    0x00, 0x00, 0x04, 0x00,
    0x01, 0x00, 0x02, 0x00,
    0x00, 0x00, 0x00, 0x00,
    0x00, 0x00, 0x00, 0x00,
])


def _opcode(opcode: Opcode) -> bytes:
    return bytes([opcode, 0x00])


def with_header(data: bytes) -> bytes:
    """Prefix an opcode+payload with the AACP data header."""
    return HEADER_BYTES + data


def build_handshake_packet() -> bytes:
    """Build the connection handshake (sent without the data header)."""
    return HANDSHAKE_PACKET


def build_set_feature_flags_packet(flags: int = 0xFF) -> bytes:
    """Build the feature flags packet.

    Format:
        [header:4][4D 00][flags:1][00 x 7]
    """
    return with_header(_opcode(Opcode.SET_FEATURE_FLAGS) + bytes([flags & 0xFF]) + bytes(7))


def build_request_notifications_packet() -> bytes:
    """Ask the accessory to push every notification type."""
    return with_header(_opcode(Opcode.REQUEST_NOTIFICATIONS) + b"\xff\xff\xff\xff")


def build_control_command_packet(identifier: int, value: bytes | int) -> bytes:
    """Build a control command packet.

    Args:
        identifier: Control command identifier byte
        value: Value bytes (or a single option byte); zero padded or
            truncated to 4 bytes

    Returns:
        [header:4][09 00][identifier:1][value:4]
    """
    if not 0 <= identifier <= 0xFF:
        raise ValueError(f"identifier out of range: {identifier}")
    if isinstance(value, int):
        value = bytes([value & 0xFF])
    padded = bytes(value[:CONTROL_VALUE_SIZE]).ljust(CONTROL_VALUE_SIZE, b"\x00")
    return with_header(_opcode(Opcode.CONTROL_COMMAND) + bytes([identifier]) + padded)


def build_rename_packet(name: str) -> bytes:
    """Build a rename packet: [header:4][1E 00][len:1][00][utf-8 name]."""
    name_bytes = name.encode("utf-8")
    if len(name_bytes) > 0xFF:
        raise ValueError(f"Name too long: {len(name_bytes)} bytes (max 255)")
    return with_header(_opcode(Opcode.RENAME) + bytes([len(name_bytes), 0x00]) + name_bytes)


def build_proximity_keys_request(key_types: Iterable[int]) -> bytes:
    """Request proximity keys; key types are OR-ed into one mask byte."""
    mask = 0
    for key_type in key_types:
        mask |= int(key_type)
    return with_header(_opcode(Opcode.PROXIMITY_KEYS_REQ) + bytes([mask & 0xFF, 0x00]))


def encode_eq_flag(enabled: bool) -> int:
    """Encode an EQ enable flag as its sentinel byte."""
    return EQ_FLAG_ENABLED if enabled else EQ_FLAG_DISABLED


def build_phone_media_eq_packet(
        eq: Sequence[float],
        phone_enabled: bool,
        media_enabled: bool,
) -> bytes:
    """Build the phone/media EQ packet.

    The 8-band array is repeated for each of the four EQ blocks the
    accessory keeps; enable flags use 0x01/0x02 sentinels.
    """
    if len(eq) != EQ_BANDS:
        raise ValueError(f"EQ must have {EQ_BANDS} bands, got {len(eq)}")

    bands = struct.pack(f"<{EQ_BANDS}f", *eq)
    return with_header(
        _opcode(Opcode.EQ_DATA)
        + EQ_DATA_PREFIX
        + bytes([encode_eq_flag(phone_enabled), encode_eq_flag(media_enabled)])
        + bands * EQ_DATA_BLOCKS
    )


def _reversed_address(address: str) -> bytes:
    """Parse "AA:BB:CC:DD:EE:FF" into its six bytes, least significant first."""
    parts = address.split(":")
    if len(parts) != 6:
        raise ValueError(f"Invalid Bluetooth address: {address!r}")
    try:
        return bytes(int(part, 16) for part in reversed(parts))
    except ValueError as e:
        raise ValueError(f"Invalid Bluetooth address: {address!r}") from e


def _smart_routing(target_address: str, body: bytes, size: int = 0) -> bytes:
    """Wrap a smart routing body: [header:4][10 00][target:6 reversed][body].

    ``size`` zero-pads everything after the opcode to a fixed length.
    """
    payload = (_reversed_address(target_address) + body).ljust(size, b"\x00")
    return with_header(_opcode(Opcode.SMART_ROUTING) + payload)


def build_media_information_new_device_packet(self_address: str, target_address: str) -> bytes:
    """Announce this host to a newly connected audio source."""
    body = (
        b"\x68\x00\x01\xe5\x4a" + b"playingApp"
        + b"\x42" + b"NA"
        + b"\x52" + b"hostStreamingState"
        + b"\x42" + b"NO"
        + b"\x49" + b"btAddress"
        + b"\x51" + self_address.encode("ascii")
        + b"\x46" + b"btName"
        + b"\x43" + b"Mac"
        + b"\x58" + b"otherDevice" + b"AudioCategory"
        + b"\x30\x64"
    )
    return _smart_routing(target_address, body)


def build_hijack_request_packet(target_address: str) -> bytes:
    """Ask the accessory to move audio routing to this host."""
    body = (
        b"\x62\x00\x01\xe5"
        + b"\x4a" + b"localscore" + b"\x30\x64"
        + b"\x46" + b"reason"
        + b"\x48" + b"Hijackv2"
        + b"\x51" + b"audioRoutingScore" + b"\x31\x2d\x01"
        + b"\x5f" + b"audioRoutingSetOwnershipToFalse" + b"\x01"
        + b"\x4b" + b"remotescore" + b"\xa5"
    )
    return _smart_routing(target_address, body, 106)


def build_media_information_packet(self_address: str, target_address: str, streaming: bool) -> bytes:
    """Report this host's playback state to the accessory."""
    body = (
        b"\x82\x00\x01\xe5\x4a" + b"PlayingApp"
        + b"\x56" + b"com.google.ios.youtube"
        + b"\x52" + b"HostStreamingState"
        + b"\x42" + (b"YES" if streaming else b"NO")
        + b"\x49" + b"btAddress"
        + b"\x51" + self_address.encode("ascii")
        + b"btName"
        + b"\x43" + b"Mac"
        + b"\x58" + b"otherDevice" + b"AudioCategory"
        + b"\x31\x2d\x01"
    )
    return _smart_routing(target_address, body, 138)


def build_smart_routing_show_ui_packet(target_address: str) -> bytes:
    """Ask the accessory to show the nearby-device routing banner."""
    body = (
        b"\x7e\x00\x01\xe6\x5b" + b"SmartRoutingKeyShowNearbyUI" + b"\x01"
        + b"\x4a" + b"localscore" + b"\x31\x2d\x01"
        + b"\x46" + b"reasonHhijackv2"
        + b"\x51" + b"audioRoutingScore" + b"\xa2"
        + b"\x5f" + b"audioRoutingSetOwnershipToFalse" + b"\x01"
        + b"\x4b" + b"remotescore" + b"\xa2"
    )
    return _smart_routing(target_address, body, 134)


def build_hijack_reversed_packet(target_address: str) -> bytes:
    """Hand audio routing back after the user tapped the reverse banner."""
    body = (
        b"\x59\x00\x01\xe3"
        + b"\x5f" + b"audioRoutingSetOwnershipToFalse" + b"\x01"
        + b"\x59" + b"audioRoutingShowReverseUI" + b"\x01"
        + b"\x46" + b"reason"
        + b"\x53" + b"ReverseBannerTapped"
    )
    return _smart_routing(target_address, body, 97)


def build_add_tipi_device_packet(self_address: str, target_address: str) -> bytes:
    """Register this host as a new audio-sharing (tipi) device."""
    body = (
        b"\x4e\x00\x01\xe5"
        + b"\x48\x69" + b"idleTime"
        + b"\x08\x47" + b"newTipi"
        + b"\x01\x49" + b"btAddress"
        + b"\x51" + self_address.encode("ascii")
        + b"\x46" + b"btName"
        + b"\x43" + b"Mac"
        + b"\x50" + b"nearbyAudioScore" + b"\x0e"
    )
    return _smart_routing(target_address, body)
