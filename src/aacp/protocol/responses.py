"""AACP notification parsing.

Every parser takes the packet payload starting at the opcode byte (the data
header already stripped) and returns None on short or malformed input. A bad
frame from the accessory is logged, never raised across the receive path.
"""

from __future__ import annotations

import logging
import struct

from ..models.control import ControlCommand
from ..models.enums import (
    AudioSourceType,
    BatteryComponent,
    BatteryStatus,
    EarDetectionStatus,
    StemPressBudType,
    StemPressType,
)
from ..models.status import (
    AudioSource,
    BatteryInfo,
    ConnectedDevice,
    DeviceInformation,
    EarDetection,
    PhoneMediaEQ,
    ProximityKey,
)
from ..models.transparency import EQ_BANDS
from .commands import CONTROL_VALUE_SIZE, EQ_FLAG_ENABLED, HEADER_BYTES

_LOGGER = logging.getLogger(__name__)

OWNERSHIP_TO_FALSE_MARKER = "SetOwnershipToFalse"


def split_packet(packet: bytes) -> tuple[int, bytes] | None:
    """Strip the data header and return (opcode, payload).

    The payload keeps the opcode as its first byte.
    """
    if not packet.startswith(HEADER_BYTES):
        _LOGGER.debug("Packet does not start with data header: %s", packet.hex())
        return None
    if len(packet) < len(HEADER_BYTES) + 1:
        _LOGGER.debug("Packet too short: %s", packet.hex())
        return None
    payload = packet[len(HEADER_BYTES):]
    return payload[0], payload


def parse_control_command(payload: bytes) -> ControlCommand | None:
    """Parse a control command notification.

    Format: [09 00][identifier:1][value:4]

    Trailing zero bytes are dropped from the value; an all-zero value
    becomes a single 0x00 byte.
    """
    if len(payload) < 3 + CONTROL_VALUE_SIZE:
        _LOGGER.error("Control command packet too short: %s", payload.hex())
        return None

    raw_value = payload[3:3 + CONTROL_VALUE_SIZE]
    value = raw_value.rstrip(b"\x00") or b"\x00"
    return ControlCommand(identifier=payload[2], value=bytes(value))


def parse_battery_info(payload: bytes) -> list[BatteryInfo] | None:
    """Parse battery levels.

    Format: [04 00][count:1] then count x [component:1][?:1][level:1][status:1][?:1]
    Entries with unknown component or status are skipped.
    """
    if len(payload) < 3:
        _LOGGER.error("Battery info packet too short: %s", payload.hex())
        return None

    count = payload[2]
    if len(payload) < 3 + count * 5:
        _LOGGER.error("Battery info packet length mismatch: %s", payload.hex())
        return None

    batteries: list[BatteryInfo] = []
    for i in range(count):
        base = 3 + i * 5
        try:
            component = BatteryComponent(payload[base])
            status = BatteryStatus(payload[base + 3])
        except ValueError:
            _LOGGER.error(
                "Unknown battery component/status: 0x%02x/0x%02x",
                payload[base],
                payload[base + 3],
            )
            continue
        batteries.append(BatteryInfo(component=component, level=payload[base + 2], status=status))

    return batteries


def _ear_status(raw: int) -> EarDetectionStatus:
    try:
        return EarDetectionStatus(raw)
    except ValueError:
        _LOGGER.error("Unknown ear detection status: 0x%02x", raw)
        return EarDetectionStatus.OUT_OF_EAR


def parse_ear_detection(payload: bytes) -> EarDetection | None:
    """Parse ear detection: [06 00][primary:1][secondary:1]."""
    if len(payload) < 4:
        _LOGGER.error("Ear detection packet too short: %s", payload.hex())
        return None
    return EarDetection(primary=_ear_status(payload[2]), secondary=_ear_status(payload[3]))


def parse_conversation_awareness(payload: bytes) -> int | None:
    """Parse conversation awareness level (6-byte payload, level last)."""
    if len(payload) != 6:
        _LOGGER.info("Conversation awareness packet with unexpected length: %d", len(payload))
        return None
    return payload[5]


def _format_mac(octets: bytes) -> str:
    return ":".join(f"{b:02X}" for b in octets)


def parse_audio_source(payload: bytes) -> AudioSource | None:
    """Parse audio source: [0E 00][mac:6, reversed][type:1]."""
    if len(payload) < 9:
        _LOGGER.error("Audio source packet too short: %s", payload.hex())
        return None
    try:
        source_type = AudioSourceType(payload[8])
    except ValueError:
        source_type = AudioSourceType.NONE
    return AudioSource(mac=_format_mac(payload[2:8][::-1]), type=source_type)


def parse_connected_devices(payload: bytes) -> list[ConnectedDevice] | None:
    """Parse connected hosts: [2E 00][count:1][?:2] then count x [mac:6][info1][info2]."""
    if len(payload) < 3:
        _LOGGER.error("Connected devices packet too short: %s", payload.hex())
        return None

    count = payload[2]
    if len(payload) < 5 + count * 8:
        _LOGGER.error("Connected devices packet length mismatch: %s", payload.hex())
        return None

    devices = []
    for i in range(count):
        base = 5 + i * 8
        devices.append(
            ConnectedDevice(
                mac=_format_mac(payload[base:base + 6]),
                info1=payload[base + 6],
                info2=payload[base + 7],
            )
        )
    return devices


def parse_information(payload: bytes) -> DeviceInformation | None:
    """Parse the null-separated identification strings.

    The data after the 4-byte prefix starts with a binary field and one
    unnamed string; both are skipped.
    """
    if len(payload) < 6:
        _LOGGER.error("Information packet too short: %s", payload.hex())
        return None

    data = payload[4:]
    # Skip leading binary field up to the first null
    first_null = data.find(b"\x00")
    if first_null < 0:
        return DeviceInformation()

    strings = []
    for chunk in data[first_null:].split(b"\x00"):
        if not chunk:
            continue
        try:
            strings.append(chunk.decode("utf-8"))
        except UnicodeDecodeError:
            continue

    return DeviceInformation.from_strings(strings[1:])


def parse_proximity_keys(payload: bytes) -> list[ProximityKey] | None:
    """Parse proximity keys: [31 00][count:1] then count x [type:1][?:1][len:1][?:1][key]."""
    if len(payload) < 4:
        _LOGGER.error("Proximity keys packet too short: %s", payload.hex())
        return None

    key_count = payload[2]
    offset = 3
    keys = []
    for _ in range(key_count):
        if offset + 3 >= len(payload):
            _LOGGER.error("Proximity keys packet too short while parsing keys: %s", payload.hex())
            return None
        key_type = payload[offset]
        key_length = payload[offset + 2]
        offset += 4
        if offset + key_length > len(payload):
            _LOGGER.error("Proximity keys packet too short for key data: %s", payload.hex())
            return None
        keys.append(ProximityKey(key_type=key_type, data=bytes(payload[offset:offset + key_length])))
        offset += key_length
    return keys


def parse_smart_routing_response(payload: bytes) -> str:
    """Decode the smart routing response body as text (lossy)."""
    return payload[2:].decode("utf-8", errors="replace")


def is_ownership_to_false_request(payload: bytes) -> bool:
    return OWNERSHIP_TO_FALSE_MARKER in parse_smart_routing_response(payload)


def parse_stem_press(payload: bytes) -> tuple[StemPressType, StemPressBudType] | None:
    """Parse a stem press: [19 00][press type:1][bud:1]."""
    if len(payload) < 4:
        _LOGGER.error("Stem press packet too short: %s", payload.hex())
        return None
    try:
        return StemPressType(payload[2]), StemPressBudType(payload[3])
    except ValueError:
        _LOGGER.error("Unknown stem press: %s", payload.hex())
        return None


def parse_eq_data(payload: bytes) -> PhoneMediaEQ | None:
    """Parse phone/media EQ: [53 00][84 00 02 02][phone:1][media:1][8 x float32 LE]...

    Only the first EQ block is read; the accessory repeats it.
    """
    header = 8
    if len(payload) < header + EQ_BANDS * 4:
        _LOGGER.error("EQ data packet too short: %s", payload.hex())
        return None
    bands = struct.unpack_from(f"<{EQ_BANDS}f", payload, header)
    return PhoneMediaEQ(
        eq=bands,
        phone_enabled=payload[6] == EQ_FLAG_ENABLED,
        media_enabled=payload[7] == EQ_FLAG_ENABLED,
    )
