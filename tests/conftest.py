"""Shared fixtures: captured AACP and ATT frames."""

from __future__ import annotations

import struct

import pytest

HEADER = b"\x04\x00\x04\x00"


def transparency_values(
        enabled: float = 1.0,
        left_eq: tuple[float, ...] = (0.0, 0.125, 0.25, 0.375, 0.5, 0.625, 0.75, 0.875),
        left: tuple[float, float, float, float] = (0.25, -0.5, 1.0, 0.75),
        right_eq: tuple[float, ...] = (-0.125,) * 8,
        right: tuple[float, float, float, float] = (0.75, 0.5, 0.0, 0.25),
) -> list[float]:
    """25-float transparency record: enabled, left block, right block.

    Each side block is eq x 8 then amplification, tone, conversation boost,
    ambient noise reduction.
    """
    return [enabled, *left_eq, *left, *right_eq, *right]


def pack_transparency(values: list[float]) -> bytes:
    return struct.pack("<25f", *values)


@pytest.fixture
def transparency_record() -> bytes:
    """100-byte record as written to the accessory."""
    return pack_transparency(transparency_values())


@pytest.fixture
def transparency_read_response(transparency_record) -> bytes:
    """Record framed as an ATT read response."""
    return b"\x0b" + transparency_record


@pytest.fixture
def listening_mode_packet() -> bytes:
    """Control command: listening mode = transparency (0x03)."""
    return HEADER + b"\x09\x00\x0d\x03\x00\x00\x00"


@pytest.fixture
def battery_packet() -> bytes:
    """Battery info for right (charging, 100%), left (90%) and case (disconnected)."""
    return HEADER + bytes([
        0x04, 0x00, 0x03,
        0x02, 0x01, 0x64, 0x01, 0x01,
        0x04, 0x01, 0x5a, 0x02, 0x01,
        0x08, 0x01, 0x00, 0x04, 0x01,
    ])


@pytest.fixture
def ear_detection_packet() -> bytes:
    """Primary in ear, secondary in case."""
    return HEADER + b"\x06\x00\x00\x02"


@pytest.fixture
def eq_data_packet() -> bytes:
    """Phone EQ enabled, media disabled, four identical EQ blocks."""
    bands = struct.pack("<8f", 0.5, 0.25, 0.75, 1.0, 0.0, 0.5, 0.5, 0.125)
    return HEADER + b"\x53\x00\x84\x00\x02\x02\x01\x02" + bands * 4


@pytest.fixture
def make_transparency_frame():
    """Build a framed transparency record from keyword overrides."""

    def _make(prefix: bytes = b"\x0b", **overrides) -> bytes:
        return prefix + pack_transparency(transparency_values(**overrides))

    return _make
