"""Bluetooth transports."""

from .base import ATTSession, Link
from .connection import BleakATTSession
from .l2cap import L2CAPATTSession, L2CAPLink

__all__ = [
    "ATTSession",
    "Link",
    "L2CAPLink",
    "L2CAPATTSession",
    "BleakATTSession",
]
