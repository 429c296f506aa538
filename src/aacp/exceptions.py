"""Exceptions raised by the AACP engine."""

from __future__ import annotations


class AACPError(Exception):
    """Base exception for all engine errors."""


class BTConnectionError(AACPError, ConnectionError):
    """Bluetooth link unavailable, failed to open, or lost."""


class BTTimeoutError(AACPError, TimeoutError):
    """No response from the accessory within the timeout window."""


class WriteError(AACPError):
    """Sending a payload to the accessory failed."""


class ProtocolError(AACPError):
    """Accessory sent something the protocol does not allow."""


class DecodeError(ProtocolError):
    """Payload too short or otherwise malformed."""


class ATTError(ProtocolError):
    """Accessory answered an ATT request with an error response."""

    def __init__(self, request_opcode: int, handle: int, error_code: int):
        self.request_opcode = request_opcode
        self.handle = handle
        self.error_code = error_code
        super().__init__(
            f"ATT error 0x{error_code:02x} for request 0x{request_opcode:02x} "
            f"on handle 0x{handle:04x}"
        )
