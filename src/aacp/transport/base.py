"""Transport abstractions.

Two channels reach the earbuds:

- a ``Link``: a packet stream carrying AACP frames
- an ``ATTSession``: attribute read/write/notify addressed by handle
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from ..dispatcher import ListenerRegistry, Subscription

_LOGGER = logging.getLogger(__name__)

ReceiveCallback = Callable[[bytes], None]
DisconnectCallback = Callable[[BaseException | None], None]


class Link(ABC):
    """Packet-oriented, point-to-point Bluetooth socket."""

    def __init__(self) -> None:
        self._receive_callback: ReceiveCallback | None = None
        self._disconnect_callback: DisconnectCallback | None = None

    @abstractmethod
    async def connect(self) -> None:
        """Open the link.

        Raises:
            BTConnectionError: If the socket cannot be opened
            BTTimeoutError: If the connection attempt times out
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the link. Safe to call more than once."""

    @abstractmethod
    async def send(self, data: bytes) -> None:
        """Send one packet.

        Raises:
            BTConnectionError: If not connected
            WriteError: If the send fails
        """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Liveness hint. Not a substitute for checking send results."""

    def set_receive_callback(self, callback: ReceiveCallback | None) -> None:
        """Set the function called with every received packet."""
        self._receive_callback = callback

    def set_disconnect_callback(self, callback: DisconnectCallback | None) -> None:
        """Set the function called once when the link goes down."""
        self._disconnect_callback = callback

    def _deliver(self, data: bytes) -> None:
        if self._receive_callback is None:
            return
        try:
            self._receive_callback(data)
        except Exception:
            _LOGGER.exception("Receive callback raised")

    def _notify_disconnected(self, error: BaseException | None) -> None:
        if self._disconnect_callback is None:
            return
        try:
            self._disconnect_callback(error)
        except Exception:
            _LOGGER.exception("Disconnect callback raised")

    async def __aenter__(self) -> Link:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()


class ATTSession(ABC):
    """Attribute channel: request/response plus handle-addressed notifications.

    Frames handed to listeners and returned from ``read`` keep their
    one-byte frame type (ATT opcode) in front of the attribute value.
    """

    def __init__(self) -> None:
        self._listeners: ListenerRegistry[bytes] = ListenerRegistry("att")

    @abstractmethod
    async def connect(self) -> None:
        """Open the channel.

        Raises:
            BTConnectionError: If the link or service is unavailable
            BTTimeoutError: If the connection attempt times out
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the channel. Safe to call more than once."""

    @abstractmethod
    async def read(self, handle: int) -> bytes:
        """Read an attribute.

        Returns:
            Response frame: [frame type:1][value]

        Raises:
            BTTimeoutError: If no response arrives in time
            BTConnectionError: If the link is down or resets
        """

    @abstractmethod
    async def write(self, handle: int, value: bytes) -> None:
        """Write an attribute value (no frame-type byte).

        Raises:
            WriteError: If sending fails
            BTTimeoutError: If the write is not acknowledged in time
        """

    @abstractmethod
    async def enable_notifications(self, handle: int) -> None:
        """Arm push delivery for ``handle``."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Liveness hint. Not a substitute for checking read/write results."""

    def register_listener(self, handle: int, callback: Callable[[bytes], None]) -> Subscription[bytes]:
        """Subscribe to notification frames for ``handle``."""
        return self._listeners.register(handle, callback)

    def unregister_listener(self, subscription: Subscription[bytes]) -> None:
        self._listeners.unregister(subscription)

    def _deliver(self, handle: int, frame: bytes) -> None:
        _LOGGER.debug("Notification on 0x%04x: %s", handle, frame.hex())
        self._listeners.dispatch(handle, frame)

    async def __aenter__(self) -> ATTSession:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
