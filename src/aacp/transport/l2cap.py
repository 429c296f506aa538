"""Bluetooth classic L2CAP transport (Linux BlueZ sockets)."""

from __future__ import annotations

import asyncio
import logging
import socket

from ..exceptions import (
    BTConnectionError,
    BTTimeoutError,
    ProtocolError,
    WriteError,
)
from ..protocol.att import (
    ATTOpcode,
    build_enable_notifications,
    build_read_request,
    build_write_request,
    parse_error_response,
    parse_notification,
)
from ..protocol.commands import AACP_PSM, ATT_PSM
from .base import ATTSession, Link

_LOGGER = logging.getLogger(__name__)

RECEIVE_BUFFER_SIZE = 1024


class L2CAPLink(Link):
    """SOCK_SEQPACKET L2CAP connection driven by the asyncio event loop.

    A receive task reads one packet at a time and hands it to the receive
    callback synchronously before waiting for the next one.
    """

    def __init__(
            self,
            address: str,
            psm: int = AACP_PSM,
            timeout: float = 10.0,
    ):
        """Initialize L2CAP link.

        Args:
            address: Peer Bluetooth address (AA:BB:CC:DD:EE:FF)
            psm: L2CAP protocol/service multiplexer (default: AACP 0x1001)
            timeout: Connect timeout in seconds (default: 10)
        """
        super().__init__()
        self.address = address
        self.psm = psm
        self.timeout = timeout

        self._sock: socket.socket | None = None
        self._receive_task: asyncio.Task[None] | None = None

    async def _open_socket(self) -> socket.socket:
        family = getattr(socket, "AF_BLUETOOTH", None)
        proto = getattr(socket, "BTPROTO_L2CAP", None)
        if family is None or proto is None:
            raise BTConnectionError("Bluetooth sockets are not supported on this platform")

        sock = socket.socket(family, socket.SOCK_SEQPACKET, proto)
        sock.setblocking(False)
        try:
            await asyncio.get_running_loop().sock_connect(sock, (self.address, self.psm))
        except BaseException:
            sock.close()
            raise
        return sock

    async def connect(self) -> None:
        """Open the L2CAP channel and start receiving.

        Raises:
            BTConnectionError: If the socket cannot be opened
            BTTimeoutError: If connecting takes longer than ``timeout``
        """
        if self.is_connected:
            return

        _LOGGER.debug("Connecting to %s on PSM 0x%04x", self.address, self.psm)
        try:
            sock = await asyncio.wait_for(self._open_socket(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise BTTimeoutError(
                f"L2CAP connect timeout after {self.timeout}s"
            ) from e
        except BTConnectionError:
            raise
        except OSError as e:
            raise BTConnectionError(f"L2CAP connect failed: {e}") from e

        self._sock = sock
        self._receive_task = asyncio.get_running_loop().create_task(
            self._receive_loop(sock),
            name=f"l2cap-recv-{self.address}-{self.psm:#06x}",
        )
        _LOGGER.info("L2CAP connection established with %s (PSM 0x%04x)", self.address, self.psm)

    async def disconnect(self) -> None:
        """Close the socket and stop the receive task."""
        task, self._receive_task = self._receive_task, None
        sock, self._sock = self._sock, None

        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if sock is not None:
            _LOGGER.debug("Disconnecting from %s (PSM 0x%04x)", self.address, self.psm)
            try:
                sock.close()
            except OSError as e:
                _LOGGER.warning("Error during disconnect: %s", e)

    async def send(self, data: bytes) -> None:
        if self._sock is None:
            raise BTConnectionError("Not connected")
        try:
            await asyncio.get_running_loop().sock_sendall(self._sock, data)
        except OSError as e:
            raise WriteError(f"Send failed: {e}") from e
        _LOGGER.debug("Sent %d bytes: %s", len(data), data.hex())

    @property
    def is_connected(self) -> bool:
        return self._sock is not None and self._sock.fileno() != -1

    async def _receive_loop(self, sock: socket.socket) -> None:
        loop = asyncio.get_running_loop()
        error: BaseException | None = None
        try:
            while True:
                data = await loop.sock_recv(sock, RECEIVE_BUFFER_SIZE)
                if not data:
                    _LOGGER.info("Remote closed the connection")
                    break
                _LOGGER.debug("Received %d bytes: %s", len(data), data.hex())
                self._deliver(data)
        except OSError as e:
            _LOGGER.error("Read error: %s", e)
            error = e
        finally:
            if self._sock is sock:
                self._sock = None
                self._receive_task = None
                sock.close()
        self._notify_disconnected(error)


class L2CAPATTSession(ATTSession):
    """ATT bearer over an L2CAP channel (PSM 0x1F).

    ATT allows one outstanding request; reads and writes are serialized.
    """

    def __init__(
            self,
            address: str,
            timeout: float = 5.0,
            link: Link | None = None,
    ):
        """Initialize ATT session.

        Args:
            address: Peer Bluetooth address
            timeout: Request timeout in seconds (default: 5)
            link: Pre-built link (default: L2CAPLink on the ATT PSM)
        """
        super().__init__()
        self.address = address
        self.timeout = timeout
        self._link = link or L2CAPLink(address, ATT_PSM)
        self._link.set_receive_callback(self._on_pdu)
        self._link.set_disconnect_callback(self._on_link_lost)

        self._request_lock = asyncio.Lock()
        self._pending: asyncio.Future[bytes] | None = None
        self._expected: ATTOpcode | None = None
        self._confirm_tasks: set[asyncio.Task[None]] = set()

    async def connect(self) -> None:
        await self._link.connect()

    async def disconnect(self) -> None:
        await self._link.disconnect()
        self._fail_pending(BTConnectionError("Disconnected"))

    @property
    def is_connected(self) -> bool:
        return self._link.is_connected

    async def read(self, handle: int) -> bytes:
        return await self._request(build_read_request(handle), ATTOpcode.READ_RSP)

    async def write(self, handle: int, value: bytes) -> None:
        await self._request(build_write_request(handle, value), ATTOpcode.WRITE_RSP)

    async def enable_notifications(self, handle: int) -> None:
        await self._request(build_enable_notifications(handle), ATTOpcode.WRITE_RSP)
        _LOGGER.debug("Notifications enabled for handle 0x%04x", handle)

    async def _request(self, pdu: bytes, expected: ATTOpcode) -> bytes:
        async with self._request_lock:
            future: asyncio.Future[bytes] = asyncio.get_running_loop().create_future()
            self._pending = future
            self._expected = expected
            try:
                await self._link.send(pdu)
                return await asyncio.wait_for(future, timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise BTTimeoutError(
                    f"No response to ATT 0x{pdu[0]:02x} within {self.timeout}s"
                ) from e
            finally:
                self._pending = None
                self._expected = None

    def _on_pdu(self, pdu: bytes) -> None:
        opcode = pdu[0]

        if opcode in (ATTOpcode.HANDLE_VALUE_NTF, ATTOpcode.HANDLE_VALUE_IND):
            try:
                handle, frame = parse_notification(pdu)
            except ProtocolError as e:
                _LOGGER.error("Dropping notification: %s", e)
                return
            if opcode == ATTOpcode.HANDLE_VALUE_IND:
                task = asyncio.get_running_loop().create_task(self._confirm())
                self._confirm_tasks.add(task)
                task.add_done_callback(self._confirm_tasks.discard)
            self._deliver(handle, frame)
            return

        future = self._pending
        if future is None or future.done():
            _LOGGER.debug("Unsolicited ATT PDU: %s", pdu.hex())
            return

        if opcode == ATTOpcode.ERROR_RSP:
            try:
                future.set_exception(parse_error_response(pdu))
            except ProtocolError as e:
                future.set_exception(e)
        elif opcode == self._expected:
            future.set_result(pdu)
        else:
            _LOGGER.debug("Unexpected ATT PDU 0x%02x while waiting for 0x%02x", opcode, self._expected)

    async def _confirm(self) -> None:
        try:
            await self._link.send(bytes([ATTOpcode.HANDLE_VALUE_CFM]))
        except (BTConnectionError, WriteError) as e:
            _LOGGER.warning("Failed to confirm indication: %s", e)

    def _on_link_lost(self, error: BaseException | None) -> None:
        self._fail_pending(BTConnectionError(f"Link lost: {error}" if error else "Link closed"))

    def _fail_pending(self, error: Exception) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(error)
