"""BLE GATT attribute session."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BTConnectionError, BTTimeoutError, WriteError
from ..protocol.att import ATTOpcode
from .base import ATTSession

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


class BleakATTSession(ATTSession):
    """Attribute session over BLE GATT for accessories exposing it on LE.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Characteristics addressed by handle, same as the L2CAP bearer
    - Read results and notifications framed with an ATT opcode byte
    """

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        """Initialize BLE attribute session.

        Args:
            mac_address: Device MAC address
            ble_device: Optional BLEDevice from a prior scan
            timeout: Connection and request timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        super().__init__()
        self.mac_address = mac_address
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None
        self._notifying: set[int] = set()

    async def connect(self) -> None:
        """Establish BLE connection to device.

        Raises:
            BTConnectionError: If connection fails
            BTTimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.mac_address,
                self.max_attempts
            )

            if self.ble_device:
                device = self.ble_device
            else:
                device = await BleakScanner.find_device_by_address(
                    self.mac_address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BTConnectionError(
                        f"Device {self.mac_address} not found during scan"
                    )

            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or self.mac_address,
                disconnected_callback=self._on_disconnected,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.info("Connected to %s", self.mac_address)

        except asyncio.TimeoutError as e:
            raise BTTimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except BTConnectionError:
            raise
        except Exception as e:
            raise BTConnectionError(
                f"Failed to connect: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Disconnect from device."""
        client, self._client = self._client, None
        self._notifying.clear()
        if client and client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.mac_address)
                await client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)

    def _on_disconnected(self, client: BleakClient) -> None:
        _LOGGER.info("Device %s disconnected", self.mac_address)
        self._notifying.clear()

    def _require_client(self) -> BleakClient:
        if not self._client or not self._client.is_connected:
            raise BTConnectionError("Not connected")
        return self._client

    async def read(self, handle: int) -> bytes:
        """Read a characteristic by handle, framed as an ATT read response."""
        client = self._require_client()
        try:
            value = await asyncio.wait_for(
                client.read_gatt_char(handle),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise BTTimeoutError(
                f"No response reading 0x{handle:04x} within {self.timeout}s"
            ) from e
        except BleakError as e:
            raise BTConnectionError(f"Read failed: {e}") from e

        return bytes([ATTOpcode.READ_RSP]) + bytes(value)

    async def write(self, handle: int, value: bytes) -> None:
        """Write a characteristic by handle and wait for confirmation."""
        client = self._require_client()
        try:
            await asyncio.wait_for(
                client.write_gatt_char(handle, value, response=True),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise BTTimeoutError(
                f"Write to 0x{handle:04x} not acknowledged within {self.timeout}s"
            ) from e
        except BleakError as e:
            raise WriteError(f"Write failed: {e}") from e

    async def enable_notifications(self, handle: int) -> None:
        """Start notifications for a characteristic handle."""
        client = self._require_client()
        if handle in self._notifying:
            return

        def _callback(sender: BleakGATTCharacteristic, data: bytearray) -> None:
            self._deliver(handle, bytes([ATTOpcode.HANDLE_VALUE_NTF]) + bytes(data))

        try:
            await client.start_notify(handle, _callback)
        except BleakError as e:
            raise BTConnectionError(f"Failed to enable notifications: {e}") from e

        self._notifying.add(handle)
        _LOGGER.debug("Notifications started for handle 0x%04x", handle)

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected
