"""AACP session: control commands, status cache and device events."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .dispatcher import ListenerRegistry, Subscription
from .exceptions import BTConnectionError
from .models.control import ControlCommand
from .models.enums import ControlCommandIdentifier, ProximityKeyType, get_identifier
from .models.status import (
    AudioSource,
    BatteryInfo,
    ConnectedDevice,
    DeviceInformation,
    EarDetection,
    PhoneMediaEQ,
)
from .protocol import responses
from .protocol.commands import (
    Opcode,
    build_add_tipi_device_packet,
    build_control_command_packet,
    build_handshake_packet,
    build_hijack_request_packet,
    build_hijack_reversed_packet,
    build_media_information_new_device_packet,
    build_media_information_packet,
    build_phone_media_eq_packet,
    build_proximity_keys_request,
    build_rename_packet,
    build_request_notifications_packet,
    build_set_feature_flags_packet,
    build_smart_routing_show_ui_packet,
)
from .transport.base import Link

_LOGGER = logging.getLogger(__name__)


class EventType(Enum):
    """Topics for non-control-command device events."""

    BATTERY_INFO = "battery_info"
    CONTROL_COMMAND = "control_command"
    EAR_DETECTION = "ear_detection"
    CONVERSATION_AWARENESS = "conversation_awareness"
    INFORMATION = "information"
    PROXIMITY_KEYS = "proximity_keys"
    AUDIO_SOURCE = "audio_source"
    CONNECTED_DEVICES = "connected_devices"
    OWNERSHIP_TO_FALSE_REQUEST = "ownership_to_false_request"
    STEM_PRESS = "stem_press"
    EQ_DATA = "eq_data"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class Change:
    """Previous and current value, for events that report transitions."""

    previous: Any
    current: Any


class AACPManager:
    """Accessory configuration protocol session over a ``Link``.

    Incoming control commands always update the status cache before
    identifier listeners are called. Other packets update their cached
    value and are published as events.

    Usage:
        async with AACPManager(L2CAPLink(address)) as aacp:
            sub = aacp.register_control_command_listener(
                ControlCommandIdentifier.LISTENING_MODE, on_mode)
            await aacp.send_control_command(
                ControlCommandIdentifier.LISTENING_MODE, ListeningMode.TRANSPARENCY.to_value())
            ...
            aacp.unregister_control_command_listener(sub)
    """

    def __init__(self, link: Link, initialize: bool = True):
        """Initialize AACP manager.

        Args:
            link: Packet link to the accessory (AACP PSM)
            initialize: Send handshake, feature flags and notification
                request after connecting (default: True)
        """
        self._link = link
        self._initialize = initialize
        self._link.set_receive_callback(self.receive_packet)
        self._link.set_disconnect_callback(self._on_link_lost)

        self._control_listeners: ListenerRegistry[ControlCommand] = ListenerRegistry("control")
        self._events: ListenerRegistry[Any] = ListenerRegistry("events")

        self._statuses: dict[int, ControlCommand] = {}
        self.owns_connection = False
        self.battery_info: list[BatteryInfo] = []
        self.ear_detection: EarDetection | None = None
        self.conversation_awareness: int = 0
        self.information: DeviceInformation | None = None
        self.audio_source: AudioSource | None = None
        self.connected_devices: list[ConnectedDevice] = []
        self.eq_data: PhoneMediaEQ | None = None

    async def __aenter__(self) -> AACPManager:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self._link.is_connected

    async def connect(self) -> None:
        """Open the link and run the session setup packets.

        Raises:
            BTConnectionError: If the link cannot be opened
            BTTimeoutError: If connecting times out
        """
        await self._link.connect()
        if self._initialize:
            await self.send_handshake()
            await self.send_set_feature_flags()
            await self.send_notification_request()

    async def disconnect(self) -> None:
        await self._link.disconnect()
        self._reset_session_state()

    @property
    def control_command_statuses(self) -> list[ControlCommand]:
        """Snapshot of every cached control command."""
        return list(self._statuses.values())

    def get_status(self, identifier: int) -> ControlCommand | None:
        """Last value reported for ``identifier``, if any."""
        return self._statuses.get(int(identifier))

    def _reset_session_state(self) -> None:
        self.owns_connection = False
        self.connected_devices = []
        self._statuses.clear()

    def _on_link_lost(self, error: BaseException | None) -> None:
        _LOGGER.debug("Link lost, clearing session state")
        self._reset_session_state()
        self._events.dispatch(EventType.DISCONNECTED, error)

    def register_control_command_listener(
            self,
            identifier: int,
            callback: Callable[[ControlCommand], None],
            replay: bool = True,
    ) -> Subscription[ControlCommand]:
        """Subscribe to control commands for one identifier.

        Args:
            identifier: Control command identifier to follow
            callback: Called with each status report
            replay: Call ``callback`` right away with the cached status, if
                one has been received (default: True)
        """
        subscription = self._control_listeners.register(int(identifier), callback)
        cached = self._statuses.get(int(identifier))
        if replay and cached is not None:
            try:
                callback(cached)
            except Exception:
                _LOGGER.exception("Control listener raised on replay of 0x%02x", int(identifier))
        return subscription

    def unregister_control_command_listener(self, subscription: Subscription[ControlCommand]) -> None:
        self._control_listeners.unregister(subscription)

    def register_event_listener(self, event: EventType, callback: Callable[[Any], None]) -> Subscription[Any]:
        """Subscribe to a device event topic."""
        return self._events.register(event, callback)

    def unregister_event_listener(self, subscription: Subscription[Any]) -> None:
        self._events.unregister(subscription)

    async def _send(self, packet: bytes) -> None:
        if not self._link.is_connected:
            raise BTConnectionError("AACP link not connected")
        await self._link.send(packet)

    async def send_handshake(self) -> None:
        await self._send(build_handshake_packet())

    async def send_set_feature_flags(self, flags: int = 0xFF) -> None:
        await self._send(build_set_feature_flags_packet(flags))

    async def send_notification_request(self) -> None:
        await self._send(build_request_notifications_packet())

    async def send_control_command(self, identifier: int, value: bytes | int) -> None:
        """Send a control command.

        Fire-and-forget: the accessory acknowledges by echoing the command
        as a notification, which updates the status cache.
        """
        packet = build_control_command_packet(int(identifier), value)
        _LOGGER.debug("Sending control command 0x%02x: %s", int(identifier), packet.hex())
        await self._send(packet)

    async def send_rename(self, name: str) -> None:
        await self._send(build_rename_packet(name))

    async def send_proximity_keys_request(
            self,
            key_types: Iterable[ProximityKeyType] = (ProximityKeyType.IRK, ProximityKeyType.ENC_KEY),
    ) -> None:
        await self._send(build_proximity_keys_request(key_types))

    async def send_phone_media_eq(self, eq: Sequence[float], phone_enabled: bool, media_enabled: bool) -> None:
        """Send the headphone accommodation EQ and its phone/media toggles."""
        await self._send(build_phone_media_eq_packet(eq, phone_enabled, media_enabled))

    async def send_media_information_new_device(self, self_address: str, target_address: str) -> None:
        await self._send(build_media_information_new_device_packet(self_address, target_address))

    async def send_media_information(self, self_address: str, target_address: str, streaming: bool) -> None:
        """Tell the accessory whether this host is streaming audio."""
        await self._send(build_media_information_packet(self_address, target_address, streaming))

    async def send_hijack_request(self, target_address: str) -> None:
        """Request audio routing ownership from the device at ``target_address``."""
        await self._send(build_hijack_request_packet(target_address))

    async def send_hijack_reversed(self, target_address: str) -> None:
        await self._send(build_hijack_reversed_packet(target_address))

    async def send_smart_routing_show_ui(self, target_address: str) -> None:
        await self._send(build_smart_routing_show_ui_packet(target_address))

    async def send_add_tipi_device(self, self_address: str, target_address: str) -> None:
        await self._send(build_add_tipi_device_packet(self_address, target_address))

    def receive_packet(self, packet: bytes) -> None:
        """Decode one packet from the link and fan it out."""
        split = responses.split_packet(packet)
        if split is None:
            return
        opcode, payload = split

        handler = self._HANDLERS.get(opcode)
        if handler is None:
            _LOGGER.debug("Received unknown packet with opcode 0x%02x", opcode)
            return
        handler(self, payload)

    def _handle_control_command(self, payload: bytes) -> None:
        command = responses.parse_control_command(payload)
        if command is None:
            return

        self._statuses[command.identifier] = command

        identifier = get_identifier(command.identifier)
        if identifier is None:
            _LOGGER.warning("Unknown control command identifier: 0x%02x", command.identifier)
        elif identifier is ControlCommandIdentifier.OWNS_CONNECTION:
            self.owns_connection = command.value[0] != 0

        _LOGGER.info(
            "Received control command %s: %s",
            identifier.label if identifier else f"0x{command.identifier:02x}",
            command.value.hex(),
        )
        self._control_listeners.dispatch(command.identifier, command)
        self._events.dispatch(EventType.CONTROL_COMMAND, command)

    def _handle_battery_info(self, payload: bytes) -> None:
        batteries = responses.parse_battery_info(payload)
        if batteries is None:
            return
        self.battery_info = batteries
        _LOGGER.info("Received battery info: %s", batteries)
        self._events.dispatch(EventType.BATTERY_INFO, batteries)

    def _handle_ear_detection(self, payload: bytes) -> None:
        detection = responses.parse_ear_detection(payload)
        if detection is None:
            return
        previous, self.ear_detection = self.ear_detection, detection
        _LOGGER.info("Received ear detection: %s", detection)
        self._events.dispatch(EventType.EAR_DETECTION, Change(previous, detection))

    def _handle_conversation_awareness(self, payload: bytes) -> None:
        level = responses.parse_conversation_awareness(payload)
        if level is None:
            return
        self.conversation_awareness = level
        _LOGGER.info("Received conversation awareness: %d", level)
        self._events.dispatch(EventType.CONVERSATION_AWARENESS, level)

    def _handle_information(self, payload: bytes) -> None:
        info = responses.parse_information(payload)
        if info is None:
            return
        self.information = info
        _LOGGER.info("Received information: %s", info)
        self._events.dispatch(EventType.INFORMATION, info)

    def _handle_proximity_keys(self, payload: bytes) -> None:
        keys = responses.parse_proximity_keys(payload)
        if keys is None:
            return
        _LOGGER.info("Received %d proximity keys", len(keys))
        self._events.dispatch(EventType.PROXIMITY_KEYS, keys)

    def _handle_audio_source(self, payload: bytes) -> None:
        source = responses.parse_audio_source(payload)
        if source is None:
            return
        self.audio_source = source
        _LOGGER.info("Received audio source: %s", source)
        self._events.dispatch(EventType.AUDIO_SOURCE, source)

    def _handle_connected_devices(self, payload: bytes) -> None:
        devices = responses.parse_connected_devices(payload)
        if devices is None:
            return
        previous, self.connected_devices = self.connected_devices, devices
        _LOGGER.info("Received connected devices: %s", devices)
        self._events.dispatch(EventType.CONNECTED_DEVICES, Change(previous, devices))

    def _handle_smart_routing(self, payload: bytes) -> None:
        _LOGGER.info("Received smart routing response: %s", responses.parse_smart_routing_response(payload))
        if responses.is_ownership_to_false_request(payload):
            _LOGGER.info("Received OwnershipToFalse request")
            self._events.dispatch(EventType.OWNERSHIP_TO_FALSE_REQUEST, None)

    def _handle_stem_press(self, payload: bytes) -> None:
        press = responses.parse_stem_press(payload)
        if press is None:
            return
        _LOGGER.info("Received stem press: %s", press)
        self._events.dispatch(EventType.STEM_PRESS, press)

    def _handle_eq_data(self, payload: bytes) -> None:
        eq = responses.parse_eq_data(payload)
        if eq is None:
            return
        self.eq_data = eq
        _LOGGER.debug("Received EQ data: %s", eq)
        self._events.dispatch(EventType.EQ_DATA, eq)

    _HANDLERS: dict[int, Callable[[AACPManager, bytes], None]] = {
        Opcode.CONTROL_COMMAND: _handle_control_command,
        Opcode.BATTERY_INFO: _handle_battery_info,
        Opcode.EAR_DETECTION: _handle_ear_detection,
        Opcode.CONVERSATION_AWARENESS: _handle_conversation_awareness,
        Opcode.INFORMATION: _handle_information,
        Opcode.PROXIMITY_KEYS_RSP: _handle_proximity_keys,
        Opcode.AUDIO_SOURCE: _handle_audio_source,
        Opcode.CONNECTED_DEVICES: _handle_connected_devices,
        Opcode.SMART_ROUTING_RESP: _handle_smart_routing,
        Opcode.STEM_PRESS: _handle_stem_press,
        Opcode.EQ_DATA: _handle_eq_data,
    }
