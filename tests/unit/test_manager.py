"""Test AACP session handling against a fake link."""

from __future__ import annotations

import pytest

from aacp.exceptions import BTConnectionError
from aacp.manager import AACPManager, Change, EventType
from aacp.models.enums import (
    BatteryComponent,
    ControlCommandIdentifier,
    EarDetectionStatus,
    ListeningMode,
)
from aacp.protocol.commands import (
    build_add_tipi_device_packet,
    build_handshake_packet,
    build_hijack_request_packet,
    build_hijack_reversed_packet,
    build_media_information_new_device_packet,
    build_media_information_packet,
    build_request_notifications_packet,
    build_set_feature_flags_packet,
    build_smart_routing_show_ui_packet,
)
from aacp.transport.base import Link

HEADER = b"\x04\x00\x04\x00"


class _FakeLink(Link):
    def __init__(self, connected: bool = False):
        super().__init__()
        self.connected = connected
        self.sent: list[bytes] = []

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def send(self, data: bytes) -> None:
        self.sent.append(data)

    @property
    def is_connected(self) -> bool:
        return self.connected

    def feed(self, packet: bytes) -> None:
        self._deliver(packet)

    def drop(self, error: BaseException | None = None) -> None:
        self.connected = False
        self._notify_disconnected(error)


def _control(identifier: int, value: bytes) -> bytes:
    return HEADER + b"\x09\x00" + bytes([identifier]) + value.ljust(4, b"\x00")


@pytest.mark.asyncio
async def test_connect_sends_setup_packets():
    link = _FakeLink()
    manager = AACPManager(link)

    await manager.connect()

    assert link.sent == [
        build_handshake_packet(),
        build_set_feature_flags_packet(),
        build_request_notifications_packet(),
    ]


@pytest.mark.asyncio
async def test_connect_without_initialize():
    link = _FakeLink()
    await AACPManager(link, initialize=False).connect()
    assert link.sent == []


@pytest.mark.asyncio
async def test_send_requires_connection():
    manager = AACPManager(_FakeLink())
    with pytest.raises(BTConnectionError):
        await manager.send_control_command(ControlCommandIdentifier.LISTENING_MODE, b"\x02")


@pytest.mark.asyncio
async def test_send_control_command():
    link = _FakeLink(connected=True)
    manager = AACPManager(link)

    await manager.send_control_command(
        ControlCommandIdentifier.LISTENING_MODE, ListeningMode.TRANSPARENCY.to_value()
    )

    assert link.sent == [_control(0x0D, b"\x03")]


def test_cache_updated_before_listeners_run(listening_mode_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    seen = []

    def on_mode(command):
        seen.append((command.value, manager.get_status(ControlCommandIdentifier.LISTENING_MODE)))

    manager.register_control_command_listener(ControlCommandIdentifier.LISTENING_MODE, on_mode)
    link.feed(listening_mode_packet)

    assert len(seen) == 1
    value, cached = seen[0]
    assert value == b"\x03"
    assert cached.value == b"\x03"


def test_cache_updated_without_listeners(listening_mode_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)

    link.feed(listening_mode_packet)
    link.feed(_control(0x0D, b"\x01"))

    assert manager.get_status(0x0D).value == b"\x01"
    assert len(manager.control_command_statuses) == 1


def test_unknown_identifier_cached_with_warning(caplog):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    seen = []
    manager.register_control_command_listener(0x7F, seen.append)

    link.feed(_control(0x7F, b"\x01"))

    assert manager.get_status(0x7F).value == b"\x01"
    assert len(seen) == 1
    assert "Unknown control command identifier" in caplog.text


def test_listener_only_receives_its_identifier(listening_mode_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    seen = []
    manager.register_control_command_listener(ControlCommandIdentifier.DOUBLE_CLICK_INTERVAL, seen.append)

    link.feed(listening_mode_packet)

    assert seen == []


def test_listener_unregistering_itself_during_delivery(listening_mode_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    calls = []

    def once(command):
        calls.append("once")
        manager.unregister_control_command_listener(sub)

    sub = manager.register_control_command_listener(0x0D, once)
    manager.register_control_command_listener(0x0D, lambda c: calls.append("always"))

    link.feed(listening_mode_packet)
    link.feed(listening_mode_packet)

    assert calls == ["once", "always", "always"]


def test_owns_connection_flag():
    link = _FakeLink(connected=True)
    manager = AACPManager(link)

    link.feed(_control(ControlCommandIdentifier.OWNS_CONNECTION, b"\x01"))
    assert manager.owns_connection

    link.feed(_control(ControlCommandIdentifier.OWNS_CONNECTION, b"\x00"))
    assert not manager.owns_connection


def test_battery_event(battery_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    events = []
    manager.register_event_listener(EventType.BATTERY_INFO, events.append)

    link.feed(battery_packet)

    assert len(events) == 1
    assert [b.component for b in manager.battery_info] == [
        BatteryComponent.RIGHT,
        BatteryComponent.LEFT,
        BatteryComponent.CASE,
    ]


def test_ear_detection_change_reports_previous(ear_detection_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    changes: list[Change] = []
    manager.register_event_listener(EventType.EAR_DETECTION, changes.append)

    link.feed(ear_detection_packet)
    link.feed(HEADER + b"\x06\x00\x01\x01")

    assert changes[0].previous is None
    assert changes[1].previous.primary is EarDetectionStatus.IN_EAR
    assert changes[1].current.primary is EarDetectionStatus.OUT_OF_EAR


def test_eq_data_cached(eq_data_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)

    link.feed(eq_data_packet)

    assert manager.eq_data.phone_enabled is True
    assert manager.eq_data.media_enabled is False


def test_malformed_and_unknown_packets_ignored():
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    events = []
    manager.register_event_listener(EventType.CONTROL_COMMAND, events.append)

    link.feed(b"\x01\x02")
    link.feed(HEADER + b"\x09\x00\x0d")
    link.feed(HEADER + b"\xee\x00\x01")

    assert events == []
    assert manager.control_command_statuses == []


def test_link_loss_clears_session_state(listening_mode_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    lost = []
    manager.register_event_listener(EventType.DISCONNECTED, lost.append)
    link.feed(listening_mode_packet)
    link.feed(_control(ControlCommandIdentifier.OWNS_CONNECTION, b"\x01"))

    error = OSError("reset")
    link.drop(error)

    assert lost == [error]
    assert manager.control_command_statuses == []
    assert not manager.owns_connection


def test_ownership_to_false_request_event():
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    events = []
    manager.register_event_listener(EventType.OWNERSHIP_TO_FALSE_REQUEST, events.append)

    link.feed(HEADER + b"\x11\x00" + b"SetOwnershipToFalse")

    assert events == [None]


@pytest.mark.asyncio
async def test_send_rename_and_eq():
    link = _FakeLink(connected=True)
    manager = AACPManager(link)

    await manager.send_rename("Pods")
    await manager.send_phone_media_eq([0.5] * 8, phone_enabled=False, media_enabled=True)

    assert link.sent[0] == HEADER + b"\x1e\x00\x04\x00Pods"
    assert link.sent[1][10:12] == b"\x02\x01"


def test_late_listener_receives_cached_status(listening_mode_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    link.feed(listening_mode_packet)
    seen = []

    manager.register_control_command_listener(ControlCommandIdentifier.LISTENING_MODE, seen.append)
    link.feed(_control(0x0D, b"\x02"))

    assert [command.value for command in seen] == [b"\x03", b"\x02"]


def test_listener_without_cached_status_gets_nothing_on_register():
    manager = AACPManager(_FakeLink(connected=True))
    seen = []

    manager.register_control_command_listener(ControlCommandIdentifier.LISTENING_MODE, seen.append)

    assert seen == []


def test_listener_replay_disabled(listening_mode_packet):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    link.feed(listening_mode_packet)
    seen = []

    manager.register_control_command_listener(
        ControlCommandIdentifier.LISTENING_MODE, seen.append, replay=False
    )

    assert seen == []


def test_replay_error_does_not_block_registration(listening_mode_packet, caplog):
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    link.feed(listening_mode_packet)
    calls = []

    def flaky(command):
        calls.append(command.value)
        if len(calls) == 1:
            raise ValueError("boom")

    sub = manager.register_control_command_listener(0x0D, flaky)
    link.feed(listening_mode_packet)

    assert sub.active
    assert calls == [b"\x03", b"\x03"]
    assert "raised on replay" in caplog.text


@pytest.mark.asyncio
async def test_smart_routing_senders():
    link = _FakeLink(connected=True)
    manager = AACPManager(link)
    me, other = "11:22:33:44:55:66", "AA:BB:CC:DD:EE:FF"

    await manager.send_media_information_new_device(me, other)
    await manager.send_media_information(me, other, streaming=True)
    await manager.send_hijack_request(other)
    await manager.send_hijack_reversed(other)
    await manager.send_smart_routing_show_ui(other)
    await manager.send_add_tipi_device(me, other)

    assert link.sent == [
        build_media_information_new_device_packet(me, other),
        build_media_information_packet(me, other, True),
        build_hijack_request_packet(other),
        build_hijack_reversed_packet(other),
        build_smart_routing_show_ui_packet(other),
        build_add_tipi_device_packet(me, other),
    ]


@pytest.mark.asyncio
async def test_smart_routing_requires_connection():
    manager = AACPManager(_FakeLink())
    with pytest.raises(BTConnectionError):
        await manager.send_hijack_request("AA:BB:CC:DD:EE:FF")
