"""Test AccessibilitySettings against fake attribute and AACP channels."""

from __future__ import annotations

import asyncio

import pytest

from aacp.device import AccessibilitySettings
from aacp.exceptions import BTTimeoutError
from aacp.manager import AACPManager
from aacp.models.enums import ControlCommandIdentifier, ListeningMode, PressSpeed
from aacp.models.transparency import TransparencySettings
from aacp.protocol.transparency import encode_transparency_settings
from aacp.sync import SyncState
from aacp.transport.base import ATTSession, Link

HEADER = b"\x04\x00\x04\x00"


class _FakeATT(ATTSession):
    def __init__(self, reads: list):
        super().__init__()
        self._reads = reads[:]
        self.writes: list[tuple[int, bytes]] = []
        self.notifying: list[int] = []
        self.connects = 0
        self.connected = False

    async def connect(self) -> None:
        self.connects += 1
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def read(self, handle: int) -> bytes:
        outcome = self._reads.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def write(self, handle: int, value: bytes) -> None:
        self.writes.append((handle, value))

    async def enable_notifications(self, handle: int) -> None:
        self.notifying.append(handle)

    @property
    def is_connected(self) -> bool:
        return self.connected

    def notify(self, handle: int, frame: bytes) -> None:
        self._deliver(handle, frame)


class _FakeLink(Link):
    def __init__(self):
        super().__init__()
        self.sent: list[bytes] = []

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def send(self, data: bytes) -> None:
        self.sent.append(data)

    @property
    def is_connected(self) -> bool:
        return True

    def feed(self, packet: bytes) -> None:
        self._deliver(packet)


def _settings(att: _FakeATT, aacp: AACPManager | None = None) -> AccessibilitySettings:
    return AccessibilitySettings(
        att,
        aacp,
        transparency_delay=0.01,
        phone_media_eq_delay=0.01,
        retry_delay=0.0,
    )


def _controls(amplification: float) -> dict:
    return dict(
        enabled=True,
        amplification=amplification,
        balance=0.0,
        tone=0.0,
        conversation_boost=False,
        ambient_noise_reduction=0.0,
        eq=[0.0] * 8,
    )


class TestInitialSync:
    @pytest.mark.asyncio
    async def test_start_reads_device_state(self, transparency_read_response):
        att = _FakeATT([transparency_read_response])
        settings = _settings(att)
        seen = []
        settings.on_transparency_changed(seen.append)

        state = await settings.start()

        assert state is SyncState.SYNCED
        assert att.notifying == [0x18]
        assert settings.transparency.net_amplification == 0.5
        assert seen == [settings.transparency]
        assert settings.can_write
        assert not settings.load_failed

    @pytest.mark.asyncio
    async def test_retries_register_listener_once(self, transparency_read_response):
        att = _FakeATT([BTTimeoutError("timeout"), transparency_read_response])
        settings = _settings(att)

        await settings.start()

        assert settings.sync.attempts == 2
        assert att._listeners.count(0x18) == 1

    @pytest.mark.asyncio
    async def test_failed_sync_blocks_writes(self):
        att = _FakeATT([b"\x0b", b"\x0b", b"\x0b"])
        settings = _settings(att)

        state = await settings.start()

        assert state is SyncState.FAILED
        assert settings.load_failed
        assert settings.transparency is None
        assert settings.update_transparency(TransparencySettings()) is False
        await asyncio.sleep(0.03)
        assert att.writes == []

    @pytest.mark.asyncio
    async def test_writes_blocked_before_start(self):
        settings = _settings(_FakeATT([]))
        assert settings.update_transparency_controls(**_controls(0.5)) is False


class TestTransparencyWrites:
    @pytest.mark.asyncio
    async def test_rapid_edits_write_last_value_once(self, transparency_read_response):
        att = _FakeATT([transparency_read_response])
        settings = _settings(att)
        await settings.start()

        for amplification in (0.125, 0.25, 0.375):
            assert settings.update_transparency_controls(**_controls(amplification))
        await asyncio.sleep(0.05)

        expected = encode_transparency_settings(TransparencySettings.from_controls(**_controls(0.375)))
        assert att.writes == [(0x18, expected)]

    @pytest.mark.asyncio
    async def test_notification_updates_settings(self, transparency_read_response, make_transparency_frame):
        att = _FakeATT([transparency_read_response])
        settings = _settings(att)
        await settings.start()
        seen = []
        settings.on_transparency_changed(seen.append)

        att.notify(0x18, make_transparency_frame(prefix=b"\x1b", enabled=0.0))

        assert settings.transparency.enabled is False
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_short_notification_ignored(self, transparency_read_response):
        att = _FakeATT([transparency_read_response])
        settings = _settings(att)
        await settings.start()
        before = settings.transparency

        att.notify(0x18, b"\x1b\x00\x00")

        assert settings.transparency is before

    @pytest.mark.asyncio
    async def test_close_releases_everything(self, transparency_read_response):
        att = _FakeATT([transparency_read_response])
        settings = _settings(att)
        await settings.start()
        seen = []
        settings.on_transparency_changed(seen.append)
        settings.update_transparency(TransparencySettings())

        await settings.close()
        await asyncio.sleep(0.03)
        att.notify(0x18, transparency_read_response)

        assert att.writes == []
        assert seen == []
        assert att._listeners.count() == 0
        assert not att.is_connected


class TestPhoneMediaEQ:
    @pytest.mark.asyncio
    async def test_eq_writes_are_coalesced(self, transparency_read_response):
        link = _FakeLink()
        settings = _settings(_FakeATT([transparency_read_response]), AACPManager(link))
        await settings.start()

        settings.set_phone_media_eq([0.5] * 8, phone_enabled=True, media_enabled=True)
        settings.set_phone_media_eq([0.5] * 8, phone_enabled=False, media_enabled=True)
        await asyncio.sleep(0.05)

        assert len(link.sent) == 1
        assert link.sent[0][10:12] == b"\x02\x01"

    @pytest.mark.asyncio
    async def test_eq_seeded_and_updated_from_aacp(self, transparency_read_response, eq_data_packet):
        link = _FakeLink()
        aacp = AACPManager(link)
        link.feed(eq_data_packet)
        settings = _settings(_FakeATT([transparency_read_response]), aacp)

        await settings.start()
        assert settings.phone_media_eq.phone_enabled is True

        link.feed(HEADER + b"\x53\x00\x84\x00\x02\x02\x02\x01" + bytes(32) * 4)
        assert settings.phone_media_eq.phone_enabled is False
        assert settings.phone_media_eq.media_enabled is True


class TestOptions:
    @pytest.mark.asyncio
    async def test_option_defaults_then_cached_value(self):
        link = _FakeLink()
        settings = _settings(_FakeATT([]), AACPManager(link))

        assert settings.get_option(ControlCommandIdentifier.DOUBLE_CLICK_INTERVAL) is PressSpeed.DEFAULT

        link.feed(HEADER + b"\x09\x00\x17\x02\x00\x00\x00")
        assert settings.get_option(ControlCommandIdentifier.DOUBLE_CLICK_INTERVAL) is PressSpeed.SLOWEST

    @pytest.mark.asyncio
    async def test_set_option_sends_control_command(self):
        link = _FakeLink()
        settings = _settings(_FakeATT([]), AACPManager(link))

        await settings.set_option(ControlCommandIdentifier.LISTENING_MODE, ListeningMode.ADAPTIVE)

        assert link.sent == [HEADER + b"\x09\x00\x0d\x04\x00\x00\x00"]

    @pytest.mark.asyncio
    async def test_set_option_type_checked(self):
        settings = _settings(_FakeATT([]), AACPManager(_FakeLink()))

        with pytest.raises(TypeError, match="expects PressSpeed"):
            await settings.set_option(ControlCommandIdentifier.DOUBLE_CLICK_INTERVAL, ListeningMode.OFF)

    @pytest.mark.asyncio
    async def test_option_listener_decodes_enum(self):
        link = _FakeLink()
        settings = _settings(_FakeATT([]), AACPManager(link))
        seen = []
        settings.on_option_changed(ControlCommandIdentifier.LISTENING_MODE, seen.append)

        link.feed(HEADER + b"\x09\x00\x0d\x03\x00\x00\x00")
        link.feed(HEADER + b"\x09\x00\x0d\x09\x00\x00\x00")

        assert seen == [ListeningMode.TRANSPARENCY, ListeningMode.OFF]

    @pytest.mark.asyncio
    async def test_options_need_aacp_session(self):
        settings = _settings(_FakeATT([]))

        assert settings.get_option(ControlCommandIdentifier.LISTENING_MODE) is ListeningMode.OFF
        with pytest.raises(RuntimeError, match="No AACP session"):
            await settings.set_option(ControlCommandIdentifier.LISTENING_MODE, ListeningMode.OFF)


class TestClosedSession:
    @pytest.mark.asyncio
    async def test_writes_refused_after_close(self, transparency_read_response):
        link = _FakeLink()
        att = _FakeATT([transparency_read_response])
        settings = _settings(att, AACPManager(link, initialize=False))
        await settings.start()
        await settings.close()

        assert settings.update_transparency_controls(**_controls(0.25)) is False
        settings.set_phone_media_eq([0.5] * 8, phone_enabled=True, media_enabled=False)
        assert await settings.set_loud_sound_reduction(True) is False
        await asyncio.sleep(0.03)

        assert att.writes == []
        assert link.sent == []


class TestLoudSoundReduction:
    @pytest.mark.asyncio
    async def test_read_state(self):
        att = _FakeATT([b"\x0b\x01", b"\x0b\x00", b"\x0b"])
        settings = _settings(att)

        assert await settings.get_loud_sound_reduction() is True
        assert await settings.get_loud_sound_reduction() is False
        assert await settings.get_loud_sound_reduction() is None

    @pytest.mark.asyncio
    async def test_write_sends_single_byte(self):
        att = _FakeATT([])
        settings = _settings(att)

        assert await settings.set_loud_sound_reduction(True)
        assert await settings.set_loud_sound_reduction(False)

        assert att.writes == [(0x1B, b"\x01"), (0x1B, b"\x00")]

    @pytest.mark.asyncio
    async def test_notifications_delivered_until_close(self):
        att = _FakeATT([])
        settings = _settings(att)
        seen = []

        await settings.on_loud_sound_reduction_changed(seen.append)
        att.notify(0x1B, b"\x1b\x01")
        att.notify(0x1B, b"\x1b")
        att.notify(0x18, b"\x1b\x00")
        await settings.close()
        att.notify(0x1B, b"\x1b\x00")

        assert att.notifying == [0x1B]
        assert seen == [True]
