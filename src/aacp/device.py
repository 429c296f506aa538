"""Accessibility settings session for one connected pair of earbuds."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from .coalescer import WriteCoalescer
from .dispatcher import ListenerRegistry, Subscription, SubscriptionScope
from .manager import AACPManager, EventType
from .models.control import ControlCommand
from .models.enums import OPTION_ENUMS, ControlCommandIdentifier, _OptionEnum
from .models.status import PhoneMediaEQ
from .models.transparency import TransparencySettings
from .protocol.att import (
    LOUD_SOUND_REDUCTION_HANDLE,
    decode_loud_sound_reduction,
    encode_loud_sound_reduction,
)
from .protocol.transparency import (
    TRANSPARENCY_HANDLE,
    decode_transparency_settings,
    encode_transparency_settings,
)
from .sync import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY, InitialSyncController, SyncState
from .transport.base import ATTSession

_LOGGER = logging.getLogger(__name__)

TRANSPARENCY_WRITE_DELAY = 0.1
PHONE_MEDIA_EQ_WRITE_DELAY = 0.15


class AccessibilitySettings:
    """Transparency tuning, headphone EQ and button timing for one session.

    Owns its listeners and debounce streams; ``close`` releases all of
    them. Transparency writes stay blocked until the initial read has
    completed successfully, so defaults never overwrite the device.

    Usage:
        settings = AccessibilitySettings(L2CAPATTSession(addr), aacp_manager)
        state = await settings.start()
        if state is SyncState.FAILED:
            show_unavailable()
        sub = settings.on_transparency_changed(render)
        settings.update_transparency_controls(amplification=0.3, ...)
        ...
        await settings.close()
    """

    def __init__(
            self,
            att: ATTSession,
            aacp: AACPManager | None = None,
            transparency_delay: float = TRANSPARENCY_WRITE_DELAY,
            phone_media_eq_delay: float = PHONE_MEDIA_EQ_WRITE_DELAY,
            max_attempts: int = DEFAULT_MAX_ATTEMPTS,
            retry_delay: float = DEFAULT_RETRY_DELAY,
    ):
        """Initialize settings session.

        Args:
            att: Attribute channel carrying the transparency record
            aacp: AACP session for EQ and control commands (optional)
            transparency_delay: Debounce window for transparency writes (default: 0.1s)
            phone_media_eq_delay: Debounce window for phone/media EQ writes (default: 0.15s)
            max_attempts: Initial read attempts (default: 3)
            retry_delay: Delay between initial read attempts (default: 0.2s)
        """
        self._att = att
        self._aacp = aacp
        self.sync: InitialSyncController[TransparencySettings] = InitialSyncController(
            decode_transparency_settings,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
        )

        self._scope = SubscriptionScope()
        self._transparency_writes = self._scope.own(
            WriteCoalescer(transparency_delay, name="transparency")
        )
        self._eq_writes = self._scope.own(
            WriteCoalescer(phone_media_eq_delay, name="phone-media-eq")
        )
        self._transparency_listeners: ListenerRegistry[TransparencySettings] = ListenerRegistry(
            "transparency"
        )
        self._att_subscription: Subscription[bytes] | None = None

        self._transparency: TransparencySettings | None = None
        self._phone_media_eq: PhoneMediaEQ = PhoneMediaEQ()

    async def start(self) -> SyncState:
        """Connect the attribute channel and read the current settings.

        Returns:
            SYNCED if the device state is known, FAILED otherwise
        """
        if self._aacp is not None:
            if self._aacp.eq_data is not None:
                self._phone_media_eq = self._aacp.eq_data
                _LOGGER.debug("Populated EQ from AACP session: %s", self._phone_media_eq)
            self._scope.add(
                self._aacp.register_event_listener(EventType.EQ_DATA, self._on_eq_data)
            )

        state = await self.sync.run(self._connect, self._read_transparency)
        if state is SyncState.SYNCED:
            self._set_transparency(self.sync.result)
            _LOGGER.info("Initial transparency settings: %s", self._transparency)
        else:
            _LOGGER.warning(
                "Failed to read/parse initial transparency settings after %d attempts",
                self.sync.attempts,
            )
        return state

    async def close(self) -> None:
        """Unregister listeners, drop pending writes and disconnect."""
        self._scope.close()
        if self._att_subscription is not None:
            self._att.unregister_listener(self._att_subscription)
            self._att_subscription = None
        self._transparency_listeners.clear()
        try:
            await self._att.disconnect()
        except Exception as e:
            _LOGGER.warning("Error while disconnecting attribute channel: %s", e)

    async def __aenter__(self) -> AccessibilitySettings:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _connect(self) -> None:
        await self._att.connect()
        await self._att.enable_notifications(TRANSPARENCY_HANDLE)
        if self._att_subscription is None:
            self._att_subscription = self._att.register_listener(
                TRANSPARENCY_HANDLE, self._on_transparency_frame
            )

    async def _read_transparency(self) -> bytes:
        return await self._att.read(TRANSPARENCY_HANDLE)

    @property
    def transparency(self) -> TransparencySettings | None:
        """Last settings reported by the device, or None before the first read."""
        return self._transparency

    @property
    def phone_media_eq(self) -> PhoneMediaEQ:
        return self._phone_media_eq

    @property
    def load_complete(self) -> bool:
        return self.sync.load_complete

    @property
    def load_failed(self) -> bool:
        """True when the device state could not be read; show a fallback view."""
        return self.sync.state is SyncState.FAILED

    @property
    def can_write(self) -> bool:
        return self.sync.can_write

    def on_transparency_changed(
            self,
            callback: Callable[[TransparencySettings], None],
    ) -> Subscription[TransparencySettings]:
        """Subscribe to device-reported transparency settings."""
        return self._scope.add(self._transparency_listeners.register(TRANSPARENCY_HANDLE, callback))

    def _set_transparency(self, settings: TransparencySettings | None) -> None:
        if settings is None:
            return
        self._transparency = settings
        self._transparency_listeners.dispatch(TRANSPARENCY_HANDLE, settings)

    def _on_transparency_frame(self, frame: bytes) -> None:
        settings = decode_transparency_settings(frame)
        if settings is None:
            _LOGGER.warning("Failed to parse transparency settings from notification")
            return
        _LOGGER.debug("Updated transparency settings from notification")
        self._set_transparency(settings)

    def _on_eq_data(self, eq: PhoneMediaEQ) -> None:
        self._phone_media_eq = eq

    def update_transparency(self, settings: TransparencySettings) -> bool:
        """Queue a debounced write of the full transparency record.

        Returns:
            False if the write was refused because the session is closed or
            the initial sync has not completed successfully
        """
        if self._scope.closed:
            _LOGGER.debug("Settings closed - skipping send")
            return False
        if not self.sync.load_complete:
            _LOGGER.debug("Initial device load not complete - skipping send")
            return False
        if not self.sync.can_write:
            _LOGGER.debug("Initial device read not successful - skipping send")
            return False

        payload = encode_transparency_settings(settings)

        async def write() -> None:
            _LOGGER.debug("Sending transparency settings: %s", settings)
            await self._att.write(TRANSPARENCY_HANDLE, payload)

        self._transparency_writes.submit(TRANSPARENCY_HANDLE, write)
        return True

    def update_transparency_controls(
            self,
            *,
            enabled: bool,
            amplification: float,
            balance: float,
            tone: float,
            conversation_boost: bool,
            ambient_noise_reduction: float,
            eq: Sequence[float],
    ) -> bool:
        """Queue a write built from the single-valued UI controls."""
        return self.update_transparency(
            TransparencySettings.from_controls(
                enabled=enabled,
                amplification=amplification,
                balance=balance,
                tone=tone,
                conversation_boost=conversation_boost,
                ambient_noise_reduction=ambient_noise_reduction,
                eq=list(eq),
            )
        )

    def set_phone_media_eq(self, eq: Sequence[float], phone_enabled: bool, media_enabled: bool) -> None:
        """Queue a debounced phone/media EQ write over AACP."""
        if self._scope.closed:
            _LOGGER.debug("Settings closed - skipping EQ send")
            return
        self._phone_media_eq = PhoneMediaEQ(eq=tuple(eq), phone_enabled=phone_enabled, media_enabled=media_enabled)
        aacp = self._aacp
        if aacp is None:
            _LOGGER.warning("Cannot write EQ: no AACP session")
            return
        current = self._phone_media_eq

        async def write() -> None:
            _LOGGER.debug(
                "Sending phone/media EQ (phone_enabled=%s, media_enabled=%s)",
                current.phone_enabled,
                current.media_enabled,
            )
            await aacp.send_phone_media_eq(current.eq, current.phone_enabled, current.media_enabled)

        self._eq_writes.submit("phone_media_eq", write)

    async def get_loud_sound_reduction(self) -> bool | None:
        """Read the loud sound reduction switch.

        Returns:
            Current state, or None if the device returned no value
        """
        enabled = decode_loud_sound_reduction(await self._att.read(LOUD_SOUND_REDUCTION_HANDLE))
        if enabled is None:
            _LOGGER.warning("Failed to parse loud sound reduction state")
        return enabled

    async def set_loud_sound_reduction(self, enabled: bool) -> bool:
        """Write the loud sound reduction switch immediately.

        Returns:
            False if the session is already closed
        """
        if self._scope.closed:
            _LOGGER.debug("Settings closed - skipping loud sound reduction send")
            return False
        _LOGGER.debug("Sending loud sound reduction: %s", enabled)
        await self._att.write(LOUD_SOUND_REDUCTION_HANDLE, encode_loud_sound_reduction(enabled))
        return True

    async def on_loud_sound_reduction_changed(
            self,
            callback: Callable[[bool], None],
    ) -> Subscription[bytes]:
        """Enable notifications for loud sound reduction and subscribe to them."""
        await self._att.enable_notifications(LOUD_SOUND_REDUCTION_HANDLE)

        def _on_frame(frame: bytes) -> None:
            enabled = decode_loud_sound_reduction(frame)
            if enabled is None:
                _LOGGER.warning("Failed to parse loud sound reduction notification")
                return
            callback(enabled)

        return self._scope.add(self._att.register_listener(LOUD_SOUND_REDUCTION_HANDLE, _on_frame))

    def get_option(self, identifier: ControlCommandIdentifier) -> _OptionEnum:
        """Cached option for ``identifier``, or its default before any report."""
        option_type = OPTION_ENUMS[identifier]
        status = self._aacp.get_status(identifier) if self._aacp else None
        return option_type.from_value(status.value) if status else option_type.default()

    async def set_option(self, identifier: ControlCommandIdentifier, option: _OptionEnum) -> None:
        """Send a one-byte option over AACP."""
        if self._aacp is None:
            raise RuntimeError("No AACP session - cannot send control command")
        if not isinstance(option, OPTION_ENUMS[identifier]):
            raise TypeError(f"{identifier.name} expects {OPTION_ENUMS[identifier].__name__}")
        await self._aacp.send_control_command(identifier, option.to_value())

    def on_option_changed(
            self,
            identifier: ControlCommandIdentifier,
            callback: Callable[[_OptionEnum], None],
    ) -> Subscription[ControlCommand]:
        """Subscribe to option changes for ``identifier``, decoded to its enum."""
        if self._aacp is None:
            raise RuntimeError("No AACP session - cannot listen for control commands")
        option_type = OPTION_ENUMS[identifier]

        def _on_command(command: ControlCommand) -> None:
            callback(option_type.from_value(command.value))

        return self._scope.add(
            self._aacp.register_control_command_listener(identifier, _on_command)
        )
