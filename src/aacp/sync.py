"""Initial read-after-connect with a bounded retry budget."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Generic, TypeVar

from .exceptions import AACPError

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 0.2


class SyncState(Enum):
    """Progress of the initial sync."""

    NOT_STARTED = "not_started"
    CONNECTING = "connecting"
    READING = "reading"
    SYNCED = "synced"
    FAILED = "failed"


class InitialSyncController(Generic[T]):
    """Establish ground truth from the device before writes are allowed.

    ``run`` connects, then reads and decodes up to ``max_attempts`` times
    with a fixed delay between attempts. The first successful decode moves
    to SYNCED and freezes the attempt counter; running out of attempts
    moves to FAILED. ``load_complete`` is set when the sequence ends either
    way, and ``can_write`` needs both.

    Connection failures use the same attempt budget as failed reads.
    """

    def __init__(
            self,
            decode: Callable[[bytes], T | None],
            max_attempts: int = DEFAULT_MAX_ATTEMPTS,
            retry_delay: float = DEFAULT_RETRY_DELAY,
    ):
        """Initialize sync controller.

        Args:
            decode: Turns a raw read into a value, or None if unusable
            max_attempts: Read attempts before giving up (default: 3)
            retry_delay: Seconds between attempts (default: 0.2)
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._decode = decode
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

        self._state = SyncState.NOT_STARTED
        self._attempts = 0
        self._load_complete = False
        self._result: T | None = None
        self._listeners: list[Callable[[SyncState], None]] = []

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def load_complete(self) -> bool:
        return self._load_complete

    @property
    def result(self) -> T | None:
        """Value from the successful read, if SYNCED."""
        return self._result

    @property
    def can_write(self) -> bool:
        """Outbound writes are allowed only after a completed, successful sync."""
        return self._load_complete and self._state is SyncState.SYNCED

    def add_state_listener(self, callback: Callable[[SyncState], None]) -> Callable[[], None]:
        """Call ``callback`` on every state change. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_state(self, state: SyncState) -> None:
        if state is self._state:
            return
        _LOGGER.debug("Initial sync: %s -> %s", self._state.value, state.value)
        self._state = state
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception:
                _LOGGER.exception("Sync state listener raised")

    async def run(
            self,
            connect: Callable[[], Awaitable[None]],
            read: Callable[[], Awaitable[bytes]],
    ) -> SyncState:
        """Run the sync sequence once.

        Args:
            connect: Opens the link; may raise BTConnectionError/BTTimeoutError
            read: Reads the raw record; may raise on timeout or reset

        Returns:
            Final state, SYNCED or FAILED
        """
        if self._state is not SyncState.NOT_STARTED:
            raise RuntimeError(f"Initial sync already ran (state={self._state.value})")

        try:
            connected = await self._connect(connect)
            if connected:
                await self._read(read)
            if self._state is not SyncState.SYNCED:
                self._load_complete = True
                self._set_state(SyncState.FAILED)
                _LOGGER.info("Initial sync failed after %d attempts", self._attempts)
        finally:
            self._load_complete = True

        return self._state

    async def _connect(self, connect: Callable[[], Awaitable[None]]) -> bool:
        self._set_state(SyncState.CONNECTING)
        while True:
            try:
                await connect()
                return True
            except (AACPError, OSError) as e:
                self._attempts += 1
                _LOGGER.warning("Connect attempt %d failed: %s", self._attempts, e)
                if self._attempts >= self.max_attempts:
                    return False
                await asyncio.sleep(self.retry_delay)

    async def _read(self, read: Callable[[], Awaitable[bytes]]) -> None:
        self._set_state(SyncState.READING)
        while self._attempts < self.max_attempts:
            self._attempts += 1
            try:
                value = self._decode(await read())
            except (AACPError, OSError) as e:
                _LOGGER.warning("Read attempt %d failed: %s", self._attempts, e)
            else:
                if value is not None:
                    _LOGGER.debug("Parsed initial value on attempt %d", self._attempts)
                    self._result = value
                    # Terminal state listeners must already see can_write
                    self._load_complete = True
                    self._set_state(SyncState.SYNCED)
                    return
                _LOGGER.debug("Parsing returned nothing on attempt %d", self._attempts)
            if self._attempts < self.max_attempts:
                await asyncio.sleep(self.retry_delay)
