"""Debounced writes: one outbound write per burst of local edits."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable

from .exceptions import AACPError

_LOGGER = logging.getLogger(__name__)

WriteFn = Callable[[], Awaitable[None]]


class _Job:
    """One scheduled write; ``fired`` flips once the quiet period is over."""

    def __init__(self, coalescer: WriteCoalescer, stream: Hashable, write: WriteFn):
        self.fired = False
        self.task: asyncio.Task[None] = asyncio.get_running_loop().create_task(
            coalescer._run(stream, self, write),
            name=f"{coalescer.name}:{stream}",
        )


class WriteCoalescer:
    """Collapse rapid edits into a single write after a quiet period.

    Each ``submit`` on a stream cancels that stream's pending job if it has
    not fired yet and schedules a new one ``delay`` seconds out. A job whose
    write is already running is left alone; the newer job still runs after
    it. Write failures are logged and dropped: the next edit tries again.

    Must be used from a running event loop.
    """

    def __init__(self, delay: float = 0.1, name: str = "coalescer"):
        """Initialize coalescer.

        Args:
            delay: Quiet period in seconds before a write fires (default: 0.1)
            name: Label used in log messages
        """
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay
        self.name = name
        self._jobs: dict[Hashable, _Job] = {}
        self._running: set[asyncio.Task[None]] = set()

    def submit(self, stream: Hashable, write: WriteFn) -> None:
        """Schedule ``write`` for ``stream``, superseding any pending write."""
        self.cancel(stream)

        self._jobs[stream] = _Job(self, stream, write)

    def pending(self, stream: Hashable) -> bool:
        """True if a write for ``stream`` is scheduled but has not fired."""
        job = self._jobs.get(stream)
        return job is not None and not job.fired and not job.task.done()

    def cancel(self, stream: Hashable) -> bool:
        """Cancel the pending write for ``stream``, if it has not fired.

        Returns:
            True if a pending write was cancelled
        """
        job = self._jobs.get(stream)
        if job is None or job.fired or job.task.done():
            return False
        job.task.cancel()
        del self._jobs[stream]
        _LOGGER.debug("%s: superseded pending write on %r", self.name, stream)
        return True

    def cancel_all(self) -> None:
        """Cancel every pending write (writes already running finish)."""
        for stream in list(self._jobs):
            self.cancel(stream)

    async def flush(self) -> None:
        """Wait for every scheduled and running write to finish."""
        tasks = {job.task for job in self._jobs.values()} | self._running
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, stream: Hashable, job: _Job, write: WriteFn) -> None:
        await asyncio.sleep(self.delay)

        job.fired = True
        if self._jobs.get(stream) is job:
            del self._jobs[stream]
        self._running.add(job.task)
        try:
            await write()
        except (AACPError, OSError) as e:
            _LOGGER.warning("%s: write on %r failed: %s", self.name, stream, e)
        finally:
            self._running.discard(job.task)
