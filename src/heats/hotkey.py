"""Bridge from an OS activation source (hotkeys) into the coordinator.

Hotkey registration itself is platform code. It runs on its own thread and
pushes mode names into an ActivationSource, which the bridge polls.
"""

import asyncio
import queue
from collections.abc import Callable
from typing import Protocol

from heats.logger import logging

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05  # seconds


class ActivationSource(Protocol):
    def poll(self) -> str | None:
        """Return the next activated mode name without blocking, or None."""
        ...


class QueueActivationSource:
    """Thread-safe activation source that platform integrations push into."""

    _queue: queue.SimpleQueue[str]

    def __init__(self):
        self._queue = queue.SimpleQueue()

    def activate(self, mode_name: str):
        self._queue.put(mode_name)

    def poll(self) -> str | None:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None


class HotkeyBridge:
    source: ActivationSource
    deliver: Callable[[str], None]
    interval: float

    def __init__(
        self,
        source: ActivationSource,
        deliver: Callable[[str], None],
        interval: float = POLL_INTERVAL,
    ):
        self.source = source
        self.deliver = deliver
        self.interval = interval

    async def run(self):
        while True:
            while (mode_name := self.source.poll()) is not None:
                logger.debug("Activation: mode '%s'", mode_name)
                self.deliver(mode_name)
            await asyncio.sleep(self.interval)
