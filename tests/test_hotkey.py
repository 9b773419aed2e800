"""Tests for the activation bridge."""

import asyncio
import threading

from heats.hotkey import HotkeyBridge, QueueActivationSource
from tests.helpers import wait_until


class TestHotkeyBridge:
    def test_delivers_activations_from_other_threads(self) -> None:
        delivered: list[str] = []

        async def main():
            source = QueueActivationSource()
            bridge = HotkeyBridge(source, delivered.append, interval=0.01)
            task = asyncio.create_task(bridge.run())
            thread = threading.Thread(
                target=lambda: [source.activate(m) for m in ("launcher", "windows")]
            )
            thread.start()
            thread.join()
            try:
                await wait_until(lambda: len(delivered) == 2)
            finally:
                task.cancel()

        asyncio.run(main())
        assert delivered == ["launcher", "windows"]

    def test_poll_empty(self) -> None:
        assert QueueActivationSource().poll() is None
