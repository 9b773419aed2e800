"""Generation-tagged debouncing of evaluator runs."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from heats.logger import logging

logger = logging.getLogger(__name__)

DEBOUNCE_DELAY = 0.1  # seconds of quiescence before evaluators run

T = TypeVar("T")


class EvaluatorDebouncer(Generic[T]):
    """
    Tags each query change with a generation and accepts only the latest.

    Superseded runs are not cancelled: a run that is still waiting out the
    quiescence delay is skipped, and a run that already started may finish,
    but its result is rejected by ``is_current``.
    """

    delay: float
    _generation: int

    def __init__(self, delay: float = DEBOUNCE_DELAY):
        self.delay = delay
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def invalidate(self):
        """Make every outstanding generation stale. The counter never goes backwards."""
        self._generation += 1

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def run(
        self, generation: int, job: Callable[[], Awaitable[T]]
    ) -> T | None:
        """
        Wait for the quiescence delay, then run ``job`` if ``generation`` is still current.

        Returns None when the run was superseded before it started.
        """
        await asyncio.sleep(self.delay)
        if not self.is_current(generation):
            logger.debug("Skipping superseded evaluator run (gen %d)", generation)
            return None
        return await job()
