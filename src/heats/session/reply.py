import asyncio

from heats.logger import logging

logger = logging.getLogger(__name__)


class ReplySlot:
    """
    Single-use reply channel for an external (dmenu) session.

    The session owner resolves it exactly once with the selected item id, or
    None for a cancellation. Later resolutions are ignored.
    """

    _future: asyncio.Future

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        if loop is None:
            loop = asyncio.get_running_loop()
        self._future = loop.create_future()

    @property
    def resolved(self) -> bool:
        return self._future.done()

    def resolve(self, selected_id: int | None) -> bool:
        """Deliver the reply. Returns False if the slot was already resolved."""
        if self._future.done():
            logger.debug("Reply slot already resolved, dropping %r", selected_id)
            return False
        self._future.set_result(selected_id)
        return True

    def cancel(self) -> bool:
        return self.resolve(None)

    async def wait(self) -> int | None:
        return await asyncio.shield(self._future)
