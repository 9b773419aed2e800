"""Line reading for source command output and IPC connections."""

import asyncio

from heats.logger import logging

logger = logging.getLogger(__name__)

# asyncio's default 64 KiB line limit is too small for some JSON lines
STREAM_LIMIT = 1024 * 1024


async def read_line(reader: asyncio.StreamReader) -> bytes | None:
    """
    Read the next line, newline included, or None at EOF.

    Lines longer than the reader's limit are skipped whole and reading
    continues with the line after them. A final line without a newline is
    returned as-is.
    """
    while True:
        try:
            return await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return e.partial or None
        except asyncio.LimitOverrunError as e:
            skipped = await _skip_line(reader, e.consumed)
            logger.debug("Skipped oversized line (%d+ bytes)", skipped)


async def _skip_line(reader: asyncio.StreamReader, consumed: int) -> int:
    # The overrun bytes are still buffered; drop them until the newline is consumed
    skipped = 0
    while True:
        await reader.readexactly(consumed)
        skipped += consumed
        try:
            skipped += len(await reader.readuntil(b"\n"))
            return skipped
        except asyncio.IncompleteReadError as e:
            return skipped + len(e.partial)
        except asyncio.LimitOverrunError as e:
            consumed = e.consumed
