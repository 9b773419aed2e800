import asyncio
from collections.abc import Callable, Sequence
from pathlib import Path

from heats.ipc.protocol import DmenuRequest, parse_context
from heats.logger import logging
from heats.session.reply import ReplySlot
from heats.source.models import DisplayItem
from heats.streams import STREAM_LIMIT, read_line

logger = logging.getLogger(__name__)

SessionSubmitter = Callable[[Sequence[DisplayItem], ReplySlot], None]


async def _read_line(reader: asyncio.StreamReader) -> str | None:
    raw = await read_line(reader)
    if raw is None:
        return None
    return raw.decode("utf-8").rstrip("\r\n")


class IpcServer:
    """
    Serves dmenu sessions on a Unix domain socket, one connection at a time.

    Connections that arrive while a session is in progress wait their turn.
    """

    socket_path: Path
    submit: SessionSubmitter

    def __init__(self, socket_path: Path, submit: SessionSubmitter):
        self.socket_path = socket_path
        self.submit = submit
        self._server: asyncio.AbstractServer | None = None
        self._lock = asyncio.Lock()

    @property
    def listening(self) -> bool:
        return self._server is not None

    async def start(self) -> bool:
        """
        Bind the socket. On failure the server stays idle and False is returned.
        """
        # Remove a stale socket left behind by a daemon that did not clean up
        self.socket_path.unlink(missing_ok=True)
        try:
            self._server = await asyncio.start_unix_server(
                self._handle_connection, path=str(self.socket_path), limit=STREAM_LIMIT
            )
        except OSError as e:
            logger.error("Failed to bind IPC socket %s: %s", self.socket_path, e)
            return False
        logger.info("IPC listening on %s", self.socket_path)
        return True

    async def stop(self):
        if self._server is None:
            return
        self._server.close()
        self._server = None
        self.socket_path.unlink(missing_ok=True)

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        async with self._lock:
            try:
                await self._serve(reader, writer)
            except (OSError, UnicodeDecodeError, ValueError) as e:
                logger.error("IPC connection error: %s", e)
            finally:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError as e:
                    logger.debug("IPC close error: %s", e)

    async def _serve(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        logger.debug("IPC client connected")
        first_line = await _read_line(reader)
        if first_line is None:
            logger.debug("IPC client disconnected immediately")
            return

        format, first_item = parse_context(first_line)
        raw_lines: list[str] = []
        if first_item:
            raw_lines.append(first_item)
        while (line := await _read_line(reader)) is not None:
            if line:
                raw_lines.append(line)

        request = DmenuRequest.build(format, raw_lines)
        if not request.items:
            logger.debug("IPC client sent no items, ignoring")
            return
        logger.info(
            "IPC received %d items (format: %s, %d usable)",
            len(raw_lines),
            format.value,
            len(request.items),
        )

        reply = ReplySlot()
        self.submit(request.items, reply)
        selected_id = await reply.wait()

        response = request.reply_for(selected_id)
        writer.write(f"{response or ''}\n".encode("utf-8"))
        await writer.drain()
        if writer.can_write_eof():
            writer.write_eof()
