import asyncio
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TextIO

from heats.errors import ClientError, DaemonNotRunning
from heats.ipc.protocol import IpcFormat, context_line
from heats.runtime import socket_path as default_socket_path


def read_stdin_items(stream: TextIO) -> list[str]:
    """Read non-empty lines from ``stream``."""
    return [line for line in (raw.rstrip("\r\n") for raw in stream) if line]


async def send_and_receive(
    items: Sequence[str],
    format: IpcFormat = IpcFormat.TEXT,
    socket_path: Path | None = None,
) -> str | None:
    """
    Send items to the daemon and wait for the user's choice.

    Returns the selected value, or None if the user cancelled.

    Raises:
        DaemonNotRunning: If nothing is listening on the socket.
        ClientError: On any other I/O failure.
    """
    path = socket_path if socket_path is not None else default_socket_path()
    try:
        reader, writer = await asyncio.open_unix_connection(str(path))
    except OSError as e:
        raise DaemonNotRunning(f"heats daemon is not running ({path})") from e

    try:
        writer.write(_encode([context_line(format), *items]))
        await writer.drain()
        writer.write_eof()
        response = await reader.readline()
    except OSError as e:
        raise ClientError(f"IPC error: {e}") from e
    finally:
        writer.close()

    selected = response.decode("utf-8", errors="replace").strip()
    return selected or None


def _encode(lines: Iterable[str]) -> bytes:
    return "".join(f"{line}\n" for line in lines).encode("utf-8")
