"""Spawning source and action commands."""

import asyncio
import os
import signal
import subprocess
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

import pydantic

from heats.config import InputMode, ProviderSpec
from heats.logger import logging
from heats.source.models import DisplayItem, LoadedItem, MenuItem
from heats.streams import STREAM_LIMIT, read_line

logger = logging.getLogger(__name__)

SOURCE_TIMEOUT = 2.0  # seconds, for the whole spawn-write-read-wait cycle
REAP_TIMEOUT = 1.0  # seconds to wait for a killed source to be reaped


def resolve_command(name: str) -> str:
    """
    Resolve a command name.

    Absolute paths are used as-is. Otherwise the directory of the running
    interpreter (where console scripts are installed) is checked first,
    then the name is left for PATH lookup.
    """
    if Path(name).is_absolute():
        return name
    candidate = Path(sys.executable).parent / name
    if candidate.exists():
        return str(candidate)
    return name


def parse_menu_line(line: str) -> MenuItem | None:
    """Parse one JSON line into a MenuItem, or None if it is blank or malformed."""
    line = line.strip()
    if not line:
        return None
    try:
        return MenuItem.model_validate_json(line)
    except pydantic.ValidationError as e:
        logger.debug("Failed to parse JSONL line %r: %s", line[:200], e)
        return None


async def _read_items(stream: asyncio.StreamReader, items: list[MenuItem]):
    while True:
        raw = await read_line(stream)
        if raw is None:
            break
        item = parse_menu_line(raw.decode("utf-8", errors="replace"))
        if item is not None:
            items.append(item)


async def load_source(
    command: Sequence[str],
    stdin_text: str | None = None,
    extra_args: Sequence[str] = (),
    timeout: float = SOURCE_TIMEOUT,
) -> list[MenuItem]:
    """
    Run a source command and collect the MenuItems it prints.

    ``stdin_text`` is written to the process's stdin when given; otherwise
    stdin is closed. Malformed and oversized lines are skipped. Spawn failures
    and non-zero exits yield no items. On timeout the command's whole process
    group is killed and the items parsed before the deadline are kept.
    """
    if not command:
        logger.warning("Empty source command")
        return []

    program = resolve_command(command[0])
    args = [*command[1:], *extra_args]
    items: list[MenuItem] = []
    process: asyncio.subprocess.Process | None = None

    async def run() -> int:
        nonlocal process
        process = await asyncio.create_subprocess_exec(
            program,
            *args,
            stdin=subprocess.PIPE if stdin_text is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            limit=STREAM_LIMIT,
            start_new_session=True,
        )
        if stdin_text is not None:
            assert process.stdin is not None
            try:
                process.stdin.write(stdin_text.encode("utf-8"))
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                logger.debug("Source command %s closed stdin early", list(command))
            finally:
                process.stdin.close()
        assert process.stdout is not None
        await _read_items(process.stdout, items)
        return await process.wait()

    try:
        returncode = await asyncio.wait_for(run(), timeout)
    except asyncio.TimeoutError:
        logger.warning(
            "Source command %s timed out after %.1fs (%d items read)",
            list(command),
            timeout,
            len(items),
        )
        await _kill(process)
        return items
    except (OSError, ValueError) as e:
        logger.warning("Failed to run source command %s: %s", list(command), e)
        await _kill(process)
        return []

    if returncode != 0:
        logger.warning(
            "Source command %s exited with status %d, discarding %d items",
            list(command),
            returncode,
            len(items),
        )
        return []
    return items


async def _kill(process: asyncio.subprocess.Process | None):
    """Kill the process group of a source command and reap it, waiting at most REAP_TIMEOUT."""
    if process is None:
        return
    # Children left in the group may hold stdout open after the leader exits
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError) as e:
        logger.debug("Process group %d already gone: %s", process.pid, e)
    try:
        await asyncio.wait_for(process.wait(), REAP_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("Source process %d was not reaped after kill", process.pid)


def to_loaded_items(
    provider_name: str, source_name: str, menu_items: Sequence[MenuItem]
) -> list[LoadedItem]:
    return [
        LoadedItem(
            item=DisplayItem.from_menu_item(menu_item, source_name),
            provider_name=provider_name,
            menu_item=menu_item,
        )
        for menu_item in menu_items
    ]


async def load_from_providers(
    provider_names: Sequence[str],
    providers: Mapping[str, ProviderSpec],
) -> list[LoadedItem]:
    """
    Run the source commands of the named providers concurrently.

    Unknown provider names are logged and skipped. Items are returned grouped
    in the order the providers were named, whatever order they finish in.
    """
    names: list[str] = []
    for name in provider_names:
        if name not in providers:
            logger.warning("Provider '%s' not found in config", name)
            continue
        names.append(name)

    results = await asyncio.gather(*(load_source(providers[name].source) for name in names))

    loaded: list[LoadedItem] = []
    for name, menu_items in zip(names, results, strict=True):
        logger.debug("Provider '%s' returned %d items", name, len(menu_items))
        loaded.extend(to_loaded_items(name, name, menu_items))
    return loaded


def run_action(command: Sequence[str], value: str, input_mode: InputMode = InputMode.ARG):
    """
    Run an action command detached, without waiting for it.

    The value is appended as the last argument, or written to stdin for
    ``InputMode.STDIN``. Failures are logged, never raised.
    """
    if not command:
        logger.error("Action command is empty")
        return

    program = resolve_command(command[0])
    args = list(command[1:])
    if input_mode == InputMode.ARG:
        args.append(value)

    logger.info("Executing action: %s %s", program, args)
    try:
        process = subprocess.Popen(
            [program, *args],
            stdin=subprocess.PIPE if input_mode == InputMode.STDIN else subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.error("Failed to execute action '%s': %s", program, e)
        return

    if input_mode == InputMode.STDIN:
        assert process.stdin is not None
        try:
            with process.stdin:
                process.stdin.write(value.encode("utf-8"))
        except OSError as e:
            logger.warning("Failed to write to action '%s': %s", program, e)
