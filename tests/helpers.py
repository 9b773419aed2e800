import asyncio
import json
import sys
from collections.abc import Callable

from heats.source.command import to_loaded_items
from heats.source.models import LoadedItem, MenuItem


def python_command(script: str) -> list[str]:
    """A command that runs ``script`` with the current interpreter."""
    return [sys.executable, "-c", script]


def jsonl_script(*items: dict | str, sleep: float = 0.0, exit_code: int = 0) -> str:
    """
    A script printing each item as one line, then optionally sleeping and failing.

    Dicts are printed as JSON objects; strings are printed verbatim.
    """
    lines = ["import sys, time"]
    for item in items:
        text = item if isinstance(item, str) else json.dumps(item)
        lines.append(f"print({json.dumps(text)}, flush=True)")
    if sleep:
        lines.append(f"time.sleep({sleep})")
    lines.append(f"sys.exit({exit_code})")
    return "\n".join(lines)


def make_loaded(provider: str, *titles: str, source_name: str | None = None) -> list[LoadedItem]:
    menu_items = [MenuItem(title=title, data={"path": f"/apps/{title}"}) for title in titles]
    return to_loaded_items(provider, source_name or provider, menu_items)


async def wait_until(predicate: Callable[[], bool], timeout: float = 3.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)
