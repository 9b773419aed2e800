"""Line-oriented dmenu protocol spoken over the daemon socket.

1. The client sends a context line, ``{"format":"text"}`` or ``{"format":"jsonl"}``.
   Older clients omit it; a first line that is not a context object is the
   first item of a text session.
2. The client sends one item per line (raw strings, or MenuItem JSON objects),
   then half-closes its write side.
3. The daemon answers with a single line: the selection, or an empty line
   when the user cancelled.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

import pydantic
from pydantic import BaseModel

from heats.logger import logging
from heats.source.command import parse_menu_line
from heats.source.models import DisplayItem, MenuItem

logger = logging.getLogger(__name__)

DMENU_SOURCE = "dmenu"


class IpcFormat(str, Enum):
    TEXT = "text"
    JSONL = "jsonl"


class IpcContext(BaseModel):
    format: str


def context_line(format: IpcFormat) -> str:
    return IpcContext(format=format.value).model_dump_json()


def parse_context(line: str) -> tuple[IpcFormat, str | None]:
    """
    Parse the first line of a session.

    Returns the session format and, for legacy clients that send no context
    line, the line itself as the first item. Unknown formats fall back to text.
    """
    line = line.strip()
    try:
        context = IpcContext.model_validate_json(line)
    except pydantic.ValidationError:
        return IpcFormat.TEXT, line
    if context.format == IpcFormat.JSONL.value:
        return IpcFormat.JSONL, None
    return IpcFormat.TEXT, None


@dataclass
class DmenuRequest:
    """The items of one dmenu session, and how to map a selection back to a reply."""

    format: IpcFormat
    raw_lines: Sequence[str]
    items: list[DisplayItem] = field(default_factory=list)
    menu_items: dict[int, MenuItem] = field(default_factory=dict)  # raw line index -> parsed item

    @classmethod
    def build(cls, format: IpcFormat, raw_lines: Sequence[str]) -> "DmenuRequest":
        """
        Turn raw lines into display items.

        Each item's id is the index of its raw line, so selections stay
        correct when malformed JSONL lines are skipped.
        """
        request = cls(format=format, raw_lines=list(raw_lines))
        for index, line in enumerate(request.raw_lines):
            if format == IpcFormat.JSONL:
                menu_item = parse_menu_line(line)
                if menu_item is None:
                    continue
                request.menu_items[index] = menu_item
                request.items.append(DisplayItem.from_menu_item(menu_item, DMENU_SOURCE, id=index))
            else:
                request.items.append(
                    DisplayItem(
                        title=line,
                        subtitle=None,
                        exec_path="",
                        source_name=DMENU_SOURCE,
                        id=index,
                    )
                )
        return request

    def reply_for(self, selected_id: int | None) -> str | None:
        """
        The reply for a selection, or None for a cancellation.

        Text sessions reply with the original line; JSONL sessions with the
        item's ``data`` rendered as a string, or its title when it has no data.
        """
        if selected_id is None or not 0 <= selected_id < len(self.raw_lines):
            return None
        if self.format == IpcFormat.JSONL:
            menu_item = self.menu_items.get(selected_id)
            if menu_item is None:
                return None
            if menu_item.data is None:
                return menu_item.title
            return menu_item.get_field("data")
        return self.raw_lines[selected_id]
