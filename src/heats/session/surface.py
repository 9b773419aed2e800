"""The display surface the coordinator drives. Rendering lives elsewhere."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from heats.logger import logging
from heats.source.models import DisplayItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class View:
    query: str
    items: Sequence[DisplayItem]  # Evaluator results first, then ranked results
    selected: int
    external: bool


class Surface(Protocol):
    def show(self, view: View) -> None: ...

    def hide(self) -> None: ...


class HeadlessSurface:
    """A surface that only logs; used when no UI is attached."""

    visible: bool
    last_view: View | None

    def __init__(self):
        self.visible = False
        self.last_view = None

    def show(self, view: View):
        if not self.visible:
            logger.info("Showing %d items", len(view.items))
        self.visible = True
        self.last_view = view
        logger.debug(
            "View: query=%r, %d items, selected=%d", view.query, len(view.items), view.selected
        )

    def hide(self):
        if self.visible:
            logger.info("Hiding")
        self.visible = False
