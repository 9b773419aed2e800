import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict


def value_to_string(value: Any) -> str:
    """Render a JSON value as a plain string for action arguments."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class MenuItem(BaseModel):
    """
    An item as emitted by source and evaluator commands (one JSON object per line).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    subtitle: str | None = None
    icon_path: str | None = None
    data: Any = None

    def get_field(self, field: str) -> str:
        """
        Get a field value by dot-separated path (e.g. "title", "data", "data.pid").

        Never fails: missing values render as an empty string and unknown
        paths fall back to the title.
        """
        if field == "title":
            return self.title
        if field == "subtitle":
            return self.subtitle or ""
        if field == "icon_path":
            return self.icon_path or ""
        if field == "data":
            return value_to_string(self.data)
        if field.startswith("data."):
            current = self.data
            for key in field[len("data.") :].split("."):
                if not isinstance(current, dict) or key not in current:
                    return ""
                current = current[key]
            return value_to_string(current)
        return self.title


@dataclass(frozen=True)
class DisplayItem:
    """An item shown in the result list."""

    title: str
    subtitle: str | None
    exec_path: str
    source_name: str  # Provider name, "eval:<name>" or "dmenu"
    id: int | None = None  # Raw line index for dmenu items
    icon: str | None = None

    @classmethod
    def from_menu_item(
        cls, item: MenuItem, source_name: str, id: int | None = None
    ) -> "DisplayItem":
        return cls(
            title=item.title,
            subtitle=item.subtitle,
            exec_path=item.get_field("data"),
            source_name=source_name,
            id=id,
            icon=item.icon_path,
        )

    def same_entry(self, other: "DisplayItem") -> bool:
        return (
            self.title == other.title
            and self.source_name == other.source_name
            and self.exec_path == other.exec_path
        )


@dataclass(frozen=True)
class LoadedItem:
    """A display item together with what is needed to run its action."""

    item: DisplayItem
    provider_name: str
    menu_item: MenuItem

    def matches(self, item: DisplayItem) -> bool:
        return self.item is item or self.item.same_entry(item)
