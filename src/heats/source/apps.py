"""Application discovery for the bundled ``list-apps`` source command."""

import configparser
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from heats.logger import logging
from heats.source.models import MenuItem

logger = logging.getLogger(__name__)

DESKTOP_SECTION = "Desktop Entry"


@dataclass
class AppEntry:
    desktop_id: str
    name: str
    path: Path
    comment: str = ""
    icon: str = ""

    def to_menu_item(self) -> MenuItem:
        return MenuItem(
            title=self.name,
            subtitle=self.comment or str(self.path),
            icon_path=self.icon if Path(self.icon).is_absolute() else None,
            data={"id": self.desktop_id, "path": str(self.path)},
        )


def application_dirs() -> list[Path]:
    """XDG application directories, highest precedence first."""
    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    data_dirs = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
    return [Path(d) / "applications" for d in [data_home, *data_dirs.split(":")] if d]


def parse_desktop_file(path: Path, desktop_id: str) -> AppEntry | None:
    """Parse a .desktop file, or return None if it is not a visible application."""
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    try:
        parser.read(path, encoding="utf-8")
    except (configparser.Error, OSError, UnicodeDecodeError) as e:
        logger.debug("Skipping %s: %s", path, e)
        return None
    if not parser.has_section(DESKTOP_SECTION):
        return None

    entry = parser[DESKTOP_SECTION]
    if entry.get("Type", "Application") != "Application":
        return None
    if any(entry.get(key, "false").lower() == "true" for key in ("NoDisplay", "Hidden")):
        return None
    name = entry.get("Name", "").strip()
    if not name:
        return None
    return AppEntry(
        desktop_id=desktop_id,
        name=name,
        path=path,
        comment=entry.get("Comment", "").strip(),
        icon=entry.get("Icon", "").strip(),
    )


def scan_apps(directories: Iterable[Path] | None = None) -> list[AppEntry]:
    """
    Find installed applications, sorted by name.

    When the same desktop id exists in several directories, the first
    directory wins.
    """
    if directories is None:
        directories = application_dirs()

    seen: set[str] = set()
    apps: list[AppEntry] = []
    for directory in directories:
        if not directory.is_dir():
            continue
        for path in sorted(directory.rglob("*.desktop")):
            desktop_id = str(path.relative_to(directory)).replace(os.sep, "-")
            if desktop_id in seen:
                continue
            seen.add(desktop_id)
            app = parse_desktop_file(path, desktop_id)
            if app is not None:
                apps.append(app)

    apps.sort(key=lambda app: app.name.casefold())
    return apps
