import os
from collections.abc import Callable
from pathlib import Path

from watchdog.events import (
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)

if os.environ.get("HEATS_WATCH_POLLING", "").lower() in ("1", "true"):
    from watchdog.observers.polling import PollingObserver as Observer
else:
    from watchdog.observers import Observer

from heats.logger import logging

logger = logging.getLogger(__name__)


class ConfigWatcher:
    """
    Calls ``on_change`` whenever the config file is written, created or moved into place.

    The parent directory is watched rather than the file, so editors that
    save by renaming a temporary file are noticed too. ``on_change`` runs on
    the watchdog thread.
    """

    path: Path
    on_change: Callable[[], None]

    def __init__(self, path: Path, on_change: Callable[[], None]):
        self.path = path.resolve()
        self.on_change = on_change
        self.observer = Observer()

    def start(self) -> bool:
        directory = self.path.parent
        if not directory.is_dir():
            logger.warning("Config directory %s does not exist, not watching", directory)
            return False
        self.observer.schedule(
            _ConfigEventHandler(self),
            str(directory),
            recursive=False,
            event_filter=[FileCreatedEvent, FileModifiedEvent, FileMovedEvent],
        )
        logger.info("Watching config file %s", self.path)
        self.observer.start()
        return True

    def stop(self) -> None:
        if self.observer.is_alive():
            logger.info("Stopping config watcher")
            self.observer.stop()
            self.observer.join()

    def _matches(self, path: str | bytes | None) -> bool:
        if not path:
            return False
        return Path(os.fsdecode(path)).resolve() == self.path


class _ConfigEventHandler(FileSystemEventHandler):
    watcher: ConfigWatcher

    def __init__(self, watcher: ConfigWatcher):
        self.watcher = watcher
        super().__init__()

    def on_created(self, event):
        if not event.is_directory and self.watcher._matches(event.src_path):
            logger.info("Config file created: %s", event.src_path)
            self.watcher.on_change()

    def on_modified(self, event):
        if not event.is_directory and self.watcher._matches(event.src_path):
            logger.info("Config file modified: %s", event.src_path)
            self.watcher.on_change()

    def on_moved(self, event):
        dest_path = getattr(event, "dest_path", None)
        if not event.is_directory and self.watcher._matches(dest_path):
            logger.info("Config file replaced: %s -> %s", event.src_path, dest_path)
            self.watcher.on_change()
