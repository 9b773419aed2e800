"""Process-wide logging setup.

Modules import ``logging`` from here so the root handler is configured before
the first logger is used::

    from heats.logger import logging

    logger = logging.getLogger(__name__)
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

ENV_VAR_NAME = "HEATS_LOG_LEVEL"
DEFAULT_LEVEL = "INFO"


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.INFO
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str | None = None, log_file: Path | None = None) -> None:
    """
    (Re)configure the root logger.

    The console handler writes to stderr so stdout stays free for source
    commands and the dmenu client. When ``log_file`` is given, a rotating file
    handler is added as well; failing to open it only prints a warning.
    """
    if level is None:
        level = os.environ.get(ENV_VAR_NAME, DEFAULT_LEVEL)

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            sys.stderr.write(f"heats: WARNING: failed to open log file {log_file}: {e}\n")

    root = logging.getLogger()
    root.setLevel(_parse_level(level))
    for old in root.handlers:
        if isinstance(old, RotatingFileHandler):
            old.close()
    root.handlers[:] = handlers


setup_logging()

__all__ = ["logging", "setup_logging"]
