"""Per-user runtime files: the IPC socket and the daemon PID file."""

import os
from pathlib import Path

from heats.logger import logging

logger = logging.getLogger(__name__)

SOCKET_ENV_VAR = "HEATS_SOCKET"


def runtime_dir() -> Path:
    """
    Resolve the runtime directory, creating it if needed.

    Uses ``$XDG_RUNTIME_DIR``, falling back to ``/tmp/xdg-runtime-<uid>``.
    """
    env_dir = os.environ.get("XDG_RUNTIME_DIR")
    directory = Path(env_dir) if env_dir else Path(f"/tmp/xdg-runtime-{os.getuid()}")
    try:
        directory.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Failed to create runtime directory %s: %s", directory, e)
    return directory


def socket_path() -> Path:
    override = os.environ.get(SOCKET_ENV_VAR)
    if override:
        return Path(override)
    return runtime_dir() / "heats.sock"


def pid_path() -> Path:
    return runtime_dir() / "heats.pid"


def write_pid() -> None:
    path = pid_path()
    try:
        path.write_text(str(os.getpid()))
    except OSError as e:
        logger.warning("Failed to write PID file %s: %s", path, e)


def read_pid() -> int | None:
    """Return the PID recorded in the PID file, or None if missing or invalid."""
    try:
        return int(pid_path().read_text().strip())
    except (OSError, ValueError):
        return None


def remove_pid() -> None:
    pid_path().unlink(missing_ok=True)
