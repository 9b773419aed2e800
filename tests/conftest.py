import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest


@pytest.fixture
def short_tmp_dir() -> Iterator[Path]:
    """A short temporary directory; Unix socket paths are limited to ~100 bytes."""
    with tempfile.TemporaryDirectory(prefix="heats-", dir="/tmp") as directory:
        yield Path(directory)


@pytest.fixture(autouse=True)
def isolated_runtime(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep runtime files and config lookups inside the test's temp dir."""
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path / "runtime"))
    monkeypatch.setenv("HEATS_CONFIG", str(tmp_path / "config.toml"))
    monkeypatch.delenv("HEATS_SOCKET", raising=False)
