"""Tests for logging setup."""

import logging
from pathlib import Path

import pytest

from heats.logger import _parse_level, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    setup_logging()


class TestSetupLogging:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [
            ("debug", logging.DEBUG),
            (" WARNING ", logging.WARNING),
            ("bogus", logging.INFO),
            (None, logging.INFO),
        ],
    )
    def test_parse_level(self, level, expected: int) -> None:
        assert _parse_level(level) == expected

    def test_env_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HEATS_LOG_LEVEL", "ERROR")
        setup_logging()
        assert logging.getLogger().level == logging.ERROR

    def test_log_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "heats.log"
        setup_logging("INFO", log_file)
        logging.getLogger("heats.test").info("hello file")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_unwritable_log_file_keeps_console(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        setup_logging("INFO", blocker / "heats.log")
        assert len(logging.getLogger().handlers) == 1
