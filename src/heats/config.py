"""Provider, evaluator and mode configuration."""

import os
import tomllib
from enum import Enum
from pathlib import Path

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from heats.errors import ConfigError
from heats.logger import logging

logger = logging.getLogger(__name__)

ENV_VAR_NAME = "HEATS_CONFIG"

DEFAULT_FIELD = "data"


class InputMode(str, Enum):
    """How a value is handed to a command."""

    STDIN = "stdin"  # Written to stdin, newline-terminated
    ARG = "arg"  # Appended as the last argument


class _Spec(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class ProviderSpec(_Spec):
    """A source command bundled with the action run on its items."""

    source: list[str]  # Prints MenuItem JSON lines
    action: list[str]  # Receives the field value as its last argument
    field: str = DEFAULT_FIELD  # Field path passed to the action, e.g. "data.path"
    cache_interval: int | None = Field(default=None, gt=0)  # Seconds; None = load on demand


class EvaluatorSpec(_Spec):
    """A query-driven source command and its action."""

    source: list[str]
    input_mode: InputMode = Field(default=InputMode.STDIN, alias="input")
    action: list[str]
    action_input_mode: InputMode = Field(default=InputMode.STDIN, alias="action_input")
    field: str = DEFAULT_FIELD


class ModeSpec(_Spec):
    """A named activation bound to providers and evaluators."""

    name: str
    hotkey: str = ""
    providers: list[str] = Field(default_factory=list)
    evaluators: list[str] = Field(default_factory=list)


class Config(_Spec):
    modes: list[ModeSpec] = Field(default_factory=list, alias="mode")
    providers: dict[str, ProviderSpec] = Field(default_factory=dict, alias="provider")
    evaluators: dict[str, EvaluatorSpec] = Field(default_factory=dict, alias="evaluator")

    def get_mode(self, name: str) -> ModeSpec | None:
        for mode in self.modes:
            if mode.name == name:
                return mode
        return None

    def min_cache_interval(self) -> int | None:
        """The smallest ``cache_interval`` across providers, or None if nothing is cached."""
        intervals = [p.cache_interval for p in self.providers.values() if p.cache_interval]
        return min(intervals) if intervals else None


def default_config() -> Config:
    return Config(
        modes=[
            ModeSpec(
                name="launcher",
                hotkey="Super+Semicolon",
                providers=["open-apps"],
                evaluators=["calculator"],
            ),
        ],
        providers={
            "open-apps": ProviderSpec(
                source=["heats", "list-apps"],
                action=["gtk-launch"],
                field="data.id",
                cache_interval=60,
            ),
        },
        evaluators={
            "calculator": EvaluatorSpec(
                source=["heats", "eval-calc"],
                input_mode=InputMode.STDIN,
                action=["xclip", "-selection", "clipboard"],
                action_input_mode=InputMode.STDIN,
                field="data",
            ),
        },
    )


def config_path(path: Path | None = None) -> Path:
    """
    Resolve the configuration file path.

    An explicit ``path`` wins, then the HEATS_CONFIG environment variable, then
    ``~/.config/heats/config.toml``.
    """
    if path is not None:
        return path
    env_path = os.environ.get(ENV_VAR_NAME)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "heats" / "config.toml"


def parse_config(text: str) -> Config:
    """
    Parse TOML configuration text.

    Raises:
        ConfigError: If the text is not valid TOML or does not match the schema.
    """
    try:
        return Config.model_validate(tomllib.loads(text))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML: {e}") from e
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(path: Path | None = None, strict: bool = False) -> Config:
    """
    Load the configuration, falling back to defaults.

    A missing file always yields the defaults. An unreadable or invalid file
    yields the defaults with a warning, or raises ConfigError when ``strict``.
    """
    path = config_path(path)
    if not path.exists():
        logger.info("No config file found at %s, using defaults", path)
        return default_config()

    try:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Failed to read {path}: {e}") from e
        config = parse_config(text)
    except ConfigError as e:
        if strict:
            raise
        logger.warning("Failed to load config %s: %s, using defaults", path, e)
        return default_config()

    logger.info("Loaded config from %s", path)
    return config
