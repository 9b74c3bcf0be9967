"""Application configuration resolved from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_data_dir

from aigenda.exceptions import ConfigurationError
from aigenda.utils.logging import get_logger, is_valid_level

logger = get_logger(__name__)

APP_NAME = "aigenda"

DEFAULT_MAX_MESSAGES = 50
DEFAULT_MAX_TOKENS = 8000
DEFAULT_MAX_ITERATIONS = 5

_TRUTHY = {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def _env_log_level(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    if not is_valid_level(raw):
        raise ConfigurationError(f"{name} must be a logging level such as DEBUG or INFO, got {raw!r}")
    return raw.strip().upper()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


@dataclass
class Settings:
    """Runtime settings for the notes CLI and the agent."""

    data_dir: Path
    max_messages: int = DEFAULT_MAX_MESSAGES
    max_tokens: int = DEFAULT_MAX_TOKENS
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    auto_approve: bool = False
    enable_example_tool: bool = False
    log_level: str = "WARNING"

    @property
    def notes_dir(self) -> Path:
        """Directory holding one JSON document per calendar day."""
        return self.data_dir / "notes"

    @property
    def memory_path(self) -> Path:
        """File the agent's conversation memory is persisted to."""
        return self.data_dir / "memory.json"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from AIGENDA_* environment variables.

        Raises:
            ConfigurationError: If a value is malformed or the data directory
                cannot be resolved or created.
        """
        raw_dir = os.getenv("AIGENDA_DATA_DIR")
        try:
            data_dir = Path(raw_dir).expanduser() if raw_dir else Path(user_data_dir(APP_NAME, appauthor=False))
        except Exception as e:
            raise ConfigurationError(f"Could not determine data directory: {e}") from e

        settings = cls(
            data_dir=data_dir,
            max_messages=_env_int("AIGENDA_MAX_MESSAGES", DEFAULT_MAX_MESSAGES),
            max_tokens=_env_int("AIGENDA_MAX_TOKENS", DEFAULT_MAX_TOKENS),
            max_iterations=_env_int("AIGENDA_MAX_ITERATIONS", DEFAULT_MAX_ITERATIONS),
            auto_approve=_env_flag("AIGENDA_AUTO_APPROVE"),
            enable_example_tool=_env_flag("AIGENDA_ENABLE_EXAMPLE_TOOL"),
            log_level=_env_log_level("LOG_LEVEL", "WARNING"),
        )
        settings.ensure_dirs()
        return settings

    def ensure_dirs(self) -> None:
        """Create the data directories if they do not exist yet."""
        try:
            self.notes_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Could not create data directory {self.data_dir}: {e}") from e
        logger.debug(f"Using data directory {self.data_dir}")
