"""Configuration for diff_composer."""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "DIFF_COMPOSER_"

DEFAULT_EXCLUDED_FILES: tuple[str, ...] = (
    "Cargo.lock",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "composer.lock",
    "Gemfile.lock",
    "poetry.lock",
    "flake.lock",
    ".gitignore",
)

DEFAULT_LOW_PRIORITY_EXTENSIONS: tuple[str, ...] = (
    ".lock",
    ".sum",
    ".toml",
    ".yaml",
    ".yml",
    ".json",
    ".md",
    ".txt",
    ".log",
    ".tmp",
    ".bak",
)


@dataclass(frozen=True)
class ComposerConfig:
    """Settings shared by truncation, analysis and compose."""

    max_retries: int = 3
    initial_backoff_ms: int = 1000
    request_timeout_secs: float = 120.0
    connect_timeout_secs: float = 30.0
    temperature: float = 0.2
    max_diff_length: int = 100_000
    max_diff_tokens: int = 25_000
    map_reduce_enabled: bool = True
    map_parallelism: int = 8
    wide_change_threshold: float = 0.5
    excluded_files: tuple[str, ...] = field(default=DEFAULT_EXCLUDED_FILES)
    low_priority_extensions: tuple[str, ...] = field(default=DEFAULT_LOW_PRIORITY_EXTENSIONS)

    def is_excluded(self, file_path: str) -> bool:
        """Check whether a path is on the ignore list (suffix match)."""
        return any(file_path.endswith(excluded) for excluded in self.excluded_files)


def load_env_file() -> None:
    """Load environment variables from .env file."""
    # Try to find .env file in project root (parent of diff_composer package)
    project_root = Path(__file__).parent.parent
    env_file = project_root / ".env"
    if env_file.exists():
        load_dotenv(env_file)
    else:
        # Fallback: try current directory
        load_dotenv()


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_list(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


_FIELD_PARSERS = {
    "max_retries": int,
    "initial_backoff_ms": int,
    "request_timeout_secs": float,
    "connect_timeout_secs": float,
    "temperature": float,
    "max_diff_length": int,
    "max_diff_tokens": int,
    "map_reduce_enabled": _parse_bool,
    "map_parallelism": int,
    "wide_change_threshold": float,
    "excluded_files": _parse_list,
    "low_priority_extensions": _parse_list,
}


def load_config(**overrides: object) -> ComposerConfig:
    """
    Build the configuration from defaults, environment and explicit overrides.

    Environment variables are named ``DIFF_COMPOSER_<FIELD>`` (for example
    ``DIFF_COMPOSER_MAX_RETRIES``); list fields are comma separated.

    Args:
        overrides: Field values that take precedence over the environment
                   (typically parsed command-line arguments). ``None`` values
                   are ignored.

    Returns:
        Resolved ComposerConfig

    Raises:
        ValueError: If an environment value cannot be parsed
    """
    load_env_file()

    values: dict[str, object] = {}
    for name, parser in _FIELD_PARSERS.items():
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        try:
            values[name] = parser(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e

    for name, value in overrides.items():
        if name not in _FIELD_PARSERS:
            raise ValueError(f"Unknown configuration field: {name}")
        if value is not None:
            values[name] = value

    config = replace(ComposerConfig(), **values)
    logger.debug("Loaded configuration: %s", config)
    return config
