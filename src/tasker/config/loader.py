"""Configuration loading from TOML files and environment variables."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from tasker.config.models import TaskerConfig
from tasker.config.paths import get_config_path

logger = logging.getLogger(__name__)

# (section, key, env vars in priority order)
ENV_OVERRIDES: list[tuple[str, str, tuple[str, ...]]] = [
    ("database", "url", ("TASKER_DATABASE_URL", "DATABASE_URL")),
    ("server", "host", ("TASKER_LISTEN_IP", "LISTEN_IP")),
    ("server", "port", ("TASKER_LISTEN_PORT", "LISTEN_PORT")),
]


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("tasker.toml"),  # Current directory
        get_config_path(),  # ~/.tasker/config.toml (or TASKER_HOME)
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variables onto the raw config mapping."""
    for section_key, key, env_vars in ENV_OVERRIDES:
        for env_var in env_vars:
            value = os.environ.get(env_var)
            if value:
                section = config.setdefault(section_key, {})
                section[key] = value
                break
    return config


def load_config(path: Path | None = None) -> TaskerConfig:
    """Load configuration from a TOML file plus environment overrides.

    Args:
        path: Explicit path to config file. If None, searches default locations
            and falls back to built-in defaults when none exists.

    Returns:
        Validated TaskerConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ValueError: If the config file is invalid.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in _get_default_config_paths():
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)
        logger.debug("config_loaded", extra={"file.path": str(config_path)})

    raw_config = _apply_env_overrides(raw_config)

    return TaskerConfig.model_validate(raw_config)


def get_default_config() -> TaskerConfig:
    """Get a default configuration for development/testing."""
    return TaskerConfig()
