"""Centralized path management for tasker.

All local state (config, database, logs) lives under a single base directory.
The base directory can be overridden with the TASKER_HOME environment variable.

Default locations:
- Linux/macOS: ~/.tasker
- Windows: %USERPROFILE%\\.tasker
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "TASKER_HOME"


@lru_cache(maxsize=1)
def get_tasker_home() -> Path:
    """Get the base directory for all tasker data.

    Resolution order:
    1. TASKER_HOME environment variable (if set)
    2. Platform default (~/.tasker)

    Returns:
        Path to the tasker home directory.
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".tasker"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_tasker_home() / "config.toml"


def get_database_path() -> Path:
    """Get the default SQLite database path."""
    return get_tasker_home() / "tasks.db"


def get_logs_path() -> Path:
    """Get the directory for JSONL log files."""
    return get_tasker_home() / "logs"
