"""Configuration module."""

from tasker.config.loader import get_default_config, load_config
from tasker.config.models import (
    ConfigError,
    DatabaseConfig,
    HashConfig,
    SchedulerConfig,
    ServerConfig,
    TaskerConfig,
    WebhookConfig,
)
from tasker.config.paths import (
    get_config_path,
    get_database_path,
    get_logs_path,
    get_tasker_home,
)

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "HashConfig",
    "SchedulerConfig",
    "ServerConfig",
    "TaskerConfig",
    "WebhookConfig",
    "get_config_path",
    "get_database_path",
    "get_default_config",
    "get_logs_path",
    "get_tasker_home",
    "load_config",
]
