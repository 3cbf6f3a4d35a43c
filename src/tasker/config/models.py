"""Configuration models using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from tasker.config.paths import get_database_path


class ConfigError(Exception):
    """Configuration error."""

    pass


class DatabaseConfig(BaseModel):
    """Configuration for the task database.

    ``url`` takes precedence over ``path`` when both are set.
    """

    url: str | None = None
    path: Path = Field(default_factory=get_database_path)
    # Seconds a writer waits on SQLite's lock before giving up
    busy_timeout_s: float = 30.0


class ServerConfig(BaseModel):
    """Configuration for HTTP server."""

    host: str = "127.0.0.1"
    port: int = 8080


class SchedulerConfig(BaseModel):
    """Configuration for the dispatcher and its executor pool."""

    submission_capacity: int = Field(default=256, ge=1)
    # None = no cap on concurrently running executors
    max_concurrent_executors: int | None = Field(default=64, ge=1)
    wait_poll_interval_ms: int = Field(default=100, ge=1)
    recovery_min_delay_ms: int = Field(default=100, ge=0)
    # None = producers wait for channel space indefinitely
    submit_timeout_s: float | None = None
    shutdown_grace_s: float = Field(default=10.0, ge=0)


class WebhookConfig(BaseModel):
    """Retry and transport settings for webhook delivery."""

    max_retries: int = Field(default=5, ge=0)
    base_delay_ms: int = Field(default=100, ge=0)
    max_delay_ms: int = Field(default=1600, ge=0)
    timeout_s: float = 30.0

    @model_validator(mode="after")
    def _validate_delays(self) -> "WebhookConfig":
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("webhook.max_delay_ms must be >= webhook.base_delay_ms")
        return self


class HashConfig(BaseModel):
    """PBKDF2 parameters for hash tasks."""

    iterations: int = Field(default=600_000, ge=1)
    output_length: int = Field(default=32, ge=10)
    salt_length: int = Field(default=16, ge=8)


class TaskerConfig(BaseModel):
    """Root configuration model."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    hash: HashConfig = Field(default_factory=HashConfig)

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the task database."""
        if self.database.url:
            return normalize_database_url(self.database.url)
        return f"sqlite+aiosqlite:///{self.database.path}"


def normalize_database_url(url: str) -> str:
    """Map plain SQLite URLs onto the async driver.

    Accepts ``sqlite://tasks.db`` style URLs as well as full SQLAlchemy URLs.

    Raises:
        ConfigError: If the URL is not a SQLite URL.
    """
    if url.startswith("sqlite+aiosqlite://"):
        return url
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite:///" + url.removeprefix("sqlite:///")
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite:///" + url.removeprefix("sqlite://")
    raise ConfigError(f"Unsupported database URL (SQLite only): {url}")
