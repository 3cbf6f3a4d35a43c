"""Shared test fixtures and factories."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from tasker.config.models import (
    DatabaseConfig,
    HashConfig,
    SchedulerConfig,
    TaskerConfig,
    WebhookConfig,
)
from tasker.db.engine import Database
from tasker.db.models import Base
from tasker.tasks.ids import new_task_id
from tasker.tasks.store import TaskStore
from tasker.tasks.types import HashTask, TaskState, WebhookTask

# =============================================================================
# Time helpers
# =============================================================================


def iso_in(seconds: float) -> str:
    """RFC 3339 timestamp ``seconds`` from now (negative for the past)."""
    return (datetime.now(UTC) + timedelta(seconds=seconds)).isoformat()


class FakeClock:
    """Monotonic clock stand-in that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Task factories
# =============================================================================


def make_webhook(
    *,
    execution_time: str | None = None,
    url: str = "http://hooks.test/notify",
    body: str = '{"event": "fired"}',
    state: TaskState = TaskState.TODO,
    task_id: str | None = None,
) -> WebhookTask:
    return WebhookTask(
        id=task_id or new_task_id(),
        state=state,
        execution_time=execution_time or iso_in(-1),
        url=url,
        body=body,
    )


def make_hash(
    *,
    execution_time: str | None = None,
    secret: str = "correct horse battery staple",
    state: TaskState = TaskState.TODO,
    task_id: str | None = None,
) -> HashTask:
    return HashTask(
        id=task_id or new_task_id(),
        state=state,
        execution_time=execution_time or iso_in(-1),
        secret=secret,
    )


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path: Path) -> TaskerConfig:
    """Configuration tuned for fast tests."""
    return TaskerConfig(
        database=DatabaseConfig(path=tmp_path / "tasks.db"),
        scheduler=SchedulerConfig(
            wait_poll_interval_ms=10,
            recovery_min_delay_ms=10,
            shutdown_grace_s=2.0,
        ),
        webhook=WebhookConfig(base_delay_ms=1, max_delay_ms=16, timeout_s=2.0),
        hash=HashConfig(iterations=1_000),
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create a temporary test database."""
    db_path = tmp_path / "test.db"
    db = Database(database_path=db_path)
    await db.connect()

    # Create all tables
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db

    await db.disconnect()


@pytest.fixture
async def store(database: Database) -> TaskStore:
    return TaskStore(database)


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Config file pointing at a database under tmp_path."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(f'[database]\npath = "{tmp_path / "cli.db"}"\n')
    return config_path


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
