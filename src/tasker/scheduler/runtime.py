"""Scheduler runtime: wires store, dispatcher and executors together.

Startup order matters:

1. connect to the database and create the schema
2. start the dispatcher loop
3. run recovery (raises RecoveryError on failure)

Only after start() returns may new tasks be created.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta

import httpx

from tasker.config import TaskerConfig
from tasker.db import Database
from tasker.scheduler.dispatcher import Dispatcher
from tasker.scheduler.executors import Executor, HashExecutor, WebhookExecutor
from tasker.scheduler.hashing import HashParams
from tasker.scheduler.recovery import RecoveryLoader, RecoveryReport
from tasker.scheduler.retry import RetryConfig
from tasker.tasks.service import TaskService
from tasker.tasks.store import TaskStore
from tasker.tasks.types import TaskKind

logger = logging.getLogger(__name__)


def build_executors(
    config: TaskerConfig, store: TaskStore, client: httpx.AsyncClient
) -> dict[TaskKind, Executor]:
    """Create one executor per task kind from configuration."""
    wait_interval_s = config.scheduler.wait_poll_interval_ms / 1000
    return {
        TaskKind.WEBHOOK: WebhookExecutor(
            store,
            client,
            retry=RetryConfig(
                max_retries=config.webhook.max_retries,
                base_delay_ms=config.webhook.base_delay_ms,
                max_delay_ms=config.webhook.max_delay_ms,
            ),
            wait_interval_s=wait_interval_s,
        ),
        TaskKind.HASH: HashExecutor(
            store,
            params=HashParams(
                iterations=config.hash.iterations,
                output_length=config.hash.output_length,
                salt_length=config.hash.salt_length,
            ),
            wait_interval_s=wait_interval_s,
        ),
    }


class SchedulerRuntime:
    """Owns the scheduler's lifecycle.

    Example:
        runtime = SchedulerRuntime(config)
        await runtime.start()
        task = await runtime.service.create_hash(when, "hunter2")
        ...
        await runtime.stop()
    """

    def __init__(
        self,
        config: TaskerConfig,
        *,
        database: Database | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._database = database or Database(
            database_url=config.database_url,
            busy_timeout_s=config.database.busy_timeout_s,
        )
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.webhook.timeout_s
        )
        self._store = TaskStore(self._database)
        self._dispatcher = Dispatcher(
            build_executors(config, self._store, self._client),
            capacity=config.scheduler.submission_capacity,
            max_concurrent=config.scheduler.max_concurrent_executors,
            submit_timeout=config.scheduler.submit_timeout_s,
        )
        self._service = TaskService(self._store, self._dispatcher)
        self._loop_task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def database(self) -> Database:
        return self._database

    @property
    def store(self) -> TaskStore:
        return self._store

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def service(self) -> TaskService:
        return self._service

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> RecoveryReport:
        """Connect, start dispatching and recover persisted tasks.

        Raises:
            RecoveryError: If recovery fails. The runtime is stopped again
                before the error propagates.
        """
        if self._running:
            raise RuntimeError("Scheduler runtime already started")

        await self._database.connect()
        await self._database.create_schema()

        self._loop_task = asyncio.create_task(
            self._dispatcher.run(), name="tasker-dispatcher"
        )
        self._running = True
        logger.info("scheduler_started", extra={"db.url": self._database.url})

        loader = RecoveryLoader(
            self._store,
            self._dispatcher,
            min_delay=timedelta(milliseconds=self._config.scheduler.recovery_min_delay_ms),
        )
        try:
            return await loader.recover()
        except Exception:
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop dispatching, drain executors and release resources."""
        if not self._running:
            return
        self._running = False

        self._dispatcher.stop()
        if self._loop_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None

        cancelled = await self._dispatcher.drain(
            timeout=self._config.scheduler.shutdown_grace_s
        )
        if self._owns_client:
            await self._client.aclose()
        await self._database.disconnect()
        logger.info(
            "scheduler_stopped",
            extra={
                "executors.cancelled": cancelled,
                "queue.pending": self._dispatcher.pending,
            },
        )
