"""Per-task executors.

Every executor runs the same skeleton for a released snapshot:

1. parse the persisted execution time (unparsable: todo -> failed, stop)
2. wait until the execution time has actually arrived
3. claim the task in the store (lost claim: stop without side effects)
4. perform the action
5. write the terminal state

Executors never raise; every failure is logged with the task id.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime

import httpx
from sqlalchemy.exc import SQLAlchemyError

from tasker.scheduler.hashing import HashParams, encode_for_display, hash_secret
from tasker.scheduler.retry import RetryConfig, with_retry
from tasker.tasks.store import TaskStore
from tasker.tasks.types import (
    HashTask,
    Task,
    TaskKind,
    TaskState,
    WebhookTask,
    parse_execution_time,
)

logger = logging.getLogger(__name__)

DEFAULT_WAIT_INTERVAL_S = 0.1


class Executor(ABC):
    """Base class implementing wait, claim and finalization."""

    kind: TaskKind

    def __init__(
        self,
        store: TaskStore,
        *,
        wait_interval_s: float = DEFAULT_WAIT_INTERVAL_S,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._store = store
        self._wait_interval_s = wait_interval_s
        self._now = now

    async def run(self, task: Task) -> TaskState | None:
        """Execute one released snapshot.

        Returns:
            The terminal state written, or None when this executor did not own
            the task (lost claim, store error).
        """
        try:
            execution_time = parse_execution_time(task.execution_time)
        except ValueError:
            logger.warning(
                "execution_time_unparsable",
                extra={"task.id": task.id, "task.execution_time": task.execution_time},
            )
            if not await self._fail_unparsable(task):
                return None
            return TaskState.FAILED

        # Released early or clock skew: hold off until the deadline is real.
        while self._now() < execution_time:
            await asyncio.sleep(self._wait_interval_s)

        if not await self._claim(task):
            return None

        state = await self.execute(task)
        await self._finish(task, state)
        return state

    @abstractmethod
    async def execute(self, task: Task) -> TaskState:
        """Perform the action of an owned task and return its terminal state."""

    async def _claim(self, task: Task) -> bool:
        try:
            claimed = await self._store.claim(self.kind, task.id)
        except SQLAlchemyError:
            logger.warning(
                "task_claim_error",
                extra={"task.id": task.id, "task.kind": self.kind.value},
                exc_info=True,
            )
            return False

        if not claimed:
            logger.debug(
                "task_claim_lost",
                extra={"task.id": task.id, "task.kind": self.kind.value},
            )
            return False

        logger.debug(
            "task_claimed", extra={"task.id": task.id, "task.kind": self.kind.value}
        )
        return True

    async def _finish(self, task: Task, state: TaskState) -> None:
        try:
            await self._store.finish(self.kind, task.id, state)
        except SQLAlchemyError:
            logger.warning(
                "task_finish_error",
                extra={"task.id": task.id, "task.state": state.value},
                exc_info=True,
            )
            return
        logger.debug(
            "task_finished", extra={"task.id": task.id, "task.state": state.value}
        )

    async def _fail_unparsable(self, task: Task) -> bool:
        try:
            return await self._store.fail_unparsable(self.kind, task.id)
        except SQLAlchemyError:
            logger.warning(
                "task_finish_error",
                extra={"task.id": task.id, "task.state": TaskState.FAILED.value},
                exc_info=True,
            )
            return False


class WebhookExecutor(Executor):
    """POSTs the task body to its URL, retrying transport failures."""

    kind = TaskKind.WEBHOOK

    def __init__(
        self,
        store: TaskStore,
        client: httpx.AsyncClient,
        *,
        retry: RetryConfig | None = None,
        wait_interval_s: float = DEFAULT_WAIT_INTERVAL_S,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        super().__init__(store, wait_interval_s=wait_interval_s, now=now)
        self._client = client
        self._retry = retry or RetryConfig()

    async def execute(self, task: Task) -> TaskState:
        assert isinstance(task, WebhookTask)

        async def post() -> httpx.Response:
            return await self._client.post(task.url, content=task.body)

        try:
            response = await with_retry(
                post, config=self._retry, operation_name=f"POST {task.url}"
            )
        except Exception as e:
            # Exhausted transport retries, or an error that is never retried
            # (invalid URL). No response was received either way.
            logger.warning(
                "webhook_failed",
                extra={
                    "task.id": task.id,
                    "http.url": task.url,
                    "error.message": str(e),
                    "error.type": type(e).__name__,
                },
            )
            return TaskState.FAILED

        # Any received response counts as delivered, whatever the status.
        logger.info(
            "webhook_delivered",
            extra={
                "task.id": task.id,
                "http.url": task.url,
                "http.status_code": response.status_code,
            },
        )
        return TaskState.DONE


HashFunction = Callable[[str, HashParams], str]


class HashExecutor(Executor):
    """Derives a PBKDF2 hash of the task secret in a worker thread."""

    kind = TaskKind.HASH

    def __init__(
        self,
        store: TaskStore,
        *,
        params: HashParams | None = None,
        hash_func: HashFunction = hash_secret,
        on_hash: Callable[[HashTask, str], None] | None = None,
        wait_interval_s: float = DEFAULT_WAIT_INTERVAL_S,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        super().__init__(store, wait_interval_s=wait_interval_s, now=now)
        self._params = params or HashParams()
        self._hash_func = hash_func
        self._on_hash = on_hash

    async def execute(self, task: Task) -> TaskState:
        assert isinstance(task, HashTask)

        try:
            phc = await asyncio.to_thread(self._hash_func, task.secret, self._params)
        except Exception as e:
            logger.warning(
                "hash_failed",
                extra={
                    "task.id": task.id,
                    "error.message": str(e),
                    "error.type": type(e).__name__,
                },
            )
            return TaskState.FAILED

        encoded = encode_for_display(phc)
        logger.info(
            "hash_computed",
            extra={"task.id": task.id, "hash.encoded": encoded},
        )
        if self._on_hash is not None:
            # The hash exists either way; a broken hook must not strand the row
            try:
                self._on_hash(task, encoded)
            except Exception:
                logger.exception("hash_hook_failed", extra={"task.id": task.id})
        return TaskState.DONE
