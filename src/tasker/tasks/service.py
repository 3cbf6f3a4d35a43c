"""Task service: creation and CRUD on top of the store.

Creation validates input, persists a ``todo`` row and hands a snapshot to the
dispatcher. Persisting first means a crash between the two steps loses
nothing: the next startup's recovery schedules the row.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from tasker.tasks.errors import (
    HandoffError,
    TaskHandoffError,
    TaskInProgressError,
    TaskNotFoundError,
    TaskPersistenceError,
    TaskValidationError,
)
from tasker.tasks.ids import new_task_id
from tasker.tasks.store import TaskStore
from tasker.tasks.types import (
    HashTask,
    Task,
    TaskKind,
    TaskState,
    WebhookTask,
    delay_until,
    format_execution_time,
    parse_execution_time,
)

logger = logging.getLogger(__name__)

EXECUTION_TIME_FORMAT_HINT = (
    "field 'execution_time' must contain a valid RFC 3339 datetime, "
    "including timezone, e.g.: '2026-01-30T15:30:00.123456-06:00'"
)
EXECUTION_TIME_PAST_HINT = "field 'execution_time' must contain a datetime that lies in the future"


class Submitter(Protocol):
    async def submit(self, delay: timedelta, task: Task) -> None: ...


def validate_execution_time(value: str, now: datetime | None = None) -> datetime:
    """Parse a client-supplied execution time and require it to be in the future.

    Raises:
        TaskValidationError: If the value is unparsable, has no offset, or is
            not strictly after ``now``.
    """
    try:
        execution_time = parse_execution_time(value)
    except (TypeError, ValueError):
        raise TaskValidationError(EXECUTION_TIME_FORMAT_HINT) from None

    if execution_time <= (now or datetime.now(UTC)):
        raise TaskValidationError(EXECUTION_TIME_PAST_HINT)
    return execution_time


def normalize_url(url: str) -> str:
    """Prefix ``http://`` unless the URL already names http or https."""
    if url.startswith(("http://", "https://")):
        return url
    return f"http://{url}"


class TaskService:
    """Creation interface and task queries."""

    def __init__(self, store: TaskStore, dispatcher: Submitter) -> None:
        self._store = store
        self._dispatcher = dispatcher

    async def create_webhook(self, execution_time: str, url: str, body: str) -> WebhookTask:
        """Create a webhook task and schedule it.

        Raises:
            TaskValidationError: Bad input; nothing persisted.
            TaskPersistenceError: The row could not be written.
            TaskHandoffError: Persisted but not scheduled.
        """
        try:
            when = validate_execution_time(execution_time)
        except TaskValidationError as e:
            raise TaskValidationError(f"Malformed 'webhook': {e}") from None
        if not url:
            raise TaskValidationError("Malformed 'webhook': field 'url' must contain a URL")
        if not body:
            raise TaskValidationError(
                "Malformed 'webhook': field 'body' must contain a request body"
            )

        task = WebhookTask(
            id=new_task_id(),
            state=TaskState.TODO,
            execution_time=format_execution_time(when),
            url=normalize_url(url),
            body=body,
        )
        await self._persist_and_submit(task, when)
        return task

    async def create_hash(self, execution_time: str, secret: str) -> HashTask:
        """Create a hash task and schedule it.

        Raises:
            TaskValidationError: Bad input; nothing persisted.
            TaskPersistenceError: The row could not be written.
            TaskHandoffError: Persisted but not scheduled.
        """
        try:
            when = validate_execution_time(execution_time)
        except TaskValidationError as e:
            raise TaskValidationError(f"Malformed 'hash': {e}") from None
        if not secret:
            raise TaskValidationError("Malformed 'hash': field 'secret' must contain a string")

        task = HashTask(
            id=new_task_id(),
            state=TaskState.TODO,
            execution_time=format_execution_time(when),
            secret=secret,
        )
        await self._persist_and_submit(task, when)
        return task

    async def _persist_and_submit(self, task: Task, when: datetime) -> None:
        try:
            await self._store.insert(task)
        except SQLAlchemyError as e:
            logger.warning(
                "task_insert_failed",
                extra={"task.id": task.id, "task.kind": task.kind.value, "error.message": str(e)},
            )
            raise TaskPersistenceError(
                f"Inserting new {task.kind} task into database failed"
            ) from e

        # The deadline may have passed while the row was written; run it now.
        delay = delay_until(when)
        try:
            await self._dispatcher.submit(delay, task)
        except HandoffError as e:
            # Row stays todo until the next startup's recovery pass.
            logger.warning(
                "task_handoff_failed",
                extra={"task.id": task.id, "error.message": str(e)},
            )
            raise TaskHandoffError(
                task.id, f"Sending new {task.kind} task to delay queue failed"
            ) from e

        logger.info(
            "task_created",
            extra={
                "task.id": task.id,
                "task.kind": task.kind.value,
                "task.execution_time": task.execution_time,
            },
        )

    async def get_task(self, task_id: str) -> Task:
        """Fetch one task.

        Raises:
            TaskNotFoundError: No such id in either table.
            TaskPersistenceError: The store could not be read.
        """
        try:
            task = await self._store.get(task_id)
        except SQLAlchemyError as e:
            raise TaskPersistenceError(f"Fetching task '{task_id}' failed") from e
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_by_state(self, state: TaskState) -> list[Task]:
        try:
            return await self._store.list_by_state(state)
        except SQLAlchemyError as e:
            raise TaskPersistenceError(f"Failed to retrieve {state} tasks from database") from e

    async def list_by_kind(self, kind: TaskKind) -> list[Task]:
        try:
            return await self._store.list_by_kind(kind)
        except SQLAlchemyError as e:
            raise TaskPersistenceError(f"Failed to retrieve {kind} tasks from database") from e

    async def delete_task(self, task_id: str) -> None:
        """Delete a task that is not currently executing.

        Raises:
            TaskNotFoundError: No such id.
            TaskInProgressError: The task is being executed.
            TaskPersistenceError: The store could not be written.
        """
        try:
            if await self._store.delete(task_id):
                return
            existing = await self._store.get(task_id)
            # Finished between the two queries; terminal rows are deletable.
            if (
                existing is not None
                and existing.state != TaskState.IN_PROGRESS
                and await self._store.delete(task_id)
            ):
                return
        except SQLAlchemyError as e:
            raise TaskPersistenceError(f"Deleting task '{task_id}' failed") from e

        if existing is None:
            raise TaskNotFoundError(task_id)
        raise TaskInProgressError(task_id)
