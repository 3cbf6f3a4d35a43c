"""Startup recovery: rebuild the schedule from the store.

Runs once, after the dispatcher is up and before the server accepts
requests. Tasks left ``in_progress`` by a previous process are returned to
``todo`` first, then every ``todo`` task is re-submitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from tasker.tasks.errors import HandoffError, RecoveryError
from tasker.tasks.store import TaskStore
from tasker.tasks.types import Task, TaskKind, TaskState, delay_until, parse_execution_time

logger = logging.getLogger(__name__)

DEFAULT_MIN_DELAY = timedelta(milliseconds=100)


class Submitter(Protocol):
    async def submit(self, delay: timedelta, task: Task) -> None: ...


@dataclass
class RecoveryReport:
    """What a recovery pass did."""

    healed: dict[TaskKind, int] = field(default_factory=dict)
    submitted: dict[TaskKind, int] = field(default_factory=dict)
    unparsable: int = 0

    @property
    def total_submitted(self) -> int:
        return sum(self.submitted.values())


class RecoveryLoader:
    """Re-submits persisted ``todo`` tasks to the dispatcher."""

    def __init__(
        self,
        store: TaskStore,
        dispatcher: Submitter,
        *,
        min_delay: timedelta = DEFAULT_MIN_DELAY,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._min_delay = min_delay

    async def recover(self, now: datetime | None = None) -> RecoveryReport:
        """Heal stale claims and re-submit every ``todo`` task.

        Overdue tasks get ``min_delay`` instead of a zero delay. A task whose
        execution time cannot be parsed is submitted with ``min_delay`` too;
        its executor marks it failed.

        Raises:
            RecoveryError: If the store cannot be read or the dispatcher
                refuses a submission. The process must not serve in that case.
        """
        report = RecoveryReport()

        try:
            report.healed = await self._store.reset_in_progress()
        except SQLAlchemyError as e:
            raise RecoveryError(f"Failed to reset in-progress tasks: {e}") from e

        healed = sum(report.healed.values())
        if healed:
            logger.warning("recovery_healed_tasks", extra={"count": healed})

        for kind in TaskKind:
            try:
                tasks = await self._store.list_by_kind(kind, TaskState.TODO)
            except SQLAlchemyError as e:
                raise RecoveryError(f"Failed to load {kind} tasks: {e}") from e

            for task in tasks:
                delay = self._delay_for(task, now)
                if delay is None:
                    report.unparsable += 1
                    delay = self._min_delay
                try:
                    await self._dispatcher.submit(delay, task)
                except HandoffError as e:
                    raise RecoveryError(
                        f"Failed to submit task {task.id} during recovery: {e}"
                    ) from e
            report.submitted[kind] = len(tasks)

        logger.info(
            "recovery_complete",
            extra={
                "recovery.healed": healed,
                "recovery.submitted": report.total_submitted,
                "recovery.unparsable": report.unparsable,
            },
        )
        return report

    def _delay_for(self, task: Task, now: datetime | None) -> timedelta | None:
        try:
            execution_time = parse_execution_time(task.execution_time)
        except ValueError:
            logger.warning(
                "recovery_unparsable_time",
                extra={"task.id": task.id, "task.execution_time": task.execution_time},
            )
            return None
        return delay_until(
            execution_time, now=now or datetime.now(UTC), floor=self._min_delay
        )
