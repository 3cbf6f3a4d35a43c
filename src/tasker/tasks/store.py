"""Task store backed by SQLite.

Each task kind lives in its own table. The store is the single source of
truth for task state; in-memory snapshots held by the scheduler are copies.

State transitions are conditional updates. The caller inspects the affected
row count to learn whether its transition won:

- claim:            todo        -> in_progress
- finish:           in_progress -> done | failed
- fail_unparsable:  todo        -> failed
- reset_in_progress in_progress -> todo   (startup only)

SQLite serializes writers, so exactly one of several concurrent claimants
observes an affected row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import text

from tasker.db import Database
from tasker.tasks.types import HashTask, Task, TaskKind, TaskState, WebhookTask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _TableSpec:
    name: str
    columns: tuple[str, ...]


_TABLES: dict[TaskKind, _TableSpec] = {
    TaskKind.WEBHOOK: _TableSpec(
        "webhooks", ("id", "state", "execution_time", "url", "body")
    ),
    TaskKind.HASH: _TableSpec("hashes", ("id", "state", "execution_time", "secret")),
}


def _row_to_task(kind: TaskKind, row) -> Task:
    """Convert a SQLite row to a task snapshot."""
    if kind == TaskKind.WEBHOOK:
        return WebhookTask(
            id=row.id,
            state=TaskState(row.state),
            execution_time=row.execution_time,
            url=row.url,
            body=row.body,
        )
    return HashTask(
        id=row.id,
        state=TaskState(row.state),
        execution_time=row.execution_time,
        secret=row.secret,
    )


class TaskStore:
    """Persistence for webhook and hash tasks."""

    def __init__(self, database: Database) -> None:
        self._db = database

    @property
    def database(self) -> Database:
        return self._db

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def insert(self, task: Task) -> None:
        """Insert a new task row.

        Raises:
            sqlalchemy.exc.IntegrityError: If the id already exists.
        """
        table = _TABLES[task.kind]
        params = task.to_dict()
        columns = ", ".join(table.columns)
        values = ", ".join(f":{c}" for c in table.columns)
        async with self._db.session() as session:
            await session.execute(
                text(f"INSERT INTO {table.name} ({columns}) VALUES ({values})"),
                {c: params[c] for c in table.columns},
            )
        logger.debug(
            "task_inserted",
            extra={"task.id": task.id, "task.kind": task.kind.value},
        )

    async def get(self, task_id: str) -> Task | None:
        """Fetch a task by id, looking in the webhooks table first."""
        async with self._db.session() as session:
            for kind, table in _TABLES.items():
                result = await session.execute(
                    text(
                        f"SELECT {', '.join(table.columns)} FROM {table.name} WHERE id = :id"
                    ),
                    {"id": task_id},
                )
                row = result.fetchone()
                if row:
                    return _row_to_task(kind, row)
        return None

    async def list_by_kind(
        self, kind: TaskKind, state: TaskState | None = None
    ) -> list[Task]:
        """List tasks of one kind ordered by execution time."""
        table = _TABLES[kind]
        sql = f"SELECT {', '.join(table.columns)} FROM {table.name}"
        params: dict[str, str] = {}
        if state is not None:
            sql += " WHERE state = :state"
            params["state"] = state.value
        sql += " ORDER BY execution_time ASC"

        async with self._db.session() as session:
            result = await session.execute(text(sql), params)
            return [_row_to_task(kind, row) for row in result.fetchall()]

    async def list_by_state(self, state: TaskState) -> list[Task]:
        """List tasks in a state: webhooks first, then hashes."""
        tasks: list[Task] = []
        for kind in _TABLES:
            tasks.extend(await self.list_by_kind(kind, state))
        return tasks

    async def delete(self, task_id: str) -> bool:
        """Delete a task unless it is in progress.

        Returns:
            True if a row was deleted.
        """
        async with self._db.session() as session:
            for table in _TABLES.values():
                r = await session.execute(
                    text(
                        f"DELETE FROM {table.name} WHERE id = :id AND state != :in_progress"
                    ),
                    {"id": task_id, "in_progress": TaskState.IN_PROGRESS.value},
                )
                if r.rowcount > 0:
                    logger.info("task_deleted", extra={"task.id": task_id})
                    return True
        return False

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def _transition(
        self,
        kind: TaskKind,
        task_id: str,
        *,
        expected: TaskState,
        new: TaskState,
    ) -> bool:
        table = _TABLES[kind]
        async with self._db.session() as session:
            r = await session.execute(
                text(
                    f"UPDATE {table.name} SET state = :new WHERE id = :id AND state = :expected"
                ),
                {"new": new.value, "id": task_id, "expected": expected.value},
            )
            return r.rowcount == 1

    async def claim(self, kind: TaskKind, task_id: str) -> bool:
        """Atomically take ownership of a task.

        Returns:
            True if this caller moved the row from todo to in_progress.
        """
        return await self._transition(
            kind, task_id, expected=TaskState.TODO, new=TaskState.IN_PROGRESS
        )

    async def finish(self, kind: TaskKind, task_id: str, state: TaskState) -> bool:
        """Write the terminal state of an owned task."""
        if not state.is_terminal:
            raise ValueError(f"not a terminal state: {state}")
        return await self._transition(
            kind, task_id, expected=TaskState.IN_PROGRESS, new=state
        )

    async def fail_unparsable(self, kind: TaskKind, task_id: str) -> bool:
        """Mark a task whose execution time cannot be parsed as failed."""
        return await self._transition(
            kind, task_id, expected=TaskState.TODO, new=TaskState.FAILED
        )

    async def reset_in_progress(self) -> dict[TaskKind, int]:
        """Return every in_progress row to todo.

        Only safe while no executor runs, i.e. at startup before recovery.
        """
        counts: dict[TaskKind, int] = {}
        async with self._db.session() as session:
            for kind, table in _TABLES.items():
                r = await session.execute(
                    text(f"UPDATE {table.name} SET state = :todo WHERE state = :in_progress"),
                    {
                        "todo": TaskState.TODO.value,
                        "in_progress": TaskState.IN_PROGRESS.value,
                    },
                )
                counts[kind] = r.rowcount
        return counts
