"""Task types shared by the store, the scheduler and the API.

Public types:
- TaskState: lifecycle state persisted with every row
- TaskKind: which table/executor a task belongs to
- WebhookTask, HashTask: immutable task snapshots
- Submission: a (delay, snapshot) pair handed to the dispatcher
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, ClassVar


class TaskState(StrEnum):
    """Task lifecycle states."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"
    DONE = "done"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.FAILED, TaskState.DONE)


class TaskKind(StrEnum):
    """Task variants, one table each."""

    WEBHOOK = "webhook"
    HASH = "hash"


@dataclass(frozen=True)
class WebhookTask:
    """Snapshot of a webhook task row."""

    kind: ClassVar[TaskKind] = TaskKind.WEBHOOK

    id: str
    state: TaskState
    execution_time: str
    url: str
    body: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


@dataclass(frozen=True)
class HashTask:
    """Snapshot of a hash task row."""

    kind: ClassVar[TaskKind] = TaskKind.HASH

    id: str
    state: TaskState
    execution_time: str
    secret: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


Task = WebhookTask | HashTask


@dataclass(frozen=True)
class Submission:
    """A snapshot plus how long to wait before releasing it."""

    delay: timedelta
    task: Task


# RFC 3339 date-time: extended date and time, required Z or +HH:MM offset
_RFC3339_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})"
)


def parse_execution_time(value: str) -> datetime:
    """Parse an RFC 3339 timestamp that carries an explicit offset.

    Basic-format ISO 8601 (``20990130T153000+0500``), week dates and naive
    datetimes are rejected even though ``datetime.fromisoformat`` takes them.

    Raises:
        ValueError: If the value is not an RFC 3339 datetime.
    """
    if not _RFC3339_RE.fullmatch(value):
        raise ValueError(f"timestamp is not RFC 3339 with a UTC offset: {value!r}")
    return datetime.fromisoformat(value)


def format_execution_time(value: datetime) -> str:
    """Canonical text form stored in the database.

    Always UTC, so text ordering of stored values is chronological.
    """
    return value.astimezone(UTC).isoformat()


def delay_until(
    execution_time: datetime,
    *,
    now: datetime | None = None,
    floor: timedelta = timedelta(0),
) -> timedelta:
    """Time left until ``execution_time``, never less than ``floor``."""
    now = now or datetime.now(UTC)
    return max(execution_time - now, floor)
