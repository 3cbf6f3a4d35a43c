"""Tasks subsystem: task types, persistence and the creation service.

Public API:
- TaskStore: SQLite persistence with the claim protocol
- TaskService: Validated creation plus get/list/delete

Types:
- TaskState, TaskKind: Lifecycle state and task variant
- WebhookTask, HashTask: Immutable task snapshots
"""

from tasker.tasks.errors import (
    HandoffError,
    RecoveryError,
    TaskError,
    TaskHandoffError,
    TaskInProgressError,
    TaskNotFoundError,
    TaskPersistenceError,
    TaskValidationError,
)
from tasker.tasks.ids import new_task_id
from tasker.tasks.service import TaskService
from tasker.tasks.store import TaskStore
from tasker.tasks.types import (
    HashTask,
    Submission,
    Task,
    TaskKind,
    TaskState,
    WebhookTask,
)

__all__ = [
    "HandoffError",
    "HashTask",
    "RecoveryError",
    "Submission",
    "Task",
    "TaskError",
    "TaskHandoffError",
    "TaskInProgressError",
    "TaskKind",
    "TaskNotFoundError",
    "TaskPersistenceError",
    "TaskService",
    "TaskState",
    "TaskStore",
    "TaskValidationError",
    "WebhookTask",
    "new_task_id",
]
