"""Task error taxonomy.

Validation, persistence and hand-off errors surface to callers of the
creation interface. Execution and defensive errors are handled inside the
executors and end in the ``failed`` state instead of being raised.
"""


class TaskError(Exception):
    """Base class for task errors."""


class TaskValidationError(TaskError):
    """Malformed, missing or past-dated input. Nothing was persisted."""


class TaskPersistenceError(TaskError):
    """The store was unavailable or a write failed."""


class HandoffError(TaskError):
    """A snapshot could not reach the dispatcher."""


class TaskHandoffError(HandoffError):
    """A task was persisted but never scheduled.

    The row stays ``todo`` until the next startup's recovery pass.
    """

    def __init__(self, task_id: str, message: str) -> None:
        super().__init__(message)
        self.task_id = task_id


class TaskNotFoundError(TaskError):
    """No task with the given id exists."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task '{task_id}' does not exist")
        self.task_id = task_id


class TaskInProgressError(TaskError):
    """The task is being executed and cannot be deleted."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task '{task_id}' is in progress and cannot be deleted")
        self.task_id = task_id


class RecoveryError(TaskError):
    """Startup recovery failed; serving would leave the queue incomplete."""
