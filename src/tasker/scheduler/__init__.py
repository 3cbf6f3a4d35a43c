"""Scheduling subsystem: time-triggered task execution.

Public API:
- SchedulingQueue: In-memory deadline-ordered wait structure
- Dispatcher: Owns the queue and spawns executors for due tasks
- WebhookExecutor, HashExecutor: Claim, act and finalize one task
- RecoveryLoader: Re-submits persisted tasks at startup
- SchedulerRuntime: Wires everything together and owns the lifecycle
"""

from tasker.scheduler.dispatcher import Dispatcher
from tasker.scheduler.executors import Executor, HashExecutor, WebhookExecutor
from tasker.scheduler.queue import SchedulingQueue
from tasker.scheduler.recovery import RecoveryLoader, RecoveryReport
from tasker.scheduler.runtime import SchedulerRuntime, build_executors

__all__ = [
    "Dispatcher",
    "Executor",
    "HashExecutor",
    "RecoveryLoader",
    "RecoveryReport",
    "SchedulerRuntime",
    "SchedulingQueue",
    "WebhookExecutor",
    "build_executors",
]
