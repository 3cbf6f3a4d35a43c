"""Dispatcher: the single owner of the scheduling queue.

Producers (the task service and startup recovery) hand ``(delay, snapshot)``
pairs to ``submit()``. The dispatcher loop inserts them into its queue and,
as deadlines pass, spawns one executor task per released snapshot.

Executors are supervised: each spawned task is tracked until it finishes and
an optional semaphore caps how many run their action at once. The cap is a
resource control only. Duplicate snapshots are resolved by the store's claim.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping
from datetime import timedelta

from tasker.scheduler.executors import Executor
from tasker.scheduler.queue import SchedulingQueue
from tasker.tasks.errors import HandoffError
from tasker.tasks.types import Submission, Task, TaskKind

logger = logging.getLogger(__name__)


class Dispatcher:
    """Coordinates submissions, releases and executor spawning.

    Example:
        dispatcher = Dispatcher({TaskKind.WEBHOOK: webhook_executor, ...})
        loop_task = asyncio.create_task(dispatcher.run())
        await dispatcher.submit(timedelta(seconds=5), task)
        ...
        dispatcher.stop()
        await loop_task
        await dispatcher.drain(timeout=10)
    """

    def __init__(
        self,
        executors: Mapping[TaskKind, Executor],
        *,
        capacity: int = 256,
        max_concurrent: int | None = 64,
        submit_timeout: float | None = None,
        queue: SchedulingQueue | None = None,
    ) -> None:
        self._executors = dict(executors)
        self._submissions: asyncio.Queue[Submission] = asyncio.Queue(maxsize=capacity)
        self._submit_timeout = submit_timeout
        self._queue = queue or SchedulingQueue()
        self._semaphore = (
            asyncio.Semaphore(max_concurrent) if max_concurrent is not None else None
        )
        self._running: set[asyncio.Task[None]] = set()
        self._shutdown = asyncio.Event()
        self._closed = False

    @property
    def outstanding(self) -> int:
        """Number of spawned executors that have not finished yet."""
        return len(self._running)

    @property
    def pending(self) -> int:
        """Snapshots submitted or queued but not yet released."""
        return len(self._queue) + self._submissions.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    async def submit(self, delay: timedelta, task: Task) -> None:
        """Hand a snapshot to the dispatcher.

        Waits while the submission channel is full.

        Raises:
            HandoffError: If the dispatcher is shut down or the channel stays
                full past the submit timeout.
        """
        if self._closed:
            raise HandoffError("dispatcher is shut down")
        try:
            await asyncio.wait_for(
                self._submissions.put(Submission(delay, task)),
                timeout=self._submit_timeout,
            )
        except TimeoutError:
            raise HandoffError("dispatcher submission channel is full") from None

    def stop(self) -> None:
        """Signal the loop to return. Submissions are refused from now on."""
        self._closed = True
        self._shutdown.set()

    async def run(self) -> None:
        """Run the dispatch loop until stop() is called."""
        logger.info("dispatcher_started")
        getter: asyncio.Task[Submission] | None = None
        stopper = asyncio.create_task(self._shutdown.wait())
        try:
            while True:
                for task in self._queue.released():
                    self._spawn(task)

                if getter is None:
                    getter = asyncio.create_task(self._submissions.get())

                done, _ = await asyncio.wait(
                    {getter, stopper},
                    timeout=self._queue.time_until_next(),
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if getter in done:
                    submission = getter.result()
                    getter = None
                    self._queue.insert(submission.task, submission.delay)
                    logger.debug(
                        "task_enqueued",
                        extra={
                            "task.id": submission.task.id,
                            "task.delay_s": submission.delay.total_seconds(),
                        },
                    )

                if stopper in done:
                    break
        finally:
            self._closed = True
            for waiter in (getter, stopper):
                if waiter is not None and not waiter.done():
                    waiter.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await waiter
            logger.info(
                "dispatcher_stopped",
                extra={"queue.pending": len(self._queue), "executors.outstanding": self.outstanding},
            )

    def _spawn(self, task: Task) -> None:
        executor = self._executors.get(task.kind)
        if executor is None:
            logger.error(
                "no_executor_for_kind",
                extra={"task.id": task.id, "task.kind": task.kind.value},
            )
            return

        logger.debug(
            "task_released", extra={"task.id": task.id, "task.kind": task.kind.value}
        )
        running = asyncio.create_task(
            self._run_executor(executor, task), name=f"executor-{task.id}"
        )
        self._running.add(running)
        running.add_done_callback(self._running.discard)

    async def _run_executor(self, executor: Executor, task: Task) -> None:
        try:
            if self._semaphore is None:
                await executor.run(task)
            else:
                async with self._semaphore:
                    await executor.run(task)
        except Exception:
            logger.exception("executor_crashed", extra={"task.id": task.id})

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for spawned executors, cancelling stragglers after ``timeout``.

        A cancelled executor leaves its task ``in_progress``; the next
        startup's recovery returns it to ``todo``.

        Returns:
            Number of executors cancelled.
        """
        if not self._running:
            return 0

        _, still_running = await asyncio.wait(set(self._running), timeout=timeout)
        for running in still_running:
            running.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning(
                "executors_cancelled", extra={"executors.cancelled": len(still_running)}
            )
        return len(still_running)
