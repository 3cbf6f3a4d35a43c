"""Tests for the dispatcher and its executor pool."""

import asyncio
from collections.abc import AsyncGenerator, Callable
from datetime import timedelta

import pytest

from tasker.scheduler.dispatcher import Dispatcher
from tasker.scheduler.executors import HashExecutor
from tasker.scheduler.hashing import HashParams
from tasker.tasks.errors import HandoffError
from tasker.tasks.store import TaskStore
from tasker.tasks.types import Task, TaskKind, TaskState
from tests.conftest import make_hash, make_webhook


class FakeExecutor:
    """Records runs; optionally blocks until released."""

    def __init__(self, gate: asyncio.Event | None = None, fail: bool = False):
        self.ran: list[str] = []
        self.active = 0
        self.peak = 0
        self._gate = gate
        self._fail = fail

    async def run(self, task: Task) -> TaskState:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self._gate is not None:
                await self._gate.wait()
            if self._fail:
                raise RuntimeError("executor bug")
            self.ran.append(task.id)
            return TaskState.DONE
        finally:
            self.active -= 1


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
async def dispatcher(executor: FakeExecutor) -> AsyncGenerator[Dispatcher, None]:
    dispatcher = Dispatcher({TaskKind.WEBHOOK: executor, TaskKind.HASH: executor})  # type: ignore[dict-item]
    loop_task = asyncio.create_task(dispatcher.run())
    yield dispatcher
    dispatcher.stop()
    await loop_task
    await dispatcher.drain(timeout=1)


class TestDispatch:
    """Tests for submission and release."""

    @pytest.mark.asyncio
    async def test_runs_due_task(self, dispatcher: Dispatcher, executor: FakeExecutor):
        task = make_webhook()
        await dispatcher.submit(timedelta(0), task)
        await eventually(lambda: executor.ran == [task.id])

    @pytest.mark.asyncio
    async def test_holds_task_until_delay(self, dispatcher: Dispatcher, executor: FakeExecutor):
        task = make_hash()
        await dispatcher.submit(timedelta(seconds=0.3), task)

        await asyncio.sleep(0.1)
        assert executor.ran == []
        assert dispatcher.pending == 1

        await eventually(lambda: executor.ran == [task.id])

    @pytest.mark.asyncio
    async def test_releases_in_deadline_order(self, dispatcher: Dispatcher, executor: FakeExecutor):
        later, sooner = make_hash(), make_hash()
        await dispatcher.submit(timedelta(seconds=0.2), later)
        await dispatcher.submit(timedelta(seconds=0.05), sooner)

        await eventually(lambda: len(executor.ran) == 2)
        assert executor.ran == [sooner.id, later.id]

    @pytest.mark.asyncio
    async def test_new_earlier_submission_preempts_wait(
        self, dispatcher: Dispatcher, executor: FakeExecutor
    ):
        distant, urgent = make_hash(), make_hash()
        await dispatcher.submit(timedelta(seconds=30), distant)
        await dispatcher.submit(timedelta(0), urgent)

        await eventually(lambda: executor.ran == [urgent.id])
        assert dispatcher.pending == 1

    @pytest.mark.asyncio
    async def test_executor_crash_does_not_stop_dispatch(self):
        crashing = FakeExecutor(fail=True)
        healthy = FakeExecutor()
        dispatcher = Dispatcher({TaskKind.WEBHOOK: crashing, TaskKind.HASH: healthy})  # type: ignore[dict-item]
        loop_task = asyncio.create_task(dispatcher.run())
        try:
            await dispatcher.submit(timedelta(0), make_webhook())
            task = make_hash()
            await dispatcher.submit(timedelta(0), task)
            await eventually(lambda: healthy.ran == [task.id])
            assert not loop_task.done()
        finally:
            dispatcher.stop()
            await loop_task


class TestDuplicateReleases:
    @pytest.mark.asyncio
    async def test_duplicate_snapshots_execute_once(self, store: TaskStore):
        hashes: list[str] = []
        executor = HashExecutor(
            store,
            params=HashParams(iterations=1_000),
            on_hash=lambda _task, encoded: hashes.append(encoded),
        )
        dispatcher = Dispatcher({TaskKind.HASH: executor})
        loop_task = asyncio.create_task(dispatcher.run())

        task = make_hash()
        await store.insert(task)
        try:
            for _ in range(5):
                await dispatcher.submit(timedelta(0), task)
            await eventually(lambda: len(hashes) == 1)
            # Give the losing executors time to attempt their claims
            await asyncio.sleep(0.2)
            await eventually(lambda: dispatcher.pending == 0 and dispatcher.outstanding == 0)
        finally:
            dispatcher.stop()
            await loop_task
            await dispatcher.drain(timeout=5)

        assert len(hashes) == 1
        stored = await store.get(task.id)
        assert stored is not None
        assert stored.state == TaskState.DONE


class TestExecutorPool:
    """Tests for the bounded executor pool."""

    @pytest.mark.asyncio
    async def test_concurrency_cap(self):
        gate = asyncio.Event()
        executor = FakeExecutor(gate=gate)
        dispatcher = Dispatcher({TaskKind.HASH: executor}, max_concurrent=2)  # type: ignore[dict-item]
        loop_task = asyncio.create_task(dispatcher.run())
        try:
            for _ in range(5):
                await dispatcher.submit(timedelta(0), make_hash())
            await eventually(lambda: dispatcher.outstanding == 5)
            await asyncio.sleep(0.05)
            assert executor.active == 2

            gate.set()
            await eventually(lambda: len(executor.ran) == 5)
            assert executor.peak == 2
        finally:
            dispatcher.stop()
            await loop_task

    @pytest.mark.asyncio
    async def test_drain_waits_for_executors(self):
        gate = asyncio.Event()
        executor = FakeExecutor(gate=gate)
        dispatcher = Dispatcher({TaskKind.HASH: executor})  # type: ignore[dict-item]
        loop_task = asyncio.create_task(dispatcher.run())

        await dispatcher.submit(timedelta(0), make_hash())
        await eventually(lambda: dispatcher.outstanding == 1)
        dispatcher.stop()
        await loop_task

        asyncio.get_running_loop().call_later(0.05, gate.set)
        assert await dispatcher.drain(timeout=2) == 0
        assert len(executor.ran) == 1
        assert dispatcher.outstanding == 0

    @pytest.mark.asyncio
    async def test_drain_cancels_stragglers(self):
        executor = FakeExecutor(gate=asyncio.Event())
        dispatcher = Dispatcher({TaskKind.HASH: executor})  # type: ignore[dict-item]
        loop_task = asyncio.create_task(dispatcher.run())

        await dispatcher.submit(timedelta(0), make_hash())
        await eventually(lambda: dispatcher.outstanding == 1)
        dispatcher.stop()
        await loop_task

        assert await dispatcher.drain(timeout=0.05) == 1
        assert executor.ran == []
        assert dispatcher.outstanding == 0

    @pytest.mark.asyncio
    async def test_drain_without_executors(self):
        dispatcher = Dispatcher({})
        assert await dispatcher.drain(timeout=0) == 0


class TestHandoff:
    """Tests for submission failures."""

    @pytest.mark.asyncio
    async def test_submit_after_stop(self, executor: FakeExecutor):
        dispatcher = Dispatcher({TaskKind.HASH: executor})  # type: ignore[dict-item]
        loop_task = asyncio.create_task(dispatcher.run())
        dispatcher.stop()
        await loop_task

        assert dispatcher.closed
        with pytest.raises(HandoffError):
            await dispatcher.submit(timedelta(0), make_hash())

    @pytest.mark.asyncio
    async def test_submit_times_out_when_full(self):
        dispatcher = Dispatcher({}, capacity=1, submit_timeout=0.05)
        # Loop not running: nothing drains the channel
        await dispatcher.submit(timedelta(0), make_hash())
        with pytest.raises(HandoffError, match="full"):
            await dispatcher.submit(timedelta(0), make_hash())

    @pytest.mark.asyncio
    async def test_stop_leaves_pending_tasks_unreleased(self, executor: FakeExecutor):
        dispatcher = Dispatcher({TaskKind.HASH: executor})  # type: ignore[dict-item]
        loop_task = asyncio.create_task(dispatcher.run())
        await dispatcher.submit(timedelta(seconds=60), make_hash())
        await eventually(lambda: dispatcher.pending == 1)

        dispatcher.stop()
        await asyncio.wait_for(loop_task, timeout=1)
        assert executor.ran == []
