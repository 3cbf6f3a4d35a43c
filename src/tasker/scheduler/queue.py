"""In-memory time-ordered wait structure.

Not thread-safe and not meant to be shared: the dispatcher owns the only
instance and is the only caller.
"""

from __future__ import annotations

import heapq
import itertools
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import timedelta

from tasker.tasks.types import Task


@dataclass(order=True)
class _Entry:
    deadline: float
    seq: int
    task: Task = field(compare=False)


class SchedulingQueue:
    """Releases task snapshots once their delay has elapsed.

    Deadlines are absolute readings of a monotonic clock. Entries with the same
    deadline come out in insertion order.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._heap: list[_Entry] = []
        self._seq = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def insert(self, task: Task, delay: timedelta) -> None:
        """Schedule ``task`` for release ``delay`` from now."""
        deadline = self._clock() + max(delay.total_seconds(), 0.0)
        heapq.heappush(self._heap, _Entry(deadline, next(self._seq), task))

    def released(self) -> Iterator[Task]:
        """Yield every snapshot whose deadline has passed, earliest first.

        Lazy: the clock is re-read before each yield, so entries that fall due
        while the caller works through the sequence are included too.
        """
        while self._heap and self._heap[0].deadline <= self._clock():
            yield heapq.heappop(self._heap).task

    def time_until_next(self) -> float | None:
        """Seconds until the earliest deadline, or None when empty."""
        if not self._heap:
            return None
        return max(self._heap[0].deadline - self._clock(), 0.0)
