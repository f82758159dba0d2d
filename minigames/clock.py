from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol


class Clock(Protocol):
    def now(self) -> float:  # seconds, monotonic
        ...


class SystemClock:
    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to. Used by tests and replays."""

    def __init__(self, start: float = 0.0):
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("a clock cannot go backwards")
        self._now += seconds
        return self._now


@dataclass(eq=False)
class ScheduledTask:
    due: float
    callback: Callable[[], None]
    interval: float | None = None
    seq: int = 0
    cancelled: bool = field(default=False)


class Scheduler:
    """Timers driven by the engine tick instead of independent callbacks.

    Tasks only run from `run_due`, which the engine calls at the top of each
    playing tick, so a timer and a physics step never interleave.
    """

    def __init__(self):
        self._tasks: list[ScheduledTask] = []
        self._counter = itertools.count()
        self._paused_at: float | None = None

    def __len__(self):
        return len(self._tasks)

    @property
    def paused(self) -> bool:
        return self._paused_at is not None

    def call_at(self, due: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(due=due, callback=callback, seq=next(self._counter))
        self._tasks.append(task)
        return task

    def call_later(self, now: float, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        return self.call_at(now + delay, callback)

    def call_every(self, now: float, interval: float, callback: Callable[[], None]) -> ScheduledTask:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        task = ScheduledTask(due=now + interval, callback=callback, interval=interval, seq=next(self._counter))
        self._tasks.append(task)
        return task

    def cancel(self, task: ScheduledTask) -> None:
        task.cancelled = True
        if task in self._tasks:
            self._tasks.remove(task)

    def clear(self) -> None:
        for task in self._tasks:
            task.cancelled = True
        self._tasks = []
        self._paused_at = None

    def run_due(self, now: float) -> int:
        """Run every task due at `now`, earliest first. Returns how many ran."""
        if self.paused:
            return 0

        ran = 0
        while True:
            due = [t for t in self._tasks if t.due <= now and not t.cancelled]
            if not due:
                break
            task = min(due, key=lambda t: (t.due, t.seq))
            if task.interval is None:
                self._tasks.remove(task)
            else:
                # Re-arm from the previous due time so a slow frame doesn't drift the cadence
                task.due += task.interval
            task.callback()
            ran += 1
        return ran

    def pause(self, now: float) -> None:
        if self._paused_at is None:
            self._paused_at = now

    def resume(self, now: float) -> float:
        """Shift every pending task by the paused duration and return it."""
        if self._paused_at is None:
            return 0.0
        paused_for = max(0.0, now - self._paused_at)
        for task in self._tasks:
            task.due += paused_for
        self._paused_at = None
        return paused_for
