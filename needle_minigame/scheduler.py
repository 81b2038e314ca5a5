from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field

from .clock import Clock

log = logging.getLogger(__name__)

# Absorbs float drift when a scripted clock advances by exact multiples of an interval.
_DUE_EPSILON_S = 1e-9


@dataclass(slots=True, eq=False)
class TaskHandle:
    """Handle for a scheduled callback. Cancelling it guarantees it never runs again."""

    name: str
    due_at_s: float
    callback: Callable[[], None]
    interval_s: float | None = None
    seq: int = 0
    cancelled: bool = False
    finished: bool = False
    runs: int = field(default=0)

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.finished)

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    """Cooperative single-threaded scheduler driven by an injected Clock.

    Nothing runs on its own: the host calls ``run_due()`` (typically once per
    frame) and every task whose due time has passed runs in due-time order.
    Repeating tasks run once per elapsed interval, but never fall further than
    ``max_lag_s`` behind the clock; older periods are dropped.
    """

    def __init__(self, *, clock: Clock, max_lag_s: float = 0.50) -> None:
        if not math.isfinite(max_lag_s) or max_lag_s <= 0.0:
            raise ValueError("max_lag_s must be finite and > 0")
        self._clock = clock
        self._max_lag_s = float(max_lag_s)
        self._tasks: list[TaskHandle] = []
        self._next_seq = 0

    @property
    def clock(self) -> Clock:
        return self._clock

    def pending(self) -> list[TaskHandle]:
        return [t for t in self._tasks if t.pending]

    def call_later(self, delay_s: float, callback: Callable[[], None], *, name: str = "") -> TaskHandle:
        if not math.isfinite(delay_s) or delay_s < 0.0:
            raise ValueError("delay_s must be finite and >= 0")
        return self._add(
            TaskHandle(name=name, due_at_s=self._clock.now() + float(delay_s), callback=callback)
        )

    def call_every(self, interval_s: float, callback: Callable[[], None], *, name: str = "") -> TaskHandle:
        if not math.isfinite(interval_s) or interval_s <= 0.0:
            raise ValueError("interval_s must be finite and > 0")
        return self._add(
            TaskHandle(
                name=name,
                due_at_s=self._clock.now() + float(interval_s),
                callback=callback,
                interval_s=float(interval_s),
            )
        )

    def cancel(self, handle: TaskHandle | None) -> None:
        if handle is None or not handle.pending:
            return
        handle.cancel()
        log.debug("cancelled task %s", handle.name or handle.seq)

    def run_due(self) -> int:
        """Run every task that is due. Returns the number of callbacks invoked."""

        now = self._clock.now()
        ran = 0
        while True:
            self._tasks = [t for t in self._tasks if t.pending]
            task = self._next_due(now)
            if task is None:
                return ran

            if task.interval_s is not None:
                floor_s = now - self._max_lag_s
                while task.due_at_s + task.interval_s < floor_s:
                    task.due_at_s += task.interval_s

            if task.interval_s is None:
                task.finished = True
            else:
                task.due_at_s += task.interval_s

            task.runs += 1
            ran += 1
            task.callback()

    def _next_due(self, now: float) -> TaskHandle | None:
        due = [t for t in self._tasks if t.pending and t.due_at_s <= now + _DUE_EPSILON_S]
        if not due:
            return None
        return min(due, key=lambda t: (t.due_at_s, t.seq))

    def _add(self, handle: TaskHandle) -> TaskHandle:
        handle.seq = self._next_seq
        self._next_seq += 1
        self._tasks.append(handle)
        return handle
