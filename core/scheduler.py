"""
Single-threaded cooperative scheduler for the game's recurring activities.

A session runs three named recurring tasks (frame, countdown, spawn) on
one scheduler. There is no preemption: each callback runs to completion,
so shared game state needs no locking. Ordering between different tasks
is not part of the contract; every callback re-checks the session state
as its first action.

A callback returning False cancels its own task.

The scheduler runs either against a wall clock (run_forever) or a
virtual clock advanced explicitly (advance), which keeps timing tests
deterministic.
"""

import time
import logging
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class RecurringTask:
    """A named callback fired every interval_ms until cancelled."""

    __slots__ = ("name", "interval_ms", "callback", "next_run", "cancelled",
                 "run_count", "_seq")

    def __init__(self, name: str, interval_ms: float, callback: Callable,
                 next_run: float, seq: int):
        self.name = name
        self.interval_ms = max(1.0, float(interval_ms))
        self.callback = callback
        self.next_run = next_run
        self.cancelled = False
        self.run_count = 0
        self._seq = seq

    def cancel(self):
        self.cancelled = True

    def __repr__(self):
        return (f"RecurringTask({self.name}, every {self.interval_ms:.0f}ms, "
                f"runs={self.run_count}, cancelled={self.cancelled})")


class Scheduler:
    """Cooperative scheduler of named recurring tasks.

    Args:
        clock: callable returning the current time in milliseconds.
            When omitted, a virtual clock starting at 0 is used and time
            only moves through advance().
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock
        self._virtual_now = 0.0
        self._tasks: Dict[str, RecurringTask] = {}
        self._seq = 0
        self._shutdown = False

    @classmethod
    def wall_clock(cls) -> "Scheduler":
        return cls(clock=lambda: time.monotonic() * 1000)

    @property
    def is_virtual(self) -> bool:
        return self._clock is None

    def now(self) -> float:
        if self._clock is None:
            return self._virtual_now
        return self._clock()

    # ------------------------------------------------------------------
    # Task management
    # ------------------------------------------------------------------

    def schedule(self, name: str, interval_ms: float, callback: Callable,
                 delay_ms: Optional[float] = None) -> RecurringTask:
        """Register a recurring task, replacing any task with the same name.

        The first run happens after delay_ms (defaults to one interval).
        The callback receives the current time in ms.
        """
        existing = self._tasks.get(name)
        if existing is not None:
            existing.cancel()

        delay = interval_ms if delay_ms is None else delay_ms
        self._seq += 1
        task = RecurringTask(name, interval_ms, callback, self.now() + delay, self._seq)
        self._tasks[name] = task
        logger.debug("Scheduled %s", task)
        return task

    def cancel(self, name: str) -> bool:
        task = self._tasks.pop(name, None)
        if task is None:
            return False
        task.cancel()
        logger.debug("Cancelled task '%s'", name)
        return True

    def cancel_all(self):
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()

    def get(self, name: str) -> Optional[RecurringTask]:
        return self._tasks.get(name)

    @property
    def task_names(self) -> List[str]:
        return sorted(self._tasks)

    @property
    def has_tasks(self) -> bool:
        return bool(self._tasks)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _next_due(self) -> Optional[RecurringTask]:
        live = [t for t in self._tasks.values() if not t.cancelled]
        if not live:
            return None
        return min(live, key=lambda t: (t.next_run, t._seq))

    def _fire(self, task: RecurringTask, now: float):
        task.run_count += 1
        try:
            keep = task.callback(now)
        except Exception as e:
            # A failing tick is a no-op; the task keeps its schedule.
            logger.error("Task '%s' raised: %s", task.name, e, exc_info=True)
            keep = True

        if keep is False:
            task.cancel()

        if task.cancelled:
            if self._tasks.get(task.name) is task:
                del self._tasks[task.name]
            return

        task.next_run += task.interval_ms
        if task.next_run <= now - task.interval_ms:
            # Fell behind on a wall clock: skip missed runs.
            task.next_run = now + task.interval_ms

    def run_pending(self, now: Optional[float] = None) -> int:
        """Fire every task that is due at `now`, once each.

        Returns:
            Number of callbacks invoked
        """
        now = self.now() if now is None else now
        due = sorted(
            (t for t in self._tasks.values() if not t.cancelled and t.next_run <= now),
            key=lambda t: (t.next_run, t._seq),
        )
        fired = 0
        for task in due:
            # An earlier callback in this pass may have cancelled it.
            if task.cancelled:
                continue
            self._fire(task, now)
            fired += 1
        return fired

    def advance(self, ms: float) -> int:
        """Move the virtual clock forward, firing tasks at their due times.

        Returns:
            Number of callbacks invoked
        """
        if not self.is_virtual:
            raise RuntimeError("advance() requires a virtual clock")

        target = self._virtual_now + ms
        fired = 0
        while True:
            task = self._next_due()
            if task is None or task.next_run > target:
                break
            self._virtual_now = max(self._virtual_now, task.next_run)
            self._fire(task, self._virtual_now)
            fired += 1
        self._virtual_now = target
        return fired

    def run_forever(self, max_sleep_ms: float = 5.0):
        """Drive the tasks against the wall clock until none remain."""
        if self.is_virtual:
            raise RuntimeError("run_forever() requires a wall clock")

        self._shutdown = False
        logger.info("Scheduler running (%s)", ", ".join(self.task_names))
        while self._tasks and not self._shutdown:
            self.run_pending()
            task = self._next_due()
            if task is None:
                break
            wait_ms = min(max(task.next_run - self.now(), 0.0), max_sleep_ms)
            if wait_ms > 0:
                time.sleep(wait_ms / 1000.0)
        logger.info("Scheduler stopped")

    def shutdown(self):
        """Ask run_forever() to return after the current pass."""
        self._shutdown = True
