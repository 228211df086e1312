"""Fan-in progress reporting for parallel workers.

Workers push ``(worker_id, cumulative_count)`` tuples onto a bounded queue
without ever blocking; one listener thread folds them into per-worker totals
and refreshes a rich progress bar on a fixed tick.
"""
from __future__ import annotations

import queue
import threading
from contextlib import ExitStack
from time import monotonic, perf_counter
from typing import Any, Optional

from .core.log import get_logger, progress_manager

logger = get_logger(__name__)

QUEUE_SLOTS_PER_WORKER = 100
DEFAULT_TICK = 0.1


def queue_size(worker_count: int) -> int:
    return max(1, worker_count) * QUEUE_SLOTS_PER_WORKER


def publish(updates: Any, worker_id: int, count: int) -> bool:
    """Offer a cumulative count; drop it when the queue is full.

    A later update from the same worker supersedes a dropped one.
    """

    try:
        updates.put_nowait((worker_id, count))
    except queue.Full:
        return False
    return True


class AggregatedProgressReporter:
    """Collects per-worker counters into one combined view."""

    def __init__(
        self,
        label: str,
        worker_count: int,
        *,
        updates: Any = None,
        total: Optional[int] = None,
        unit: str = "rows",
        tick: float = DEFAULT_TICK,
        show: bool = True,
    ) -> None:
        self.label = label
        self.worker_count = worker_count
        self.updates = updates if updates is not None else queue.Queue(maxsize=queue_size(worker_count))
        self.unit = unit
        self.tick = tick
        self.show = show
        self._expected = total
        self._counts = [0] * worker_count
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stack = ExitStack()
        self._task = None
        self._started_at = 0.0
        self.elapsed = 0.0
        self.renders = 0

    def __enter__(self) -> "AggregatedProgressReporter":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.finish()

    @property
    def counts(self) -> list[int]:
        with self._lock:
            return list(self._counts)

    @property
    def total(self) -> int:
        with self._lock:
            return sum(self._counts)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._started_at = perf_counter()
        self._task = self._stack.enter_context(
            progress_manager.task(self.label, total=self._expected, unit=self.unit, disable=not self.show)
        )
        self._thread = threading.Thread(target=self._listen, name=f"progress-{self.label}", daemon=True)
        self._thread.start()

    def record(self, worker_id: int, count: int) -> None:
        """Apply a cumulative count for ``worker_id``; stale values are ignored."""

        with self._lock:
            if count > self._counts[worker_id]:
                self._counts[worker_id] = count

    def _listen(self) -> None:
        last_render = monotonic()
        while not self._stop.is_set():
            try:
                worker_id, count = self.updates.get(timeout=self.tick)
            except queue.Empty:
                pass
            else:
                self.record(worker_id, count)
            now = monotonic()
            if now - last_render >= self.tick:
                self._render()
                last_render = now

    def _drain(self) -> None:
        while True:
            try:
                worker_id, count = self.updates.get_nowait()
            except queue.Empty:
                return
            self.record(worker_id, count)

    def _render(self) -> None:
        if self._task is not None:
            self._task.update(completed=self.total)
        self.renders += 1

    def finish(self) -> int:
        """Stop listening, drain pending updates and log the final tally."""

        if self._thread is None:
            return self.total
        self._stop.set()
        self._thread.join()
        self._thread = None
        self._drain()
        self._render()
        self._stack.close()
        self._task = None

        self.elapsed = perf_counter() - self._started_at
        total = self.total
        rate = total / self.elapsed if self.elapsed > 0 else 0.0
        logger.info(
            "%s: %s %s in %.2fs (%s/s) [%d workers]",
            self.label,
            f"{total:,}",
            self.unit,
            self.elapsed,
            f"{rate:,.0f}",
            self.worker_count,
        )
        return total
