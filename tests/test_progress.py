"""Tests for the fan-in progress reporter."""
from __future__ import annotations

import queue

from bankgen.progress import AggregatedProgressReporter, publish, queue_size


def test_queue_size_scales_with_workers() -> None:
    assert queue_size(4) == 400
    assert queue_size(0) == 100


def test_publish_drops_when_full() -> None:
    updates: queue.Queue = queue.Queue(maxsize=1)
    assert publish(updates, 0, 10)
    assert not publish(updates, 0, 20)
    assert updates.get_nowait() == (0, 10)


def test_finish_drains_to_exact_total() -> None:
    reporter = AggregatedProgressReporter("rows", 3, show=False, tick=0.01)
    with reporter:
        for worker_id, count in [(0, 10), (1, 5), (0, 25), (2, 7), (1, 15)]:
            publish(reporter.updates, worker_id, count)

    assert reporter.counts == [25, 15, 7]
    assert reporter.total == 47
    assert reporter.renders >= 1


def test_stale_counts_are_ignored() -> None:
    reporter = AggregatedProgressReporter("rows", 1, show=False)
    reporter.record(0, 50)
    reporter.record(0, 20)
    assert reporter.total == 50


def test_finish_is_idempotent() -> None:
    reporter = AggregatedProgressReporter("rows", 2, show=False, tick=0.01)
    reporter.start()
    publish(reporter.updates, 1, 3)
    assert reporter.finish() == 3
    assert reporter.finish() == 3
