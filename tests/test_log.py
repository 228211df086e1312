"""Tests for the logging helpers shared by every phase."""
from __future__ import annotations

import logging
from pathlib import Path

import pytest

from bankgen.core.log import get_logger, init_logging, log_context, shutdown_logging, timeit
from bankgen.core.log.context import ContextFilter


def _record() -> logging.LogRecord:
    return logging.LogRecord("bankgen.test", logging.INFO, __file__, 1, "message", None, None)


def test_scoped_context_is_restored() -> None:
    log_context.clear()
    log_context.bind(job="generate")
    with log_context.scoped(worker=3, phase="audit", skipped=None):
        assert log_context.as_dict() == {"job": "generate", "worker": 3, "phase": "audit"}
    assert log_context.as_dict() == {"job": "generate"}
    log_context.clear()


def test_context_filter_renders_key_values() -> None:
    log_context.clear()
    record = _record()
    with log_context.scoped(seed=42):
        ContextFilter().filter(record)
    assert record.context == "seed=42 "

    empty = _record()
    ContextFilter().filter(empty)
    assert empty.context == ""


def test_timeit_logs_throughput(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("bankgen.test.timer")
    with caplog.at_level(logging.INFO, logger="bankgen.test.timer"):
        with timeit("Entities", logger=logger, unit="rows") as timer:
            timer.add(5)
    assert "Entities completed in" in caplog.text
    assert "(5 rows" in caplog.text


def test_timeit_logs_failures(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("bankgen.test.timer")
    with caplog.at_level(logging.INFO, logger="bankgen.test.timer"):
        with pytest.raises(RuntimeError):
            with timeit("Transactions", logger=logger, total=10):
                raise RuntimeError("boom")
    assert "Transactions failed after" in caplog.text


def test_log_dir_gets_one_file_per_run(tmp_path: Path) -> None:
    shutdown_logging()
    try:
        init_logging(log_dir=tmp_path / "logs", console=False, rich_tracebacks=False)
        with log_context.scoped(seed=7):
            get_logger("bankgen.test.file").info("written to disk")
    finally:
        shutdown_logging()
        log_context.clear()

    files = list((tmp_path / "logs").glob("bankgen_*.log"))
    assert len(files) == 1
    line = files[0].read_text(encoding="utf-8").strip()
    assert line.endswith("| bankgen.test.file | seed=7 written to disk")
    assert "| INFO     |" in line
