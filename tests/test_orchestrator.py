"""End-to-end tests for a full generation run."""
from __future__ import annotations

from pathlib import Path

import pytest

import bankgen.orchestrator as orchestrator_module
from bankgen import Orchestrator
from bankgen.core.config import GenerationSettings
from bankgen.errors import GenerationError, IDRangeExhaustedError, WorkerError
from bankgen.sink import discover_shards, iter_rows
from bankgen.transactions import run_transaction_worker


def _rows(paths: list[Path]) -> list[dict[str, str]]:
    return [row for path in paths for row in iter_rows(path)]


def _snapshot(directory: Path) -> dict[str, bytes]:
    return {path.name: path.read_bytes() for path in sorted(directory.iterdir())}


def test_run_writes_every_table(settings: GenerationSettings) -> None:
    result = Orchestrator(settings).run()
    output = settings.output_dir

    for table in ("branches", "atms", "customers", "businesses", "accounts"):
        assert (output / f"{table}.csv").exists()
    assert [p.name for p in discover_shards(output, "transactions")] == [
        "transactions_001.csv",
        "transactions_002.csv",
    ]
    assert [p.name for p in discover_shards(output, "audit_logs")] == [
        "audit_logs_001.csv",
        "audit_logs_002.csv",
        "audit_logs_003.csv",
        "audit_logs_004.csv",
    ]

    assert result.seed == 42
    assert result.worker_count == 2
    assert result.customers == settings.num_customers
    assert result.businesses == settings.num_businesses
    assert result.accounts == len(list(iter_rows(output / "accounts.csv")))
    assert result.transactions == len(_rows(discover_shards(output, "transactions")))
    assert result.audit_logs == len(_rows(discover_shards(output, "audit_logs")))
    assert result.transactions > 0
    assert set(result.paths) == set(discover_shards(output, "transactions")) | set(
        discover_shards(output, "audit_logs")
    )


def test_ids_are_unique_across_shards(settings: GenerationSettings) -> None:
    Orchestrator(settings).run()
    output = settings.output_dir

    txn_ids = [row["id"] for row in _rows(discover_shards(output, "transactions"))]
    audit_ids = [row["id"] for row in _rows(discover_shards(output, "audit_logs"))]
    assert len(txn_ids) == len(set(txn_ids))
    assert len(audit_ids) == len(set(audit_ids))


def test_primary_accounts_belong_to_one_shard(settings: GenerationSettings) -> None:
    Orchestrator(settings).run()

    shard_of: dict[str, str] = {}
    for path in discover_shards(settings.output_dir, "transactions"):
        for row in iter_rows(path):
            if row["linked_transaction_id"]:
                continue
            assert shard_of.setdefault(row["account_id"], path.name) == path.name


def test_same_seed_produces_identical_output(settings: GenerationSettings, tmp_path: Path) -> None:
    quiet = settings.replace(declined_rate=0.0, insufficient_funds_rate=0.0)
    first = quiet.replace(output_dir=tmp_path / "first")
    second = quiet.replace(output_dir=tmp_path / "second")

    first_result = Orchestrator(first).run()
    Orchestrator(second).run()

    assert _snapshot(first.output_dir) == _snapshot(second.output_dir)
    assert first_result.declined == 0
    statuses = {row["status"] for row in _rows(discover_shards(first.output_dir, "transactions"))}
    assert statuses == {"completed"}


def test_different_seed_changes_output(settings: GenerationSettings, tmp_path: Path) -> None:
    Orchestrator(settings).run()
    other = settings.replace(seed=43, output_dir=tmp_path / "other")
    Orchestrator(other).run()

    assert _snapshot(settings.output_dir) != _snapshot(other.output_dir)


def test_process_pool_matches_thread_pool(settings: GenerationSettings, tmp_path: Path) -> None:
    small = settings.replace(num_customers=12, num_businesses=4, transactions_per_customer_per_month=3)
    threaded = small.replace(output_dir=tmp_path / "threads")
    forked = small.replace(output_dir=tmp_path / "processes", executor="process")

    Orchestrator(threaded).run()
    Orchestrator(forked).run()

    assert _snapshot(threaded.output_dir) == _snapshot(forked.output_dir)


def test_audit_can_be_disabled(settings: GenerationSettings) -> None:
    result = Orchestrator(settings.replace(audit=False)).run()

    assert result.audit_logs == 0
    assert discover_shards(settings.output_dir, "audit_logs") == []


def test_compressed_run(settings: GenerationSettings) -> None:
    result = Orchestrator(settings.replace(compress=True, audit=False)).run()

    shards = discover_shards(settings.output_dir, "transactions")
    assert [p.name for p in shards] == ["transactions_001.csv.xz", "transactions_002.csv.xz"]
    assert (settings.output_dir / "accounts.csv.xz").exists()
    assert len(_rows(shards)) == result.transactions


def test_phases_require_entities(settings: GenerationSettings) -> None:
    with pytest.raises(GenerationError):
        Orchestrator(settings).generate_transactions()


def test_first_worker_failure_is_raised(settings: GenerationSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[int] = []

    def flaky(task):
        calls.append(task.worker_id)
        if task.worker_id == 1:
            raise IDRangeExhaustedError("transaction", task.id_range.start, task.id_range.end)
        return run_transaction_worker(task)

    monkeypatch.setattr(orchestrator_module, "run_transaction_worker", flaky)

    with pytest.raises(WorkerError) as excinfo:
        Orchestrator(settings).run()

    assert excinfo.value.worker_id == 1
    assert excinfo.value.phase == "transactions"
    assert isinstance(excinfo.value.__cause__, IDRangeExhaustedError)
    assert sorted(calls) == [0, 1]


def test_busy_sessions_fit_their_id_range(settings: GenerationSettings) -> None:
    busy = settings.replace(
        history_end=settings.history_start.replace(year=settings.history_start.year + 1),
        sessions_per_customer_per_month=40,
        balance_checks_per_session=6,
        pareto_ratio=0.9,
        workers=1,
    )
    orchestrator = Orchestrator(busy)
    orchestrator.generate_entities()
    results = orchestrator.generate_audit_logs()

    written = _rows(discover_shards(busy.output_dir, "audit_logs"))
    assert sum(result.audit_rows for result in results) == len(written) > 20_000
