"""Tests for CSV shard writing and discovery."""
from __future__ import annotations

from pathlib import Path

import pytest

from bankgen.errors import SinkError
from bankgen.sink import discover_shards, iter_rows, open_shard, open_table, shard_name

HEADERS = ("id", "name")


def test_shard_names_are_zero_padded() -> None:
    assert shard_name("transactions", 7, 8) == "transactions_007.csv"
    assert shard_name("transactions", 7, 1500) == "transactions_0007.csv"
    assert shard_name("audit_logs", 2, 4, compress=True) == "audit_logs_002.csv.xz"


def test_plain_shard_round_trip(tmp_path: Path) -> None:
    with open_shard(tmp_path, "transactions", HEADERS, index=1, total_shards=2) as sink:
        sink.write(["1", "first"])
        sink.write(["2", "Zoë, with comma"])

    assert sink.closed
    assert sink.rows_written == 2
    assert sink.path.read_text(encoding="utf-8").splitlines()[0] == "id,name"
    assert list(iter_rows(sink.path)) == [
        {"id": "1", "name": "first"},
        {"id": "2", "name": "Zoë, with comma"},
    ]


def test_compressed_shard_round_trip(tmp_path: Path) -> None:
    with open_shard(tmp_path, "audit_logs", HEADERS, index=3, total_shards=4, compress=True) as sink:
        sink.write(["9", "compressed"])

    assert sink.path.name == "audit_logs_003.csv.xz"
    assert list(iter_rows(sink.path)) == [{"id": "9", "name": "compressed"}]


def test_empty_shard_still_has_header(tmp_path: Path) -> None:
    with open_table(tmp_path, "branches", HEADERS) as sink:
        pass
    assert sink.path.name == "branches.csv"
    assert sink.path.read_text(encoding="utf-8").strip() == "id,name"


def test_discover_shards_in_worker_order(tmp_path: Path) -> None:
    for index in (3, 1, 2):
        open_shard(tmp_path, "transactions", HEADERS, index=index, total_shards=3).close()
    open_table(tmp_path, "transactions", HEADERS).close()

    names = [path.name for path in discover_shards(tmp_path, "transactions")]
    assert names == ["transactions_001.csv", "transactions_002.csv", "transactions_003.csv"]


def test_unwritable_location_raises_sink_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(SinkError):
        open_shard(blocker, "transactions", HEADERS, index=1, total_shards=1)


def test_write_after_close_raises(tmp_path: Path) -> None:
    sink = open_table(tmp_path, "atms", HEADERS)
    sink.close()
    sink.close()
    with pytest.raises(SinkError):
        sink.write(["1", "late"])
