"""Tests for worker partitioning and id range planning."""
from __future__ import annotations

import os
from itertools import combinations

import pytest

from bankgen.entities import EntitySet
from bankgen.errors import ConfigurationError, IDRangeExhaustedError
from bankgen.partition import (
    IDRange,
    calculate_id_ranges,
    estimate_audit_count,
    estimate_transaction_count,
    partition_accounts_by_customer,
    partition_customers,
    resolve_worker_count,
)


def test_id_ranges_are_buffered_and_disjoint() -> None:
    ranges = calculate_id_ranges(100_000, 4)
    size = max(int(100_000 * 1.2) // 4, 10_000)

    assert len(ranges) == 4
    assert ranges[0] == IDRange(1, 1 + size)
    assert all(ranges[i].end == ranges[i + 1].start for i in range(3))
    assert ranges[-1].end == 1 + 5 * size
    assert ranges[-1].size == 2 * size
    for left, right in combinations(ranges, 2):
        assert not left.overlaps(right)


def test_small_estimates_get_minimum_range_size() -> None:
    ranges = calculate_id_ranges(10, 3, first_id=500)
    assert ranges[0] == IDRange(500, 10_500)
    assert ranges[1].size == 10_000


def test_id_ranges_reject_bad_input() -> None:
    with pytest.raises(ConfigurationError):
        calculate_id_ranges(100, 0)
    with pytest.raises(ConfigurationError):
        calculate_id_ranges(-1, 2)


def test_allocator_is_sequential_and_exhausts() -> None:
    allocator = IDRange(10, 13).allocator("transaction")
    assert [allocator.next_id() for _ in range(3)] == [10, 11, 12]
    assert allocator.allocated == 3

    with pytest.raises(IDRangeExhaustedError) as excinfo:
        allocator.next_id()
    assert excinfo.value.kind == "transaction"
    assert (excinfo.value.start, excinfo.value.end) == (10, 13)


def test_resolve_worker_count(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: 6)
    assert resolve_worker_count(0) == 6
    assert resolve_worker_count(3) == 3
    with pytest.raises(ConfigurationError):
        resolve_worker_count(-2)


def test_resolve_worker_count_without_cpu_info(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: None)
    assert resolve_worker_count(0) == 1


def test_accounts_never_split_across_workers(entities: EntitySet) -> None:
    shards = partition_accounts_by_customer(entities.accounts, 3)

    assert sum(len(shard) for shard in shards) == len(entities.accounts)
    seen: dict[int, int] = {}
    for index, shard in enumerate(shards):
        for account in shard:
            assert seen.setdefault(account.customer_id, index) == index


def test_accounts_are_dealt_round_robin(entities: EntitySet) -> None:
    shards = partition_accounts_by_customer(entities.accounts, 2)
    owner_ids = sorted({account.customer_id for account in entities.accounts})

    first_shard_owners = {account.customer_id for account in shards[0]}
    assert first_shard_owners == set(owner_ids[0::2])


def test_more_workers_than_customers_leaves_empty_shards(entities: EntitySet) -> None:
    owner_count = len({account.customer_id for account in entities.accounts})
    shards = partition_accounts_by_customer(entities.accounts, owner_count + 2)
    assert shards[-1] == []
    assert shards[-2] == []


def test_customer_chunks_are_contiguous() -> None:
    chunks = partition_customers(list(range(10)), 3)
    assert chunks == [[0, 1, 2], [3, 4, 5], [6, 7, 8, 9]]


def test_estimates() -> None:
    assert estimate_transaction_count(10, 15, 12) == 2_700
    assert estimate_audit_count(10, 12, 3, 2) == 2_880
    assert estimate_audit_count(10, 12, 3, 2, transactions=60) == 2_940
    assert estimate_audit_count(5, 0, 3, 1) == 30
