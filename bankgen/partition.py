"""Split entities across workers and pre-allocate disjoint id ranges."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Sequence, TypeVar

from .errors import ConfigurationError, IDRangeExhaustedError
from .models import Account

T = TypeVar("T")

ID_BUFFER = 1.2
MIN_RANGE_SIZE = 10_000
TRANSACTION_ESTIMATE_FACTOR = 1.5
SESSION_FIXED_ROWS = 4


@dataclass(frozen=True)
class IDRange:
    """Half-open ``[start, end)`` block of primary keys owned by one worker."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "IDRange") -> bool:
        return self.start < other.end and other.start < self.end

    def allocator(self, kind: str) -> "IDAllocator":
        return IDAllocator(self, kind)


class IDAllocator:
    """Hands out ids from an :class:`IDRange`, failing loudly when it runs dry."""

    __slots__ = ("range", "kind", "_next")

    def __init__(self, id_range: IDRange, kind: str) -> None:
        self.range = id_range
        self.kind = kind
        self._next = id_range.start

    @property
    def allocated(self) -> int:
        return self._next - self.range.start

    def next_id(self) -> int:
        if self._next >= self.range.end:
            raise IDRangeExhaustedError(self.kind, self.range.start, self.range.end)
        value = self._next
        self._next += 1
        return value


def resolve_worker_count(requested: int) -> int:
    """Return ``requested`` or, when it is 0, the machine's CPU count."""

    if requested < 0:
        raise ConfigurationError(f"worker count must be non-negative, got {requested}")
    if requested:
        return requested
    return os.cpu_count() or 1


def _check_workers(worker_count: int) -> None:
    if worker_count < 1:
        raise ConfigurationError(f"worker count must be at least 1, got {worker_count}")


def partition_accounts_by_customer(accounts: Sequence[Account], worker_count: int) -> list[list[Account]]:
    """Deal whole customers round-robin so no customer spans two shards.

    Customers are visited in ascending id order; within a shard, accounts keep
    their customer grouping and original relative order.
    """

    _check_workers(worker_count)
    grouped: dict[int, list[Account]] = {}
    for account in accounts:
        grouped.setdefault(account.customer_id, []).append(account)

    shards: list[list[Account]] = [[] for _ in range(worker_count)]
    for index, customer_id in enumerate(sorted(grouped)):
        shards[index % worker_count].extend(grouped[customer_id])
    return shards


def partition_customers(customers: Sequence[T], worker_count: int) -> list[list[T]]:
    """Split ``customers`` into contiguous chunks; the last takes the remainder."""

    _check_workers(worker_count)
    chunk = len(customers) // worker_count
    shards: list[list[T]] = []
    for index in range(worker_count):
        start = index * chunk
        end = len(customers) if index == worker_count - 1 else start + chunk
        shards.append(list(customers[start:end]))
    return shards


def estimate_transaction_count(accounts: int, per_month: int, months: int) -> int:
    """Upper-ish bound on rows, counterparty legs included."""

    return int(accounts * per_month * months * TRANSACTION_ESTIMATE_FACTOR)


def estimate_audit_count(
    customers: int,
    months: int,
    sessions_per_month: int,
    balance_checks: int,
    transactions: int = 0,
) -> int:
    """Upper bound on session rows: full activity, every session at its longest.

    A successful session writes login, start, up to ``2 * balance_checks``
    inquiries and at most two closing rows; a failed login burst writes at most
    four. ``transactions`` adds room for transaction-linked rows.
    """

    sessions = max(1, months * sessions_per_month)
    rows_per_session = SESSION_FIXED_ROWS + 2 * balance_checks
    return customers * sessions * rows_per_session + transactions


def calculate_id_ranges(estimated_total: int, worker_count: int, first_id: int = 1) -> list[IDRange]:
    """Carve ``worker_count`` disjoint ranges out of a buffered estimate.

    Each range is ``max(estimate * 1.2 // workers, 10000)`` wide; the last one
    gets one extra range width to absorb estimation error.
    """

    _check_workers(worker_count)
    if estimated_total < 0:
        raise ConfigurationError(f"estimated total must be non-negative, got {estimated_total}")

    buffered = int(estimated_total * ID_BUFFER)
    range_size = max(buffered // worker_count, MIN_RANGE_SIZE)
    ranges = [
        IDRange(first_id + i * range_size, first_id + (i + 1) * range_size)
        for i in range(worker_count)
    ]
    last = ranges[-1]
    ranges[-1] = IDRange(last.start, last.end + range_size)
    return ranges
