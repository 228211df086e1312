"""Picklable work orders exchanged between the orchestrator and its workers."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .core.config import GenerationSettings
from .entities import CounterpartyPools
from .models import Account, Customer
from .partition import IDRange
from .rng import RandomStream


@dataclass
class WorkerTask:
    """Everything one worker needs; nothing in it is shared mutably."""

    worker_id: int
    rng: RandomStream
    settings: GenerationSettings
    id_range: IDRange
    shard_index: int
    total_shards: int
    accounts: list[Account] = field(default_factory=list)
    customers: list[Customer] = field(default_factory=list)
    owners: dict[int, Customer] = field(default_factory=dict)
    customer_accounts: dict[int, list[int]] = field(default_factory=dict)
    pools: CounterpartyPools = field(default_factory=CounterpartyPools)
    audit_range: Optional[IDRange] = None
    updates: Any = None


@dataclass
class WorkerResult:
    worker_id: int
    rows: int = 0
    audit_rows: int = 0
    declined: int = 0
    paths: list[Path] = field(default_factory=list)
