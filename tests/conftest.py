"""Shared fixtures for the generator test-suite."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from bankgen.core.config import GenerationSettings
from bankgen.entities import EntitySet, build_entities
from bankgen.rng import RandomStream


def utc(year: int, month: int, day: int = 1) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.fixture()
def settings(tmp_path: Path) -> GenerationSettings:
    """A small, thread-backed configuration writing into ``tmp_path``."""

    return GenerationSettings(
        history_start=utc(2024, 1),
        history_end=utc(2024, 3),
        output_dir=tmp_path / "output",
        seed=42,
        num_customers=30,
        num_businesses=10,
        num_branches=4,
        num_atms=6,
        transactions_per_customer_per_month=6,
        workers=2,
        executor="thread",
        show_progress=False,
    )


@pytest.fixture()
def rng() -> RandomStream:
    return RandomStream(1234)


@pytest.fixture()
def entities(settings: GenerationSettings) -> EntitySet:
    """Reference entities built the same way a run builds them."""

    return build_entities(
        RandomStream(settings.seed),
        num_customers=settings.num_customers,
        num_businesses=settings.num_businesses,
        num_branches=settings.num_branches,
        num_atms=settings.num_atms,
        history_start=settings.history_start,
        pareto_ratio=settings.pareto_ratio,
    )
