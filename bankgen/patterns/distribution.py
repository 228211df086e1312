"""Activity skew and transaction amount distributions."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..rng import RandomStream

DEFAULT_PARETO_RATIO = 0.2
HIGHLY_SKEWED_RATIO = 0.1


class ActivityTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


TIER_TRANSACTION_RANGES: dict[ActivityTier, tuple[int, int]] = {
    ActivityTier.HIGH: (50, 200),
    ActivityTier.MEDIUM: (15, 50),
    ActivityTier.LOW: (2, 15),
}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ActivityDistribution:
    """Pareto-style skew: a small share of accounts carries most of the volume.

    A percentile ``p`` maps to the activity score ``p ** (1 / intensity)`` with
    ``intensity = ln(0.8) / ln(ratio)``.
    """

    ratio: float
    intensity: float

    @classmethod
    def pareto(cls, ratio: float = DEFAULT_PARETO_RATIO) -> "ActivityDistribution":
        if ratio <= 0 or ratio > 1:
            ratio = DEFAULT_PARETO_RATIO
        if ratio == 1:
            return cls.uniform()
        return cls(ratio=ratio, intensity=math.log(0.8) / math.log(ratio))

    @classmethod
    def uniform(cls) -> "ActivityDistribution":
        return cls(ratio=1.0, intensity=1.0)

    @classmethod
    def highly_skewed(cls) -> "ActivityDistribution":
        return cls.pareto(HIGHLY_SKEWED_RATIO)

    def activity_score(self, percentile: float) -> float:
        return _clamp(percentile) ** (1.0 / self.intensity)

    def transactions_per_month(self, score: float, base: int) -> int:
        """Scale ``base`` by ``0.2 + 2.8 * score`` (0.2x to 3.0x)."""

        return int(base * (0.2 + _clamp(score) * 2.8))

    def transactions_per_day(self, monthly_count: int, is_weekend: bool) -> float:
        if is_weekend:
            return monthly_count / 8.0 * 0.3
        return monthly_count / 22.0 * 0.7

    def tier(self, score: float) -> ActivityTier:
        if score >= 0.9:
            return ActivityTier.HIGH
        if score >= 0.6:
            return ActivityTier.MEDIUM
        return ActivityTier.LOW

    def tier_transaction_range(self, tier: ActivityTier) -> tuple[int, int]:
        return TIER_TRANSACTION_RANGES.get(tier, (5, 20))

    def distribute_transactions(self, total: int, accounts: int) -> list[int]:
        """Split ``total`` over ``accounts`` by score weight, summing exactly.

        Integer truncation leftovers go one unit at a time to the highest
        scoring accounts. The result is sorted busiest first.
        """

        if accounts <= 0:
            return []
        scores = [self.activity_score((i + 1) / (accounts + 1)) for i in range(accounts)]
        total_score = sum(scores)
        counts = [int(total * (score / total_score)) for score in scores]

        remainder = total - sum(counts)
        index = accounts - 1
        while remainder > 0:
            counts[index] += 1
            remainder -= 1
            index = index - 1 if index > 0 else accounts - 1

        return sorted(counts, reverse=True)

    def cumulative_share(self, top_fraction: float) -> float:
        """Share of volume produced by the busiest ``top_fraction`` of accounts."""

        if top_fraction <= 0:
            return 0.0
        if top_fraction >= 1:
            return 1.0
        return 1 - (1 - top_fraction) ** self.intensity


class AmountShape(str, Enum):
    UNIFORM = "uniform"
    NORMAL = "normal"
    EXPONENTIAL = "exponential"


def round_to_nice_amount(cents: int) -> int:
    """Round down to a denomination a person would plausibly pay."""

    if cents < 1_000:
        step = 5
    elif cents < 10_000:
        step = 25
    elif cents < 100_000:
        step = 100
    elif cents < 1_000_000:
        step = 500
    else:
        step = 1_000
    return (cents // step) * step


@dataclass(frozen=True)
class AmountDistribution:
    """Amounts in integer minor units drawn from ``[minimum, maximum]``."""

    minimum: int
    maximum: int
    shape: AmountShape = AmountShape.UNIFORM
    mean: float = 0.0
    stddev: float = 0.0

    @classmethod
    def uniform(cls, minimum: int, maximum: int) -> "AmountDistribution":
        return cls(minimum, maximum, AmountShape.UNIFORM)

    @classmethod
    def normal(cls, minimum: int, maximum: int, mean: float, stddev: float) -> "AmountDistribution":
        return cls(minimum, maximum, AmountShape.NORMAL, mean, stddev)

    @classmethod
    def exponential(cls, minimum: int, maximum: int) -> "AmountDistribution":
        return cls(minimum, maximum, AmountShape.EXPONENTIAL)

    def fraction(self, uniform_draw: float, normal_draw: float) -> float:
        if self.shape is AmountShape.NORMAL:
            return _clamp(self.mean + normal_draw * self.stddev)
        if self.shape is AmountShape.EXPONENTIAL:
            draw = min(uniform_draw, 0.9999)
            return min(1.0, -math.log(1 - draw) / 5.0)
        return uniform_draw

    def amount(self, uniform_draw: float, normal_draw: float) -> int:
        span = self.maximum - self.minimum
        raw = self.minimum + int(span * self.fraction(uniform_draw, normal_draw))
        return max(self.minimum, min(self.maximum, round_to_nice_amount(raw)))

    def sample(self, rng: "RandomStream") -> int:
        uniform_draw = rng.float64()
        return self.amount(uniform_draw, rng.normal())


@dataclass(frozen=True)
class TransactionTypeAmounts:
    small_purchase: AmountDistribution
    medium_purchase: AmountDistribution
    large_purchase: AmountDistribution
    atm_withdrawal: AmountDistribution
    bill_payment: AmountDistribution
    rent_mortgage: AmountDistribution
    salary: AmountDistribution
    internal_transfer: AmountDistribution


STANDARD_AMOUNTS = TransactionTypeAmounts(
    small_purchase=AmountDistribution.exponential(200, 2_000),
    medium_purchase=AmountDistribution.normal(2_000, 15_000, 0.3, 0.25),
    large_purchase=AmountDistribution.normal(10_000, 100_000, 0.3, 0.3),
    atm_withdrawal=AmountDistribution.normal(2_000, 50_000, 0.2, 0.25),
    bill_payment=AmountDistribution.normal(5_000, 50_000, 0.3, 0.3),
    rent_mortgage=AmountDistribution.normal(80_000, 300_000, 0.4, 0.25),
    salary=AmountDistribution.normal(150_000, 1_000_000, 0.35, 0.3),
    internal_transfer=AmountDistribution.exponential(10_000, 500_000),
)
