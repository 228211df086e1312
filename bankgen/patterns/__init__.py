"""Statistical models deciding when transactions happen and how large they are."""

from .daily import DailyPattern
from .distribution import (
    STANDARD_AMOUNTS,
    ActivityDistribution,
    ActivityTier,
    AmountDistribution,
    AmountShape,
    TransactionTypeAmounts,
    round_to_nice_amount,
)
from .full import FullPattern
from .monthly import MonthlyPattern
from .weekly import CombinedPattern, WeeklyPattern

__all__ = [
    "STANDARD_AMOUNTS",
    "ActivityDistribution",
    "ActivityTier",
    "AmountDistribution",
    "AmountShape",
    "CombinedPattern",
    "DailyPattern",
    "FullPattern",
    "MonthlyPattern",
    "TransactionTypeAmounts",
    "WeeklyPattern",
    "round_to_nice_amount",
]
