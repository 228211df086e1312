"""Daily, weekly and monthly curves combined into one multiplier."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime

from .daily import DailyPattern
from .monthly import DEFAULT_PAYROLL_DAY, MonthlyPattern
from .weekly import WeeklyPattern, weekday_index


@dataclass(frozen=True)
class FullPattern:
    """Product of three curves, square-rooted to damp compounding spikes."""

    daily: DailyPattern = field(default_factory=DailyPattern.default)
    weekly: WeeklyPattern = field(default_factory=WeeklyPattern.default)
    monthly: MonthlyPattern = field(default_factory=MonthlyPattern.default)

    @classmethod
    def default(cls, payroll_day: int = DEFAULT_PAYROLL_DAY) -> "FullPattern":
        return cls(DailyPattern.default(), WeeklyPattern.default(), MonthlyPattern.default(payroll_day))

    @classmethod
    def atm(cls, payroll_day: int = DEFAULT_PAYROLL_DAY) -> "FullPattern":
        return cls(DailyPattern.atm(), WeeklyPattern.atm(), MonthlyPattern.default(payroll_day))

    @classmethod
    def online(cls, payroll_day: int = DEFAULT_PAYROLL_DAY) -> "FullPattern":
        return cls(DailyPattern.online(), WeeklyPattern.online(), MonthlyPattern.default(payroll_day))

    @classmethod
    def business(cls) -> "FullPattern":
        return cls(DailyPattern.business(), WeeklyPattern.business(), MonthlyPattern.business())

    @classmethod
    def payroll(cls, payroll_day: int = DEFAULT_PAYROLL_DAY) -> "FullPattern":
        return cls(DailyPattern.business(), WeeklyPattern.corporate_payroll(), MonthlyPattern.payroll(payroll_day))

    def raw_multiplier(self, moment: datetime) -> float:
        return (
            self.daily.multiplier_for_time(moment)
            * self.weekly.multiplier_for_date(moment)
            * self.monthly.multiplier_for_date(moment)
        )

    def multiplier(self, moment: datetime) -> float:
        return math.sqrt(self.raw_multiplier(moment))

    def acceptance_probability(self, moment: datetime) -> float:
        """The multiplier capped at 1, for use as a rejection-sampling gate."""

        return min(1.0, self.multiplier(moment))

    def is_active(self, moment: datetime) -> bool:
        if not self.daily.is_active_hour(moment.hour):
            return False
        if self.weekly.is_weekend(weekday_index(moment)):
            return 9 <= moment.hour <= 18
        return True

    def should_generate_transaction(self, moment: datetime, base_rate: float, draw: float) -> bool:
        return draw < min(1.0, base_rate * self.multiplier(moment))

    def transaction_count(self, moment: datetime, base_count: int) -> int:
        return int(base_count * self.multiplier(moment))
