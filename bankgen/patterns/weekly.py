"""Day-of-week demand curves.

Tables are indexed Sunday first (0 = Sunday .. 6 = Saturday).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .daily import DailyPattern

SUNDAY = 0
SATURDAY = 6

DEFAULT_WEEKLY = (0.40, 1.20, 1.00, 1.00, 1.00, 1.30, 0.60)
ATM_WEEKLY = (0.70, 0.90, 1.00, 1.10, 1.10, 1.30, 0.90)
ONLINE_WEEKLY = (0.80, 1.00, 0.90, 0.90, 1.00, 1.10, 0.70)
BUSINESS_WEEKLY = (0.05, 1.20, 1.10, 1.00, 1.10, 1.30, 0.10)
CORPORATE_PAYROLL_WEEKLY = (0.00, 1.00, 0.90, 0.90, 1.20, 1.50, 0.00)


def weekday_index(moment: datetime) -> int:
    """Sunday-first weekday number for ``moment``."""

    return moment.isoweekday() % 7


@dataclass(frozen=True)
class WeeklyPattern:
    daily: tuple[float, ...] = DEFAULT_WEEKLY

    def __post_init__(self) -> None:
        if len(self.daily) != 7:
            raise ValueError("a weekly pattern needs exactly 7 multipliers")

    @classmethod
    def default(cls) -> "WeeklyPattern":
        return cls(DEFAULT_WEEKLY)

    @classmethod
    def atm(cls) -> "WeeklyPattern":
        return cls(ATM_WEEKLY)

    @classmethod
    def online(cls) -> "WeeklyPattern":
        return cls(ONLINE_WEEKLY)

    @classmethod
    def business(cls) -> "WeeklyPattern":
        return cls(BUSINESS_WEEKLY)

    @classmethod
    def corporate_payroll(cls) -> "WeeklyPattern":
        return cls(CORPORATE_PAYROLL_WEEKLY)

    def multiplier(self, weekday: int) -> float:
        return self.daily[weekday % 7]

    def multiplier_for_date(self, moment: datetime) -> float:
        return self.daily[weekday_index(moment)]

    def is_weekend(self, weekday: int) -> bool:
        return weekday in (SUNDAY, SATURDAY)

    def is_business_day(self, weekday: int) -> bool:
        return not self.is_weekend(weekday)

    def high_activity_days(self) -> list[int]:
        return [day for day, value in enumerate(self.daily) if value >= 1.0]

    def should_process_on_day(self, weekday: int, base_probability: float, draw: float) -> bool:
        return draw < min(1.0, base_probability * self.multiplier(weekday))

    def expected_per_day(self, weekly_target: int) -> list[float]:
        total = sum(self.daily)
        return [weekly_target * (value / total) for value in self.daily]


@dataclass(frozen=True)
class CombinedPattern:
    """Weekly and daily curves multiplied together."""

    weekly: WeeklyPattern
    daily: DailyPattern

    def multiplier(self, moment: datetime) -> float:
        return self.weekly.multiplier_for_date(moment) * self.daily.multiplier_for_time(moment)

    def is_active(self, moment: datetime) -> bool:
        if not self.daily.is_active_hour(moment.hour):
            return False
        if self.weekly.is_weekend(weekday_index(moment)):
            return 9 <= moment.hour <= 18
        return True

    def adjusted_rate(self, moment: datetime, base_rate: float) -> float:
        return base_rate * self.multiplier(moment)
