"""Day-of-month demand curves, payroll windows and bill due dates."""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_PAYROLL_DAY = 25
MID_MONTH_PAYDAY = 15
START_OF_MONTH_DAYS = 5
END_OF_MONTH_DAYS = 5


def _days(base: float, overrides: dict[int, float]) -> tuple[float, ...]:
    values = [base] * 31
    for day, value in overrides.items():
        if 1 <= day <= 31:
            values[day - 1] = value
    return tuple(values)


DEFAULT_MONTHLY = _days(
    1.0,
    {
        1: 1.40, 2: 1.25, 3: 1.15, 4: 1.10, 5: 1.05,  # bills due early in the month
        15: 1.35,
        25: 1.60, 26: 1.80, 27: 1.90, 28: 2.00, 29: 1.90, 30: 1.80, 31: 1.70,
    },
)

BILL_PAYMENT_MONTHLY = _days(
    0.80,
    {1: 2.00, 2: 1.50, 3: 1.30, 4: 1.20, 5: 1.50, 10: 1.30, 15: 1.50, 20: 1.20, 25: 1.30},
)

BUSINESS_MONTHLY = _days(
    1.0,
    {
        1: 1.40, 2: 1.30, 10: 1.25,
        25: 1.50, 26: 1.80, 27: 2.00, 28: 2.50, 29: 2.30, 30: 2.20, 31: 2.00,  # month-end close
    },
)


def payroll_window(payroll_day: int = DEFAULT_PAYROLL_DAY) -> frozenset[int]:
    """Mid-month payday plus every day from ``payroll_day`` to month end."""

    return frozenset({MID_MONTH_PAYDAY, *range(payroll_day, 32)})


@dataclass(frozen=True)
class MonthlyPattern:
    days: tuple[float, ...] = DEFAULT_MONTHLY
    payroll_days: frozenset[int] = field(default_factory=payroll_window)
    bill_due_days: frozenset[int] = frozenset({1, 5, 10, 15})

    def __post_init__(self) -> None:
        if len(self.days) != 31:
            raise ValueError("a monthly pattern needs exactly 31 day multipliers")

    @classmethod
    def default(cls, payroll_day: int = DEFAULT_PAYROLL_DAY) -> "MonthlyPattern":
        return cls(DEFAULT_MONTHLY, payroll_window(payroll_day), frozenset({1, 5, 10, 15}))

    @classmethod
    def payroll(cls, payroll_day: int = DEFAULT_PAYROLL_DAY) -> "MonthlyPattern":
        """Quiet month with a sharp spike around a single payday."""

        days = _days(
            0.10,
            {
                payroll_day - 2: 0.30,
                payroll_day - 1: 0.60,
                payroll_day: 3.00,
                payroll_day + 1: 1.50,
                payroll_day + 2: 1.00,
            },
        )
        return cls(days, frozenset({payroll_day}), frozenset())

    @classmethod
    def bill_payment(cls) -> "MonthlyPattern":
        return cls(BILL_PAYMENT_MONTHLY, frozenset(), frozenset({1, 5, 10, 15, 20, 25}))

    @classmethod
    def business(cls) -> "MonthlyPattern":
        return cls(BUSINESS_MONTHLY, frozenset(range(25, 32)), frozenset({1, 10, 20}))

    def multiplier(self, day_of_month: int) -> float:
        if day_of_month < 1 or day_of_month > 31:
            return 1.0
        return self.days[day_of_month - 1]

    def multiplier_for_date(self, moment: datetime) -> float:
        return self.multiplier(moment.day)

    def is_payroll_day(self, day_of_month: int) -> bool:
        return day_of_month in self.payroll_days

    def is_bill_due_day(self, day_of_month: int) -> bool:
        return day_of_month in self.bill_due_days

    def is_start_of_month(self, moment: datetime) -> bool:
        return moment.day <= START_OF_MONTH_DAYS

    def is_end_of_month(self, moment: datetime) -> bool:
        last_day = calendar.monthrange(moment.year, moment.month)[1]
        return moment.day >= last_day - (END_OF_MONTH_DAYS - 1)

    def payroll_spike(self, day_of_month: int) -> float:
        if not self.is_payroll_day(day_of_month):
            return 1.0
        if day_of_month >= 28:
            return 3.0
        if day_of_month >= 25:
            return 2.5
        return 2.0

    def expected_per_day(self, monthly_target: int, year: int, month: int) -> list[float]:
        """Split ``monthly_target`` across the real days of ``year``/``month``."""

        last_day = calendar.monthrange(year, month)[1]
        weights = self.days[:last_day]
        total = sum(weights)
        return [monthly_target * (value / total) for value in weights]
