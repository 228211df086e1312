"""Hour-of-day demand curves."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ACTIVE_START_HOUR = 6
ACTIVE_END_HOUR = 22
PEAK_THRESHOLD = 1.3

DEFAULT_HOURLY = (
    0.05, 0.03, 0.02, 0.02, 0.03, 0.08,  # 00-05
    0.20, 0.50, 1.40, 1.60, 1.20, 1.00,  # 06-11, morning peak at 09
    1.50, 1.30, 1.10, 1.00, 1.30, 1.20,  # 12-17, lunch and pre-cutoff
    0.80, 0.50, 0.30, 0.20, 0.10, 0.05,  # 18-23
)

ATM_HOURLY = (
    0.08, 0.05, 0.03, 0.02, 0.03, 0.05,
    0.15, 0.40, 0.80, 1.00, 0.90, 1.10,
    1.80, 1.50, 1.00, 0.90, 1.00, 1.40,  # lunch is the ATM peak
    1.30, 1.00, 0.60, 0.40, 0.25, 0.15,
)

ONLINE_HOURLY = (
    0.10, 0.05, 0.03, 0.02, 0.03, 0.10,
    0.30, 0.80, 1.20, 1.40, 1.00, 0.80,
    0.90, 0.80, 0.90, 1.00, 1.20, 1.00,
    1.10, 1.50, 1.60, 1.30, 0.80, 0.40,  # evening bill-pay peak
)

BUSINESS_HOURLY = (
    0.02, 0.01, 0.01, 0.01, 0.02, 0.05,
    0.10, 0.30, 0.80, 1.40, 1.60, 1.40,
    0.80, 1.20, 1.40, 1.50, 1.80, 1.00,  # 16:00 same-day cutoff rush
    0.30, 0.10, 0.05, 0.03, 0.02, 0.02,
)


@dataclass(frozen=True)
class DailyPattern:
    """Activity multiplier per hour of the day, centred on 1.0."""

    hourly: tuple[float, ...] = DEFAULT_HOURLY

    def __post_init__(self) -> None:
        if len(self.hourly) != 24:
            raise ValueError("a daily pattern needs exactly 24 hourly multipliers")

    @classmethod
    def default(cls) -> "DailyPattern":
        return cls(DEFAULT_HOURLY)

    @classmethod
    def atm(cls) -> "DailyPattern":
        return cls(ATM_HOURLY)

    @classmethod
    def online(cls) -> "DailyPattern":
        return cls(ONLINE_HOURLY)

    @classmethod
    def business(cls) -> "DailyPattern":
        return cls(BUSINESS_HOURLY)

    def multiplier(self, hour: int) -> float:
        if hour < 0 or hour > 23:
            return 0.0
        return self.hourly[hour]

    def multiplier_for_time(self, moment: datetime) -> float:
        """Interpolate linearly between this hour and the next by minute."""

        current = self.hourly[moment.hour]
        following = self.hourly[(moment.hour + 1) % 24]
        return current + (following - current) * (moment.minute / 60.0)

    def is_active_hour(self, hour: int) -> bool:
        return ACTIVE_START_HOUR <= hour <= ACTIVE_END_HOUR

    def is_peak_hour(self, hour: int) -> bool:
        return self.multiplier(hour) >= PEAK_THRESHOLD

    def peak_hours(self) -> list[int]:
        return [hour for hour in range(24) if self.is_peak_hour(hour)]

    def should_generate_transaction(self, moment: datetime, base_rate: float, draw: float) -> bool:
        return draw < min(1.0, base_rate * self.multiplier_for_time(moment))

    def adjusted_rate(self, hour: int, base_rate: float) -> float:
        return base_rate * self.multiplier(hour)

    def expected_per_hour(self, daily_target: int) -> list[float]:
        """Split ``daily_target`` across the 24 hours proportionally to the curve."""

        total = sum(self.hourly)
        return [daily_target * (value / total) for value in self.hourly]

    def time_in_active_window(self, draw: float) -> tuple[int, int]:
        """Map one uniform draw to an ``(hour, minute)`` inside 06:00-22:59.

        Hours are weighted by their multiplier. The minute reuses the draw's
        fractional digits so a single value places the time.
        """

        hours = range(ACTIVE_START_HOUR, ACTIVE_END_HOUR + 1)
        total = sum(self.hourly[hour] for hour in hours)
        target = draw * total

        selected = ACTIVE_START_HOUR
        cumulative = 0.0
        for hour in hours:
            cumulative += self.hourly[hour]
            if target < cumulative:
                selected = hour
                break

        minute = int(((draw * 1000) % 1.0) * 60)
        return selected, minute
