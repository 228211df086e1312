"""Tests for the hour, weekday and day-of-month demand curves."""
from __future__ import annotations

import math
from datetime import datetime

import pytest

from bankgen.patterns import DailyPattern, FullPattern, MonthlyPattern, WeeklyPattern
from bankgen.patterns.daily import ACTIVE_END_HOUR, ACTIVE_START_HOUR
from bankgen.patterns.weekly import weekday_index


def test_weekday_index_is_sunday_first() -> None:
    assert weekday_index(datetime(2024, 1, 7)) == 0  # Sunday
    assert weekday_index(datetime(2024, 1, 8)) == 1
    assert weekday_index(datetime(2024, 1, 13)) == 6


def test_pattern_tables_reject_wrong_lengths() -> None:
    with pytest.raises(ValueError):
        DailyPattern((1.0,) * 23)
    with pytest.raises(ValueError):
        WeeklyPattern((1.0,) * 6)
    with pytest.raises(ValueError):
        MonthlyPattern((1.0,) * 30)


def test_daily_multiplier_interpolates_by_minute() -> None:
    pattern = DailyPattern.default()
    assert pattern.multiplier_for_time(datetime(2024, 1, 2, 9, 0)) == pytest.approx(1.60)
    assert pattern.multiplier_for_time(datetime(2024, 1, 2, 9, 30)) == pytest.approx(1.40)


def test_daily_multiplier_out_of_range_hour() -> None:
    assert DailyPattern.default().multiplier(24) == 0.0
    assert DailyPattern.default().multiplier(-1) == 0.0


def test_peak_hours_include_morning_rush() -> None:
    peaks = DailyPattern.default().peak_hours()
    assert 8 in peaks and 9 in peaks
    assert 3 not in peaks


@pytest.mark.parametrize("draw", [0.0, 0.123456, 0.5, 0.87, 0.999999])
def test_time_in_active_window_bounds(draw: float) -> None:
    hour, minute = DailyPattern.default().time_in_active_window(draw)
    assert ACTIVE_START_HOUR <= hour <= ACTIVE_END_HOUR
    assert 0 <= minute <= 59


def test_expected_per_hour_sums_to_target() -> None:
    assert sum(DailyPattern.business().expected_per_hour(1_000)) == pytest.approx(1_000)


def test_weekly_weekend_detection() -> None:
    weekly = WeeklyPattern.default()
    assert weekly.is_weekend(0) and weekly.is_weekend(6)
    assert weekly.is_business_day(3)
    assert weekly.multiplier(7) == weekly.multiplier(0)


def test_corporate_payroll_never_runs_on_weekends() -> None:
    weekly = WeeklyPattern.corporate_payroll()
    assert weekly.multiplier(0) == 0.0
    assert weekly.multiplier(6) == 0.0


def test_default_monthly_payroll_window() -> None:
    monthly = MonthlyPattern.default(25)
    assert monthly.is_payroll_day(15)
    assert all(monthly.is_payroll_day(day) for day in range(25, 32))
    assert not monthly.is_payroll_day(24)


def test_payroll_spike_shape() -> None:
    monthly = MonthlyPattern.payroll(25)
    assert monthly.multiplier(25) == 3.0
    assert monthly.multiplier(24) == 0.60
    assert monthly.multiplier(10) == 0.10
    assert monthly.payroll_spike(25) == 2.5
    assert monthly.payroll_spike(10) == 1.0


def test_monthly_out_of_range_day_is_neutral() -> None:
    assert MonthlyPattern.default().multiplier(0) == 1.0
    assert MonthlyPattern.default().multiplier(32) == 1.0


def test_start_and_end_of_month() -> None:
    monthly = MonthlyPattern.default()
    assert monthly.is_start_of_month(datetime(2024, 2, 5))
    assert not monthly.is_start_of_month(datetime(2024, 2, 6))
    assert monthly.is_end_of_month(datetime(2024, 2, 25))
    assert not monthly.is_end_of_month(datetime(2024, 2, 24))


def test_expected_per_day_uses_real_month_length() -> None:
    per_day = MonthlyPattern.default().expected_per_day(290, 2024, 2)
    assert len(per_day) == 29
    assert sum(per_day) == pytest.approx(290)


def test_full_pattern_is_square_root_of_product() -> None:
    pattern = FullPattern.default()
    moment = datetime(2024, 3, 28, 9, 0)  # Thursday, end of month, morning peak
    raw = 1.60 * 1.00 * 2.00
    assert pattern.raw_multiplier(moment) == pytest.approx(raw)
    assert pattern.multiplier(moment) == pytest.approx(math.sqrt(raw))
    assert pattern.acceptance_probability(moment) == 1.0


def test_full_pattern_acceptance_is_capped() -> None:
    pattern = FullPattern.business()
    quiet = datetime(2024, 3, 3, 3, 0)  # Sunday night
    assert 0.0 <= pattern.acceptance_probability(quiet) < 0.1


def test_full_pattern_weekend_activity_window() -> None:
    pattern = FullPattern.default()
    assert pattern.is_active(datetime(2024, 1, 6, 12, 0))
    assert not pattern.is_active(datetime(2024, 1, 6, 20, 0))
    assert pattern.is_active(datetime(2024, 1, 8, 20, 0))
    assert not pattern.is_active(datetime(2024, 1, 8, 3, 0))
