"""Tests for month arithmetic and history windows."""
from __future__ import annotations

from datetime import datetime, timezone

from bankgen.dates import add_months, month_windows, months_between, parse_date


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def test_add_months_clamps_to_month_length() -> None:
    assert add_months(_utc(2024, 1, 31), 1) == _utc(2024, 2, 29)
    assert add_months(_utc(2023, 1, 31), 1) == _utc(2023, 2, 28)
    assert add_months(_utc(2024, 11, 15), 3) == _utc(2025, 2, 15)


def test_month_windows_keep_their_anchor_day() -> None:
    windows = list(month_windows(_utc(2024, 1, 31), _utc(2024, 6, 1)))

    assert [start for start, _ in windows] == [
        _utc(2024, 1, 31),
        _utc(2024, 2, 29),
        _utc(2024, 3, 31),
        _utc(2024, 4, 30),
        _utc(2024, 5, 31),
    ]
    assert windows[-1][1] == _utc(2024, 6, 1)
    for (_, end), (start, _) in zip(windows, windows[1:]):
        assert end == start


def test_month_windows_cover_calendar_months() -> None:
    windows = list(month_windows(_utc(2024, 1, 1), _utc(2025, 1, 1)))
    assert len(windows) == 12
    assert windows[1] == (_utc(2024, 2, 1), _utc(2024, 3, 1))


def test_months_between_counts_thirty_day_months() -> None:
    assert months_between(_utc(2024, 1, 1), _utc(2025, 1, 1)) == 12
    assert months_between(_utc(2024, 1, 1), _utc(2024, 1, 10)) == 1


def test_parse_date_accepts_year_month() -> None:
    assert parse_date(" 2023-06 ") == _utc(2023, 6, 1)
    assert parse_date("2024-02-29") == _utc(2024, 2, 29)
