"""Calendar helpers shared by the generators."""
from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Iterator

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"


def add_months(moment: datetime, months: int) -> datetime:
    """Shift ``moment`` by whole months, clamping the day to the target month length."""

    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def month_windows(start: datetime, end: datetime) -> Iterator[tuple[datetime, datetime]]:
    """Yield ``(month_start, month_end)`` windows covering ``[start, end)``.

    Windows are anchored on ``start``; the final window is truncated at ``end``.
    """

    step = 0
    current = start
    while current < end:
        step += 1
        following = add_months(start, step)
        yield current, min(following, end)
        current = following


def month_end(day: date) -> int:
    """Return the last day-of-month number for ``day``'s month."""

    return calendar.monthrange(day.year, day.month)[1]


def months_between(start: datetime, end: datetime) -> int:
    """Whole 30-day months in ``[start, end)``, at least one."""

    months = int((end - start).total_seconds() / 3600 / (24 * 30))
    return max(months, 1)


def parse_date(value: str) -> datetime:
    """Parse ``YYYY-MM-DD`` (or ``YYYY-MM``) into a UTC midnight datetime."""

    text = value.strip()
    if len(text) == 7:
        text = f"{text}-01"
    parsed = datetime.strptime(text, DATE_FORMAT)
    return parsed.replace(tzinfo=timezone.utc)


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def format_date(moment: date) -> str:
    return moment.strftime(DATE_FORMAT)
