"""
Billing period helpers.

A period is a calendar month written as "YYYY-MM".
"""

from __future__ import annotations

import calendar
import re
from datetime import date

PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def is_valid_period(value: str | None) -> bool:
    return bool(value) and PERIOD_RE.match(value) is not None


def parse_period(value: str) -> tuple[int, int]:
    """
    Split a "YYYY-MM" period into (year, month).

    Raises:
        ValueError: If the value is not a valid period
    """
    match = PERIOD_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid period {value!r}, expected YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def format_period(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def first_day(period: str) -> date:
    year, month = parse_period(period)
    return date(year, month, 1)


def deadline_date(period: str, payment_day: int) -> date:
    """
    Return the payment deadline for a period.

    The deadline is the payment_day-th day of the month following the
    period, clamped to that month's length (day 31 in February becomes
    the 28th or 29th).

    Example:
        deadline_date("2025-11", 1)   # date(2025, 12, 1)
        deadline_date("2026-01", 31)  # date(2026, 2, 28)
    """
    year, month = parse_period(period)
    if month == 12:
        year, month = year + 1, 1
    else:
        month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, max(1, min(payment_day, last_day)))
