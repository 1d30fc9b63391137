"""
Period identifiers.

Every fact and result is keyed by a monthly period id of the form
YYYY-MM. Malformed ids are the one input error the core rejects.
"""

import calendar
import re
from datetime import date
from typing import List

from dateutil.relativedelta import relativedelta

from .types import Period


_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")

_MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


class InvalidPeriodError(ValueError):
    """Raised when a period id is not a valid YYYY-MM month."""


def _split(period_id: str):
    match = _PERIOD_RE.match(str(period_id).strip()) if period_id is not None else None
    if not match:
        raise InvalidPeriodError(
            f"Invalid period id {period_id!r}: expected YYYY-MM"
        )

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidPeriodError(
            f"Invalid period id {period_id!r}: month must be 01-12"
        )
    return year, month


def parse_period_id(period_id: str) -> Period:
    year, month = _split(period_id)
    last_day = calendar.monthrange(year, month)[1]

    return Period(
        period_id=f"{year:04d}-{month:02d}",
        year=year,
        month=month,
        days_in_month=last_day,
        start_date=date(year, month, 1).isoformat(),
        end_date=date(year, month, last_day).isoformat(),
    )


def days_in_month(period_id: str) -> int:
    return parse_period_id(period_id).days_in_month


def format_period_id(period_id: str) -> str:
    """2024-11 -> 'Nov 2024'"""
    year, month = _split(period_id)
    return f"{_MONTH_NAMES[month - 1]} {year}"


def period_months_ago(period_id: str, months: int) -> str:
    year, month = _split(period_id)
    shifted = date(year, month, 1) - relativedelta(months=months)
    return f"{shifted.year:04d}-{shifted.month:02d}"


def period_range(end_period_id: str, months: int) -> List[str]:
    """Trailing window of `months` period ids ending at end_period_id, oldest first."""
    if months < 1:
        return []
    return [period_months_ago(end_period_id, n) for n in range(months - 1, -1, -1)]
