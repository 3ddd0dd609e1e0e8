"""
Billing period helpers: canonical month names, due dates and challan numbers.

Challan number format: <prefix>-<YYYY><MM>-<NNNN>, e.g. CHN-202403-4821.
The 4-digit suffix is random and is not checked for collisions; a challan is
identified by (student, month, year), the number is for display only.
"""

import secrets
from datetime import date
from typing import Optional

from feedesk.core.config import settings
from feedesk.core.exceptions import ValidationError

MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

MIN_YEAR = 2000
MAX_YEAR = 2100


def month_index(month: str) -> int:
    """1-based index of a canonical month name. Matching is exact (case-sensitive)."""
    try:
        return MONTHS.index(month) + 1
    except ValueError:
        raise ValidationError(f"Invalid month '{month}'. Expected one of: {', '.join(MONTHS)}")


def validate_period(month: str, year: int) -> int:
    if year < MIN_YEAR or year > MAX_YEAR:
        raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}")
    return month_index(month)


def due_date_for(month: str, year: int, day: Optional[int] = None) -> date:
    """Due date of a challan: the configured day (10th by default) of the billing month."""
    return date(year, month_index(month), day or settings.challan_due_day)


def generate_challan_number(month: str, year: int, prefix: Optional[str] = None) -> str:
    """
    Generate a display number for a challan.

    Examples:
        March 2024 -> CHN-202403-4821
        December 2025 -> CHN-202512-1077
    """
    prefix = prefix or settings.challan_number_prefix
    suffix = 1000 + secrets.randbelow(9000)
    return f"{prefix}-{year}{month_index(month):02d}-{suffix}"


def period_sort_key(month: str, year: int) -> tuple:
    return (year, MONTHS.index(month) + 1 if month in MONTHS else 0)
