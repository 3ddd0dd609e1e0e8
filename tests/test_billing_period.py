"""Unit tests for billing period helpers and challan number generation."""

import re
from datetime import date

import pytest

from feedesk.core.billing_period import (
    MONTHS,
    due_date_for,
    generate_challan_number,
    month_index,
    period_sort_key,
    validate_period,
)
from feedesk.core.exceptions import ValidationError


def test_challan_number_format() -> None:
    """Prefix, year, zero-padded month index, then a 4-digit suffix."""
    number = generate_challan_number("March", 2024)
    assert re.match(r"^CHN-202403-\d{4}$", number)
    suffix = int(number.rsplit("-", 1)[1])
    assert 1000 <= suffix <= 9999


def test_challan_number_custom_prefix() -> None:
    assert generate_challan_number("December", 2025, prefix="FEE").startswith("FEE-202512-")


def test_challan_number_random_part() -> None:
    """Multiple calls produce different numbers (random suffix)."""
    numbers = {generate_challan_number("January", 2024) for _ in range(10)}
    # 9000 possible suffixes; 10 calls should almost always give at least 2 distinct
    assert len(numbers) >= 2


def test_month_index_is_one_based() -> None:
    assert month_index("January") == 1
    assert month_index("December") == 12
    assert len(MONTHS) == 12


@pytest.mark.parametrize("bad_month", ["march", "MARCH", "Mar", "", "Sept"])
def test_month_name_must_match_exactly(bad_month: str) -> None:
    with pytest.raises(ValidationError):
        month_index(bad_month)


def test_due_date_is_tenth_of_billing_month() -> None:
    assert due_date_for("February", 2024) == date(2024, 2, 10)
    assert due_date_for("December", 2023) == date(2023, 12, 10)


def test_due_date_day_override() -> None:
    assert due_date_for("June", 2024, day=5) == date(2024, 6, 5)


def test_validate_period_rejects_out_of_range_year() -> None:
    with pytest.raises(ValidationError):
        validate_period("March", 1999)
    assert validate_period("March", 2024) == 3


def test_period_sort_key_orders_by_calendar() -> None:
    periods = [("March", 2024), ("December", 2023), ("January", 2024)]
    assert sorted(periods, key=lambda p: period_sort_key(*p)) == [
        ("December", 2023),
        ("January", 2024),
        ("March", 2024),
    ]
