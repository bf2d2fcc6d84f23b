"""Unit tests for contract date arithmetic"""

import pytest
from datetime import date, datetime, timedelta
from court_monitor.domain.exceptions import InvalidInput
from court_monitor.utils.date_utils import (
    add_months,
    days_remaining,
    extract_months,
    format_duration,
    is_valid_contract_date,
)


def test_add_months_crosses_year_boundary():
    """October plus six months lands in April of the next year"""
    assert add_months(date(2025, 10, 15), 6) == date(2026, 4, 15)


def test_add_months_twelve_is_one_year():
    assert add_months(date(2025, 1, 1), 12) == date(2026, 1, 1)


def test_add_months_clamps_to_month_end():
    """Day 31 into a shorter month clamps to that month's last day"""
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 8, 31), 1) == date(2025, 9, 30)


def test_add_months_accepts_datetime_and_iso_string():
    assert add_months(datetime(2025, 3, 10, 17, 45), 2) == date(2025, 5, 10)
    assert add_months("2025-03-10", 2) == date(2025, 5, 10)


@pytest.mark.parametrize("months", [0, -3, 1.5, "6", True])
def test_add_months_rejects_non_positive_or_non_integer_months(months):
    with pytest.raises(InvalidInput):
        add_months(date(2025, 1, 1), months)


@pytest.mark.parametrize("base", [None, "not a date", 20250101])
def test_add_months_rejects_missing_or_malformed_base(base):
    with pytest.raises(InvalidInput):
        add_months(base, 6)


@pytest.mark.parametrize(
    "base, months",
    [
        (date(9999, 10, 1), 6),
        (date(2025, 1, 1), 100000),
        (date(2025, 1, 1), 10**20),
    ],
)
def test_add_months_past_max_year_is_invalid_input(base, months):
    """Results beyond the last representable date raise InvalidInput, not ValueError"""
    with pytest.raises(InvalidInput):
        add_months(base, months)


def test_days_remaining_relative_to_today():
    today = date(2025, 6, 1)
    assert days_remaining(today, today=today) == 0
    assert days_remaining(today + timedelta(days=10), today=today) == 10
    assert days_remaining(today - timedelta(days=5), today=today) == -5


def test_days_remaining_defaults_to_current_date():
    assert days_remaining(date.today() + timedelta(days=3)) == 3


def test_days_remaining_soft_fails_to_zero():
    """Missing, unparsable and out-of-range dates never raise"""
    assert days_remaining(None) == 0
    assert days_remaining("garbage") == 0
    assert days_remaining(date(1999, 12, 31)) == 0
    assert days_remaining(date(2100, 1, 1)) == 0


def test_extract_months():
    assert extract_months("6 meses") == 6
    assert extract_months("Renovación por 12 meses") == 12
    assert extract_months("18") == 18
    assert extract_months("seis meses") == 0
    assert extract_months("") == 0
    assert extract_months(None) == 0


def test_is_valid_contract_date_range():
    assert is_valid_contract_date(date(2000, 1, 1))
    assert is_valid_contract_date(date(2099, 12, 31))
    assert is_valid_contract_date("2025-05-01")
    assert not is_valid_contract_date(date(1999, 12, 31))
    assert not is_valid_contract_date(None)
    assert not is_valid_contract_date("31/12/2025")


def test_format_duration():
    assert format_duration(6) == "6 meses"
    assert extract_months(format_duration(9)) == 9
