import pytest

from snfkpi.core.periods import (
    InvalidPeriodError,
    days_in_month,
    format_period_id,
    parse_period_id,
    period_months_ago,
    period_range,
)


def test_parse_period():
    period = parse_period_id("2024-11")

    assert (period.year, period.month, period.days_in_month) == (2024, 11, 30)
    assert period.start_date == "2024-11-01"
    assert period.end_date == "2024-11-30"


@pytest.mark.parametrize("bad", ["2024-13", "2024-00", "2024-1", "11/2024", "", None, "abcd-ef"])
def test_invalid_period_ids(bad):
    with pytest.raises(InvalidPeriodError):
        parse_period_id(bad)


def test_invalid_period_is_a_value_error():
    with pytest.raises(ValueError):
        days_in_month("2024-99")


def test_days_in_month():
    assert days_in_month("2024-02") == 29
    assert days_in_month("2023-02") == 28
    assert days_in_month("2024-12") == 31


def test_format_period_id():
    assert format_period_id("2024-11") == "Nov 2024"
    assert format_period_id("2025-01") == "Jan 2025"


def test_months_ago_crosses_years():
    assert period_months_ago("2024-01", 1) == "2023-12"
    assert period_months_ago("2024-11", 12) == "2023-11"
    assert period_months_ago("2024-11", 0) == "2024-11"


def test_period_range():
    assert period_range("2024-02", 3) == ["2023-12", "2024-01", "2024-02"]
    assert period_range("2024-02", 0) == []
