from __future__ import annotations

from datetime import date

import pytest

from wealthtrack.core.periods import YearMonth, add_months, fiscal_year_bounds, iter_monthly, month_range
from wealthtrack.services.errors import ValidationError


def test_year_month_parses_and_formats():
    ym = YearMonth.parse("2024-02")
    assert (ym.year, ym.month) == (2024, 2)
    assert str(ym) == "2024-02"
    assert ym.first_day == date(2024, 2, 1)
    assert ym.last_day == date(2024, 2, 29)


@pytest.mark.parametrize("value", ["2024-13", "2024-1", "24-01", "", "2024/01"])
def test_year_month_rejects_malformed_values(value):
    with pytest.raises(ValidationError):
        YearMonth.parse(value)


def test_month_range_crosses_year_boundary():
    months = month_range(YearMonth(2023, 11), YearMonth(2024, 2))
    assert [str(m) for m in months] == ["2023-11", "2023-12", "2024-01", "2024-02"]
    assert month_range(YearMonth(2024, 3), YearMonth(2024, 1)) == []


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_iter_monthly_keeps_original_day_after_short_month():
    days = list(iter_monthly(date(2024, 1, 31), date(2024, 4, 30)))
    assert days == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]


def test_fiscal_year_bounds_april_to_march():
    assert fiscal_year_bounds(date(2024, 6, 1)) == (date(2024, 4, 1), date(2025, 3, 31))
    assert fiscal_year_bounds(date(2025, 2, 10)) == (date(2024, 4, 1), date(2025, 3, 31))
    assert fiscal_year_bounds(date(2025, 2, 10), start_month=1) == (date(2025, 1, 1), date(2025, 12, 31))
