from datetime import date, datetime

import pytest

from estateledger.services.periods import YearMonth, parse_date, parse_year_month


def test_year_month_parses_and_formats():
    month = YearMonth.parse("2024-03")
    assert month == YearMonth(2024, 3)
    assert str(month) == "2024-03"
    assert month.label() == "March 2024"
    assert month.short_label() == "Mar 2024"


@pytest.mark.parametrize("value", ["2024-NaN", "2024-13", "24-03", "", "March 2024"])
def test_year_month_rejects_malformed_text(value):
    with pytest.raises(ValueError):
        YearMonth.parse(value)


def test_year_month_arithmetic_crosses_year_boundary():
    december = YearMonth(2023, 12)
    assert december.next() == YearMonth(2024, 1)
    assert YearMonth(2024, 1).previous() == december
    assert december.add_months(14) == YearMonth(2025, 2)


def test_year_month_ordering_and_bounds():
    months = [YearMonth(2024, 2), YearMonth(2023, 11), YearMonth(2024, 1)]
    assert sorted(months) == [YearMonth(2023, 11), YearMonth(2024, 1), YearMonth(2024, 2)]
    assert YearMonth(2024, 2).first_day() == date(2024, 2, 1)
    assert YearMonth(2024, 2).last_day() == date(2024, 2, 29)
    assert YearMonth(2024, 2).contains(date(2024, 2, 29))
    assert not YearMonth(2024, 2).contains(date(2024, 3, 1))


def test_parse_date_accepts_stored_representations():
    assert parse_date(date(2024, 1, 5)) == date(2024, 1, 5)
    assert parse_date(datetime(2024, 1, 5, 13, 30)) == date(2024, 1, 5)
    assert parse_date("2024-01-05") == date(2024, 1, 5)
    assert parse_date("2024-01-05T08:00:00Z") == date(2024, 1, 5)
    assert parse_date("2024-02-30") is None
    assert parse_date("  ") is None
    assert parse_date(None) is None


def test_parse_year_month_is_lenient():
    assert parse_year_month("2024-05") == YearMonth(2024, 5)
    assert parse_year_month("2024-NaN") is None
    assert parse_year_month(None) is None
