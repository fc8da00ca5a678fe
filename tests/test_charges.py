from datetime import date
from decimal import Decimal

import pytest

from estateledger.core.errors import InvalidChargeAmount
from estateledger.services.charges import (
    ChargeEvent,
    consolidate_monthly_charges,
    generate_charge_schedule,
    validated_charge_amount,
)
from estateledger.services.periods import YearMonth


def test_schedule_runs_from_first_month_through_cutoff_month():
    events = generate_charge_schedule(YearMonth(2024, 1), Decimal("10000"), date(2024, 4, 15), description="Service charge")
    assert [event.period for event in events] == [
        YearMonth(2024, 1),
        YearMonth(2024, 2),
        YearMonth(2024, 3),
        YearMonth(2024, 4),
    ]
    assert all(event.amount == Decimal("10000.00") for event in events)
    assert events[0].date == date(2024, 1, 1)
    assert events[0].description == "Service charge for Jan 2024"


def test_schedule_includes_month_when_cutoff_is_its_first_day():
    events = generate_charge_schedule(YearMonth(2024, 1), "500", date(2024, 4, 1))
    assert len(events) == 4
    events = generate_charge_schedule(YearMonth(2024, 1), "500", date(2024, 3, 31))
    assert len(events) == 3


def test_schedule_is_empty_when_first_month_after_cutoff():
    assert generate_charge_schedule(YearMonth(2024, 5), "500", date(2024, 4, 30)) == []


@pytest.mark.parametrize("amount", [0, "0.00", "-100", None])
def test_schedule_is_empty_for_non_positive_amounts(amount):
    assert generate_charge_schedule(YearMonth(2024, 1), amount, date(2024, 4, 15)) == []


def test_schedule_is_empty_without_first_month():
    assert generate_charge_schedule(None, "500", date(2024, 4, 15)) == []


def test_validated_charge_amount_rejects_zero():
    assert validated_charge_amount("12.5") == Decimal("12.50")
    with pytest.raises(InvalidChargeAmount):
        validated_charge_amount(0)


def test_consolidation_merges_units_per_month():
    unit_a = generate_charge_schedule(YearMonth(2024, 1), "5000", date(2024, 2, 10), unit_name="A1")
    unit_b = generate_charge_schedule(YearMonth(2024, 2), "3000", date(2024, 2, 10), unit_name="B2")

    consolidated = consolidate_monthly_charges(unit_b + unit_a)

    assert [event.period for event in consolidated] == [YearMonth(2024, 1), YearMonth(2024, 2)]
    january, february = consolidated
    assert january.amount == Decimal("5000.00")
    assert january.description == "S.Charge for Units: A1"
    assert february.amount == Decimal("8000.00")
    assert february.description == "S.Charge for Units: A1, B2"
    assert february.unit_names == ("A1", "B2")
    assert february.date == date(2024, 2, 1)


def test_consolidation_without_unit_names_uses_prefix():
    event = ChargeEvent(date=date(2024, 1, 1), period=YearMonth(2024, 1), amount=Decimal("10.00"), description="x")
    (merged,) = consolidate_monthly_charges([event], prefix="Charges")
    assert merged.description == "Charges"
