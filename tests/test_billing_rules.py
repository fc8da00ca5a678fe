import logging
from datetime import date
from decimal import Decimal

import pytest

from estateledger.constants import HandoverStatus
from estateledger.core.errors import UnresolvableBillingStart
from estateledger.services.billing_rules import (
    first_billable_month,
    first_lease_month,
    month_after_grace_period,
    resolve_billing_start,
)
from estateledger.services.periods import YearMonth
from estateledger.services.snapshot import LeaseSnapshot, UnitSnapshot


def _unit(**overrides) -> UnitSnapshot:
    values = {
        "property_id": 1,
        "property_name": "Greenview",
        "name": "A1",
        "handover_status": HandoverStatus.HANDED_OVER.value,
        "handover_date": date(2024, 1, 5),
        "service_charge": Decimal("10000.00"),
    }
    values.update(overrides)
    return UnitSnapshot(**values)


def test_handover_on_grace_day_bills_same_month():
    assert first_billable_month(_unit(handover_date=date(2024, 3, 10))) == YearMonth(2024, 3)


def test_handover_after_grace_day_bills_following_month():
    assert first_billable_month(_unit(handover_date=date(2024, 3, 11))) == YearMonth(2024, 4)


def test_handover_late_december_rolls_into_next_year():
    assert first_billable_month(_unit(handover_date=date(2023, 12, 20))) == YearMonth(2024, 1)


def test_grace_period_day_can_be_overridden():
    assert month_after_grace_period(date(2024, 3, 12), grace_period_day=15) == YearMonth(2024, 3)
    assert month_after_grace_period(date(2024, 3, 16), grace_period_day=15) == YearMonth(2024, 4)


def test_last_billed_period_takes_precedence():
    lease = LeaseSnapshot(start_date=date(2023, 6, 1), last_billed_period="2024-02")
    assert first_billable_month(_unit(), lease) == YearMonth(2024, 3)


def test_last_billed_period_applies_before_handover():
    unit = _unit(handover_status=HandoverStatus.PENDING.value, handover_date=None)
    lease = LeaseSnapshot(last_billed_period="2024-02")
    assert first_billable_month(unit, lease) == YearMonth(2024, 3)


def test_malformed_last_billed_period_falls_through_with_warning(caplog):
    lease = LeaseSnapshot(last_billed_period="2024-NaN")
    with caplog.at_level(logging.WARNING, logger="estateledger.services.billing_rules"):
        result = first_billable_month(_unit(handover_date=date(2024, 1, 5)), lease)
    assert result == YearMonth(2024, 1)
    assert any("2024-NaN" in record.getMessage() for record in caplog.records)


def test_lease_start_used_when_handover_date_missing():
    lease = LeaseSnapshot(start_date="2024-03-15")
    assert first_billable_month(_unit(handover_date=None), lease) == YearMonth(2024, 4)


def test_unit_not_handed_over_is_not_billable():
    unit = _unit(handover_status=HandoverStatus.PENDING.value)
    assert first_billable_month(unit) is None
    with pytest.raises(UnresolvableBillingStart):
        resolve_billing_start(unit)


def test_unit_without_any_dates_is_not_billable():
    unit = _unit(handover_date=None)
    assert first_billable_month(unit) is None
    assert first_billable_month(unit, LeaseSnapshot()) is None


def test_unreadable_handover_date_is_not_billable():
    with pytest.raises(UnresolvableBillingStart) as excinfo:
        resolve_billing_start(_unit(handover_date="2024-02-30"))
    assert "unreadable" in excinfo.value.detail


def test_first_lease_month_ignores_handover():
    assert first_lease_month(None) is None
    assert first_lease_month(LeaseSnapshot(start_date=date(2024, 5, 2))) == YearMonth(2024, 5)
    assert first_lease_month(LeaseSnapshot(start_date=date(2024, 5, 2), last_billed_period="2024-07")) == YearMonth(2024, 8)
    assert first_lease_month(LeaseSnapshot(start_date="not a date")) is None
