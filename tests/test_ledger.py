from datetime import date
from decimal import Decimal

from estateledger.constants import PaymentStatus, PaymentType
from estateledger.services.charges import generate_charge_schedule
from estateledger.services.ledger import (
    ENTRY_CHARGE,
    ENTRY_PAYMENT,
    PaymentEvent,
    amount_due,
    credit_balance,
    entries_between,
    final_balance,
    merge_ledger,
    opening_balance,
    payment_events,
    total_charged,
    total_paid,
)
from estateledger.services.periods import YearMonth
from estateledger.services.snapshot import PaymentSnapshot


def _payment(amount: str, paid_on, **overrides) -> PaymentSnapshot:
    values = {
        "id": 1,
        "occupant_id": 1,
        "amount": Decimal(amount),
        "date": paid_on,
        "type": PaymentType.SERVICE_CHARGE.value,
    }
    values.update(overrides)
    return PaymentSnapshot(**values)


def _charges():
    return generate_charge_schedule(YearMonth(2024, 1), "10000", date(2024, 4, 15), description="Service charge")


def test_merge_produces_running_balance():
    payments = payment_events([_payment("10000", date(2024, 2, 1))])
    ledger = merge_ledger(_charges(), payments)

    assert [entry.entry_type for entry in ledger] == [
        ENTRY_CHARGE,
        ENTRY_CHARGE,
        ENTRY_PAYMENT,
        ENTRY_CHARGE,
        ENTRY_CHARGE,
    ]
    assert [entry.balance for entry in ledger] == [
        Decimal("10000.00"),
        Decimal("20000.00"),
        Decimal("10000.00"),
        Decimal("20000.00"),
        Decimal("30000.00"),
    ]
    assert final_balance(ledger) == Decimal("30000.00")
    assert amount_due(ledger) == Decimal("30000.00")


def test_charge_sorts_before_payment_on_same_date():
    payments = payment_events([_payment("10000", date(2024, 1, 1))])
    ledger = merge_ledger(_charges()[:1], payments)

    charge, payment = ledger
    assert charge.entry_type == ENTRY_CHARGE
    assert payment.entry_type == ENTRY_PAYMENT
    assert charge.balance == Decimal("10000.00")
    assert payment.balance == Decimal("0.00")


def test_merge_is_deterministic():
    payments = payment_events(
        [
            _payment("2500", date(2024, 3, 1), id=3),
            _payment("2500", date(2024, 3, 1), id=4),
            _payment("7000", date(2024, 1, 20), id=5),
        ]
    )
    first = merge_ledger(_charges(), payments)
    second = merge_ledger(_charges(), payments)
    assert first == second


def test_final_balance_equals_charges_minus_payments():
    charges = _charges()
    payments = payment_events(
        [
            _payment("12000.50", date(2024, 1, 15), id=1),
            _payment("0.25", date(2024, 2, 2), id=2),
            _payment("9999.99", date(2024, 4, 1), id=3),
        ]
    )
    ledger = merge_ledger(charges, payments)
    assert final_balance(ledger) == sum(c.amount for c in charges) - sum(p.amount for p in payments)
    assert total_charged(ledger) == Decimal("40000.00")
    assert total_paid(ledger) == Decimal("22000.74")


def test_overpayment_reports_credit_not_negative_debt():
    payments = [PaymentEvent(date=date(2024, 1, 2), amount=Decimal("15000.00"), description="Advance")]
    ledger = merge_ledger(_charges()[:1], payments)
    assert final_balance(ledger) == Decimal("-5000.00")
    assert amount_due(ledger) == Decimal("0.00")
    assert credit_balance(ledger) == Decimal("5000.00")


def test_empty_ledger_has_zero_balance():
    assert merge_ledger([], []) == []
    assert final_balance([]) == Decimal("0.00")
    assert amount_due([]) == Decimal("0.00")


def test_payment_events_filter_unsettled_future_and_undated():
    payments = [
        _payment("100", date(2024, 1, 5), id=1, for_month="2024-01"),
        _payment("100", date(2024, 1, 6), id=2, status=PaymentStatus.PENDING.value),
        _payment("100", date(2024, 5, 1), id=3),
        _payment("100", "not a date", id=4),
        _payment("100", "2024-01-07", id=5, notes="Cash at office"),
    ]
    events = payment_events(payments, as_of=date(2024, 4, 30))
    assert [event.reference for event in events] == ["1", "5"]
    assert events[0].description == "Payment for Jan 2024"
    assert events[1].description == "Cash at office"
    assert events[1].date == date(2024, 1, 7)


def test_payment_description_falls_back_to_type_for_bad_month():
    (event,) = payment_events([_payment("100", date(2024, 1, 5), for_month="2024-NaN")])
    assert event.description == "Payment for ServiceCharge"


def test_opening_balance_and_window():
    payments = payment_events([_payment("10000", date(2024, 2, 1))])
    ledger = merge_ledger(_charges(), payments)
    assert opening_balance(ledger, date(2024, 3, 1)) == Decimal("10000.00")
    assert opening_balance(ledger, date(2024, 1, 1)) == Decimal("0.00")
    window = entries_between(ledger, date(2024, 2, 1), date(2024, 3, 31))
    assert [entry.date for entry in window] == [date(2024, 2, 1), date(2024, 2, 1), date(2024, 3, 1)]
