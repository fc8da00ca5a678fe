"""Merge synthetic charges and recorded payments into a running-balance ledger."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from .charges import ChargeEvent, to_money
from .periods import YearMonth, parse_date
from .snapshot import PaymentSnapshot

ZERO = Decimal("0.00")

ENTRY_CHARGE = "charge"
ENTRY_PAYMENT = "payment"

# Charges sort before payments that share a date.
_KIND_ORDER = {ENTRY_CHARGE: 0, ENTRY_PAYMENT: 1}


@dataclass(frozen=True)
class PaymentEvent:
    date: date
    amount: Decimal
    description: str
    reference: Optional[str] = None
    for_month: Optional[str] = None


@dataclass(frozen=True)
class LedgerEntry:
    date: date
    description: str
    charge: Decimal
    payment: Decimal
    balance: Decimal
    entry_type: str
    period: Optional[YearMonth] = None
    reference: Optional[str] = None


def payment_events(payments: Iterable[PaymentSnapshot], as_of: Optional[date] = None) -> List[PaymentEvent]:
    """Settled payments as ledger events. Payments without a readable date or dated after ``as_of`` are skipped."""
    events: List[PaymentEvent] = []
    for payment in payments:
        if not payment.is_settled:
            continue
        paid_on = payment.payment_date
        if paid_on is None:
            continue
        if as_of is not None and paid_on > as_of:
            continue
        description = payment.notes or _default_payment_description(payment)
        events.append(
            PaymentEvent(
                date=paid_on,
                amount=to_money(payment.amount),
                description=description,
                reference=str(payment.id),
                for_month=payment.for_month,
            )
        )
    return events


def _default_payment_description(payment: PaymentSnapshot) -> str:
    try:
        return f"Payment for {YearMonth.parse(payment.for_month or '').short_label()}"
    except ValueError:
        return f"Payment for {payment.type}"


def merge_ledger(charges: Sequence[ChargeEvent], payments: Sequence[PaymentEvent]) -> List[LedgerEntry]:
    rows = [
        (charge.date, _KIND_ORDER[ENTRY_CHARGE], index, charge)
        for index, charge in enumerate(charges)
    ]
    rows.extend(
        (payment.date, _KIND_ORDER[ENTRY_PAYMENT], index, payment)
        for index, payment in enumerate(payments)
    )
    rows.sort(key=lambda row: (row[0], row[1], row[2]))

    balance = ZERO
    ledger: List[LedgerEntry] = []
    for _, kind_order, _, event in rows:
        if kind_order == _KIND_ORDER[ENTRY_CHARGE]:
            charge_amount = to_money(event.amount)
            balance += charge_amount
            ledger.append(
                LedgerEntry(
                    date=event.date,
                    description=event.description,
                    charge=charge_amount,
                    payment=ZERO,
                    balance=balance,
                    entry_type=ENTRY_CHARGE,
                    period=event.period,
                )
            )
        else:
            payment_amount = to_money(event.amount)
            balance -= payment_amount
            ledger.append(
                LedgerEntry(
                    date=event.date,
                    description=event.description,
                    charge=ZERO,
                    payment=payment_amount,
                    balance=balance,
                    entry_type=ENTRY_PAYMENT,
                    reference=event.reference,
                )
            )
    return ledger


def final_balance(ledger: Sequence[LedgerEntry]) -> Decimal:
    return ledger[-1].balance if ledger else ZERO


def amount_due(ledger: Sequence[LedgerEntry]) -> Decimal:
    """Outstanding debt; a credit balance is never reported as negative debt."""
    return max(final_balance(ledger), ZERO)


def credit_balance(ledger: Sequence[LedgerEntry]) -> Decimal:
    return max(-final_balance(ledger), ZERO)


def total_charged(ledger: Sequence[LedgerEntry]) -> Decimal:
    return sum((entry.charge for entry in ledger), ZERO)


def total_paid(ledger: Sequence[LedgerEntry]) -> Decimal:
    return sum((entry.payment for entry in ledger), ZERO)


def entries_between(ledger: Sequence[LedgerEntry], start: date, end: date) -> List[LedgerEntry]:
    return [entry for entry in ledger if start <= entry.date <= end]


def opening_balance(ledger: Sequence[LedgerEntry], start: date) -> Decimal:
    """Balance carried into ``start`` (the last balance strictly before it)."""
    balance = ZERO
    for entry in ledger:
        if entry.date >= start:
            break
        balance = entry.balance
    return balance
