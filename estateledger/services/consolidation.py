"""Owner-level consolidated balances and one-shot payments across many units.

The coordinator recomputes the owner's full ledger from a fresh snapshot on
every call. It never patches balances incrementally: after a payment is
posted, callers read the ledger again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Protocol, Sequence

from ..constants import OwnerKind, PaymentStatus, PaymentType
from ..core.errors import NoPendingCharge, OccupantCreationFailed, OwnerNotFound, StaleBalance
from .charges import ChargeEvent, consolidate_monthly_charges, generate_charge_schedule, to_money
from .billing_rules import first_billable_month
from .ledger import LedgerEntry, PaymentEvent, amount_due, merge_ledger, payment_events
from .periods import YearMonth
from .service_charges import allocate_payments, settling_payments
from .snapshot import (
    OccupantSnapshot,
    Owner,
    PortfolioSnapshot,
    UnitSnapshot,
    resolve_owned_units,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentRecord:
    occupant_id: int
    amount: Decimal
    date: date
    type: str
    status: str = PaymentStatus.PAID.value
    notes: Optional[str] = None
    for_month: Optional[str] = None
    method: Optional[str] = None
    transaction_id: Optional[str] = None


class BillingStore(Protocol):
    def load_snapshot(self) -> PortfolioSnapshot: ...

    def find_or_create_occupant(self, owner: Owner, unit: UnitSnapshot, property_id: int) -> Any: ...

    def add_payment(self, record: PaymentRecord) -> Any: ...


@dataclass
class OwnerQuote:
    owner: Owner
    as_of: date
    units: List[UnitSnapshot] = field(default_factory=list)
    billed_units: List[UnitSnapshot] = field(default_factory=list)
    charges: List[ChargeEvent] = field(default_factory=list)
    payments: List[PaymentEvent] = field(default_factory=list)
    ledger: List[LedgerEntry] = field(default_factory=list)
    pending_periods: List[YearMonth] = field(default_factory=list)
    occupant_ids: List[int] = field(default_factory=list)

    @property
    def total_due(self) -> Decimal:
        return amount_due(self.ledger)

    @property
    def first_affected_unit(self) -> Optional[UnitSnapshot]:
        if self.billed_units:
            return self.billed_units[0]
        return self.units[0] if self.units else None

    def summary_note(self) -> str:
        unit_names = ", ".join(sorted({unit.name for unit in self.billed_units or self.units}))
        note = f"Consolidated service charge for units: {unit_names}"
        if self.pending_periods:
            first, last = self.pending_periods[0], self.pending_periods[-1]
            if first == last:
                note += f" ({first.short_label()})"
            else:
                note += f" ({first.short_label()} - {last.short_label()})"
        return note


def _lease_for_unit(unit: UnitSnapshot, representing: Sequence[OccupantSnapshot], snapshot: PortfolioSnapshot):
    on_unit = [occupant for occupant in representing if occupant.unit_key == unit.key]
    on_unit.sort(key=lambda occupant: (not occupant.is_active, occupant.id))
    if on_unit:
        return on_unit[0].lease
    occupant = snapshot.billing_occupant_for_unit(unit)
    return occupant.lease if occupant else None


def quote_owner_balance(snapshot: PortfolioSnapshot, owner: Owner, as_of: date) -> OwnerQuote:
    quote = OwnerQuote(owner=owner, as_of=as_of)
    quote.units = resolve_owned_units(owner, snapshot.properties)
    representing = snapshot.representing_occupants(owner)
    quote.occupant_ids = sorted(occupant.id for occupant in representing)

    unit_charges: List[ChargeEvent] = []
    for unit in quote.units:
        monthly = to_money(unit.service_charge)
        if monthly <= 0:
            continue
        lease = _lease_for_unit(unit, representing, snapshot)
        schedule = generate_charge_schedule(
            first_billable_month(unit, lease),
            monthly,
            as_of,
            description="Service charge",
            unit_name=unit.name,
            property_id=unit.property_id,
        )
        if schedule:
            quote.billed_units.append(unit)
            unit_charges.extend(schedule)

    quote.charges = consolidate_monthly_charges(unit_charges)
    quote.payments = payment_events(
        settling_payments(snapshot.payments_for(quote.occupant_ids), PaymentType.SERVICE_CHARGE),
        as_of=as_of,
    )
    quote.ledger = merge_ledger(quote.charges, quote.payments)
    quote.pending_periods = [
        allocation.period
        for allocation in allocate_payments(quote.charges, quote.payments)
        if allocation.outstanding > 0
    ]
    return quote


@dataclass(frozen=True)
class ConsolidatedPaymentRequest:
    payment_date: date
    method: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None
    for_month: Optional[str] = None
    notes: Optional[str] = None
    expected_total_due: Optional[Decimal] = None


@dataclass
class ConsolidatedPaymentResult:
    payment: Any
    occupant: Any
    quote: OwnerQuote


class ConsolidatedPaymentCoordinator:
    def __init__(self, store: BillingStore) -> None:
        self.store = store

    def _resolve_owner(self, snapshot: PortfolioSnapshot, kind: OwnerKind | str, owner_id: int) -> Owner:
        owner = snapshot.find_owner(kind, owner_id)
        if owner is None:
            raise OwnerNotFound(f"No {kind.value if isinstance(kind, OwnerKind) else kind} with id {owner_id}")
        return owner

    def quote(self, kind: OwnerKind | str, owner_id: int, as_of: date) -> OwnerQuote:
        snapshot = self.store.load_snapshot()
        return quote_owner_balance(snapshot, self._resolve_owner(snapshot, kind, owner_id), as_of)

    def record(
        self,
        kind: OwnerKind | str,
        owner_id: int,
        request: ConsolidatedPaymentRequest,
        as_of: date,
    ) -> ConsolidatedPaymentResult:
        snapshot = self.store.load_snapshot()
        owner = self._resolve_owner(snapshot, kind, owner_id)
        quote = quote_owner_balance(snapshot, owner, as_of)

        total_due = quote.total_due
        if total_due <= 0:
            raise NoPendingCharge(f"{owner.name} has no outstanding balance.")
        if request.expected_total_due is not None and to_money(request.expected_total_due) != total_due:
            raise StaleBalance(
                f"Outstanding balance for {owner.name} is {total_due}, not {to_money(request.expected_total_due)}."
            )

        amount = to_money(request.amount) if request.amount is not None else total_due
        if amount <= 0:
            raise NoPendingCharge("Payment amount must be greater than zero.")

        unit = quote.first_affected_unit
        if unit is None:
            raise OccupantCreationFailed(f"{owner.name} has no units to attach a payment to.")
        occupant = self.store.find_or_create_occupant(owner, unit, unit.property_id)
        if occupant is None:
            raise OccupantCreationFailed()

        record = PaymentRecord(
            occupant_id=occupant.id,
            amount=amount,
            date=request.payment_date,
            type=PaymentType.SERVICE_CHARGE.value,
            notes=request.notes or quote.summary_note(),
            for_month=request.for_month or str(YearMonth.from_date(request.payment_date)),
            method=request.method,
            transaction_id=request.transaction_id,
        )
        payment = self.store.add_payment(record)
        logger.info(
            "Recorded consolidated payment %s of %s for %s %s",
            getattr(payment, "id", None),
            amount,
            owner.kind.value,
            owner.id,
        )
        return ConsolidatedPaymentResult(payment=payment, occupant=occupant, quote=quote)
