"""Payment status, grouping and vacant-unit arrears for recurring charges.

Payments are allocated to charges oldest first. A month is ``Paid`` once the
payments received up to ``as_of`` cover every charge through that month;
a credit carried forward therefore settles later months as well.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..constants import (
    AccountStatus,
    ManagementStatus,
    OwnershipType,
    PaymentType,
    UnitStatus,
)
from ..core.errors import LedgerError
from .billing_rules import first_billable_month, first_lease_month
from .charges import ChargeEvent, generate_charge_schedule, to_money
from .ledger import PaymentEvent, LedgerEntry, amount_due, merge_ledger, payment_events
from .periods import YearMonth
from .snapshot import (
    LeaseSnapshot,
    OccupantSnapshot,
    Owner,
    PaymentSnapshot,
    PortfolioSnapshot,
    UnitSnapshot,
    owner_group_id,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

CHARGE_DESCRIPTIONS = {
    PaymentType.SERVICE_CHARGE: "Service charge",
    PaymentType.RENT: "Rent",
}


@dataclass(frozen=True)
class ChargeAllocation:
    charge: ChargeEvent
    paid: Decimal

    @property
    def period(self) -> YearMonth:
        return self.charge.period

    @property
    def outstanding(self) -> Decimal:
        return self.charge.amount - self.paid

    @property
    def status(self) -> AccountStatus:
        return AccountStatus.PAID if self.outstanding <= 0 else AccountStatus.PENDING


def allocate_payments(charges: Sequence[ChargeEvent], payments: Sequence[PaymentEvent]) -> List[ChargeAllocation]:
    remaining = sum((to_money(payment.amount) for payment in payments), ZERO)
    allocations: List[ChargeAllocation] = []
    for charge in sorted(charges, key=lambda event: event.date):
        applied = min(max(remaining, ZERO), charge.amount)
        remaining -= applied
        allocations.append(ChargeAllocation(charge=charge, paid=applied))
    return allocations


@dataclass
class UnitLedger:
    unit: UnitSnapshot
    charge_type: PaymentType
    as_of: date
    first_month: Optional[YearMonth]
    monthly_amount: Decimal
    charges: List[ChargeEvent] = field(default_factory=list)
    payments: List[PaymentEvent] = field(default_factory=list)
    ledger: List[LedgerEntry] = field(default_factory=list)
    allocations: List[ChargeAllocation] = field(default_factory=list)

    @property
    def is_billable(self) -> bool:
        return self.first_month is not None and self.monthly_amount > 0

    @property
    def amount_due(self) -> Decimal:
        return amount_due(self.ledger)

    def allocation_for(self, period: YearMonth) -> Optional[ChargeAllocation]:
        for allocation in self.allocations:
            if allocation.period == period:
                return allocation
        return None

    def unpaid_allocations(self) -> List[ChargeAllocation]:
        return [allocation for allocation in self.allocations if allocation.outstanding > 0]


def monthly_amount_for(unit: UnitSnapshot, lease: Optional[LeaseSnapshot], charge_type: PaymentType) -> Decimal:
    amount = to_money(unit.charge_for(charge_type))
    if amount <= 0 and lease is not None:
        fallback = lease.rent if charge_type == PaymentType.RENT else lease.service_charge
        amount = to_money(fallback)
    return amount


def settling_payments(payments: Iterable[PaymentSnapshot], charge_type: PaymentType) -> List[PaymentSnapshot]:
    return [payment for payment in payments if payment.type == charge_type.value]


def build_unit_ledger(
    unit: UnitSnapshot,
    lease: Optional[LeaseSnapshot],
    payments: Iterable[PaymentSnapshot],
    as_of: date,
    charge_type: PaymentType = PaymentType.SERVICE_CHARGE,
    through: Optional[YearMonth] = None,
) -> UnitLedger:
    first_month = first_billable_month(unit, lease)
    if first_month is None and charge_type == PaymentType.RENT:
        first_month = first_lease_month(lease)
    monthly_amount = monthly_amount_for(unit, lease, charge_type)
    cutoff = as_of
    if through is not None and through.first_day() > cutoff:
        cutoff = through.first_day()
    charges = generate_charge_schedule(
        first_month,
        monthly_amount,
        cutoff,
        description=CHARGE_DESCRIPTIONS.get(charge_type, charge_type.value),
        unit_name=unit.name,
        property_id=unit.property_id,
    )
    events = payment_events(settling_payments(payments, charge_type), as_of=as_of)
    return UnitLedger(
        unit=unit,
        charge_type=charge_type,
        as_of=as_of,
        first_month=first_month,
        monthly_amount=monthly_amount,
        charges=charges,
        payments=events,
        ledger=merge_ledger(charges, events),
        allocations=allocate_payments(charges, events),
    )


def classify_unit_status(unit_ledger: UnitLedger, reference_month: YearMonth) -> AccountStatus:
    if not unit_ledger.is_billable or reference_month < unit_ledger.first_month:
        return AccountStatus.NOT_APPLICABLE
    allocation = unit_ledger.allocation_for(reference_month)
    if allocation is None:
        return AccountStatus.NOT_APPLICABLE
    return allocation.status


def months_in_arrears(unit_ledger: UnitLedger, reference_month: YearMonth) -> int:
    """Unpaid charges strictly before the reference month."""
    return sum(1 for allocation in unit_ledger.unpaid_allocations() if allocation.period < reference_month)


def grouped_status(statuses: Iterable[AccountStatus]) -> AccountStatus:
    collected = list(statuses)
    if AccountStatus.PENDING in collected:
        return AccountStatus.PENDING
    if all(status == AccountStatus.NOT_APPLICABLE for status in collected):
        return AccountStatus.NOT_APPLICABLE
    return AccountStatus.PAID


@dataclass
class ServiceChargeAccount:
    property_id: int
    property_name: str
    unit_name: str
    unit_service_charge: Decimal
    payment_status: AccountStatus
    owner_id: Optional[int] = None
    owner_kind: Optional[str] = None
    owner_name: str = "Unassigned"
    occupant_id: Optional[int] = None
    occupant_name: Optional[str] = None
    payment_amount: Optional[Decimal] = None
    payment_for_month: Optional[str] = None
    amount_due: Decimal = ZERO
    months_in_arrears: int = 0


@dataclass
class GroupedServiceChargeAccount:
    group_id: str
    owner_name: str
    owner_id: Optional[int] = None
    owner_kind: Optional[str] = None
    units: List[ServiceChargeAccount] = field(default_factory=list)
    total_service_charge: Decimal = ZERO
    payment_status: AccountStatus = AccountStatus.NOT_APPLICABLE


@dataclass(frozen=True)
class ArrearsMonth:
    period: YearMonth
    month: str
    amount: Decimal
    outstanding: Decimal
    status: AccountStatus


@dataclass
class VacantArrearsUnit:
    property_id: int
    property_name: str
    unit_name: str
    unit_handover_date: Optional[str]
    months_in_arrears: int
    total_due: Decimal
    arrears_detail: List[ArrearsMonth] = field(default_factory=list)


@dataclass
class VacantArrearsAccount:
    owner_id: int
    owner_kind: str
    owner_name: str
    total_due: Decimal = ZERO
    months_in_arrears: int = 0
    units: List[VacantArrearsUnit] = field(default_factory=list)


@dataclass
class ServiceChargeReport:
    reference_month: YearMonth
    as_of: date
    client_occupied_accounts: List[ServiceChargeAccount] = field(default_factory=list)
    managed_vacant_accounts: List[ServiceChargeAccount] = field(default_factory=list)
    vacant_arrears: List[VacantArrearsAccount] = field(default_factory=list)


def is_client_occupied(unit: UnitSnapshot) -> bool:
    return (
        unit.status == UnitStatus.CLIENT_OCCUPIED.value
        and unit.management_status == ManagementStatus.CLIENT_MANAGED.value
        and unit.is_handed_over
    )


def is_managed_vacant(unit: UnitSnapshot) -> bool:
    return (
        unit.status == UnitStatus.VACANT.value
        and unit.management_status == ManagementStatus.RENTED_FOR_CLIENTS.value
        and unit.is_handed_over
    )


def is_liable_vacant(unit: UnitSnapshot) -> bool:
    return (
        unit.status == UnitStatus.VACANT.value
        and unit.ownership == OwnershipType.LANDLORD.value
        and unit.is_handed_over
        and bool(unit.handover_date)
    )


def _payment_for_month(payments: Iterable[PaymentSnapshot], reference_month: YearMonth) -> Optional[PaymentSnapshot]:
    label = str(reference_month)
    for payment in payments:
        if payment.is_settled and payment.for_month == label and payment.type == PaymentType.SERVICE_CHARGE.value:
            return payment
    return None


def _unit_payments(snapshot: PortfolioSnapshot, unit: UnitSnapshot, owner: Optional[Owner]) -> List[PaymentSnapshot]:
    occupant_ids = {occupant.id for occupant in snapshot.occupants_for_unit(unit)}
    if owner is not None:
        occupant_ids.update(
            occupant.id
            for occupant in snapshot.representing_occupants(owner)
            if occupant.unit_key == unit.key
        )
    return snapshot.payments_for(sorted(occupant_ids))


def build_account(
    snapshot: PortfolioSnapshot,
    unit: UnitSnapshot,
    reference_month: YearMonth,
    as_of: date,
) -> ServiceChargeAccount:
    owner = snapshot.owner_for_unit(unit)
    occupant: Optional[OccupantSnapshot] = snapshot.billing_occupant_for_unit(unit)
    payments = _unit_payments(snapshot, unit, owner)
    account = ServiceChargeAccount(
        property_id=unit.property_id,
        property_name=unit.property_name,
        unit_name=unit.name,
        unit_service_charge=to_money(unit.service_charge),
        payment_status=AccountStatus.NOT_APPLICABLE,
        owner_id=owner.id if owner else None,
        owner_kind=owner.kind.value if owner else None,
        owner_name=owner.name if owner else "Unassigned",
        occupant_id=occupant.id if occupant else None,
        occupant_name=occupant.name if occupant else None,
    )
    try:
        unit_ledger = build_unit_ledger(
            unit,
            occupant.lease if occupant else None,
            payments,
            as_of,
            through=reference_month,
        )
    except (LedgerError, ValueError, ArithmeticError):
        logger.warning("Could not derive service charge ledger for %s/%s", unit.property_name, unit.name, exc_info=True)
        return account

    account.payment_status = classify_unit_status(unit_ledger, reference_month)
    account.amount_due = unit_ledger.amount_due
    account.months_in_arrears = months_in_arrears(unit_ledger, reference_month)
    matching_payment = _payment_for_month(payments, reference_month)
    if matching_payment is not None:
        account.payment_amount = to_money(matching_payment.amount)
        account.payment_for_month = matching_payment.for_month
    return account


def group_accounts(accounts: Iterable[ServiceChargeAccount]) -> List[GroupedServiceChargeAccount]:
    groups: Dict[str, GroupedServiceChargeAccount] = {}
    for account in accounts:
        if account.owner_id is not None:
            key = f"{account.owner_kind}-{account.owner_id}"
        else:
            key = f"unassigned-{account.property_name}-{account.unit_name}"
        group = groups.get(key)
        if group is None:
            group = GroupedServiceChargeAccount(
                group_id=key,
                owner_id=account.owner_id,
                owner_kind=account.owner_kind,
                owner_name=account.owner_name or "Unassigned",
            )
            groups[key] = group
        group.units.append(account)
        group.total_service_charge += account.unit_service_charge

    for group in groups.values():
        group.payment_status = grouped_status(unit.payment_status for unit in group.units)
    return list(groups.values())


def _liable_unit_ledger(snapshot: PortfolioSnapshot, unit: UnitSnapshot, reference_month: YearMonth, as_of: date) -> Optional[UnitLedger]:
    occupant = snapshot.billing_occupant_for_unit(unit)
    try:
        return build_unit_ledger(
            unit,
            occupant.lease if occupant else None,
            (),
            as_of,
            through=reference_month,
        )
    except (LedgerError, ValueError, ArithmeticError):
        logger.warning("Could not derive arrears for %s/%s", unit.property_name, unit.name, exc_info=True)
        return None


def owner_payment_pool(snapshot: PortfolioSnapshot, owner: Owner, units: Iterable[UnitSnapshot], as_of: date) -> List[PaymentEvent]:
    """Service-charge payments that count towards any of the owner's units, each payment once."""
    collected: Dict[int, PaymentSnapshot] = {}
    for unit in units:
        for payment in _unit_payments(snapshot, unit, owner):
            collected.setdefault(payment.id, payment)
    representing = sorted(occupant.id for occupant in snapshot.representing_occupants(owner))
    for payment in snapshot.payments_for(representing):
        collected.setdefault(payment.id, payment)
    return payment_events(settling_payments(collected.values(), PaymentType.SERVICE_CHARGE), as_of=as_of)


def _arrears_unit(unit: UnitSnapshot, allocations: Sequence[ChargeAllocation], reference_month: YearMonth) -> Optional[VacantArrearsUnit]:
    due = sum((allocation.outstanding for allocation in allocations), ZERO)
    if due <= 0:
        return None
    detail = [
        ArrearsMonth(
            period=allocation.period,
            month=allocation.period.label(),
            amount=allocation.charge.amount,
            outstanding=allocation.outstanding,
            status=allocation.status,
        )
        for allocation in allocations
    ]
    handover = unit.handover_date
    return VacantArrearsUnit(
        property_id=unit.property_id,
        property_name=unit.property_name,
        unit_name=unit.name,
        unit_handover_date=handover.isoformat() if hasattr(handover, "isoformat") else handover,
        months_in_arrears=sum(
            1 for allocation in allocations if allocation.outstanding > 0 and allocation.period < reference_month
        ),
        total_due=due,
        arrears_detail=detail,
    )


def _owner_arrears(
    snapshot: PortfolioSnapshot,
    owner: Owner,
    units: Sequence[UnitSnapshot],
    reference_month: YearMonth,
    as_of: date,
) -> Optional[VacantArrearsAccount]:
    ledgers = [
        unit_ledger
        for unit_ledger in (_liable_unit_ledger(snapshot, unit, reference_month, as_of) for unit in units)
        if unit_ledger is not None
    ]
    charges = [charge for unit_ledger in ledgers for charge in unit_ledger.charges]
    by_unit: Dict[Tuple[Optional[int], str], List[ChargeAllocation]] = defaultdict(list)
    for allocation in allocate_payments(charges, owner_payment_pool(snapshot, owner, units, as_of)):
        by_unit[(allocation.charge.property_id, allocation.charge.unit_names[0])].append(allocation)

    account = VacantArrearsAccount(owner_id=owner.id, owner_kind=owner.kind.value, owner_name=owner.name)
    for unit_ledger in ledgers:
        arrears = _arrears_unit(unit_ledger.unit, by_unit.get(unit_ledger.unit.key, []), reference_month)
        if arrears is None:
            continue
        account.units.append(arrears)
        account.total_due += arrears.total_due
        account.months_in_arrears = max(account.months_in_arrears, arrears.months_in_arrears)
    return account if account.units else None


def collect_vacant_arrears(snapshot: PortfolioSnapshot, reference_month: YearMonth, as_of: date) -> List[VacantArrearsAccount]:
    """Arrears on vacant landlord units, grouped per owner.

    Payments from every occupant representing the owner form one pool that is
    applied oldest charge first across all of the owner's vacant units, so a
    consolidated payment settles whichever units it covers.
    """
    liable: Dict[str, Tuple[Owner, List[UnitSnapshot]]] = {}
    for unit in snapshot.units():
        if not is_liable_vacant(unit):
            continue
        owner = snapshot.owner_for_unit(unit)
        if owner is None:
            continue
        liable.setdefault(owner_group_id(owner), (owner, []))[1].append(unit)

    accounts: List[VacantArrearsAccount] = []
    for owner, units in liable.values():
        account = _owner_arrears(snapshot, owner, units, reference_month, as_of)
        if account is not None:
            accounts.append(account)
    return accounts


def process_service_charge_data(
    snapshot: PortfolioSnapshot,
    reference_month: YearMonth,
    as_of: date,
) -> ServiceChargeReport:
    report = ServiceChargeReport(reference_month=reference_month, as_of=as_of)
    for unit in snapshot.units():
        if is_client_occupied(unit):
            report.client_occupied_accounts.append(build_account(snapshot, unit, reference_month, as_of))
        elif is_managed_vacant(unit):
            report.managed_vacant_accounts.append(build_account(snapshot, unit, reference_month, as_of))
    report.vacant_arrears = collect_vacant_arrears(snapshot, reference_month, as_of)
    return report
