"""Rent remittance figures for landlord statements."""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from ..config import settings
from ..constants import HandoverStatus, PaymentStatus, PaymentType, UnitStatus
from .charges import CENT, to_money
from .snapshot import OccupantSnapshot, PaymentSnapshot, PropertySnapshot, UnitSnapshot

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class TransactionBreakdown:
    gross: Decimal
    service_charge_deduction: Decimal
    management_fee: Decimal
    net_to_landlord: Decimal


@dataclass
class FinancialSummary:
    total_revenue: Decimal = ZERO
    total_management_fees: Decimal = ZERO
    total_service_charges: Decimal = ZERO
    total_net_remittance: Decimal = ZERO
    transaction_count: int = 0
    vacant_unit_service_charge_deduction: Decimal = ZERO


def calculate_transaction_breakdown(
    payment_amount: Any,
    unit_rent: Any,
    service_charge: Any = 0,
    management_fee_rate: Optional[Decimal] = None,
) -> TransactionBreakdown:
    """Split a rent payment into landlord remittance and deductions.

    The gross line is the unit's standard rent, not the amount received;
    ``payment_amount`` only identifies the transaction. The management fee is
    a fixed share of the standard rent.
    """
    rate = settings.management_fee_rate if management_fee_rate is None else Decimal(str(management_fee_rate))
    gross = to_money(unit_rent)
    deduction = to_money(service_charge)
    fee = (gross * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    return TransactionBreakdown(
        gross=gross,
        service_charge_deduction=deduction,
        management_fee=fee,
        net_to_landlord=gross - deduction - fee,
    )


def aggregate_financials(
    payments: Iterable[PaymentSnapshot],
    occupants: Sequence[OccupantSnapshot],
    properties: Sequence[PropertySnapshot],
    management_fee_rate: Optional[Decimal] = None,
) -> FinancialSummary:
    units: Dict[Tuple[int, str], UnitSnapshot] = {
        unit.key: unit for prop in properties for unit in prop.units
    }
    occupants_by_id = {occupant.id: occupant for occupant in occupants}
    summary = FinancialSummary()

    for payment in payments:
        if payment.status != PaymentStatus.PAID.value or payment.type != PaymentType.RENT.value:
            continue
        summary.transaction_count += 1
        occupant = occupants_by_id.get(payment.occupant_id)
        unit = units.get(occupant.unit_key) if occupant else None
        lease = occupant.lease if occupant else None

        unit_rent = unit.rent_amount if unit and unit.rent_amount else (lease.rent if lease else 0)
        unit_service_charge = unit.service_charge if unit and unit.service_charge else (lease.service_charge if lease else 0)
        breakdown = calculate_transaction_breakdown(payment.amount, unit_rent, unit_service_charge, management_fee_rate)

        summary.total_revenue += breakdown.gross
        summary.total_service_charges += breakdown.service_charge_deduction
        summary.total_management_fees += breakdown.management_fee
        summary.total_net_remittance += breakdown.net_to_landlord

    # Handed-over vacant units still owe service charge; it comes out of the payout.
    vacant_deduction = sum(
        (
            to_money(unit.service_charge)
            for unit in units.values()
            if unit.status == UnitStatus.VACANT.value and unit.handover_status == HandoverStatus.HANDED_OVER.value
        ),
        ZERO,
    )
    summary.vacant_unit_service_charge_deduction = vacant_deduction
    summary.total_net_remittance -= vacant_deduction
    return summary
