from datetime import date
from decimal import Decimal

from estateledger.constants import HandoverStatus, PaymentStatus, PaymentType, UnitStatus
from estateledger.services.financials import aggregate_financials, calculate_transaction_breakdown
from estateledger.services.snapshot import LeaseSnapshot, OccupantSnapshot, PaymentSnapshot, PropertySnapshot, UnitSnapshot


def test_breakdown_uses_standard_rent_and_fee_rate():
    breakdown = calculate_transaction_breakdown("30000", "35000", "5000", management_fee_rate=Decimal("0.05"))
    assert breakdown.gross == Decimal("35000.00")
    assert breakdown.service_charge_deduction == Decimal("5000.00")
    assert breakdown.management_fee == Decimal("1750.00")
    assert breakdown.net_to_landlord == Decimal("28250.00")


def test_breakdown_rounds_fee_half_up():
    breakdown = calculate_transaction_breakdown("0", "10.10", management_fee_rate="0.05")
    assert breakdown.management_fee == Decimal("0.51")
    assert breakdown.net_to_landlord == Decimal("9.59")


def test_breakdown_defaults_to_configured_rate():
    breakdown = calculate_transaction_breakdown("1000", "1000")
    assert breakdown.management_fee == Decimal("50.00")


def _portfolio():
    rented = UnitSnapshot(
        property_id=1,
        property_name="Greenview",
        name="A1",
        status=UnitStatus.RENTED.value,
        handover_status=HandoverStatus.HANDED_OVER.value,
        rent_amount=Decimal("40000"),
        service_charge=Decimal("5000"),
    )
    vacant = UnitSnapshot(
        property_id=1,
        property_name="Greenview",
        name="A2",
        status=UnitStatus.VACANT.value,
        handover_status=HandoverStatus.HANDED_OVER.value,
        service_charge=Decimal("4000"),
    )
    pending_vacant = UnitSnapshot(
        property_id=1,
        property_name="Greenview",
        name="A3",
        status=UnitStatus.VACANT.value,
        handover_status=HandoverStatus.PENDING.value,
        service_charge=Decimal("4000"),
    )
    leased = UnitSnapshot(property_id=1, property_name="Greenview", name="A4", status=UnitStatus.RENTED.value)
    properties = [PropertySnapshot(id=1, name="Greenview", units=(rented, vacant, pending_vacant, leased))]
    occupants = [
        OccupantSnapshot(id=1, name="Tenant A1", property_id=1, unit_name="A1"),
        OccupantSnapshot(
            id=2,
            name="Tenant A4",
            property_id=1,
            unit_name="A4",
            lease=LeaseSnapshot(rent=Decimal("20000"), service_charge=Decimal("2000")),
        ),
    ]
    return properties, occupants


def test_aggregate_counts_only_paid_rent():
    properties, occupants = _portfolio()
    payments = [
        PaymentSnapshot(id=1, occupant_id=1, amount=Decimal("40000"), date=date(2024, 3, 2), type=PaymentType.RENT.value),
        PaymentSnapshot(id=2, occupant_id=2, amount=Decimal("20000"), date=date(2024, 3, 3), type=PaymentType.RENT.value),
        PaymentSnapshot(
            id=3,
            occupant_id=1,
            amount=Decimal("40000"),
            date=date(2024, 3, 4),
            type=PaymentType.RENT.value,
            status=PaymentStatus.PENDING.value,
        ),
        PaymentSnapshot(id=4, occupant_id=1, amount=Decimal("5000"), date=date(2024, 3, 5), type=PaymentType.SERVICE_CHARGE.value),
    ]

    summary = aggregate_financials(payments, occupants, properties, management_fee_rate=Decimal("0.05"))

    assert summary.transaction_count == 2
    assert summary.total_revenue == Decimal("60000.00")
    assert summary.total_service_charges == Decimal("7000.00")
    assert summary.total_management_fees == Decimal("3000.00")
    assert summary.vacant_unit_service_charge_deduction == Decimal("4000.00")
    assert summary.total_net_remittance == Decimal("46000.00")


def test_aggregate_without_payments_still_deducts_vacant_units():
    properties, occupants = _portfolio()
    summary = aggregate_financials([], occupants, properties)
    assert summary.transaction_count == 0
    assert summary.total_net_remittance == Decimal("-4000.00")
