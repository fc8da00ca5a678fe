#!/usr/bin/env python
"""
Seed script to populate the database with a sample portfolio for local development.

Usage:
    python scripts/seed_data.py --landlords 3
"""

import argparse
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from estateledger.config import Base, SessionLocal, engine
from estateledger.constants import (
    HandoverStatus,
    ManagementStatus,
    OwnershipType,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    ResidentType,
    UnitStatus,
)
from estateledger.models.models import (
    Landlord,
    Occupant,
    OwnerAssignedUnit,
    Payment,
    Property,
    PropertyOwner,
    Unit,
)
from estateledger.services.periods import YearMonth

SERVICE_CHARGE = Decimal("5000.00")


def create_property(session, name: str) -> Property:
    prop = session.query(Property).filter(Property.name == name).first()
    if prop:
        return prop
    prop = Property(name=name, address=f"{name}, Nairobi", property_type="Apartments")
    session.add(prop)
    session.flush()
    return prop


def create_landlord_bundle(session, prop: Property, index: int) -> None:
    landlord = Landlord(
        name=f"Test Landlord {index}",
        email=f"landlord{index}@example.com",
        phone=f"+2547000000{index:02d}",
    )
    session.add(landlord)
    session.flush()

    handover = date.today().replace(day=1) - relativedelta(months=index + 2)
    vacant = Unit(
        property_id=prop.id,
        name=f"L{index}-A",
        status=UnitStatus.VACANT.value,
        ownership=OwnershipType.LANDLORD.value,
        management_status=ManagementStatus.RENTED_FOR_CLIENTS.value,
        handover_status=HandoverStatus.HANDED_OVER.value,
        handover_date=handover + relativedelta(days=4),
        rent_amount=Decimal("35000.00"),
        service_charge=SERVICE_CHARGE,
        landlord_id=landlord.id,
    )
    rented = Unit(
        property_id=prop.id,
        name=f"L{index}-B",
        status=UnitStatus.RENTED.value,
        ownership=OwnershipType.LANDLORD.value,
        management_status=ManagementStatus.RENTED_FOR_COMPANY.value,
        handover_status=HandoverStatus.HANDED_OVER.value,
        handover_date=handover,
        rent_amount=Decimal("40000.00"),
        service_charge=SERVICE_CHARGE,
        landlord_id=landlord.id,
    )
    session.add_all([vacant, rented])
    session.flush()

    tenant = Occupant(
        name=f"Tenant {index}",
        email=f"tenant{index}@example.com",
        property_id=prop.id,
        unit_name=rented.name,
        resident_type=ResidentType.TENANT.value,
        lease_start_date=handover,
        lease_end_date=handover + relativedelta(years=1),
        lease_rent=rented.rent_amount,
        lease_service_charge=SERVICE_CHARGE,
    )
    session.add(tenant)
    session.flush()

    month = YearMonth.from_date(handover)
    session.add(
        Payment(
            occupant_id=tenant.id,
            amount=rented.rent_amount,
            date=month.first_day() + relativedelta(days=2),
            type=PaymentType.RENT.value,
            status=PaymentStatus.PAID.value,
            for_month=str(month),
            method=PaymentMethod.MPESA.value,
        )
    )


def create_client_owner(session, prop: Property) -> None:
    if session.query(PropertyOwner).filter(PropertyOwner.name == "Client Owner").first():
        return
    unit = Unit(
        property_id=prop.id,
        name="C-1",
        status=UnitStatus.CLIENT_OCCUPIED.value,
        ownership=OwnershipType.LANDLORD.value,
        management_status=ManagementStatus.CLIENT_MANAGED.value,
        handover_status=HandoverStatus.HANDED_OVER.value,
        handover_date=date.today().replace(day=1) - relativedelta(months=3),
        service_charge=SERVICE_CHARGE,
    )
    session.add(unit)
    owner = PropertyOwner(name="Client Owner", email="client.owner@example.com")
    owner.assigned_units.append(OwnerAssignedUnit(property_id=prop.id, unit_name=unit.name))
    session.add(owner)


def seed_database(landlords: int) -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        prop = create_property(session, "Greenview Apartments")
        existing = session.query(Landlord).count()
        targets = max(landlords, 0)
        for offset in range(targets):
            create_landlord_bundle(session, prop, existing + offset + 1)
        create_client_owner(session, prop)

        session.commit()
        print(f"Seed complete. Created {targets} landlords with two units each.")


def main():
    parser = argparse.ArgumentParser(description="Seed the ledger database with a sample portfolio.")
    parser.add_argument("--landlords", type=int, default=3, help="Number of landlords to create")
    args = parser.parse_args()
    seed_database(args.landlords)


if __name__ == "__main__":
    main()
