"""Tenant rent arrears and the per-landlord deductions breakdown.

Balances are always derived from the occupant's rent ledger; the cached
``due_balance`` column is never read here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ..constants import PaymentType, ResidentType
from ..core.errors import LedgerError
from .charges import to_money
from .periods import YearMonth
from .service_charges import UnitLedger, build_unit_ledger, months_in_arrears
from .snapshot import LandlordOwner, OccupantSnapshot, PortfolioSnapshot, UnitSnapshot, resolve_owned_units

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class TenantArrears:
    occupant_id: int
    occupant_name: str
    property_id: int
    property_name: str
    unit_name: str
    arrears: Decimal
    months_in_arrears: int = 0


@dataclass
class LandlordArrearsLine:
    property_id: int
    property_name: str
    unit_name: str
    occupant_id: Optional[int] = None
    occupant_name: Optional[str] = None
    tenant_arrears: Decimal = ZERO
    vacant_service_charge: Decimal = ZERO


@dataclass
class LandlordArrearsSummary:
    landlord_id: int
    landlord_name: str
    as_of: date
    total_tenant_arrears: Decimal = ZERO
    vacant_unit_service_charge: Decimal = ZERO
    breakdown: List[LandlordArrearsLine] = field(default_factory=list)

    @property
    def total_deductions(self) -> Decimal:
        return self.total_tenant_arrears + self.vacant_unit_service_charge


def _is_rent_paying(occupant: OccupantSnapshot) -> bool:
    return occupant.is_active and occupant.resident_type == ResidentType.TENANT.value


def _unit_of(snapshot: PortfolioSnapshot, occupant: OccupantSnapshot) -> UnitSnapshot:
    unit = snapshot.find_unit(occupant.property_id, occupant.unit_name)
    if unit is not None:
        return unit
    prop = next((prop for prop in snapshot.properties if prop.id == occupant.property_id), None)
    return UnitSnapshot(
        property_id=occupant.property_id,
        property_name=prop.name if prop else "",
        name=occupant.unit_name,
    )


def tenant_rent_ledger(snapshot: PortfolioSnapshot, occupant: OccupantSnapshot, as_of: date) -> Optional[UnitLedger]:
    try:
        return build_unit_ledger(
            _unit_of(snapshot, occupant),
            occupant.lease,
            snapshot.payments_for([occupant.id]),
            as_of,
            charge_type=PaymentType.RENT,
        )
    except (LedgerError, ValueError, ArithmeticError):
        logger.warning("Could not derive rent ledger for occupant %s", occupant.id, exc_info=True)
        return None


def tenants_in_arrears(snapshot: PortfolioSnapshot, as_of: date) -> List[TenantArrears]:
    """Active tenants owing rent, largest balance first."""
    current = YearMonth.from_date(as_of)
    collected: List[TenantArrears] = []
    for occupant in snapshot.occupants:
        if not _is_rent_paying(occupant):
            continue
        unit_ledger = tenant_rent_ledger(snapshot, occupant, as_of)
        if unit_ledger is None or unit_ledger.amount_due <= 0:
            continue
        collected.append(
            TenantArrears(
                occupant_id=occupant.id,
                occupant_name=occupant.name,
                property_id=unit_ledger.unit.property_id,
                property_name=unit_ledger.unit.property_name,
                unit_name=occupant.unit_name,
                arrears=unit_ledger.amount_due,
                months_in_arrears=months_in_arrears(unit_ledger, current),
            )
        )
    return sorted(collected, key=lambda item: item.arrears, reverse=True)


def landlord_arrears_breakdown(snapshot: PortfolioSnapshot, landlord: LandlordOwner, as_of: date) -> LandlordArrearsSummary:
    """What is deducted from the landlord's remittance: tenant rent arrears plus service charge on empty units."""
    summary = LandlordArrearsSummary(landlord_id=landlord.id, landlord_name=landlord.name, as_of=as_of)
    for unit in resolve_owned_units(landlord, snapshot.properties):
        line = LandlordArrearsLine(property_id=unit.property_id, property_name=unit.property_name, unit_name=unit.name)
        tenant = next((occupant for occupant in snapshot.occupants_for_unit(unit) if _is_rent_paying(occupant)), None)
        if tenant is not None:
            line.occupant_id = tenant.id
            line.occupant_name = tenant.name
            unit_ledger = tenant_rent_ledger(snapshot, tenant, as_of)
            if unit_ledger is not None:
                line.tenant_arrears = unit_ledger.amount_due
            summary.total_tenant_arrears += line.tenant_arrears
        elif unit.is_handed_over:
            line.vacant_service_charge = to_money(unit.service_charge)
            summary.vacant_unit_service_charge += line.vacant_service_charge
        summary.breakdown.append(line)
    return summary
