"""In-memory snapshot of the records the billing engine reads.

The engine never talks to the database directly: the store materialises a
:class:`PortfolioSnapshot` and every derivation is a pure function over it.
Owners come in two variants: a :class:`LandlordOwner` owns units through
``Unit.landlord_id``, an :class:`EntityOwner` (property owner) through an
explicit assigned-unit list. :func:`resolve_owned_units` is the single entry
point for both.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from ..constants import (
    HandoverStatus,
    OccupantStatus,
    OwnerKind,
    PaymentStatus,
    PaymentType,
    ResidentType,
)
from .periods import parse_date

ZERO = Decimal("0")


@dataclass(frozen=True)
class UnitSnapshot:
    property_id: int
    property_name: str
    name: str
    status: Optional[str] = None
    ownership: Optional[str] = None
    management_status: Optional[str] = None
    handover_status: Optional[str] = None
    handover_date: Any = None
    rent_amount: Decimal = ZERO
    service_charge: Decimal = ZERO
    landlord_id: Optional[int] = None

    @property
    def key(self) -> Tuple[int, str]:
        return (self.property_id, self.name)

    @property
    def is_handed_over(self) -> bool:
        return self.handover_status == HandoverStatus.HANDED_OVER.value

    def charge_for(self, charge_type: PaymentType) -> Decimal:
        if charge_type == PaymentType.RENT:
            return self.rent_amount or ZERO
        return self.service_charge or ZERO


@dataclass(frozen=True)
class PropertySnapshot:
    id: int
    name: str
    units: Tuple[UnitSnapshot, ...] = ()
    address: Optional[str] = None


@dataclass(frozen=True)
class LeaseSnapshot:
    start_date: Any = None
    last_billed_period: Optional[str] = None
    rent: Decimal = ZERO
    service_charge: Decimal = ZERO


@dataclass(frozen=True)
class OccupantSnapshot:
    id: int
    name: str
    property_id: int
    unit_name: str
    resident_type: str = ResidentType.TENANT.value
    status: str = OccupantStatus.ACTIVE.value
    lease: Optional[LeaseSnapshot] = None
    owner_kind: Optional[str] = None
    owner_ref_id: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def unit_key(self) -> Tuple[int, str]:
        return (self.property_id, self.unit_name)

    @property
    def is_active(self) -> bool:
        return self.status == OccupantStatus.ACTIVE.value

    @property
    def is_homeowner(self) -> bool:
        return self.resident_type == ResidentType.HOMEOWNER.value


@dataclass(frozen=True)
class PaymentSnapshot:
    id: int
    occupant_id: int
    amount: Decimal
    date: Any
    type: str
    status: str = PaymentStatus.PAID.value
    for_month: Optional[str] = None
    notes: Optional[str] = None
    method: Optional[str] = None
    transaction_id: Optional[str] = None

    @property
    def payment_date(self) -> Optional[date]:
        return parse_date(self.date)

    @property
    def is_settled(self) -> bool:
        return self.status == PaymentStatus.PAID.value


@dataclass(frozen=True)
class AssignedUnits:
    property_id: int
    unit_names: Tuple[str, ...]


@dataclass(frozen=True)
class LandlordOwner:
    kind: ClassVar[OwnerKind] = OwnerKind.LANDLORD

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    bank_account: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def key(self) -> Tuple[str, int]:
        return (self.kind.value, self.id)

    def owned_units(self, properties: Sequence[PropertySnapshot]) -> List[UnitSnapshot]:
        return [unit for prop in properties for unit in prop.units if unit.landlord_id == self.id]


@dataclass(frozen=True)
class EntityOwner:
    kind: ClassVar[OwnerKind] = OwnerKind.PROPERTY_OWNER

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    bank_account: Optional[str] = None
    user_id: Optional[str] = None
    assigned_units: Tuple[AssignedUnits, ...] = ()

    @property
    def key(self) -> Tuple[str, int]:
        return (self.kind.value, self.id)

    def owned_units(self, properties: Sequence[PropertySnapshot]) -> List[UnitSnapshot]:
        wanted = {
            (assignment.property_id, unit_name)
            for assignment in self.assigned_units
            for unit_name in assignment.unit_names
        }
        return [unit for prop in properties for unit in prop.units if unit.key in wanted]


Owner = Union[LandlordOwner, EntityOwner]


def resolve_owned_units(owner: Owner, properties: Sequence[PropertySnapshot]) -> List[UnitSnapshot]:
    return owner.owned_units(properties)


def owner_group_id(owner: Owner) -> str:
    return f"{owner.kind.value}-{owner.id}"


@dataclass
class PortfolioSnapshot:
    properties: List[PropertySnapshot] = field(default_factory=list)
    occupants: List[OccupantSnapshot] = field(default_factory=list)
    payments: List[PaymentSnapshot] = field(default_factory=list)
    landlords: List[LandlordOwner] = field(default_factory=list)
    property_owners: List[EntityOwner] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._landlords_by_id: Dict[int, LandlordOwner] = {owner.id: owner for owner in self.landlords}
        self._entity_owners_by_id: Dict[int, EntityOwner] = {owner.id: owner for owner in self.property_owners}
        self._entity_owner_by_unit: Dict[Tuple[int, str], EntityOwner] = {}
        for owner in self.property_owners:
            for assignment in owner.assigned_units:
                for unit_name in assignment.unit_names:
                    self._entity_owner_by_unit[(assignment.property_id, unit_name)] = owner
        self._occupants_by_unit: Dict[Tuple[int, str], List[OccupantSnapshot]] = defaultdict(list)
        for occupant in self.occupants:
            self._occupants_by_unit[occupant.unit_key].append(occupant)
        self._payments_by_occupant: Dict[int, List[PaymentSnapshot]] = defaultdict(list)
        for payment in self.payments:
            self._payments_by_occupant[payment.occupant_id].append(payment)

    def units(self) -> List[UnitSnapshot]:
        return [unit for prop in self.properties for unit in prop.units]

    def find_unit(self, property_id: int, unit_name: str) -> Optional[UnitSnapshot]:
        for prop in self.properties:
            if prop.id != property_id:
                continue
            for unit in prop.units:
                if unit.name == unit_name:
                    return unit
        return None

    def find_owner(self, kind: Union[OwnerKind, str], owner_id: int) -> Optional[Owner]:
        kind_value = kind.value if isinstance(kind, OwnerKind) else kind
        if kind_value == OwnerKind.LANDLORD.value:
            return self._landlords_by_id.get(owner_id)
        if kind_value == OwnerKind.PROPERTY_OWNER.value:
            return self._entity_owners_by_id.get(owner_id)
        return None

    def owner_for_unit(self, unit: UnitSnapshot) -> Optional[Owner]:
        owner: Optional[Owner] = None
        if unit.landlord_id is not None:
            owner = self._landlords_by_id.get(unit.landlord_id)
        if owner is None:
            owner = self._entity_owner_by_unit.get(unit.key)
        return owner

    def occupants_for_unit(self, unit: UnitSnapshot) -> List[OccupantSnapshot]:
        return list(self._occupants_by_unit.get(unit.key, []))

    def billing_occupant_for_unit(self, unit: UnitSnapshot) -> Optional[OccupantSnapshot]:
        """Active occupant billed for the unit, preferring a homeowner account."""
        active = [occupant for occupant in self.occupants_for_unit(unit) if occupant.is_active]
        if not active:
            return None
        homeowners = [occupant for occupant in active if occupant.is_homeowner]
        return (homeowners or active)[0]

    def payments_for(self, occupant_ids: Sequence[int]) -> List[PaymentSnapshot]:
        collected: List[PaymentSnapshot] = []
        for occupant_id in occupant_ids:
            collected.extend(self._payments_by_occupant.get(occupant_id, []))
        return collected

    def representing_occupants(self, owner: Owner) -> List[OccupantSnapshot]:
        """Occupants whose payments count towards the owner's consolidated balance."""
        owned_keys = {unit.key for unit in resolve_owned_units(owner, self.properties)}
        kind, owner_id = owner.key
        return [
            occupant
            for occupant in self.occupants
            if (occupant.owner_kind == kind and occupant.owner_ref_id == owner_id)
            or (occupant.is_homeowner and occupant.unit_key in owned_keys)
        ]
