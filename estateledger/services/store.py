"""SQLAlchemy-backed collaborators for the billing engine.

``SqlAlchemyBillingStore`` loads the portfolio into a :class:`PortfolioSnapshot`
and performs the three writes the engine needs: add a payment, edit a payment
and find or create the occupant that bills an owner. Writes only flush; the
request that owns the session commits or rolls back.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..constants import (
    DEFAULT_OCCUPANT_AGENT,
    HOMEOWNER_LEASE_YEARS,
    OccupantStatus,
    PaymentType,
    ResidentType,
)
from ..core.errors import (
    InvalidPaymentEdit,
    OccupantCreationFailed,
    PaymentNotFound,
    PaymentWriteFailed,
)
from ..models.models import (
    Landlord,
    Occupant,
    Payment,
    PaymentEdit,
    Property,
    PropertyOwner,
    utcnow,
)
from .audit import audit_log
from .billing_rules import first_billable_month
from .charges import to_money
from .consolidation import PaymentRecord
from .periods import parse_date
from .snapshot import (
    AssignedUnits,
    EntityOwner,
    LandlordOwner,
    LeaseSnapshot,
    OccupantSnapshot,
    Owner,
    PaymentSnapshot,
    PortfolioSnapshot,
    PropertySnapshot,
    UnitSnapshot,
)

logger = logging.getLogger(__name__)

EDITABLE_PAYMENT_FIELDS = ("amount", "date", "notes", "for_month", "method", "transaction_id", "status", "type")


def property_snapshot(prop: Property) -> PropertySnapshot:
    units = tuple(
        UnitSnapshot(
            property_id=prop.id,
            property_name=prop.name,
            name=unit.name,
            status=unit.status,
            ownership=unit.ownership,
            management_status=unit.management_status,
            handover_status=unit.handover_status,
            handover_date=unit.handover_date,
            rent_amount=to_money(unit.rent_amount),
            service_charge=to_money(unit.service_charge),
            landlord_id=unit.landlord_id,
        )
        for unit in prop.units
    )
    return PropertySnapshot(id=prop.id, name=prop.name, units=units, address=prop.address)


def occupant_snapshot(occupant: Occupant) -> OccupantSnapshot:
    return OccupantSnapshot(
        id=occupant.id,
        name=occupant.name,
        property_id=occupant.property_id,
        unit_name=occupant.unit_name,
        resident_type=occupant.resident_type,
        status=occupant.status,
        lease=LeaseSnapshot(
            start_date=occupant.lease_start_date,
            last_billed_period=occupant.last_billed_period,
            rent=to_money(occupant.lease_rent),
            service_charge=to_money(occupant.lease_service_charge),
        ),
        owner_kind=occupant.owner_kind,
        owner_ref_id=occupant.owner_ref_id,
        email=occupant.email,
        phone=occupant.phone,
    )


def payment_snapshot(payment: Payment) -> PaymentSnapshot:
    return PaymentSnapshot(
        id=payment.id,
        occupant_id=payment.occupant_id,
        amount=to_money(payment.amount),
        date=payment.date,
        type=payment.type,
        status=payment.status,
        for_month=payment.for_month,
        notes=payment.notes,
        method=payment.method,
        transaction_id=payment.transaction_id,
    )


def landlord_owner(landlord: Landlord) -> LandlordOwner:
    return LandlordOwner(
        id=landlord.id,
        name=landlord.name,
        email=landlord.email,
        phone=landlord.phone,
        bank_account=landlord.bank_account,
        user_id=landlord.user_id,
    )


def entity_owner(owner: PropertyOwner) -> EntityOwner:
    by_property: Dict[int, List[str]] = {}
    for assignment in owner.assigned_units:
        by_property.setdefault(assignment.property_id, []).append(assignment.unit_name)
    return EntityOwner(
        id=owner.id,
        name=owner.name,
        email=owner.email,
        phone=owner.phone,
        bank_account=owner.bank_account,
        user_id=owner.user_id,
        assigned_units=tuple(
            AssignedUnits(property_id=property_id, unit_names=tuple(names))
            for property_id, names in by_property.items()
        ),
    )


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "occupant_id": payment.occupant_id,
        "amount": str(payment.amount),
        "date": payment.date.isoformat() if payment.date else None,
        "type": payment.type,
        "status": payment.status,
        "for_month": payment.for_month,
        "method": payment.method,
        "transaction_id": payment.transaction_id,
        "notes": payment.notes,
    }


class SqlAlchemyBillingStore:
    def __init__(self, session: Session, actor: Optional[str] = None) -> None:
        self.session = session
        self.actor = actor

    def load_snapshot(self) -> PortfolioSnapshot:
        properties = (
            self.session.query(Property)
            .options(selectinload(Property.units))
            .order_by(Property.id.asc())
            .all()
        )
        occupants = self.session.query(Occupant).order_by(Occupant.id.asc()).all()
        payments = self.session.query(Payment).order_by(Payment.date.asc(), Payment.id.asc()).all()
        landlords = self.session.query(Landlord).order_by(Landlord.id.asc()).all()
        owners = (
            self.session.query(PropertyOwner)
            .options(selectinload(PropertyOwner.assigned_units))
            .order_by(PropertyOwner.id.asc())
            .all()
        )
        return PortfolioSnapshot(
            properties=[property_snapshot(prop) for prop in properties],
            occupants=[occupant_snapshot(occupant) for occupant in occupants],
            payments=[payment_snapshot(payment) for payment in payments],
            landlords=[landlord_owner(landlord) for landlord in landlords],
            property_owners=[entity_owner(owner) for owner in owners],
        )

    def _linked_occupant(self, owner: Owner, unit: UnitSnapshot) -> Optional[Occupant]:
        linked = (
            self.session.query(Occupant)
            .filter(
                Occupant.owner_kind == owner.kind.value,
                Occupant.owner_ref_id == owner.id,
                Occupant.status == OccupantStatus.ACTIVE.value,
            )
            .order_by(Occupant.id.asc())
            .all()
        )
        for occupant in linked:
            if occupant.property_id == unit.property_id and occupant.unit_name == unit.name:
                return occupant
        return linked[0] if linked else None

    def find_or_create_occupant(self, owner: Owner, unit: UnitSnapshot, property_id: int) -> Occupant:
        """Return the owner's billing occupant, creating it on first use."""
        try:
            occupant = self._linked_occupant(owner, unit)
            if occupant is not None:
                return occupant

            occupant = (
                self.session.query(Occupant)
                .filter(
                    Occupant.property_id == property_id,
                    Occupant.unit_name == unit.name,
                    Occupant.resident_type == ResidentType.HOMEOWNER.value,
                    Occupant.status == OccupantStatus.ACTIVE.value,
                )
                .order_by(Occupant.id.asc())
                .first()
            )
            if occupant is not None:
                if occupant.owner_kind is None:
                    occupant.owner_kind = owner.kind.value
                    occupant.owner_ref_id = owner.id
                    self.session.flush()
                return occupant

            occupant = self._create_billing_occupant(owner, unit, property_id)
        except SQLAlchemyError as exc:
            logger.error("Could not find or create billing occupant for %s %s", owner.kind.value, owner.id, exc_info=True)
            raise OccupantCreationFailed(str(exc)) from exc
        return occupant

    def _create_billing_occupant(self, owner: Owner, unit: UnitSnapshot, property_id: int) -> Occupant:
        lease_start = parse_date(unit.handover_date) or date.today()
        first_month = first_billable_month(unit)
        occupant = Occupant(
            name=owner.name,
            email=owner.email,
            phone=owner.phone,
            property_id=property_id,
            unit_name=unit.name,
            agent=DEFAULT_OCCUPANT_AGENT,
            resident_type=ResidentType.HOMEOWNER.value,
            status=OccupantStatus.ACTIVE.value,
            lease_start_date=lease_start,
            lease_end_date=lease_start + relativedelta(years=HOMEOWNER_LEASE_YEARS),
            lease_rent=Decimal("0"),
            lease_service_charge=to_money(unit.service_charge),
            # Billing resumes at the unit's first billable month.
            last_billed_period=str(first_month.previous()) if first_month else None,
            owner_kind=owner.kind.value,
            owner_ref_id=owner.id,
            user_id=owner.user_id,
        )
        self.session.add(occupant)
        self.session.flush()
        audit_log(
            self.session,
            actor=self.actor,
            action="occupant.create_for_owner",
            target_entity_type="occupant",
            target_entity_id=occupant.id,
            after={"owner": f"{owner.kind.value}-{owner.id}", "unit": unit.name, "property_id": property_id},
        )
        logger.info("Created billing occupant %s for %s %s on unit %s", occupant.id, owner.kind.value, owner.id, unit.name)
        return occupant

    def add_payment(self, record: PaymentRecord) -> Payment:
        amount = to_money(record.amount)
        if amount <= 0:
            raise PaymentWriteFailed("Payment amount must be greater than zero.")
        payment = Payment(
            occupant_id=record.occupant_id,
            amount=amount,
            date=record.date,
            type=record.type,
            status=record.status,
            for_month=record.for_month,
            method=record.method,
            transaction_id=record.transaction_id,
            notes=record.notes,
        )
        try:
            self.session.add(payment)
            self.session.flush()
            audit_log(
                self.session,
                actor=self.actor,
                action="payment.create",
                target_entity_type="payment",
                target_entity_id=payment.id,
                after=payment_to_dict(payment),
            )
        except SQLAlchemyError as exc:
            logger.error("Payment write failed for occupant %s", record.occupant_id, exc_info=True)
            raise PaymentWriteFailed(str(exc)) from exc
        return payment

    def update_payment(
        self,
        payment_id: int,
        changes: Dict[str, Any],
        reason: Optional[str],
        editor_id: Optional[str],
    ) -> Payment:
        if not reason or not reason.strip():
            raise InvalidPaymentEdit("A reason is required to edit a payment.")
        editor = (editor_id or "").strip()
        if not editor:
            raise InvalidPaymentEdit("The editor making the change must be identified.")
        payment = self.session.get(Payment, payment_id)
        if payment is None:
            raise PaymentNotFound(f"Payment {payment_id} not found.")

        updates = {key: value for key, value in changes.items() if key in EDITABLE_PAYMENT_FIELDS and value is not None}
        if "amount" in updates:
            updates["amount"] = to_money(updates["amount"])
            if updates["amount"] <= 0:
                raise InvalidPaymentEdit("Payment amount must be greater than zero.")
        if "type" in updates:
            updates["type"] = PaymentType(updates["type"]).value

        before = payment_to_dict(payment)
        history = PaymentEdit(
            edited_at=utcnow(),
            edited_by=editor,
            reason=reason.strip(),
            previous_amount=payment.amount,
            previous_date=payment.date,
            previous_notes=payment.notes,
        )
        try:
            payment.edit_history.append(history)
            for key, value in updates.items():
                setattr(payment, key, value)
            self.session.flush()
            audit_log(
                self.session,
                actor=editor,
                action="payment.update",
                target_entity_type="payment",
                target_entity_id=payment.id,
                before=before,
                after={**payment_to_dict(payment), "reason": history.reason},
            )
        except SQLAlchemyError as exc:
            logger.error("Payment update failed for payment %s", payment_id, exc_info=True)
            raise PaymentWriteFailed(str(exc)) from exc
        return payment
