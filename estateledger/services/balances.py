import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..constants import PaymentType, ResidentType
from ..core.errors import OccupantNotFound
from ..models.models import Occupant, Payment, Property, utcnow
from .audit import audit_log
from .ledger import credit_balance
from .periods import YearMonth
from .service_charges import UnitLedger, build_unit_ledger, classify_unit_status
from .store import occupant_snapshot, payment_snapshot, property_snapshot
from .snapshot import UnitSnapshot

logger = logging.getLogger(__name__)


def default_charge_type(occupant: Occupant) -> PaymentType:
    if occupant.resident_type == ResidentType.HOMEOWNER.value:
        return PaymentType.SERVICE_CHARGE
    return PaymentType.RENT


def _unit_for(session: Session, occupant: Occupant) -> UnitSnapshot:
    prop = session.get(Property, occupant.property_id)
    if prop is not None:
        for unit in property_snapshot(prop).units:
            if unit.name == occupant.unit_name:
                return unit
    # Unit was renamed or removed: bill from the lease alone.
    return UnitSnapshot(
        property_id=occupant.property_id,
        property_name=prop.name if prop else "",
        name=occupant.unit_name,
    )


def build_occupant_ledger(
    session: Session,
    occupant_id: int,
    as_of: date,
    charge_type: Optional[PaymentType] = None,
) -> UnitLedger:
    occupant = session.get(Occupant, occupant_id)
    if occupant is None:
        raise OccupantNotFound(f"Occupant {occupant_id} not found.")
    charge_type = charge_type or default_charge_type(occupant)
    payments = (
        session.query(Payment)
        .filter(Payment.occupant_id == occupant.id)
        .order_by(Payment.date.asc(), Payment.id.asc())
        .all()
    )
    return build_unit_ledger(
        _unit_for(session, occupant),
        occupant_snapshot(occupant).lease,
        [payment_snapshot(payment) for payment in payments],
        as_of,
        charge_type=charge_type,
    )


def force_recalculate_occupant_balance(
    session: Session,
    occupant_id: int,
    as_of: Optional[date] = None,
    actor: Optional[str] = None,
) -> Occupant:
    """Rebuild the cached balance columns from the derived ledger."""
    as_of = as_of or date.today()
    occupant = session.get(Occupant, occupant_id)
    if occupant is None:
        raise OccupantNotFound(f"Occupant {occupant_id} not found.")

    before = {
        "due_balance": str(occupant.due_balance),
        "account_balance": str(occupant.account_balance),
        "payment_status": occupant.payment_status,
    }
    unit_ledger = build_occupant_ledger(session, occupant_id, as_of)
    settled_dates = [event.date for event in unit_ledger.payments]

    occupant.due_balance = unit_ledger.amount_due
    occupant.account_balance = credit_balance(unit_ledger.ledger)
    occupant.payment_status = classify_unit_status(unit_ledger, YearMonth.from_date(as_of)).value
    occupant.last_payment_date = max(settled_dates) if settled_dates else None
    occupant.balance_recomputed_at = utcnow()
    session.flush()

    audit_log(
        session,
        actor=actor,
        action="occupant.recalculate_balance",
        target_entity_type="occupant",
        target_entity_id=occupant.id,
        before=before,
        after={
            "due_balance": str(occupant.due_balance),
            "account_balance": str(occupant.account_balance),
            "payment_status": occupant.payment_status,
        },
    )
    logger.info("Recalculated balance for occupant %s: due %s", occupant.id, occupant.due_balance)
    return occupant
