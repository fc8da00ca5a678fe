from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..api.dependencies import get_actor, get_as_of, get_db, get_store
from ..constants import DEFAULT_OCCUPANT_AGENT, RECURRING_CHARGE_TYPES, OccupantStatus, PaymentType
from ..core.errors import OccupantNotFound
from ..models.models import Occupant, Property, Unit, utcnow
from ..schemas.schemas import LedgerEntryRead, OccupantCreate, OccupantLedgerRead, OccupantRead, TenantArrearsRead
from ..services.arrears import tenants_in_arrears
from ..services.audit import audit_log
from ..services.balances import build_occupant_ledger, force_recalculate_occupant_balance
from ..services.ledger import credit_balance
from ..services.store import SqlAlchemyBillingStore

router = APIRouter()


def _get_occupant(db: Session, occupant_id: int) -> Occupant:
    occupant = db.get(Occupant, occupant_id)
    if not occupant:
        raise OccupantNotFound(f"Occupant {occupant_id} not found.")
    return occupant


@router.get("/", response_model=List[OccupantRead])
def list_occupants(
    property_id: Optional[int] = None,
    include_archived: bool = False,
    db: Session = Depends(get_db),
) -> List[Occupant]:
    query = db.query(Occupant)
    if property_id is not None:
        query = query.filter(Occupant.property_id == property_id)
    if not include_archived:
        query = query.filter(Occupant.status == OccupantStatus.ACTIVE.value)
    return query.order_by(Occupant.property_id.asc(), Occupant.unit_name.asc(), Occupant.id.asc()).all()


@router.get("/arrears", response_model=List[TenantArrearsRead])
def list_tenants_in_arrears(
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> List[TenantArrearsRead]:
    return [TenantArrearsRead.model_validate(item) for item in tenants_in_arrears(store.load_snapshot(), as_of)]


@router.post("/", response_model=OccupantRead, status_code=status.HTTP_201_CREATED)
def create_occupant(
    payload: OccupantCreate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> Occupant:
    if not db.get(Property, payload.property_id):
        raise HTTPException(status_code=404, detail="Property not found")
    unit = (
        db.query(Unit)
        .filter(Unit.property_id == payload.property_id, Unit.name == payload.unit_name)
        .first()
    )
    if not unit:
        raise HTTPException(status_code=404, detail="Unit not found")

    values = payload.model_dump()
    values["resident_type"] = payload.resident_type.value
    values["agent"] = payload.agent or DEFAULT_OCCUPANT_AGENT
    occupant = Occupant(**values)
    db.add(occupant)
    db.flush()
    audit_log(
        db_session=db,
        actor=actor,
        action="occupant.create",
        target_entity_type="occupant",
        target_entity_id=occupant.id,
        after=payload.model_dump(),
    )
    db.commit()
    db.refresh(occupant)
    return occupant


@router.post("/{occupant_id}/archive", response_model=OccupantRead)
def archive_occupant(
    occupant_id: int,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> Occupant:
    occupant = _get_occupant(db, occupant_id)
    if occupant.status == OccupantStatus.ARCHIVED.value:
        return occupant
    occupant.status = OccupantStatus.ARCHIVED.value
    occupant.archived_at = utcnow()
    audit_log(
        db_session=db,
        actor=actor,
        action="occupant.archive",
        target_entity_type="occupant",
        target_entity_id=occupant.id,
        before={"status": OccupantStatus.ACTIVE.value},
        after={"status": occupant.status},
    )
    db.commit()
    db.refresh(occupant)
    return occupant


@router.get("/{occupant_id}/ledger", response_model=OccupantLedgerRead)
def get_occupant_ledger(
    occupant_id: int,
    charge_type: Optional[PaymentType] = Query(default=None),
    as_of: date = Depends(get_as_of),
    db: Session = Depends(get_db),
) -> OccupantLedgerRead:
    if charge_type is not None and charge_type not in RECURRING_CHARGE_TYPES:
        raise HTTPException(status_code=400, detail="Ledgers exist for Rent and ServiceCharge only")
    unit_ledger = build_occupant_ledger(db, occupant_id, as_of, charge_type)
    return OccupantLedgerRead(
        occupant_id=occupant_id,
        charge_type=unit_ledger.charge_type,
        as_of=as_of,
        first_billable_month=str(unit_ledger.first_month) if unit_ledger.first_month else None,
        monthly_amount=unit_ledger.monthly_amount,
        amount_due=unit_ledger.amount_due,
        credit_balance=credit_balance(unit_ledger.ledger),
        entries=[LedgerEntryRead.model_validate(entry) for entry in unit_ledger.ledger],
    )


@router.post("/{occupant_id}/recalculate", response_model=OccupantRead)
def recalculate_occupant_balance(
    occupant_id: int,
    as_of: date = Depends(get_as_of),
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> Occupant:
    occupant = force_recalculate_occupant_balance(db, occupant_id, as_of=as_of, actor=actor)
    db.commit()
    db.refresh(occupant)
    return occupant
