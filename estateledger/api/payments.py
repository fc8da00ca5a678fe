from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, selectinload

from ..api.dependencies import get_actor, get_db, get_store
from ..core.errors import LedgerError, OccupantNotFound
from ..models.models import Occupant, Payment
from ..schemas.schemas import PaymentCreate, PaymentRead, PaymentUpdate
from ..services.consolidation import PaymentRecord
from ..services.store import SqlAlchemyBillingStore

router = APIRouter()


@router.get("/", response_model=List[PaymentRead])
def list_payments(
    occupant_id: Optional[int] = None,
    type: Optional[str] = None,
    db: Session = Depends(get_db),
) -> List[Payment]:
    query = db.query(Payment).options(selectinload(Payment.edit_history))
    if occupant_id is not None:
        query = query.filter(Payment.occupant_id == occupant_id)
    if type:
        query = query.filter(Payment.type == type)
    return query.order_by(Payment.date.desc(), Payment.id.desc()).all()


@router.post("/", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
def record_payment(
    payload: PaymentCreate,
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> Payment:
    db = store.session
    if not db.get(Occupant, payload.occupant_id):
        raise OccupantNotFound(f"Occupant {payload.occupant_id} not found.")
    record = PaymentRecord(
        occupant_id=payload.occupant_id,
        amount=payload.amount,
        date=payload.date,
        type=payload.type.value,
        status=payload.status.value,
        notes=payload.notes,
        for_month=payload.for_month,
        method=payload.method.value if payload.method else None,
        transaction_id=payload.transaction_id,
    )
    try:
        payment = store.add_payment(record)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    db.refresh(payment)
    return payment


@router.patch("/{payment_id}", response_model=PaymentRead)
def edit_payment(
    payment_id: int,
    payload: PaymentUpdate,
    store: SqlAlchemyBillingStore = Depends(get_store),
    actor: Optional[str] = Depends(get_actor),
) -> Payment:
    db = store.session
    changes = payload.model_dump(exclude={"reason"}, exclude_none=True)
    changes = {key: getattr(value, "value", value) for key, value in changes.items()}
    try:
        payment = store.update_payment(payment_id, changes, payload.reason, actor)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    db.refresh(payment)
    return payment
