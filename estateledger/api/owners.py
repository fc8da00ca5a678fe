from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload

from ..api.dependencies import get_actor, get_as_of, get_db, get_store
from ..constants import OwnerKind
from ..core.errors import OwnerNotFound
from ..models.models import Landlord, OwnerAssignedUnit, PropertyOwner, Unit
from ..schemas.schemas import (
    LandlordArrearsRead,
    LandlordCreate,
    LandlordRead,
    PropertyOwnerCreate,
    PropertyOwnerRead,
)
from ..services.arrears import landlord_arrears_breakdown
from ..services.audit import audit_log
from ..services.store import SqlAlchemyBillingStore

router = APIRouter()


@router.get("/landlords", response_model=List[LandlordRead])
def list_landlords(db: Session = Depends(get_db)) -> List[Landlord]:
    return db.query(Landlord).order_by(Landlord.name.asc()).all()


@router.post("/landlords", response_model=LandlordRead, status_code=status.HTTP_201_CREATED)
def create_landlord(
    payload: LandlordCreate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> Landlord:
    landlord = Landlord(**payload.model_dump())
    db.add(landlord)
    db.flush()
    audit_log(
        db_session=db,
        actor=actor,
        action="landlord.create",
        target_entity_type="landlord",
        target_entity_id=landlord.id,
        after=payload.model_dump(),
    )
    db.commit()
    db.refresh(landlord)
    return landlord


@router.get("/landlords/{landlord_id}/arrears", response_model=LandlordArrearsRead)
def get_landlord_arrears(
    landlord_id: int,
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> LandlordArrearsRead:
    snapshot = store.load_snapshot()
    landlord = snapshot.find_owner(OwnerKind.LANDLORD, landlord_id)
    if landlord is None:
        raise OwnerNotFound(f"No landlord with id {landlord_id}")
    return LandlordArrearsRead.model_validate(landlord_arrears_breakdown(snapshot, landlord, as_of))


@router.get("/property-owners", response_model=List[PropertyOwnerRead])
def list_property_owners(db: Session = Depends(get_db)) -> List[PropertyOwner]:
    return (
        db.query(PropertyOwner)
        .options(selectinload(PropertyOwner.assigned_units))
        .order_by(PropertyOwner.name.asc())
        .all()
    )


@router.post("/property-owners", response_model=PropertyOwnerRead, status_code=status.HTTP_201_CREATED)
def create_property_owner(
    payload: PropertyOwnerCreate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> PropertyOwner:
    owner = PropertyOwner(**payload.model_dump(exclude={"assigned_units"}))
    seen = set()
    for assignment in payload.assigned_units:
        for unit_name in assignment.unit_names:
            key = (assignment.property_id, unit_name)
            if key in seen:
                continue
            seen.add(key)
            exists = (
                db.query(Unit.id)
                .filter(Unit.property_id == assignment.property_id, Unit.name == unit_name)
                .first()
            )
            if not exists:
                raise HTTPException(
                    status_code=400,
                    detail=f"Unit {unit_name} does not exist on property {assignment.property_id}",
                )
            owner.assigned_units.append(OwnerAssignedUnit(property_id=assignment.property_id, unit_name=unit_name))
    db.add(owner)
    db.flush()
    audit_log(
        db_session=db,
        actor=actor,
        action="property_owner.create",
        target_entity_type="property_owner",
        target_entity_id=owner.id,
        after=payload.model_dump(),
    )
    db.commit()
    db.refresh(owner)
    return owner
