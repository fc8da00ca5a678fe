from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload

from ..api.dependencies import get_actor, get_db
from ..models.models import Landlord, Property, Unit
from ..schemas.schemas import PropertyCreate, PropertyRead, UnitRead, UnitUpdate
from ..services.audit import audit_log

router = APIRouter()


def _get_property_or_404(db: Session, property_id: int) -> Property:
    prop = db.get(Property, property_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


def _column_values(values: dict) -> dict:
    # Enum members are stored by value.
    return {key: getattr(value, "value", value) for key, value in values.items()}


def _check_landlord(db: Session, landlord_id: Optional[int]) -> None:
    if landlord_id is not None and not db.get(Landlord, landlord_id):
        raise HTTPException(status_code=400, detail=f"Landlord {landlord_id} does not exist")


@router.get("/", response_model=List[PropertyRead])
def list_properties(db: Session = Depends(get_db)) -> List[Property]:
    return db.query(Property).options(selectinload(Property.units)).order_by(Property.name.asc()).all()


@router.post("/", response_model=PropertyRead, status_code=status.HTTP_201_CREATED)
def create_property(
    payload: PropertyCreate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> Property:
    names = [unit.name for unit in payload.units]
    if len(names) != len(set(names)):
        raise HTTPException(status_code=400, detail="Unit names must be unique within a property")
    for unit in payload.units:
        _check_landlord(db, unit.landlord_id)

    prop = Property(name=payload.name, address=payload.address, property_type=payload.property_type)
    prop.units = [Unit(**_column_values(unit.model_dump(exclude_none=True))) for unit in payload.units]
    db.add(prop)
    db.flush()
    audit_log(
        db_session=db,
        actor=actor,
        action="property.create",
        target_entity_type="property",
        target_entity_id=prop.id,
        after={"name": prop.name, "units": names},
    )
    db.commit()
    db.refresh(prop)
    return prop


@router.get("/{property_id}", response_model=PropertyRead)
def get_property(property_id: int, db: Session = Depends(get_db)) -> Property:
    return _get_property_or_404(db, property_id)


@router.put("/{property_id}/units/{unit_name}", response_model=UnitRead)
def update_unit(
    property_id: int,
    unit_name: str,
    payload: UnitUpdate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> Unit:
    _get_property_or_404(db, property_id)
    unit = db.query(Unit).filter(Unit.property_id == property_id, Unit.name == unit_name).first()
    if not unit:
        raise HTTPException(status_code=404, detail="Unit not found")

    changes = payload.model_dump(exclude_unset=True)
    if "landlord_id" in changes:
        _check_landlord(db, changes["landlord_id"])
    before = {key: getattr(unit, key) for key in changes}
    for key, value in _column_values(changes).items():
        setattr(unit, key, value)
    db.flush()
    audit_log(
        db_session=db,
        actor=actor,
        action="unit.update",
        target_entity_type="unit",
        target_entity_id=f"{property_id}/{unit_name}",
        before=before,
        after=changes,
    )
    db.commit()
    db.refresh(unit)
    return unit
