from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship as orm_relationship

from ..config import Base
from ..constants import (
    HandoverStatus,
    ManagementStatus,
    OccupantStatus,
    OwnershipType,
    PaymentStatus,
    ResidentType,
    UnitStatus,
)


def utcnow():
    return datetime.now(timezone.utc)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=utcnow, index=True, nullable=False)
    actor = Column(String, nullable=True)
    action = Column(String, nullable=False)
    target_entity_type = Column(String, nullable=True)
    target_entity_id = Column(String, nullable=True)
    before = Column(Text, nullable=True)
    after = Column(Text, nullable=True)


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    property_type = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    units = orm_relationship(
        "Unit",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="Unit.name",
    )


class Landlord(Base):
    __tablename__ = "landlords"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    bank_account = Column(String, nullable=True)
    user_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    units = orm_relationship("Unit", back_populates="landlord")


class Unit(Base):
    __tablename__ = "units"
    __table_args__ = (UniqueConstraint("property_id", "name", name="uq_unit_property_name"),)

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, default=UnitStatus.VACANT.value)
    ownership = Column(String, nullable=False, default=OwnershipType.SELF_MANAGED.value)
    unit_type = Column(String, nullable=True)
    management_status = Column(String, nullable=True, default=ManagementStatus.RENTED_FOR_COMPANY.value)
    handover_status = Column(String, nullable=True, default=HandoverStatus.PENDING.value)
    handover_date = Column(Date, nullable=True)
    rent_amount = Column(Numeric(12, 2), nullable=True)
    service_charge = Column(Numeric(12, 2), nullable=True)
    landlord_id = Column(Integer, ForeignKey("landlords.id", ondelete="SET NULL"), nullable=True)

    property = orm_relationship("Property", back_populates="units")
    landlord = orm_relationship("Landlord", back_populates="units")


class PropertyOwner(Base):
    __tablename__ = "property_owners"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    bank_account = Column(String, nullable=True)
    user_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    assigned_units = orm_relationship(
        "OwnerAssignedUnit",
        back_populates="owner",
        cascade="all, delete-orphan",
        order_by="OwnerAssignedUnit.id",
    )


class OwnerAssignedUnit(Base):
    __tablename__ = "owner_assigned_units"
    __table_args__ = (UniqueConstraint("owner_id", "property_id", "unit_name", name="uq_owner_assigned_unit"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("property_owners.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    unit_name = Column(String, nullable=False)

    owner = orm_relationship("PropertyOwner", back_populates="assigned_units")


class Occupant(Base):
    __tablename__ = "occupants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    id_number = Column(String, nullable=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False)
    unit_name = Column(String, nullable=False)
    agent = Column(String, nullable=True)
    resident_type = Column(String, nullable=False, default=ResidentType.TENANT.value)
    status = Column(String, nullable=False, default=OccupantStatus.ACTIVE.value, index=True)
    security_deposit = Column(Numeric(12, 2), nullable=False, default=0)
    water_deposit = Column(Numeric(12, 2), nullable=False, default=0)

    lease_start_date = Column(Date, nullable=True)
    lease_end_date = Column(Date, nullable=True)
    lease_rent = Column(Numeric(12, 2), nullable=False, default=0)
    lease_service_charge = Column(Numeric(12, 2), nullable=False, default=0)
    # Raw text: imported records carry malformed markers such as "2024-NaN".
    last_billed_period = Column(String, nullable=True)

    # Set when the account was synthesised to bill an owner.
    owner_kind = Column(String, nullable=True)
    owner_ref_id = Column(Integer, nullable=True)
    user_id = Column(String, nullable=True)

    due_balance = Column(Numeric(12, 2), nullable=False, default=0)
    account_balance = Column(Numeric(12, 2), nullable=False, default=0)
    payment_status = Column(String, nullable=True)
    last_payment_date = Column(Date, nullable=True)
    balance_recomputed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    archived_at = Column(DateTime, nullable=True)

    property = orm_relationship("Property")
    payments = orm_relationship("Payment", back_populates="occupant", order_by="Payment.date")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    occupant_id = Column(Integer, ForeignKey("occupants.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(Date, nullable=False)
    type = Column(String, nullable=False)
    status = Column(String, nullable=False, default=PaymentStatus.PAID.value)
    for_month = Column(String, nullable=True)
    method = Column(String, nullable=True)
    transaction_id = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    occupant = orm_relationship("Occupant", back_populates="payments")
    edit_history = orm_relationship(
        "PaymentEdit",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentEdit.edited_at",
    )


class PaymentEdit(Base):
    __tablename__ = "payment_edits"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False)
    edited_at = Column(DateTime, default=utcnow, nullable=False)
    edited_by = Column(String, nullable=False)
    reason = Column(Text, nullable=False)
    previous_amount = Column(Numeric(12, 2), nullable=False)
    previous_date = Column(Date, nullable=False)
    previous_notes = Column(Text, nullable=True)

    payment = orm_relationship("Payment", back_populates="edit_history")
