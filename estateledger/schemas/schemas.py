import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, condecimal, field_validator

from ..constants import (
    AccountStatus,
    HandoverStatus,
    ManagementStatus,
    OwnershipType,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    ResidentType,
    UnitStatus,
)
from ..services.periods import YearMonth

Money = condecimal(max_digits=12, decimal_places=2)


def _validate_period(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    YearMonth.parse(value)
    return value


Period = Annotated[Optional[str], AfterValidator(_validate_period)]


class UnitBase(BaseModel):
    name: str = Field(min_length=1)
    status: UnitStatus = UnitStatus.VACANT
    ownership: OwnershipType = OwnershipType.SELF_MANAGED
    unit_type: Optional[str] = None
    management_status: Optional[ManagementStatus] = None
    handover_status: HandoverStatus = HandoverStatus.PENDING
    handover_date: Optional[date] = None
    rent_amount: Optional[Money] = None
    service_charge: Optional[Money] = None
    landlord_id: Optional[int] = None


class UnitCreate(UnitBase):
    pass


class UnitUpdate(BaseModel):
    status: Optional[UnitStatus] = None
    ownership: Optional[OwnershipType] = None
    unit_type: Optional[str] = None
    management_status: Optional[ManagementStatus] = None
    handover_status: Optional[HandoverStatus] = None
    handover_date: Optional[date] = None
    rent_amount: Optional[Money] = None
    service_charge: Optional[Money] = None
    landlord_id: Optional[int] = None


class UnitRead(UnitBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: int


class PropertyCreate(BaseModel):
    name: str = Field(min_length=1)
    address: Optional[str] = None
    property_type: Optional[str] = None
    units: List[UnitCreate] = []


class PropertyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: Optional[str] = None
    property_type: Optional[str] = None
    units: List[UnitRead] = []


class LandlordCreate(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    bank_account: Optional[str] = None
    user_id: Optional[str] = None


class LandlordRead(LandlordCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


class AssignedUnitsPayload(BaseModel):
    property_id: int
    unit_names: List[str] = Field(min_length=1)


class PropertyOwnerCreate(LandlordCreate):
    assigned_units: List[AssignedUnitsPayload] = []


class AssignedUnitRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    property_id: int
    unit_name: str


class PropertyOwnerRead(LandlordCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    assigned_units: List[AssignedUnitRead] = []


class OccupantCreate(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    id_number: Optional[str] = None
    property_id: int
    unit_name: str
    agent: Optional[str] = None
    resident_type: ResidentType = ResidentType.TENANT
    security_deposit: Money = Decimal("0")
    water_deposit: Money = Decimal("0")
    lease_start_date: Optional[date] = None
    lease_end_date: Optional[date] = None
    lease_rent: Money = Decimal("0")
    lease_service_charge: Money = Decimal("0")
    last_billed_period: Period = None


class OccupantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    property_id: int
    unit_name: str
    agent: Optional[str] = None
    resident_type: str
    status: str
    lease_start_date: Optional[date] = None
    lease_end_date: Optional[date] = None
    lease_rent: Decimal
    lease_service_charge: Decimal
    last_billed_period: Optional[str] = None
    owner_kind: Optional[str] = None
    owner_ref_id: Optional[int] = None
    due_balance: Decimal
    account_balance: Decimal
    payment_status: Optional[str] = None
    last_payment_date: Optional[date] = None
    balance_recomputed_at: Optional[datetime] = None
    created_at: datetime
    archived_at: Optional[datetime] = None


class PaymentCreate(BaseModel):
    occupant_id: int
    amount: Money = Field(gt=0)
    date: dt.date
    type: PaymentType
    status: PaymentStatus = PaymentStatus.PAID
    for_month: Period = None
    method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentUpdate(BaseModel):
    reason: Optional[str] = None
    amount: Optional[Money] = Field(default=None, gt=0)
    date: Optional[dt.date] = None
    type: Optional[PaymentType] = None
    status: Optional[PaymentStatus] = None
    for_month: Period = None
    method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentEditRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    edited_at: datetime
    edited_by: str
    reason: str
    previous_amount: Decimal
    previous_date: date
    previous_notes: Optional[str] = None


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    occupant_id: int
    amount: Decimal
    date: dt.date
    type: str
    status: str
    for_month: Optional[str] = None
    method: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    edit_history: List[PaymentEditRead] = []


class LedgerEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    description: str
    charge: Decimal
    payment: Decimal
    balance: Decimal
    entry_type: str
    period: Optional[str] = None
    reference: Optional[str] = None

    @field_validator("period", mode="before")
    @classmethod
    def _period_label(cls, value):
        return None if value is None else str(value)


class OccupantLedgerRead(BaseModel):
    occupant_id: int
    charge_type: PaymentType
    as_of: date
    first_billable_month: Optional[str] = None
    monthly_amount: Decimal
    amount_due: Decimal
    credit_balance: Decimal
    entries: List[LedgerEntryRead] = []


class ServiceChargeAccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    property_id: int
    property_name: str
    unit_name: str
    unit_service_charge: Decimal
    payment_status: AccountStatus
    owner_id: Optional[int] = None
    owner_kind: Optional[str] = None
    owner_name: str
    occupant_id: Optional[int] = None
    occupant_name: Optional[str] = None
    payment_amount: Optional[Decimal] = None
    payment_for_month: Optional[str] = None
    amount_due: Decimal
    months_in_arrears: int


class GroupedServiceChargeAccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    group_id: str
    owner_name: str
    owner_id: Optional[int] = None
    owner_kind: Optional[str] = None
    units: List[ServiceChargeAccountRead] = []
    total_service_charge: Decimal
    payment_status: AccountStatus


class ServiceChargeAccountsResponse(BaseModel):
    reference_month: str
    as_of: date
    client_occupied: List[GroupedServiceChargeAccountRead] = []
    managed_vacant: List[GroupedServiceChargeAccountRead] = []


class ArrearsMonthRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    amount: Decimal
    outstanding: Decimal
    status: AccountStatus


class VacantArrearsUnitRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    property_id: int
    property_name: str
    unit_name: str
    unit_handover_date: Optional[str] = None
    months_in_arrears: int
    total_due: Decimal
    arrears_detail: List[ArrearsMonthRead] = []


class VacantArrearsAccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    owner_id: int
    owner_kind: str
    owner_name: str
    total_due: Decimal
    months_in_arrears: int
    units: List[VacantArrearsUnitRead] = []


class TenantArrearsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    occupant_id: int
    occupant_name: str
    property_id: int
    property_name: str
    unit_name: str
    arrears: Decimal
    months_in_arrears: int


class LandlordArrearsLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    property_id: int
    property_name: str
    unit_name: str
    occupant_id: Optional[int] = None
    occupant_name: Optional[str] = None
    tenant_arrears: Decimal
    vacant_service_charge: Decimal


class LandlordArrearsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    landlord_id: int
    landlord_name: str
    as_of: date
    total_tenant_arrears: Decimal
    vacant_unit_service_charge: Decimal
    total_deductions: Decimal
    breakdown: List[LandlordArrearsLineRead] = []


class OwnerLedgerRead(BaseModel):
    owner_kind: str
    owner_id: int
    owner_name: str
    as_of: date
    units: List[str] = []
    total_due: Decimal
    pending_months: List[str] = []
    since: Optional[date] = None
    opening_balance: Decimal = Decimal("0.00")
    entries: List[LedgerEntryRead] = []


class ConsolidatedPaymentCreate(BaseModel):
    payment_date: date
    method: PaymentMethod
    transaction_id: Optional[str] = None
    amount: Optional[Money] = Field(default=None, gt=0)
    for_month: Period = None
    notes: Optional[str] = None
    expected_total_due: Optional[Money] = None


class ConsolidatedPaymentRead(BaseModel):
    payment: PaymentRead
    occupant_id: int
    total_due_before: Decimal
    notes: str


class FinancialSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_revenue: Decimal
    total_management_fees: Decimal
    total_service_charges: Decimal
    total_net_remittance: Decimal
    transaction_count: int
    vacant_unit_service_charge_deduction: Decimal


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    actor: Optional[str] = None
    action: str
    target_entity_type: Optional[str] = None
    target_entity_id: Optional[str] = None
    before: Optional[str] = None
    after: Optional[str] = None
