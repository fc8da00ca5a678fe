from enum import Enum


class UnitStatus(str, Enum):
    VACANT = "vacant"
    RENTED = "rented"
    AIRBNB = "airbnb"
    CLIENT_OCCUPIED = "client occupied"


class OwnershipType(str, Enum):
    SELF_MANAGED = "SM"
    LANDLORD = "Landlord"


class ManagementStatus(str, Enum):
    RENTED_FOR_COMPANY = "Rented for Soil Merchants"
    RENTED_FOR_CLIENTS = "Rented for Clients"
    CLIENT_MANAGED = "Client Managed"
    AIRBNB = "Airbnb"


class HandoverStatus(str, Enum):
    PENDING = "Pending Hand Over"
    HANDED_OVER = "Handed Over"


class ResidentType(str, Enum):
    TENANT = "Tenant"
    HOMEOWNER = "Homeowner"


class OccupantStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class PaymentType(str, Enum):
    RENT = "Rent"
    DEPOSIT = "Deposit"
    SERVICE_CHARGE = "ServiceCharge"
    WATER = "Water"
    OTHER = "Other"
    ADJUSTMENT = "Adjustment"


class PaymentStatus(str, Enum):
    PAID = "Paid"
    PENDING = "Pending"
    FAILED = "Failed"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    MPESA = "M-Pesa"
    BANK_TRANSFER = "Bank Transfer"
    CARD = "Card"


class OwnerKind(str, Enum):
    LANDLORD = "landlord"
    PROPERTY_OWNER = "property-owner"


class AccountStatus(str, Enum):
    PAID = "Paid"
    PENDING = "Pending"
    NOT_APPLICABLE = "N/A"


# Charge types the engine knows how to schedule, keyed to the payment type that settles them.
RECURRING_CHARGE_TYPES = (PaymentType.RENT, PaymentType.SERVICE_CHARGE)

DEFAULT_OCCUPANT_AGENT = "Susan"
HOMEOWNER_LEASE_YEARS = 99
