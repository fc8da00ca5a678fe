import sys
from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from estateledger.config import Base  # noqa: E402
import estateledger.config as app_config  # noqa: E402
import estateledger.main as app_main  # noqa: E402
from estateledger.constants import (  # noqa: E402
    HandoverStatus,
    ManagementStatus,
    OwnershipType,
    PaymentStatus,
    PaymentType,
    ResidentType,
    UnitStatus,
)
# Import the full models module so all tables (including audit_logs) register with Base metadata.
from estateledger.models import models as _all_models  # noqa: E402,F401
from estateledger.models.models import (  # noqa: E402
    Landlord,
    Occupant,
    OwnerAssignedUnit,
    Payment,
    Property,
    PropertyOwner,
    Unit,
)


@pytest.fixture(scope="session", autouse=True)
def _configure_global_test_db(tmp_path_factory):
    """Configure the app-wide SessionLocal/engine so the audit middleware writes to a DB with all tables."""
    db_dir = tmp_path_factory.mktemp("globaldb")
    db_path = db_dir / "app.db"
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    app_config.SessionLocal = SessionLocal
    app_config.engine = engine
    app_main.SessionLocal = SessionLocal
    app_main.engine = engine
    yield
    engine.dispose()


@pytest.fixture(autouse=True)
def _pdf_output_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(app_config.settings, "pdf_output_dir", str(tmp_path / "pdfs"))


@pytest.fixture
def db_session(tmp_path) -> Generator[Session, None, None]:
    """Provide a fresh SQLite database for each test."""
    db_path = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def create_landlord(db_session: Session) -> Callable[..., Landlord]:
    counter = {"value": 0}

    def _create(name: Optional[str] = None) -> Landlord:
        counter["value"] += 1
        landlord = Landlord(
            name=name or f"Landlord {counter['value']}",
            email=f"landlord{counter['value']}@example.com",
        )
        db_session.add(landlord)
        db_session.commit()
        return landlord

    return _create


@pytest.fixture
def create_property(db_session: Session) -> Callable[..., Property]:
    def _create(name: str = "Greenview", units: Iterable[dict] = ()) -> Property:
        prop = Property(name=name, address=f"{name} Road")
        db_session.add(prop)
        db_session.flush()
        for values in units:
            data = {
                "status": UnitStatus.VACANT.value,
                "ownership": OwnershipType.LANDLORD.value,
                "management_status": ManagementStatus.RENTED_FOR_CLIENTS.value,
                "handover_status": HandoverStatus.HANDED_OVER.value,
                "service_charge": Decimal("10000.00"),
            }
            data.update(values)
            db_session.add(Unit(property_id=prop.id, **data))
        db_session.commit()
        db_session.refresh(prop)
        return prop

    return _create


@pytest.fixture
def create_property_owner(db_session: Session) -> Callable[..., PropertyOwner]:
    def _create(name: str, property_id: int, unit_names: Iterable[str]) -> PropertyOwner:
        owner = PropertyOwner(name=name, email=f"{name.lower().replace(' ', '.')}@example.com")
        for unit_name in unit_names:
            owner.assigned_units.append(OwnerAssignedUnit(property_id=property_id, unit_name=unit_name))
        db_session.add(owner)
        db_session.commit()
        return owner

    return _create


@pytest.fixture
def create_occupant(db_session: Session) -> Callable[..., Occupant]:
    def _create(
        property_id: int,
        unit_name: str,
        name: str = "Occupant",
        resident_type: str = ResidentType.TENANT.value,
        **extra,
    ) -> Occupant:
        occupant = Occupant(
            name=name,
            property_id=property_id,
            unit_name=unit_name,
            resident_type=resident_type,
            **extra,
        )
        db_session.add(occupant)
        db_session.commit()
        return occupant

    return _create


@pytest.fixture
def create_payment(db_session: Session) -> Callable[..., Payment]:
    def _create(
        occupant_id: int,
        amount: str,
        paid_on: date,
        type: str = PaymentType.SERVICE_CHARGE.value,
        status: str = PaymentStatus.PAID.value,
        for_month: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        payment = Payment(
            occupant_id=occupant_id,
            amount=Decimal(amount),
            date=paid_on,
            type=type,
            status=status,
            for_month=for_month,
            notes=notes,
        )
        db_session.add(payment)
        db_session.commit()
        return payment

    return _create
