import csv
from datetime import date
from decimal import Decimal
from io import StringIO
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from estateledger.api.dependencies import get_db
from estateledger.constants import ManagementStatus, ResidentType, UnitStatus
from estateledger.main import app
from estateledger.models.models import Occupant, Payment

AS_OF = "2024-04-15"


def _override_get_db(session):
    def _generator():
        try:
            yield session
        finally:
            pass

    return _generator


@pytest.fixture
def portfolio(create_landlord, create_property, create_property_owner, create_occupant, create_payment):
    landlord = create_landlord(name="Otieno")
    client_occupied = {
        "status": UnitStatus.CLIENT_OCCUPIED.value,
        "management_status": ManagementStatus.CLIENT_MANAGED.value,
        "handover_date": date(2024, 1, 5),
    }
    prop = create_property(
        units=[
            {"name": "A1", **client_occupied},
            {"name": "B2", **client_occupied},
            {"name": "V1", "handover_date": date(2024, 2, 8), "landlord_id": landlord.id},
        ]
    )
    owner = create_property_owner("Wanjiku Holdings", prop.id, ["A1", "B2"])
    homeowner = create_occupant(prop.id, "A1", name="Wanjiku", resident_type=ResidentType.HOMEOWNER.value)
    for month in (1, 2, 3, 4):
        create_payment(homeowner.id, "10000", date(2024, month, 1), for_month=f"2024-{month:02d}")
    return {"landlord": landlord, "property": prop, "owner": owner, "homeowner": homeowner}


def test_accounts_group_units_by_owner(db_session, portfolio):
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)

    try:
        response = client.get("/service-charges/accounts", params={"month": "2024-04", "as_of": AS_OF})
        assert response.status_code == 200
        body = response.json()
        assert body["reference_month"] == "2024-04"

        (group,) = body["client_occupied"]
        assert group["owner_name"] == "Wanjiku Holdings"
        assert group["payment_status"] == "Pending"
        statuses = {unit["unit_name"]: unit["payment_status"] for unit in group["units"]}
        assert statuses == {"A1": "Paid", "B2": "Pending"}

        (vacant_group,) = body["managed_vacant"]
        assert vacant_group["owner_name"] == "Otieno"
        assert vacant_group["units"][0]["months_in_arrears"] == 2

        assert client.get("/service-charges/accounts", params={"month": "April"}).status_code == 422
        assert client.get("/service-charges/accounts", params={"month": "2024-13"}).status_code == 422
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_vacant_arrears_listing_and_exports(db_session, portfolio):
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)

    try:
        response = client.get("/service-charges/arrears", params={"as_of": AS_OF})
        assert response.status_code == 200
        (account,) = response.json()
        assert account["owner_kind"] == "landlord"
        assert Decimal(account["total_due"]) == Decimal("30000.00")
        assert [month["month"] for month in account["units"][0]["arrears_detail"]] == [
            "February 2024",
            "March 2024",
            "April 2024",
        ]

        export = client.get("/service-charges/arrears/export", params={"as_of": AS_OF})
        assert export.status_code == 200
        assert export.headers["content-type"].startswith("text/csv")
        assert 'filename="vacant-arrears-2024-04-15.csv"' in export.headers["content-disposition"]
        rows = list(csv.reader(StringIO(export.text)))
        assert rows[0][0] == "Owner"
        assert rows[1][3] == "V1"
        assert rows[-1][3] == "TOTAL"
        assert rows[-1][-1] == "30000.00"

        accounts_export = client.get("/service-charges/accounts/export", params={"month": "2024-04", "as_of": AS_OF})
        assert accounts_export.status_code == 200
        rows = list(csv.reader(StringIO(accounts_export.text)))
        assert [row[2] for row in rows[1:]] == ["A1", "B2", "V1"]
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_owner_ledger_and_consolidated_payment(db_session, portfolio):
    owner = portfolio["owner"]
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)

    try:
        ledger = client.get(f"/service-charges/owners/property-owner/{owner.id}/ledger", params={"as_of": AS_OF})
        assert ledger.status_code == 200
        body = ledger.json()
        assert body["units"] == ["A1", "B2"]
        assert Decimal(body["total_due"]) == Decimal("40000.00")
        assert body["pending_months"] == ["2024-03", "2024-04"]
        assert body["entries"][0]["description"] == "S.Charge for Units: A1, B2"

        window = client.get(
            f"/service-charges/owners/property-owner/{owner.id}/ledger",
            params={"as_of": AS_OF, "since": "2024-03-01"},
        ).json()
        assert Decimal(window["opening_balance"]) == Decimal("20000.00")
        assert [entry["entry_type"] for entry in window["entries"]] == ["charge", "payment", "charge", "payment"]

        stale = client.post(
            f"/service-charges/owners/property-owner/{owner.id}/payments",
            params={"as_of": AS_OF},
            json={"payment_date": "2024-04-12", "method": "Bank Transfer", "expected_total_due": "35000"},
        )
        assert stale.status_code == 409
        assert stale.json()["error"] == "StaleBalance"

        created = client.post(
            f"/service-charges/owners/property-owner/{owner.id}/payments",
            params={"as_of": AS_OF},
            json={"payment_date": "2024-04-12", "method": "Bank Transfer", "expected_total_due": "40000"},
            headers={"X-Actor": "cashier@example.com"},
        )
        assert created.status_code == 201
        payload = created.json()
        assert payload["occupant_id"] == portfolio["homeowner"].id
        assert Decimal(payload["total_due_before"]) == Decimal("40000.00")
        assert Decimal(payload["payment"]["amount"]) == Decimal("40000.00")
        assert payload["notes"] == "Consolidated service charge for units: A1, B2 (Mar 2024 - Apr 2024)"

        again = client.post(
            f"/service-charges/owners/property-owner/{owner.id}/payments",
            params={"as_of": AS_OF},
            json={"payment_date": "2024-04-13", "method": "Cash"},
        )
        assert again.status_code == 409
        assert again.json()["error"] == "NoPendingCharge"
        assert db_session.query(Payment).count() == 5
        assert db_session.query(Occupant).count() == 1
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_unknown_owner_and_kind(db_session, portfolio):
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)

    try:
        assert client.get("/service-charges/owners/landlord/9999/ledger").status_code == 404
        assert client.get("/service-charges/owners/tenant/1/ledger").status_code == 422
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_owner_documents(db_session, portfolio):
    landlord = portfolio["landlord"]
    owner = portfolio["owner"]
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)

    try:
        statement = client.get(f"/service-charges/owners/property-owner/{owner.id}/statement", params={"as_of": AS_OF})
        assert statement.status_code == 200
        assert statement.headers["content-type"] == "application/pdf"
        assert statement.content.startswith(b"%PDF")

        export = client.get(f"/service-charges/owners/property-owner/{owner.id}/ledger/export", params={"as_of": AS_OF})
        rows = list(csv.reader(StringIO(export.text)))
        assert rows[0] == ["date", "entry_type", "description", "charge", "payment", "balance"]
        assert rows[-1][-1] == "40000.00"

        invoice = client.get(f"/service-charges/owners/landlord/{landlord.id}/arrears-invoice", params={"as_of": AS_OF})
        assert invoice.status_code == 200
        assert invoice.content.startswith(b"%PDF")
        assert Path(invoice.headers["content-disposition"].split("filename=")[-1].strip('"')).suffix == ".pdf"

        no_arrears = client.get(f"/service-charges/owners/property-owner/{owner.id}/arrears-invoice", params={"as_of": AS_OF})
        assert no_arrears.status_code == 404
    finally:
        client.close()
        app.dependency_overrides.clear()
