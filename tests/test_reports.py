import csv
from datetime import date
from decimal import Decimal
from io import StringIO

from fastapi.testclient import TestClient

from estateledger.api.dependencies import get_db
from estateledger.constants import PaymentType, UnitStatus
from estateledger.main import app
from estateledger.services.financials import FinancialSummary
from estateledger.services.reports import generate_financial_summary_report


def _override_get_db(session):
    def _generator():
        try:
            yield session
        finally:
            pass

    return _generator


def test_financial_summary_report_lists_metrics():
    summary = FinancialSummary(
        total_revenue=Decimal("60000"),
        total_management_fees=Decimal("3000"),
        total_service_charges=Decimal("7000"),
        total_net_remittance=Decimal("46000"),
        transaction_count=2,
        vacant_unit_service_charge_deduction=Decimal("4000"),
    )
    report = generate_financial_summary_report(summary, date(2024, 4, 30))
    assert report.filename == "financial-summary-2024-04-30.csv"
    rows = list(csv.reader(StringIO(report.content)))
    assert rows[0] == ["Metric", "Amount"]
    assert ["Net Remittance", "46000.00"] in rows
    assert ["Transactions", "2"] in rows


def test_financial_summary_endpoint_filters_by_month(db_session, create_property, create_occupant, create_payment):
    prop = create_property(
        units=[
            {"name": "A1", "status": UnitStatus.RENTED.value, "rent_amount": Decimal("40000"), "service_charge": Decimal("5000")},
            {"name": "A2", "service_charge": Decimal("4000")},
        ]
    )
    tenant = create_occupant(prop.id, "A1")
    create_payment(tenant.id, "40000", date(2024, 3, 2), type=PaymentType.RENT.value)
    create_payment(tenant.id, "40000", date(2024, 2, 29), type=PaymentType.RENT.value)
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)

    try:
        response = client.get("/reports/financial-summary", params={"month": "2024-03", "property_id": prop.id})
        assert response.status_code == 200
        body = response.json()
        assert body["transaction_count"] == 1
        assert Decimal(body["total_revenue"]) == Decimal("40000.00")
        assert Decimal(body["vacant_unit_service_charge_deduction"]) == Decimal("4000.00")
        assert Decimal(body["total_net_remittance"]) == Decimal("29000.00")

        leap_day = client.get("/reports/financial-summary", params={"month": "2024-02"}).json()
        assert leap_day["transaction_count"] == 1

        export = client.get("/reports/financial-summary", params={"format": "csv", "as_of": "2024-04-30"})
        assert export.status_code == 200
        assert export.headers["content-type"].startswith("text/csv")
        assert ["Transactions", "2"] in list(csv.reader(StringIO(export.text)))

        assert client.get("/reports/financial-summary", params={"month": "2024-00"}).status_code == 422
        assert client.get("/reports/financial-summary", params={"format": "xml"}).status_code == 422
    finally:
        client.close()
        app.dependency_overrides.clear()
