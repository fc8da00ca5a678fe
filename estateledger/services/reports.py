from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Sequence

from ..utils.csv_utils import ledger_to_csv, rows_to_csv
from .consolidation import OwnerQuote
from .financials import FinancialSummary
from .service_charges import ServiceChargeAccount, VacantArrearsAccount


@dataclass
class CsvReport:
    filename: str
    content: str


def generate_vacant_arrears_report(accounts: Iterable[VacantArrearsAccount], as_of: date) -> CsvReport:
    headers = [
        "Owner",
        "Owner Type",
        "Property",
        "Unit",
        "Handover Date",
        "Months In Arrears",
        "Amount Due",
    ]
    rows: List[List[str]] = []
    for account in accounts:
        for unit in account.units:
            rows.append(
                [
                    account.owner_name,
                    account.owner_kind,
                    unit.property_name,
                    unit.unit_name,
                    unit.unit_handover_date or "",
                    str(unit.months_in_arrears),
                    f"{unit.total_due:.2f}",
                ]
            )
        rows.append(
            [
                account.owner_name,
                account.owner_kind,
                "",
                "TOTAL",
                "",
                str(account.months_in_arrears),
                f"{account.total_due:.2f}",
            ]
        )
    return CsvReport(filename=f"vacant-arrears-{as_of.isoformat()}.csv", content=rows_to_csv(headers, rows))


def generate_service_charge_accounts_report(accounts: Sequence[ServiceChargeAccount], reference_label: str) -> CsvReport:
    headers = ["Owner", "Property", "Unit", "Service Charge", "Status", "Amount Due", "Months In Arrears"]
    rows = [
        [
            account.owner_name,
            account.property_name,
            account.unit_name,
            f"{account.unit_service_charge:.2f}",
            account.payment_status.value,
            f"{account.amount_due:.2f}",
            str(account.months_in_arrears),
        ]
        for account in accounts
    ]
    return CsvReport(filename=f"service-charges-{reference_label}.csv", content=rows_to_csv(headers, rows))


def generate_owner_ledger_report(quote: OwnerQuote) -> CsvReport:
    owner = quote.owner
    filename = f"ledger-{owner.kind.value}-{owner.id}-{quote.as_of.isoformat()}.csv"
    return CsvReport(filename=filename, content=ledger_to_csv(quote.ledger))


def generate_financial_summary_report(summary: FinancialSummary, as_of: date) -> CsvReport:
    headers = ["Metric", "Amount"]
    rows = [
        ["Total Revenue", f"{summary.total_revenue:.2f}"],
        ["Service Charges", f"{summary.total_service_charges:.2f}"],
        ["Management Fees", f"{summary.total_management_fees:.2f}"],
        ["Vacant Unit Service Charge", f"{summary.vacant_unit_service_charge_deduction:.2f}"],
        ["Net Remittance", f"{summary.total_net_remittance:.2f}"],
        ["Transactions", str(summary.transaction_count)],
    ]
    return CsvReport(filename=f"financial-summary-{as_of.isoformat()}.csv", content=rows_to_csv(headers, rows))
