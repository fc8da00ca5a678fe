from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..api.dependencies import get_as_of, get_reference_month, get_store
from ..constants import OwnerKind
from ..core.errors import LedgerError, OwnerNotFound
from ..schemas.schemas import (
    ConsolidatedPaymentCreate,
    ConsolidatedPaymentRead,
    GroupedServiceChargeAccountRead,
    LedgerEntryRead,
    OwnerLedgerRead,
    PaymentRead,
    ServiceChargeAccountsResponse,
    VacantArrearsAccountRead,
)
from ..services.consolidation import ConsolidatedPaymentCoordinator, ConsolidatedPaymentRequest
from ..services.ledger import entries_between, opening_balance
from ..services.periods import YearMonth
from ..services.reports import (
    generate_owner_ledger_report,
    generate_service_charge_accounts_report,
    generate_vacant_arrears_report,
)
from ..services.service_charges import collect_vacant_arrears, group_accounts, process_service_charge_data
from ..services.store import SqlAlchemyBillingStore
from ..utils.pdf_utils import generate_owner_statement_pdf, generate_vacant_arrears_pdf

router = APIRouter()


def _csv_response(filename: str, content: str) -> Response:
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Cache-Control": "no-store",
    }
    return Response(content=content, media_type="text/csv", headers=headers)


@router.get("/accounts", response_model=ServiceChargeAccountsResponse)
def list_service_charge_accounts(
    reference_month: YearMonth = Depends(get_reference_month),
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> ServiceChargeAccountsResponse:
    report = process_service_charge_data(store.load_snapshot(), reference_month, as_of)
    return ServiceChargeAccountsResponse(
        reference_month=str(reference_month),
        as_of=as_of,
        client_occupied=[
            GroupedServiceChargeAccountRead.model_validate(group)
            for group in group_accounts(report.client_occupied_accounts)
        ],
        managed_vacant=[
            GroupedServiceChargeAccountRead.model_validate(group)
            for group in group_accounts(report.managed_vacant_accounts)
        ],
    )


@router.get("/arrears", response_model=List[VacantArrearsAccountRead])
def list_vacant_arrears(
    reference_month: YearMonth = Depends(get_reference_month),
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> List[VacantArrearsAccountRead]:
    accounts = collect_vacant_arrears(store.load_snapshot(), reference_month, as_of)
    return [VacantArrearsAccountRead.model_validate(account) for account in accounts]


@router.get("/arrears/export")
def export_vacant_arrears(
    reference_month: YearMonth = Depends(get_reference_month),
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> Response:
    accounts = collect_vacant_arrears(store.load_snapshot(), reference_month, as_of)
    report = generate_vacant_arrears_report(accounts, as_of)
    return _csv_response(report.filename, report.content)


@router.get("/owners/{kind}/{owner_id}/ledger", response_model=OwnerLedgerRead)
def get_owner_ledger(
    kind: OwnerKind,
    owner_id: int,
    since: Optional[date] = Query(default=None, description="Only entries on or after this date"),
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> OwnerLedgerRead:
    quote = ConsolidatedPaymentCoordinator(store).quote(kind, owner_id, as_of)
    entries = quote.ledger
    opening = Decimal("0.00")
    if since is not None:
        opening = opening_balance(quote.ledger, since)
        entries = entries_between(quote.ledger, since, as_of)
    return OwnerLedgerRead(
        owner_kind=kind.value,
        owner_id=owner_id,
        owner_name=quote.owner.name,
        as_of=as_of,
        units=[unit.name for unit in quote.units],
        total_due=quote.total_due,
        pending_months=[str(period) for period in quote.pending_periods],
        since=since,
        opening_balance=opening,
        entries=[LedgerEntryRead.model_validate(entry) for entry in entries],
    )


@router.post(
    "/owners/{kind}/{owner_id}/payments",
    response_model=ConsolidatedPaymentRead,
    status_code=status.HTTP_201_CREATED,
)
def record_consolidated_payment(
    kind: OwnerKind,
    owner_id: int,
    payload: ConsolidatedPaymentCreate,
    as_of: Optional[date] = None,
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> ConsolidatedPaymentRead:
    db: Session = store.session
    request = ConsolidatedPaymentRequest(
        payment_date=payload.payment_date,
        method=payload.method.value,
        transaction_id=payload.transaction_id,
        amount=payload.amount,
        for_month=payload.for_month,
        notes=payload.notes,
        expected_total_due=payload.expected_total_due,
    )
    try:
        result = ConsolidatedPaymentCoordinator(store).record(kind, owner_id, request, as_of or date.today())
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    db.refresh(result.payment)
    return ConsolidatedPaymentRead(
        payment=PaymentRead.model_validate(result.payment),
        occupant_id=result.occupant.id,
        total_due_before=result.quote.total_due,
        notes=result.payment.notes or "",
    )


@router.get("/owners/{kind}/{owner_id}/statement")
def download_owner_statement(
    kind: OwnerKind,
    owner_id: int,
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> FileResponse:
    quote = ConsolidatedPaymentCoordinator(store).quote(kind, owner_id, as_of)
    path = generate_owner_statement_pdf(quote)
    return FileResponse(path, media_type="application/pdf", filename=Path(path).name)


@router.get("/accounts/export")
def export_service_charge_accounts(
    reference_month: YearMonth = Depends(get_reference_month),
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> Response:
    report = process_service_charge_data(store.load_snapshot(), reference_month, as_of)
    csv_report = generate_service_charge_accounts_report(
        report.client_occupied_accounts + report.managed_vacant_accounts,
        str(reference_month),
    )
    return _csv_response(csv_report.filename, csv_report.content)


@router.get("/owners/{kind}/{owner_id}/ledger/export")
def export_owner_ledger(
    kind: OwnerKind,
    owner_id: int,
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> Response:
    quote = ConsolidatedPaymentCoordinator(store).quote(kind, owner_id, as_of)
    report = generate_owner_ledger_report(quote)
    return _csv_response(report.filename, report.content)


@router.get("/owners/{kind}/{owner_id}/arrears-invoice")
def download_vacant_arrears_invoice(
    kind: OwnerKind,
    owner_id: int,
    reference_month: YearMonth = Depends(get_reference_month),
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> FileResponse:
    snapshot = store.load_snapshot()
    if snapshot.find_owner(kind, owner_id) is None:
        raise OwnerNotFound(f"No {kind.value} with id {owner_id}")
    for account in collect_vacant_arrears(snapshot, reference_month, as_of):
        if account.owner_kind == kind.value and account.owner_id == owner_id:
            path = generate_vacant_arrears_pdf(account, as_of)
            return FileResponse(path, media_type="application/pdf", filename=Path(path).name)
    raise HTTPException(status_code=404, detail="No vacant unit arrears for this owner")
