from datetime import date
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..api.dependencies import get_as_of, get_store
from ..schemas.schemas import FinancialSummaryRead
from ..services.financials import aggregate_financials
from ..services.periods import YearMonth
from ..services.reports import generate_financial_summary_report
from ..services.store import SqlAlchemyBillingStore

router = APIRouter()


def _csv_response(filename: str, content: str) -> Response:
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Cache-Control": "no-store",
    }
    return Response(content=content, media_type="text/csv", headers=headers)


@router.get("/reports/financial-summary", response_model=FinancialSummaryRead)
def financial_summary(
    property_id: Optional[int] = None,
    month: Optional[str] = Query(default=None, description="Only payments dated in this YYYY-MM month"),
    format: str = Query(default="json", pattern="^(json|csv)$"),
    as_of: date = Depends(get_as_of),
    store: SqlAlchemyBillingStore = Depends(get_store),
) -> Union[FinancialSummaryRead, Response]:
    snapshot = store.load_snapshot()
    properties = [prop for prop in snapshot.properties if property_id is None or prop.id == property_id]
    payments = snapshot.payments
    if month:
        try:
            period = YearMonth.parse(month)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        payments = [payment for payment in payments if payment.payment_date and period.contains(payment.payment_date)]
    if property_id is not None:
        occupant_ids = {occupant.id for occupant in snapshot.occupants if occupant.property_id == property_id}
        payments = [payment for payment in payments if payment.occupant_id in occupant_ids]

    summary = aggregate_financials(payments, snapshot.occupants, properties)
    if format == "csv":
        report = generate_financial_summary_report(summary, as_of)
        return _csv_response(report.filename, report.content)
    return FinancialSummaryRead.model_validate(summary)
