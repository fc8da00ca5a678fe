import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .request_context import get_request_id

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for billing and ledger failures."""

    status_code = 500
    default_detail = "Ledger operation failed."

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class UnresolvableBillingStart(LedgerError):
    """No first billable month could be derived. Callers treat the unit as not billable."""

    status_code = 422
    default_detail = "Billing start could not be determined."


class InvalidChargeAmount(LedgerError):
    """Monthly charge is missing or not positive. Callers treat the schedule as empty."""

    status_code = 422
    default_detail = "Monthly charge amount must be greater than zero."


class NoPendingCharge(LedgerError):
    status_code = 409
    default_detail = "This owner has no outstanding balance."


class StaleBalance(LedgerError):
    status_code = 409
    default_detail = "Outstanding balance changed since it was last read."


class OwnerNotFound(LedgerError):
    status_code = 404
    default_detail = "Owner not found."


class OccupantNotFound(LedgerError):
    status_code = 404
    default_detail = "Occupant not found."


class PaymentNotFound(LedgerError):
    status_code = 404
    default_detail = "Payment record not found."


class OccupantCreationFailed(LedgerError):
    status_code = 500
    default_detail = "Could not find or create a billing account for the owner."


class PaymentWriteFailed(LedgerError):
    status_code = 502
    default_detail = "Payment could not be saved."


class InvalidPaymentEdit(LedgerError):
    status_code = 400
    default_detail = "Payment edit rejected."


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore[override]
        return JSONResponse(
            status_code=422,
            content={
                "detail": "Validation failed.",
                "errors": jsonable_encoder(exc.errors()),
                "path": str(request.url),
            },
        )

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError) -> JSONResponse:  # type: ignore[override]
        if exc.status_code >= 500:
            logger.error(
                "%s on %s [request %s]: %s",
                type(exc).__name__,
                request.url.path,
                get_request_id(request),
                exc.detail,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error": type(exc).__name__,
                "path": str(request.url),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # type: ignore[override]
        payload: Dict[str, Any] = {"detail": exc.detail or "HTTP error.", "path": str(request.url)}
        if exc.headers:
            payload["headers"] = exc.headers
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore[override]
        logger.exception("Unhandled error on %s [request %s]", request.url.path, get_request_id(request))
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error.",
                "path": str(request.url),
            },
        )
