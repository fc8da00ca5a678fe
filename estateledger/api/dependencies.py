from datetime import date
from typing import Generator, Optional

from fastapi import Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..config import SessionLocal
from ..core.request_context import actor_from_request
from ..services.periods import YearMonth
from ..services.store import SqlAlchemyBillingStore


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor(request: Request) -> Optional[str]:
    return actor_from_request(request)


def get_store(db: Session = Depends(get_db), actor: Optional[str] = Depends(get_actor)) -> SqlAlchemyBillingStore:
    return SqlAlchemyBillingStore(db, actor=actor)


def get_as_of(as_of: Optional[date] = Query(default=None, description="Ledger cutoff date, defaults to today")) -> date:
    return as_of or date.today()


def get_reference_month(
    month: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}$", description="Reference month as YYYY-MM"),
    as_of: date = Depends(get_as_of),
) -> YearMonth:
    if month:
        try:
            return YearMonth.parse(month)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    return YearMonth.from_date(as_of)
