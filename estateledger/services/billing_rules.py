import logging
from typing import Optional

from ..config import settings
from ..core.errors import UnresolvableBillingStart
from .periods import YearMonth, parse_date, parse_year_month
from .snapshot import LeaseSnapshot, UnitSnapshot

logger = logging.getLogger(__name__)


def month_after_grace_period(effective_date, grace_period_day: Optional[int] = None) -> YearMonth:
    """First billable month for a handover/lease start falling on ``effective_date``."""
    cutoff_day = settings.grace_period_day if grace_period_day is None else grace_period_day
    month = YearMonth.from_date(effective_date)
    if effective_date.day <= cutoff_day:
        return month
    return month.next()


def resolve_billing_start(
    unit: UnitSnapshot,
    lease: Optional[LeaseSnapshot] = None,
    grace_period_day: Optional[int] = None,
) -> YearMonth:
    """Strict resolver; raises :class:`UnresolvableBillingStart` with the reason."""
    raw_period = (lease.last_billed_period or "").strip() if lease else ""
    if raw_period:
        last_billed = parse_year_month(raw_period)
        if last_billed is not None:
            return last_billed.next()
        logger.warning(
            "Ignoring malformed last billed period %r for unit %s/%s",
            raw_period,
            unit.property_id,
            unit.name,
        )

    if not unit.is_handed_over:
        raise UnresolvableBillingStart(f"Unit {unit.name} has not been handed over")

    raw_effective = unit.handover_date
    if raw_effective in (None, "") and lease is not None:
        raw_effective = lease.start_date
    if raw_effective in (None, ""):
        raise UnresolvableBillingStart(f"Unit {unit.name} has no handover or lease start date")

    effective_date = parse_date(raw_effective)
    if effective_date is None:
        raise UnresolvableBillingStart(f"Unit {unit.name} has an unreadable billing date {raw_effective!r}")
    return month_after_grace_period(effective_date, grace_period_day)


def first_billable_month(
    unit: UnitSnapshot,
    lease: Optional[LeaseSnapshot] = None,
    grace_period_day: Optional[int] = None,
) -> Optional[YearMonth]:
    try:
        return resolve_billing_start(unit, lease, grace_period_day)
    except UnresolvableBillingStart as exc:
        logger.debug("Unit %s/%s is not billable: %s", unit.property_id, unit.name, exc.detail)
        return None


def first_lease_month(lease: Optional[LeaseSnapshot], grace_period_day: Optional[int] = None) -> Optional[YearMonth]:
    """Rent billing for tenants whose unit carries no handover record starts from the lease."""
    if lease is None:
        return None
    last_billed = parse_year_month(lease.last_billed_period)
    if last_billed is not None:
        return last_billed.next()
    start = parse_date(lease.start_date)
    if start is None:
        return None
    return month_after_grace_period(start, grace_period_day)
