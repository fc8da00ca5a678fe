from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.errors import InvalidChargeAmount
from .periods import YearMonth

CENT = Decimal("0.01")


def to_money(amount: Any) -> Decimal:
    if isinstance(amount, Decimal):
        value = amount
    else:
        value = Decimal(str(amount or 0))
    return value.quantize(CENT)


@dataclass(frozen=True)
class ChargeEvent:
    date: date
    period: YearMonth
    amount: Decimal
    description: str
    unit_names: Tuple[str, ...] = ()
    property_id: Optional[int] = None


def validated_charge_amount(amount: Any) -> Decimal:
    value = to_money(amount)
    if value <= 0:
        raise InvalidChargeAmount()
    return value


def generate_charge_schedule(
    first_month: Optional[YearMonth],
    monthly_amount: Any,
    as_of: date,
    description: str = "Monthly charge",
    unit_name: Optional[str] = None,
    property_id: Optional[int] = None,
) -> List[ChargeEvent]:
    """One charge per month from ``first_month`` through the month containing ``as_of``."""
    if first_month is None:
        return []
    try:
        amount = validated_charge_amount(monthly_amount)
    except InvalidChargeAmount:
        return []

    unit_names = (unit_name,) if unit_name else ()
    events: List[ChargeEvent] = []
    loop_month = first_month
    while loop_month.first_day() <= as_of:
        events.append(
            ChargeEvent(
                date=loop_month.first_day(),
                period=loop_month,
                amount=amount,
                description=f"{description} for {loop_month.short_label()}",
                unit_names=unit_names,
                property_id=property_id,
            )
        )
        loop_month = loop_month.next()
    return events


def consolidate_monthly_charges(events: Iterable[ChargeEvent], prefix: str = "S.Charge for Units") -> List[ChargeEvent]:
    """Collapse per-unit charges into one charge per month listing every unit billed."""
    by_month: Dict[YearMonth, Tuple[Decimal, List[str]]] = {}
    for event in events:
        total, names = by_month.get(event.period, (Decimal("0.00"), []))
        for name in event.unit_names:
            if name not in names:
                names.append(name)
        by_month[event.period] = (total + event.amount, names)

    consolidated: List[ChargeEvent] = []
    for period, (total, names) in sorted(by_month.items()):
        unit_list = ", ".join(sorted(names))
        consolidated.append(
            ChargeEvent(
                date=period.first_day(),
                period=period,
                amount=total,
                description=f"{prefix}: {unit_list}" if unit_list else prefix,
                unit_names=tuple(sorted(names)),
            )
        )
    return consolidated
