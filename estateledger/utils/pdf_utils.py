from datetime import date
from pathlib import Path
from textwrap import wrap
from typing import Iterable, List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from ..config import settings
from ..services.ledger import total_charged, total_paid

MARGIN_X = 56
MARGIN_Y = 56
LINE_HEIGHT = 14
MAX_CHARS_PER_LINE = 95


def _output_path(filename: str) -> Path:
    base = Path(settings.pdf_output_dir)
    base.mkdir(parents=True, exist_ok=True)
    return base / filename


def _money(amount) -> str:
    return f"{settings.currency_label} {amount:,.2f}"


def _write_pdf(filename: str, lines: Iterable[str]) -> str:
    path = _output_path(filename)
    pdf_canvas = canvas.Canvas(str(path), pagesize=A4)
    width, height = A4
    text_stream = pdf_canvas.beginText(MARGIN_X, height - MARGIN_Y)
    text_stream.setFont("Courier", 9)

    for line in lines:
        normalized = "" if line is None else str(line)
        wrapped_lines = wrap(normalized, MAX_CHARS_PER_LINE) or [""]
        for chunk in wrapped_lines:
            if text_stream.getY() < MARGIN_Y:
                pdf_canvas.drawText(text_stream)
                pdf_canvas.showPage()
                text_stream = pdf_canvas.beginText(MARGIN_X, height - MARGIN_Y)
                text_stream.setFont("Courier", 9)
            text_stream.textLine(chunk)

    pdf_canvas.drawText(text_stream)
    pdf_canvas.showPage()
    pdf_canvas.save()
    return str(path)


def _ledger_lines(ledger) -> List[str]:
    lines = [f"{'Date':<12}{'Description':<45}{'Charge':>12}{'Payment':>12}{'Balance':>14}"]
    lines.append("-" * 95)
    for entry in ledger:
        lines.append(
            f"{entry.date.isoformat():<12}"
            f"{entry.description[:44]:<45}"
            f"{(f'{entry.charge:,.2f}' if entry.charge else ''):>12}"
            f"{(f'{entry.payment:,.2f}' if entry.payment else ''):>12}"
            f"{entry.balance:>14,.2f}"
        )
    return lines


def generate_owner_statement_pdf(quote, generated_on: Optional[date] = None) -> str:
    """Consolidated service charge statement for one owner."""
    owner = quote.owner
    today = (generated_on or date.today()).isoformat()
    unit_names = ", ".join(f"{unit.property_name} {unit.name}" for unit in quote.units) or "None"
    lines = [
        settings.company_name,
        "Service Charge Statement",
        "",
        f"Date: {today}",
        f"Owner: {owner.name}",
        f"Email: {owner.email or 'N/A'}",
        f"Units: {unit_names}",
        f"Statement as of: {quote.as_of.isoformat()}",
        "",
    ]
    lines.extend(_ledger_lines(quote.ledger))
    lines.append("")
    lines.append(f"Total charged: {_money(total_charged(quote.ledger))}")
    lines.append(f"Total paid: {_money(total_paid(quote.ledger))}")
    lines.append(f"Amount due: {_money(quote.total_due)}")
    if quote.pending_periods:
        lines.append("Unpaid months: " + ", ".join(period.short_label() for period in quote.pending_periods))
    lines.append("")
    lines.append("This statement was generated automatically from the payment ledger.")
    filename = f"statement_{owner.kind.value}_{owner.id}_{quote.as_of.isoformat()}.pdf"
    return _write_pdf(filename, lines)


def generate_vacant_arrears_pdf(account, as_of: date) -> str:
    lines = [
        settings.company_name,
        "Service Charge Arrears: Vacant Units",
        "",
        f"Owner: {account.owner_name}",
        f"As of: {as_of.isoformat()}",
        f"Total due: {_money(account.total_due)}",
        f"Months in arrears: {account.months_in_arrears}",
        "",
    ]
    for unit in account.units:
        lines.append(
            f"{unit.property_name} / {unit.unit_name} (handed over {unit.unit_handover_date or 'N/A'}): "
            f"{_money(unit.total_due)} over {unit.months_in_arrears} month(s)"
        )
        for month in unit.arrears_detail:
            if month.outstanding > 0:
                lines.append(f"    {month.month:<20}{_money(month.amount):>20}  outstanding {_money(month.outstanding)}")
        lines.append("")
    filename = f"arrears_{account.owner_kind}_{account.owner_id}_{as_of.isoformat()}.pdf"
    return _write_pdf(filename, lines)
