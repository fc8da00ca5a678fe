import csv
from io import StringIO
from typing import Iterable, List, Sequence


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def ledger_to_csv(ledger_entries: List) -> str:
    headers = ["date", "entry_type", "description", "charge", "payment", "balance"]
    rows = []
    for entry in ledger_entries:
        rows.append(
            [
                entry.date.isoformat(),
                entry.entry_type,
                entry.description or "",
                f"{entry.charge:.2f}" if entry.charge else "",
                f"{entry.payment:.2f}" if entry.payment else "",
                f"{entry.balance:.2f}",
            ]
        )
    return rows_to_csv(headers, rows)
