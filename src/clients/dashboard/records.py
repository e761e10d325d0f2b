"""Raw dashboard table rows -> typed BillRecords."""

from typing import Any, Iterable, Sequence

from src.clients.reconciliation.schemas import BillRecord

# Accounting table columns we keep; everything else is dropped at the boundary
WANTED_COLUMNS = ("Asset", "Service", "Initial date", "Final date", "Subtotal", "Taxes", "Total")


def rows_from_table(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> list[dict[str, str]]:
    """Zip each row's cells with the header row, keeping only the wanted columns.

    Rows without any wanted cell (spacers, totals rows) are skipped.
    """
    header_names = [str(h or "").strip() for h in headers]
    out: list[dict[str, str]] = []
    for cells in rows:
        row: dict[str, str] = {}
        for name, cell in zip(header_names, cells):
            if name in WANTED_COLUMNS:
                row[name] = str(cell or "").strip()
        if row:
            out.append(row)
    return out


def records_from_rows(rows: Iterable[dict[str, Any]]) -> list[BillRecord]:
    """Type every raw row, preserving extraction order."""
    return [BillRecord.from_raw_row(row) for row in rows]


def records_from_tables(tables: Iterable[dict[str, Any]]) -> list[BillRecord]:
    """Tables as returned by the page script: [{"headers": [...], "rows": [[...], ...]}, ...]."""
    records: list[BillRecord] = []
    for table in tables or []:
        headers = table.get("headers") or []
        rows = table.get("rows") or []
        records.extend(records_from_rows(rows_from_table(headers, rows)))
    return records
