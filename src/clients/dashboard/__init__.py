"""Billing dashboard: bill extraction behind the BillExtractor interface."""

from .extractor import BillExtractor, PlaywrightBillExtractor
from .records import WANTED_COLUMNS, records_from_rows, records_from_tables, rows_from_table

__all__ = [
    "BillExtractor",
    "PlaywrightBillExtractor",
    "WANTED_COLUMNS",
    "records_from_rows",
    "records_from_tables",
    "rows_from_table",
]
