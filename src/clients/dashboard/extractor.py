"""Bill extraction from the billing dashboard's accounting table."""

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

from playwright.async_api import TimeoutError as PlaywrightTimeout

from src.overuse.config import OveruseSettings
from src.overuse.exceptions import ExtractionError
from src.clients.reconciliation.schemas import BillRecord, Property

from .records import records_from_tables

logger = logging.getLogger(__name__)

SEARCH_SELECTOR = 'input[placeholder*="search"], input[placeholder*="Search"]'
TABLE_SELECTOR = 'table, .table, [role="table"]'

# Returns every table on the page as {headers, rows}; the first row is the header row
TABLE_SCRIPT = """
(selector) => {
  const out = [];
  for (const table of document.querySelectorAll(selector)) {
    const rows = Array.from(table.querySelectorAll('tr'));
    if (rows.length === 0) continue;
    const headers = Array.from(rows[0].querySelectorAll('th, td')).map(c => c.textContent.trim());
    const body = rows.slice(1).map(r => Array.from(r.querySelectorAll('td, th')).map(c => c.textContent.trim()));
    out.push({ headers, rows: body });
  }
  return out;
}
"""


@runtime_checkable
class BillExtractor(Protocol):
    """Reads a property's raw bills through an open session. Empty list means a confirmed-empty table."""

    async def fetch_raw_bills(self, session: Any, prop: Property) -> list[BillRecord]:
        ...


class PlaywrightBillExtractor:
    """Searches the accounting page for a property and reads the invoice table."""

    def __init__(self, settings: OveruseSettings, settle_seconds: float = 8.0, table_timeout_ms: int = 60_000):
        self.settings = settings
        self.settle_seconds = settle_seconds
        self.table_timeout_ms = table_timeout_ms

    async def fetch_raw_bills(self, session: Any, prop: Property) -> list[BillRecord]:
        page = session.page
        await page.goto(self.settings.accounting_url, wait_until="domcontentloaded")
        await asyncio.sleep(self.settle_seconds)

        search = page.locator(SEARCH_SELECTOR).first
        if await search.count() > 0:
            await search.fill(prop.name)
            await page.keyboard.press("Enter")
            await asyncio.sleep(self.settle_seconds)
        else:
            logger.warning("No search box on accounting page; reading unfiltered table for %s", prop.name)

        try:
            await page.wait_for_selector(TABLE_SELECTOR, timeout=self.table_timeout_ms)
        except PlaywrightTimeout as e:
            raise ExtractionError(prop.name, f"Invoice table did not load for '{prop.name}'") from e

        tables = await page.evaluate(TABLE_SCRIPT, TABLE_SELECTOR)
        records = records_from_tables(tables)
        logger.info("Extracted %s bill rows for %s", len(records), prop.name)
        return records
