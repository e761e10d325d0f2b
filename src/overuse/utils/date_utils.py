"""Shared date parsing for dashboard cells (DD/MM/YYYY first, European order)."""

import re
from datetime import date
from typing import Any

# Month name to number for parsing "15 ago 2024", "Jan 15 2024" etc. (English + Spanish)
MONTH_NAMES = {
    "jan": 1, "january": 1, "ene": 1, "enero": 1,
    "feb": 2, "february": 2, "febrero": 2,
    "mar": 3, "march": 3, "marzo": 3,
    "apr": 4, "april": 4, "abr": 4, "abril": 4,
    "may": 5, "mayo": 5,
    "jun": 6, "june": 6, "junio": 6,
    "jul": 7, "july": 7, "julio": 7,
    "aug": 8, "august": 8, "ago": 8, "agosto": 8,
    "sep": 9, "sept": 9, "september": 9, "septiembre": 9,
    "oct": 10, "october": 10, "octubre": 10,
    "nov": 11, "november": 11, "noviembre": 11,
    "dec": 12, "december": 12, "dic": 12, "diciembre": 12,
}


def _month_from_name(name: str) -> int | None:
    name = name.lower().strip(".")
    if name in MONTH_NAMES:
        return MONTH_NAMES[name]
    return MONTH_NAMES.get(name[:3])


def _safe_date(y: int, m: int, d: int) -> date | None:
    if y < 100:
        y += 2000
    try:
        return date(y, m, d)
    except ValueError:
        return None


def parse_date(value: Any) -> date | None:
    """
    Parse a dashboard date cell into a date; return None if unparseable.

    Handles: DD/MM/YYYY, DD-MM-YYYY, DD.MM.YYYY, DD/MM/YY, YYYY-MM-DD,
    "15 Aug 2024", "Aug 15 2024". Day-first wins for numeric forms.
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value
    s = re.sub(r"\s+", " ", str(value)).strip()
    if not s or s.lower() in ("null", "none", "n/a", "-"):
        return None
    m = re.match(r"^(\d{4})-(\d{1,2})-(\d{1,2})", s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    m = re.match(r"^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{2,4})$", s)
    if m:
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    m = re.match(r"^(\d{1,2})\s+([a-zA-Z.]+)\s+(\d{4})$", s)
    if m:
        mo = _month_from_name(m.group(2))
        if mo:
            return _safe_date(int(m.group(3)), mo, int(m.group(1)))
    m = re.match(r"^([a-zA-Z.]+)\s+(\d{1,2}),?\s+(\d{4})$", s)
    if m:
        mo = _month_from_name(m.group(1))
        if mo:
            return _safe_date(int(m.group(3)), mo, int(m.group(2)))
    return None

