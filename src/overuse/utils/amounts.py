"""Locale-aware amount parsing for dashboard totals (e.g. "1.234,56 €")."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
CENTS = Decimal("0.01")

# Everything that is not part of a number: currency symbols, codes, spaces (incl. NBSP)
_NON_NUMERIC = re.compile(r"[^0-9.,\-]")


def _normalize_separators(s: str) -> str:
    """Turn a European/US formatted number string into a plain '1234.56' form."""
    has_comma = "," in s
    has_dot = "." in s
    if has_comma and has_dot:
        # Whichever separator comes last is the decimal separator
        if s.rfind(",") > s.rfind("."):
            return s.replace(".", "").replace(",", ".")
        return s.replace(",", "")
    if has_comma:
        if s.count(",") > 1:
            return s.replace(",", "")
        return s.replace(",", ".")
    if has_dot:
        if s.count(".") > 1:
            return s.replace(".", "")
        whole, _, frac = s.partition(".")
        # "1.234" is a thousands separator, "12.50" is a decimal point
        if len(frac) == 3 and whole.strip("-"):
            return whole + frac
    return s


def parse_amount(value: Any) -> Decimal:
    """
    Parse a money amount into a non-negative Decimal.

    Handles: currency symbols/codes, '.' thousands separator with ',' decimals
    ("1.234,56 €" -> 1234.56), plain decimals ("12.50"), ints, floats, Decimals.
    Unparsable or negative input yields Decimal("0"); never raises.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return ZERO
    else:
        s = _NON_NUMERIC.sub("", str(value))
        if not s or not any(ch.isdigit() for ch in s):
            return ZERO
        try:
            amount = Decimal(_normalize_separators(s))
        except InvalidOperation:
            return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def quantize_cents(value: Decimal) -> Decimal:
    """Round to cents (ROUND_HALF_UP)."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)
