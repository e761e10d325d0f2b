"""Billing periods: cycle labels, billing month of a bill, cohorts and day coverage."""

from collections import Counter
from datetime import date, timedelta
from typing import Optional

from .schemas import MONTH_ABBR, Cohort, Period

PERIOD_LABELS = tuple(f"{MONTH_ABBR[m - 1]}-{MONTH_ABBR[m % 12]}" for m in range(1, 13))


def parse_period(label: str) -> Period:
    """Build a Period from a label like "Jul-Aug" (case-insensitive). Unknown labels raise ValueError."""
    wanted = (label or "").strip().lower()
    for first, known in enumerate(PERIOD_LABELS, start=1):
        if known.lower() == wanted:
            return Period(first_month=first, second_month=first % 12 + 1)
    raise ValueError(f"Unknown period label: {label!r}. Expected one of: {', '.join(PERIOD_LABELS)}")


def default_period(today: Optional[date] = None) -> Period:
    """The two most recent calendar months: previous month and current month."""
    today = today or date.today()
    previous = 12 if today.month == 1 else today.month - 1
    return Period(first_month=previous, second_month=today.month)


def resolve_billing_month(end_date: date, cutoff_day: int = 9) -> int:
    """Month a bill belongs to: bills ending on or before `cutoff_day` count for the previous month."""
    if end_date.day <= cutoff_day:
        return 12 if end_date.month == 1 else end_date.month - 1
    return end_date.month


def resolve_cohort(period: Period) -> Cohort:
    return Cohort.EVEN if period.second_month % 2 == 0 else Cohort.ODD


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def coverage_by_month(start: date, end: date) -> dict[str, int]:
    """Days of the inclusive span [start, end] per "YYYY-MM" key, in chronological order."""
    if end < start:
        return {}
    counts: Counter = Counter()
    day = start
    while day <= end:
        counts[month_key(day)] += 1
        day += timedelta(days=1)
    return dict(sorted(counts.items()))


def significant_months(coverage: dict[str, int], min_days: int = 15) -> list[int]:
    """Months covered by at least `min_days` days, chronologically ordered."""
    return [int(key[5:7]) for key, days in sorted(coverage.items()) if days >= min_days]


def dominant_month(coverage: dict[str, int]) -> Optional[int]:
    """Month with the most covered days (earliest wins a tie)."""
    if not coverage:
        return None
    key = max(sorted(coverage), key=lambda k: coverage[k])
    return int(key[5:7])
