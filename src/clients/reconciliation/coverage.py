"""Coverage scoring: how well a bill's months line up with the months under review."""

from typing import Optional, Sequence

from .periods import coverage_by_month, dominant_month, resolve_billing_month, significant_months
from .schemas import BillRecord

EXACT_MATCH_SCORE = 100.0
OVERLAP_WEIGHT = 80.0
ADJACENCY_BONUS = 15.0
EXTRA_MONTHS_PENALTY = 20.0


def _adjacent(a: int, b: int) -> bool:
    # December and January are neighbours
    return (a % 12) + 1 == b or (b % 12) + 1 == a


def score(candidate_months: Sequence[int], target_months: Sequence[int]) -> float:
    """Score in [0, 100]; an exact ordered match is 100."""
    candidate = list(candidate_months)
    target = list(target_months)
    if candidate == target:
        return EXACT_MATCH_SCORE
    denominator = max(len(candidate), len(target))
    if denominator == 0:
        return 0.0
    overlap = len(set(candidate) & set(target))
    value = overlap / denominator * OVERLAP_WEIGHT
    if any(_adjacent(c, t) for c in candidate for t in target):
        value += ADJACENCY_BONUS
    if len(set(candidate) - set(target)) > 1:
        value -= EXTRA_MONTHS_PENALTY
    return max(0.0, min(EXACT_MATCH_SCORE, value))


def candidate_months(record: BillRecord, cutoff_day: int = 9, min_days: int = 15) -> list[int]:
    """Months a bill stands for.

    Months its span covers for at least `min_days` days; for short bills the
    month with the most days; without a usable span, its billing month.
    """
    if record.initial_date and record.final_date:
        coverage = coverage_by_month(record.initial_date, record.final_date)
        months = significant_months(coverage, min_days)
        if months:
            return months
        top: Optional[int] = dominant_month(coverage)
        if top is not None:
            return [top]
    if record.final_date:
        return [resolve_billing_month(record.final_date, cutoff_day)]
    return []
