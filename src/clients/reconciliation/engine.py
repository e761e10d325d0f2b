"""Reconciliation engine: pick the water and electricity bills of a period and compute the overuse.

Water is chosen first (it is billed every two months and anchors the cycle),
then electricity bills are ranked by how well their months match the months
the water bill covers. When no electricity bill qualifies, an optional
fallback selector gets the whole candidate list.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from src.overuse.utils.amounts import ZERO, parse_amount, quantize_cents

from .allowance import AllowancePolicy, lookup_allowance, property_cohort
from .coverage import candidate_months, score
from .fallback import FallbackSelector
from .periods import coverage_by_month, resolve_billing_month, resolve_cohort, significant_months
from .schemas import BillRecord, Cohort, Period, Property, ReconciliationResult, ServiceType

logger = logging.getLogger(__name__)

WATER_MISSING = "Water bill missing"
FALLBACK_UNAVAILABLE = "Fallback selector unavailable"
FALLBACK_PREFIX = "LLM-assisted selection: "
EXPECTED_ELECTRICITY = 2
EXPECTED_WATER = 1


@dataclass
class _Candidate:
    index: int
    record: BillRecord
    billing_month: int
    score: float = 0.0


def _chronological(records: Sequence[BillRecord]) -> list[BillRecord]:
    return sorted(records, key=lambda r: (r.final_date or r.initial_date or date.min, r.initial_date or date.min))


class ReconciliationEngine:
    """Turns a property's extracted bills into a ReconciliationResult. Never raises on bad data."""

    def __init__(
        self,
        fallback: Optional[FallbackSelector] = None,
        allowance_policy: Optional[AllowancePolicy] = None,
        cutoff_day: int = 9,
        min_coverage_days: int = 15,
    ):
        self.fallback = fallback
        self.allowance_policy = allowance_policy
        self.cutoff_day = cutoff_day
        self.min_coverage_days = min_coverage_days

    async def reconcile(
        self,
        records: Sequence[BillRecord],
        period: Period,
        prop: Property,
    ) -> ReconciliationResult:
        warnings: list[str] = []
        relevant = [r for r in records if r.service in (ServiceType.ELECTRICITY, ServiceType.WATER)]
        if not records:
            warnings.append("No bills extracted")
        elif not relevant:
            warnings.append("No electricity or water bills found")

        candidates: list[_Candidate] = []
        for i, record in enumerate(relevant):
            if record.final_date is None:
                warnings.append(f"Skipped {record.service.value} bill without a final date")
                continue
            candidates.append(_Candidate(i, record, resolve_billing_month(record.final_date, self.cutoff_day)))

        water = self._select_water(candidates, period)
        if water is None:
            warnings.append(WATER_MISSING)
            target_months = period.months
        else:
            start = water.initial_date or water.final_date
            coverage = coverage_by_month(start, water.final_date)
            target_months = significant_months(coverage, self.min_coverage_days) or period.months

        electricity = self._select_electricity(candidates, target_months)
        selected_water = [water] if water is not None else []

        cohort = resolve_cohort(period)
        warnings.extend(self._validate(electricity, selected_water, prop, period, cohort))

        used_fallback = False
        explanation: Optional[str] = None
        if not electricity:
            used_fallback = True
            selection = await self._run_fallback(relevant, period, cohort, prop)
            if selection is not None and not selection.is_empty:
                electricity = _chronological(selection.electricity)
                selected_water = list(selection.water[:1])
                explanation = selection.explanation
                warnings = [f"{FALLBACK_PREFIX}{explanation}"]
            else:
                warnings.append(FALLBACK_UNAVAILABLE)

        electricity_cost = quantize_cents(sum((parse_amount(r.total_amount) for r in electricity), ZERO))
        water_cost = quantize_cents(sum((parse_amount(r.total_amount) for r in selected_water), ZERO))
        total_cost = electricity_cost + water_cost
        allowance = lookup_allowance(prop, self.allowance_policy)
        overuse = quantize_cents(max(ZERO, total_cost - 2 * Decimal(allowance)))

        return ReconciliationResult(
            selected_electricity=electricity,
            selected_water=selected_water,
            warnings=warnings,
            used_fallback=used_fallback,
            fallback_explanation=explanation,
            electricity_cost=electricity_cost,
            water_cost=water_cost,
            total_cost=total_cost,
            allowance=quantize_cents(Decimal(allowance)),
            overuse_amount=overuse,
        )

    def _select_water(self, candidates: list[_Candidate], period: Period) -> Optional[BillRecord]:
        """Latest (in extraction order) water bill whose billing month is the period's second month."""
        matching = [
            c for c in candidates
            if c.record.service == ServiceType.WATER and c.billing_month == period.second_month
        ]
        return matching[-1].record if matching else None

    def _select_electricity(self, candidates: list[_Candidate], target_months: list[int]) -> list[BillRecord]:
        seen = set()
        scored: list[_Candidate] = []
        for c in candidates:
            if c.record.service != ServiceType.ELECTRICITY or c.record.identity in seen:
                continue
            seen.add(c.record.identity)
            months = candidate_months(c.record, self.cutoff_day, self.min_coverage_days)
            c.score = score(months, target_months)
            if c.score > 0:
                scored.append(c)
        scored.sort(key=lambda c: (-c.score, c.index))
        top = scored[:EXPECTED_ELECTRICITY]
        logger.debug("Electricity scores against %s: %s", target_months, [(c.index, c.score) for c in scored])
        return _chronological([c.record for c in top])

    def _validate(
        self,
        electricity: list[BillRecord],
        water: list[BillRecord],
        prop: Property,
        period: Period,
        cohort: Cohort,
    ) -> list[str]:
        warnings = []
        if len(electricity) != EXPECTED_ELECTRICITY:
            warnings.append(f"Expected {EXPECTED_ELECTRICITY} electricity bills, found {len(electricity)}")
        if len(water) != EXPECTED_WATER:
            warnings.append(f"Expected {EXPECTED_WATER} water bill, found {len(water)}")
        expected = property_cohort(prop.name)
        if expected is not None and expected != cohort:
            warnings.append(
                f"Cohort mismatch: {prop.name} is {expected.value} but {period.label} is an {cohort.value} period"
            )
        return warnings

    async def _run_fallback(self, relevant: list[BillRecord], period: Period, cohort: Cohort, prop: Property):
        if self.fallback is None:
            return None
        try:
            return await self.fallback.select(relevant, period, cohort)
        except Exception as e:
            logger.warning("Fallback selector failed for %s: %s", prop.name, e)
            return None
