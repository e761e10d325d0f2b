"""Fallback bill selection when the coverage rules pick no electricity bills."""

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

from src.overuse.llm.base import LLMClient
from src.overuse.utils.json_utils import coerce_int_list

from .periods import resolve_billing_month
from .schemas import BillRecord, Cohort, FallbackSelection, Period, ServiceType

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You reconcile utility bills for rental properties. Water is billed every two months and "
    "electricity monthly. Pick the bills that belong to the billing period under review."
)

SELECTION_PROMPT = """Billing period under review: {label} (months {first} and {second}).
Property cohort: {cohort} (water bills end in {cohort_parity} months).

Candidate bills (index | service | initial date | final date | billing month | total):
{candidates}

Choose up to two electricity bills (one per month of the period) and at most one water bill
ending in month {second}. Use only indices from the list above.

Return JSON: {{"electricity": [indices], "water": [indices], "explanation": "one short sentence"}}"""


@runtime_checkable
class FallbackSelector(Protocol):
    """Picks bills when the rules are not confident. Returning None means "no opinion"."""

    async def select(
        self,
        candidates: Sequence[BillRecord],
        period: Period,
        cohort: Cohort,
    ) -> Optional[FallbackSelection]:
        ...


def format_candidates(candidates: Sequence[BillRecord], cutoff_day: int = 9) -> str:
    lines = []
    for i, bill in enumerate(candidates):
        billing = resolve_billing_month(bill.final_date, cutoff_day) if bill.final_date else "?"
        lines.append(
            f"{i} | {bill.service.value} | "
            f"{bill.initial_date.isoformat() if bill.initial_date else '?'} | "
            f"{bill.final_date.isoformat() if bill.final_date else '?'} | "
            f"{billing} | {bill.total_amount}"
        )
    return "\n".join(lines)


class LLMFallbackSelector:
    """Asks an LLM to choose bills by index and validates its answer."""

    def __init__(self, llm: LLMClient, cutoff_day: int = 9, max_candidates: int = 40):
        self._llm = llm
        self.cutoff_day = cutoff_day
        self.max_candidates = max_candidates

    def build_prompt(self, candidates: Sequence[BillRecord], period: Period, cohort: Cohort) -> str:
        return SELECTION_PROMPT.format(
            label=period.label,
            first=period.first_month,
            second=period.second_month,
            cohort=cohort.value,
            cohort_parity="even" if cohort == Cohort.EVEN else "odd",
            candidates=format_candidates(candidates, self.cutoff_day) or "(none)",
        )

    async def select(
        self,
        candidates: Sequence[BillRecord],
        period: Period,
        cohort: Cohort,
    ) -> Optional[FallbackSelection]:
        candidates = list(candidates)[: self.max_candidates]
        if not candidates:
            return None
        prompt = self.build_prompt(candidates, period, cohort)
        data = await self._llm.ainvoke_structured(prompt, system=SYSTEM_PROMPT)
        if not isinstance(data, dict) or ("raw" in data and len(data) == 1):
            logger.warning("Fallback selector returned no JSON object")
            return None

        electricity = self._pick(candidates, data.get("electricity"), ServiceType.ELECTRICITY)[:2]
        water = self._pick(candidates, data.get("water"), ServiceType.WATER)[:1]
        selection = FallbackSelection(
            electricity=electricity,
            water=water,
            explanation=str(data.get("explanation") or "").strip(),
        )
        if selection.is_empty:
            return None
        logger.debug(
            "Fallback selection: %s",
            [b.describe() for b in selection.electricity + selection.water],
        )
        return selection

    @staticmethod
    def _pick(candidates: list[BillRecord], raw_indices, service: ServiceType) -> list[BillRecord]:
        picked: list[BillRecord] = []
        for idx in coerce_int_list(raw_indices):
            if not 0 <= idx < len(candidates):
                logger.warning("Fallback selector returned out-of-range index %s", idx)
                continue
            bill = candidates[idx]
            if bill.service != service:
                logger.warning("Fallback selector picked %s as %s; ignored", bill.describe(), service.value)
                continue
            if bill not in picked:
                picked.append(bill)
        return picked
