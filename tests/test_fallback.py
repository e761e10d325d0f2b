"""Tests for the LLM-backed fallback selector (fake LLM, no network)."""

import asyncio

from src.overuse.llm.base import LLMClient
from src.clients.reconciliation.fallback import FallbackSelector, LLMFallbackSelector, format_candidates
from src.clients.reconciliation.periods import parse_period
from src.clients.reconciliation.schemas import Cohort

JUL_AUG = parse_period("Jul-Aug")


class ScriptedLLM(LLMClient):
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []
        self.kwargs = []

    def invoke(self, prompt: str, **kwargs):
        return str(self.answer)

    def invoke_structured(self, prompt: str, **kwargs):
        self.prompts.append(prompt)
        self.kwargs.append(kwargs)
        return self.answer


def _candidates(bill):
    return [
        bill("Electricity", "01/01/2024", "31/01/2024", "80,00"),
        bill("Water", "01/07/2024", "31/08/2024", "45,00"),
        bill("Electricity", "01/03/2024", "31/03/2024", "90,00"),
    ]


def test_selector_maps_indices_to_bills(bill):
    candidates = _candidates(bill)
    llm = ScriptedLLM({"electricity": [0, "2", 9], "water": 1, "explanation": "closest dates"})
    selector = LLMFallbackSelector(llm)
    selection = asyncio.run(selector.select(candidates, JUL_AUG, Cohort.EVEN))
    assert selection.electricity == [candidates[0], candidates[2]]
    assert selection.water == [candidates[1]]
    assert selection.explanation == "closest dates"
    assert "system" in llm.kwargs[0]


def test_selector_ignores_wrong_service_indices(bill, caplog):
    candidates = _candidates(bill)
    llm = ScriptedLLM({"electricity": [1], "water": [0], "explanation": "?"})
    selection = asyncio.run(LLMFallbackSelector(llm).select(candidates, JUL_AUG, Cohort.EVEN))
    assert selection is None
    assert "Water 2024-07-01..2024-08-31 45.00 as Electricity; ignored" in caplog.text


def test_selector_returns_none_without_json(bill):
    llm = ScriptedLLM({"raw": "I cannot decide"})
    assert asyncio.run(LLMFallbackSelector(llm).select(_candidates(bill), JUL_AUG, Cohort.EVEN)) is None


def test_selector_skips_llm_without_candidates():
    llm = ScriptedLLM({"electricity": [0]})
    assert asyncio.run(LLMFallbackSelector(llm).select([], JUL_AUG, Cohort.EVEN)) is None
    assert llm.prompts == []


def test_prompt_lists_period_cohort_and_indexed_candidates(bill):
    candidates = _candidates(bill)
    prompt = LLMFallbackSelector(ScriptedLLM({})).build_prompt(candidates, JUL_AUG, Cohort.EVEN)
    assert "Jul-Aug" in prompt
    assert "EVEN" in prompt
    assert "0 | Electricity | 2024-01-01 | 2024-01-31 | 1 | 80.00" in prompt
    assert "2 | Electricity" in prompt


def test_format_candidates_unknown_dates(bill):
    text = format_candidates([bill("Water", None, None, "5,00")])
    assert text == "0 | Water | ? | ? | ? | 5.00"


def test_llm_selector_satisfies_protocol():
    assert isinstance(LLMFallbackSelector(ScriptedLLM({})), FallbackSelector)
