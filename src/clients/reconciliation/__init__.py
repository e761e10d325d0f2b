"""Utility bill reconciliation: billing periods, coverage scoring, allowances and the engine."""

from .allowance import AllowancePolicy, lookup_allowance, property_cohort
from .coverage import candidate_months, score
from .engine import ReconciliationEngine
from .fallback import FallbackSelector, LLMFallbackSelector
from .periods import (
    PERIOD_LABELS,
    coverage_by_month,
    default_period,
    parse_period,
    resolve_billing_month,
    resolve_cohort,
    significant_months,
)
from .schemas import (
    BillRecord,
    Cohort,
    FallbackSelection,
    Period,
    Property,
    ReconciliationResult,
    ServiceType,
    classify_service,
)

__all__ = [
    "AllowancePolicy",
    "BillRecord",
    "Cohort",
    "FallbackSelection",
    "FallbackSelector",
    "LLMFallbackSelector",
    "PERIOD_LABELS",
    "Period",
    "Property",
    "ReconciliationEngine",
    "ReconciliationResult",
    "ServiceType",
    "candidate_months",
    "classify_service",
    "coverage_by_month",
    "default_period",
    "lookup_allowance",
    "parse_period",
    "property_cohort",
    "resolve_billing_month",
    "resolve_cohort",
    "score",
    "significant_months",
]
