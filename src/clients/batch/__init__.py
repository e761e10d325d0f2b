"""Batch client: run overuse reconciliation over a property list (API, CLI)."""

from .controller import BatchRunController
from .router import router
from .runs import RunContext, RunRegistry
from .schemas import PropertyOutcome, RunRequest, RunStatus, RunSummary

__all__ = [
    "router",
    "BatchRunController",
    "RunContext",
    "RunRegistry",
    "PropertyOutcome",
    "RunRequest",
    "RunStatus",
    "RunSummary",
]
