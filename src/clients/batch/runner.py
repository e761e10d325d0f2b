"""
Batch runner: compute utility overuse for a property list from the backend (CLI).
Uses the same controller, session pool and reconciliation engine as POST /overuse/runs.

Usage:
  python -m src.clients.batch.runner --properties props.json --period Jul-Aug
  python -m src.clients.batch.runner --properties props.json --limit 5 --output results.json
  python -m src.clients.batch.runner --properties props.json --log-level DEBUG

props.json is a list of {"name": ..., "rooms": ..., "unitCode": ...} objects.
Exit codes: 0 success, 1 usage/validation, 2 partial failure, 3 total failure.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

# Ensure project root on path when run as __main__
if __name__ == "__main__":
    _root = Path(__file__).resolve().parents[3]
    if str(_root) not in sys.path:
        sys.path.insert(0, str(_root))

from pydantic import ValidationError

from src.overuse.api.deps import build_llm
from src.overuse.config import OveruseSettings, get_settings
from src.overuse.exceptions import ConfigurationError
from src.overuse.observability.logging_setup import setup_logging
from src.overuse.sessions.orchestrator import SessionOrchestrator
from src.clients.dashboard.extractor import PlaywrightBillExtractor
from src.clients.reconciliation.engine import ReconciliationEngine
from src.clients.reconciliation.fallback import LLMFallbackSelector
from src.clients.reconciliation.periods import default_period, parse_period
from src.clients.reconciliation.schemas import Period, Property

from .controller import BatchRunController
from .schemas import RunStatus, RunSummary


class ExitCode:
    SUCCESS = 0
    USAGE_OR_VALIDATION = 1
    PARTIAL_FAILURE = 2
    TOTAL_FAILURE = 3


def load_properties(path: Path) -> list[Property]:
    """Load the property list from a JSON file (a list, or {"properties": [...]})."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Properties file not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("properties", [])
    if not isinstance(data, list) or not data:
        raise ValueError(f"No properties in {path}")
    return [Property.model_validate(item) for item in data]


def build_controller(settings: OveruseSettings) -> BatchRunController:
    """Wire the controller from settings (no FastAPI)."""
    llm = build_llm(settings)
    fallback = LLMFallbackSelector(llm, cutoff_day=settings.BILLING_CUTOFF_DAY) if llm else None
    engine = ReconciliationEngine(
        fallback=fallback,
        cutoff_day=settings.BILLING_CUTOFF_DAY,
        min_coverage_days=settings.COVERAGE_MIN_DAYS,
    )
    return BatchRunController.from_settings(
        settings,
        SessionOrchestrator.from_settings(settings),
        PlaywrightBillExtractor(settings),
        engine,
    )


def run(
    properties: list[Property],
    period: Period,
    limit: Optional[int] = None,
    controller: Optional[BatchRunController] = None,
) -> RunSummary:
    settings = get_settings()
    settings.require_dashboard_access()
    controller = controller or build_controller(settings)
    return asyncio.run(controller.run(properties, period, limit=limit))


def exit_code_for(summary: RunSummary) -> int:
    if summary.status == RunStatus.FAILED:
        return ExitCode.TOTAL_FAILURE
    if summary.processed and summary.succeeded == 0:
        return ExitCode.TOTAL_FAILURE
    if summary.failed or summary.status == RunStatus.STOPPED_EARLY:
        return ExitCode.PARTIAL_FAILURE
    return ExitCode.SUCCESS


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Compute utility overuse for a list of properties.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--properties", "-p", required=True, type=Path, help="Path to properties JSON.")
    parser.add_argument("--period", help="Period label, e.g. Jul-Aug (default: previous + current month).")
    parser.add_argument("--limit", "-n", type=int, help="Process at most N properties.")
    parser.add_argument("--output", "-o", type=Path, help="Write the run summary JSON to this file; default stdout.")
    parser.add_argument("--log-level", default=None, help="DEBUG | INFO | WARNING | ERROR (default: LOG_LEVEL).")
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level or get_settings().LOG_LEVEL)
    try:
        period = parse_period(args.period) if args.period else default_period()
        properties = load_properties(args.properties)
        summary = run(properties, period, limit=args.limit)
    except (ValueError, FileNotFoundError, ValidationError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.USAGE_OR_VALIDATION

    payload = summary.model_dump_json(indent=2)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"Wrote {args.output}", file=sys.stderr)
    else:
        print(payload)
    return exit_code_for(summary)


if __name__ == "__main__":
    sys.exit(main())
