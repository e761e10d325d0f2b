"""Batch run controller: drive a property list through sessions, extraction and reconciliation.

Properties are processed in input order, in sub-batches that each reuse one
logged-in session. Cancellation is checked before each sub-batch and before
each property, never in the middle of one.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional

from src.overuse.config import OveruseSettings
from src.overuse.exceptions import ConfigurationError, ExtractionError
from src.overuse.observability.events import EventEmitter, LoggingObserver, LogLevel, RunEvent, RunEventType, RunObserver
from src.overuse.sessions.orchestrator import SessionOrchestrator
from src.overuse.sessions.types import SessionSlot
from src.overuse.utils.retry_utils import BackoffStrategy, with_retry
from src.clients.dashboard.extractor import BillExtractor
from src.clients.reconciliation.engine import ReconciliationEngine
from src.clients.reconciliation.schemas import BillRecord, Period, Property, ReconciliationResult

from .runs import RunContext
from .schemas import LogLine, PropertyOutcome, RunStatus, RunSummary

logger = logging.getLogger(__name__)


class BatchRunController:
    """Runs reconciliation for many properties with bounded sessions, pacing and cooperative cancellation."""

    def __init__(
        self,
        orchestrator: SessionOrchestrator,
        extractor: BillExtractor,
        engine: ReconciliationEngine,
        *,
        batch_size: int = 15,
        inter_item_delay: float = 25.0,
        batch_cooldown: float = 60.0,
        extraction_attempts: int = 2,
        extraction_backoff: float = 0.8,
        retry_on_zero_cost: bool = True,
        limit: int = 0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self.extractor = extractor
        self.engine = engine
        self.batch_size = max(1, batch_size)
        self.inter_item_delay = inter_item_delay
        self.batch_cooldown = batch_cooldown
        self.extraction_attempts = max(1, extraction_attempts)
        self.extraction_backoff = extraction_backoff
        self.retry_on_zero_cost = retry_on_zero_cost
        self.limit = limit
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: OveruseSettings,
        orchestrator: SessionOrchestrator,
        extractor: BillExtractor,
        engine: ReconciliationEngine,
    ) -> "BatchRunController":
        return cls(
            orchestrator,
            extractor,
            engine,
            batch_size=settings.BATCH_SIZE,
            inter_item_delay=settings.INTER_ITEM_DELAY_SECONDS,
            batch_cooldown=settings.BATCH_COOLDOWN_SECONDS,
            extraction_attempts=settings.EXTRACTION_ATTEMPTS,
            extraction_backoff=settings.EXTRACTION_BACKOFF_SECONDS,
            retry_on_zero_cost=settings.RETRY_ON_ZERO_COST,
            limit=settings.TEMP_LIMIT,
        )

    async def run(
        self,
        properties: Iterable[Property],
        period: Period,
        run_id: Optional[str] = None,
        *,
        context: Optional[RunContext] = None,
        emitter: Optional[EventEmitter] = None,
        limit: Optional[int] = None,
    ) -> RunSummary:
        """Process every property (up to `limit`) and return a summary. Never raises."""
        context = context or RunContext(run_id)
        if emitter is None:
            emitter = EventEmitter(run_id=context.run_id)
            emitter.subscribe(LoggingObserver())
        lines: list[LogLine] = []
        collector = _LineCollector(lines)
        emitter.subscribe(collector)

        items = list(properties)
        cap = limit if limit is not None else self.limit
        if cap and cap > 0:
            items = items[:cap]
        summary = RunSummary(run_id=context.run_id, period=period.label, total=len(items))
        outcomes: list[PropertyOutcome] = []
        stopped = False

        try:
            emitter.log(f"Starting run {context.run_id}: {len(items)} properties for {period.label}")
            emitter.progress(0)
            batches = [items[i:i + self.batch_size] for i in range(0, len(items), self.batch_size)]
            for b, batch in enumerate(batches, start=1):
                if context.cancelled:
                    stopped = True
                    break
                emitter.log(f"Batch {b}/{len(batches)}: {len(batch)} properties")
                stopped = await self._run_batch(batch, period, context, emitter, outcomes, len(items))
                if stopped:
                    break
                if b < len(batches):
                    emitter.log(f"Batch {b} done; cooling down for {self.batch_cooldown:.0f}s")
                    await self._sleep(self.batch_cooldown)
            summary.status = RunStatus.STOPPED_EARLY if stopped else RunStatus.COMPLETED
        except ConfigurationError as e:
            summary.status = RunStatus.FAILED
            summary.error = str(e)
            emitter.log(f"Configuration error, aborting run: {e}", LogLevel.ERROR)
        except Exception as e:
            logger.exception("Run %s failed", context.run_id)
            summary.status = RunStatus.FAILED
            summary.error = f"{type(e).__name__}: {e}"
            emitter.log(f"Run failed: {e}", LogLevel.ERROR)

        summary.outcomes = outcomes
        summary.processed = len(outcomes)
        summary.succeeded = sum(1 for o in outcomes if o.success)
        summary.failed = summary.processed - summary.succeeded
        summary.finished_at = datetime.now()
        if summary.status == RunStatus.STOPPED_EARLY:
            emitter.log(f"Run stopped early after {summary.processed}/{summary.total} properties", LogLevel.WARNING)
        elif summary.status == RunStatus.COMPLETED:
            emitter.progress(100)
            emitter.log(
                f"Run complete: {summary.succeeded} succeeded, {summary.failed} failed", LogLevel.SUCCESS
            )
        emitter.unsubscribe(collector)
        summary.logs = list(lines)
        return summary

    async def _run_batch(
        self,
        batch: list[Property],
        period: Period,
        context: RunContext,
        emitter: EventEmitter,
        outcomes: list[PropertyOutcome],
        total: int,
    ) -> bool:
        """Process one sub-batch on one session. Returns True when cancellation stopped it."""
        async with self.orchestrator.session() as slot:
            emitter.log(f"Session {slot.session_id} logged in")
            for i, prop in enumerate(batch):
                if context.cancelled:
                    return True
                outcome = await self.process_property(slot, prop, period, emitter)
                outcomes.append(outcome)
                emitter.progress(len(outcomes) / total * 100 if total else 100)
                if i < len(batch) - 1 and self.inter_item_delay > 0:
                    await self._sleep(self.inter_item_delay)
        return False

    async def process_property(
        self,
        slot: SessionSlot,
        prop: Property,
        period: Period,
        emitter: EventEmitter,
    ) -> PropertyOutcome:
        """Extract and reconcile one property. Errors become a failed outcome, except configuration errors."""
        emitter.log(f"Processing {prop.name}")
        attempts = 1
        try:
            result = await self._extract_and_reconcile(slot, prop, period)
            if self.retry_on_zero_cost and result.bills_found and result.total_cost == 0:
                # Unverified heuristic: may mask genuinely zero-cost bills (RETRY_ON_ZERO_COST=false disables it)
                emitter.log(f"{prop.name}: bills found but total is 0, retrying once", LogLevel.WARNING)
                attempts = 2
                try:
                    result = await self._extract_and_reconcile(slot, prop, period)
                except ConfigurationError:
                    raise
                except Exception as e:
                    emitter.log(f"{prop.name}: retry failed ({e}); keeping first result", LogLevel.WARNING)
        except ConfigurationError:
            raise
        except Exception as e:
            emitter.log(f"Failed {prop.name}: {e}", LogLevel.ERROR)
            return PropertyOutcome.failure(prop, str(e), attempts=attempts)

        for warning in result.warnings:
            emitter.log(f"{prop.name}: {warning}", LogLevel.WARNING)
        emitter.log(
            f"Completed {prop.name}: {len(result.selected_electricity)} elec + {len(result.selected_water)} water, "
            f"total {result.total_cost} EUR, overuse {result.overuse_amount} EUR",
            LogLevel.SUCCESS,
        )
        return PropertyOutcome.from_result(prop, result, attempts=attempts)

    async def _extract_and_reconcile(self, slot: SessionSlot, prop: Property, period: Period) -> ReconciliationResult:
        records = await self.orchestrator.run_item(slot, lambda handle: self._fetch(handle, prop))
        return await self.engine.reconcile(records, period, prop)

    async def _fetch(self, handle: Any, prop: Property) -> list[BillRecord]:
        attempts = self.extraction_attempts

        async def attempt_fetch(attempt: int) -> list[BillRecord]:
            records = await self.extractor.fetch_raw_bills(handle, prop)
            if not records and attempt < attempts:
                raise ExtractionError(prop.name, f"No bills extracted for '{prop.name}'")
            return records

        return await with_retry(
            attempt_fetch,
            attempts=attempts,
            backoff=self.extraction_backoff,
            strategy=BackoffStrategy.LINEAR,
            label=f"extract {prop.name}",
            is_retryable=_is_transient,
            sleep=self._sleep,
        )


def _is_transient(exc: BaseException) -> bool:
    return not isinstance(exc, ConfigurationError) and not SessionOrchestrator.is_session_dead(exc)


class _LineCollector(RunObserver):
    """Keeps log lines for the run summary."""

    def __init__(self, lines: list[LogLine]):
        self._lines = lines

    def on_event(self, event: RunEvent) -> None:
        if event.type == RunEventType.LOG:
            self._lines.append(LogLine(level=(event.level or LogLevel.INFO).value, message=event.message))
