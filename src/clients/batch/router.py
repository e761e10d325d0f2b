"""Overuse batch API: start runs, follow their live log, cancel them, reset the session pool."""

import json
from functools import lru_cache
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from src.overuse.api.deps import get_llm, get_orchestrator
from src.overuse.config import OveruseSettings, get_settings, get_settings_dep
from src.overuse.exceptions import ConfigurationError
from src.overuse.llm.base import LLMClient
from src.overuse.observability.events import QueueObserver
from src.overuse.sessions.orchestrator import SessionOrchestrator
from src.clients.dashboard.extractor import BillExtractor, PlaywrightBillExtractor
from src.clients.reconciliation.engine import ReconciliationEngine
from src.clients.reconciliation.fallback import FallbackSelector, LLMFallbackSelector
from src.clients.reconciliation.periods import default_period, parse_period

from .controller import BatchRunController
from .runs import RunRegistry
from .schemas import (
    CancelResponse,
    EnvFlags,
    RunAccepted,
    RunRequest,
    RunStatus,
    RunStatusResponse,
    SlotsResetResponse,
)

router = APIRouter(prefix="/overuse", tags=["overuse"])


@lru_cache
def get_run_registry() -> RunRegistry:
    """Dependency that returns the process-wide run registry."""
    return RunRegistry(max_finished=get_settings().RUN_HISTORY_LIMIT)


def get_fallback_selector(
    settings: OveruseSettings = Depends(get_settings_dep),
    llm: Optional[LLMClient] = Depends(get_llm),
) -> Optional[FallbackSelector]:
    if llm is None:
        return None
    return LLMFallbackSelector(llm, cutoff_day=settings.BILLING_CUTOFF_DAY)


def get_extractor(settings: OveruseSettings = Depends(get_settings_dep)) -> BillExtractor:
    return PlaywrightBillExtractor(settings)


def get_controller(
    settings: OveruseSettings = Depends(get_settings_dep),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
    extractor: BillExtractor = Depends(get_extractor),
    fallback: Optional[FallbackSelector] = Depends(get_fallback_selector),
) -> BatchRunController:
    """Build the batch controller from settings and the shared session pool."""
    engine = ReconciliationEngine(
        fallback=fallback,
        cutoff_day=settings.BILLING_CUTOFF_DAY,
        min_coverage_days=settings.COVERAGE_MIN_DAYS,
    )
    return BatchRunController.from_settings(settings, orchestrator, extractor, engine)


@router.post("/runs", response_model=RunAccepted, status_code=202)
async def start_run(
    request: RunRequest,
    wait: bool = Query(False, description="Block until the run finishes"),
    settings: OveruseSettings = Depends(get_settings_dep),
    controller: BatchRunController = Depends(get_controller),
    registry: RunRegistry = Depends(get_run_registry),
):
    """Start an overuse run. Events are available at /overuse/runs/{run_id}/events."""
    try:
        period = parse_period(request.period) if request.period else default_period()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        settings.require_dashboard_access()
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=e.message)

    record = registry.create()
    run = controller.run(request.properties, period, context=record.context, emitter=record.emitter, limit=request.limit)
    total = len(request.properties) if not request.limit else min(request.limit, len(request.properties))
    if wait:
        summary = await registry.execute(record, run)
        return RunAccepted(run_id=record.run_id, status=summary.status, period=period.label, total=summary.total)
    registry.launch(record, run)
    return RunAccepted(run_id=record.run_id, status=RunStatus.RUNNING, period=period.label, total=total)


@router.get("/runs/{run_id}", response_model=RunStatusResponse)
def get_run(run_id: str, registry: RunRegistry = Depends(get_run_registry)):
    record = registry.get(run_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    if not record.finished:
        return RunStatusResponse(run_id=run_id, status=RunStatus.RUNNING)
    return RunStatusResponse(run_id=run_id, status=record.summary.status, summary=record.summary)


async def _sse(queue: QueueObserver) -> AsyncIterator[str]:
    async for event in queue.stream():
        yield f"data: {json.dumps(event.to_dict(), ensure_ascii=False)}\n\n"


@router.get("/runs/{run_id}/events")
async def stream_run_events(run_id: str, registry: RunRegistry = Depends(get_run_registry)):
    """Live log and progress as Server-Sent Events: {type: log|progress, level, message, percentage}."""
    queue = registry.listen(run_id)
    if queue is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    return StreamingResponse(
        _sse(queue),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/runs/{run_id}/cancel", response_model=CancelResponse)
def cancel_run(run_id: str, registry: RunRegistry = Depends(get_run_registry)):
    if registry.get(run_id) is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    if registry.request_cancel(run_id):
        return CancelResponse(cancelled=[run_id], message="Run will stop before the next property")
    return CancelResponse(message="Run already finished")


@router.post("/cancel-current-run", response_model=CancelResponse)
def cancel_current_run(registry: RunRegistry = Depends(get_run_registry)):
    ids = registry.cancel_all()
    return CancelResponse(cancelled=ids, message="Cancellation requested" if ids else "No active run")


@router.post("/slots/reset", response_model=SlotsResetResponse)
async def reset_slots(orchestrator: SessionOrchestrator = Depends(get_orchestrator)):
    before = orchestrator.active_slots
    await orchestrator.force_reset()
    return SlotsResetResponse(active_slots_before=before, active_slots=orchestrator.active_slots)


@router.get("/env-flags", response_model=EnvFlags)
def env_flags(settings: OveruseSettings = Depends(get_settings_dep)):
    return EnvFlags(
        dashboard_credentials=settings.has_dashboard_credentials(),
        browser_ws_url=bool(settings.BROWSER_WS_URL),
        force_local_chromium=settings.FORCE_LOCAL_CHROMIUM,
        llm_fallback=settings.ENABLE_LLM_FALLBACK and bool(settings.OPENAI_API_KEY),
        llm_provider=settings.LLM_PROVIDER,
        session_ceiling=settings.SESSION_CEILING,
        batch_size=settings.BATCH_SIZE,
    )
