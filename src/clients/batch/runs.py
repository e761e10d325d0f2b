"""Run bookkeeping: cancellation flags, per-run event streams and finished summaries."""

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Optional

from src.overuse.observability.events import CollectingObserver, EventEmitter, LoggingObserver, QueueObserver

from .schemas import RunStatus, RunSummary

logger = logging.getLogger(__name__)


class RunContext:
    """Per-run state passed to the controller. Cancellation is a flag checked at safe points."""

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self._cancel = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def request_cancel(self) -> None:
        self._cancel.set()


@dataclass
class RunRecord:
    context: RunContext
    emitter: EventEmitter
    collector: CollectingObserver
    summary: Optional[RunSummary] = None
    task: Optional[asyncio.Task] = None
    listeners: list[QueueObserver] = field(default_factory=list)

    @property
    def run_id(self) -> str:
        return self.context.run_id

    @property
    def finished(self) -> bool:
        return self.summary is not None and self.summary.status != RunStatus.RUNNING


class RunRegistry:
    """Known runs keyed by id. All mutations go through one lock.

    Finished runs beyond `max_finished` are dropped, oldest-created first, each
    time a run finishes. Active runs are never dropped.
    """

    def __init__(self, max_finished: int = 50):
        self.max_finished = max(1, max_finished)
        self._runs: dict[str, RunRecord] = {}
        self._lock = threading.Lock()

    def create(self, run_id: Optional[str] = None) -> RunRecord:
        context = RunContext(run_id)
        emitter = EventEmitter(run_id=context.run_id)
        collector = CollectingObserver()
        emitter.subscribe(collector)
        emitter.subscribe(LoggingObserver())
        record = RunRecord(context=context, emitter=emitter, collector=collector)
        with self._lock:
            if context.run_id in self._runs:
                raise ValueError(f"Run already exists: {context.run_id}")
            self._runs[context.run_id] = record
        return record

    def get(self, run_id: str) -> Optional[RunRecord]:
        with self._lock:
            return self._runs.get(run_id)

    def active(self) -> list[RunRecord]:
        with self._lock:
            return [r for r in self._runs.values() if not r.finished]

    def request_cancel(self, run_id: str) -> bool:
        record = self.get(run_id)
        if record is None or record.finished:
            return False
        record.context.request_cancel()
        record.emitter.log("Cancellation requested; stopping before the next property")
        return True

    def cancel_all(self) -> list[str]:
        ids = []
        for record in self.active():
            record.context.request_cancel()
            record.emitter.log("Cancellation requested; stopping before the next property")
            ids.append(record.run_id)
        if ids:
            logger.info("Cancellation requested for runs: %s", ", ".join(ids))
        return ids

    def listen(self, run_id: str) -> Optional[QueueObserver]:
        """Queue observer that first replays past events; already closed if the run is over."""
        record = self.get(run_id)
        if record is None:
            return None
        queue = QueueObserver()
        for event in list(record.collector.events):
            queue.on_event(event)
        with self._lock:
            if record.finished:
                queue.close()
            else:
                record.emitter.subscribe(queue)
                record.listeners.append(queue)
        return queue

    def finish(self, record: RunRecord, summary: RunSummary) -> None:
        with self._lock:
            record.summary = summary
            listeners, record.listeners = record.listeners, []
            self._evict_finished()
        for queue in listeners:
            record.emitter.unsubscribe(queue)
            queue.close()

    def _evict_finished(self) -> None:
        finished = [run_id for run_id, r in self._runs.items() if r.finished]
        for run_id in finished[: max(0, len(finished) - self.max_finished)]:
            del self._runs[run_id]
            logger.debug("Dropped finished run %s from registry", run_id)

    async def execute(self, record: RunRecord, run: Awaitable[RunSummary]) -> RunSummary:
        """Await a controller run and file its summary."""
        try:
            summary = await run
        except Exception as e:
            logger.exception("Run %s crashed", record.run_id)
            summary = RunSummary(run_id=record.run_id, status=RunStatus.FAILED, period="", error=str(e))
        self.finish(record, summary)
        return summary

    def launch(self, record: RunRecord, run: Awaitable[RunSummary]) -> asyncio.Task:
        """Run in the background on the current event loop."""
        record.task = asyncio.create_task(self.execute(record, run), name=f"overuse-run-{record.run_id}")
        return record.task
