"""Run events: progress and log lines emitted while a batch run is processing."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

logger = logging.getLogger(__name__)


class RunEventType(str, Enum):
    """Types of run events."""
    PROGRESS = "progress"
    LOG = "log"


class LogLevel(str, Enum):
    """Levels used by the live log (success is shown distinctly from info)."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOGGING_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass
class RunEvent:
    """Represents one progress update or log line."""

    type: RunEventType
    message: str = ""
    percentage: Optional[float] = None
    level: Optional[LogLevel] = None
    run_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "message": self.message}
        if self.percentage is not None:
            out["percentage"] = self.percentage
        if self.level is not None:
            out["level"] = self.level.value
        if self.run_id is not None:
            out["run_id"] = self.run_id
        return out


class RunObserver(ABC):
    """Abstract observer for run events."""

    @abstractmethod
    def on_event(self, event: RunEvent) -> None:
        """Handle a run event."""
        ...


class LoggingObserver(RunObserver):
    """Mirrors log events to a standard logger."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logging.getLogger("overuse.run")

    def on_event(self, event: RunEvent) -> None:
        if event.type != RunEventType.LOG:
            return
        level = _LOGGING_LEVELS.get(event.level or LogLevel.INFO, logging.INFO)
        if event.run_id:
            self._log.log(level, "[%s] %s", event.run_id, event.message)
        else:
            self._log.log(level, "%s", event.message)


class CollectingObserver(RunObserver):
    """Keeps every event in memory (run summaries and tests)."""

    def __init__(self):
        self.events: List[RunEvent] = []

    def on_event(self, event: RunEvent) -> None:
        self.events.append(event)

    @property
    def logs(self) -> List[RunEvent]:
        return [e for e in self.events if e.type == RunEventType.LOG]

    @property
    def progress(self) -> List[float]:
        return [e.percentage for e in self.events if e.type == RunEventType.PROGRESS and e.percentage is not None]


class QueueObserver(RunObserver):
    """Feeds events into an asyncio.Queue for a live stream (one queue per listener).

    `close()` enqueues a sentinel so `stream()` ends.
    """

    _CLOSED = None

    def __init__(self, maxsize: int = 0):
        self._queue: "asyncio.Queue[Optional[RunEvent]]" = asyncio.Queue(maxsize=maxsize)

    def on_event(self, event: RunEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Live log queue full; dropping event: %s", event.message[:80])

    def close(self) -> None:
        self._queue.put_nowait(self._CLOSED)

    async def stream(self) -> AsyncIterator[RunEvent]:
        while True:
            event = await self._queue.get()
            if event is self._CLOSED:
                return
            yield event


class EventEmitter:
    """Manages observers and emits events."""

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id
        self._observers: List[RunObserver] = []

    def subscribe(self, observer: RunObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: RunObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def emit(self, event: RunEvent) -> None:
        """Emit an event to all observers. A failing observer never breaks the run."""
        if event.run_id is None:
            event.run_id = self.run_id
        for observer in list(self._observers):
            try:
                observer.on_event(event)
            except Exception as e:
                logger.warning("Run observer %s failed: %s", type(observer).__name__, e)

    def log(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        self.emit(RunEvent(type=RunEventType.LOG, message=message, level=level))

    def progress(self, percentage: float) -> None:
        pct = max(0.0, min(100.0, round(percentage, 1)))
        self.emit(RunEvent(type=RunEventType.PROGRESS, percentage=pct))
