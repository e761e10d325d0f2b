"""Observability: run events (progress/live log), LLM tracing, logging setup."""

from .events import (
    CollectingObserver,
    EventEmitter,
    LoggingObserver,
    LogLevel,
    QueueObserver,
    RunEvent,
    RunEventType,
    RunObserver,
)
from .logging_setup import setup_logging
from .tracing import TraceEntry, TracingLLMClient

__all__ = [
    "CollectingObserver",
    "EventEmitter",
    "LoggingObserver",
    "LogLevel",
    "QueueObserver",
    "RunEvent",
    "RunEventType",
    "RunObserver",
    "setup_logging",
    "TraceEntry",
    "TracingLLMClient",
]
