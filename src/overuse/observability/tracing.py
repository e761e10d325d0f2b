"""Tracing for fallback-selector LLM calls: sizes, latency and failures, never prompt text.

Prompts carry property names and bill amounts, so only their lengths are logged.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from ..llm.base import LLMClient

logger = logging.getLogger(__name__)


@dataclass
class TraceEntry:
    """One traced call. `metadata` holds the call kwargs (e.g. the system instruction)."""

    operation: str
    latency_seconds: float
    prompt_length: int = 0
    response_length: int = 0
    error: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class _Span:
    operation: str
    prompt: str
    metadata: dict[str, Any]
    started: float = field(default_factory=time.perf_counter)
    response: Any = None
    error: Optional[str] = None

    def finish(self) -> TraceEntry:
        return TraceEntry(
            operation=self.operation,
            latency_seconds=time.perf_counter() - self.started,
            prompt_length=len(self.prompt),
            response_length=0 if self.response is None else len(str(self.response)),
            error=self.error,
            metadata=self.metadata,
        )


class TracingLLMClient(LLMClient):
    """LLMClient decorator: every call produces a TraceEntry, logged and passed to `callback`."""

    def __init__(
        self,
        inner: LLMClient,
        log_level: int = logging.INFO,
        callback: Optional[Callable[[TraceEntry], None]] = None,
    ):
        self._inner = inner
        self._log_level = log_level
        self._callback = callback

    def invoke(self, prompt: str, **kwargs: Any) -> str:
        with self._span("invoke", prompt, kwargs) as span:
            span.response = self._inner.invoke(prompt, **kwargs)
        return span.response

    def invoke_structured(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        with self._span("invoke_structured", prompt, kwargs) as span:
            span.response = self._inner.invoke_structured(prompt, **kwargs)
        return span.response

    @contextmanager
    def _span(self, operation: str, prompt: str, kwargs: dict[str, Any]) -> Iterator[_Span]:
        span = _Span(operation=operation, prompt=prompt, metadata=dict(kwargs))
        try:
            yield span
        except Exception as e:
            span.error = f"{type(e).__name__}: {e}"
            raise
        finally:
            self._record(span.finish())

    def _record(self, entry: TraceEntry) -> None:
        logger.log(
            self._log_level,
            "LLM trace | op=%s latency=%.3fs prompt_len=%s response_len=%s error=%s",
            entry.operation,
            entry.latency_seconds,
            entry.prompt_length,
            entry.response_length,
            entry.error,
        )
        if self._callback is None:
            return
        try:
            self._callback(entry)
        except Exception as e:
            logger.warning("Tracing callback failed: %s", e)
