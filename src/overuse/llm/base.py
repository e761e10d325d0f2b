"""LLM client interface used by the fallback bill selector."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from ..utils.json_utils import parse_json_from_response as _parse_json_from_response


class LLMClient(ABC):
    """Synchronous provider interface. Async callers go through `ainvoke_structured`.

    Providers accept an optional `system` keyword (system instruction) on both calls.
    """

    @abstractmethod
    def invoke(self, prompt: str, **kwargs: Any) -> str:
        """Send a prompt and return the model response text."""
        ...

    @abstractmethod
    def invoke_structured(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        """Send a prompt and return the JSON object in the answer ({"raw": text} when there is none)."""
        ...

    async def ainvoke_structured(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        """`invoke_structured` on a worker thread, so a slow provider never blocks other runs."""
        return await asyncio.to_thread(self.invoke_structured, prompt, **kwargs)

    @staticmethod
    def parse_json_from_response(text: str) -> dict[str, Any]:
        return _parse_json_from_response(text, default_raw=True)
