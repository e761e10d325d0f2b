"""OpenAI chat model provider (JSON mode for structured calls)."""

from typing import Any, Optional

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from .base import LLMClient


def _messages(prompt: str, system: Optional[str] = None) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    if system:
        messages.append(SystemMessage(content=system))
    messages.append(HumanMessage(content=prompt))
    return messages


def _text(response: Any) -> str:
    content = getattr(response, "content", response)
    return content if isinstance(content, str) else str(content)


class OpenAILLMProvider(LLMClient):
    """LLM client using the OpenAI API through langchain-openai."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.0,
        timeout: float = 60.0,
        max_retries: int = 2,
    ):
        self._client = ChatOpenAI(
            model=model,
            temperature=temperature,
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
        )
        self._json_client = self._client.bind(response_format={"type": "json_object"})

    def invoke(self, prompt: str, **kwargs: Any) -> str:
        return _text(self._client.invoke(_messages(prompt, kwargs.get("system"))))

    def invoke_structured(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        system = kwargs.get("system")
        # JSON mode rejects requests whose messages never mention JSON
        if "json" not in f"{system or ''} {prompt}".lower():
            prompt = f"{prompt}\n\nAnswer with a single JSON object."
        response = self._json_client.invoke(_messages(prompt, system))
        return self.parse_json_from_response(_text(response))
