"""LLM abstraction and providers (used by the fallback bill selector)."""

from .base import LLMClient
from .registry import LLMProviderRegistry

__all__ = [
    "LLMClient",
    "LLMProviderRegistry",
]
