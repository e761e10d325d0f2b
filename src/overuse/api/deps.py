"""FastAPI dependencies for the core components (LLM client, session pool).

The session orchestrator is a process-wide singleton so its slot ceiling is
shared by every run started through the API.
"""

import logging
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends

from ..config import OveruseSettings, get_settings, get_settings_dep
from ..exceptions import ConfigurationError
from ..llm.base import LLMClient
from ..llm.registry import LLMProviderRegistry
from ..observability.tracing import TracingLLMClient
from ..sessions.orchestrator import SessionOrchestrator

logger = logging.getLogger(__name__)


@lru_cache
def _get_llm_cached(provider: str, api_key: Optional[str], model: str, temperature: float) -> LLMClient:
    return LLMProviderRegistry.create(provider=provider, api_key=api_key, model=model, temperature=temperature)


def build_llm(settings: OveruseSettings) -> Optional[LLMClient]:
    """LLM client for the fallback selector, or None when disabled or not configured."""
    if not settings.ENABLE_LLM_FALLBACK:
        return None
    try:
        llm = _get_llm_cached(
            provider=(settings.LLM_PROVIDER or "openai").lower().strip(),
            api_key=settings.OPENAI_API_KEY,
            model=settings.LLM_MODEL,
            temperature=settings.TEMPERATURE,
        )
    except ConfigurationError as e:
        logger.warning("LLM fallback disabled: %s", e.message)
        return None
    if settings.ENABLE_LLM_TRACING:
        level = getattr(logging, (settings.TRACING_LOG_LEVEL or "INFO").upper(), logging.INFO)
        llm = TracingLLMClient(llm, log_level=level)
    return llm


def get_llm(
    settings: Annotated[OveruseSettings, Depends(get_settings_dep)],
) -> Optional[LLMClient]:
    """Dependency that returns the configured LLM client (optionally traced), or None."""
    return build_llm(settings)


@lru_cache
def _get_orchestrator_cached() -> SessionOrchestrator:
    return SessionOrchestrator.from_settings(get_settings())


def get_orchestrator() -> SessionOrchestrator:
    """Dependency that returns the shared session orchestrator."""
    return _get_orchestrator_cached()
