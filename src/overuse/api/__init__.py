"""HTTP layer: app factory and dependencies."""

from .app import create_app
from .deps import build_llm, get_llm, get_orchestrator

__all__ = ["create_app", "build_llm", "get_llm", "get_orchestrator"]
