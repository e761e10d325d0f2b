"""Overuse core: configuration, errors, retry, LLM access, run events and the session pool."""

from .config import OveruseSettings, get_settings, get_settings_dep

__all__ = [
    "OveruseSettings",
    "get_settings",
    "get_settings_dep",
]
