"""Remote session pool: bounded slots, one login per slot, dead-session recovery."""

from .orchestrator import DEAD_SESSION_PATTERNS, SessionOrchestrator, SlotCounter
from .types import SessionFactory, SessionSlot, SlotState

__all__ = [
    "DEAD_SESSION_PATTERNS",
    "SessionFactory",
    "SessionOrchestrator",
    "SessionSlot",
    "SlotCounter",
    "SlotState",
]
