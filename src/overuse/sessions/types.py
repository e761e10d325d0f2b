"""Schemas for session slots and the factory that opens remote browser sessions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


class SlotState(str, Enum):
    """Lifecycle of a session slot: Idle -> Acquiring -> Active -> Releasing -> Idle; Dead from Active."""
    IDLE = "idle"
    ACQUIRING = "acquiring"
    ACTIVE = "active"
    RELEASING = "releasing"
    DEAD = "dead"


@runtime_checkable
class SessionFactory(Protocol):
    """Opens, authenticates and closes one remote session. The handle is opaque to the orchestrator."""

    async def open(self) -> Any:
        ...

    async def login(self, handle: Any) -> None:
        ...

    async def close(self, handle: Any) -> None:
        ...


@dataclass
class SessionSlot:
    """One unit of the bounded session pool, lent to a caller for one sub-batch."""

    session_id: str
    handle: Optional[Any] = None
    logged_in: bool = False
    state: SlotState = SlotState.IDLE
    recoveries: int = 0
    released: bool = field(default=False, repr=False)

    @property
    def is_active(self) -> bool:
        """Logged in with a live handle; a slot whose recovery failed is not."""
        return self.state == SlotState.ACTIVE and self.handle is not None
