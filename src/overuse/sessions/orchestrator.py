"""Bounded pool of remote browser sessions.

The orchestrator hands out at most `ceiling` session slots at a time, logs in
once per slot, recovers a slot whose remote session died, and guarantees each
acquired slot is released exactly once. Slot accounting lives in a
`SlotCounter` (one per orchestrator) so several runs sharing an orchestrator
share the ceiling.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from ..config import OveruseSettings
from ..exceptions import RetryExhaustedError, SessionDeadError
from .types import SessionFactory, SessionSlot, SlotState

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEAD_SESSION_PATTERNS = (
    "target page, context or browser has been closed",
    "browser has been closed",
    "session closed",
    "target closed",
    "page closed",
    "context closed",
)


class SlotCounter:
    """Active-slot count guarded by a single asyncio.Condition.

    `acquire()` waits until a slot is free. If it waits longer than
    `wait_timeout` seconds the count is force-reset to 0 and the caller proceeds.
    """

    def __init__(self, ceiling: int = 1, wait_timeout: float = 300.0):
        if ceiling < 1:
            raise ValueError("ceiling must be >= 1")
        self.ceiling = ceiling
        self.wait_timeout = wait_timeout
        self._active = 0
        self._cond = asyncio.Condition()

    @property
    def active(self) -> int:
        return self._active

    async def acquire(self) -> bool:
        """Take one slot. Returns True if the count had to be force-reset to get it."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_timeout
        forced = False
        async with self._cond:
            while self._active >= self.ceiling:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.warning(
                        "Waited %.0fs for a session slot (%s/%s active); force-resetting slot count",
                        self.wait_timeout,
                        self._active,
                        self.ceiling,
                    )
                    self._active = 0
                    forced = True
                    break
                try:
                    await asyncio.wait_for(self._cond.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    continue
            self._active += 1
        return forced

    async def release(self) -> None:
        async with self._cond:
            self._active = max(0, self._active - 1)
            self._cond.notify()

    async def reset(self) -> None:
        async with self._cond:
            self._active = 0
            self._cond.notify_all()


class SessionOrchestrator:
    """Acquire, log in, recover and release remote sessions under a concurrency ceiling."""

    def __init__(
        self,
        factory: SessionFactory,
        ceiling: int = 1,
        wait_timeout: float = 300.0,
    ):
        self._factory = factory
        self._counter = SlotCounter(ceiling=ceiling, wait_timeout=wait_timeout)

    @classmethod
    def from_settings(
        cls,
        settings: OveruseSettings,
        factory: Optional[SessionFactory] = None,
    ) -> "SessionOrchestrator":
        if factory is None:
            from .browser import PlaywrightSessionFactory

            factory = PlaywrightSessionFactory(settings)
        return cls(
            factory=factory,
            ceiling=settings.SESSION_CEILING,
            wait_timeout=settings.SLOT_WAIT_TIMEOUT_SECONDS,
        )

    @property
    def active_slots(self) -> int:
        return self._counter.active

    @property
    def ceiling(self) -> int:
        return self._counter.ceiling

    async def acquire(self) -> SessionSlot:
        """Wait for a free slot and return it in the Acquiring state (no session opened yet)."""
        slot = SessionSlot(session_id=uuid.uuid4().hex[:12], state=SlotState.ACQUIRING)
        await self._counter.acquire()
        logger.debug("Slot %s acquired (%s/%s active)", slot.session_id, self.active_slots, self.ceiling)
        return slot

    async def create_session(self, slot: SessionSlot) -> SessionSlot:
        """Open the remote session for `slot` and log in once. The handle is reused for every item."""
        handle = await self._factory.open()
        try:
            await self._factory.login(handle)
        except Exception:
            await self._close_quietly(slot, handle)
            raise
        slot.handle = handle
        slot.logged_in = True
        slot.state = SlotState.ACTIVE
        logger.info("Session %s ready", slot.session_id)
        return slot

    async def release(self, slot: SessionSlot) -> None:
        """Close the slot's session and free the slot. Calling it again for the same slot does nothing."""
        if slot.released:
            return
        slot.released = True
        slot.state = SlotState.RELEASING
        try:
            if slot.handle is not None:
                await self._close_quietly(slot, slot.handle)
        finally:
            slot.handle = None
            slot.logged_in = False
            slot.state = SlotState.IDLE
            await self._counter.release()
            logger.debug("Slot %s released (%s/%s active)", slot.session_id, self.active_slots, self.ceiling)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[SessionSlot]:
        """Acquire a slot, open and log in a session, and always release it on exit."""
        slot = await self.acquire()
        try:
            await self.create_session(slot)
            yield slot
        finally:
            await self.release(slot)

    async def recover(self, slot: SessionSlot) -> SessionSlot:
        """Replace a dead slot's session with a fresh, logged-in one. The slot count is unchanged."""
        slot.state = SlotState.DEAD
        if slot.handle is not None:
            await self._close_quietly(slot, slot.handle)
        slot.handle = None
        slot.logged_in = False
        slot.recoveries += 1
        logger.warning("Recovering session %s (recovery #%s)", slot.session_id, slot.recoveries)
        return await self.create_session(slot)

    @staticmethod
    def is_session_dead(exc: BaseException) -> bool:
        """True when the error means the remote page, context or browser is gone."""
        if isinstance(exc, SessionDeadError):
            return True
        if isinstance(exc, RetryExhaustedError) and exc.last_error is not None:
            if SessionOrchestrator.is_session_dead(exc.last_error):
                return True
        msg = str(exc).lower()
        return any(p in msg for p in DEAD_SESSION_PATTERNS)

    async def run_item(self, slot: SessionSlot, fn: Callable[[Any], Awaitable[T]]) -> T:
        """Run `fn(handle)`. On a dead session, recover and retry the item once; a second failure propagates.

        A slot left dead by a failed recovery is recovered again before the next item runs.
        """
        if not slot.is_active:
            await self.recover(slot)
        try:
            return await fn(slot.handle)
        except Exception as e:
            if not self.is_session_dead(e):
                raise
            logger.warning("Session %s died during item: %s", slot.session_id, str(e)[:200])
            await self.recover(slot)
        return await fn(slot.handle)

    async def force_reset(self) -> None:
        """Set the active slot count back to 0 (operator escape hatch for a stuck pool)."""
        before = self.active_slots
        await self._counter.reset()
        logger.warning("Session slots force-reset (was %s active)", before)

    async def _close_quietly(self, slot: SessionSlot, handle: Any) -> None:
        try:
            await self._factory.close(handle)
        except Exception as e:
            logger.warning("Closing session %s failed: %s", slot.session_id, e)
