"""Refresh Coordinator: coalesces selection bursts into one recompute pass."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

IDLE = "IDLE"
PENDING_RECOMPUTE = "PENDING_RECOMPUTE"

Scheduler = Callable[[Callable[[], None]], Any]


def _event_loop_scheduler(callback: Callable[[], None]) -> bool:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return False
    loop.call_soon(callback)
    return True


class RefreshCoordinator(Generic[T]):
    """Two-state debounce: IDLE -> PENDING_RECOMPUTE -> (one pass) -> IDLE.

    ``request()`` while a pass is pending is a no-op, so any number of
    mutations before the tick fires produce exactly one recompute and one
    render-ready signal. Without an injected scheduler the pass is put on the
    running asyncio loop; with no loop running it waits for ``flush()``.
    """

    def __init__(self, recompute: Callable[[], T], scheduler: Scheduler | None = None) -> None:
        self._recompute = recompute
        self._scheduler = scheduler
        self._listeners: List[Callable[[T], Any]] = []
        self._state = IDLE
        self._generation = 0
        self._pass_count = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def pass_count(self) -> int:
        return self._pass_count

    @property
    def pending(self) -> bool:
        return self._state == PENDING_RECOMPUTE

    def subscribe(self, callback: Callable[[T], Any]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def request(self) -> bool:
        """Mark state dirty; returns whether a new pass was scheduled."""
        if self._state == PENDING_RECOMPUTE:
            logger.debug("Refresh already pending; coalescing request")
            return False

        self._state = PENDING_RECOMPUTE
        self._generation += 1
        generation = self._generation

        def _tick() -> None:
            if self._state == PENDING_RECOMPUTE and self._generation == generation:
                self._run_pass()

        if self._scheduler is not None:
            self._scheduler(_tick)
        elif not _event_loop_scheduler(_tick):
            logger.debug("No running event loop; refresh waits for flush()")
        else:
            logger.debug("Scheduled refresh pass %d", generation)
        return True

    def flush(self) -> T | None:
        """Run a pending pass now; a tick already scheduled for it becomes a no-op."""
        if self._state != PENDING_RECOMPUTE:
            return None
        return self._run_pass()

    def _run_pass(self) -> T:
        try:
            result = self._recompute()
        finally:
            # IDLE even when recompute raises.
            self._state = IDLE
        self._pass_count += 1
        logger.debug("Refresh pass %d complete; notifying %d listeners", self._pass_count, len(self._listeners))
        for listener in list(self._listeners):
            listener(result)
        return result
