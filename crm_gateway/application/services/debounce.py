"""Trailing-edge debouncer for type-ahead search.

Each trigger() restarts the quiet window; only the last value inside a window
reaches the callback. A call already in flight is not aborted by a newer
trigger, but it becomes stale: callers check is_stale(generation) before
using its result.

Example:
    debouncer = Debouncer(0.5, run_search)
    debouncer.trigger("ac")
    debouncer.trigger("acme")  # only "acme" is searched
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class Debouncer:
    def __init__(
        self,
        delay_seconds: float,
        callback: Callable[[Any], Awaitable[Any]],
    ) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")
        self._delay = delay_seconds
        self._callback = callback
        self._generation = 0
        self._timer: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def generation(self) -> int:
        """Generation of the most recent trigger()."""
        return self._generation

    @property
    def pending(self) -> bool:
        """True while a trigger is waiting for its window to elapse."""
        return self._timer is not None and not self._timer.done()

    def is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def trigger(self, value: Any) -> int:
        """Schedule the callback for `value`, replacing any pending one.

        Must be called from a running event loop. Returns the new generation.
        """
        self.cancel()
        self._generation += 1
        task = asyncio.create_task(self._fire(value))
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return self._generation

    def cancel(self) -> None:
        """Drop the pending trigger, if any. In-flight callbacks keep running."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def drain(self) -> None:
        """Wait for the pending trigger and any in-flight callbacks."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _fire(self, value: Any) -> None:
        await asyncio.sleep(self._delay)
        # Past the window: from here a newer trigger() no longer cancels us.
        if self._timer is asyncio.current_task():
            self._timer = None
        try:
            await self._callback(value)
        except Exception:
            logger.exception("Debounced callback failed for %r", value)
