"""Trailing-edge debounce on top of asyncio."""

import asyncio
import inspect
from typing import Any, Callable


class Debounce:
    """Run an action once input has been quiet for ``delay`` seconds.

    Every call to ``debouncing`` restarts the window and replaces the
    pending action. One instance per debounced field.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def debouncing(self, action: Callable[[], Any], delay: float | None = None) -> None:
        self.invalidate()
        self._task = asyncio.ensure_future(self._fire(action, self.delay if delay is None else delay))

    def invalidate(self) -> None:
        """Cancel the pending action, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _fire(self, action: Callable[[], Any], delay: float) -> None:
        await asyncio.sleep(delay)
        if self._task is asyncio.current_task():
            self._task = None
        result = action()
        if inspect.isawaitable(result):
            await result
