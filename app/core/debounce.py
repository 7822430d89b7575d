"""Cancellable delayed execution for keystroke-driven lookups."""

import asyncio
from collections.abc import Awaitable, Callable

from app.infra.logging import get_logger

logger = get_logger(__name__)


class Debouncer:
    """Runs the most recently scheduled callback once input pauses.

    Each `schedule()` clears the pending timer and arms a new one. When a
    timer fires, its callback runs as a task that a later `schedule()` does
    not cancel; stale results are the caller's concern.
    """

    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = delay_seconds
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        """Whether a timer is armed and has not fired yet."""
        return self._handle is not None

    def schedule(self, fn: Callable[[], Awaitable[None]]) -> None:
        """Arm the timer for `fn`, replacing any pending one."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._fire, fn)

    def cancel(self) -> None:
        """Clear the pending timer. Callbacks already running are left alone."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, fn: Callable[[], Awaitable[None]]) -> None:
        self._handle = None
        task = asyncio.ensure_future(fn())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Debounced callback failed",
                error=str(task.exception()),
                error_type=type(task.exception()).__name__,
            )

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no fired callback is running."""
        while self._handle is not None or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(self.delay_seconds / 2 or 0)

    async def aclose(self) -> None:
        """Cancel the timer and any running callbacks."""
        self.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
