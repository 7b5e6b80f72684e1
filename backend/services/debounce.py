"""
Debounced query scheduling for location search fields.

Coalesces rapid keystrokes into one lookup that fires after the input has been
quiet for ``delay`` seconds. Only the sleeping timer is restarted by new input;
a lookup that already fired keeps running until the next one supersedes it
through its cancellation token.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class DebouncedQueryScheduler:
    def __init__(
        self,
        callback: Callable[[str], Awaitable[None]],
        delay: float = 0.4,
        on_empty: Optional[Callable[[], None]] = None,
    ):
        """
        Args:
            callback: Async function run with the last text once the timer fires
            delay: Quiet period in seconds
            on_empty: Called synchronously for blank input instead of scheduling
        """
        self.delay = delay
        self._callback = callback
        self._on_empty = on_empty
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True while a timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    def on_input(self, text: str) -> None:
        self.cancel_pending()
        if not text.strip():
            if self._on_empty is not None:
                self._on_empty()
            return
        task = asyncio.get_running_loop().create_task(self._fire_after_delay(text))
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fire_after_delay(self, text: str) -> None:
        await asyncio.sleep(self.delay)
        # Past this point new input no longer cancels this task.
        self._timer = None
        logger.debug("Debounce fired for %r", text)
        await self._callback(text)

    def cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def settle(self) -> None:
        """Wait until no timer or fired lookup is outstanding."""
        while True:
            outstanding = [t for t in self._tasks if not t.done()]
            if not outstanding:
                return
            await asyncio.wait(outstanding)

    def close(self) -> None:
        self.cancel_pending()
        for task in list(self._tasks):
            task.cancel()
