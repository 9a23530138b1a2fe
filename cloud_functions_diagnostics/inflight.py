"""Track deliveries that have been started but not yet completed."""

import asyncio
import logging
from typing import Awaitable, Optional

from .errors import FlushTimeoutError

logger = logging.getLogger(__name__)


class InFlightTracker:
    """Keep a reference to every pending delivery so it can be flushed."""

    def __init__(self):
        """Start with nothing in flight."""
        self._tasks: set[asyncio.Future] = set()

    def __len__(self) -> int:
        """Return the number of pending deliveries."""
        return len(self._tasks)

    def track(self, delivery: Awaitable) -> Optional[asyncio.Future]:
        """
        Schedule a delivery and remember it until it completes.

        Outside of a running event loop there is nothing to flush later, so the
        delivery is run to completion straight away.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, delivering synchronously")
            asyncio.run(_as_coroutine(delivery))
            return None

        task = asyncio.ensure_future(delivery, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def flush(self, timeout_ms: int) -> None:
        """
        Wait for all pending deliveries.

        Raises ``FlushTimeoutError`` if any are still pending after
        ``timeout_ms``. Pending deliveries are not cancelled and keep running
        in the background.
        """
        if not self._tasks:
            return

        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout_ms / 1000)
        if pending:
            raise FlushTimeoutError(timeout_ms)


async def _as_coroutine(awaitable: Awaitable):
    return await awaitable
