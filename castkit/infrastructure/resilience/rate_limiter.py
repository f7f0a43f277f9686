"""Implementation of a rate limiter.

Controls the frequency of outgoing requests to stay under the API's rate
limit. Uses a sliding window of call completion times shared by every
operation: the key passed to ``execute`` tags the call for logging and
events, it does not get a budget of its own.
"""

import time
import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, TypeVar

from castkit.domain.events.api_events import ApiCallDeferred, EventSink, dispatch_event

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Warpcast allows 100 requests per minute
DEFAULT_MAX_REQUESTS = 100
DEFAULT_TIME_WINDOW_SECONDS = 60

class RateLimiter:
    """Sliding window rate limiter with a single global budget.

    A slot is taken when a call is admitted and held by its completion
    timestamp for ``time_window`` seconds afterwards. Waiters re-check
    independently when woken, so admission order under contention is not
    guaranteed to match request order.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        time_window: float = DEFAULT_TIME_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the rate limiter.

        Args:
            max_requests: Maximum number of requests allowed in the time window.
            time_window: The time window in seconds.
            clock: Monotonic time source in seconds.
            event_sink: Optional receiver for ApiCallDeferred events.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if time_window <= 0:
            raise ValueError("time_window must be positive")
        self.max_requests = max_requests
        self.time_window = time_window
        self.timestamps: Deque[float] = deque()
        self.in_flight = 0
        self._clock = clock
        self._event_sink = event_sink
        self._condition = asyncio.Condition()
        logger.info(f"RateLimiter initialized: {max_requests} requests / {time_window} seconds")

    def _cleanup_timestamps(self) -> None:
        """Removes timestamps older than the time window."""
        now = self._clock()
        while self.timestamps and now - self.timestamps[0] >= self.time_window:
            self.timestamps.popleft()

    def _compute_wait(self) -> Optional[float]:
        """Seconds until the oldest recorded call leaves the window.

        None when the window holds only in-flight calls; the next completion
        has to be awaited before a wait can be computed.
        """
        if not self.timestamps:
            return None
        return max(0.0, self.timestamps[0] + self.time_window - self._clock())

    async def _acquire(self, key: str) -> None:
        """Waits until a slot is free and reserves it for ``key``."""
        async with self._condition:
            while True:
                self._cleanup_timestamps()
                if len(self.timestamps) + self.in_flight < self.max_requests:
                    self.in_flight += 1
                    logger.debug(f"Rate limit permission granted for '{key}'.")
                    return

                wait_time = self._compute_wait()
                if wait_time is not None:
                    logger.debug(f"Rate limit reached. '{key}' waiting {wait_time:.2f} seconds.")
                else:
                    logger.debug(f"Rate limit reached by in-flight calls. '{key}' waiting for a completion.")
                dispatch_event(self._event_sink, ApiCallDeferred(operation_key=key, wait_time_seconds=wait_time or 0.0))
                try:
                    await asyncio.wait_for(self._condition.wait(), timeout=wait_time)
                except asyncio.TimeoutError:
                    pass
                # Loop again to re-check condition after waiting

    async def _release(self) -> None:
        """Converts an in-flight reservation into a completion timestamp."""
        async with self._condition:
            self.in_flight -= 1
            self.timestamps.append(self._clock())
            self._cleanup_timestamps()
            self._condition.notify_all()

    async def execute(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Runs ``operation`` once the shared budget admits it.

        The call consumes quota whether it succeeds or raises; its result or
        exception is passed through unchanged.

        Args:
            key: Operation tag used for logging and events.
            operation: Zero-argument callable returning an awaitable.

        Returns:
            Whatever the operation returns.
        """
        await self._acquire(key)
        try:
            return await operation()
        finally:
            await asyncio.shield(self._release())

    async def get_wait_time(self) -> float:
        """Estimates the time needed before the next request can be made.

        Returns 0.0 when a slot is free now, and 0.0 as well when only
        in-flight calls fill the window (their completion time is unknown).
        """
        async with self._condition:
            self._cleanup_timestamps()
            if len(self.timestamps) + self.in_flight < self.max_requests:
                return 0.0
            return self._compute_wait() or 0.0
