"""Rate-limited "refresh from server" requests."""

import asyncio
import logging
import time
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .connection import Connection

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL = 60.0


class SyncThrottler:
    """
    Triggers a store sync at most once per interval.

    A sync is only a freshness hint: failures are logged and swallowed,
    and a failed request does not advance the timestamp.
    """

    def __init__(
        self,
        interval: float = DEFAULT_SYNC_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._last_sync: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def last_sync(self) -> Optional[float]:
        return self._last_sync

    async def maybe_sync(self, connection: "Connection") -> bool:
        """
        Request a sync if more than ``interval`` seconds passed since the last one.

        Returns:
            True if a sync request went out and succeeded
        """
        async with self._lock:
            start = self._clock()
            if self._last_sync is not None and start - self._last_sync <= self.interval:
                return False
            try:
                await connection.call(connection.store.request_sync(), "request_sync")
            except Exception as e:
                logger.warning(f"request_sync failed, continuing without it: {e}")
                return False
            self._last_sync = self._clock()
            logger.info(f"request_sync took {(self._last_sync - start) * 1000:.0f} ms")
            return True
