"""
Connection lifecycle for the remote store

ConnectionManager owns the single authenticated session. Sign-in is
single-flight: callers arriving while a sign-in is running await that same
attempt instead of starting another one.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional, TYPE_CHECKING

from .errors import OperationTimeout, SignInFailure
from .store import Account, RemoteStore

if TYPE_CHECKING:
    from .throttle import SyncThrottler

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """Session handle bound to one signed-in account"""
    store: RemoteStore
    account: Account
    call_timeout: Optional[float] = None

    async def call(self, awaitable: Awaitable[Any], description: str = "remote call") -> Any:
        """
        Await a remote call, bounded by the per-call timeout

        Raises:
            OperationTimeout: If the call did not finish in time
        """
        if self.call_timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.call_timeout)
        except asyncio.TimeoutError as e:
            raise OperationTimeout(
                f"{description} did not finish within {self.call_timeout}s"
            ) from e


class ConnectionManager:
    """
    Owns the process-wide store session.

    Usage:
        manager = ConnectionManager(store, call_timeout=120)
        connection = await manager.ensure(interactive=True)
        ...
        await manager.teardown()
    """

    def __init__(
        self,
        store: RemoteStore,
        call_timeout: Optional[float] = None,
        throttler: Optional["SyncThrottler"] = None,
    ) -> None:
        self.store = store
        self.call_timeout = call_timeout
        self._throttler = throttler
        self._lock = asyncio.Lock()
        self._connection: Optional[Connection] = None
        self._pending: Optional["asyncio.Future[Connection]"] = None
        # Bumped on teardown so a sign-in that started earlier cannot resurrect the session
        self._generation = 0

    @property
    def connection(self) -> Optional[Connection]:
        """The cached connection, or None before the first sign-in"""
        return self._connection

    async def ensure(self, interactive: bool) -> Connection:
        """
        Return the live connection, signing in if needed.

        Args:
            interactive: Allow the store to prompt for credentials

        Raises:
            SignInFailure: If authentication failed; the cause is chained
        """
        async with self._lock:
            if self._connection is not None:
                return self._connection
            if self._pending is None:
                self._pending = asyncio.ensure_future(
                    self._sign_in(interactive, self._generation)
                )
            pending = self._pending
        return await asyncio.shield(pending)

    async def _sign_in(self, interactive: bool, generation: int) -> Connection:
        logger.info(f"Signing in to remote store (interactive={interactive})")
        try:
            account = await self.store.authenticate(interactive)
        except Exception as e:
            async with self._lock:
                if generation == self._generation:
                    self._pending = None
            logger.error(f"Sign-in failed: {e}")
            raise SignInFailure(f"Sign-in failed: {e}") from e

        connection = Connection(store=self.store, account=account, call_timeout=self.call_timeout)
        if self._throttler is not None:
            await self._throttler.maybe_sync(connection)

        async with self._lock:
            # After a teardown, _pending belongs to a newer sign-in
            if generation == self._generation:
                self._pending = None
                self._connection = connection
        logger.info(f"Signed in as {account.account_id}")
        return connection

    async def teardown(self) -> None:
        """Drop the cached connection; the next ensure() signs in again"""
        async with self._lock:
            self._connection = None
            self._pending = None
            self._generation += 1
        logger.info("Connection torn down")
