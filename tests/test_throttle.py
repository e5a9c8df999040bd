"""Tests for SyncThrottler"""
import pytest

from nodevault.connection import Connection
from nodevault.store import Account
from nodevault.throttle import DEFAULT_SYNC_INTERVAL, SyncThrottler


@pytest.fixture
def connection(store):
    return Connection(store=store, account=Account("test"))


class TestSyncThrottler:
    """Sync requests are rate limited by a monotonic clock."""

    def test_default_interval(self):
        assert DEFAULT_SYNC_INTERVAL == 60.0
        assert SyncThrottler().interval == 60.0

    @pytest.mark.asyncio
    async def test_first_call_syncs(self, connection, store, clock):
        throttler = SyncThrottler(clock=clock)

        assert await throttler.maybe_sync(connection) is True
        assert store.sync_calls == 1
        assert throttler.last_sync == clock.now

    @pytest.mark.asyncio
    async def test_second_call_within_interval_is_skipped(self, connection, store, clock):
        throttler = SyncThrottler(clock=clock)
        await throttler.maybe_sync(connection)

        clock.advance(60)
        assert await throttler.maybe_sync(connection) is False
        assert store.sync_calls == 1

    @pytest.mark.asyncio
    async def test_call_after_interval_syncs_again(self, connection, store, clock):
        throttler = SyncThrottler(clock=clock)
        await throttler.maybe_sync(connection)

        clock.advance(61)
        assert await throttler.maybe_sync(connection) is True
        assert store.sync_calls == 2

    @pytest.mark.asyncio
    async def test_failure_is_swallowed_and_not_recorded(self, connection, store, clock):
        """A failed sync does not count towards the interval."""
        throttler = SyncThrottler(clock=clock)
        store.sync_error = RuntimeError("server unavailable")

        assert await throttler.maybe_sync(connection) is False
        assert throttler.last_sync is None

        store.sync_error = None
        assert await throttler.maybe_sync(connection) is True
        assert store.sync_calls == 2

    @pytest.mark.asyncio
    async def test_custom_interval(self, connection, store, clock):
        throttler = SyncThrottler(interval=5, clock=clock)
        await throttler.maybe_sync(connection)

        clock.advance(6)
        await throttler.maybe_sync(connection)

        assert store.sync_calls == 2
