"""
BackupCoordinator - the backup/restore protocol behind one facade

Every operation first ensures a connection, then (where relevant) asks for
a throttled sync, resolves the node folder and performs the versioned
write or read. Operations are coroutines; callers that want them to run
side by side schedule them as tasks on the same loop.
"""

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from .config import VaultConfig, create_store_from_config
from .conflict import ConflictGuard, GuardResult
from .connection import Connection, ConnectionManager
from .downloader import Downloader
from .errors import SignOutFailure, UnhandledError, VaultError
from .event_bus import EventBus, get_event_bus
from .events import (
    BackupCompletedEvent,
    BackupFailedEvent,
    ConflictDetectedEvent,
    RestoreCompletedEvent,
    SignedOutEvent,
)
from .folders import FolderResolver
from .store import RemoteStore
from .throttle import DEFAULT_SYNC_INTERVAL, SyncThrottler
from .uploader import VersionedUploader

logger = logging.getLogger(__name__)


class BackupCoordinator:
    """
    Orchestrates backup, restore, listing, safety checks and sign-out.

    Features:
    - Single-flight sign-in shared by all operations
    - Versioned uploads committed by one metadata write
    - Optimistic ownership checks keyed by backup ID
    - All-or-nothing parallel restore
    """

    def __init__(
        self,
        store: RemoteStore,
        cache_dir: Path,
        sync_interval: float = DEFAULT_SYNC_INTERVAL,
        call_timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        """
        Args:
            store: Remote store all operations run against
            cache_dir: Directory restores download into (one sub-directory per node)
            sync_interval: Minimum seconds between two sync requests
            call_timeout: Per remote call timeout in seconds (None = wait forever)
            max_concurrency: Maximum parallel uploads/downloads per operation
            clock: Monotonic clock used by the sync throttler
            event_bus: Bus for operation events (default: global bus)
        """
        self.store = store
        self.cache_dir = Path(cache_dir)
        self.throttler = SyncThrottler(interval=sync_interval, clock=clock)
        self.connections = ConnectionManager(store, call_timeout=call_timeout, throttler=self.throttler)
        self.folders = FolderResolver()
        self.guard = ConflictGuard()
        self.uploader = VersionedUploader(max_concurrency=max_concurrency)
        self.downloader = Downloader(max_concurrency=max_concurrency)
        self._event_bus = event_bus

    @classmethod
    def from_config(cls, config: VaultConfig, **kwargs) -> "BackupCoordinator":
        """Build a coordinator (and its store) from a VaultConfig"""
        return cls(
            store=create_store_from_config(config),
            cache_dir=config.cache_dir,
            sync_interval=config.sync_interval,
            call_timeout=config.call_timeout,
            max_concurrency=config.max_concurrency or None,
            **kwargs,
        )

    @property
    def events(self) -> EventBus:
        return self._event_bus or get_event_bus()

    async def _connect(self, silent: bool) -> Connection:
        return await self.connections.ensure(interactive=not silent)

    async def backup(
        self,
        node_id: str,
        backup_id: str,
        paths: Sequence[Union[str, Path]],
        silent: bool = False,
    ) -> bool:
        """
        Upload ``paths`` as the node's new active backup version.

        Callers are expected to run check_safe() first; backup itself does
        not consult the ownership tag.
        """
        connection = await self._connect(silent)
        try:
            node_folder = await self.folders.get_or_create_node_folder(connection, node_id)
            version_id = await self.uploader.upload_version(connection, node_folder, paths, backup_id)
        except Exception as e:
            error_code = e.code if isinstance(e, VaultError) else UnhandledError.code
            self.events.publish(BackupFailedEvent(
                node_id=node_id, backup_id=backup_id, error_code=error_code, message=str(e),
            ))
            raise
        self.events.publish(BackupCompletedEvent(
            node_id=node_id, backup_id=backup_id, version_id=version_id, file_count=len(paths),
        ))
        return True

    async def restore(self, node_id: str, backup_id: str, silent: bool = False) -> List[str]:
        """
        Claim the node for ``backup_id`` and download its active version.

        Ownership is claimed before the download starts; a device backing up
        the same node meanwhile is not detected. Files left in the node's
        restore directory by an earlier restore are removed first.

        Returns:
            Local paths of the restored files
        """
        connection = await self._connect(silent)
        node_folder = await self.folders.get_or_create_node_folder(connection, node_id)
        await self.guard.mark_backup_id(connection, node_folder, backup_id)
        destination = self.cache_dir / node_id
        if destination.exists():
            logger.debug(f"Clearing previous restore in {destination}")
            await asyncio.to_thread(shutil.rmtree, destination)
        paths = await self.downloader.download_active_version(connection, node_folder, destination)
        restored = [str(path) for path in paths]
        self.events.publish(RestoreCompletedEvent(node_id=node_id, backup_id=backup_id, paths=restored))
        return restored

    async def list_available(self, silent: bool = False) -> Dict[str, str]:
        """Map every node id with a folder in the store to its folder reference"""
        connection = await self._connect(silent)
        return await self.folders.list_node_folders(connection)

    async def check_safe(self, node_id: str, backup_id: str, silent: bool = False) -> GuardResult:
        """
        Check whether ``backup_id`` may write the node's backups.

        Returns:
            GuardResult.ok() or GuardResult.conflict(existing, requested)
        """
        connection = await self._connect(silent)
        await self.throttler.maybe_sync(connection)
        node_folder = await self.folders.get_or_create_node_folder(connection, node_id)
        logger.info(f"check_safe node_id = {node_id} backup_id = {backup_id}")
        result = await self.guard.evaluate(connection, node_folder, backup_id)
        if result.is_conflict:
            self.events.publish(ConflictDetectedEvent(
                node_id=node_id, existing=result.existing, requested=result.requested,
            ))
        return result

    async def sign_out(self) -> bool:
        """
        Revoke the store session and drop the cached connection.

        Raises:
            SignOutFailure: If the store refused to sign out
        """
        current = self.connections.connection
        try:
            await self.store.sign_out()
        except Exception as e:
            raise SignOutFailure(f"Sign-out failed: {e}") from e
        await self.connections.teardown()
        self.events.publish(SignedOutEvent(
            account_id=current.account.account_id if current else None,
        ))
        return True
