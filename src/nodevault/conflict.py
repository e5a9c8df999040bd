"""
Backup ownership guard

A node folder records which backup ID last wrote (or restored) it. Before a
device mutates a node's backups it checks that the recorded ID matches its
own; a mismatch means another device owns the lineage. The check is
optimistic: nothing is locked between the check and the write.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .connection import Connection
from .errors import BackupConflictError
from .state import NodeFolderState
from .store import FolderRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardResult:
    """Outcome of an ownership check: ok, or a conflict between two IDs"""
    is_conflict: bool = False
    existing: Optional[str] = None
    requested: Optional[str] = None

    @classmethod
    def ok(cls, requested: Optional[str] = None) -> "GuardResult":
        return cls(is_conflict=False, requested=requested)

    @classmethod
    def conflict(cls, existing: str, requested: str) -> "GuardResult":
        return cls(is_conflict=True, existing=existing, requested=requested)

    @property
    def is_ok(self) -> bool:
        return not self.is_conflict

    def raise_for_conflict(self) -> None:
        """Raise BackupConflictError if this result is a conflict"""
        if self.is_conflict:
            raise BackupConflictError(existing=self.existing, requested=self.requested)


class ConflictGuard:
    """Reads and writes the active backup ID tag of node folders"""

    async def read_state(self, connection: Connection, folder: FolderRef) -> NodeFolderState:
        tags = await connection.call(
            connection.store.get_metadata(folder),
            f"read metadata of {folder.title}",
        )
        return NodeFolderState.from_tags(tags)

    async def evaluate(
        self,
        connection: Connection,
        folder: FolderRef,
        requested: str,
    ) -> GuardResult:
        """Compare the folder's recorded backup ID with ``requested``"""
        state = await self.read_state(connection, folder)
        existing = state.active_backup_id
        if existing is not None and existing != requested:
            logger.info(
                f"Conflict detected on {folder.title}: "
                f"existing backup ID = {existing}, requested = {requested}"
            )
            return GuardResult.conflict(existing=existing, requested=requested)
        return GuardResult.ok(requested=requested)

    async def check_no_conflict(
        self,
        connection: Connection,
        folder: FolderRef,
        requested: str,
    ) -> None:
        """
        Raises:
            BackupConflictError: If another backup ID owns the folder
        """
        result = await self.evaluate(connection, folder, requested)
        result.raise_for_conflict()

    async def mark_backup_id(self, connection: Connection, folder: FolderRef, backup_id: str) -> None:
        """Unconditionally record ``backup_id`` as the folder's owner"""
        changes = NodeFolderState(active_backup_id=backup_id).to_tags(include_empty=False)
        await connection.call(
            connection.store.update_metadata(folder, changes),
            f"mark backup ID on {folder.title}",
        )
        logger.info(f"Marked {folder.title} as owned by backup ID {backup_id}")
