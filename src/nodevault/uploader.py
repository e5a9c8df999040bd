"""
Versioned upload of backup snapshots

Each backup lands in a fresh version folder under the node folder. Only
once every file is confirmed uploaded does the node folder's pointer move
to the new version, and only after the pointer moved are older versions
pruned. A crash at any point leaves a valid active version behind; at
worst an orphaned version folder remains as garbage.
"""

import logging
import uuid
from functools import partial
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from .connection import Connection
from .errors import InvalidArguments, PartialUploadFailure
from .fanout import wait_for_all
from .state import NodeFolderState
from .store import FileRef, FolderRef

logger = logging.getLogger(__name__)


def new_version_id() -> str:
    return str(uuid.uuid4())


class VersionedUploader:
    """Writes a new backup version, switches the active pointer, prunes the old one"""

    def __init__(
        self,
        max_concurrency: Optional[int] = None,
        version_id_factory: Callable[[], str] = new_version_id,
    ) -> None:
        self.max_concurrency = max_concurrency
        self._version_id_factory = version_id_factory

    async def _upload_one(self, connection: Connection, folder: FolderRef, path: Path) -> FileRef:
        file_ref = await connection.call(
            connection.store.upload_file(folder, path),
            f"upload {path.name}",
        )
        logger.debug(f"Uploaded {path} to {folder.title}")
        return file_ref

    async def upload_version(
        self,
        connection: Connection,
        node_folder: FolderRef,
        paths: Sequence[Union[str, Path]],
        backup_id: str,
    ) -> str:
        """
        Upload ``paths`` as a new version and make it the active one.

        Args:
            connection: Live store connection
            node_folder: Folder of the node being backed up
            paths: Local files making up the snapshot
            backup_id: Backup ID recorded as the owner of the new version

        Returns:
            Identifier of the new active version

        Raises:
            InvalidArguments: If paths is empty or two paths share a file name
            PartialUploadFailure: If any file failed; the pointer is left untouched
        """
        if not paths:
            raise InvalidArguments("A backup needs at least one file")
        names = [Path(path).name for path in paths]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            # Files land in the version folder by name only
            raise InvalidArguments(f"Backup files must have distinct names: {', '.join(duplicates)}")

        store = connection.store
        version_id = self._version_id_factory()
        logger.info(f"Uploading {len(paths)} files to {node_folder.title} as version {version_id}")

        version_folder = await connection.call(
            store.create_folder(node_folder, version_id),
            f"create version folder {version_id}",
        )

        factories = [
            partial(self._upload_one, connection, version_folder, Path(path))
            for path in paths
        ]
        result = await wait_for_all(factories, limit=self.max_concurrency)
        if not result.ok:
            for index, error in result.failures:
                logger.error(f"Upload of {paths[index]} failed: {error}")
            raise PartialUploadFailure(
                expected=len(paths),
                completed=result.completed,
                failures=result.failures,
            )

        # Commit: one metadata write moves both the version pointer and the owner
        state = NodeFolderState(active_backup_id=backup_id, active_version_id=version_id)
        await connection.call(
            store.update_metadata(node_folder, state.to_tags()),
            f"activate version {version_id}",
        )
        logger.info(f"Version {version_id} is now active for {node_folder.title}")

        await self.prune_stale_versions(connection, node_folder, version_id)
        return version_id

    async def prune_stale_versions(
        self,
        connection: Connection,
        node_folder: FolderRef,
        active_version_id: str,
    ) -> int:
        """
        Delete every version folder except the active one.

        Failures are logged and left as garbage; the commit already happened.

        Returns:
            Number of version folders deleted
        """
        store = connection.store
        try:
            children = await connection.call(
                store.list_children(node_folder, folders_only=True),
                f"list versions of {node_folder.title}",
            )
        except Exception as e:
            logger.warning(f"Could not list stale versions of {node_folder.title}: {e}")
            return 0

        deleted = 0
        for item in children:
            if item.title == active_version_id:
                continue
            try:
                await connection.call(store.delete(item.ref), f"delete stale version {item.title}")
                deleted += 1
            except Exception as e:
                logger.warning(f"Could not delete stale version {item.title}: {e}")
        if deleted:
            logger.info(f"Pruned {deleted} stale versions from {node_folder.title}")
        return deleted
