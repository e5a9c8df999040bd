"""Parallel, all-or-nothing download of a node's active backup version."""

import logging
from functools import partial
from pathlib import Path
from typing import List, Optional

from .connection import Connection
from .errors import NoBackupFound, PartialDownloadFailure
from .fanout import wait_for_all
from .state import NodeFolderState
from .store import FileRef, FolderRef

logger = logging.getLogger(__name__)


class Downloader:
    """Resolves the active version of a node folder and fetches all its files"""

    def __init__(self, max_concurrency: Optional[int] = None) -> None:
        self.max_concurrency = max_concurrency

    async def resolve_active_version(self, connection: Connection, node_folder: FolderRef) -> FolderRef:
        """
        Raises:
            NoBackupFound: If no version is active or its folder is gone
        """
        store = connection.store
        tags = await connection.call(store.get_metadata(node_folder), f"read metadata of {node_folder.title}")
        version_id = NodeFolderState.from_tags(tags).active_version_id
        if not version_id:
            raise NoBackupFound(f"No active backup version for node {node_folder.title}")

        matches = await connection.call(
            store.list_children(node_folder, folders_only=True, title=version_id),
            f"look up version {version_id}",
        )
        if not matches:
            raise NoBackupFound(
                f"Active version {version_id} of node {node_folder.title} is missing"
            )
        return matches[0].ref

    async def _download_one(self, connection: Connection, file_ref: FileRef, destination: Path) -> Path:
        path = await connection.call(
            connection.store.download_file(file_ref, destination),
            f"download {file_ref.name}",
        )
        logger.debug(f"Downloaded {file_ref.name} to {path}")
        return Path(path)

    async def download_active_version(
        self,
        connection: Connection,
        node_folder: FolderRef,
        destination: Path,
    ) -> List[Path]:
        """
        Download every file of the active version into ``destination``.

        Returns:
            Local paths in download-completion order

        Raises:
            NoBackupFound: If the node has no active version
            PartialDownloadFailure: If any file failed to download
        """
        version_folder = await self.resolve_active_version(connection, node_folder)
        children = await connection.call(
            connection.store.list_children(version_folder),
            f"list files of version {version_folder.title}",
        )
        files = [item.ref for item in children if not item.is_folder]

        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)
        logger.info(
            f"Downloading {len(files)} files of version {version_folder.title} to {destination}"
        )

        factories = [partial(self._download_one, connection, ref, destination) for ref in files]
        result = await wait_for_all(factories, limit=self.max_concurrency)
        if not result.ok:
            for index, error in result.failures:
                logger.error(f"Download of {files[index].name} failed: {error}")
            raise PartialDownloadFailure(
                expected=len(files),
                completed=result.completed,
                failures=result.failures,
            )
        return list(result.successes)
