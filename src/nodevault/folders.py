"""Maps node identifiers to their folders under the store root."""

import asyncio
import logging
from typing import Dict, Optional

from .connection import Connection
from .store import FolderRef

logger = logging.getLogger(__name__)


class FolderResolver:
    """
    Looks up (and lazily creates) one folder per node, titled by node id.

    Lookup is by exact title among the root's sub-folders. Creation inside
    this process is serialized so concurrent first backups for a node do
    not create twin folders.
    """

    def __init__(self) -> None:
        self._create_lock = asyncio.Lock()

    async def _root(self, connection: Connection) -> FolderRef:
        return await connection.call(connection.store.get_root_folder(), "get root folder")

    async def _lookup(self, connection: Connection, root: FolderRef, node_id: str) -> Optional[FolderRef]:
        matches = await connection.call(
            connection.store.list_children(root, folders_only=True, title=node_id),
            f"look up node folder {node_id}",
        )
        return matches[0].ref if matches else None

    async def find_node_folder(self, connection: Connection, node_id: str) -> Optional[FolderRef]:
        """Return the node's folder, or None if it was never created"""
        root = await self._root(connection)
        return await self._lookup(connection, root, node_id)

    async def get_or_create_node_folder(self, connection: Connection, node_id: str) -> FolderRef:
        """Return the node's folder, creating a pinned one if absent"""
        async with self._create_lock:
            root = await self._root(connection)
            folder = await self._lookup(connection, root, node_id)
            if folder is None:
                folder = await connection.call(
                    connection.store.create_folder(root, node_id, pinned=True),
                    f"create node folder {node_id}",
                )
                logger.info(f"Created node folder for {node_id}: {folder.ref_id}")
            return folder

    async def list_node_folders(self, connection: Connection) -> Dict[str, str]:
        """Map every first-level folder title (node id) to its folder reference"""
        root = await self._root(connection)
        children = await connection.call(
            connection.store.list_children(root, folders_only=True),
            "list node folders",
        )
        return {item.title: item.ref.ref_id for item in children}
