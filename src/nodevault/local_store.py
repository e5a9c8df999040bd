"""
Local folder store - a directory tree acting as the remote store

Folders are directories; every folder carries a hidden sidecar file holding
its id, title, pinned flag and custom tags. Used for development, the CLI's
default backend and the test-suite.
"""

import asyncio
import json
import logging
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any

import aiofiles
import aiofiles.os

from .store import (
    Account,
    FileRef,
    FolderRef,
    ItemMetadata,
    RemoteStore,
    StoreAuthError,
    StoreNotFoundError,
)

logger = logging.getLogger(__name__)

META_FILE = ".nodevault-meta.json"
CHUNK_SIZE = 1024 * 1024


class LocalFolderStore(RemoteStore):
    """
    Filesystem-backed RemoteStore

    Folder and file references carry paths relative to ``root``. Folder
    directories are named by a generated id so two folders may share a
    title, as in real folder stores.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()
        self._meta_lock = asyncio.Lock()

    # ------------------------------------------------------------------ paths

    def _path(self, ref_id: str) -> Path:
        return self.root / ref_id if ref_id else self.root

    def _read_meta(self, folder_path: Path) -> Dict[str, Any]:
        meta_path = folder_path / META_FILE
        if not meta_path.exists():
            return {"title": folder_path.name, "pinned": False, "tags": {}}
        return json.loads(meta_path.read_text())

    def _write_meta(self, folder_path: Path, meta: Dict[str, Any]) -> None:
        # Atomic replace; readers see the old or the new sidecar
        tmp_path = folder_path / f"{META_FILE}.{uuid.uuid4().hex}.tmp"
        tmp_path.write_text(json.dumps(meta, indent=2, sort_keys=True))
        tmp_path.replace(folder_path / META_FILE)

    def _require_folder(self, folder: FolderRef) -> Path:
        path = self._path(folder.ref_id)
        if not path.is_dir():
            raise StoreNotFoundError(f"Folder not found: {folder.title} ({folder.ref_id})")
        return path

    # ---------------------------------------------------------------- session

    async def authenticate(self, interactive: bool) -> Account:
        if not self.root.exists():
            if not interactive:
                raise StoreAuthError(f"No store found at {self.root} (silent sign-in)")
            self.root.mkdir(parents=True, exist_ok=True)
        return Account(account_id=str(self.root), display_name=self.root.name)

    async def sign_out(self) -> None:
        logger.debug(f"Signed out of local store {self.root}")

    async def request_sync(self) -> None:
        # A local tree is always in sync with itself
        return None

    # ---------------------------------------------------------------- folders

    async def get_root_folder(self) -> FolderRef:
        self.root.mkdir(parents=True, exist_ok=True)
        return FolderRef(ref_id="", title=self.root.name)

    async def list_children(
        self,
        folder: FolderRef,
        folders_only: bool = False,
        title: Optional[str] = None,
    ) -> List[ItemMetadata]:
        folder_path = self._require_folder(folder)
        items: List[ItemMetadata] = []
        for child in sorted(folder_path.iterdir()):
            if child.name.startswith(META_FILE):
                continue
            stat = child.stat()
            modified = datetime.fromtimestamp(stat.st_mtime)
            ref_id = str(child.relative_to(self.root))
            if child.is_dir():
                child_title = self._read_meta(child)["title"]
                if title is not None and child_title != title:
                    continue
                items.append(ItemMetadata(
                    ref=FolderRef(ref_id=ref_id, title=child_title),
                    title=child_title,
                    is_folder=True,
                    modified=modified,
                ))
            elif not folders_only:
                if title is not None and child.name != title:
                    continue
                items.append(ItemMetadata(
                    ref=FileRef(ref_id=ref_id, name=child.name, size=stat.st_size),
                    title=child.name,
                    is_folder=False,
                    size=stat.st_size,
                    modified=modified,
                ))
        return items

    async def create_folder(
        self,
        parent: FolderRef,
        title: str,
        pinned: bool = False,
    ) -> FolderRef:
        parent_path = self._require_folder(parent)
        folder_path = parent_path / uuid.uuid4().hex
        folder_path.mkdir()
        self._write_meta(folder_path, {
            "title": title,
            "pinned": pinned,
            "tags": {},
            "created_at": datetime.now().isoformat(),
        })
        return FolderRef(ref_id=str(folder_path.relative_to(self.root)), title=title)

    async def get_metadata(self, folder: FolderRef) -> Dict[str, str]:
        folder_path = self._require_folder(folder)
        return dict(self._read_meta(folder_path).get("tags", {}))

    async def update_metadata(
        self,
        folder: FolderRef,
        changes: Dict[str, Optional[str]],
    ) -> None:
        folder_path = self._require_folder(folder)
        async with self._meta_lock:
            meta = self._read_meta(folder_path)
            tags = meta.setdefault("tags", {})
            for key, value in changes.items():
                if value is None:
                    tags.pop(key, None)
                else:
                    tags[key] = value
            self._write_meta(folder_path, meta)

    # ------------------------------------------------------------------ files

    async def upload_file(self, folder: FolderRef, local_path: Path) -> FileRef:
        local_path = Path(local_path)
        if not local_path.exists():
            raise FileNotFoundError(f"Local file not found: {local_path}")
        folder_path = self._require_folder(folder)
        target = folder_path / local_path.name
        await _copy_file(local_path, target)
        return FileRef(
            ref_id=str(target.relative_to(self.root)),
            name=target.name,
            size=target.stat().st_size,
        )

    async def download_file(self, file_ref: FileRef, dest_dir: Path) -> Path:
        source = self._path(file_ref.ref_id)
        if not source.is_file():
            raise StoreNotFoundError(f"File not found: {file_ref.name} ({file_ref.ref_id})")
        await aiofiles.os.makedirs(dest_dir, exist_ok=True)
        target = Path(dest_dir) / file_ref.name
        await _copy_file(source, target)
        return target

    async def delete(self, ref: Any) -> None:
        path = self._path(ref.ref_id)
        if not ref.ref_id or not path.exists():
            raise StoreNotFoundError(f"Cannot delete {ref!r}")
        if path.is_dir():
            await asyncio.to_thread(shutil.rmtree, path)
        else:
            await aiofiles.os.remove(path)


async def _copy_file(source: Path, target: Path) -> None:
    """Stream-copy a file with aiofiles"""
    async with aiofiles.open(source, "rb") as src:
        async with aiofiles.open(target, "wb") as dst:
            while True:
                chunk = await src.read(CHUNK_SIZE)
                if not chunk:
                    break
                await dst.write(chunk)
