"""Pytest fixtures for NodeVault tests"""
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import pytest


# Ensure nodevault modules are importable
def ensure_nodevault_importable():
    """Add src to path if needed."""
    test_dir = Path(__file__).resolve().parent
    src_path = test_dir.parent / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


ensure_nodevault_importable()

from nodevault.event_bus import reset_event_bus  # noqa: E402
from nodevault.local_store import LocalFolderStore  # noqa: E402
from nodevault.store import Account, FileRef, FolderRef, RemoteStore, StoreError  # noqa: E402


class InstrumentedStore(RemoteStore):
    """
    RemoteStore wrapper that counts calls and injects failures.

    Delegates to a real store; tests flip the knobs below to make
    sign-in slow or failing, or single uploads/downloads fail or hang.
    """

    def __init__(self, inner: RemoteStore):
        self.inner = inner
        self.auth_calls: List[bool] = []
        self.sync_calls = 0
        self.sign_out_calls = 0
        self.auth_delay = 0.0
        # Each sign-in takes the next gate and waits until the test sets it
        self.auth_gates: List[asyncio.Event] = []
        self.auth_error: Optional[Exception] = None
        self.sync_error: Optional[Exception] = None
        self.sign_out_error: Optional[Exception] = None
        self.fail_uploads: Set[str] = set()
        self.hang_uploads: Set[str] = set()
        self.fail_downloads: Set[str] = set()
        self.metadata_updates: List[Dict[str, Optional[str]]] = []
        self.fail_deletes = False

    async def authenticate(self, interactive: bool) -> Account:
        self.auth_calls.append(interactive)
        if self.auth_gates:
            await self.auth_gates.pop(0).wait()
        if self.auth_delay:
            await asyncio.sleep(self.auth_delay)
        if self.auth_error is not None:
            raise self.auth_error
        return await self.inner.authenticate(interactive)

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        if self.sign_out_error is not None:
            raise self.sign_out_error
        await self.inner.sign_out()

    async def get_root_folder(self) -> FolderRef:
        return await self.inner.get_root_folder()

    async def list_children(self, folder, folders_only=False, title=None):
        return await self.inner.list_children(folder, folders_only=folders_only, title=title)

    async def create_folder(self, parent, title, pinned=False):
        return await self.inner.create_folder(parent, title, pinned=pinned)

    async def get_metadata(self, folder):
        return await self.inner.get_metadata(folder)

    async def update_metadata(self, folder, changes):
        self.metadata_updates.append(dict(changes))
        await self.inner.update_metadata(folder, changes)

    async def upload_file(self, folder: FolderRef, local_path: Path) -> FileRef:
        name = Path(local_path).name
        if name in self.hang_uploads:
            await asyncio.Event().wait()
        if name in self.fail_uploads:
            raise StoreError(f"injected upload failure for {name}")
        return await self.inner.upload_file(folder, local_path)

    async def download_file(self, file_ref: FileRef, dest_dir: Path) -> Path:
        if file_ref.name in self.fail_downloads:
            raise StoreError(f"injected download failure for {file_ref.name}")
        return await self.inner.download_file(file_ref, dest_dir)

    async def delete(self, ref: Any) -> None:
        if self.fail_deletes:
            raise StoreError(f"injected delete failure for {ref.title}")
        await self.inner.delete(ref)

    async def request_sync(self) -> None:
        self.sync_calls += 1
        if self.sync_error is not None:
            raise self.sync_error
        await self.inner.request_sync()


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Give every test its own global event bus."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def store_root(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def local_store(store_root):
    return LocalFolderStore(store_root)


@pytest.fixture
def store(local_store):
    return InstrumentedStore(local_store)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coordinator(store, tmp_path, clock):
    from nodevault.coordinator import BackupCoordinator

    return BackupCoordinator(store, cache_dir=tmp_path / "restore", clock=clock)


@pytest.fixture
def backup_files(tmp_path):
    """Create sample backup files: f1, f2, f3 with distinct contents."""
    source = tmp_path / "source"
    source.mkdir()
    files = {}
    for name, content in (
        ("f1.db", b"channel state one"),
        ("f2.db", b"wallet state two\x00\x01\x02"),
        ("f3.db", b"third file" * 100),
    ):
        path = source / name
        path.write_bytes(content)
        files[name] = path
    return files
