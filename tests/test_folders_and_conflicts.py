"""
Tests for FolderResolver, ConflictGuard and NodeFolderState

Covers:
- Node folder lookup, lazy creation and pinning
- Listing node folders
- Ownership evaluation and marking
- Tag conversion
"""

import asyncio
import json

import pytest

from nodevault.conflict import ConflictGuard, GuardResult
from nodevault.connection import Connection
from nodevault.errors import BackupConflictError
from nodevault.folders import FolderResolver
from nodevault.local_store import META_FILE
from nodevault.state import ACTIVE_BACKUP_ID_TAG, ACTIVE_VERSION_ID_TAG, NodeFolderState
from nodevault.store import Account


@pytest.fixture
def connection(store, store_root):
    store_root.mkdir(parents=True)
    return Connection(store=store, account=Account(str(store_root)))


class TestNodeFolderState:
    """Tests for tag conversion."""

    def test_from_empty_tags(self):
        state = NodeFolderState.from_tags({})
        assert state.active_backup_id is None
        assert state.active_version_id is None

    def test_from_none(self):
        assert NodeFolderState.from_tags(None) == NodeFolderState()

    def test_empty_strings_read_as_unset(self):
        state = NodeFolderState.from_tags({ACTIVE_BACKUP_ID_TAG: ""})
        assert state.active_backup_id is None

    def test_to_tags_round_trip(self):
        state = NodeFolderState(active_backup_id="abc", active_version_id="v1")
        assert NodeFolderState.from_tags(state.to_tags()) == state

    def test_to_tags_without_empty(self):
        tags = NodeFolderState(active_backup_id="abc").to_tags(include_empty=False)
        assert tags == {ACTIVE_BACKUP_ID_TAG: "abc"}

    def test_to_tags_with_empty(self):
        tags = NodeFolderState(active_backup_id="abc").to_tags()
        assert tags == {ACTIVE_BACKUP_ID_TAG: "abc", ACTIVE_VERSION_ID_TAG: None}


class TestFolderResolver:
    """Tests for node folder resolution."""

    @pytest.mark.asyncio
    async def test_find_missing_node_returns_none(self, connection):
        assert await FolderResolver().find_node_folder(connection, "node1") is None

    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, connection):
        resolver = FolderResolver()

        first = await resolver.get_or_create_node_folder(connection, "node1")
        second = await resolver.get_or_create_node_folder(connection, "node1")

        assert first == second
        assert first.title == "node1"
        assert await resolver.find_node_folder(connection, "node1") == first

    @pytest.mark.asyncio
    async def test_created_folder_is_pinned(self, connection, store_root):
        folder = await FolderResolver().get_or_create_node_folder(connection, "node1")

        meta = json.loads((store_root / folder.ref_id / META_FILE).read_text())
        assert meta["pinned"] is True

    @pytest.mark.asyncio
    async def test_concurrent_creation_yields_one_folder(self, connection):
        resolver = FolderResolver()

        folders = await asyncio.gather(
            *[resolver.get_or_create_node_folder(connection, "node1") for _ in range(5)]
        )

        assert len(set(folders)) == 1
        assert len(await resolver.list_node_folders(connection)) == 1

    @pytest.mark.asyncio
    async def test_list_node_folders(self, connection):
        resolver = FolderResolver()
        node1 = await resolver.get_or_create_node_folder(connection, "node1")
        node2 = await resolver.get_or_create_node_folder(connection, "node2")

        folders = await resolver.list_node_folders(connection)

        assert folders == {"node1": node1.ref_id, "node2": node2.ref_id}

    @pytest.mark.asyncio
    async def test_lookup_is_exact_title_match(self, connection):
        resolver = FolderResolver()
        await resolver.get_or_create_node_folder(connection, "node10")

        assert await resolver.find_node_folder(connection, "node1") is None


class TestGuardResult:
    """Tests for GuardResult."""

    def test_ok(self):
        result = GuardResult.ok("abc")
        assert result.is_ok
        result.raise_for_conflict()

    def test_conflict_raises(self):
        result = GuardResult.conflict(existing="abc", requested="xyz")

        with pytest.raises(BackupConflictError) as exc_info:
            result.raise_for_conflict()

        assert exc_info.value.existing == "abc"
        assert exc_info.value.requested == "xyz"
        assert exc_info.value.code == "BACKUP_CONFLICT_ERROR"


class TestConflictGuard:
    """Tests for ownership checks."""

    @pytest.mark.asyncio
    async def test_unowned_folder_is_ok(self, connection):
        folder = await FolderResolver().get_or_create_node_folder(connection, "node1")

        result = await ConflictGuard().evaluate(connection, folder, "abc")

        assert result.is_ok

    @pytest.mark.asyncio
    async def test_mark_then_check(self, connection):
        guard = ConflictGuard()
        folder = await FolderResolver().get_or_create_node_folder(connection, "node1")
        await guard.mark_backup_id(connection, folder, "abc")

        await guard.check_no_conflict(connection, folder, "abc")
        with pytest.raises(BackupConflictError):
            await guard.check_no_conflict(connection, folder, "xyz")

    @pytest.mark.asyncio
    async def test_mark_overwrites_owner_and_keeps_version(self, connection, store):
        guard = ConflictGuard()
        folder = await FolderResolver().get_or_create_node_folder(connection, "node1")
        await store.update_metadata(folder, {ACTIVE_BACKUP_ID_TAG: "abc", ACTIVE_VERSION_ID_TAG: "v1"})

        await guard.mark_backup_id(connection, folder, "xyz")

        state = await guard.read_state(connection, folder)
        assert state == NodeFolderState(active_backup_id="xyz", active_version_id="v1")
