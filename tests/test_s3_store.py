"""
Tests for S3FolderStore

Uses a mocked boto3 client; no network access.

Covers:
- Authentication and error mapping
- Folder markers and tag updates
- Listing with common prefixes
- File transfer and prefix deletion
"""

import json
from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("boto3")

from botocore.exceptions import ClientError  # noqa: E402

from nodevault.s3_store import MARKER_NAME, META_KEY, S3FolderStore  # noqa: E402
from nodevault.store import (  # noqa: E402
    FileRef,
    FolderRef,
    StoreAuthError,
    StoreError,
    StoreNotFoundError,
)


def _client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _marker(title, tags=None, pinned=False):
    return {"Metadata": {META_KEY: json.dumps({"title": title, "pinned": pinned, "tags": tags or {}})}}


@pytest.fixture
def s3_store():
    store = S3FolderStore(bucket="vault", prefix="nodes", access_key="key", secret_key="secret")
    store._client = MagicMock()
    return store


class TestS3Init:
    """Tests for construction and sign-in."""

    def test_prefix_normalized(self):
        assert S3FolderStore(bucket="b", prefix="/a/b/").prefix == "a/b/"
        assert S3FolderStore(bucket="b").prefix == ""

    def test_requires_boto3(self):
        with patch("nodevault.s3_store.BOTO3_AVAILABLE", False):
            with pytest.raises(ImportError, match="boto3"):
                S3FolderStore(bucket="b")

    @pytest.mark.asyncio
    async def test_authenticate_checks_bucket(self):
        store = S3FolderStore(bucket="vault", prefix="nodes")
        client = MagicMock()
        with patch.object(store, "_create_client", return_value=client):
            account = await store.authenticate(interactive=False)

        client.head_bucket.assert_called_once_with(Bucket="vault")
        assert account.account_id == "s3://vault/nodes/"

    @pytest.mark.asyncio
    async def test_authenticate_access_denied(self):
        store = S3FolderStore(bucket="vault")
        client = MagicMock()
        client.head_bucket.side_effect = _client_error("403", "HeadBucket")
        with patch.object(store, "_create_client", return_value=client):
            with pytest.raises(StoreAuthError):
                await store.authenticate(interactive=True)

        assert store._client is None

    @pytest.mark.asyncio
    async def test_sign_out_drops_client(self, s3_store):
        await s3_store.sign_out()

        with pytest.raises(StoreAuthError):
            await s3_store.get_metadata(FolderRef("nodes/x/", "x"))


class TestS3Folders:
    """Tests for folder markers and tags."""

    @pytest.mark.asyncio
    async def test_root_folder(self, s3_store):
        root = await s3_store.get_root_folder()
        assert root == FolderRef(ref_id="nodes/", title="vault")

    @pytest.mark.asyncio
    async def test_create_folder_writes_marker(self, s3_store):
        root = await s3_store.get_root_folder()

        folder = await s3_store.create_folder(root, "node1", pinned=True)

        assert folder.ref_id.startswith("nodes/") and folder.ref_id.endswith("/")
        kwargs = s3_store.client.put_object.call_args.kwargs
        assert kwargs["Key"] == f"{folder.ref_id}{MARKER_NAME}"
        assert json.loads(kwargs["Metadata"][META_KEY]) == {"title": "node1", "pinned": True, "tags": {}}

    @pytest.mark.asyncio
    async def test_get_metadata(self, s3_store):
        s3_store.client.head_object.return_value = _marker("node1", {"activeBackupID": "abc"})

        tags = await s3_store.get_metadata(FolderRef("nodes/n1/", "node1"))

        assert tags == {"activeBackupID": "abc"}

    @pytest.mark.asyncio
    async def test_untagged_root_has_no_metadata(self, s3_store):
        s3_store.client.head_object.side_effect = _client_error("404")

        assert await s3_store.get_metadata(FolderRef("nodes/", "vault")) == {}

    @pytest.mark.asyncio
    async def test_missing_folder_maps_to_not_found(self, s3_store):
        s3_store.client.head_object.side_effect = _client_error("404")

        with pytest.raises(StoreNotFoundError):
            await s3_store.get_metadata(FolderRef("nodes/gone/", "gone"))

    @pytest.mark.asyncio
    async def test_update_metadata_replaces_in_one_copy(self, s3_store):
        s3_store.client.head_object.return_value = _marker(
            "node1", {"activeBackupID": "abc", "activeVersionID": "v1"}, pinned=True,
        )

        await s3_store.update_metadata(FolderRef("nodes/n1/", "node1"), {"activeVersionID": "v2", "activeBackupID": None})

        s3_store.client.copy_object.assert_called_once()
        kwargs = s3_store.client.copy_object.call_args.kwargs
        assert kwargs["MetadataDirective"] == "REPLACE"
        assert kwargs["CopySource"] == {"Bucket": "vault", "Key": "nodes/n1/.folder"}
        meta = json.loads(kwargs["Metadata"][META_KEY])
        assert meta == {"title": "node1", "pinned": True, "tags": {"activeVersionID": "v2"}}

    @pytest.mark.asyncio
    async def test_list_children(self, s3_store):
        paginator = MagicMock()
        paginator.paginate.return_value = [{
            "CommonPrefixes": [{"Prefix": "nodes/a/"}, {"Prefix": "nodes/b/"}, {"Prefix": "nodes/stray/"}],
            "Contents": [{"Key": "nodes/.folder", "Size": 0}, {"Key": "nodes/f1.db", "Size": 12}],
        }]
        s3_store.client.get_paginator.return_value = paginator

        def head_object(Bucket, Key):
            markers = {"nodes/a/.folder": _marker("node1"), "nodes/b/.folder": _marker("node2")}
            if Key not in markers:
                raise _client_error("404")
            return markers[Key]

        s3_store.client.head_object.side_effect = head_object
        root = await s3_store.get_root_folder()

        everything = await s3_store.list_children(root)
        node1 = await s3_store.list_children(root, folders_only=True, title="node1")

        assert [item.title for item in everything] == ["node1", "node2", "f1.db"]
        assert everything[2].ref == FileRef(ref_id="nodes/f1.db", name="f1.db", size=12)
        assert [item.ref for item in node1] == [FolderRef("nodes/a/", "node1")]


class TestS3Files:
    """Tests for file transfer and deletion."""

    @pytest.mark.asyncio
    async def test_upload(self, s3_store, backup_files):
        folder = FolderRef("nodes/a/v1/", "v1")

        file_ref = await s3_store.upload_file(folder, backup_files["f1.db"])

        s3_store.client.upload_file.assert_called_once_with(
            str(backup_files["f1.db"]), "vault", "nodes/a/v1/f1.db",
        )
        assert file_ref.name == "f1.db"

    @pytest.mark.asyncio
    async def test_upload_missing_file(self, s3_store, tmp_path):
        with pytest.raises(FileNotFoundError):
            await s3_store.upload_file(FolderRef("nodes/", "vault"), tmp_path / "missing.db")

    @pytest.mark.asyncio
    async def test_download(self, s3_store, tmp_path):
        target = await s3_store.download_file(FileRef("nodes/a/v1/f1.db", "f1.db"), tmp_path / "out")

        assert target == tmp_path / "out" / "f1.db"
        s3_store.client.download_file.assert_called_once_with("vault", "nodes/a/v1/f1.db", str(target))

    @pytest.mark.asyncio
    async def test_download_error_is_mapped(self, s3_store, tmp_path):
        s3_store.client.download_file.side_effect = _client_error("NoSuchKey", "GetObject")

        with pytest.raises(StoreNotFoundError):
            await s3_store.download_file(FileRef("nodes/x", "x"), tmp_path)

    @pytest.mark.asyncio
    async def test_delete_folder_removes_prefix(self, s3_store):
        paginator = MagicMock()
        paginator.paginate.return_value = [{"Contents": [{"Key": "nodes/a/v1/.folder"}, {"Key": "nodes/a/v1/f1.db"}]}]
        s3_store.client.get_paginator.return_value = paginator

        await s3_store.delete(FolderRef("nodes/a/v1/", "v1"))

        kwargs = s3_store.client.delete_objects.call_args.kwargs
        assert kwargs["Delete"]["Objects"] == [{"Key": "nodes/a/v1/.folder"}, {"Key": "nodes/a/v1/f1.db"}]

    @pytest.mark.asyncio
    async def test_delete_file(self, s3_store):
        await s3_store.delete(FileRef("nodes/a/f1.db", "f1.db"))

        s3_store.client.delete_object.assert_called_once_with(Bucket="vault", Key="nodes/a/f1.db")

    @pytest.mark.asyncio
    async def test_unexpected_error_maps_to_store_error(self, s3_store):
        s3_store.client.delete_object.side_effect = _client_error("InternalError", "DeleteObject")

        with pytest.raises(StoreError):
            await s3_store.delete(FileRef("nodes/a/f1.db", "f1.db"))
