"""
S3-compatible folder store

Supports any S3-compatible storage service including:
- AWS S3
- Cloudflare R2
- MinIO

S3 has no folders, so a folder is a key prefix holding a zero-byte marker
object (``.folder``). The marker's user metadata stores the folder title,
pinned flag and custom tags as one JSON document, so a tag update is a
single ``copy_object`` with ``MetadataDirective="REPLACE"``.
"""

import asyncio
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Optional, List, Dict, Any

from .store import (
    Account,
    FileRef,
    FolderRef,
    ItemMetadata,
    RemoteStore,
    StoreAuthError,
    StoreConnectionError,
    StoreError,
    StoreNotFoundError,
)

logger = logging.getLogger(__name__)

# S3/Boto3 imports
try:
    import boto3
    from botocore.exceptions import ClientError, NoCredentialsError, EndpointConnectionError
    BOTO3_AVAILABLE = True
except ImportError:
    BOTO3_AVAILABLE = False

MARKER_NAME = ".folder"
META_KEY = "nodevault-folder"


class S3FolderStore(RemoteStore):
    """
    AWS S3 / Cloudflare R2 folder store

    Authentication via:
    - Explicit credentials (access_key, secret_key)
    - Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)
    - IAM roles (when running on AWS)
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        endpoint: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: str = "auto",
    ):
        """
        Initialize S3 folder store

        Args:
            bucket: S3 bucket name
            prefix: Optional prefix acting as the root folder (e.g., "nodevault/")
            endpoint: S3-compatible endpoint URL (for R2, MinIO, etc.)
            access_key: AWS access key ID (default: AWS_ACCESS_KEY_ID env var)
            secret_key: AWS secret access key (default: AWS_SECRET_ACCESS_KEY env var)
            region: AWS region (default: "auto" for R2)
        """
        if not BOTO3_AVAILABLE:
            raise ImportError(
                "boto3 package required for S3 store. "
                "Install with: pip install nodevault[s3]"
            )

        self.bucket = bucket
        self.prefix = prefix.strip("/") + "/" if prefix.strip("/") else ""
        self.endpoint = endpoint
        self.region = region
        self.access_key = access_key or os.getenv("AWS_ACCESS_KEY_ID")
        self.secret_key = secret_key or os.getenv("AWS_SECRET_ACCESS_KEY")
        self._client: Optional[Any] = None

    # ---------------------------------------------------------------- helpers

    def _create_client(self) -> Any:
        """Create and configure S3 client"""
        try:
            client_kwargs = {
                "service_name": "s3",
                "region_name": self.region,
            }

            if self.endpoint:
                client_kwargs["endpoint_url"] = self.endpoint

            if self.access_key and self.secret_key:
                client_kwargs["aws_access_key_id"] = self.access_key
                client_kwargs["aws_secret_access_key"] = self.secret_key

            return boto3.client(**client_kwargs)

        except NoCredentialsError as e:
            raise StoreAuthError(
                "No AWS credentials found. Set AWS_ACCESS_KEY_ID and "
                "AWS_SECRET_ACCESS_KEY environment variables or configure "
                "store.access_key and store.secret_key."
            ) from e
        except Exception as e:
            raise StoreConnectionError(f"Failed to create S3 client: {e}") from e

    @property
    def client(self) -> Any:
        if self._client is None:
            raise StoreAuthError("Not signed in to S3 store")
        return self._client

    def _map_error(self, e: Exception, action: str) -> StoreError:
        """Translate a botocore failure into the store error hierarchy"""
        if isinstance(e, ClientError):
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey"):
                return StoreNotFoundError(f"Object not found while trying to {action}")
            if error_code == "NoSuchBucket":
                return StoreError(f"Bucket '{self.bucket}' does not exist")
            if error_code in ("403", "AccessDenied", "InvalidAccessKeyId", "SignatureDoesNotMatch"):
                return StoreAuthError(f"Access denied: {e}")
            return StoreError(f"Failed to {action}: {e}")
        if isinstance(e, NoCredentialsError):
            return StoreAuthError(f"No AWS credentials available to {action}")
        if isinstance(e, EndpointConnectionError):
            return StoreConnectionError(f"Cannot reach S3 endpoint to {action}: {e}")
        return StoreError(f"Unexpected error trying to {action}: {e}")

    async def _run(self, action: str, func, *args, **kwargs) -> Any:
        """Run a blocking boto3 call off the event loop"""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except (FileNotFoundError, StoreError):
            raise
        except Exception as e:
            raise self._map_error(e, action) from e

    def _marker_key(self, folder: FolderRef) -> str:
        return f"{folder.ref_id}{MARKER_NAME}"

    def _read_folder_meta(self, folder: FolderRef) -> Dict[str, Any]:
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=self._marker_key(folder))
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey") and folder.ref_id == self.prefix:
                # The root folder needs no marker until it is tagged
                return {"title": folder.title, "pinned": False, "tags": {}}
            raise
        raw = response.get("Metadata", {}).get(META_KEY)
        return json.loads(raw) if raw else {"title": folder.title, "pinned": False, "tags": {}}

    def _write_folder_meta(self, folder: FolderRef, meta: Dict[str, Any], replace: bool) -> None:
        key = self._marker_key(folder)
        encoded = {META_KEY: json.dumps(meta, sort_keys=True)}
        if replace:
            self.client.copy_object(
                Bucket=self.bucket,
                Key=key,
                CopySource={"Bucket": self.bucket, "Key": key},
                Metadata=encoded,
                MetadataDirective="REPLACE",
            )
        else:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=b"", Metadata=encoded)

    def _iter_keys(self, prefix: str) -> List[str]:
        paginator = self.client.get_paginator("list_objects_v2")
        keys: List[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys.extend(item["Key"] for item in page.get("Contents", []))
        return keys

    # ---------------------------------------------------------------- session

    async def authenticate(self, interactive: bool) -> Account:
        client = self._client or self._create_client()
        try:
            await asyncio.to_thread(client.head_bucket, Bucket=self.bucket)
        except Exception as e:
            raise self._map_error(e, f"access bucket '{self.bucket}'") from e
        self._client = client
        return Account(account_id=f"s3://{self.bucket}/{self.prefix}", display_name=self.bucket)

    async def sign_out(self) -> None:
        self._client = None

    async def request_sync(self) -> None:
        # S3 offers strong read-after-write consistency; nothing to refresh
        logger.debug("request_sync is a no-op for S3 stores")

    # ---------------------------------------------------------------- folders

    async def get_root_folder(self) -> FolderRef:
        return FolderRef(ref_id=self.prefix, title=self.bucket)

    def _list_children_sync(
        self,
        folder: FolderRef,
        folders_only: bool,
        title: Optional[str],
    ) -> List[ItemMetadata]:
        paginator = self.client.get_paginator("list_objects_v2")
        items: List[ItemMetadata] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=folder.ref_id, Delimiter="/"):
            for common in page.get("CommonPrefixes", []):
                child_prefix = common["Prefix"]
                probe = FolderRef(ref_id=child_prefix, title="")
                try:
                    child_title = self._read_folder_meta(probe)["title"]
                except ClientError:
                    # Prefix without a marker is not a folder we created
                    continue
                if title is not None and child_title != title:
                    continue
                items.append(ItemMetadata(
                    ref=FolderRef(ref_id=child_prefix, title=child_title),
                    title=child_title,
                    is_folder=True,
                ))
            if folders_only:
                continue
            for item in page.get("Contents", []):
                name = item["Key"][len(folder.ref_id):]
                if name == MARKER_NAME:
                    continue
                if title is not None and name != title:
                    continue
                items.append(ItemMetadata(
                    ref=FileRef(ref_id=item["Key"], name=name, size=item["Size"]),
                    title=name,
                    is_folder=False,
                    size=item["Size"],
                    modified=item.get("LastModified"),
                ))
        return items

    async def list_children(
        self,
        folder: FolderRef,
        folders_only: bool = False,
        title: Optional[str] = None,
    ) -> List[ItemMetadata]:
        return await self._run(
            f"list children of {folder.title}",
            self._list_children_sync, folder, folders_only, title,
        )

    async def create_folder(
        self,
        parent: FolderRef,
        title: str,
        pinned: bool = False,
    ) -> FolderRef:
        folder = FolderRef(ref_id=f"{parent.ref_id}{uuid.uuid4().hex}/", title=title)
        meta = {"title": title, "pinned": pinned, "tags": {}}
        await self._run(f"create folder {title}", self._write_folder_meta, folder, meta, False)
        return folder

    async def get_metadata(self, folder: FolderRef) -> Dict[str, str]:
        meta = await self._run(f"read metadata of {folder.title}", self._read_folder_meta, folder)
        return dict(meta.get("tags", {}))

    def _update_metadata_sync(self, folder: FolderRef, changes: Dict[str, Optional[str]]) -> None:
        meta = self._read_folder_meta(folder)
        tags = meta.setdefault("tags", {})
        for key, value in changes.items():
            if value is None:
                tags.pop(key, None)
            else:
                tags[key] = value
        has_marker = folder.ref_id != self.prefix or self._marker_exists(folder)
        self._write_folder_meta(folder, meta, replace=has_marker)

    def _marker_exists(self, folder: FolderRef) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._marker_key(folder))
            return True
        except ClientError:
            return False

    async def update_metadata(
        self,
        folder: FolderRef,
        changes: Dict[str, Optional[str]],
    ) -> None:
        await self._run(
            f"update metadata of {folder.title}",
            self._update_metadata_sync, folder, changes,
        )

    # ------------------------------------------------------------------ files

    async def upload_file(self, folder: FolderRef, local_path: Path) -> FileRef:
        local_path = Path(local_path)
        if not local_path.exists():
            raise FileNotFoundError(f"Local file not found: {local_path}")
        key = f"{folder.ref_id}{local_path.name}"
        await self._run(
            f"upload {local_path.name}",
            self.client.upload_file, str(local_path), self.bucket, key,
        )
        return FileRef(ref_id=key, name=local_path.name, size=local_path.stat().st_size)

    async def download_file(self, file_ref: FileRef, dest_dir: Path) -> Path:
        target = Path(dest_dir) / file_ref.name
        target.parent.mkdir(parents=True, exist_ok=True)
        await self._run(
            f"download {file_ref.name}",
            self.client.download_file, self.bucket, file_ref.ref_id, str(target),
        )
        return target

    def _delete_prefix_sync(self, prefix: str) -> None:
        keys = self._iter_keys(prefix)
        for start in range(0, len(keys), 1000):
            batch = keys[start:start + 1000]
            self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
            )

    async def delete(self, ref: Any) -> None:
        if isinstance(ref, FolderRef):
            await self._run(f"delete folder {ref.title}", self._delete_prefix_sync, ref.ref_id)
        else:
            await self._run(
                f"delete {ref.name}",
                self.client.delete_object, Bucket=self.bucket, Key=ref.ref_id,
            )
