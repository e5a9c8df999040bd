"""
Remote Store - Abstract interface for folder-oriented object stores

Provides the plugin boundary the backup protocol talks to. A store exposes
folders (with custom key/value tags) and files, plus account sign-in and a
best-effort "refresh from server" request. Each concrete store implements
every operation as a coroutine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class Account:
    """Signed-in account a session is bound to"""
    account_id: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class FolderRef:
    """Reference to a remote folder"""
    ref_id: str  # Store-specific identifier (path, prefix, drive id...)
    title: str


@dataclass(frozen=True)
class FileRef:
    """Reference to a remote file"""
    ref_id: str
    name: str
    size: int = 0


@dataclass
class ItemMetadata:
    """Listing entry for a folder child"""
    ref: Any  # FolderRef or FileRef
    title: str
    is_folder: bool
    size: int = 0
    modified: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "ref_id": self.ref.ref_id,
            "title": self.title,
            "is_folder": self.is_folder,
            "size": self.size,
            "modified": self.modified.isoformat() if self.modified else None,
        }


class StoreError(Exception):
    """Base exception for remote store errors"""
    pass


class StoreAuthError(StoreError):
    """Exception for authentication/authorization errors"""
    pass


class StoreConnectionError(StoreError):
    """Exception for connection/network errors"""
    pass


class StoreNotFoundError(StoreError):
    """Exception for references that no longer resolve"""
    pass


class RemoteStore(ABC):
    """
    Abstract base class for remote folder stores

    All stores (local directory tree, S3-compatible buckets) must implement
    these methods so the backup coordinator can swap stores without
    changing call sites.
    """

    @abstractmethod
    async def authenticate(self, interactive: bool) -> Account:
        """
        Sign in to the store

        Args:
            interactive: If False, only cached credentials may be used

        Returns:
            The signed-in Account

        Raises:
            StoreAuthError: If credentials are missing, denied or expired
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """Revoke the current session's credentials"""
        pass

    @abstractmethod
    async def get_root_folder(self) -> FolderRef:
        """Return the application root folder"""
        pass

    @abstractmethod
    async def list_children(
        self,
        folder: FolderRef,
        folders_only: bool = False,
        title: Optional[str] = None,
    ) -> List[ItemMetadata]:
        """
        List the direct children of a folder

        Args:
            folder: Folder to list
            folders_only: Only return sub-folders
            title: Only return children with exactly this title

        Returns:
            List of ItemMetadata entries
        """
        pass

    @abstractmethod
    async def create_folder(
        self,
        parent: FolderRef,
        title: str,
        pinned: bool = False,
    ) -> FolderRef:
        """
        Create a sub-folder

        Args:
            parent: Parent folder
            title: Title of the new folder
            pinned: Mark the folder as "keep" so storage-saving eviction skips it

        Returns:
            Reference to the created folder
        """
        pass

    @abstractmethod
    async def get_metadata(self, folder: FolderRef) -> Dict[str, str]:
        """Return the custom key/value tags of a folder"""
        pass

    @abstractmethod
    async def update_metadata(
        self,
        folder: FolderRef,
        changes: Dict[str, Optional[str]],
    ) -> None:
        """
        Apply tag changes to a folder in a single write

        Args:
            folder: Folder to update
            changes: Tag values to set; a value of None removes the tag
        """
        pass

    @abstractmethod
    async def upload_file(self, folder: FolderRef, local_path: Path) -> FileRef:
        """
        Upload a local file into a folder

        Raises:
            FileNotFoundError: If local_path doesn't exist
            StoreError: If upload fails
        """
        pass

    @abstractmethod
    async def download_file(self, file_ref: FileRef, dest_dir: Path) -> Path:
        """
        Download a file into dest_dir, keeping its name

        Returns:
            Path of the downloaded file
        """
        pass

    @abstractmethod
    async def delete(self, ref: Any) -> None:
        """Delete a file or a folder with everything under it"""
        pass

    @abstractmethod
    async def request_sync(self) -> None:
        """Ask the store to refresh its view from the server (best effort)"""
        pass
