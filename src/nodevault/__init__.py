"""
NodeVault - versioned, conflict-aware node backups on remote folder stores

Backs up and restores per-device node state while refusing to let two
devices silently overwrite each other's backups.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config import VaultConfig, load_config, create_store_from_config
from .conflict import ConflictGuard, GuardResult
from .connection import Connection, ConnectionManager
from .coordinator import BackupCoordinator
from .downloader import Downloader
from .errors import (
    VaultError,
    SignInFailure,
    SignOutFailure,
    BackupConflictError,
    PartialUploadFailure,
    PartialDownloadFailure,
    NoBackupFound,
    OperationTimeout,
    InvalidArguments,
    UnhandledError,
)
from .fanout import FanOutResult, wait_for_all
from .folders import FolderResolver
from .local_store import LocalFolderStore
from .rpc import BackupMethodHandler, RPCError, RPCResponse
from .state import NodeFolderState
from .store import (
    Account,
    FileRef,
    FolderRef,
    ItemMetadata,
    RemoteStore,
    StoreError,
    StoreAuthError,
    StoreConnectionError,
    StoreNotFoundError,
)
from .throttle import SyncThrottler
from .uploader import VersionedUploader

__all__ = [
    "VaultConfig",
    "load_config",
    "create_store_from_config",
    "ConflictGuard",
    "GuardResult",
    "Connection",
    "ConnectionManager",
    "BackupCoordinator",
    "Downloader",
    "VaultError",
    "SignInFailure",
    "SignOutFailure",
    "BackupConflictError",
    "PartialUploadFailure",
    "PartialDownloadFailure",
    "NoBackupFound",
    "OperationTimeout",
    "InvalidArguments",
    "UnhandledError",
    "FanOutResult",
    "wait_for_all",
    "FolderResolver",
    "LocalFolderStore",
    "BackupMethodHandler",
    "RPCError",
    "RPCResponse",
    "NodeFolderState",
    "Account",
    "FileRef",
    "FolderRef",
    "ItemMetadata",
    "RemoteStore",
    "StoreError",
    "StoreAuthError",
    "StoreConnectionError",
    "StoreNotFoundError",
    "SyncThrottler",
    "VersionedUploader",
]
