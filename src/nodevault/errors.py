"""
Error taxonomy for NodeVault operations

Every failure a caller can branch on has its own exception class carrying a
stable ``code``. The RPC layer turns these into error responses; anything
outside the taxonomy is wrapped in UnhandledError.
"""

from typing import List, Optional, Tuple


class VaultError(Exception):
    """Base exception for backup protocol errors"""

    code = "UNHANDLED_ERROR"

    @property
    def details(self) -> str:
        """Detail string reported alongside the message"""
        if self.__cause__ is not None:
            return f"{type(self).__name__}: {self} (caused by {self.__cause__!r})"
        return f"{type(self).__name__}: {self}"


class SignInFailure(VaultError):
    """Authentication with the remote store could not be established"""

    code = "SIGN_IN_FAILED"


class BackupConflictError(VaultError):
    """The node folder is owned by a different backup ID"""

    code = "BACKUP_CONFLICT_ERROR"

    def __init__(self, existing: str, requested: str) -> None:
        self.existing = existing
        self.requested = requested
        super().__init__(
            f"Backup conflict: node is owned by backup ID '{existing}', "
            f"requested '{requested}'"
        )


class _FanOutFailure(VaultError):
    """Shared shape for upload/download barrier failures"""

    verb = "transfer"

    def __init__(
        self,
        expected: int,
        completed: int,
        failures: Optional[List[Tuple[int, BaseException]]] = None,
    ) -> None:
        self.expected = expected
        self.completed = completed
        self.failures = failures or []
        super().__init__(
            f"Could not {self.verb} all backup files: "
            f"{completed}/{expected} succeeded, {len(self.failures)} failed"
        )


class PartialUploadFailure(_FanOutFailure):
    """Not every file of a new version was uploaded"""

    code = "PARTIAL_UPLOAD_FAILED"
    verb = "upload"


class PartialDownloadFailure(_FanOutFailure):
    """Not every file of the active version was downloaded"""

    code = "PARTIAL_DOWNLOAD_FAILED"
    verb = "download"


class NoBackupFound(VaultError):
    """Restore was attempted on a node folder without an active version"""

    code = "NO_BACKUP_FOUND"


class OperationTimeout(VaultError):
    """A remote call did not finish within the configured timeout"""

    code = "OPERATION_TIMEOUT"


class SignOutFailure(VaultError):
    """The store refused to revoke the session"""

    code = "SIGN_OUT_FAILED"


class InvalidArguments(VaultError, ValueError):
    """A call was missing arguments or carried malformed ones"""

    code = "INVALID_ARGUMENTS"


class UnhandledError(VaultError):
    """Catch-all wrapper for failures outside the taxonomy"""

    code = "UNHANDLED_ERROR"


__all__ = [
    "VaultError",
    "SignInFailure",
    "SignOutFailure",
    "InvalidArguments",
    "BackupConflictError",
    "PartialUploadFailure",
    "PartialDownloadFailure",
    "NoBackupFound",
    "OperationTimeout",
    "UnhandledError",
]
