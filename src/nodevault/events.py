"""
Event type definitions for NodeVault operations.

This module defines typed events emitted by the backup coordinator:
- BackupCompletedEvent: When a new version became active
- BackupFailedEvent: When a backup aborted
- RestoreCompletedEvent: When a node's active version was downloaded
- ConflictDetectedEvent: When an ownership check found another backup ID
- SignedOutEvent: When the session was revoked
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any


@dataclass
class BackupCompletedEvent:
    """Event emitted when a backup version was committed."""
    node_id: str
    backup_id: str
    version_id: str
    file_count: int
    timestamp: datetime = field(default_factory=datetime.now)
    event_type: str = "backup.completed"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type,
            "node_id": self.node_id,
            "backup_id": self.backup_id,
            "version_id": self.version_id,
            "file_count": self.file_count,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass
class BackupFailedEvent:
    """Event emitted when a backup did not commit."""
    node_id: str
    backup_id: str
    error_code: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    event_type: str = "backup.failed"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type,
            "node_id": self.node_id,
            "backup_id": self.backup_id,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass
class RestoreCompletedEvent:
    """Event emitted when a restore finished downloading."""
    node_id: str
    backup_id: str
    paths: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    event_type: str = "restore.completed"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type,
            "node_id": self.node_id,
            "backup_id": self.backup_id,
            "paths": self.paths,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass
class ConflictDetectedEvent:
    """Event emitted when a node folder is owned by a different backup ID."""
    node_id: str
    existing: str
    requested: str
    timestamp: datetime = field(default_factory=datetime.now)
    event_type: str = "conflict.detected"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type,
            "node_id": self.node_id,
            "existing": self.existing,
            "requested": self.requested,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass
class SignedOutEvent:
    """Event emitted when the store session was revoked."""
    account_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    event_type: str = "session.signed_out"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type,
            "account_id": self.account_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


__all__ = [
    'BackupCompletedEvent',
    'BackupFailedEvent',
    'RestoreCompletedEvent',
    'ConflictDetectedEvent',
    'SignedOutEvent',
]
