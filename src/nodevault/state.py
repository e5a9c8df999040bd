"""Typed view of the tags stored on a node folder."""

from dataclasses import dataclass
from typing import Dict, Optional

ACTIVE_BACKUP_ID_TAG = "activeBackupID"
ACTIVE_VERSION_ID_TAG = "activeVersionID"


@dataclass(frozen=True)
class NodeFolderState:
    """Which backup lineage owns a node folder, and which version is live"""
    active_backup_id: Optional[str] = None
    active_version_id: Optional[str] = None

    @classmethod
    def from_tags(cls, tags: Optional[Dict[str, str]]) -> "NodeFolderState":
        tags = tags or {}
        return cls(
            active_backup_id=tags.get(ACTIVE_BACKUP_ID_TAG) or None,
            active_version_id=tags.get(ACTIVE_VERSION_ID_TAG) or None,
        )

    def to_tags(self, include_empty: bool = True) -> Dict[str, Optional[str]]:
        """
        Convert to a tag change-set

        Args:
            include_empty: Emit unset fields as None (removing the tag).
                When False, unset fields are left out so existing tags survive.
        """
        tags = {
            ACTIVE_BACKUP_ID_TAG: self.active_backup_id,
            ACTIVE_VERSION_ID_TAG: self.active_version_id,
        }
        if include_empty:
            return tags
        return {key: value for key, value in tags.items() if value is not None}
