"""
Method-call surface for host applications

A host bridge forwards ``(method, arguments)`` pairs here and relays the
returned RPCResponse. Methods:

    signOut()                                  -> bool
    backup(paths, nodeId, backupID)            -> bool
    getAvailableBackups()                      -> {nodeId: folder reference}
    restore(nodeId, backupID)                  -> [local paths]
    isSafeForBackupID(nodeId, backupID)        -> bool

Every method but signOut also accepts ``silent`` (sign in without prompting).
Failures come back as an RPCError carrying a code, a message and details.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .coordinator import BackupCoordinator
from .errors import InvalidArguments, UnhandledError, VaultError

logger = logging.getLogger(__name__)

SIGN_IN_FAILED_CODE = "SIGN_IN_FAILED"
BACKUP_CONFLICT_ERROR_CODE = "BACKUP_CONFLICT_ERROR"
UNKNOWN_METHOD_CODE = "UNKNOWN_METHOD"


@dataclass
class RPCError:
    """Error payload of a failed method call"""
    code: str
    message: str
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


@dataclass
class RPCResponse:
    """Result of one method call: a value or an error"""
    method: str
    value: Any = None
    error: Optional[RPCError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"method": self.method, "error": self.error.to_dict()}
        return {"method": self.method, "result": self.value}


def _require_str(arguments: Dict[str, Any], name: str) -> str:
    value = arguments.get(name)
    if value is None or str(value) == "":
        raise InvalidArguments(f"Missing required argument '{name}'")
    return str(value)


def _require_paths(arguments: Dict[str, Any]) -> List[str]:
    paths = arguments.get("paths")
    if not isinstance(paths, (list, tuple)) or not paths:
        raise InvalidArguments("Argument 'paths' must be a non-empty list of file paths")
    return [str(path) for path in paths]


class BackupMethodHandler:
    """Dispatches method calls to a BackupCoordinator"""

    def __init__(self, coordinator: BackupCoordinator) -> None:
        self.coordinator = coordinator
        self._methods: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            "signOut": self._sign_out,
            "backup": self._backup,
            "getAvailableBackups": self._get_available_backups,
            "restore": self._restore,
            "isSafeForBackupID": self._is_safe_for_backup_id,
        }

    @property
    def methods(self) -> List[str]:
        return list(self._methods)

    async def handle(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> RPCResponse:
        """Run one method call and wrap its outcome"""
        logger.info(f"handle: {method}")
        handler = self._methods.get(method)
        if handler is None:
            return RPCResponse(method, error=RPCError(
                UNKNOWN_METHOD_CODE, f"Unknown method '{method}'", None,
            ))

        try:
            value = await handler(arguments or {})
        except VaultError as e:
            logger.error(f"{method} failed: {e}")
            return RPCResponse(method, error=RPCError(e.code, str(e), e.details))
        except Exception as e:
            logger.error(f"Unhandled Error {e}", exc_info=True)
            wrapped = UnhandledError(str(e))
            wrapped.__cause__ = e
            return RPCResponse(method, error=RPCError(wrapped.code, str(e), wrapped.details))
        return RPCResponse(method, value=value)

    @staticmethod
    def _silent(arguments: Dict[str, Any]) -> bool:
        return bool(arguments.get("silent", False))

    async def _sign_out(self, arguments: Dict[str, Any]) -> bool:
        return await self.coordinator.sign_out()

    async def _backup(self, arguments: Dict[str, Any]) -> bool:
        paths = _require_paths(arguments)
        node_id = _require_str(arguments, "nodeId")
        backup_id = _require_str(arguments, "backupID")
        return await self.coordinator.backup(node_id, backup_id, paths, silent=self._silent(arguments))

    async def _get_available_backups(self, arguments: Dict[str, Any]) -> Dict[str, str]:
        return await self.coordinator.list_available(silent=self._silent(arguments))

    async def _restore(self, arguments: Dict[str, Any]) -> List[str]:
        node_id = _require_str(arguments, "nodeId")
        backup_id = _require_str(arguments, "backupID")
        return await self.coordinator.restore(node_id, backup_id, silent=self._silent(arguments))

    async def _is_safe_for_backup_id(self, arguments: Dict[str, Any]) -> bool:
        node_id = _require_str(arguments, "nodeId")
        backup_id = _require_str(arguments, "backupID")
        result = await self.coordinator.check_safe(node_id, backup_id, silent=self._silent(arguments))
        result.raise_for_conflict()
        return True
