"""
Configuration for NodeVault

Settings live in ``<base_path>/config.yaml``:

    store:
      backend: local | s3
      root: ~/.nodevault/store      # local backend
      bucket: my-bucket             # s3 backend
      prefix: nodevault/
      endpoint: https://...         # R2, MinIO, ...
      region: auto
    sync:
      interval_seconds: 60
    transfer:
      call_timeout: 120
      max_concurrency: 8
    restore:
      cache_dir: ~/.nodevault/restore
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

from .store import RemoteStore

DEFAULT_BASE_PATH = Path.home() / ".nodevault"
CONFIG_FILE_NAME = "config.yaml"

DEFAULT_CONFIG_TEMPLATE = """# NodeVault Configuration File

store:
  backend: local  # or s3
  root: {base_path}/store
  # bucket: my-bucket
  # prefix: nodevault/
  # endpoint: https://<account>.r2.cloudflarestorage.com
  # region: auto
  # access_key: ${{AWS_ACCESS_KEY_ID}}  # Set via environment variable
  # secret_key: ${{AWS_SECRET_ACCESS_KEY}}

sync:
  interval_seconds: 60

transfer:
  call_timeout: 120  # seconds per remote call
  max_concurrency: 8

restore:
  cache_dir: {base_path}/restore
"""


def get_base_path(ctx_data_dir: Optional[Path] = None) -> Path:
    """Get the base path for NodeVault data.

    Priority: --data-dir flag > NODEVAULT_BASE_PATH env var > default path.
    """
    if ctx_data_dir:
        return Path(ctx_data_dir)
    env_path = os.getenv("NODEVAULT_BASE_PATH")
    if env_path:
        return Path(env_path)
    return DEFAULT_BASE_PATH


@dataclass
class StoreConfig:
    """Which remote store to use and how to reach it"""
    backend: str = "local"
    root: Optional[str] = None
    bucket: Optional[str] = None
    prefix: str = ""
    endpoint: Optional[str] = None
    region: str = "auto"
    access_key: Optional[str] = None
    secret_key: Optional[str] = None


@dataclass
class VaultConfig:
    """Runtime settings for the backup coordinator"""
    base_path: Path = DEFAULT_BASE_PATH
    store: StoreConfig = field(default_factory=StoreConfig)
    sync_interval: float = 60.0
    call_timeout: Optional[float] = 120.0
    max_concurrency: int = 8
    cache_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        self.base_path = Path(self.base_path).expanduser()
        if self.cache_dir is None:
            self.cache_dir = self.base_path / "restore"
        self.cache_dir = Path(self.cache_dir).expanduser()
        if self.store.root is None:
            self.store.root = str(self.base_path / "store")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], base_path: Path = DEFAULT_BASE_PATH) -> "VaultConfig":
        """
        Build a config from the parsed YAML mapping.

        Raises:
            ValueError: If a section or value has the wrong shape
        """
        data = data or {}
        store_data = data.get("store") or {}
        if not isinstance(store_data, dict):
            raise ValueError("'store' section must be a mapping")
        known = set(StoreConfig.__dataclass_fields__)
        unknown = set(store_data) - known
        if unknown:
            raise ValueError(f"Unknown store settings: {', '.join(sorted(unknown))}")

        sync_data = data.get("sync") or {}
        transfer_data = data.get("transfer") or {}
        restore_data = data.get("restore") or {}

        call_timeout = transfer_data.get("call_timeout", 120.0)
        try:
            return cls(
                base_path=base_path,
                store=StoreConfig(**store_data),
                sync_interval=float(sync_data.get("interval_seconds", 60.0)),
                call_timeout=float(call_timeout) if call_timeout is not None else None,
                max_concurrency=int(transfer_data.get("max_concurrency", 8)),
                cache_dir=restore_data.get("cache_dir"),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid configuration value: {e}") from e


def load_config(base_path: Optional[Path] = None) -> VaultConfig:
    """
    Load ``config.yaml`` from the base path; missing file means defaults.

    Raises:
        ValueError: If the file is not valid YAML or has invalid values
    """
    base_path = get_base_path(base_path)
    config_path = base_path / CONFIG_FILE_NAME
    if not config_path.exists():
        return VaultConfig(base_path=base_path)
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e
    return VaultConfig.from_dict(data, base_path=base_path)


def create_store_from_config(config: VaultConfig) -> RemoteStore:
    """
    Create the remote store selected by ``store.backend``.

    Raises:
        ValueError: If backend type is unsupported or required settings are missing
        ImportError: If the backend's package is not installed
    """
    store_config = config.store
    backend_type = (store_config.backend or "").lower()

    if backend_type == "local":
        from .local_store import LocalFolderStore
        return LocalFolderStore(Path(store_config.root))

    if backend_type == "s3":
        if not store_config.bucket:
            raise ValueError(
                "Missing 'bucket' in store configuration. "
                "Run 'nodevault config set store.bucket my-bucket' to set bucket name."
            )
        from .s3_store import S3FolderStore
        return S3FolderStore(
            bucket=store_config.bucket,
            prefix=store_config.prefix or "",
            endpoint=store_config.endpoint,
            access_key=store_config.access_key,
            secret_key=store_config.secret_key,
            region=store_config.region or "auto",
        )

    raise ValueError(
        f"Unsupported store backend: '{store_config.backend}'. "
        f"Supported types: 'local', 's3'"
    )
