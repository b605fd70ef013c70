"""Core module - Shared configuration and types."""

from vaultdrive.core.config import (
    DEFAULT_FOLDER_NAME,
    DEFAULT_SYNC_INTERVAL_MS,
    MAX_SYNC_INTERVAL_MS,
    MIN_SYNC_INTERVAL_MS,
    ConfigError,
    DriveConfig,
    StorageLocation,
)
from vaultdrive.core.types import SyncState

__all__ = [
    # Config
    "DEFAULT_FOLDER_NAME",
    "DEFAULT_SYNC_INTERVAL_MS",
    "MAX_SYNC_INTERVAL_MS",
    "MIN_SYNC_INTERVAL_MS",
    "ConfigError",
    "DriveConfig",
    "StorageLocation",
    # Types
    "SyncState",
]
