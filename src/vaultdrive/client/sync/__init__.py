"""Sync engine between the vault and the drive.

Architecture:
    VaultWatcher / timer / manual trigger → SyncScheduler → Reconciler → DriveClient

Components:
- **SyncSession**: Token store, namespace resolver and the session lock
- **NamespaceResolver**: Hidden app-data space or a visible named folder
- **Reconciler**: Create/update/download/rename/delete decisions per file
- **SyncScheduler**: Manual, event and periodic triggers, one at a time
- **VaultWatcher**: Watch the vault for real-time changes
"""

from vaultdrive.client.sync.ignore import DEFAULT_IGNORE_PATTERNS, IgnorePatterns
from vaultdrive.client.sync.namespace import (
    HIDDEN_HANDLE,
    HIDDEN_SPACE,
    NamespaceHandle,
    NamespaceResolver,
)
from vaultdrive.client.sync.reconciler import FILE_ERRORS, Reconciler
from vaultdrive.client.sync.scheduler import AUTO_SYNC_JOB_ID, SyncScheduler
from vaultdrive.client.sync.session import SyncSession
from vaultdrive.client.sync.types import (
    ErrorCallback,
    FileOperation,
    NamespaceError,
    ResultCallback,
    SyncError,
    SyncResult,
    VaultError,
)
from vaultdrive.client.sync.watcher import (
    ChangeType,
    DebouncedEventHandler,
    FileChange,
    VaultWatcher,
)

__all__ = [
    # Types
    "ErrorCallback",
    "FileOperation",
    "NamespaceError",
    "ResultCallback",
    "SyncError",
    "SyncResult",
    "VaultError",
    # Namespace
    "HIDDEN_HANDLE",
    "HIDDEN_SPACE",
    "NamespaceHandle",
    "NamespaceResolver",
    # Engine
    "FILE_ERRORS",
    "Reconciler",
    "SyncSession",
    # Scheduling
    "AUTO_SYNC_JOB_ID",
    "SyncScheduler",
    # Watcher
    "ChangeType",
    "DebouncedEventHandler",
    "FileChange",
    "VaultWatcher",
    "DEFAULT_IGNORE_PATTERNS",
    "IgnorePatterns",
]
