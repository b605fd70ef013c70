"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, NamespaceError, VaultError: Exception classes
- SyncResult: Outcome of a pass or single-file operation
- FileOperation: What a single-file operation did
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from vaultdrive.client.auth import RemoteError


class SyncError(Exception):
    """Base exception for sync errors."""


class NamespaceError(SyncError):
    """The remote container could not be resolved or created."""


class VaultError(SyncError):
    """A path cannot be read from or written to the vault safely."""


class FileOperation(Enum):
    """Remote effect of a single-file operation."""

    CREATED = "created"
    UPDATED = "updated"
    RENAMED = "renamed"
    DELETED = "deleted"
    DOWNLOADED = "downloaded"
    NONE = "none"


@dataclass
class SyncResult:
    """Result of a sync pass.

    Each list holds vault-relative paths; ``errors`` holds human-readable
    messages for operations that failed without aborting the pass.
    """

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    downloaded: list[str] = field(default_factory=list)
    renamed: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    offline: bool = False

    @property
    def total(self) -> int:
        """Get the number of successful operations."""
        return (
            len(self.created)
            + len(self.updated)
            + len(self.downloaded)
            + len(self.renamed)
            + len(self.deleted)
        )

    @property
    def ok(self) -> bool:
        """Check if the pass finished without per-file errors."""
        return not self.errors

    def record_error(self, label: str, error: Exception) -> None:
        """Record a failed operation; transport failures mark the pass offline."""
        self.errors.append(f"{label}: {error}")
        if isinstance(error, RemoteError) and error.status_code is None:
            self.offline = True

    def record(self, operation: FileOperation, path: str) -> None:
        """Record the outcome of a single-file operation."""
        target = {
            FileOperation.CREATED: self.created,
            FileOperation.UPDATED: self.updated,
            FileOperation.RENAMED: self.renamed,
            FileOperation.DELETED: self.deleted,
            FileOperation.DOWNLOADED: self.downloaded,
        }.get(operation)
        if target is not None:
            target.append(path)


# Callback aliases
ResultCallback = Callable[[SyncResult], None]
ErrorCallback = Callable[[Exception], None]
