"""Vault watcher with debouncing that feeds the scheduler.

This module provides:
- VaultWatcher: Watches the vault using watchdog
- Debouncing: Coalesces rapid events per path before triggering
- Mapping: created/modified -> save, moved -> rename, deleted -> delete
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from vaultdrive.client.sync.ignore import IGNORE_FILE_NAME, IgnorePatterns

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

    from vaultdrive.client.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


class ChangeType(Enum):
    """Type of vault change."""

    SAVED = "saved"
    RENAMED = "renamed"
    DELETED = "deleted"


@dataclass
class FileChange:
    """A pending vault change, keyed by its (new) relative path."""

    path: str
    change_type: ChangeType
    timestamp: float = field(default_factory=time.time)
    old_path: str | None = None  # For RENAMED events


class DebouncedEventHandler(FileSystemEventHandler):
    """Event handler that debounces file events and dispatches them."""

    def __init__(
        self,
        base_path: Path,
        scheduler: SyncScheduler,
        sync_delay_s: float = 2.0,
        ignore_patterns: IgnorePatterns | None = None,
    ) -> None:
        """Initialize the debounced handler.

        Args:
            base_path: Vault root being watched.
            scheduler: Scheduler receiving the triggers.
            sync_delay_s: Quiet period after the last event before dispatch.
            ignore_patterns: Patterns for files to ignore.
        """
        super().__init__()
        self._base_path = base_path
        self._scheduler = scheduler
        self._sync_delay_s = sync_delay_s
        self._ignore = ignore_patterns or IgnorePatterns()

        # Pending changes keyed by path, in arrival order
        self._pending: dict[str, FileChange] = {}
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None

    @property
    def pending(self) -> list[FileChange]:
        """Get a snapshot of pending changes."""
        with self._lock:
            return list(self._pending.values())

    def _relative(self, raw_path: str | bytes) -> str | None:
        """Convert an event path to a vault-relative path, or None to skip."""
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode("utf-8", errors="replace")
        path = Path(raw_path)
        try:
            rel_path = path.relative_to(self._base_path)
        except ValueError:
            return None
        if self._ignore.should_ignore(path, self._base_path):
            return None
        return rel_path.as_posix()

    def _schedule_flush(self) -> None:
        """Schedule a flush of pending changes after the sync delay."""
        if self._timer:
            self._timer.cancel()

        self._timer = threading.Timer(self._sync_delay_s, self.flush)
        self._timer.daemon = True
        self._timer.start()

    def _add(self, change: FileChange) -> None:
        with self._lock:
            previous = self._pending.pop(change.path, None)
            # A save after a rename within the window is still a rename
            if (
                previous is not None
                and previous.change_type is ChangeType.RENAMED
                and change.change_type is ChangeType.SAVED
            ):
                change = previous
            self._pending[change.path] = change
            self._schedule_flush()

    def flush(self) -> None:
        """Dispatch pending changes to the scheduler."""
        with self._lock:
            changes = list(self._pending.values())
            self._pending.clear()
            self._timer = None

        # Dispatch outside lock
        for change in changes:
            self._dispatch(change)

    def _dispatch(self, change: FileChange) -> None:
        logger.debug("Dispatching %s for %s", change.change_type.value, change.path)
        if change.change_type is ChangeType.SAVED:
            self._scheduler.trigger_on_save(change.path)
        elif change.change_type is ChangeType.RENAMED:
            assert change.old_path is not None
            self._scheduler.trigger_on_rename(change.path, change.old_path)
        else:
            self._scheduler.trigger_on_delete(change.path)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle created event."""
        if isinstance(event, FileCreatedEvent):
            self._on_saved(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle modified event."""
        if isinstance(event, FileModifiedEvent):
            self._on_saved(event)

    def _on_saved(self, event: FileSystemEvent) -> None:
        path = self._relative(event.src_path)
        if path is not None:
            self._add(FileChange(path=path, change_type=ChangeType.SAVED))

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle deleted event."""
        if not isinstance(event, FileDeletedEvent):
            return
        path = self._relative(event.src_path)
        if path is not None:
            self._add(FileChange(path=path, change_type=ChangeType.DELETED))

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle moved event."""
        if not isinstance(event, FileMovedEvent):
            return
        old_path = self._relative(event.src_path)
        new_path = self._relative(event.dest_path)

        if old_path is not None and new_path is not None:
            self._add(FileChange(path=new_path, change_type=ChangeType.RENAMED, old_path=old_path))
        elif new_path is not None:
            # Moved in from outside the vault (or from an ignored path)
            self._add(FileChange(path=new_path, change_type=ChangeType.SAVED))
        elif old_path is not None:
            # Moved out of the vault
            self._add(FileChange(path=old_path, change_type=ChangeType.DELETED))

    def stop(self) -> None:
        """Stop any pending timer."""
        if self._timer:
            self._timer.cancel()
            self._timer = None


class VaultWatcher:
    """Watches the vault and forwards changes to the scheduler."""

    def __init__(
        self,
        vault_path: Path,
        scheduler: SyncScheduler,
        sync_delay_s: float = 2.0,
        ignore_patterns: IgnorePatterns | None = None,
    ) -> None:
        """Initialize the vault watcher.

        Args:
            vault_path: Vault directory to watch.
            scheduler: Scheduler receiving save/rename/delete triggers.
            sync_delay_s: Quiet period before changes are dispatched.
            ignore_patterns: Patterns for files to ignore; defaults plus the
                vault's .syncignore when omitted.
        """
        self._vault_path = Path(vault_path).resolve()
        if not self._vault_path.is_dir():
            raise ValueError(f"Vault path must be a directory: {vault_path}")

        if ignore_patterns is None:
            ignore_patterns = IgnorePatterns()
            ignore_patterns.load_from_file(self._vault_path / IGNORE_FILE_NAME)

        self._handler = DebouncedEventHandler(
            base_path=self._vault_path,
            scheduler=scheduler,
            sync_delay_s=sync_delay_s,
            ignore_patterns=ignore_patterns,
        )
        self._observer: BaseObserver = Observer()
        self._running = False

    @property
    def vault_path(self) -> Path:
        """Get the watched vault path."""
        return self._vault_path

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    def start(self) -> None:
        """Start watching for changes."""
        if self._running:
            return

        self._observer.schedule(self._handler, str(self._vault_path), recursive=True)
        self._observer.start()
        self._running = True
        logger.info("Watching %s for changes", self._vault_path)

    def stop(self) -> None:
        """Stop watching and drop pending changes."""
        if not self._running:
            return

        self._handler.stop()
        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._running = False

    def __enter__(self) -> VaultWatcher:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()
