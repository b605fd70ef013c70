"""Scheduling of sync passes and file events.

This module provides:
- SyncScheduler: funnels manual, timer and file-event triggers into the
  reconciler, holding the session lock so that at most one sequence of
  remote calls runs at a time
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vaultdrive.client.auth import AuthError, RemoteError
from vaultdrive.client.sync.reconciler import FILE_ERRORS
from vaultdrive.client.sync.types import ErrorCallback, NamespaceError, ResultCallback
from vaultdrive.core.config import (
    DEFAULT_SYNC_INTERVAL_MS,
    MAX_SYNC_INTERVAL_MS,
    MIN_SYNC_INTERVAL_MS,
    ConfigError,
)
from vaultdrive.core.types import SyncState

if TYPE_CHECKING:
    from vaultdrive.client.sync.reconciler import Reconciler
    from vaultdrive.client.sync.session import SyncSession
    from vaultdrive.client.sync.types import FileOperation, SyncResult

logger = logging.getLogger(__name__)

AUTO_SYNC_JOB_ID = "auto_sync"

T = TypeVar("T")


def _failure_state(error: Exception) -> SyncState:
    """OFFLINE when the drive could not be reached at all, ERROR otherwise."""
    if isinstance(error, RemoteError) and error.status_code is None:
        return SyncState.OFFLINE
    return SyncState.ERROR


class SyncScheduler:
    """Drives the reconciler on demand, on file events and on a timer.

    Full passes never overlap: a pass requested while another runs is
    coalesced into the running one. File events wait for the running
    pass to finish and are then applied in order.
    """

    def __init__(
        self,
        session: SyncSession,
        reconciler: Reconciler,
        interval_ms: int = DEFAULT_SYNC_INTERVAL_MS,
        on_result: ResultCallback | None = None,
        on_auth_error: ErrorCallback | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            session: Session whose lock serializes remote activity.
            reconciler: Reconciler that performs the operations.
            interval_ms: Period of automatic passes in milliseconds.
            on_result: Called with the result of every completed pass.
            on_auth_error: Called when authentication fails.
        """
        self._session = session
        self._reconciler = reconciler
        self._interval_ms = self._check_interval(interval_ms)
        self._on_result = on_result
        self._on_auth_error = on_auth_error
        self._scheduler: BackgroundScheduler | None = None
        self._state = SyncState.IDLE
        self._last_result: SyncResult | None = None

    @staticmethod
    def _check_interval(interval_ms: int) -> int:
        if not MIN_SYNC_INTERVAL_MS <= interval_ms <= MAX_SYNC_INTERVAL_MS:
            raise ConfigError(
                f"Sync interval must be between 1 and 60 minutes, got {interval_ms} ms"
            )
        return interval_ms

    @property
    def state(self) -> SyncState:
        """Get the current sync state."""
        return self._state

    @property
    def last_result(self) -> SyncResult | None:
        """Get the result of the last completed pass."""
        return self._last_result

    @property
    def interval_ms(self) -> int:
        """Get the automatic sync period in milliseconds."""
        return self._interval_ms

    @property
    def is_syncing(self) -> bool:
        """Check if a pass or file operation holds the session lock."""
        return self._session.lock.locked()

    # === Full passes ===

    def trigger_manual(self) -> SyncResult | None:
        """Run a full pass now.

        Returns:
            The pass result, or None if a pass was already running.

        Raises:
            AuthError: If the session is not authenticated.
            NamespaceError: If the container cannot be resolved.
            RemoteError: If a remote error aborted the pass.
        """
        return self._run_pass("manual", raise_errors=True)

    def trigger_auto_timer(self) -> SyncResult | None:
        """Run a full pass from the timer. Errors are logged, not raised."""
        return self._run_pass("timer", raise_errors=False)

    def _run_pass(self, reason: str, raise_errors: bool) -> SyncResult | None:
        """Run a full pass unless one is in flight."""
        if not self._session.has_credentials:
            error = AuthError("Not authenticated. Run 'vaultdrive auth' first.")
            self._report_auth_error(error)
            if raise_errors:
                raise error
            return None

        if not self._session.lock.acquire(blocking=False):
            logger.info("Sync already in progress, skipping %s trigger", reason)
            return None

        try:
            self._state = SyncState.SYNCING
            logger.debug("Sync pass triggered (%s)", reason)
            try:
                result = self._reconciler.full_sync()
            except AuthError as e:
                self._report_auth_error(e)
                if raise_errors:
                    raise
                return None
            except (NamespaceError, *FILE_ERRORS) as e:
                self._state = _failure_state(e)
                logger.error("Sync pass aborted: %s", e)
                if raise_errors:
                    raise
                return None

            if result.offline:
                self._state = SyncState.OFFLINE
            else:
                self._state = SyncState.ERROR if result.errors else SyncState.IDLE
            self._last_result = result
        finally:
            if self._state is SyncState.SYNCING:
                self._state = SyncState.ERROR
            self._session.lock.release()

        if self._on_result:
            self._on_result(result)
        return result

    # === File events ===

    def trigger_on_save(self, path: str) -> FileOperation | None:
        """Push a modified file.

        A save event for a file the last pass just downloaded is its own
        echo and is dropped once.
        """
        if self._session.take_download(path):
            logger.debug("Skipping save event for downloaded file %s", path)
            return None
        return self._run_file_op("save", path, lambda: self._reconciler.sync_file(path))

    def trigger_on_rename(self, path: str, old_path: str) -> FileOperation | None:
        """Mirror a renamed file."""
        return self._run_file_op(
            "rename",
            path,
            lambda: self._reconciler.handle_rename(path, old_path),
        )

    def trigger_on_delete(self, path: str) -> FileOperation | None:
        """Mirror a deleted file."""
        return self._run_file_op("delete", path, lambda: self._reconciler.handle_delete(path))

    def _run_file_op(
        self,
        event: str,
        path: str,
        operation: Callable[[], T],
    ) -> T | None:
        """Run a single-file operation under the session lock."""
        if not self._session.has_credentials:
            logger.debug("Ignoring %s event for %s: not authenticated", event, path)
            return None

        with self._session.lock:
            try:
                return operation()
            except AuthError as e:
                self._report_auth_error(e)
            except (NamespaceError, *FILE_ERRORS) as e:
                logger.error("Error handling %s of %s: %s", event, path, e)
        return None

    def _report_auth_error(self, error: AuthError) -> None:
        self._state = SyncState.ERROR
        logger.error("Authentication failed: %s", error)
        if self._on_auth_error:
            self._on_auth_error(error)

    # === Timer ===

    def _auto_sync_job(self) -> None:
        """Job function for the periodic sync."""
        try:
            self.trigger_auto_timer()
        except Exception:
            logger.exception("Error during scheduled sync")

    @property
    def auto_sync_running(self) -> bool:
        """Check if the periodic sync job is scheduled."""
        return self._scheduler is not None and self._scheduler.get_job(AUTO_SYNC_JOB_ID) is not None

    def start_auto_sync(self, interval_ms: int | None = None) -> None:
        """Start (or restart) the periodic sync.

        Restarting replaces the existing job, so timers never overlap.

        Args:
            interval_ms: New period in milliseconds; keeps the current one
                when omitted.
        """
        if interval_ms is not None:
            self._interval_ms = self._check_interval(interval_ms)

        if self._scheduler is None:
            self._scheduler = BackgroundScheduler()
            self._scheduler.start()

        self._scheduler.add_job(
            self._auto_sync_job,
            trigger=IntervalTrigger(seconds=self._interval_ms / 1000),
            id=AUTO_SYNC_JOB_ID,
            name="Periodic vault sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Auto sync started (every %.0f s)", self._interval_ms / 1000)

    def stop_auto_sync(self) -> None:
        """Stop the periodic sync, keeping the scheduler alive."""
        if self.auto_sync_running:
            assert self._scheduler is not None
            self._scheduler.remove_job(AUTO_SYNC_JOB_ID)
            logger.info("Auto sync stopped")

    def shutdown(self) -> None:
        """Stop the timer thread."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
