"""Reconciliation between the vault and the drive.

This module provides:
- Reconciler: decides create/update/download/rename/delete per file

There is no local manifest: every decision is re-derived from a live
query matching ``name = <path>`` under the resolved container. When several
remote entries share a name, the first result returned by the API is used.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from vaultdrive.client.api import RemoteError
from vaultdrive.client.sync.types import FileOperation, SyncResult, VaultError

if TYPE_CHECKING:
    from vaultdrive.client.api import DriveFile
    from vaultdrive.client.sync.namespace import NamespaceHandle
    from vaultdrive.client.sync.session import SyncSession
    from vaultdrive.client.vault import LocalFile, LocalFileSystem

logger = logging.getLogger(__name__)

# Failures that abandon one file but let the pass continue
FILE_ERRORS: tuple[type[Exception], ...] = (RemoteError, VaultError, OSError)


class Reconciler:
    """Applies sync decisions for the vault through the session's client.

    The reconciler does not lock; callers (the scheduler) hold the session
    lock around each operation.
    """

    def __init__(self, session: SyncSession, vault: LocalFileSystem) -> None:
        """Initialize the reconciler.

        Args:
            session: Sync session providing the client and namespace.
            vault: Local file collection.
        """
        self._session = session
        self._vault = vault

    @property
    def vault(self) -> LocalFileSystem:
        """Get the local vault."""
        return self._vault

    def full_sync(self, local_files: Iterable[LocalFile] | None = None) -> SyncResult:
        """Run a full pass: download missing files, then push every local file.

        Args:
            local_files: Files to push; defaults to the vault's listing taken
                before the download phase.

        Returns:
            SyncResult describing what happened.

        Raises:
            NamespaceError: If the container cannot be resolved.
            AuthError: If authentication fails.
        """
        namespace = self._session.namespace()
        files = list(local_files) if local_files is not None else self._vault.list_files()
        result = SyncResult()

        logger.info("Starting sync pass (%d local files)", len(files))

        self._download_missing(namespace, {f.path for f in files}, result)

        for local_file in files:
            try:
                operation = self.sync_file(local_file.path, namespace)
            except FILE_ERRORS as e:
                logger.error("Error syncing file %s: %s", local_file.path, e)
                result.record_error(local_file.path, e)
                continue
            result.record(operation, local_file.path)

        logger.info(
            "Sync pass finished: %d created, %d updated, %d downloaded, %d errors",
            len(result.created),
            len(result.updated),
            len(result.downloaded),
            len(result.errors),
        )
        return result

    def _download_missing(
        self,
        namespace: NamespaceHandle,
        local_paths: set[str],
        result: SyncResult,
    ) -> None:
        """Download remote files that have no local counterpart."""
        client = self._session.client
        try:
            remote_files = client.list_files(namespace.listing_filter(), namespace.search_space())
        except RemoteError as e:
            logger.error("Error listing remote files: %s", e)
            result.record_error("listing", e)
            return

        seen: set[str] = set()
        for remote in remote_files:
            name = remote.name
            if name in seen:
                logger.warning("Skipping duplicate remote entry %s (%s)", name, remote.id)
                continue
            seen.add(name)

            if name in local_paths or self._vault.exists(name):
                continue

            try:
                content = client.download_file(remote.id)
                self._session.record_download(name)
                self._vault.create(name, content)
            except FILE_ERRORS as e:
                self._session.forget_download(name)
                logger.error("Error downloading file %s: %s", name, e)
                result.record_error(name, e)
                continue

            logger.info("Downloaded file: %s", name)
            result.downloaded.append(name)

    def _find(self, namespace: NamespaceHandle, name: str) -> DriveFile | None:
        """Find the remote entry for a vault path, if any."""
        matches = self._session.client.list_files(
            namespace.filter_for(name), namespace.search_space()
        )
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                "%d remote entries named %s, using the first (%s)",
                len(matches),
                name,
                matches[0].id,
            )
        return matches[0]

    def sync_file(self, path: str, namespace: NamespaceHandle | None = None) -> FileOperation:
        """Push one local file: overwrite its remote entry or create one.

        Args:
            path: Vault-relative path.
            namespace: Resolved container; resolved here when omitted.

        Returns:
            FileOperation.UPDATED or FileOperation.CREATED.
        """
        namespace = namespace or self._session.namespace()
        client = self._session.client
        content = self._vault.read(path)

        existing = self._find(namespace, path)
        if existing is not None:
            client.update_content(existing.id, content)
            logger.debug("Updated %s (%s)", path, existing.id)
            return FileOperation.UPDATED

        created = client.create_file(path, namespace.parent_reference(), content)
        logger.debug("Created %s (%s)", path, created.id)
        return FileOperation.CREATED

    def handle_rename(
        self,
        path: str,
        old_path: str,
        namespace: NamespaceHandle | None = None,
    ) -> FileOperation:
        """Mirror a local rename, keeping the remote file ID.

        Content is pushed again after the rename in case it changed along
        with the path. If the old path was never synced, the file is
        treated as new.

        Args:
            path: New vault-relative path.
            old_path: Previous vault-relative path.
            namespace: Resolved container; resolved here when omitted.

        Returns:
            FileOperation.RENAMED, or the result of sync_file on fallback.
        """
        namespace = namespace or self._session.namespace()
        client = self._session.client

        existing = self._find(namespace, old_path)
        if existing is None:
            logger.info("%s not found remotely, syncing %s as a new file", old_path, path)
            return self.sync_file(path, namespace)

        client.rename_file(existing.id, path)
        client.update_content(existing.id, self._vault.read(path))
        logger.info("Renamed %s -> %s (%s)", old_path, path, existing.id)
        return FileOperation.RENAMED

    def handle_delete(self, path: str, namespace: NamespaceHandle | None = None) -> FileOperation:
        """Mirror a local delete. Missing remote entries are a no-op.

        Args:
            path: Vault-relative path of the deleted file.
            namespace: Resolved container; resolved here when omitted.

        Returns:
            FileOperation.DELETED or FileOperation.NONE.
        """
        namespace = namespace or self._session.namespace()

        existing = self._find(namespace, path)
        if existing is None:
            logger.info("File %s not found remotely, nothing to delete", path)
            return FileOperation.NONE

        self._session.client.delete_file(existing.id)
        logger.info("Deleted file %s from the drive", path)
        return FileOperation.DELETED
