"""Storage-location addressing for drive operations.

This module provides:
- NamespaceHandle: resolved container plus the query/parent helpers
- NamespaceResolver: finds or creates the visible folder, once per session

Hidden mode addresses the appDataFolder space, which only appears in
listings scoped with ``spaces=appDataFolder``. Visible mode addresses a
named folder; listings there are disambiguated by parent alone.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from vaultdrive.client.api import FOLDER_MIME_TYPE, RemoteError, escape_query_value
from vaultdrive.client.sync.types import NamespaceError
from vaultdrive.core.config import StorageLocation

if TYPE_CHECKING:
    from vaultdrive.client.api import DriveClient

logger = logging.getLogger(__name__)

HIDDEN_SPACE = "appDataFolder"


@dataclass(frozen=True)
class NamespaceHandle:
    """Resolved reference to the remote container."""

    location: StorageLocation
    container_id: str
    folder_name: str | None = None

    def parent_reference(self) -> list[str]:
        """Get the ``parents`` value for newly created files."""
        return [self.container_id]

    def filter_for(self, name: str) -> str:
        """Get the query matching a file by name under the container."""
        return (
            f"name = '{escape_query_value(name)}' "
            f"and '{escape_query_value(self.container_id)}' in parents "
            "and trashed = false"
        )

    def listing_filter(self) -> str:
        """Get the query matching every non-folder file under the container."""
        return (
            f"'{escape_query_value(self.container_id)}' in parents "
            f"and mimeType != '{FOLDER_MIME_TYPE}' "
            "and trashed = false"
        )

    def search_space(self) -> str | None:
        """Get the ``spaces`` scope; only the hidden space needs one."""
        if self.location is StorageLocation.HIDDEN:
            return HIDDEN_SPACE
        return None


HIDDEN_HANDLE = NamespaceHandle(location=StorageLocation.HIDDEN, container_id=HIDDEN_SPACE)


class NamespaceResolver:
    """Resolves the storage location to a container handle.

    The visible folder is looked up (or created) on first use and cached
    for the session. A different location or folder name replaces the
    cached handle.
    """

    def __init__(self, client: DriveClient) -> None:
        """Initialize the resolver.

        Args:
            client: Drive client used for folder lookup and creation.
        """
        self._client = client
        self._handle: NamespaceHandle | None = None
        self._lock = threading.Lock()

    @property
    def handle(self) -> NamespaceHandle | None:
        """Get the cached handle, if resolved."""
        return self._handle

    def invalidate(self) -> None:
        """Forget the cached handle, forcing re-resolution."""
        with self._lock:
            if self._handle is not None:
                logger.debug("Namespace handle invalidated")
            self._handle = None

    def resolve(self, location: StorageLocation, folder_name: str | None = None) -> NamespaceHandle:
        """Resolve the container for a storage location.

        Args:
            location: Hidden or visible storage.
            folder_name: Folder name (visible mode only).

        Returns:
            The container handle.

        Raises:
            NamespaceError: If the visible folder cannot be found or created.
            AuthError: If authentication fails.
        """
        if location is StorageLocation.HIDDEN:
            self._handle = HIDDEN_HANDLE
            return HIDDEN_HANDLE

        if not folder_name:
            raise NamespaceError("Visible storage requires a folder name")

        with self._lock:
            cached = self._handle
            if cached and cached.location is location and cached.folder_name == folder_name:
                return cached

            try:
                folder_id = self._find_or_create_folder(folder_name)
            except RemoteError as e:
                logger.error("Could not resolve folder '%s': %s", folder_name, e)
                raise NamespaceError(f"Could not resolve folder '{folder_name}': {e}") from e

            self._handle = NamespaceHandle(
                location=location,
                container_id=folder_id,
                folder_name=folder_name,
            )
            return self._handle

    def _find_or_create_folder(self, folder_name: str) -> str:
        """Look up the visible folder by name, creating it when absent."""
        query = (
            f"name = '{escape_query_value(folder_name)}' "
            f"and mimeType = '{FOLDER_MIME_TYPE}' "
            "and trashed = false"
        )
        matches = self._client.list_files(query)
        if matches:
            if len(matches) > 1:
                logger.warning(
                    "Found %d folders named '%s', using %s",
                    len(matches),
                    folder_name,
                    matches[0].id,
                )
            logger.info("Using existing folder '%s' (%s)", folder_name, matches[0].id)
            return matches[0].id

        folder = self._client.create_folder(folder_name)
        logger.info("Created folder '%s' (%s)", folder_name, folder.id)
        return folder.id
