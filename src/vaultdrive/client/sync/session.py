"""Sync session: the shared state of one sync lifetime.

A session owns the token store (access token), the namespace resolver
(container handle) and the lock that serializes every sequence of remote
calls made on their behalf.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from vaultdrive.client.api import DriveClient
from vaultdrive.client.auth import Credentials, TokenStore
from vaultdrive.client.sync.namespace import NamespaceHandle, NamespaceResolver
from vaultdrive.core.config import DriveConfig, StorageLocation

logger = logging.getLogger(__name__)

# Save events arriving this long after a download are real edits
DOWNLOAD_ECHO_WINDOW_S = 30.0


@dataclass
class SyncSession:
    """Mutable state shared by the reconciler and the scheduler."""

    tokens: TokenStore
    client: DriveClient
    resolver: NamespaceResolver
    location: StorageLocation = StorageLocation.HIDDEN
    folder_name: str | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)
    _downloads: dict[str, float] = field(default_factory=dict, init=False, repr=False)
    _downloads_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    @classmethod
    def from_config(
        cls,
        config: DriveConfig,
        on_refresh_token: Callable[[str], None] | None = None,
    ) -> SyncSession:
        """Build a session from configuration.

        Args:
            config: Drive configuration.
            on_refresh_token: Called when a new refresh token is obtained.
        """
        tokens = TokenStore(
            Credentials(
                client_id=config.client_id,
                client_secret=config.client_secret,
                refresh_token=config.refresh_token,
            ),
            timeout=config.timeout,
            on_refresh_token=on_refresh_token,
        )
        client = DriveClient(tokens, timeout=config.timeout)
        return cls(
            tokens=tokens,
            client=client,
            resolver=NamespaceResolver(client),
            location=config.storage_location,
            folder_name=config.visible_folder_name,
        )

    @property
    def has_credentials(self) -> bool:
        """Check if the session can authenticate."""
        return self.tokens.has_refresh_token or bool(self.tokens.access_token)

    def namespace(self) -> NamespaceHandle:
        """Resolve the container for the configured storage location."""
        return self.resolver.resolve(self.location, self.folder_name)

    def record_download(self, path: str) -> None:
        """Remember a file written from the drive so its save event is dropped."""
        with self._downloads_lock:
            self._downloads[path] = time.monotonic()

    def forget_download(self, path: str) -> None:
        """Drop a recorded download, e.g. when writing it failed."""
        with self._downloads_lock:
            self._downloads.pop(path, None)

    def take_download(self, path: str) -> bool:
        """Consume a recorded download.

        Returns:
            True if ``path`` was downloaded within the echo window.
        """
        with self._downloads_lock:
            recorded = self._downloads.pop(path, None)
        return recorded is not None and time.monotonic() - recorded < DOWNLOAD_ECHO_WINDOW_S

    def reconfigure(self, location: StorageLocation, folder_name: str | None) -> None:
        """Switch the storage location; the cached handle is dropped."""
        with self.lock:
            if location is self.location and folder_name == self.folder_name:
                return
            logger.info(
                "Storage location changed to %s%s",
                location.value,
                f" ({folder_name})" if location is StorageLocation.VISIBLE else "",
            )
            self.location = location
            self.folder_name = folder_name
            self.resolver.invalidate()

    def close(self) -> None:
        """Close the HTTP clients."""
        self.client.close()
        self.tokens.close()
