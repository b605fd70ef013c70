"""Shared configuration classes for vaultdrive.

This module defines the settings object consumed by the sync session,
the scheduler and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

DEFAULT_FOLDER_NAME = "Vault"
DEFAULT_SYNC_INTERVAL_MS = 5 * 60 * 1000
MIN_SYNC_INTERVAL_MS = 60 * 1000
MAX_SYNC_INTERVAL_MS = 60 * 60 * 1000


class ConfigError(ValueError):
    """Invalid configuration value."""


class StorageLocation(str, Enum):
    """Where synced files live on the drive.

    HIDDEN uses the application-private appDataFolder space, which generic
    listings cannot see. VISIBLE uses a named folder in the user's drive.
    """

    HIDDEN = "appDataFolder"
    VISIBLE = "visible"

    @classmethod
    def parse(cls, value: str | StorageLocation) -> StorageLocation:
        """Parse a storage location from its value or a friendly alias."""
        if isinstance(value, StorageLocation):
            return value
        aliases = {"hidden": cls.HIDDEN, "appdatafolder": cls.HIDDEN, "visible": cls.VISIBLE}
        try:
            return aliases[value.strip().lower()]
        except KeyError:
            raise ConfigError(
                f"Unknown storage location '{value}' (expected 'hidden' or 'visible')"
            ) from None


@dataclass
class DriveConfig:
    """Configuration for syncing a vault with the drive.

    Attributes:
        client_id: OAuth client ID of the Drive API application.
        client_secret: OAuth client secret.
        refresh_token: Durable refresh token (empty until authorized).
        storage_location: Hidden app-data space or a visible folder.
        visible_folder_name: Folder name used in visible mode.
        sync_interval_ms: Period of the automatic sync (1 to 60 minutes).
        auto_sync: Run full passes on a timer.
        sync_on_save: Push local modify/rename/delete events as they happen.
        manual_sync: Allow manually triggered passes.
        timeout: HTTP request timeout in seconds.
        vault_path: Local vault directory.
    """

    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    storage_location: StorageLocation = StorageLocation.HIDDEN
    visible_folder_name: str = DEFAULT_FOLDER_NAME
    sync_interval_ms: int = DEFAULT_SYNC_INTERVAL_MS
    auto_sync: bool = False
    sync_on_save: bool = False
    manual_sync: bool = True
    timeout: float = 30.0
    vault_path: Path | None = None

    def __post_init__(self) -> None:
        """Normalize and validate values."""
        self.storage_location = StorageLocation.parse(self.storage_location)
        self.visible_folder_name = self.visible_folder_name.strip() or DEFAULT_FOLDER_NAME
        self.sync_interval_ms = int(self.sync_interval_ms)
        if not MIN_SYNC_INTERVAL_MS <= self.sync_interval_ms <= MAX_SYNC_INTERVAL_MS:
            raise ConfigError(
                f"Sync interval must be between 1 and 60 minutes, got {self.sync_interval_ms} ms"
            )
        if self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {self.timeout}")
        if self.vault_path is not None:
            self.vault_path = Path(self.vault_path).expanduser()

    @property
    def sync_interval_s(self) -> float:
        """Get the sync interval in seconds."""
        return self.sync_interval_ms / 1000

    @property
    def has_client(self) -> bool:
        """Check whether OAuth client credentials are configured."""
        return bool(self.client_id and self.client_secret)

    @property
    def is_authorized(self) -> bool:
        """Check whether a refresh token is available."""
        return self.has_client and bool(self.refresh_token)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DriveConfig:
        """Create from a stored settings dictionary.

        Unknown keys are ignored so that older config files keep loading.
        """
        known = {
            "client_id",
            "client_secret",
            "refresh_token",
            "storage_location",
            "visible_folder_name",
            "sync_interval_ms",
            "auto_sync",
            "sync_on_save",
            "manual_sync",
            "timeout",
            "vault_path",
        }
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary.

        The refresh token is stored separately and is not included.
        """
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "storage_location": self.storage_location.value,
            "visible_folder_name": self.visible_folder_name,
            "sync_interval_ms": self.sync_interval_ms,
            "auto_sync": self.auto_sync,
            "sync_on_save": self.sync_on_save,
            "manual_sync": self.manual_sync,
            "timeout": self.timeout,
            "vault_path": str(self.vault_path) if self.vault_path else None,
        }
