"""Shared types for vaultdrive."""

from __future__ import annotations

from enum import Enum


class SyncState(str, Enum):
    """Sync state of the session.

    Reported by the scheduler after each trigger.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    OFFLINE = "offline"
