"""Shared fixtures for vaultdrive tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fakes import FakeDrive, make_session
from vaultdrive.client.sync.session import SyncSession
from vaultdrive.client.vault import VaultFileSystem


@pytest.fixture
def drive() -> FakeDrive:
    """Create an empty in-memory drive."""
    return FakeDrive()


@pytest.fixture
def session(drive: FakeDrive) -> SyncSession:
    """Create an authorized hidden-mode session on the fake drive."""
    return make_session(drive)


@pytest.fixture
def vault(tmp_path: Path) -> VaultFileSystem:
    """Create an empty vault directory."""
    return VaultFileSystem(tmp_path / "vault")
