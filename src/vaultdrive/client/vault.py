"""Local vault access.

This module provides:
- LocalFile: a file snapshot keyed by its vault-relative path
- LocalFileSystem: the capabilities the reconciler needs from the vault
- VaultFileSystem: a directory-backed implementation
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol

from vaultdrive.client.sync.ignore import IGNORE_FILE_NAME, IgnorePatterns
from vaultdrive.client.sync.types import VaultError

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """A file in the vault.

    Attributes:
        path: Vault-relative path with forward slashes.
        size: Size in bytes when listed.
        mtime: Modification time when listed.
    """

    path: str
    size: int = 0
    mtime: float = 0.0


class LocalFileSystem(Protocol):
    """Capabilities the sync engine needs from the vault."""

    def list_files(self) -> list[LocalFile]:
        """List every syncable file in enumeration order."""
        ...

    def read(self, path: str) -> bytes:
        """Read a file's content."""
        ...

    def create(self, path: str, content: bytes) -> None:
        """Create a new file; fails if it already exists."""
        ...

    def exists(self, path: str) -> bool:
        """Check whether a file exists."""
        ...


def normalize_path(path: str) -> str:
    """Validate and normalize a vault-relative path.

    Raises:
        VaultError: If the path is empty, absolute or escapes the vault.
    """
    cleaned = path.replace("\\", "/")
    posix = PurePosixPath(cleaned)
    if not cleaned or posix.is_absolute() or ".." in posix.parts or cleaned.startswith("/"):
        raise VaultError(f"Unsafe vault path: {path!r}")
    parts = [p for p in posix.parts if p not in ("", ".")]
    if not parts:
        raise VaultError(f"Unsafe vault path: {path!r}")
    return "/".join(parts)


class VaultFileSystem:
    """Vault backed by a local directory."""

    def __init__(self, root: Path, ignore_patterns: IgnorePatterns | None = None) -> None:
        """Initialize the vault.

        Args:
            root: Vault directory (created if missing).
            ignore_patterns: Patterns for files to leave out of sync. When
                omitted, defaults plus the vault's .syncignore are used.
        """
        self._root = Path(root).expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        if ignore_patterns is None:
            ignore_patterns = IgnorePatterns()
            ignore_patterns.load_from_file(self._root / IGNORE_FILE_NAME)
        self._ignore = ignore_patterns

    @property
    def root(self) -> Path:
        """Get the vault root directory."""
        return self._root

    @property
    def ignore_patterns(self) -> IgnorePatterns:
        """Get the ignore patterns."""
        return self._ignore

    def _resolve(self, path: str) -> Path:
        """Map a vault-relative path to an absolute path inside the root."""
        absolute = (self._root / normalize_path(path)).resolve()
        if not absolute.is_relative_to(self._root):
            raise VaultError(f"Path escapes the vault: {path!r}")
        return absolute

    def list_files(self) -> list[LocalFile]:
        """List syncable files, sorted by path within each directory."""
        files: list[LocalFile] = []
        for dirpath, dirnames, filenames in os.walk(self._root):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames if not self._ignore.should_ignore(current / d, self._root)
            )
            for filename in sorted(filenames):
                full = current / filename
                if self._ignore.should_ignore(full, self._root):
                    continue
                try:
                    stat = full.stat()
                except OSError:
                    # Deleted between listing and stat
                    continue
                files.append(
                    LocalFile(
                        path=full.relative_to(self._root).as_posix(),
                        size=stat.st_size,
                        mtime=stat.st_mtime,
                    )
                )
        return files

    def read(self, path: str) -> bytes:
        """Read a file's content."""
        return self._resolve(path).read_bytes()

    def create(self, path: str, content: bytes) -> None:
        """Create a new file with the given content.

        Raises:
            VaultError: If the path is unsafe or already exists.
        """
        target = self._resolve(path)
        if target.exists():
            raise VaultError(f"Vault file already exists: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "xb") as f:
            f.write(content)
        logger.debug("Created vault file %s (%d bytes)", path, len(content))

    def exists(self, path: str) -> bool:
        """Check whether a vault file exists."""
        try:
            return self._resolve(path).exists()
        except VaultError:
            return False

    def is_ignored(self, path: str) -> bool:
        """Check whether a vault-relative path is excluded from sync."""
        return self._ignore.matches(path)
