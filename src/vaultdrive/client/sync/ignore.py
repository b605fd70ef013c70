"""Exclusion rules for vault files.

A vault may hold editor state, version-control data and scratch files that
should never reach the drive. Rules use gitignore-like syntax:

- ``name/`` excludes everything below any directory called ``name``
- patterns containing ``**`` are matched against the whole relative path
- other patterns match either the whole relative path or the file name

Extra rules are read from ``.syncignore`` at the vault root.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from pathlib import Path

IGNORE_FILE_NAME = ".syncignore"

DEFAULT_IGNORE_PATTERNS = [
    # Version control and the vault's own trash
    ".git/",
    ".trash/",
    # Application state
    ".vaultdrive/",
    IGNORE_FILE_NAME,
    # OS metadata
    ".DS_Store",
    "Thumbs.db",
    # Editor scratch files
    "*.tmp",
    "*.swp",
    "~*",
]


@dataclass(frozen=True)
class _Rule:
    pattern: str
    directory: bool
    deep: bool

    @classmethod
    def parse(cls, raw: str) -> _Rule:
        if raw.endswith("/"):
            return cls(raw.rstrip("/"), directory=True, deep=False)
        return cls(raw, directory=False, deep="**" in raw)

    def matches(self, rel_path: str, parts: list[str]) -> bool:
        if self.directory:
            # Any component may be the directory, including the path itself
            return any(fnmatch.fnmatch(part, self.pattern) for part in parts)
        if self.deep:
            return fnmatch.fnmatch(rel_path, self.pattern)
        return fnmatch.fnmatch(rel_path, self.pattern) or fnmatch.fnmatch(parts[-1], self.pattern)


class IgnorePatterns:
    """Decides which vault paths stay out of sync."""

    def __init__(self, patterns: list[str] | None = None) -> None:
        """Initialize with the default rules plus any extra patterns.

        Args:
            patterns: Additional gitignore-style patterns.
        """
        self._rules = [_Rule.parse(p) for p in DEFAULT_IGNORE_PATTERNS]
        for pattern in patterns or []:
            self.add_pattern(pattern)

    @property
    def patterns(self) -> list[str]:
        """Get the active patterns as written."""
        return [f"{r.pattern}/" if r.directory else r.pattern for r in self._rules]

    def add_pattern(self, pattern: str) -> None:
        """Add one rule."""
        self._rules.append(_Rule.parse(pattern))

    def load_from_file(self, path: Path) -> None:
        """Append the rules of a .syncignore file; a missing file adds none."""
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        for line in text.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                self.add_pattern(line)

    def matches(self, rel_path: str) -> bool:
        """Check a vault-relative path (forward slashes)."""
        parts = rel_path.split("/")
        return any(rule.matches(rel_path, parts) for rule in self._rules)

    def should_ignore(self, path: Path, base_path: Path) -> bool:
        """Check an absolute path under the vault root.

        Symlinks are always excluded. Paths outside the root are not this
        vault's concern and are reported as not ignored.
        """
        if path.is_symlink():
            return True
        try:
            rel_path = path.relative_to(base_path)
        except ValueError:
            return False
        return self.matches(rel_path.as_posix())
