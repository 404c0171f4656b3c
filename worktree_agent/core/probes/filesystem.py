"""Filesystem probes."""

from __future__ import annotations

import os
from pathlib import Path


def expand_path(path: str | Path) -> Path:
    """Expand ``~`` and normalise.  Applied before every filesystem probe."""
    return Path(os.path.normpath(os.path.expanduser(str(path))))


def is_working_copy(path: str | Path) -> bool:
    """A git checkout: ``.git`` is a directory (clone) or a file (linked worktree)."""
    return (expand_path(path) / ".git").exists()


class LocalPaths:
    """PathProbe backed by the local filesystem.

    A path counts as present only if it is a directory; a stray file at a
    working-copy location is as good as missing.
    """

    def exists(self, path: str) -> bool:
        if not path:
            return False
        try:
            return expand_path(path).is_dir()
        except OSError:
            return False
