"""Metadata store interface.

The metadata store is the durable half of a workspace: a flat mapping from
workspace identifier to ``WorkspaceRecord``.  Live state (tmux session,
working copy on disk) is never stored here; it is probed on demand.

Every call reads the backing state afresh.  Each CLI invocation is a new
process and other terminals may write the store at any time, so
implementations must not cache across calls.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from worktree_agent.core.models.record import WorkspaceRecord


class StoreCorruptedError(ValueError):
    """The persisted store is unreadable or malformed.

    ``backup_path`` points at a copy of the suspect file taken before the
    failing operation, when one was made.
    """

    def __init__(self, path: Path, reason: str, backup_path: Path | None = None) -> None:
        self.path = path
        self.reason = reason
        self.backup_path = backup_path
        msg = f"Metadata store {path} is corrupted: {reason}"
        if backup_path is not None:
            msg += f" (backup saved to {backup_path})"
        super().__init__(msg)


@runtime_checkable
class MetadataStore(Protocol):
    """Synchronous protocol for workspace record persistence."""

    def put(self, workspace_id: str, record: WorkspaceRecord) -> None:
        """Insert or fully replace a record."""
        ...

    def get(self, workspace_id: str) -> WorkspaceRecord | None:
        """Read a record.  ``None`` if absent."""
        ...

    def get_field(self, workspace_id: str, field: str) -> str:
        """Project one field as text.  Empty string if record or field is missing."""
        ...

    def delete(self, workspace_id: str) -> None:
        """Remove a record.  No-op if absent."""
        ...

    def list_ids(self) -> list[str]:
        """All identifiers.  Callers must not depend on the order."""
        ...

    def find_by_path(self, path: str | Path) -> str | None:
        """Identifier of the record whose working copy is ``path``, if any."""
        ...

    def count(self) -> int: ...
