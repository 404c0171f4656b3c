"""Reconciliation result models."""

from __future__ import annotations

from pydantic import BaseModel, Field, computed_field


class DriftEntry(BaseModel):
    """A record whose live probes disagree with it and need a human decision."""

    workspace_id: str
    branch: str = ""
    path: str = ""


class ReconcileSummary(BaseModel):
    """Outcome of one reconciliation pass.

    ``ok`` and ``stale`` are counts; stale records have already been deleted
    by the time the summary is returned.  ``untracked`` lists working copies
    under the storage root that no record points at.
    """

    ok: int = 0
    stale: int = 0
    orphaned_deleted_path: list[DriftEntry] = Field(default_factory=list)
    orphaned_no_session: list[DriftEntry] = Field(default_factory=list)
    stale_ids: list[str] = Field(default_factory=list)
    untracked: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def orphaned_deleted_path_count(self) -> int:
        return len(self.orphaned_deleted_path)

    @computed_field
    @property
    def orphaned_no_session_count(self) -> int:
        return len(self.orphaned_no_session)

    @property
    def in_sync(self) -> bool:
        return not (self.orphaned_deleted_path or self.orphaned_no_session or self.stale)
