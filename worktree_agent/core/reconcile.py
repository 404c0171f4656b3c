"""Reconciliation between stored records, live sessions and working copies.

Three sources of truth drift independently: the metadata store, the tmux
server and the filesystem.  One pass classifies every record against two
live probes:

=========  ======  =======================  ===================================
session    path    state                    action
=========  ======  =======================  ===================================
yes        yes     ok                       none
yes        no      orphaned-deleted-path    report (recreate path or tear down)
no         yes     orphaned-no-session      report (new session or delete path)
no         no      stale                    delete record inline
=========  ======  =======================  ===================================

Stale records carry nothing recoverable, so they are deleted during the same
pass.  Orphans are only reported; repairs are human-directed and live in
``core.managers.workspaces``.  Working copies under the storage root that no
record points at are reported as untracked and never touched.

Each record is probed on its own, so the order of ``list_ids`` has no effect
on any record's classification.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from worktree_agent.core.models.enums import DriftState
from worktree_agent.core.models.reconcile import DriftEntry, ReconcileSummary
from worktree_agent.core.models.record import WorkspaceRecord
from worktree_agent.core.probes.base import PathProbe, SessionInspector
from worktree_agent.core.probes.filesystem import expand_path, is_working_copy
from worktree_agent.core.store.base import MetadataStore


class Reconciler:
    def __init__(
        self,
        store: MetadataStore,
        sessions: SessionInspector,
        paths: PathProbe,
        *,
        storage_root: str | Path | None = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._paths = paths
        self._storage_root = expand_path(storage_root) if storage_root is not None else None

    # -- Classification --------------------------------------------------------

    def classify_record(self, workspace_id: str, record: WorkspaceRecord) -> DriftState:
        """Drift state of one record.  No side effects."""
        path = record.working_copy_path
        return DriftState.from_probes(
            session_exists=self._sessions.session_exists(workspace_id),
            path_exists=bool(path) and self._paths.exists(str(expand_path(path))),
        )

    # -- Pass ------------------------------------------------------------------

    def reconcile(self, *, scan_untracked: bool = True) -> ReconcileSummary:
        """Classify every record, delete stale ones, report the rest."""
        summary = ReconcileSummary()

        for workspace_id in self._store.list_ids():
            record = self._store.get(workspace_id)
            if record is None:
                # Deleted by another invocation since listing.
                continue

            state = self.classify_record(workspace_id, record)
            entry = DriftEntry(workspace_id=workspace_id, branch=record.branch, path=record.working_copy_path)

            if state is DriftState.OK:
                summary.ok += 1
            elif state is DriftState.ORPHANED_DELETED_PATH:
                summary.orphaned_deleted_path.append(entry)
            elif state is DriftState.ORPHANED_NO_SESSION:
                summary.orphaned_no_session.append(entry)
            else:
                self._store.delete(workspace_id)
                summary.stale += 1
                summary.stale_ids.append(workspace_id)
                logger.info("Reconcile: removed stale record {}", workspace_id)

        if scan_untracked:
            summary.untracked = self.find_untracked()

        logger.info(
            "Reconcile: ok={} orphaned_deleted_path={} orphaned_no_session={} stale={} untracked={}",
            summary.ok,
            summary.orphaned_deleted_path_count,
            summary.orphaned_no_session_count,
            summary.stale,
            len(summary.untracked),
        )
        return summary

    def clean_stale(self) -> list[str]:
        """Delete only stale records; used before listing workspaces."""
        removed = []
        for workspace_id in self._store.list_ids():
            record = self._store.get(workspace_id)
            if record is None:
                continue
            if self.classify_record(workspace_id, record) is DriftState.STALE:
                self._store.delete(workspace_id)
                removed.append(workspace_id)
        return removed

    # -- Untracked working copies ----------------------------------------------

    def find_untracked(self) -> list[str]:
        """Working copies at ``<root>/<project>/<topic>`` with no record."""
        root = self._storage_root
        if root is None or not root.is_dir():
            return []

        untracked = []
        for candidate in _layout_entries(root):
            if not is_working_copy(candidate):
                continue
            if self._store.find_by_path(candidate) is not None:
                continue
            logger.warning("Reconcile: untracked working copy {}", candidate)
            untracked.append(str(candidate))
        return untracked


def _layout_entries(root: Path) -> list[Path]:
    entries = []
    try:
        projects = sorted(p for p in root.iterdir() if p.is_dir())
    except OSError:
        return []
    for project in projects:
        try:
            entries.extend(sorted(t for t in project.iterdir() if t.is_dir()))
        except OSError:
            logger.debug("Reconcile: cannot list {}", project)
    return entries
