"""Data models for tmux-worktree-agent."""

from worktree_agent.core.models.enums import AgentStatus, DriftState, PaneState
from worktree_agent.core.models.reconcile import DriftEntry, ReconcileSummary
from worktree_agent.core.models.record import (
    FIELD_ALIASES,
    WorkspaceRecord,
    sanitize_name,
    session_name,
    workspace_id,
)

__all__ = [
    "FIELD_ALIASES",
    "AgentStatus",
    "DriftEntry",
    "DriftState",
    "PaneState",
    "ReconcileSummary",
    "WorkspaceRecord",
    "sanitize_name",
    "session_name",
    "workspace_id",
]
