"""Probes and thin wrappers over tmux, psutil, git and the filesystem."""

from worktree_agent.core.probes.base import (
    PaneRef,
    PathProbe,
    ProcessInspector,
    SessionController,
    SessionInspector,
)
from worktree_agent.core.probes.command import CommandError
from worktree_agent.core.probes.filesystem import LocalPaths, expand_path, is_working_copy
from worktree_agent.core.probes.git import GitWorktrees
from worktree_agent.core.probes.process import PsutilProcesses
from worktree_agent.core.probes.tmux import TmuxSessions

__all__ = [
    "CommandError",
    "GitWorktrees",
    "LocalPaths",
    "PaneRef",
    "PathProbe",
    "ProcessInspector",
    "PsutilProcesses",
    "SessionController",
    "SessionInspector",
    "TmuxSessions",
    "expand_path",
    "is_working_copy",
]
