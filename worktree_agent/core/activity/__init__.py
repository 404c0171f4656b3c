"""Agent activity detection: process tree walking, pane patterns, classification."""

from worktree_agent.core.activity.classifier import (
    ActivityClassifier,
    ActivityReport,
    PaneActivity,
    agent_binary,
    resource_state,
)
from worktree_agent.core.activity.patterns import (
    AgentPattern,
    PaneSnapshot,
    PatternRegistry,
    classify_pane_content,
    register_pattern,
)
from worktree_agent.core.activity.walker import find_descendant

__all__ = [
    "ActivityClassifier",
    "ActivityReport",
    "AgentPattern",
    "PaneActivity",
    "PaneSnapshot",
    "PatternRegistry",
    "agent_binary",
    "classify_pane_content",
    "find_descendant",
    "register_pattern",
    "resource_state",
]
