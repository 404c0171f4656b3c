"""Plain-text renderings for status lines and workspace info.

Colour and terminal styling belong to whoever embeds the output (a tmux
``status-right`` format, a shell prompt); these helpers only produce text.
"""

from __future__ import annotations

from collections.abc import Iterable

from worktree_agent.core.activity.classifier import ActivityClassifier, agent_binary
from worktree_agent.core.models.enums import AgentStatus
from worktree_agent.core.models.record import WorkspaceRecord

SEPARATOR = " │ "
WORKTREE_ICON = "🌳"

INFO_FORMATS = ("icon", "branch", "topic", "repo", "path", "description", "short", "full", "status-line", "json")


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max(max_len - 1, 0)] + "…"


def status_entry(record: WorkspaceRecord, status: AgentStatus, agent: str = "", *, max_topic_len: int = 14) -> str:
    label = agent_binary(record.agent_command) or agent or "sh"
    return f"{status.glyph} {label}:{truncate(record.topic, max_topic_len)}"


def render_status_line(
    records: Iterable[tuple[str, WorkspaceRecord]],
    classifier: ActivityClassifier,
    *,
    max_topic_len: int = 14,
) -> str:
    """One entry per workspace with a live session; empty string if none.

    Workspaces whose session is gone are left out, so the line only shows
    what can be switched to.
    """
    entries = []
    for wid, record in sorted(records, key=lambda item: item[0]):
        report = classifier.inspect(wid, record.agent_command or None)
        if report.status is AgentStatus.DEAD:
            continue
        entries.append(status_entry(record, report.status, report.agent, max_topic_len=max_topic_len))
    return SEPARATOR.join(entries)


def render_info(workspace_id: str, record: WorkspaceRecord, fmt: str = "full") -> str:
    """Render one record for ``wtagent info``.  Raises ``ValueError`` on unknown formats."""
    renderers = {
        "icon": lambda: WORKTREE_ICON,
        "branch": lambda: record.branch,
        "topic": lambda: record.topic,
        "repo": lambda: record.project,
        "path": lambda: record.working_copy_path,
        "description": lambda: record.description,
        "short": lambda: f"{WORKTREE_ICON} {record.branch}",
        "full": lambda: f"{WORKTREE_ICON} {record.project}/{record.topic} ({record.branch})",
        "status-line": lambda: f"[{workspace_id}] {WORKTREE_ICON} {record.branch}",
        "json": lambda: record.model_dump_json(indent=2),
    }
    if fmt not in renderers:
        raise ValueError(f"Unknown format: {fmt}")
    return renderers[fmt]()


def export_text(records: Iterable[tuple[str, WorkspaceRecord]]) -> str:
    """Human-readable dump of every record."""
    blocks = []
    for wid, record in records:
        lines = [
            wid,
            f"  Repo: {record.project}",
            f"  Branch: {record.branch}",
            f"  Path: {record.working_copy_path}",
            f"  Created: {record.created_at.isoformat()}",
        ]
        if record.description:
            lines.append(f"  Description: {record.description}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) if blocks else "No sessions"
