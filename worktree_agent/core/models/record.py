"""Workspace record model and identifier derivation.

A workspace pairs one git working copy, one tmux session and at most one
agent process.  The record is the durable half; the session and the path
are probed live and may disagree with it (see ``core.reconcile``).
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

_WHITESPACE = re.compile(r"\s+")
_SESSION_UNSAFE = re.compile(r"[.:]")

FIELD_ALIASES = {
    "repo": "project",
    "worktree_path": "working_copy_path",
    "main_repo_path": "origin_path",
    "agent_running": "agent_available",
    "agent_cmd": "agent_command",
    "workingCopyPath": "working_copy_path",
    "originPath": "origin_path",
    "createdAt": "created_at",
    "agentAvailable": "agent_available",
    "agentCommand": "agent_command",
}
"""Alternate key names (older releases, camelCase writers) -> current field names."""


def sanitize_name(text: str) -> str:
    """Make a topic filesystem- and session-safe: ``/`` -> ``-``, no whitespace, lowercase."""
    return _WHITESPACE.sub("", text.replace("/", "-")).lower()


def session_name(text: str) -> str:
    """tmux rewrites ``.`` and ``:`` in session names to ``_``; do the same up front."""
    return _SESSION_UNSAFE.sub("_", text)


def workspace_id(project: str, topic: str) -> str:
    """Deterministic workspace identifier, identical to the tmux session name."""
    return session_name(f"{project}-{sanitize_name(topic)}")


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


class WorkspaceRecord(BaseModel):
    """One entry of the metadata store.

    Optional fields added over time (``agent_command``, ``description``)
    default to empty so older files load unchanged.  Unknown keys are kept
    and written back, so a newer release's fields survive a round trip
    through an older one.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    project: str = Field(validation_alias=AliasChoices("project", "repo"))
    topic: str
    branch: str
    working_copy_path: str = Field(
        validation_alias=AliasChoices("working_copy_path", "workingCopyPath", "worktree_path"),
    )
    origin_path: str = Field(default="", validation_alias=AliasChoices("origin_path", "originPath", "main_repo_path"))
    created_at: datetime = Field(default_factory=_utcnow, validation_alias=AliasChoices("created_at", "createdAt"))
    agent_available: bool = Field(
        default=False,
        validation_alias=AliasChoices("agent_available", "agentAvailable", "agent_running"),
    )
    agent_command: str = Field(default="", validation_alias=AliasChoices("agent_command", "agentCommand", "agent_cmd"))
    description: str = ""

    @field_validator("agent_command", "description", "origin_path", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return "" if value is None else value

    @property
    def workspace_id(self) -> str:
        return workspace_id(self.project, self.topic)
