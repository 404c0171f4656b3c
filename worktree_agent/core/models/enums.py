"""Shared enumerations."""

from __future__ import annotations

from enum import StrEnum

# -- Agent activity ----------------------------------------------------------


class AgentStatus(StrEnum):
    """Session-level agent state reported to callers."""

    ACTIVE = "active"
    PROMPT = "prompt"
    OFF = "off"
    DEAD = "dead"

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]


_GLYPHS = {
    AgentStatus.ACTIVE: "●",
    AgentStatus.PROMPT: "⏎",
    AgentStatus.OFF: "◌",
    AgentStatus.DEAD: "✗",
}


class PaneState(StrEnum):
    """Per-pane verdict from a content pattern or the resource fallback."""

    ACTIVE = "active"
    WAITING = "waiting"
    UNKNOWN = "unknown"


# -- Reconciliation ----------------------------------------------------------


class DriftState(StrEnum):
    """Agreement between a record, its live session and its working copy."""

    OK = "ok"
    ORPHANED_DELETED_PATH = "orphaned-deleted-path"
    ORPHANED_NO_SESSION = "orphaned-no-session"
    STALE = "stale"

    @classmethod
    def from_probes(cls, *, session_exists: bool, path_exists: bool) -> DriftState:
        if session_exists and path_exists:
            return cls.OK
        if session_exists:
            return cls.ORPHANED_DELETED_PATH
        if path_exists:
            return cls.ORPHANED_NO_SESSION
        return cls.STALE
