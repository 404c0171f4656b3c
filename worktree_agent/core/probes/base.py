"""Interfaces to the live environment: terminal sessions, processes, filesystem.

The classifier and the reconciliation engine only talk to these protocols.
Implementations must never raise for expectable conditions: a missing
session, a vanished process or a failed command is reported as absence
(``False``, ``[]`` or ``None``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PaneRef:
    """One pane of a session and the pid of the process it was started with."""

    pane_id: str
    root_pid: int


@runtime_checkable
class SessionInspector(Protocol):
    def session_exists(self, session_id: str) -> bool: ...

    def list_panes(self, session_id: str) -> list[PaneRef]: ...

    def capture_recent_output(self, pane_id: str, line_count: int) -> str:
        """Last ``line_count`` non-trailing-blank lines of rendered pane content."""
        ...

    def last_output_timestamp(self, pane_id: str) -> float | None:
        """Epoch seconds of the pane's most recent output, if known."""
        ...


@runtime_checkable
class ProcessInspector(Protocol):
    def list_children(self, pid: int) -> list[int]: ...

    def executable_name(self, pid: int) -> str | None: ...

    def cpu_utilization(self, pid: int) -> float | None:
        """Instantaneous CPU percentage, ``None`` if the process is gone."""
        ...


@runtime_checkable
class PathProbe(Protocol):
    def exists(self, path: str) -> bool: ...


@runtime_checkable
class SessionController(SessionInspector, Protocol):
    """Session inspection plus the one-shot actions the orchestrator needs."""

    def current_session(self) -> str | None: ...

    def new_session(self, session_id: str, cwd: str, *, window_name: str | None = None) -> None: ...

    def send_command(self, session_id: str, command: str) -> None: ...

    def kill_session(self, session_id: str) -> None: ...
