"""tmux-backed session inspection and control.

Inspection methods implement ``SessionInspector`` and never raise.  Control
methods (used only by the workspace orchestrator) raise ``CommandError``.
Every tmux call is bounded by ``timeout`` so one hung server cannot stall a
status-line refresh.

Session ids pass through ``session_name`` first: tmux silently rewrites
``.`` and ``:`` in names, and an id stored with them must still address the
session tmux actually created.
"""

from __future__ import annotations

import os

from loguru import logger

from worktree_agent.core.models.record import session_name
from worktree_agent.core.probes.base import PaneRef
from worktree_agent.core.probes.command import CommandResult, run


def _exact(session_id: str) -> str:
    # "=" disables tmux's prefix matching on session targets.
    return f"={session_name(session_id)}"


class TmuxSessions:
    """SessionInspector over the default tmux server."""

    def __init__(self, *, timeout: float = 5.0, binary: str = "tmux") -> None:
        self._timeout = timeout
        self._binary = binary

    def _tmux(self, *args: str, cwd: str | None = None) -> CommandResult:
        return run([self._binary, *args], timeout=self._timeout, cwd=cwd)

    # -- Inspection ------------------------------------------------------------

    def session_exists(self, session_id: str) -> bool:
        return self._tmux("has-session", "-t", _exact(session_id)).ok

    def list_panes(self, session_id: str) -> list[PaneRef]:
        result = self._tmux("list-panes", "-s", "-t", _exact(session_id), "-F", "#{pane_id}|#{pane_pid}")
        if not result.ok:
            return []
        panes: list[PaneRef] = []
        for line in result.stdout.splitlines():
            pane_id, _, pid = line.strip().partition("|")
            if not pane_id or not pid.isdigit():
                continue
            panes.append(PaneRef(pane_id=pane_id, root_pid=int(pid)))
        return panes

    def capture_recent_output(self, pane_id: str, line_count: int) -> str:
        result = self._tmux("capture-pane", "-p", "-t", pane_id)
        if not result.ok:
            return ""
        lines = result.stdout.rstrip().splitlines()
        return "\n".join(lines[-line_count:])

    def last_output_timestamp(self, pane_id: str) -> float | None:
        result = self._tmux("display-message", "-p", "-t", pane_id, "#{pane_activity}")
        value = result.stdout.strip()
        if not result.ok or not value:
            return None
        try:
            return float(value)
        except ValueError:
            logger.debug("Pane {}: unparseable activity timestamp {!r}", pane_id, value)
            return None

    def current_session(self) -> str | None:
        """Name of the session this process runs in, ``None`` outside tmux."""
        if not os.environ.get("TMUX"):
            return None
        result = self._tmux("display-message", "-p", "#S")
        if not result.ok:
            return None
        return result.stdout.strip() or None

    # -- Control ---------------------------------------------------------------

    def new_session(self, session_id: str, cwd: str, *, window_name: str | None = None) -> None:
        argv = ["new-session", "-d", "-s", session_name(session_id), "-c", cwd]
        self._tmux(*argv).check([self._binary, *argv])
        if window_name:
            argv = ["rename-window", "-t", session_name(session_id), window_name]
            self._tmux(*argv).check([self._binary, *argv])
        logger.info("tmux: session {} created in {}", session_id, cwd)

    def send_command(self, session_id: str, command: str) -> None:
        argv = ["send-keys", "-t", session_name(session_id), command, "C-m"]
        self._tmux(*argv).check([self._binary, *argv])

    def kill_session(self, session_id: str) -> None:
        argv = ["kill-session", "-t", _exact(session_id)]
        self._tmux(*argv).check([self._binary, *argv])
        logger.info("tmux: session {} killed", session_id)
