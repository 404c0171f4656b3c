"""Agent activity classifier.

Infers whether the agent in a workspace is working, waiting for the user,
absent, or whether the whole session is gone, using only what can be seen
from outside: session existence, the process tree under each pane, the
rendered pane text, pane output recency and CPU load.

The result is a best-effort snapshot for display.  It is polled by status
lines every few seconds and never mutates the metadata store.  Ambiguity is
resolved towards ``prompt`` where the signals allow it, since the point of
the status is to surface workspaces that need a human.

Resolution order for one session:

1. No live session -> ``dead``.
2. No agent command (record override, else ``WORKTREE_AGENT_CMD``) -> ``off``.
3. For every pane, find the configured agent binary within two process
   levels; failing that, any of ``known_agents``.  No pane with an agent
   -> ``off``.
4. Per agent pane: pane-content patterns, then CPU / recency fallback.
5. Any pane active -> ``active``; else any waiting -> ``prompt``; else
   ``active`` (a located process outranks "no agent").

When a pane runs both the configured agent and another known agent, the
configured one is matched first and names the report.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from worktree_agent.core.activity.patterns import PaneSnapshot, PatternRegistry, default_registry
from worktree_agent.core.activity.walker import find_descendant
from worktree_agent.core.models.enums import AgentStatus, PaneState
from worktree_agent.core.probes.base import PaneRef, ProcessInspector, SessionInspector
from worktree_agent.core.settings import WorktreeSettings, get_settings
from worktree_agent.core.store.base import MetadataStore


def agent_binary(command: str) -> str:
    """Executable name an agent command runs as: ``"/opt/bin/claude --x"`` -> ``"claude"``."""
    parts = command.split()
    return os.path.basename(parts[0]) if parts else ""


@dataclass(frozen=True)
class PaneActivity:
    pane_id: str
    pid: int
    agent: str
    state: PaneState


@dataclass(frozen=True)
class ActivityReport:
    status: AgentStatus
    agent: str = ""
    """Binary name of the agent that determined the status, if one was found."""

    panes: list[PaneActivity] = field(default_factory=list)


class ActivityClassifier:
    """Classify agent activity per workspace.

    ``store`` is only used to look up a record's agent command; pass
    ``agent_command`` to ``inspect`` directly to classify without one.
    """

    def __init__(
        self,
        sessions: SessionInspector,
        processes: ProcessInspector,
        *,
        store: MetadataStore | None = None,
        settings: WorktreeSettings | None = None,
        patterns: PatternRegistry | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._sessions = sessions
        self._processes = processes
        self._store = store
        self._settings = settings or get_settings()
        self._patterns = patterns if patterns is not None else default_registry
        self._clock = clock

    # -- Public API ------------------------------------------------------------

    def classify(self, workspace_id: str) -> AgentStatus:
        return self.inspect(workspace_id).status

    def inspect(self, workspace_id: str, agent_command: str | None = None) -> ActivityReport:
        if not self._session_exists(workspace_id):
            return ActivityReport(status=AgentStatus.DEAD)

        command = agent_command if agent_command is not None else self.resolve_agent_command(workspace_id)
        configured = agent_binary(command)
        if not configured:
            return ActivityReport(status=AgentStatus.OFF)

        panes = [
            activity
            for pane in self._list_panes(workspace_id)
            if (activity := self._inspect_pane(pane, configured)) is not None
        ]
        if not panes:
            logger.debug("Activity {}: no agent process in any pane", workspace_id)
            return ActivityReport(status=AgentStatus.OFF)

        agent = configured if any(p.agent == configured for p in panes) else panes[0].agent
        states = {p.state for p in panes}
        if PaneState.ACTIVE in states:
            status = AgentStatus.ACTIVE
        elif PaneState.WAITING in states:
            status = AgentStatus.PROMPT
        else:
            status = AgentStatus.ACTIVE
        logger.debug(
            "Activity {}: {} ({})", workspace_id, status, ", ".join(f"{p.pane_id}={p.state}" for p in panes)
        )
        return ActivityReport(status=status, agent=agent, panes=panes)

    def resolve_agent_command(self, workspace_id: str) -> str:
        """Per-record agent command, else the process-wide default."""
        if self._store is not None:
            record = self._store.get(workspace_id)
            if record is not None and record.agent_command:
                return record.agent_command
        return self._settings.agent_cmd

    # -- Per pane --------------------------------------------------------------

    def _inspect_pane(self, pane: PaneRef, configured: str) -> PaneActivity | None:
        try:
            found = self._locate_agent(pane.root_pid, configured)
            if found is None:
                return None
            name, pid = found
            state = self._pane_state(pane, pid)
        except Exception:  # noqa: BLE001
            logger.opt(exception=True).debug("Activity: probe failed for pane {}", pane.pane_id)
            return None
        if state is None:
            return None
        return PaneActivity(pane_id=pane.pane_id, pid=pid, agent=name, state=state)

    def _locate_agent(self, root_pid: int, configured: str) -> tuple[str, int] | None:
        candidates = [configured, *(a for a in self._settings.known_agents if a != configured)]
        for name in candidates:
            pid = find_descendant(self._processes, root_pid, name)
            if pid is not None:
                return name, pid
        return None

    def _pane_state(self, pane: PaneRef, pid: int) -> PaneState | None:
        settings = self._settings
        text = self._sessions.capture_recent_output(pane.pane_id, settings.capture_lines)
        output_age = self._output_age(pane.pane_id)

        snapshot = PaneSnapshot(text=text, output_age=output_age, output_window=settings.output_window)
        state = self._patterns.classify(snapshot)
        if state is not PaneState.UNKNOWN:
            return state

        cpu = self._processes.cpu_utilization(pid)
        if cpu is None:
            # Process exited between discovery and sampling.
            return None
        return resource_state(
            cpu,
            output_age,
            cpu_threshold=settings.cpu_threshold,
            activity_window=settings.activity_window,
        )

    def _output_age(self, pane_id: str) -> float | None:
        timestamp = self._sessions.last_output_timestamp(pane_id)
        if timestamp is None:
            return None
        return max(0.0, self._clock() - timestamp)

    # -- Guarded probes --------------------------------------------------------

    def _session_exists(self, workspace_id: str) -> bool:
        try:
            return self._sessions.session_exists(workspace_id)
        except Exception:  # noqa: BLE001
            logger.opt(exception=True).debug("Activity: session probe failed for {}", workspace_id)
            return False

    def _list_panes(self, workspace_id: str) -> list[PaneRef]:
        try:
            return self._sessions.list_panes(workspace_id)
        except Exception:  # noqa: BLE001
            logger.opt(exception=True).debug("Activity: pane listing failed for {}", workspace_id)
            return []


def resource_state(
    cpu: float,
    output_age: float | None,
    *,
    cpu_threshold: float = 2.0,
    activity_window: float = 10.0,
) -> PaneState:
    """Fallback when no content pattern recognises the pane.

    Busy CPU or output inside the recency window means working; anything
    else is treated as idle at a prompt.
    """
    if cpu >= cpu_threshold:
        return PaneState.ACTIVE
    if output_age is not None and output_age < activity_window:
        return PaneState.ACTIVE
    return PaneState.WAITING
