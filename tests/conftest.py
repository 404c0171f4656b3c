"""Shared test fixtures: in-memory fakes for every live probe.

Nothing here touches a real tmux server, git binary or process table.
Each fake implements the matching protocol from ``core.probes.base``.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from worktree_agent.core.models.record import WorkspaceRecord
from worktree_agent.core.probes.base import PaneRef
from worktree_agent.core.settings import WorktreeSettings, get_settings
from worktree_agent.core.store.local import JsonMetadataStore

NOW = 1_700_000_000.0


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


@dataclass
class FakeSessions:
    """SessionController backed by dicts."""

    live: set[str] = field(default_factory=set)
    panes: dict[str, list[PaneRef]] = field(default_factory=dict)
    output: dict[str, str] = field(default_factory=dict)
    activity: dict[str, float] = field(default_factory=dict)
    current: str | None = None
    sent: list[tuple[str, str]] = field(default_factory=list)
    created: list[tuple[str, str, str | None]] = field(default_factory=list)
    killed: list[str] = field(default_factory=list)

    def session_exists(self, session_id: str) -> bool:
        return session_id in self.live

    def list_panes(self, session_id: str) -> list[PaneRef]:
        return list(self.panes.get(session_id, []))

    def capture_recent_output(self, pane_id: str, line_count: int) -> str:
        lines = self.output.get(pane_id, "").splitlines()
        return "\n".join(lines[-line_count:])

    def last_output_timestamp(self, pane_id: str) -> float | None:
        return self.activity.get(pane_id)

    def current_session(self) -> str | None:
        return self.current

    def new_session(self, session_id: str, cwd: str, *, window_name: str | None = None) -> None:
        self.live.add(session_id)
        self.created.append((session_id, cwd, window_name))

    def send_command(self, session_id: str, command: str) -> None:
        self.sent.append((session_id, command))

    def kill_session(self, session_id: str) -> None:
        self.live.discard(session_id)
        self.killed.append(session_id)


@dataclass
class FakeProcesses:
    """ProcessInspector over a synthetic process tree."""

    children: dict[int, list[int]] = field(default_factory=dict)
    names: dict[int, str] = field(default_factory=dict)
    cpu: dict[int, float] = field(default_factory=dict)

    def spawn(self, parent: int, pid: int, name: str, cpu: float | None = None) -> int:
        self.children.setdefault(parent, []).append(pid)
        self.names[pid] = name
        if cpu is not None:
            self.cpu[pid] = cpu
        return pid

    def list_children(self, pid: int) -> list[int]:
        return list(self.children.get(pid, []))

    def executable_name(self, pid: int) -> str | None:
        return self.names.get(pid)

    def cpu_utilization(self, pid: int) -> float | None:
        return self.cpu.get(pid)


@dataclass
class FakePaths:
    present: set[str] = field(default_factory=set)
    probed: list[str] = field(default_factory=list)

    def exists(self, path: str) -> bool:
        self.probed.append(path)
        return path in self.present


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Keep the developer's WORKTREE_* environment out of every test."""
    for key in list(os.environ):
        if key.startswith("WORKTREE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path: Path) -> WorktreeSettings:
    return WorktreeSettings(
        metadata_file=str(tmp_path / "sessions.json"),
        path=str(tmp_path / "worktrees"),
        agent_cmd="claude",
        cpu_sample_interval=0.0,
    )


@pytest.fixture
def store(tmp_path: Path) -> JsonMetadataStore:
    return JsonMetadataStore(tmp_path / "sessions.json")


@pytest.fixture
def sessions() -> FakeSessions:
    return FakeSessions()


@pytest.fixture
def processes() -> FakeProcesses:
    return FakeProcesses()


@pytest.fixture
def paths() -> FakePaths:
    return FakePaths()


def _make_record(
    project: str = "proj",
    topic: str = "auth",
    path: str = "/work/auth",
    **kwargs: object,
) -> WorkspaceRecord:
    fields: dict[str, object] = {
        "project": project,
        "topic": topic,
        "branch": f"wt/{topic}",
        "working_copy_path": path,
        "origin_path": f"/src/{project}",
    }
    fields.update(kwargs)
    return WorkspaceRecord(**fields)


@pytest.fixture
def make_record():
    """Factory for records with sensible defaults; override any field by keyword."""
    return _make_record
