"""Tests for ActivityClassifier using in-memory session and process fakes."""

from __future__ import annotations

import pytest

from worktree_agent.core.activity.classifier import ActivityClassifier, agent_binary, resource_state
from worktree_agent.core.activity.patterns import AgentPattern, PatternRegistry
from worktree_agent.core.models.enums import AgentStatus, PaneState
from worktree_agent.core.probes.base import PaneRef

NOW = 1_700_000_000.0

CODEX_BUSY = "Working (3s • esc to interrupt)\n? for shortcuts\n"
CODEX_IDLE = "› Ask Codex to do anything\n? for shortcuts\n"


@pytest.fixture
def classifier(sessions, processes, store, settings) -> ActivityClassifier:
    return ActivityClassifier(sessions, processes, store=store, settings=settings, clock=lambda: NOW)


def _live(sessions, wid: str = "proj-auth", *panes: tuple[str, int]) -> None:
    sessions.live.add(wid)
    sessions.panes[wid] = [PaneRef(pane_id, pid) for pane_id, pid in (panes or (("%1", 100),))]


# ---------------------------------------------------------------------------
# agent_binary / resource_state
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        ("claude", "claude"),
        ("claude --dangerously-skip-permissions", "claude"),
        ("/opt/homebrew/bin/codex --model o3", "codex"),
        ("", ""),
        ("   ", ""),
    ],
)
def test_agent_binary(command: str, expected: str) -> None:
    assert agent_binary(command) == expected


@pytest.mark.parametrize(
    ("cpu", "output_age", "expected"),
    [
        (7.0, 3.0, PaneState.ACTIVE),
        (2.0, None, PaneState.ACTIVE),
        (0.0, 3.0, PaneState.ACTIVE),
        (0.0, 40.0, PaneState.WAITING),
        (1.9, 10.0, PaneState.WAITING),
        (0.0, None, PaneState.WAITING),
    ],
)
def test_resource_state(cpu: float, output_age: float | None, expected: PaneState) -> None:
    assert resource_state(cpu, output_age) == expected


# ---------------------------------------------------------------------------
# Session-level outcomes
# ---------------------------------------------------------------------------


def test_no_session_is_dead(classifier) -> None:
    assert classifier.classify("proj-auth") == AgentStatus.DEAD


def test_session_probe_failure_is_dead(classifier, sessions, monkeypatch) -> None:
    def _boom(session_id: str) -> bool:
        raise RuntimeError("tmux server crashed")

    monkeypatch.setattr(sessions, "session_exists", _boom)
    assert classifier.classify("proj-auth") == AgentStatus.DEAD


def test_no_agent_command_is_off(sessions, processes, settings) -> None:
    settings.agent_cmd = ""
    classifier = ActivityClassifier(sessions, processes, settings=settings, clock=lambda: NOW)
    _live(sessions)
    processes.spawn(100, 101, "claude", cpu=50.0)

    assert classifier.classify("proj-auth") == AgentStatus.OFF


def test_no_agent_process_is_off(classifier, sessions, processes) -> None:
    _live(sessions)
    processes.spawn(100, 101, "vim", cpu=30.0)

    assert classifier.classify("proj-auth") == AgentStatus.OFF


def test_no_panes_is_off(classifier, sessions) -> None:
    sessions.live.add("proj-auth")

    assert classifier.classify("proj-auth") == AgentStatus.OFF


def test_busy_cpu_with_recent_output_is_active(classifier, sessions, processes) -> None:
    _live(sessions)
    processes.spawn(100, 101, "claude", cpu=7.0)
    sessions.activity["%1"] = NOW - 3

    assert classifier.classify("proj-auth") == AgentStatus.ACTIVE


def test_idle_cpu_with_old_output_is_prompt(classifier, sessions, processes) -> None:
    _live(sessions)
    processes.spawn(100, 101, "claude", cpu=0.0)
    sessions.activity["%1"] = NOW - 40

    assert classifier.classify("proj-auth") == AgentStatus.PROMPT


def test_process_vanished_before_sampling_is_off(classifier, sessions, processes) -> None:
    _live(sessions)
    processes.spawn(100, 101, "claude")  # no cpu sample: process gone

    assert classifier.classify("proj-auth") == AgentStatus.OFF


def test_pane_content_beats_resources(classifier, sessions, processes) -> None:
    _live(sessions)
    processes.spawn(100, 101, "node", cpu=90.0)
    processes.spawn(101, 102, "codex", cpu=90.0)
    sessions.output["%1"] = CODEX_IDLE
    sessions.activity["%1"] = NOW

    report = classifier.inspect("proj-auth")
    assert report.status == AgentStatus.PROMPT
    assert report.agent == "codex"
    assert report.panes[0].pid == 102


def test_live_session_never_reports_dead(classifier, sessions, processes, monkeypatch) -> None:
    _live(sessions)
    processes.spawn(100, 101, "claude", cpu=1.0)

    def _boom(pane_id: str, line_count: int) -> str:
        raise RuntimeError("capture failed")

    monkeypatch.setattr(sessions, "capture_recent_output", _boom)
    assert classifier.classify("proj-auth") != AgentStatus.DEAD


# ---------------------------------------------------------------------------
# Agent resolution
# ---------------------------------------------------------------------------


def test_record_agent_command_overrides_default(classifier, sessions, processes, store, make_record) -> None:
    store.put("proj-auth", make_record(agent_command="/usr/local/bin/aider --yes"))
    _live(sessions)
    processes.spawn(100, 101, "aider", cpu=10.0)

    report = classifier.inspect("proj-auth")
    assert report.status == AgentStatus.ACTIVE
    assert report.agent == "aider"
    assert classifier.resolve_agent_command("proj-auth") == "/usr/local/bin/aider --yes"


def test_empty_record_command_falls_back_to_default(classifier, store, make_record) -> None:
    store.put("proj-auth", make_record(agent_command=""))

    assert classifier.resolve_agent_command("proj-auth") == "claude"
    assert classifier.resolve_agent_command("not-tracked") == "claude"


def test_known_agent_found_when_configured_is_absent(classifier, sessions, processes) -> None:
    _live(sessions)
    processes.spawn(100, 101, "bun")
    processes.spawn(101, 102, "gemini", cpu=0.0)
    sessions.activity["%1"] = NOW - 100

    report = classifier.inspect("proj-auth")
    assert report.status == AgentStatus.PROMPT
    assert report.agent == "gemini"


def test_configured_agent_names_the_report(classifier, sessions, processes) -> None:
    _live(sessions, "proj-auth", ("%1", 100), ("%2", 200))
    processes.spawn(100, 101, "codex", cpu=0.0)
    processes.spawn(200, 201, "claude", cpu=0.0)

    report = classifier.inspect("proj-auth")
    assert report.agent == "claude"
    assert {p.agent for p in report.panes} == {"codex", "claude"}


def test_explicit_agent_command_skips_store(classifier, sessions, processes, store, make_record) -> None:
    store.put("proj-auth", make_record(agent_command="aider"))
    _live(sessions)
    processes.spawn(100, 101, "claude", cpu=5.0)

    assert classifier.inspect("proj-auth", "claude").agent == "claude"


# ---------------------------------------------------------------------------
# Multi-pane aggregation
# ---------------------------------------------------------------------------


def test_any_active_pane_makes_session_active(classifier, sessions, processes) -> None:
    _live(sessions, "proj-auth", ("%1", 100), ("%2", 200))
    processes.spawn(100, 101, "codex", cpu=0.0)
    processes.spawn(200, 201, "codex", cpu=0.0)
    sessions.output["%1"] = CODEX_IDLE
    sessions.output["%2"] = CODEX_BUSY

    assert classifier.classify("proj-auth") == AgentStatus.ACTIVE


def test_waiting_panes_make_session_prompt(classifier, sessions, processes) -> None:
    _live(sessions, "proj-auth", ("%1", 100), ("%2", 200), ("%3", 300))
    processes.spawn(100, 101, "codex", cpu=0.0)
    processes.spawn(200, 201, "zsh", cpu=0.0)
    processes.spawn(300, 301, "codex", cpu=0.0)
    sessions.output["%1"] = CODEX_IDLE
    sessions.output["%3"] = CODEX_IDLE

    report = classifier.inspect("proj-auth")
    assert report.status == AgentStatus.PROMPT
    assert [p.pane_id for p in report.panes] == ["%1", "%3"]


def test_unknown_pattern_verdict_falls_back_to_resources(sessions, processes, settings) -> None:
    registry = PatternRegistry(
        [AgentPattern("opaque", detect=lambda s: True, classify=lambda s: PaneState.UNKNOWN)]
    )
    classifier = ActivityClassifier(sessions, processes, settings=settings, patterns=registry, clock=lambda: NOW)
    _live(sessions)
    processes.spawn(100, 101, "claude", cpu=0.0)
    sessions.output["%1"] = "anything"

    assert classifier.classify("proj-auth") == AgentStatus.PROMPT


def test_custom_registry_is_used(sessions, processes, settings) -> None:
    registry = PatternRegistry(
        [AgentPattern("aider", detect=lambda s: "aider>" in s.text, classify=lambda s: PaneState.WAITING)]
    )
    classifier = ActivityClassifier(sessions, processes, settings=settings, patterns=registry, clock=lambda: NOW)
    _live(sessions)
    processes.spawn(100, 101, "claude", cpu=99.0)
    sessions.output["%1"] = "aider> "

    assert classifier.classify("proj-auth") == AgentStatus.PROMPT


def test_classify_does_not_touch_store(classifier, sessions, processes, store, make_record) -> None:
    store.put("proj-auth", make_record())
    before = store.path.read_text()
    _live(sessions)
    processes.spawn(100, 101, "claude", cpu=5.0)

    classifier.classify("proj-auth")
    classifier.classify("proj-missing")
    assert store.path.read_text() == before
