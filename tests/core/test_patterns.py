"""Tests for pane-content patterns and the pattern registry."""

from __future__ import annotations

import pytest

from worktree_agent.core.activity.patterns import (
    DEFAULT_PATTERNS,
    AgentPattern,
    PaneSnapshot,
    PatternRegistry,
    classify_pane_content,
)
from worktree_agent.core.models.enums import PaneState

CODEX_BUSY = """\
• Running tests in src/

  Working (12s • esc to interrupt)

› Ask Codex to do anything
  ? for shortcuts
"""

CODEX_IDLE = """\
• Done. All 42 tests pass.

› Ask Codex to do anything
  ? for shortcuts
"""

CLAUDE_FRAME = """\
────────────────────────────────
❯ refactor the session store
────────────────────────────────
  Opus 4 · ~/src/myrepo
"""

CLAUDE_PERMISSION = """\
Do you want to make this edit to store.py?
❯ 1. Yes
  2. No, and tell Claude what to do differently
Esc to cancel
"""


# ---------------------------------------------------------------------------
# Codex-style
# ---------------------------------------------------------------------------


def test_codex_busy_is_active() -> None:
    assert classify_pane_content(CODEX_BUSY) == PaneState.ACTIVE


def test_codex_idle_is_waiting() -> None:
    assert classify_pane_content(CODEX_IDLE) == PaneState.WAITING


def test_codex_ignores_recency() -> None:
    assert classify_pane_content(CODEX_IDLE, output_age=0.5) == PaneState.WAITING
    assert classify_pane_content(CODEX_BUSY, output_age=600) == PaneState.ACTIVE


# ---------------------------------------------------------------------------
# Claude-style
# ---------------------------------------------------------------------------


def test_claude_permission_prompt_is_waiting_even_when_recent() -> None:
    assert classify_pane_content(CLAUDE_PERMISSION, output_age=0.1) == PaneState.WAITING


@pytest.mark.parametrize(
    ("output_age", "expected"),
    [
        (0.0, PaneState.ACTIVE),
        (7.9, PaneState.ACTIVE),
        (8.0, PaneState.WAITING),
        (120.0, PaneState.WAITING),
        (None, PaneState.WAITING),
    ],
)
def test_claude_recency(output_age: float | None, expected: PaneState) -> None:
    assert classify_pane_content(CLAUDE_FRAME, output_age=output_age) == expected


def test_claude_output_window_is_configurable() -> None:
    assert classify_pane_content(CLAUDE_FRAME, output_age=20, output_window=30) == PaneState.ACTIVE


@pytest.mark.parametrize("model", ["Opus", "Sonnet", "Haiku"])
def test_claude_detected_by_model_name(model: str) -> None:
    text = f"some output\n  {model} · ~/src\n"
    assert classify_pane_content(text, output_age=1) == PaneState.ACTIVE


def test_prompt_glyph_must_start_a_line() -> None:
    assert classify_pane_content("echo ❯ not a prompt") == PaneState.UNKNOWN


# ---------------------------------------------------------------------------
# Unknown and registry behaviour
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("text", ["", "   \n\n", "$ make test\nok\n"])
def test_unrecognised_is_unknown(text: str) -> None:
    assert classify_pane_content(text, output_age=0) == PaneState.UNKNOWN


def test_codex_checked_before_claude() -> None:
    # Both frames on screen: the first registered family decides.
    text = CLAUDE_FRAME + CODEX_BUSY
    assert classify_pane_content(text, output_age=60) == PaneState.ACTIVE


def test_default_registry_order() -> None:
    assert [p.name for p in PatternRegistry()] == ["codex", "claude"]
    assert len(PatternRegistry()) == len(DEFAULT_PATTERNS)


def test_register_new_family() -> None:
    registry = PatternRegistry()
    registry.register(
        AgentPattern(
            "aider",
            detect=lambda s: "aider>" in s.text,
            classify=lambda s: PaneState.WAITING,
        )
    )

    assert registry.classify(PaneSnapshot(text="aider> ")) == PaneState.WAITING
    assert [p.name for p in registry] == ["codex", "claude", "aider"]


def test_register_first_takes_precedence() -> None:
    registry = PatternRegistry()
    registry.register(
        AgentPattern("always-busy", detect=lambda s: True, classify=lambda s: PaneState.ACTIVE),
        first=True,
    )

    assert registry.classify(PaneSnapshot(text=CODEX_IDLE)) == PaneState.ACTIVE


def test_register_replaces_same_name() -> None:
    registry = PatternRegistry()
    registry.register(AgentPattern("codex", detect=lambda s: False, classify=lambda s: PaneState.ACTIVE))

    assert len(registry) == 2
    # The replacement never detects, so the idle codex frame is no longer recognised.
    assert registry.classify(PaneSnapshot(text=CODEX_IDLE)) == PaneState.UNKNOWN


def test_empty_registry() -> None:
    registry = PatternRegistry([])
    assert registry.classify(PaneSnapshot(text=CODEX_BUSY)) == PaneState.UNKNOWN
