"""Pane-content patterns for known agent UIs.

Each agent family draws a recognisable terminal frame.  A pattern first
decides whether the captured text belongs to its family (``detect``) and
then reads the frame for busy / waiting markers (``classify``).  The
classifier walks the registry in order and uses the first pattern that
detects; if none does, it falls back to CPU and output recency.

New families are added with ``register_pattern`` (or by handing a custom
registry to ``ActivityClassifier``) without touching the classifier.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from worktree_agent.core.models.enums import PaneState


@dataclass(frozen=True)
class PaneSnapshot:
    """What a pattern gets to look at for one pane.

    ``output_age`` is seconds since the pane last produced output, ``None``
    when tmux could not tell.
    """

    text: str
    output_age: float | None = None
    output_window: float = 8.0

    @property
    def recently_active(self) -> bool:
        return self.output_age is not None and self.output_age < self.output_window


@dataclass(frozen=True)
class AgentPattern:
    name: str
    detect: Callable[[PaneSnapshot], bool]
    classify: Callable[[PaneSnapshot], PaneState]


# -- Codex-style frame ---------------------------------------------------------
# The "? for shortcuts" footer is always drawn; "esc to interrupt" appears
# above it only while a turn is running.

_SHORTCUTS_MARKER = "? for shortcuts"
_INTERRUPT_MARKER = "esc to interrupt"


def _codex_detect(snapshot: PaneSnapshot) -> bool:
    return _SHORTCUTS_MARKER in snapshot.text


def _codex_classify(snapshot: PaneSnapshot) -> PaneState:
    return PaneState.ACTIVE if _INTERRUPT_MARKER in snapshot.text else PaneState.WAITING


# -- Claude-style frame --------------------------------------------------------
# Detected by the "❯" prompt or a model name in the status bar.  The busy
# text changes between releases, so apart from the permission prompt the
# verdict comes from output recency.

_PROMPT_FRAME = re.compile(r"^❯|Opus|Sonnet|Haiku", re.MULTILINE)
_PERMISSION_MARKER = "Esc to cancel"


def _claude_detect(snapshot: PaneSnapshot) -> bool:
    return _PROMPT_FRAME.search(snapshot.text) is not None


def _claude_classify(snapshot: PaneSnapshot) -> PaneState:
    if _PERMISSION_MARKER in snapshot.text:
        return PaneState.WAITING
    return PaneState.ACTIVE if snapshot.recently_active else PaneState.WAITING


DEFAULT_PATTERNS = (
    AgentPattern("codex", _codex_detect, _codex_classify),
    AgentPattern("claude", _claude_detect, _claude_classify),
)


class PatternRegistry:
    """Ordered collection of agent patterns; first detection wins."""

    def __init__(self, patterns: Iterable[AgentPattern] = DEFAULT_PATTERNS) -> None:
        self._patterns: list[AgentPattern] = list(patterns)

    def register(self, pattern: AgentPattern, *, first: bool = False) -> None:
        """Add a pattern, replacing any existing one with the same name."""
        self._patterns = [p for p in self._patterns if p.name != pattern.name]
        if first:
            self._patterns.insert(0, pattern)
        else:
            self._patterns.append(pattern)

    def __iter__(self) -> Iterator[AgentPattern]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def classify(self, snapshot: PaneSnapshot) -> PaneState:
        """Verdict of the first pattern that recognises the pane, else UNKNOWN."""
        if not snapshot.text.strip():
            return PaneState.UNKNOWN
        for pattern in self._patterns:
            if pattern.detect(snapshot):
                return pattern.classify(snapshot)
        return PaneState.UNKNOWN


default_registry = PatternRegistry()


def register_pattern(pattern: AgentPattern, *, first: bool = False) -> None:
    """Register a pattern on the process-wide default registry."""
    default_registry.register(pattern, first=first)


def classify_pane_content(text: str, output_age: float | None = None, output_window: float = 8.0) -> PaneState:
    """Classify rendered pane text with the default registry."""
    return default_registry.classify(PaneSnapshot(text=text, output_age=output_age, output_window=output_window))
