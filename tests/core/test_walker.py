"""Tests for the two-level process tree walker."""

from __future__ import annotations

from worktree_agent.core.activity.walker import MAX_DEPTH, find_descendant


def test_max_depth_is_two() -> None:
    assert MAX_DEPTH == 2


def test_direct_child(processes) -> None:
    processes.spawn(100, 101, "claude")

    assert find_descendant(processes, 100, "claude") == 101


def test_grandchild_behind_launcher(processes) -> None:
    processes.spawn(100, 101, "node")
    processes.spawn(101, 102, "codex")

    assert find_descendant(processes, 100, "codex") == 102


def test_great_grandchild_is_out_of_reach(processes) -> None:
    processes.spawn(100, 101, "bash")
    processes.spawn(101, 102, "node")
    processes.spawn(102, 103, "gemini")

    assert find_descendant(processes, 100, "gemini") is None


def test_direct_child_wins_over_grandchild(processes) -> None:
    processes.spawn(100, 101, "node")
    processes.spawn(101, 102, "claude")
    processes.spawn(100, 103, "claude")

    assert find_descendant(processes, 100, "claude") == 103


def test_first_match_in_listing_order(processes) -> None:
    processes.spawn(100, 101, "claude")
    processes.spawn(100, 102, "claude")

    assert find_descendant(processes, 100, "claude") == 101


def test_exact_name_match_only(processes) -> None:
    processes.spawn(100, 101, "claude-helper")

    assert find_descendant(processes, 100, "claude") is None


def test_empty_name_never_matches(processes) -> None:
    processes.spawn(100, 101, "")

    assert find_descendant(processes, 100, "") is None


def test_no_children(processes) -> None:
    assert find_descendant(processes, 100, "claude") is None


def test_vanished_child_is_skipped(processes) -> None:
    processes.children[100] = [101, 102]
    processes.names[102] = "claude"

    assert find_descendant(processes, 100, "claude") == 102
