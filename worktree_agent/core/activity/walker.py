"""Process tree walker.

Agents are either direct children of the pane shell (native binaries such
as ``claude``) or grandchildren behind a runtime launcher (``node`` or
``bun`` running ``codex``, ``gemini``...).  The search is therefore fixed
at two levels: deeper scans are slow on busy panes and start matching
unrelated helper processes.
"""

from __future__ import annotations

from worktree_agent.core.probes.base import ProcessInspector

MAX_DEPTH = 2


def find_descendant(processes: ProcessInspector, root_pid: int, name: str) -> int | None:
    """Pid of a child or grandchild of ``root_pid`` whose executable is exactly ``name``.

    Direct children win over grandchildren; within one level the first
    match in listing order is returned.
    """
    if not name:
        return None
    children = processes.list_children(root_pid)
    for pid in children:
        if processes.executable_name(pid) == name:
            return pid
    for child in children:
        for pid in processes.list_children(child):
            if processes.executable_name(pid) == name:
                return pid
    return None
