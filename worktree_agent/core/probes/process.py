"""Process inspection backed by psutil.

Every accessor swallows the psutil races (process exited between listing
and inspection, permission denied, zombie) and reports absence instead.
"""

from __future__ import annotations

import psutil
from loguru import logger

_GONE = (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess)


class PsutilProcesses:
    """ProcessInspector implementation using psutil."""

    def __init__(self, cpu_sample_interval: float = 0.1) -> None:
        self._interval = cpu_sample_interval

    def list_children(self, pid: int) -> list[int]:
        try:
            return [child.pid for child in psutil.Process(pid).children(recursive=False)]
        except _GONE as exc:
            logger.debug("Process {}: cannot list children ({})", pid, type(exc).__name__)
            return []

    def executable_name(self, pid: int) -> str | None:
        try:
            return psutil.Process(pid).name()
        except _GONE:
            return None

    def cpu_utilization(self, pid: int) -> float | None:
        try:
            return psutil.Process(pid).cpu_percent(interval=self._interval)
        except _GONE as exc:
            logger.debug("Process {}: cannot sample CPU ({})", pid, type(exc).__name__)
            return None
