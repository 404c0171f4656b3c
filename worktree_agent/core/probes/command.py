"""Bounded external command execution shared by the tmux and git wrappers."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass

from loguru import logger


class CommandError(RuntimeError):
    """An external command required by an action failed."""

    def __init__(self, argv: list[str], returncode: int, stderr: str) -> None:
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"`{' '.join(argv)}` exited with {returncode}{detail}")


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self, argv: list[str]) -> CommandResult:
        if not self.ok:
            raise CommandError(argv, self.returncode, self.stderr)
        return self


def run(argv: list[str], *, timeout: float, cwd: str | None = None) -> CommandResult:
    """Run ``argv`` with a hard timeout.

    A missing binary, a timeout or a permission error is folded into a
    non-zero result so probe callers can treat every failure as absence.
    """
    try:
        proc = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
            cwd=cwd,
            check=False,
        )
    except (FileNotFoundError, PermissionError, NotADirectoryError, subprocess.TimeoutExpired) as exc:
        logger.debug("Command {} failed to run: {}", argv[0], exc)
        return CommandResult(returncode=127, stdout="", stderr=str(exc))
    return CommandResult(returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
