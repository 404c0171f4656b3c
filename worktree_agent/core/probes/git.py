"""git worktree wrapper used by the workspace orchestrator.

Only the orchestrator touches version control; the classifier and the
reconciliation engine never do.  Query helpers return ``None``/``False`` on
failure, actions raise ``CommandError``.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from loguru import logger

from worktree_agent.core.probes.command import CommandResult, run
from worktree_agent.core.probes.filesystem import expand_path


class GitWorktrees:
    def __init__(self, *, timeout: float = 30.0, binary: str = "git") -> None:
        self._timeout = timeout
        self._binary = binary

    def _git(self, repo: str | Path, *args: str) -> CommandResult:
        return run([self._binary, "-C", str(expand_path(repo)), *args], timeout=self._timeout)

    # -- Queries ---------------------------------------------------------------

    def repo_root(self, path: str | Path) -> Path | None:
        result = self._git(path, "rev-parse", "--show-toplevel")
        return Path(result.stdout.strip()) if result.ok and result.stdout.strip() else None

    def repo_name(self, repo: str | Path) -> str:
        """Name of the repository: origin URL basename, else directory name."""
        result = self._git(repo, "remote", "get-url", "origin")
        url = result.stdout.strip()
        if result.ok and url:
            name = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
            return name.removesuffix(".git")
        return expand_path(repo).name

    def current_branch(self, path: str | Path) -> str | None:
        result = self._git(path, "rev-parse", "--abbrev-ref", "HEAD")
        branch = result.stdout.strip()
        if not result.ok or not branch or branch == "HEAD":
            return None
        return branch

    def branch_exists(self, repo: str | Path, branch: str) -> bool:
        return self._git(repo, "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}").ok

    def is_valid_working_copy(self, path: str | Path) -> bool:
        if not expand_path(path).is_dir():
            return False
        return self._git(path, "rev-parse", "--git-dir").ok

    def common_origin(self, path: str | Path) -> Path | None:
        """Main repository a linked worktree belongs to."""
        result = self._git(path, "rev-parse", "--path-format=absolute", "--git-common-dir")
        common = result.stdout.strip()
        if not result.ok or not common:
            return None
        common_dir = Path(common)
        return common_dir.parent if common_dir.name == ".git" else common_dir

    # -- Actions ---------------------------------------------------------------

    def add(self, repo: str | Path, path: str | Path, branch: str, *, new_branch: bool = False) -> None:
        """Create a linked worktree at ``path`` checked out on ``branch``."""
        target = expand_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        if new_branch:
            args = ["worktree", "add", "-b", branch, str(target)]
        else:
            args = ["worktree", "add", str(target), branch]
        self._git(repo, *args).check([self._binary, *args])
        logger.info("git: worktree {} created on {}", target, branch)

    def remove(self, repo: str | Path, path: str | Path) -> None:
        """Remove a worktree, falling back to deleting the directory.

        The fallback also covers a main repository that no longer exists.
        """
        target = expand_path(path)
        if not target.exists():
            return
        if expand_path(repo).is_dir():
            result = self._git(repo, "worktree", "remove", "--force", str(target))
            if result.ok:
                logger.info("git: worktree {} removed", target)
                return
            logger.warning("git worktree remove failed for {}, deleting directory", target)
        shutil.rmtree(target)
        logger.info("Deleted directory {}", target)

