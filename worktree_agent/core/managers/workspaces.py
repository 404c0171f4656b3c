"""Workspace lifecycle: create, tear down, and the human-directed repairs
offered by reconciliation.

These are thin compositions of git, tmux and the metadata store.  They
raise domain exceptions (``LookupError``, ``ValueError``, ``CommandError``),
never CLI errors; that translation is the CLI's responsibility.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from loguru import logger

from worktree_agent.core.activity.classifier import agent_binary
from worktree_agent.core.models.record import WorkspaceRecord, sanitize_name, workspace_id
from worktree_agent.core.probes.base import SessionController
from worktree_agent.core.probes.filesystem import expand_path, is_working_copy
from worktree_agent.core.probes.git import GitWorktrees
from worktree_agent.core.settings import WorktreeSettings, get_settings
from worktree_agent.core.store.local import JsonMetadataStore


class DuplicateWorkspaceError(ValueError):
    """Raised when a workspace with the given ID (or path) already exists."""


class WorkspaceNotFoundError(LookupError):
    """Raised when a workspace is not found in the metadata store."""


class BranchNotFoundError(LookupError):
    """Raised when checking out a branch that does not exist without ``new_branch``."""


class WorkingCopyError(ValueError):
    """A path is not usable as a working copy for the requested action."""


class WorkspaceManager:
    def __init__(
        self,
        store: JsonMetadataStore,
        sessions: SessionController,
        git: GitWorktrees,
        settings: WorktreeSettings | None = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._git = git
        self._settings = settings or get_settings()

    # -- Lookup ----------------------------------------------------------------

    def get(self, workspace_id: str) -> WorkspaceRecord:
        """Get a record by ID.  Raises ``WorkspaceNotFoundError`` if missing."""
        record = self._store.get(workspace_id)
        if record is None:
            raise WorkspaceNotFoundError(workspace_id)
        return record

    def resolve_current(self, cwd: str | Path | None = None) -> str | None:
        """Workspace the caller is in: the tmux session name, else by working directory."""
        session = self._sessions.current_session()
        if session and self._store.get(session) is not None:
            return session
        return self._store.find_by_path(cwd if cwd is not None else Path.cwd())

    def working_copy_path(self, project: str, topic: str) -> Path:
        return self._settings.storage_root / project / topic

    def default_agent(self) -> str:
        """Agent to launch when the caller did not pick one."""
        if self._settings.auto_agent == "off":
            return ""
        candidates = self._settings.candidate_agents()
        if self._settings.agent_cmd in candidates:
            return self._settings.agent_cmd
        return candidates[0] if candidates else ""

    # -- Create ----------------------------------------------------------------

    def create(
        self,
        repo_path: str | Path,
        topic: str,
        *,
        branch: str | None = None,
        new_branch: bool = False,
        agent: str | None = None,
    ) -> tuple[str, WorkspaceRecord]:
        """Create working copy, session and record for ``topic``.

        Without ``branch`` this is quick mode: a new ``wt/<topic>`` branch off
        the current HEAD.  An existing valid working copy at the target path
        is reused instead of re-created.
        """
        origin = self._git.repo_root(repo_path)
        if origin is None:
            raise WorkingCopyError(f"{repo_path} is not inside a git repository")

        topic = sanitize_name(topic)
        if not topic:
            raise ValueError("Topic required")

        if branch is None:
            if self._git.current_branch(origin) is None:
                raise WorkingCopyError("Not on a valid branch; pass an explicit branch")
            branch, new_branch = f"wt/{topic}", True
        elif not new_branch and not self._git.branch_exists(origin, branch):
            raise BranchNotFoundError(branch)

        project = self._git.repo_name(origin)
        wid = workspace_id(project, topic)
        if self._store.get(wid) is not None or self._sessions.session_exists(wid):
            raise DuplicateWorkspaceError(wid)

        path = self.working_copy_path(project, topic)
        owner = self._store.find_by_path(path)
        if owner is not None:
            raise DuplicateWorkspaceError(f"{path} already belongs to {owner}")

        if path.exists():
            if not self._git.is_valid_working_copy(path):
                raise WorkingCopyError(f"{path} exists but is not a git working copy")
            logger.info("Reusing existing working copy {}", path)
        else:
            self._git.add(origin, path, branch, new_branch=new_branch)

        agent_command = self.default_agent() if agent is None else agent.strip()
        self._start_session(wid, path, topic, agent_command)

        record = WorkspaceRecord(
            project=project,
            topic=topic,
            branch=branch,
            working_copy_path=str(path),
            origin_path=str(origin),
            agent_available=bool(agent_command),
            agent_command=agent_command,
        )
        self._store.put(wid, record)
        logger.info("Workspace created: {} ({} @ {})", wid, branch, path)
        return wid, record

    # -- Teardown --------------------------------------------------------------

    def teardown(self, workspace_id: str) -> None:
        """Kill the session, remove the working copy, delete the record."""
        record = self.get(workspace_id)
        if self._sessions.session_exists(workspace_id):
            self._sessions.kill_session(workspace_id)
        else:
            logger.info("Session {} not running", workspace_id)
        self._git.remove(record.origin_path or record.working_copy_path, record.working_copy_path)
        self._store.delete(workspace_id)
        logger.info("Workspace torn down: {}", workspace_id)

    # -- Repairs ---------------------------------------------------------------

    def recreate_path(self, workspace_id: str) -> Path:
        """Orphaned-deleted-path repair: check the branch out again at the recorded path."""
        record = self.get(workspace_id)
        path = expand_path(record.working_copy_path)
        if path.exists():
            raise WorkingCopyError(f"{path} already exists")
        self._git.add(record.origin_path, path, record.branch)
        return path

    def create_session(self, workspace_id: str) -> None:
        """Orphaned-no-session repair: start a session in the existing working copy."""
        record = self.get(workspace_id)
        path = expand_path(record.working_copy_path)
        if not path.is_dir():
            raise WorkingCopyError(f"{path} does not exist")
        if self._sessions.session_exists(workspace_id):
            raise DuplicateWorkspaceError(workspace_id)
        self._start_session(workspace_id, path, record.topic, record.agent_command)

    def delete_path(self, workspace_id: str) -> None:
        """Orphaned-no-session repair: remove the working copy and its record."""
        record = self.get(workspace_id)
        if self._sessions.session_exists(workspace_id):
            raise WorkingCopyError(f"session {workspace_id} is live; use teardown")
        self._git.remove(record.origin_path or record.working_copy_path, record.working_copy_path)
        self._store.delete(workspace_id)

    def adopt(self, path: str | Path) -> tuple[str, WorkspaceRecord]:
        """Create a record for an untracked working copy under the storage root."""
        target = expand_path(path)
        if not is_working_copy(target) or not self._git.is_valid_working_copy(target):
            raise WorkingCopyError(f"{target} is not a git working copy")
        owner = self._store.find_by_path(target)
        if owner is not None:
            raise DuplicateWorkspaceError(f"{target} already belongs to {owner}")

        project, topic = target.parent.name, sanitize_name(target.name)
        wid = workspace_id(project, topic)
        if self._store.get(wid) is not None:
            raise DuplicateWorkspaceError(wid)

        origin = self._git.common_origin(target)
        record = WorkspaceRecord(
            project=project,
            topic=topic,
            branch=self._git.current_branch(target) or "",
            working_copy_path=str(target),
            origin_path=str(origin) if origin is not None else "",
        )
        self._store.put(wid, record)
        logger.info("Adopted untracked working copy {} as {}", target, wid)
        return wid, record

    def remove_untracked(self, path: str | Path) -> None:
        target = expand_path(path)
        owner = self._store.find_by_path(target)
        if owner is not None:
            raise WorkingCopyError(f"{target} is tracked by {owner}; use teardown")
        if not is_working_copy(target):
            raise WorkingCopyError(f"{target} is not a git working copy")
        origin = self._git.common_origin(target)
        self._git.remove(origin if origin is not None else target, target)

    # -- Description -----------------------------------------------------------

    def describe(self, workspace_id: str, description: str) -> None:
        if not self._store.update_description(workspace_id, description):
            raise WorkspaceNotFoundError(workspace_id)

    def description(self, workspace_id: str) -> str:
        return self.get(workspace_id).description

    # -- Internals -------------------------------------------------------------

    def _start_session(self, wid: str, path: Path, topic: str, agent_command: str) -> None:
        self._sessions.new_session(wid, str(path), window_name=topic)
        if not agent_command:
            return
        binary = agent_command.split()[0]
        if shutil.which(os.path.expanduser(binary)) is None:
            logger.warning("Agent command '{}' not found, session started without it", agent_binary(agent_command))
            return
        self._sessions.send_command(wid, agent_command)
