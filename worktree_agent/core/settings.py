"""Configuration loaded from WORKTREE_* environment variables."""

from __future__ import annotations

import os
import shutil
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_KNOWN_AGENTS = ["claude", "codex", "gemini", "aider", "opencode"]


class WorktreeSettings(BaseSettings):
    """tmux-worktree-agent settings.

    All fields are read from environment variables with the ``WORKTREE_``
    prefix.  For example, ``WORKTREE_PATH=~/wt`` maps to ``path`` and
    ``WORKTREE_AGENT_CMD=codex`` maps to ``agent_cmd``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKTREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "WARNING"

    # -- Storage ---------------------------------------------------------------
    metadata_file: str = "~/.worktree-sessions.json"
    """Single JSON file holding every workspace record."""

    path: str = "~/.worktrees"
    """Workspace storage root.  Working copies live at ``{path}/{project}/{topic}``."""

    # -- Agents ----------------------------------------------------------------
    agent_cmd: str = "claude"
    """Process-wide default agent command, used when a record has none."""

    agent_list: str = "claude"
    """Comma-separated agents offered at creation time (filtered to installed)."""

    auto_agent: Literal["on", "prompt", "off"] = "on"

    known_agents: list[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_AGENTS))
    """Binary names probed when the configured agent is not found in a pane."""

    # -- Activity heuristics ---------------------------------------------------
    capture_lines: int = 15
    output_window: float = 8.0
    """Seconds of pane silence after which a prompt-style agent counts as waiting."""

    activity_window: float = 10.0
    """Recency window for the CPU/output fallback heuristic."""

    cpu_threshold: float = 2.0
    cpu_sample_interval: float = 0.1

    # -- Probes ----------------------------------------------------------------
    probe_timeout: float = 5.0
    """Upper bound in seconds for any external command (tmux, git)."""

    # -- Display ---------------------------------------------------------------
    max_topic_len: int = 14

    # -- Helpers ---------------------------------------------------------------

    @property
    def metadata_path(self) -> Path:
        return Path(os.path.expanduser(self.metadata_file))

    @property
    def storage_root(self) -> Path:
        return Path(os.path.expanduser(self.path))

    def candidate_agents(self) -> list[str]:
        """Agents from ``agent_list`` whose leading token is installed."""
        agents = [a.strip() for a in self.agent_list.split(",") if a.strip()]
        return [a for a in agents if shutil.which(a.split()[0])]


@lru_cache(maxsize=1)
def get_settings() -> WorktreeSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return WorktreeSettings()
