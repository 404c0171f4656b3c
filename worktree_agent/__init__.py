"""tmux-worktree-agent: git worktree + tmux session + AI agent workspaces."""
