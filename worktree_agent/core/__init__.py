"""Core of tmux-worktree-agent: metadata store, activity classifier, reconciliation."""
