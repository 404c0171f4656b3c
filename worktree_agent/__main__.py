from worktree_agent.cli import main

main()
