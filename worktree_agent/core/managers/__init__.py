"""Workspace lifecycle managers.

Managers compose the metadata store with the git and tmux wrappers and
raise domain exceptions (``LookupError``, ``ValueError``), never CLI
errors -- that translation is the CLI's responsibility.
"""
