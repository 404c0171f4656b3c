"""Metadata store implementations."""

from worktree_agent.core.store.base import MetadataStore, StoreCorruptedError
from worktree_agent.core.store.local import JsonMetadataStore

__all__ = ["JsonMetadataStore", "MetadataStore", "StoreCorruptedError"]
