"""Browser bookmark tree snapshot, diff and reconciliation module."""

from .models import BookmarkMetadata, Branch, Node, NodeType, Snapshot
from .store import BookmarkStore, BookmarkStoreError, BookmarkStoreUnavailable, StoreNode

__all__ = [
    "BookmarkMetadata",
    "Branch",
    "Node",
    "NodeType",
    "Snapshot",
    "BookmarkStore",
    "BookmarkStoreError",
    "BookmarkStoreUnavailable",
    "StoreNode",
]
