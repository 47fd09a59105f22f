"""
Snapshot capture and summary.

Reads the native bookmark tree plus the local metadata store and produces a
normalized Snapshot: separators dropped, empty titles filled in, metadata
copied onto bookmark nodes, and empty branches removed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..storage.metadata_store import MetadataStore
from .models import (
    FALLBACK_BOOKMARK_NAME,
    FALLBACK_FOLDER_NAME,
    BookmarkMetadata,
    Branch,
    Node,
    NodeType,
    Snapshot,
)
from .store import BookmarkStore, StoreNode

logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised when reading the native bookmark tree fails."""
    pass


@dataclass
class SnapshotStats:
    """Counts over a snapshot."""
    total_bookmarks: int = 0
    total_folders: int = 0
    branch_count: int = 0

    def __str__(self) -> str:
        return (
            f"{self.total_bookmarks} bookmarks in {self.total_folders} folders "
            f"across {self.branch_count} branches"
        )


def capture_snapshot(
    store: Optional[BookmarkStore],
    metadata_store: MetadataStore,
) -> Optional[Snapshot]:
    """
    Capture the current browser bookmark tree.

    Each direct child of the store's root becomes a Branch. Bookmarks carry
    a copy of their local metadata when any is stored.

    Args:
        store: Native bookmark store (None when not configured)
        metadata_store: Local metadata keyed by native bookmark id

    Returns:
        The snapshot, or None if the store is unavailable

    Raises:
        CaptureError: If traversal fails
    """
    if store is None or not store.is_available():
        logger.info("Browser bookmark store unavailable, skipping capture")
        return None

    try:
        metadata_map = metadata_store.get_all()
        root = store.get_tree()
        snapshot = []
        for child in root.children or []:
            items = _sanitize_children(child.children or [], metadata_map)
            if items:
                snapshot.append(Branch(
                    root_id=child.id,
                    root_title=child.title or FALLBACK_FOLDER_NAME,
                    items=items,
                ))
    except Exception as e:
        logger.error(f"Failed to capture browser bookmarks: {e}")
        raise CaptureError(f"Failed to capture browser bookmarks: {e}") from e

    logger.info(f"Captured browser snapshot: {summarize_snapshot(snapshot)}")
    return snapshot


def summarize_snapshot(snapshot: Optional[Snapshot]) -> SnapshotStats:
    """Count folders, bookmarks and branches in a snapshot."""
    stats = SnapshotStats(branch_count=len(snapshot) if snapshot else 0)
    if not snapshot:
        return stats

    stack: list[Node] = [node for branch in snapshot for node in branch.items]
    while stack:
        node = stack.pop()
        if node.type == NodeType.FOLDER:
            stats.total_folders += 1
            stack.extend(node.children or [])
        else:
            stats.total_bookmarks += 1
    return stats


def _sanitize_children(
    children: list[StoreNode],
    metadata_map: dict[str, BookmarkMetadata],
) -> list[Node]:
    nodes = []
    for child in children:
        node = _sanitize_node(child, metadata_map)
        if node is not None:
            nodes.append(node)
    return nodes


def _sanitize_node(
    raw: StoreNode,
    metadata_map: dict[str, BookmarkMetadata],
) -> Optional[Node]:
    is_folder = bool(raw.children) or (not raw.url and raw.children is not None)

    # Separators and other entries with neither children nor a URL
    if not is_folder and not raw.url:
        return None

    if is_folder:
        return Node.folder(
            title=raw.title or FALLBACK_FOLDER_NAME,
            children=_sanitize_children(raw.children or [], metadata_map),
            date_added=raw.date_added,
            date_modified=raw.date_modified,
        )

    metadata = metadata_map.get(raw.id)
    return Node.bookmark(
        title=raw.title or raw.url or FALLBACK_BOOKMARK_NAME,
        url=raw.url,
        date_added=raw.date_added,
        date_modified=raw.date_modified,
        metadata=metadata.copy() if metadata else None,
    )
