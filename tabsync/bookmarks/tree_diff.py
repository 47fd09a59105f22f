"""
Structural diff between two browser bookmark snapshots.

Native bookmark ids are not preserved across machines, so bookmarks are
matched by where they live and what they point to: entries are grouped by
`folder path + URL`, and entries inside a group are paired by position.
Within a group the overlap is compared, the remote surplus counts as added
and the local surplus as removed. Duplicate bookmarks in the same folder
are therefore treated as an ordered multiset.
"""

import json
from dataclasses import dataclass, field
from typing import Optional

from .models import FALLBACK_BOOKMARK_NAME, FALLBACK_FOLDER_NAME, Node, NodeType, Snapshot


@dataclass(frozen=True)
class FlatBookmarkEntry:
    """
    One node of a flattened snapshot.

    Attributes:
        type: Folder or bookmark
        path: Slash-joined titles of the containing folders, rooted at the branch title
        title: Node title
        url: Bookmark URL
        metadata_signature: Serialized metadata of a bookmark ("null" when none)
    """
    type: NodeType
    path: str
    title: str
    url: Optional[str] = None
    metadata_signature: Optional[str] = None

    @property
    def group_key(self) -> str:
        return f"{self.path}::{self.url or ''}"

    @property
    def signature(self) -> tuple[str, str, str]:
        return (self.title or "", self.url or "", self.metadata_signature or "")


@dataclass
class ChangedEntry:
    """A local/remote pair that matched by path and URL but differs."""
    local: FlatBookmarkEntry
    remote: FlatBookmarkEntry


@dataclass
class TreeDiff:
    """
    Result of comparing a local snapshot against a remote one.

    `added` entries exist only remotely, `removed` only locally.
    """
    added_items: list[FlatBookmarkEntry] = field(default_factory=list)
    removed_items: list[FlatBookmarkEntry] = field(default_factory=list)
    changed_items: list[ChangedEntry] = field(default_factory=list)

    @property
    def added(self) -> int:
        return len(self.added_items)

    @property
    def removed(self) -> int:
        return len(self.removed_items)

    @property
    def changed(self) -> int:
        return len(self.changed_items)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed)

    def __repr__(self) -> str:
        return f"TreeDiff(added={self.added}, removed={self.removed}, changed={self.changed})"


def flatten_snapshot(snapshot: Optional[Snapshot]) -> list[FlatBookmarkEntry]:
    """
    Flatten a snapshot depth-first into path-qualified entries.

    Folder entries are included; they are what give children their paths.
    """
    entries: list[FlatBookmarkEntry] = []
    if not snapshot:
        return entries

    for branch in snapshot:
        root_path = branch.root_title or FALLBACK_FOLDER_NAME
        for node in branch.items:
            _collect_entries(node, root_path, entries)
    return entries


def _collect_entries(node: Node, parent_path: str, entries: list[FlatBookmarkEntry]) -> None:
    if node.type == NodeType.FOLDER:
        title = node.title or FALLBACK_FOLDER_NAME
        folder_path = f"{parent_path}/{title}"
        entries.append(FlatBookmarkEntry(type=NodeType.FOLDER, path=folder_path, title=title))
        for child in node.children or []:
            _collect_entries(child, folder_path, entries)
        return

    metadata = node.metadata.to_dict() if node.metadata else None
    entries.append(FlatBookmarkEntry(
        type=NodeType.BOOKMARK,
        path=parent_path,
        title=node.title or node.url or FALLBACK_BOOKMARK_NAME,
        url=node.url,
        metadata_signature=json.dumps(metadata, sort_keys=True, ensure_ascii=False),
    ))


def _group_bookmarks(entries: list[FlatBookmarkEntry]) -> dict[str, list[FlatBookmarkEntry]]:
    groups: dict[str, list[FlatBookmarkEntry]] = {}
    for entry in entries:
        if entry.type == NodeType.BOOKMARK:
            groups.setdefault(entry.group_key, []).append(entry)
    return groups


def diff_snapshots(local: Optional[Snapshot], remote: Optional[Snapshot]) -> TreeDiff:
    """
    Compare a local snapshot against a remote one.

    With no remote snapshot there is nothing to compare against and the
    result is empty, even if the local snapshot has content.

    Args:
        local: Snapshot of the browser on this machine
        remote: Snapshot carried by the downloaded envelope

    Returns:
        TreeDiff with added, removed and changed bookmark entries
    """
    result = TreeDiff()
    if not remote:
        return result

    local_groups = _group_bookmarks(flatten_snapshot(local))
    remote_groups = _group_bookmarks(flatten_snapshot(remote))

    # Local key order first, then keys only seen remotely
    keys = list(local_groups)
    keys.extend(key for key in remote_groups if key not in local_groups)

    for key in keys:
        local_list = local_groups.get(key, [])
        remote_list = remote_groups.get(key, [])
        overlap = min(len(local_list), len(remote_list))

        for local_entry, remote_entry in zip(local_list[:overlap], remote_list[:overlap]):
            if local_entry.signature != remote_entry.signature:
                result.changed_items.append(ChangedEntry(local=local_entry, remote=remote_entry))

        result.added_items.extend(remote_list[overlap:])
        result.removed_items.extend(local_list[overlap:])

    return result
