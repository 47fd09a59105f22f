"""
Browser bookmark snapshot models.

A snapshot is the normalized, exportable copy of the browser's bookmark
tree: a list of branches (one per top-level container such as the
bookmarks bar), each holding folder and bookmark nodes.

Serialized form uses camelCase keys and omits unset optional fields,
matching the JSON document exchanged with the sync backends.
"""

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

FALLBACK_FOLDER_NAME = "Untitled folder"
FALLBACK_BOOKMARK_NAME = "Untitled bookmark"


class NodeType(Enum):
    """Kind of a snapshot node."""
    FOLDER = "folder"
    BOOKMARK = "bookmark"


@dataclass
class BookmarkMetadata:
    """
    Local annotation attached to a browser bookmark.

    Not known to the browser itself; stored locally keyed by the browser's
    native bookmark id.

    Attributes:
        tags: Tag names
        is_pinned: Whether the bookmark is pinned to quick access
        custom_order: Sort weight
        color: Custom display color
        custom_title: Title shown locally instead of the browser title
        created_at: Creation time, epoch milliseconds
        updated_at: Last update time, epoch milliseconds
    """
    tags: list[str] = field(default_factory=list)
    is_pinned: bool = False
    custom_order: int = 0
    color: Optional[str] = None
    custom_title: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def copy(self) -> "BookmarkMetadata":
        """Return an independent copy."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        if self.color is not None:
            data["color"] = self.color
        data["tags"] = list(self.tags)
        data["isPinned"] = self.is_pinned
        if self.custom_title is not None:
            data["customTitle"] = self.custom_title
        data["customOrder"] = self.custom_order
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "BookmarkMetadata":
        """Create from a serialized payload, tolerating missing fields."""
        tags = data.get("tags")
        custom_order = data.get("customOrder")
        return cls(
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
            is_pinned=bool(data.get("isPinned", False)),
            custom_order=custom_order if isinstance(custom_order, int) else 0,
            color=data.get("color"),
            custom_title=data.get("customTitle"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class Node:
    """
    A folder or bookmark within a branch.

    Bookmarks never have children; folders never have a URL or metadata.
    """
    title: str
    type: NodeType
    url: Optional[str] = None
    children: Optional[list["Node"]] = None
    date_added: Optional[int] = None
    date_modified: Optional[int] = None
    metadata: Optional[BookmarkMetadata] = None

    def __post_init__(self):
        if self.type == NodeType.BOOKMARK:
            if self.children is not None:
                raise ValueError("Bookmark nodes cannot have children")
            if not self.url:
                raise ValueError("Bookmark nodes require a URL")
        else:
            if self.url is not None or self.metadata is not None:
                raise ValueError("Folder nodes cannot have a URL or metadata")

    @property
    def is_folder(self) -> bool:
        return self.type == NodeType.FOLDER

    @classmethod
    def folder(cls, title: str, children: Optional[list["Node"]] = None, **kwargs) -> "Node":
        return cls(title=title, type=NodeType.FOLDER, children=list(children or []), **kwargs)

    @classmethod
    def bookmark(cls, title: str, url: str, **kwargs) -> "Node":
        return cls(title=title, type=NodeType.BOOKMARK, url=url, **kwargs)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"title": self.title, "type": self.type.value}
        if self.url is not None:
            data["url"] = self.url
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        if self.date_added is not None:
            data["dateAdded"] = self.date_added
        if self.date_modified is not None:
            data["dateModified"] = self.date_modified
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Node":
        """
        Create a node from its serialized form.

        Fields that contradict the node type are dropped rather than
        rejected, so older or foreign documents still load.

        Raises:
            ValueError: If the type is unknown or a bookmark has no URL
        """
        node_type = NodeType(data.get("type"))
        date_modified = data.get("dateModified", data.get("dateGroupModified"))

        if node_type == NodeType.FOLDER:
            return cls.folder(
                title=data.get("title") or FALLBACK_FOLDER_NAME,
                children=_nodes_from_list(data.get("children")),
                date_added=data.get("dateAdded"),
                date_modified=date_modified,
            )

        url = data.get("url")
        metadata = data.get("metadata")
        return cls.bookmark(
            title=data.get("title") or url or FALLBACK_BOOKMARK_NAME,
            url=url,
            date_added=data.get("dateAdded"),
            date_modified=date_modified,
            metadata=BookmarkMetadata.from_dict(metadata) if isinstance(metadata, dict) else None,
        )


@dataclass
class Branch:
    """One top-level container (e.g. the bookmarks bar) and its contents."""
    root_id: str
    root_title: str
    items: list[Node] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rootId": self.root_id,
            "rootTitle": self.root_title,
            "items": [node.to_dict() for node in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Branch":
        return cls(
            root_id=str(data.get("rootId", "")),
            root_title=data.get("rootTitle") or FALLBACK_FOLDER_NAME,
            items=_nodes_from_list(data.get("items")),
        )


def _nodes_from_list(raw: Any) -> list[Node]:
    """Parse child nodes, skipping entries that are not valid nodes."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(f"Ignoring children: expected a list, got {type(raw).__name__}")
        return []

    nodes = []
    for item in raw:
        if not isinstance(item, dict):
            logger.warning("Skipping node: not an object")
            continue
        try:
            nodes.append(Node.from_dict(item))
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping node '{item.get('title', '')}': {e}")
    return nodes


Snapshot = list[Branch]


def snapshot_to_list(snapshot: Snapshot) -> list[dict]:
    """Serialize a snapshot to plain JSON-compatible data."""
    return [branch.to_dict() for branch in snapshot]


def snapshot_from_list(data: list) -> Snapshot:
    """
    Deserialize a snapshot.

    Malformed nodes are skipped with a warning so one bad entry does not
    discard the rest of the tree.

    Raises:
        ValueError: If the data is not a list
    """
    if not isinstance(data, list):
        raise ValueError(f"Snapshot must be a list, got {type(data).__name__}")
    return [Branch.from_dict(branch) for branch in data if isinstance(branch, dict)]
