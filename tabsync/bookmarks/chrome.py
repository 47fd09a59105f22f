"""
Chromium `Bookmarks` file store.

Chromium-based browsers keep the bookmark tree in a JSON document in the
profile directory:

    { "checksum": "...", "roots": { "bookmark_bar": {...}, "other": {...},
      "synced": {...} }, "version": 1 }

Every node has a string `id`, a `name`, a `type` of "url" or "folder" and
WebKit-epoch timestamps (microseconds since 1601-01-01). This store exposes
the document through the BookmarkStore primitives. The browser should be
closed while the file is being modified.
"""

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .store import BookmarkStore, BookmarkStoreError, StoreNode

logger = logging.getLogger(__name__)

ROOT_ID = "0"
ROOT_KEYS = ("bookmark_bar", "other", "synced")

# Milliseconds between 1601-01-01 and 1970-01-01
WEBKIT_EPOCH_OFFSET_MS = 11644473600000


def webkit_to_epoch_ms(value) -> Optional[int]:
    """Convert a WebKit timestamp string to epoch milliseconds."""
    try:
        micros = int(value)
    except (TypeError, ValueError):
        return None
    if micros <= 0:
        return None
    return micros // 1000 - WEBKIT_EPOCH_OFFSET_MS


def epoch_ms_to_webkit(value: int) -> str:
    """Convert epoch milliseconds to a WebKit timestamp string."""
    return str((value + WEBKIT_EPOCH_OFFSET_MS) * 1000)


class ChromeBookmarkFile(BookmarkStore):
    """
    BookmarkStore backed by a Chromium `Bookmarks` JSON file.

    Each mutation rewrites the file atomically. The stale checksum is
    dropped on write; the browser recomputes it on next load.

    Usage:
        store = ChromeBookmarkFile(Path("~/.config/chromium/Default/Bookmarks").expanduser())
        root = store.get_tree()
        folder = store.create("Reading", parent_id="1")
        store.create("Python", parent_id=folder.id, url="https://python.org")
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"ChromeBookmarkFile(path='{self.path}')"

    def is_available(self) -> bool:
        return self.path.is_file()

    def get_tree(self) -> StoreNode:
        document = self._load()
        roots = document.get("roots", {})
        children = [
            self._to_store_node(roots[key], ROOT_ID)
            for key in self._root_keys(roots)
        ]
        return StoreNode(id=ROOT_ID, title="", children=children)

    def get_children(self, parent_id: str) -> list[StoreNode]:
        if parent_id == ROOT_ID:
            return self.get_tree().children or []

        document = self._load()
        parent, _ = self._find(document, parent_id)
        if parent.get("type") != "folder":
            raise BookmarkStoreError(f"Node {parent_id} is not a folder")
        return [self._to_store_node(child, parent_id) for child in parent.get("children", [])]

    def create(self, title: str, parent_id: str, url: Optional[str] = None) -> StoreNode:
        document = self._load()
        parent, _ = self._find(document, parent_id)
        if parent.get("type") != "folder":
            raise BookmarkStoreError(f"Cannot create inside non-folder node {parent_id}")

        now = int(datetime.now(timezone.utc).timestamp() * 1000)
        raw = {
            "date_added": epoch_ms_to_webkit(now),
            "guid": str(uuid.uuid4()),
            "id": str(self._next_id(document)),
            "name": title,
        }
        if url is not None:
            raw["type"] = "url"
            raw["url"] = url
        else:
            raw["type"] = "folder"
            raw["children"] = []
            raw["date_modified"] = "0"

        parent.setdefault("children", []).append(raw)
        parent["date_modified"] = epoch_ms_to_webkit(now)
        self._save(document)

        logger.debug(f"Created {raw['type']} {raw['id']} '{title}' under {parent_id}")
        return self._to_store_node(raw, parent_id)

    def remove(self, node_id: str) -> None:
        document = self._load()
        node, parent = self._find(document, node_id)
        if parent is None:
            raise BookmarkStoreError(f"Cannot remove root container {node_id}")
        if node.get("type") == "folder" and node.get("children"):
            raise BookmarkStoreError(f"Folder {node_id} is not empty")

        parent["children"].remove(node)
        self._save(document)
        logger.debug(f"Removed node {node_id}")

    def remove_tree(self, node_id: str) -> None:
        document = self._load()
        node, parent = self._find(document, node_id)
        if parent is None:
            raise BookmarkStoreError(f"Cannot remove root container {node_id}")

        parent["children"].remove(node)
        self._save(document)
        logger.debug(f"Removed subtree {node_id}")

    def _load(self) -> dict:
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError as e:
            raise BookmarkStoreError(f"Bookmarks file not found: {self.path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise BookmarkStoreError(f"Failed to read bookmarks file: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("roots"), dict):
            raise BookmarkStoreError("Bookmarks file has no 'roots' object")
        return document

    def _save(self, document: dict) -> None:
        document.pop("checksum", None)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".bookmarks-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=3, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise BookmarkStoreError(f"Failed to write bookmarks file: {e}") from e

    @staticmethod
    def _root_keys(roots: dict) -> list[str]:
        known = [key for key in ROOT_KEYS if isinstance(roots.get(key), dict)]
        extra = [
            key for key, value in roots.items()
            if key not in ROOT_KEYS and isinstance(value, dict) and value.get("type") == "folder"
        ]
        return known + extra

    def _find(self, document: dict, node_id: str) -> tuple[dict, Optional[dict]]:
        """
        Locate a node by id.

        Returns:
            (node, parent) where parent is None for top-level containers

        Raises:
            BookmarkStoreError: If no node has that id
        """
        roots = document["roots"]
        stack: list[tuple[dict, Optional[dict]]] = [
            (roots[key], None) for key in self._root_keys(roots)
        ]
        while stack:
            node, parent = stack.pop()
            if str(node.get("id")) == str(node_id):
                return node, parent
            for child in node.get("children", []) or []:
                stack.append((child, node))
        raise BookmarkStoreError(f"No bookmark node with id {node_id}")

    def _next_id(self, document: dict) -> int:
        highest = 0
        stack = list(document["roots"].values())
        while stack:
            node = stack.pop()
            if not isinstance(node, dict):
                continue
            node_id = str(node.get("id", ""))
            if node_id.isdigit():
                highest = max(highest, int(node_id))
            stack.extend(node.get("children", []) or [])
        return highest + 1

    def _to_store_node(self, raw: dict, parent_id: Optional[str]) -> StoreNode:
        node_id = str(raw.get("id", ""))
        node_type = raw.get("type")
        children = None
        if node_type == "folder":
            children = [self._to_store_node(child, node_id) for child in raw.get("children", [])]

        return StoreNode(
            id=node_id,
            title=raw.get("name", ""),
            url=raw.get("url") if node_type == "url" else None,
            children=children,
            parent_id=parent_id,
            date_added=webkit_to_epoch_ms(raw.get("date_added")),
            date_modified=webkit_to_epoch_ms(raw.get("date_modified")),
        )
