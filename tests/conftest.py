"""
Pytest configuration and shared fixtures.

Provides an in-memory bookmark store, temporary SQLite stores and sample
snapshots and entities.
"""

import pytest
from pathlib import Path
from typing import Generator, Optional
import tempfile

from tabsync.bookmarks.models import BookmarkMetadata, Branch, Node
from tabsync.bookmarks.store import BookmarkStore, BookmarkStoreError, StoreNode
from tabsync.storage.local_store import LocalStore
from tabsync.storage.metadata_store import MetadataStore
from tabsync.storage.models import Bookmark, Category, CustomVisit, QuickLink


# ============================================================================
# Fake Bookmark Store
# ============================================================================

class FakeBookmarkStore(BookmarkStore):
    """
    In-memory bookmark store that records every mutating call.

    Starts with the two standard top-level containers: "1" (Bookmarks bar)
    and "2" (Other bookmarks).
    """

    MUTATIONS = ("create", "remove", "remove_tree")

    def __init__(self, available: bool = True):
        self.available = available
        self.calls: list[tuple] = []
        self.fail_on_title: Optional[str] = None
        self._next_id = 100
        self._nodes: dict[str, dict] = {
            "0": {"id": "0", "title": "", "url": None, "children": ["1", "2"], "parent": None},
            "1": {"id": "1", "title": "Bookmarks bar", "url": None, "children": [], "parent": "0"},
            "2": {"id": "2", "title": "Other bookmarks", "url": None, "children": [], "parent": "0"},
        }

    @property
    def mutations(self) -> list[tuple]:
        return [call for call in self.calls if call[0] in self.MUTATIONS]

    def is_available(self) -> bool:
        return self.available

    def get_tree(self) -> StoreNode:
        self.calls.append(("get_tree",))
        return self._build("0")

    def get_children(self, parent_id: str) -> list[StoreNode]:
        self.calls.append(("get_children", parent_id))
        return [self._build(child_id) for child_id in self._nodes[parent_id]["children"]]

    def create(self, title: str, parent_id: str, url: Optional[str] = None) -> StoreNode:
        self.calls.append(("create", title, parent_id, url))
        if self.fail_on_title is not None and title == self.fail_on_title:
            raise BookmarkStoreError(f"Cannot create '{title}'")
        if parent_id not in self._nodes or self._nodes[parent_id]["children"] is None:
            raise BookmarkStoreError(f"No folder {parent_id}")

        node_id = str(self._next_id)
        self._next_id += 1
        self._nodes[node_id] = {
            "id": node_id,
            "title": title,
            "url": url,
            "children": None if url else [],
            "parent": parent_id,
        }
        self._nodes[parent_id]["children"].append(node_id)
        return self._build(node_id)

    def remove(self, node_id: str) -> None:
        self.calls.append(("remove", node_id))
        if self._nodes[node_id]["children"]:
            raise BookmarkStoreError("Folder not empty")
        self._detach(node_id)

    def remove_tree(self, node_id: str) -> None:
        self.calls.append(("remove_tree", node_id))
        self._detach(node_id)

    def add(self, title: str, parent_id: str, url: Optional[str] = None) -> str:
        """Seed a node without recording a call."""
        node = self.create(title, parent_id, url)
        self.calls.pop()
        return node.id

    def add_separator(self, parent_id: str) -> str:
        node_id = str(self._next_id)
        self._next_id += 1
        self._nodes[node_id] = {"id": node_id, "title": "", "url": None, "children": None, "parent": parent_id}
        self._nodes[parent_id]["children"].append(node_id)
        return node_id

    def _detach(self, node_id: str) -> None:
        node = self._nodes.pop(node_id)
        self._nodes[node["parent"]]["children"].remove(node_id)
        for child_id in node["children"] or []:
            self._drop(child_id)

    def _drop(self, node_id: str) -> None:
        node = self._nodes.pop(node_id)
        for child_id in node["children"] or []:
            self._drop(child_id)

    def _build(self, node_id: str) -> StoreNode:
        node = self._nodes[node_id]
        children = None
        if node["children"] is not None:
            children = [self._build(child_id) for child_id in node["children"]]
        return StoreNode(
            id=node["id"],
            title=node["title"],
            url=node["url"],
            children=children,
            parent_id=node["parent"],
        )


@pytest.fixture
def fake_store() -> FakeBookmarkStore:
    """Create an empty in-memory bookmark store."""
    return FakeBookmarkStore()


@pytest.fixture
def populated_store() -> FakeBookmarkStore:
    """
    Create a store with some content:

    Bookmarks bar/
        Dev/
            Site <https://x.com>
            Docs <https://docs.python.org>
        News <https://news.example.com>
    Other bookmarks/
        Recipes <https://food.example.com>
    """
    store = FakeBookmarkStore()
    dev = store.add("Dev", "1")
    store.add("Site", dev, "https://x.com")
    store.add("Docs", dev, "https://docs.python.org")
    store.add("News", "1", "https://news.example.com")
    store.add("Recipes", "2", "https://food.example.com")
    return store


# ============================================================================
# Storage Fixtures
# ============================================================================

@pytest.fixture
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "tabsync.db"


@pytest.fixture
def local_store(temp_db_path: Path) -> LocalStore:
    """Create a fresh LocalStore with temp database."""
    return LocalStore(temp_db_path)


@pytest.fixture
def metadata_store(temp_db_path: Path) -> MetadataStore:
    """Create a fresh MetadataStore sharing the temp database."""
    return MetadataStore(temp_db_path)


# ============================================================================
# Snapshot Fixtures
# ============================================================================

@pytest.fixture
def sample_metadata() -> BookmarkMetadata:
    return BookmarkMetadata(
        tags=["python", "docs"],
        is_pinned=True,
        custom_order=3,
        color="#22c55e",
        created_at=1760000000000,
        updated_at=1760000000000,
    )


@pytest.fixture
def sample_snapshot(sample_metadata: BookmarkMetadata) -> list[Branch]:
    """A two-branch snapshot with a nested folder and one annotated bookmark."""
    return [
        Branch(
            root_id="1",
            root_title="Bookmarks bar",
            items=[
                Node.folder("Dev", [
                    Node.bookmark("Site", "https://x.com"),
                    Node.bookmark("Docs", "https://docs.python.org", metadata=sample_metadata),
                ]),
                Node.bookmark("News", "https://news.example.com"),
            ],
        ),
        Branch(
            root_id="2",
            root_title="Other bookmarks",
            items=[Node.bookmark("Recipes", "https://food.example.com")],
        ),
    ]


# ============================================================================
# Entity Fixtures
# ============================================================================

@pytest.fixture
def sample_bookmark() -> Bookmark:
    return Bookmark(
        id="bm-1",
        title="GitHub",
        url="https://github.com",
        color="#0ea5e9",
        category_id="dev",
        created_at=1760000000000,
        visit_count=4,
    )


@pytest.fixture
def sample_quick_link() -> QuickLink:
    return QuickLink(id="ql-1", title="Mail", url="https://mail.example.com", color="#ef4444", order=0)


@pytest.fixture
def sample_category() -> Category:
    return Category(id="dev", name="Development", order=1)


@pytest.fixture
def sample_visit() -> CustomVisit:
    return CustomVisit(id="cv-1", url="https://example.com", title="Example", visit_time=1760000000000)


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove tabsync variables and run from an empty directory (no .env)."""
    for name in (
        "TABSYNC_TRANSPORT", "WEBDAV_URL", "WEBDAV_USERNAME", "WEBDAV_PASSWORD",
        "WEBDAV_PATH", "GIST_TOKEN", "GIST_ID", "TABSYNC_TIMEOUT", "TABSYNC_MAX_RETRIES",
        "TABSYNC_DATABASE_PATH", "TABSYNC_BOOKMARKS_FILE", "TABSYNC_INCLUDE_BROWSER",
        "LOG_LEVEL",
    ):
        # setenv first so teardown also undoes values written by .env loading
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def mock_env(clean_env, monkeypatch):
    """Valid WebDAV configuration."""
    monkeypatch.setenv("TABSYNC_TRANSPORT", "webdav")
    monkeypatch.setenv("WEBDAV_URL", "https://dav.test/remote.php/dav")
    monkeypatch.setenv("WEBDAV_USERNAME", "alice")
    monkeypatch.setenv("WEBDAV_PASSWORD", "secret")
    monkeypatch.setenv("WEBDAV_PATH", "backups")
