"""
Unit tests for the Chromium bookmarks file store.
"""

import json
from pathlib import Path

import pytest

from tabsync.bookmarks.capture import capture_snapshot
from tabsync.bookmarks.chrome import (
    ROOT_ID,
    ChromeBookmarkFile,
    epoch_ms_to_webkit,
    webkit_to_epoch_ms,
)
from tabsync.bookmarks.reconciler import ApplyStrategy, BrowserTreeReconciler
from tabsync.bookmarks.store import BookmarkStoreError


BOOKMARKS_DOCUMENT = {
    "checksum": "0123456789abcdef",
    "roots": {
        "bookmark_bar": {
            "children": [
                {
                    "children": [
                        {
                            "date_added": "13370000000000000",
                            "id": "4",
                            "name": "Python",
                            "type": "url",
                            "url": "https://python.org",
                        },
                    ],
                    "date_added": "13370000000000000",
                    "date_modified": "13370000000000000",
                    "id": "3",
                    "name": "Dev",
                    "type": "folder",
                },
                {"id": "5", "name": "", "type": "url", "url": "https://news.example.com"},
            ],
            "id": "1",
            "name": "Bookmarks bar",
            "type": "folder",
        },
        "other": {"children": [], "id": "2", "name": "Other bookmarks", "type": "folder"},
        "synced": {"children": [], "id": "6", "name": "Mobile bookmarks", "type": "folder"},
    },
    "version": 1,
}


@pytest.fixture
def bookmarks_file(tmp_path) -> Path:
    path = tmp_path / "Bookmarks"
    path.write_text(json.dumps(BOOKMARKS_DOCUMENT), encoding="utf-8")
    return path


@pytest.fixture
def chrome_store(bookmarks_file) -> ChromeBookmarkFile:
    return ChromeBookmarkFile(bookmarks_file)


class TestTimestamps:
    """Tests for WebKit timestamp conversion."""

    def test_round_trip(self):
        assert webkit_to_epoch_ms(epoch_ms_to_webkit(1760000000000)) == 1760000000000

    def test_epoch_start(self):
        assert webkit_to_epoch_ms("11644473600000000") == 0

    @pytest.mark.parametrize("value", [None, "", "0", "abc"])
    def test_invalid_values(self, value):
        assert webkit_to_epoch_ms(value) is None


class TestReading:
    """Tests for reading the bookmark tree."""

    def test_missing_file_is_unavailable(self, tmp_path):
        store = ChromeBookmarkFile(tmp_path / "Bookmarks")

        assert not store.is_available()
        with pytest.raises(BookmarkStoreError, match="not found"):
            store.get_tree()

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "Bookmarks"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(BookmarkStoreError):
            ChromeBookmarkFile(path).get_tree()

    def test_tree_has_roots_in_order(self, chrome_store):
        tree = chrome_store.get_tree()

        assert tree.id == ROOT_ID
        assert [(child.id, child.title) for child in tree.children] == [
            ("1", "Bookmarks bar"),
            ("2", "Other bookmarks"),
            ("6", "Mobile bookmarks"),
        ]

    def test_nodes_are_converted(self, chrome_store):
        dev, news = chrome_store.get_children("1")

        assert dev.url is None
        assert dev.parent_id == "1"
        assert dev.date_added == webkit_to_epoch_ms("13370000000000000")
        assert dev.children[0].url == "https://python.org"
        assert news.children is None
        assert news.date_added is None

    def test_children_of_bookmark_rejected(self, chrome_store):
        with pytest.raises(BookmarkStoreError, match="not a folder"):
            chrome_store.get_children("4")

    def test_unknown_id(self, chrome_store):
        with pytest.raises(BookmarkStoreError, match="No bookmark node"):
            chrome_store.get_children("999")

    def test_capture_from_file(self, chrome_store, metadata_store):
        snapshot = capture_snapshot(chrome_store, metadata_store)

        assert [branch.root_id for branch in snapshot] == ["1"]
        assert snapshot[0].items[1].title == "https://news.example.com"


class TestWriting:
    """Tests for creating and removing nodes."""

    def test_create_assigns_next_id(self, chrome_store, bookmarks_file):
        folder = chrome_store.create("Reading", "2")
        bookmark = chrome_store.create("Article", folder.id, url="https://read.example.com")

        assert folder.id == "7"
        assert bookmark.id == "8"
        assert bookmark.parent_id == "7"

        document = json.loads(bookmarks_file.read_text(encoding="utf-8"))
        reading = document["roots"]["other"]["children"][0]
        assert reading["type"] == "folder"
        assert reading["children"][0]["url"] == "https://read.example.com"
        assert reading["children"][0]["guid"]

    def test_write_drops_checksum(self, chrome_store, bookmarks_file):
        chrome_store.create("Reading", "2")

        document = json.loads(bookmarks_file.read_text(encoding="utf-8"))
        assert "checksum" not in document
        assert document["version"] == 1

    def test_create_inside_bookmark_rejected(self, chrome_store):
        with pytest.raises(BookmarkStoreError):
            chrome_store.create("Nope", "4")

    def test_remove_bookmark(self, chrome_store):
        chrome_store.remove("5")

        assert [child.id for child in chrome_store.get_children("1")] == ["3"]

    def test_remove_non_empty_folder_rejected(self, chrome_store):
        with pytest.raises(BookmarkStoreError, match="not empty"):
            chrome_store.remove("3")

    def test_remove_tree(self, chrome_store):
        chrome_store.remove_tree("3")

        assert [child.id for child in chrome_store.get_children("1")] == ["5"]

    def test_roots_cannot_be_removed(self, chrome_store):
        with pytest.raises(BookmarkStoreError, match="root"):
            chrome_store.remove_tree("1")

    def test_replace_into_file(self, chrome_store, metadata_store, sample_snapshot):
        reconciler = BrowserTreeReconciler(chrome_store, metadata_store)

        reconciler.apply(sample_snapshot, ApplyStrategy.REPLACE)
        snapshot = capture_snapshot(chrome_store, metadata_store)

        assert [branch.root_title for branch in snapshot] == ["Bookmarks bar", "Other bookmarks"]
        assert [node.title for node in snapshot[0].items] == ["Dev", "News"]
        assert snapshot[0].items[0].children[1].metadata.is_pinned is True
        assert snapshot[1].items[0].url == "https://food.example.com"
