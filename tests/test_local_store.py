"""
Unit tests for the local state store.
"""

import pytest
from pathlib import Path

from tabsync.storage.database import StateStoreError
from tabsync.storage.local_store import LocalStore
from tabsync.storage.models import Category, Collections, EntityKind


class TestLocalStoreInit:
    """Tests for LocalStore initialization."""

    def test_creates_database_file(self, temp_db_path: Path):
        """Test that initialization creates the database file."""
        LocalStore(temp_db_path)

        assert temp_db_path.exists()

    def test_creates_parent_directories(self, tmp_path: Path):
        db_path = tmp_path / "nested" / "dir" / "tabsync.db"

        LocalStore(db_path)

        assert db_path.exists()

    def test_reopen_keeps_data(self, temp_db_path: Path, sample_category: Category):
        LocalStore(temp_db_path).replace_collection(EntityKind.CATEGORIES, [sample_category])

        reopened = LocalStore(temp_db_path)

        assert reopened.get_collection(EntityKind.CATEGORIES) == [sample_category]


class TestCollections:
    """Tests for reading and replacing collections."""

    def test_empty_store(self, local_store: LocalStore):
        assert local_store.get_collections() == Collections()

    def test_replace_collection_preserves_order(self, local_store: LocalStore):
        categories = [Category(id=str(i), name=f"Category {i}") for i in (3, 1, 2)]

        local_store.replace_collection(EntityKind.CATEGORIES, categories)

        assert local_store.get_collection(EntityKind.CATEGORIES) == categories
        assert local_store.count(EntityKind.CATEGORIES) == 3

    def test_replace_collection_is_whole(self, local_store: LocalStore):
        local_store.replace_collection(EntityKind.CATEGORIES, [Category(id="a", name="A")])
        local_store.replace_collection(EntityKind.CATEGORIES, [Category(id="b", name="B")])

        assert [c.id for c in local_store.get_collection(EntityKind.CATEGORIES)] == ["b"]

    def test_kinds_are_independent(self, local_store, sample_bookmark, sample_category):
        local_store.replace_collection(EntityKind.BOOKMARKS, [sample_bookmark])
        local_store.replace_collection(EntityKind.CATEGORIES, [sample_category])
        local_store.replace_collection(EntityKind.CATEGORIES, [])

        assert local_store.get_collection(EntityKind.BOOKMARKS) == [sample_bookmark]
        assert local_store.count(EntityKind.CATEGORIES) == 0

    def test_replace_collections(
        self, local_store, sample_bookmark, sample_quick_link, sample_category, sample_visit
    ):
        collections = Collections(
            bookmarks=[sample_bookmark],
            quick_links=[sample_quick_link],
            categories=[sample_category],
            custom_recent_visits=[sample_visit],
        )

        local_store.replace_collections(collections)

        assert local_store.get_collections() == collections

    def test_duplicate_ids_rejected_and_rolled_back(self, local_store, sample_category):
        """Test that a failed replace leaves the previous contents in place."""
        local_store.replace_collection(EntityKind.CATEGORIES, [sample_category])

        with pytest.raises(StateStoreError, match="Duplicate id"):
            local_store.replace_collection(
                EntityKind.CATEGORIES,
                [Category(id="x", name="One"), Category(id="x", name="Two")],
            )

        assert local_store.get_collection(EntityKind.CATEGORIES) == [sample_category]

    def test_replace_collections_is_atomic(self, local_store, sample_bookmark, sample_category):
        local_store.replace_collection(EntityKind.CATEGORIES, [sample_category])
        broken = Collections(
            bookmarks=[sample_bookmark],
            categories=[Category(id="x", name="One"), Category(id="x", name="Two")],
        )

        with pytest.raises(StateStoreError):
            local_store.replace_collections(broken)

        assert local_store.get_collection(EntityKind.BOOKMARKS) == []
        assert local_store.get_collection(EntityKind.CATEGORIES) == [sample_category]


class TestSettings:
    """Tests for the settings map."""

    def test_empty_settings(self, local_store: LocalStore):
        assert local_store.get_settings() == {}

    def test_update_settings_merges_keys(self, local_store: LocalStore):
        local_store.update_settings({"theme": "dark", "columns": 4})
        local_store.update_settings({"theme": "light", "nested": {"a": [1, 2]}})

        assert local_store.get_settings() == {
            "theme": "light",
            "columns": 4,
            "nested": {"a": [1, 2]},
        }


class TestPendingDownload:
    """Tests for the pending download slot."""

    def test_no_pending_by_default(self, local_store: LocalStore):
        assert local_store.load_pending() is None
        assert local_store.clear_pending() is False

    def test_save_and_load(self, local_store: LocalStore):
        document = {"version": 2, "timestamp": 1, "categories": [{"id": "a", "name": "A", "order": 0}]}

        local_store.save_pending(document)

        assert local_store.load_pending() == document

    def test_only_one_pending(self, local_store: LocalStore):
        local_store.save_pending({"version": 2, "timestamp": 1})
        local_store.save_pending({"version": 2, "timestamp": 2})

        assert local_store.load_pending()["timestamp"] == 2

    def test_clear_pending(self, local_store: LocalStore):
        local_store.save_pending({"version": 2, "timestamp": 1})

        assert local_store.clear_pending() is True
        assert local_store.load_pending() is None


class TestClear:
    """Tests for clearing all state."""

    def test_clear_removes_everything(self, local_store, sample_category):
        local_store.replace_collection(EntityKind.CATEGORIES, [sample_category])
        local_store.update_settings({"theme": "dark"})
        local_store.save_pending({"version": 2, "timestamp": 1})

        local_store.clear()

        assert local_store.count(EntityKind.CATEGORIES) == 0
        assert local_store.get_settings() == {}
        assert local_store.load_pending() is None
