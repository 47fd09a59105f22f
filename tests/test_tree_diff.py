"""
Unit tests for the bookmark tree diff.
"""

import copy

from tabsync.bookmarks.models import BookmarkMetadata, Branch, Node, NodeType
from tabsync.bookmarks.tree_diff import diff_snapshots, flatten_snapshot


class TestFlattenSnapshot:
    """Tests for flatten_snapshot."""

    def test_paths_are_rooted_at_branch_title(self, sample_snapshot):
        entries = flatten_snapshot(sample_snapshot)

        assert [(e.type, e.path, e.title) for e in entries] == [
            (NodeType.FOLDER, "Bookmarks bar/Dev", "Dev"),
            (NodeType.BOOKMARK, "Bookmarks bar/Dev", "Site"),
            (NodeType.BOOKMARK, "Bookmarks bar/Dev", "Docs"),
            (NodeType.BOOKMARK, "Bookmarks bar", "News"),
            (NodeType.BOOKMARK, "Other bookmarks", "Recipes"),
        ]

    def test_metadata_signature_ignores_key_order(self):
        """Test that equal metadata serializes the same way."""
        a = Node.bookmark("A", "https://a", metadata=BookmarkMetadata(tags=["x"], color="red"))
        b = Node.bookmark("A", "https://a", metadata=BookmarkMetadata(color="red", tags=["x"]))

        first = flatten_snapshot([Branch("1", "Bar", [a])])[0]
        second = flatten_snapshot([Branch("1", "Bar", [b])])[0]

        assert first.signature == second.signature

    def test_none_is_empty(self):
        assert flatten_snapshot(None) == []


class TestDiffSnapshots:
    """Tests for diff_snapshots."""

    def test_identical_snapshots_have_no_changes(self, sample_snapshot):
        diff = diff_snapshots(sample_snapshot, copy.deepcopy(sample_snapshot))

        assert (diff.added, diff.removed, diff.changed) == (0, 0, 0)
        assert not diff.has_changes

    def test_missing_remote_is_empty_diff(self, sample_snapshot):
        """Test that a local tree against no remote tree reports nothing."""
        assert not diff_snapshots(sample_snapshot, None).has_changes
        assert not diff_snapshots(sample_snapshot, []).has_changes

    def test_duplicate_remote_bookmark_counts_as_added(self):
        local = [Branch("1", "Bar", [Node.folder("Dev", [Node.bookmark("Site", "https://x.com")])])]
        remote = [Branch("1", "Bar", [Node.folder("Dev", [
            Node.bookmark("Site", "https://x.com"),
            Node.bookmark("Site", "https://x.com"),
        ])])]

        diff = diff_snapshots(local, remote)

        assert (diff.added, diff.removed, diff.changed) == (1, 0, 0)
        assert diff.added_items[0].path == "Bar/Dev"

    def test_duplicate_local_bookmark_counts_as_removed(self):
        local = [Branch("1", "Bar", [
            Node.bookmark("Site", "https://x.com"),
            Node.bookmark("Site", "https://x.com"),
        ])]
        remote = [Branch("1", "Bar", [Node.bookmark("Site", "https://x.com")])]

        diff = diff_snapshots(local, remote)

        assert (diff.added, diff.removed, diff.changed) == (0, 1, 0)

    def test_metadata_only_difference_is_changed(self, sample_snapshot, sample_metadata):
        remote = copy.deepcopy(sample_snapshot)
        docs = remote[0].items[0].children[1]
        docs.metadata = BookmarkMetadata(tags=["python"], created_at=sample_metadata.created_at)

        diff = diff_snapshots(sample_snapshot, remote)

        assert (diff.added, diff.removed, diff.changed) == (0, 0, 1)
        assert diff.changed_items[0].local.title == "Docs"

    def test_title_change_is_changed(self, sample_snapshot):
        remote = copy.deepcopy(sample_snapshot)
        remote[1].items[0].title = "Dinner ideas"

        diff = diff_snapshots(sample_snapshot, remote)

        assert diff.changed == 1
        assert diff.changed_items[0].remote.title == "Dinner ideas"

    def test_moved_bookmark_is_added_and_removed(self, sample_snapshot):
        """Test that a bookmark in another folder does not match."""
        remote = copy.deepcopy(sample_snapshot)
        news = remote[0].items.pop()
        remote[1].items.append(news)

        diff = diff_snapshots(sample_snapshot, remote)

        assert (diff.added, diff.removed, diff.changed) == (1, 1, 0)
        assert diff.added_items[0].path == "Other bookmarks"
        assert diff.removed_items[0].path == "Bookmarks bar"

    def test_folders_alone_are_not_counted(self):
        local = [Branch("1", "Bar", [Node.bookmark("A", "https://a")])]
        remote = [Branch("1", "Bar", [Node.bookmark("A", "https://a"), Node.folder("Empty")])]

        assert not diff_snapshots(local, remote).has_changes

    def test_empty_local_reports_everything_added(self, sample_snapshot):
        diff = diff_snapshots(None, sample_snapshot)

        assert diff.added == 4
        assert diff.removed == 0
