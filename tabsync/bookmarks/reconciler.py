"""
Browser tree reconciler.

Writes a snapshot back into the native bookmark store under an explicit
strategy:

- skip: do nothing
- append: recreate the snapshot inside a new, timestamped backup folder
- replace: empty every top-level container, then recreate each branch in
  its matching container; local metadata is reset first because the old
  native ids no longer mean anything

Store calls are issued one at a time and a folder is always created before
its children. There is no rollback: if a call fails, the rest of that
branch is skipped and the failure is reported with what was done so far.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..storage.metadata_store import MetadataStore
from .models import FALLBACK_BOOKMARK_NAME, FALLBACK_FOLDER_NAME, Branch, Node, NodeType, Snapshot
from .store import BookmarkStore, BookmarkStoreUnavailable, StoreNode

logger = logging.getLogger(__name__)

BACKUP_FOLDER_PREFIX = "Tabsync backup"
BOOKMARK_BAR_ID = "1"


class ApplyStrategy(Enum):
    """How a downloaded snapshot is written into the browser."""
    SKIP = "skip"
    APPEND = "append"
    REPLACE = "replace"


@dataclass
class ApplyReport:
    """What an apply run did."""
    strategy: ApplyStrategy
    folders_created: int = 0
    bookmarks_created: int = 0
    nodes_deleted: int = 0
    metadata_written: int = 0
    failed_branches: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def __str__(self) -> str:
        return (
            f"Apply ({self.strategy.value}): {self.folders_created} folders and "
            f"{self.bookmarks_created} bookmarks created, {self.nodes_deleted} deleted, "
            f"{self.metadata_written} metadata records written, "
            f"{len(self.failed_branches)} branches failed"
        )


class ApplyError(Exception):
    """
    Raised when applying a snapshot failed part way.

    The store may be partially modified; `report` describes how far it got.
    """

    def __init__(self, message: str, report: ApplyReport):
        super().__init__(message)
        self.report = report


class BrowserTreeReconciler:
    """
    Applies snapshots to a native bookmark store.

    Usage:
        reconciler = BrowserTreeReconciler(store, metadata_store)
        report = reconciler.apply(snapshot, ApplyStrategy.APPEND)
    """

    def __init__(self, store: Optional[BookmarkStore], metadata_store: MetadataStore):
        self.store = store
        self.metadata_store = metadata_store

    def apply(self, snapshot: Snapshot, strategy: ApplyStrategy) -> ApplyReport:
        """
        Apply a snapshot using the given strategy.

        Args:
            snapshot: Snapshot to write
            strategy: skip, append or replace

        Returns:
            ApplyReport of the operations performed

        Raises:
            BookmarkStoreUnavailable: If the store is needed but unavailable
            ApplyError: If any store call failed
        """
        report = ApplyReport(strategy=strategy)

        if strategy == ApplyStrategy.SKIP or not snapshot:
            logger.info(f"Nothing to apply (strategy={strategy.value})")
            return report

        if self.store is None or not self.store.is_available():
            raise BookmarkStoreUnavailable("Browser bookmark store not available")

        logger.info(f"Applying browser snapshot with strategy '{strategy.value}'")

        if strategy == ApplyStrategy.APPEND:
            self._append(snapshot, report)
        else:
            self._replace(snapshot, report)

        logger.info(str(report))

        if report.errors:
            raise ApplyError(
                f"Apply failed: {'; '.join(report.errors)}",
                report,
            )
        return report

    def _append(self, snapshot: Snapshot, report: ApplyReport) -> None:
        try:
            root_children = self.store.get_tree().children or []
            bookmark_bar = next(
                (child for child in root_children if child.id == BOOKMARK_BAR_ID),
                root_children[0] if root_children else None,
            )
            if bookmark_bar is None:
                raise BookmarkStoreUnavailable("Bookmark store has no top-level folder")

            container_name = self._backup_folder_name(bookmark_bar)
            container = self._create(container_name, bookmark_bar.id, report)
        except Exception as e:
            logger.error(f"Failed to create backup folder: {e}")
            report.errors.append(f"backup folder: {e}")
            return

        logger.info(f"Appending snapshot into '{container_name}'")

        for branch in snapshot:
            try:
                branch_folder = self._create(branch.root_title or FALLBACK_FOLDER_NAME, container.id, report)
                self._recreate_nodes(branch.items, branch_folder.id, report)
            except Exception as e:
                self._branch_failed(branch, e, report)

    def _replace(self, snapshot: Snapshot, report: ApplyReport) -> None:
        self.metadata_store.reset()

        try:
            root_children = self.store.get_tree().children or []
            for root_child in root_children:
                self._clear_folder_contents(root_child.id, report)
        except Exception as e:
            logger.error(f"Failed to clear existing bookmarks: {e}")
            report.errors.append(f"clear: {e}")
            return

        for branch in snapshot:
            target = self._match_root(branch, root_children)
            if target is None:
                logger.warning(f"No top-level folder to restore branch '{branch.root_title}' into")
                continue

            logger.debug(f"Restoring branch '{branch.root_title}' into root {target.id}")
            try:
                self._recreate_nodes(branch.items, target.id, report)
            except Exception as e:
                self._branch_failed(branch, e, report)

    @staticmethod
    def _match_root(branch: Branch, root_children: list[StoreNode]) -> Optional[StoreNode]:
        """Match by native id, then by title, then fall back to the first root."""
        for child in root_children:
            if child.id == branch.root_id:
                return child
        for child in root_children:
            if child.title == branch.root_title:
                return child
        return root_children[0] if root_children else None

    def _clear_folder_contents(self, folder_id: str, report: ApplyReport) -> None:
        for child in self.store.get_children(folder_id):
            if child.url:
                self.store.remove(child.id)
            else:
                self.store.remove_tree(child.id)
            report.nodes_deleted += 1

    def _recreate_nodes(self, nodes: list[Node], parent_id: str, report: ApplyReport) -> None:
        """Recreate nodes under parent_id, each folder before its children."""
        for node in nodes:
            if node.type == NodeType.FOLDER:
                folder = self._create(node.title or FALLBACK_FOLDER_NAME, parent_id, report)
                if node.children:
                    self._recreate_nodes(node.children, folder.id, report)
                continue

            if not node.url:
                continue

            created = self._create(
                node.title or node.url or FALLBACK_BOOKMARK_NAME,
                parent_id,
                report,
                url=node.url,
            )
            if node.metadata:
                self.metadata_store.set(created.id, node.metadata.copy())
                report.metadata_written += 1

    def _create(
        self,
        title: str,
        parent_id: str,
        report: ApplyReport,
        url: Optional[str] = None,
    ) -> StoreNode:
        created = self.store.create(title, parent_id, url=url)
        if url is None:
            report.folders_created += 1
        else:
            report.bookmarks_created += 1
        return created

    def _backup_folder_name(self, parent: StoreNode) -> str:
        base = f"{BACKUP_FOLDER_PREFIX} {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        existing = {child.title for child in self.store.get_children(parent.id)}
        name = base
        suffix = 2
        while name in existing:
            name = f"{base} ({suffix})"
            suffix += 1
        return name

    @staticmethod
    def _branch_failed(branch: Branch, error: Exception, report: ApplyReport) -> None:
        logger.error(f"Failed to restore branch '{branch.root_title}': {error}")
        report.failed_branches.append(branch.root_title)
        report.errors.append(f"{branch.root_title}: {error}")
