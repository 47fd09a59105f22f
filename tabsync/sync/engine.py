"""
Sync engine.

Orchestrates the exchange between the local dashboard state, the browser's
bookmark tree and a remote backend.

Nothing downloaded is applied automatically: `download` computes diffs and
keeps the envelope as a pending download, and `resolve` applies it once the
user has picked a merge strategy (and optionally a browser apply strategy).
Read failures (capture, transport, envelope) never touch local state.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from ..bookmarks.capture import SnapshotStats, capture_snapshot, summarize_snapshot
from ..bookmarks.reconciler import ApplyReport, ApplyStrategy, BrowserTreeReconciler
from ..bookmarks.store import BookmarkStore
from ..bookmarks.tree_diff import TreeDiff, diff_snapshots
from ..storage.local_store import LocalStore
from ..storage.metadata_store import MetadataStore
from ..storage.models import EntityKind
from ..transport.base import Transport, TransportError, TransportResult
from .diff import CollectionDiff, diff_collections
from .envelope import SyncEnvelope, build_envelope
from .merge import MergeStrategy, merge_collections, merge_settings

logger = logging.getLogger(__name__)

LAST_SYNC_KEY = "lastSyncTime"


class NoPendingDownloadError(Exception):
    """Raised when resolving without a downloaded envelope to resolve."""
    pass


@dataclass
class PendingDownload:
    """
    A downloaded envelope and its diffs, awaiting the user's decision.

    Attributes:
        envelope: The validated remote envelope
        collection_diffs: One diff per flat collection kind
        tree_diff: Browser tree diff, when the envelope carries a snapshot
        local_stats: Summary of the freshly captured local browser tree
        remote_stats: Summary of the envelope's browser snapshot
    """
    envelope: SyncEnvelope
    collection_diffs: dict[EntityKind, CollectionDiff]
    tree_diff: Optional[TreeDiff] = None
    local_stats: Optional[SnapshotStats] = None
    remote_stats: Optional[SnapshotStats] = None

    @property
    def has_browser_bookmarks(self) -> bool:
        return self.envelope.browser_bookmarks is not None


@dataclass
class ResolveReport:
    """Result of applying a pending download."""
    merge_strategy: MergeStrategy
    apply_strategy: ApplyStrategy
    counts: dict[EntityKind, int] = field(default_factory=dict)
    apply_report: Optional[ApplyReport] = None

    def __str__(self) -> str:
        counts = ", ".join(f"{count} {kind.value}" for kind, count in self.counts.items())
        text = f"Merged with '{self.merge_strategy.value}': {counts}"
        if self.apply_report is not None:
            text += f"; {self.apply_report}"
        return text


class SyncEngine:
    """
    Orchestrates upload, download and resolution of sync envelopes.

    Usage:
        engine = SyncEngine(
            transport=transport,
            local_store=local_store,
            metadata_store=metadata_store,
            bookmark_store=ChromeBookmarkFile(path),
        )

        pending = engine.download()
        report = engine.resolve(MergeStrategy.REMOTE_PRIMARY, ApplyStrategy.SKIP)
    """

    def __init__(
        self,
        transport: Transport,
        local_store: LocalStore,
        metadata_store: MetadataStore,
        bookmark_store: Optional[BookmarkStore] = None,
        include_browser_bookmarks: bool = True,
    ):
        """
        Initialize sync engine.

        Args:
            transport: Remote backend
            local_store: Durable local collections and settings
            metadata_store: Local bookmark metadata keyed by native id
            bookmark_store: Native browser bookmark store, if any
            include_browser_bookmarks: Whether uploads carry a browser snapshot
        """
        self.transport = transport
        self.local_store = local_store
        self.metadata_store = metadata_store
        self.bookmark_store = bookmark_store
        self.include_browser_bookmarks = include_browser_bookmarks
        self.reconciler = BrowserTreeReconciler(bookmark_store, metadata_store)

    def test_connection(self) -> TransportResult:
        """Check that the backend is reachable with the configured credentials."""
        return self.transport.test_connection()

    def create_envelope(self, include_browser_bookmarks: Optional[bool] = None) -> SyncEnvelope:
        """
        Build an envelope from current local state.

        Raises:
            CaptureError: If the browser tree cannot be read
        """
        include = self.include_browser_bookmarks if include_browser_bookmarks is None else include_browser_bookmarks
        snapshot = capture_snapshot(self.bookmark_store, self.metadata_store) if include else None

        return build_envelope(
            settings=self.local_store.get_settings(),
            collections=self.local_store.get_collections(),
            browser_bookmarks=snapshot,
        )

    def upload(self, include_browser_bookmarks: Optional[bool] = None) -> TransportResult:
        """
        Upload local state to the backend.

        Returns:
            The successful transport result

        Raises:
            CaptureError: If the browser tree cannot be read
            TransportError: If the upload fails
        """
        envelope = self.create_envelope(include_browser_bookmarks)

        logger.info(f"Uploading via {self.transport.name}...")
        result = self.transport.upload(envelope)
        if not result.success:
            logger.error(f"Upload failed: {result.message}")
            raise TransportError(result.message, recoverable=result.recoverable)

        self._record_sync_time()
        logger.info(f"Upload complete: {result.message}")
        return result

    def download(self) -> PendingDownload:
        """
        Download the remote envelope and compute diffs against local state.

        The envelope is stored as the pending download; nothing else is
        modified.

        Returns:
            PendingDownload with all diffs

        Raises:
            TransportError: If the download fails
            EnvelopeError: If the document is not a valid envelope
            CaptureError: If the local browser tree cannot be read
        """
        logger.info(f"Downloading via {self.transport.name}...")
        result = self.transport.download()
        if not result.success:
            logger.error(f"Download failed: {result.message}")
            raise TransportError(result.message, recoverable=result.recoverable)

        envelope = SyncEnvelope.from_dict(result.envelope)
        pending = self._compute_pending(envelope)

        self.local_store.save_pending(envelope.to_dict())
        logger.info("Download complete, awaiting merge decision")
        return pending

    def load_pending(self) -> Optional[PendingDownload]:
        """Recompute diffs for the stored pending download, if any."""
        data = self.local_store.load_pending()
        if data is None:
            return None
        return self._compute_pending(SyncEnvelope.from_dict(data))

    def resolve(
        self,
        merge_strategy: MergeStrategy,
        apply_strategy: ApplyStrategy = ApplyStrategy.SKIP,
    ) -> ResolveReport:
        """
        Apply the pending download with the user's chosen strategies.

        The flat collections and settings are always merged and saved first.
        The browser tree is only touched when apply_strategy is not skip and
        the envelope carries a browser snapshot.

        Args:
            merge_strategy: Strategy for all four flat collections
            apply_strategy: Strategy for the browser bookmark tree

        Returns:
            ResolveReport describing what was applied

        Raises:
            NoPendingDownloadError: If there is nothing to resolve
            BookmarkStoreUnavailable: If the browser store is needed but missing
            ApplyError: If writing the browser tree failed part way
        """
        data = self.local_store.load_pending()
        if data is None:
            raise NoPendingDownloadError("No pending download to resolve")
        envelope = SyncEnvelope.from_dict(data)

        logger.info(
            f"Resolving download: merge='{merge_strategy.value}', "
            f"browser='{apply_strategy.value}'"
        )

        local = self.local_store.get_collections()
        merged = merge_collections(local, envelope.collections, merge_strategy)
        self.local_store.replace_collections(merged)

        settings = merge_settings(self.local_store.get_settings(), envelope.settings, merge_strategy)
        self.local_store.update_settings(settings)

        report = ResolveReport(
            merge_strategy=merge_strategy,
            apply_strategy=apply_strategy,
            counts=merged.counts(),
        )

        # The flat merge is already saved; an apply failure still ends the pending download
        self.local_store.clear_pending()
        self._record_sync_time()

        if apply_strategy != ApplyStrategy.SKIP and envelope.browser_bookmarks:
            report.apply_report = self.reconciler.apply(envelope.browser_bookmarks, apply_strategy)

        logger.info(str(report))
        return report

    def discard_pending(self) -> bool:
        """Drop the pending download without applying it."""
        discarded = self.local_store.clear_pending()
        if discarded:
            logger.info("Pending download discarded")
        return discarded

    def _compute_pending(self, envelope: SyncEnvelope) -> PendingDownload:
        local = self.local_store.get_collections()
        pending = PendingDownload(
            envelope=envelope,
            collection_diffs=diff_collections(local, envelope.collections),
        )

        for kind, diff in pending.collection_diffs.items():
            logger.info(f"{kind.value}: {diff!r}")

        if envelope.browser_bookmarks is not None:
            local_snapshot = capture_snapshot(self.bookmark_store, self.metadata_store)
            pending.tree_diff = diff_snapshots(local_snapshot, envelope.browser_bookmarks)
            pending.local_stats = summarize_snapshot(local_snapshot)
            pending.remote_stats = summarize_snapshot(envelope.browser_bookmarks)
            logger.info(f"Browser bookmarks: {pending.tree_diff!r}")

        return pending

    def _record_sync_time(self) -> None:
        self.local_store.update_settings({LAST_SYNC_KEY: int(time.time() * 1000)})
