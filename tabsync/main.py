#!/usr/bin/env python3
"""
Tabsync - Main Entry Point

Synchronizes dashboard bookmarks, quick links, categories, recent visits and
the browser's own bookmark tree with a WebDAV server or a GitHub gist.

Usage:
    python -m tabsync.main upload                 # Push local state
    python -m tabsync.main download               # Fetch and show differences
    python -m tabsync.main resolve --merge remotePrimary --browser append
    python -m tabsync.main status                 # Show local state

Environment Variables Required:
    TABSYNC_TRANSPORT       - webdav (default) or gist
    WEBDAV_URL, WEBDAV_USERNAME, WEBDAV_PASSWORD   (webdav)
    GIST_TOKEN                                     (gist)

See config/settings.py for all configuration options.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from config.settings import ConfigurationError, Settings, load_settings
from tabsync.bookmarks.capture import CaptureError, capture_snapshot, summarize_snapshot
from tabsync.bookmarks.chrome import ChromeBookmarkFile
from tabsync.bookmarks.reconciler import ApplyError, ApplyStrategy
from tabsync.bookmarks.store import BookmarkStore, BookmarkStoreError
from tabsync.storage.database import StateStoreError
from tabsync.storage.local_store import LocalStore
from tabsync.storage.metadata_store import MetadataStore
from tabsync.storage.models import Collections, EntityKind
from tabsync.sync.engine import LAST_SYNC_KEY, NoPendingDownloadError, PendingDownload, SyncEngine
from tabsync.sync.envelope import EnvelopeError, SyncEnvelope
from tabsync.sync.merge import MergeStrategy
from tabsync.transport.base import Transport, TransportError
from tabsync.transport.gist import GistTransport
from tabsync.transport.webdav import WebDAVTransport

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from external libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def apply_log_level(level_name: str) -> None:
    """Set the root log level from configuration, keeping INFO for unknown names."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        logger.warning(f"Unknown LOG_LEVEL '{level_name}', using INFO")
        level = logging.INFO
    logging.getLogger().setLevel(level)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="tabsync",
        description="Sync dashboard data and browser bookmarks with WebDAV or a GitHub gist",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    tabsync upload                                   # Push local state
    tabsync download                                 # Show remote differences
    tabsync resolve --merge remotePrimary            # Keep remote, add local-only
    tabsync resolve --merge replace --browser replace
    tabsync --env .env.local status
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    parser.add_argument(
        "--env",
        type=Path,
        help="Path to .env file (default: .env in current directory)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show local sync state")
    subparsers.add_parser("test-connection", help="Check backend credentials")
    subparsers.add_parser("snapshot", help="Summarize the browser bookmark tree")
    subparsers.add_parser("discard", help="Drop the pending download")

    upload = subparsers.add_parser("upload", help="Upload local state")
    upload.add_argument(
        "--no-browser",
        action="store_true",
        help="Do not include the browser bookmark tree",
    )

    subparsers.add_parser("download", help="Download remote state and show differences")

    resolve = subparsers.add_parser("resolve", help="Apply the pending download")
    resolve.add_argument(
        "--merge",
        required=True,
        choices=[strategy.value for strategy in MergeStrategy],
        help="How to combine remote and local collections",
    )
    resolve.add_argument(
        "--browser",
        default=ApplyStrategy.SKIP.value,
        choices=[strategy.value for strategy in ApplyStrategy],
        help="How to write the remote browser bookmarks (default: skip)",
    )

    export = subparsers.add_parser("export", help="Write local state to a JSON file")
    export.add_argument("file", type=Path)

    import_ = subparsers.add_parser("import", help="Replace local state from a JSON file")
    import_.add_argument("file", type=Path)

    return parser.parse_args(argv)


def build_transport(settings: Settings) -> Transport:
    """Create the configured transport."""
    if settings.sync.transport == "gist":
        return GistTransport(
            settings.gist,
            timeout=settings.sync.timeout_seconds,
            max_retries=settings.sync.max_retries,
        )
    return WebDAVTransport(
        settings.webdav,
        timeout=settings.sync.timeout_seconds,
        max_retries=settings.sync.max_retries,
    )


def build_bookmark_store(settings: Settings) -> Optional[BookmarkStore]:
    if settings.storage.bookmarks_file is None:
        return None
    return ChromeBookmarkFile(settings.storage.bookmarks_file)


def show_status(
    local_store: LocalStore,
    metadata_store: MetadataStore,
    bookmark_store: Optional[BookmarkStore],
) -> None:
    """Display current local state."""
    settings = local_store.get_settings()

    logger.info("=" * 50)
    logger.info("Sync Status")
    logger.info("=" * 50)
    for kind in EntityKind:
        logger.info(f"{kind.value + ':':<24}{local_store.count(kind)}")
    logger.info(f"{'bookmark metadata:':<24}{metadata_store.count()}")
    logger.info(f"{'last sync (ms):':<24}{settings.get(LAST_SYNC_KEY, 'never')}")
    logger.info(f"{'pending download:':<24}{'yes' if local_store.load_pending() else 'no'}")

    if bookmark_store is not None:
        snapshot = capture_snapshot(bookmark_store, metadata_store)
        if snapshot is None:
            logger.info("Browser bookmarks:      unavailable")
        else:
            logger.info(f"Browser bookmarks:      {summarize_snapshot(snapshot)}")
    logger.info("=" * 50)


def show_pending(pending: PendingDownload) -> None:
    """Display the differences of a pending download."""
    logger.info("=" * 50)
    logger.info("Remote vs local")
    logger.info("=" * 50)
    for kind, diff in pending.collection_diffs.items():
        logger.info(
            f"{kind.value + ':':<22}{len(diff.remote_only)} remote only, "
            f"{len(diff.local_only)} local only, {len(diff.changed)} changed"
        )
        for changed in diff.changed:
            logger.debug(f"  changed {changed.id}: {changed.local} -> {changed.remote}")

    if pending.tree_diff is not None:
        logger.info(f"Local browser tree:   {pending.local_stats}")
        logger.info(f"Remote browser tree:  {pending.remote_stats}")
        logger.info(
            f"Browser bookmarks:    {pending.tree_diff.added} added, "
            f"{pending.tree_diff.removed} removed, {pending.tree_diff.changed} changed"
        )
        for entry in pending.tree_diff.added_items:
            logger.debug(f"  + {entry.path}/{entry.title} <{entry.url}>")
        for entry in pending.tree_diff.removed_items:
            logger.debug(f"  - {entry.path}/{entry.title} <{entry.url}>")
    else:
        logger.info("Remote carries no browser bookmarks")

    logger.info("=" * 50)
    logger.info("Run 'tabsync resolve --merge <replace|remotePrimary|localPrimary>' to apply")


def export_local(engine: SyncEngine, path: Path) -> None:
    envelope = engine.create_envelope()
    path.write_text(envelope.to_json(), encoding="utf-8")
    logger.info(f"Exported local state to {path}")


def import_local(local_store: LocalStore, path: Path) -> None:
    envelope = SyncEnvelope.from_json(path.read_text(encoding="utf-8"))
    collections = Collections(**{
        kind.attribute: envelope.get(kind) or [] for kind in EntityKind
    })
    local_store.replace_collections(collections)
    local_store.update_settings(envelope.settings)
    logger.info(f"Imported local state from {path}")


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        settings = load_settings(env_file=args.env)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Please check your .env file or environment variables")
        return 1

    if not args.verbose:
        apply_log_level(settings.log_level)

    transport = None

    try:
        local_store = LocalStore(settings.storage.database_path)
        metadata_store = MetadataStore(settings.storage.database_path)
        bookmark_store = build_bookmark_store(settings)

        if args.command == "status":
            show_status(local_store, metadata_store, bookmark_store)
            return 0

        if args.command == "snapshot":
            snapshot = capture_snapshot(bookmark_store, metadata_store)
            if snapshot is None:
                logger.warning("Browser bookmarks unavailable (set TABSYNC_BOOKMARKS_FILE)")
                return 1
            for branch in snapshot:
                logger.info(f"{branch.root_title}: {summarize_snapshot([branch])}")
            logger.info(f"Total: {summarize_snapshot(snapshot)}")
            return 0

        if args.command == "import":
            import_local(local_store, args.file)
            return 0

        transport = build_transport(settings)
        engine = SyncEngine(
            transport=transport,
            local_store=local_store,
            metadata_store=metadata_store,
            bookmark_store=bookmark_store,
            include_browser_bookmarks=settings.sync.include_browser_bookmarks,
        )

        if args.command == "test-connection":
            result = engine.test_connection()
            if result.success:
                logger.info(f"Connection OK: {result.message}")
                return 0
            logger.error(f"Connection failed: {result.message}")
            return 1

        if args.command == "upload":
            result = engine.upload(include_browser_bookmarks=False if args.no_browser else None)
            if result.remote_id and settings.gist and result.remote_id != settings.gist.gist_id:
                logger.info(f"Set GIST_ID={result.remote_id} to keep using this gist")
            logger.info("Upload successful")
            return 0

        if args.command == "download":
            show_pending(engine.download())
            return 0

        if args.command == "resolve":
            report = engine.resolve(
                MergeStrategy(args.merge),
                ApplyStrategy(args.browser),
            )
            logger.info(str(report))
            return 0

        if args.command == "discard":
            if not engine.discard_pending():
                logger.info("No pending download")
            return 0

        if args.command == "export":
            export_local(engine, args.file)
            return 0

        logger.error(f"Unknown command: {args.command}")
        return 1

    except TransportError as e:
        suffix = " (you can retry)" if e.recoverable else ""
        logger.error(f"Transport error: {e}{suffix}")
        return 1
    except CaptureError as e:
        logger.error(f"Could not read browser bookmarks: {e}")
        return 1
    except EnvelopeError as e:
        logger.error(f"Remote data is not usable: {e}")
        return 1
    except NoPendingDownloadError as e:
        logger.error(f"{e}; run 'tabsync download' first")
        return 1
    except ApplyError as e:
        logger.error(f"Apply failed, browser bookmarks may be partially updated: {e}")
        logger.error(str(e.report))
        return 1
    except BookmarkStoreError as e:
        logger.error(f"Browser bookmark store error: {e}")
        return 1
    except StateStoreError as e:
        logger.error(f"Local state error: {e}")
        return 1
    except OSError as e:
        logger.error(f"File error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    finally:
        if transport:
            transport.close()


if __name__ == "__main__":
    sys.exit(main())
