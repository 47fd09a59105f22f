"""
Sync envelope: the versioned bundle of all syncable state.

The envelope is the JSON document stored by every backend:

    {
        "version": 2,
        "timestamp": 1760000000000,
        "settings": {...},
        "bookmarks": [...],
        "quickLinks": [...],
        "categories": [...],
        "customRecentVisits": [...],
        "browserBookmarks": [...]      # optional
    }

Incoming documents are validated once, in `SyncEnvelope.from_dict`.
Everything past that point works with typed collections.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from ..bookmarks.models import Snapshot, snapshot_from_list, snapshot_to_list
from ..storage.models import Collections, Entity, EntityKind

logger = logging.getLogger(__name__)

CURRENT_VERSION = 2


class EnvelopeError(Exception):
    """Raised when a downloaded document is not a usable sync envelope."""
    pass


@dataclass
class SyncEnvelope:
    """
    A sync envelope.

    Collections are None when the document did not carry a usable list for
    that kind, which is different from an explicit empty list.
    """
    version: int
    timestamp: int
    settings: dict[str, Any] = field(default_factory=dict)
    collections: dict[EntityKind, Optional[list[Entity]]] = field(default_factory=dict)
    browser_bookmarks: Optional[Snapshot] = None

    def get(self, kind: EntityKind) -> Optional[list[Entity]]:
        return self.collections.get(kind)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "version": self.version,
            "timestamp": self.timestamp,
            "settings": self.settings,
        }
        for kind in EntityKind:
            items = self.collections.get(kind)
            if items is not None:
                data[kind.value] = [item.to_dict() for item in items]
        if self.browser_bookmarks is not None:
            data["browserBookmarks"] = snapshot_to_list(self.browser_bookmarks)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "SyncEnvelope":
        """
        Parse an envelope from JSON text.

        Raises:
            EnvelopeError: If the text is not valid JSON or not an envelope
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise EnvelopeError(f"Invalid JSON data: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Any) -> "SyncEnvelope":
        """
        Validate and parse an envelope document.

        The version is checked first. Missing or malformed optional parts
        are tolerated: collections become None, bad items are skipped,
        duplicate ids keep their first occurrence.

        Raises:
            EnvelopeError: If the document is not an object or has no valid version
        """
        if not isinstance(data, dict):
            raise EnvelopeError("Sync data must be a JSON object")

        version = data.get("version")
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise EnvelopeError(f"Sync data has no valid version (got {version!r})")
        if version > CURRENT_VERSION:
            logger.warning(
                f"Sync data version {version} is newer than supported version "
                f"{CURRENT_VERSION}; unknown fields are ignored"
            )

        timestamp = data.get("timestamp")
        settings = data.get("settings")

        return cls(
            version=version,
            timestamp=timestamp if isinstance(timestamp, int) else 0,
            settings=settings if isinstance(settings, dict) else {},
            collections={kind: _parse_collection(kind, data.get(kind.value)) for kind in EntityKind},
            browser_bookmarks=_parse_snapshot(data.get("browserBookmarks")),
        )


def _parse_collection(kind: EntityKind, raw: Any) -> Optional[list[Entity]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        logger.warning(f"Ignoring '{kind.value}': expected a list, got {type(raw).__name__}")
        return None

    items: list[Entity] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.warning(f"Skipping {kind.value}[{index}]: not an object")
            continue
        try:
            entity = kind.entity_class.from_dict(item)
        except ValueError as e:
            logger.warning(f"Skipping {kind.value}[{index}]: {e}")
            continue
        if entity.id in seen:
            logger.warning(f"Skipping {kind.value}[{index}]: duplicate id '{entity.id}'")
            continue
        seen.add(entity.id)
        items.append(entity)
    return items


def _parse_snapshot(raw: Any) -> Optional[Snapshot]:
    if raw is None:
        return None
    try:
        return snapshot_from_list(raw)
    except ValueError as e:
        logger.warning(f"Ignoring malformed browser bookmarks: {e}")
        return None


def build_envelope(
    settings: dict[str, Any],
    collections: Collections,
    browser_bookmarks: Optional[Snapshot] = None,
) -> SyncEnvelope:
    """
    Assemble an outgoing envelope from local state.

    Stamps the current schema version and time.
    """
    return SyncEnvelope(
        version=CURRENT_VERSION,
        timestamp=int(time.time() * 1000),
        settings=dict(settings),
        collections={kind: list(collections.get(kind)) for kind in EntityKind},
        browser_bookmarks=browser_bookmarks,
    )
