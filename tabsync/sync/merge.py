"""
Merge resolution for the flat synced collections.

One strategy is chosen per download and applied to all four collections:

- replace: the remote collection as-is (an empty remote clears local)
- remotePrimary: remote entities, then local entities the remote lacks
- localPrimary: local entities, then remote entities the local lacks

Apart from `replace`, nothing is ever dropped, and the result never holds
two entities with the same id.
"""

import logging
from enum import Enum
from typing import Any, Optional, TypeVar

from ..storage.models import Collections, Entity, EntityKind

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


class MergeStrategy(Enum):
    """How downloaded collections are combined with local ones."""
    REPLACE = "replace"
    REMOTE_PRIMARY = "remotePrimary"
    LOCAL_PRIMARY = "localPrimary"


def _append_missing(primary: list[T], secondary: list[T]) -> list[T]:
    result: list[T] = []
    seen: set[str] = set()
    for entity in list(primary) + list(secondary):
        if entity.id in seen:
            continue
        seen.add(entity.id)
        result.append(entity)
    return result


def merge_collection(
    local: list[T],
    remote: Optional[list[T]],
    strategy: MergeStrategy,
) -> list[T]:
    """
    Merge one collection.

    When the envelope carried no collection of this kind (remote is None)
    the local collection is kept unchanged under every strategy.

    Args:
        local: Local entities
        remote: Remote entities, or None
        strategy: Merge strategy

    Returns:
        New list of entities
    """
    if remote is None:
        return list(local)

    if strategy == MergeStrategy.REPLACE:
        return list(remote)
    if strategy == MergeStrategy.REMOTE_PRIMARY:
        return _append_missing(remote, local)
    if strategy == MergeStrategy.LOCAL_PRIMARY:
        return _append_missing(local, remote)

    raise ValueError(f"Unknown merge strategy: {strategy}")


def merge_collections(
    local: Collections,
    remote: dict[EntityKind, Optional[list]],
    strategy: MergeStrategy,
) -> Collections:
    """Merge all four collections with the same strategy."""
    merged = Collections(**{
        kind.attribute: merge_collection(local.get(kind), remote.get(kind), strategy)
        for kind in EntityKind
    })

    logger.info(
        f"Merged collections with '{strategy.value}': "
        + ", ".join(f"{kind.value}={count}" for kind, count in merged.counts().items())
    )
    return merged


def merge_settings(
    local: dict[str, Any],
    remote: dict[str, Any],
    strategy: MergeStrategy,
) -> dict[str, Any]:
    """
    Merge settings maps.

    Remote-first strategies overlay remote keys on local ones; localPrimary
    only takes remote keys that are missing locally.
    """
    if strategy == MergeStrategy.LOCAL_PRIMARY:
        return {**remote, **local}
    return {**local, **remote}
