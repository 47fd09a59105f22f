"""
Diff detection for the flat synced collections.

Compares a local collection against the remote one carried by a downloaded
envelope. Entities are matched by `id` and compared by full value.
"""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from ..storage.models import Collections, Entity, EntityKind, entity_signature

T = TypeVar("T", bound=Entity)


@dataclass
class ChangedEntity(Generic[T]):
    """An entity present on both sides with different values."""
    id: str
    local: T
    remote: T


@dataclass
class CollectionDiff(Generic[T]):
    """
    Result of comparing one local collection against its remote copy.

    Attributes:
        local_only: Entities whose id is absent remotely
        remote_only: Entities whose id is absent locally
        changed: Entities present on both sides whose values differ
    """
    local_only: list[T] = field(default_factory=list)
    remote_only: list[T] = field(default_factory=list)
    changed: list[ChangedEntity[T]] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.local_only or self.remote_only or self.changed)

    def __repr__(self) -> str:
        return (
            f"CollectionDiff(local_only={len(self.local_only)}, "
            f"remote_only={len(self.remote_only)}, changed={len(self.changed)})"
        )


def diff_collection(local: list[T], remote: Optional[list[T]]) -> CollectionDiff[T]:
    """
    Compute the diff between a local collection and a remote one.

    A missing remote collection is treated as empty, so everything local
    is reported as local-only and nothing is flagged as changed.

    Args:
        local: Local entities
        remote: Remote entities, or None when the envelope had none

    Returns:
        CollectionDiff for this collection
    """
    remote = remote or []
    local_by_id = {entity.id: entity for entity in local}
    remote_by_id = {entity.id: entity for entity in remote}

    result: CollectionDiff[T] = CollectionDiff()
    result.local_only = [entity for entity in local if entity.id not in remote_by_id]
    result.remote_only = [entity for entity in remote if entity.id not in local_by_id]

    for entity in local:
        other = remote_by_id.get(entity.id)
        if other is not None and entity_signature(entity) != entity_signature(other):
            result.changed.append(ChangedEntity(id=entity.id, local=entity, remote=other))

    return result


def diff_collections(
    local: Collections,
    remote: dict[EntityKind, Optional[list]],
) -> dict[EntityKind, CollectionDiff]:
    """Diff each of the four collections independently."""
    return {kind: diff_collection(local.get(kind), remote.get(kind)) for kind in EntityKind}
