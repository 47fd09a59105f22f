"""Envelope, diff and merge logic for flat collection sync."""

from .diff import CollectionDiff, diff_collection, diff_collections
from .envelope import CURRENT_VERSION, EnvelopeError, SyncEnvelope, build_envelope
from .merge import MergeStrategy, merge_collection, merge_collections

__all__ = [
    "CollectionDiff",
    "diff_collection",
    "diff_collections",
    "CURRENT_VERSION",
    "EnvelopeError",
    "SyncEnvelope",
    "build_envelope",
    "MergeStrategy",
    "merge_collection",
    "merge_collections",
]
