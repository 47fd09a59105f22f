"""Persistent local state storage module."""

from .database import StateStoreError
from .local_store import LocalStore
from .metadata_store import MetadataStore
from .models import Bookmark, Category, Collections, CustomVisit, EntityKind, QuickLink

__all__ = [
    "LocalStore",
    "MetadataStore",
    "StateStoreError",
    "Bookmark",
    "Category",
    "Collections",
    "CustomVisit",
    "EntityKind",
    "QuickLink",
]
