"""
Interface to the browser's native bookmark store.

The sync engine only relies on the primitives declared here: reading the
whole tree, listing a folder's children, creating a folder or bookmark,
and removing a bookmark or a whole folder subtree.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class BookmarkStoreError(Exception):
    """Raised when a bookmark store call fails."""
    pass


class BookmarkStoreUnavailable(BookmarkStoreError):
    """Raised when the bookmark store cannot be used at all."""
    pass


@dataclass
class StoreNode:
    """
    A node as reported by the native bookmark store.

    `children` is None for bookmarks and a (possibly empty) list for
    folders. Nodes with neither a URL nor a children list are separators
    or other entries the engine ignores.
    """
    id: str
    title: str = ""
    url: Optional[str] = None
    children: Optional[list["StoreNode"]] = None
    parent_id: Optional[str] = None
    date_added: Optional[int] = None
    date_modified: Optional[int] = None


class BookmarkStore(ABC):
    """Abstract base class for native bookmark stores."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the store can be read and written."""
        pass

    @abstractmethod
    def get_tree(self) -> StoreNode:
        """Return the invisible root node with all top-level containers as children."""
        pass

    @abstractmethod
    def get_children(self, parent_id: str) -> list[StoreNode]:
        """Return the direct children of a folder."""
        pass

    @abstractmethod
    def create(self, title: str, parent_id: str, url: Optional[str] = None) -> StoreNode:
        """Create a bookmark (with url) or a folder (without) as the last child of parent_id."""
        pass

    @abstractmethod
    def remove(self, node_id: str) -> None:
        """Remove a bookmark or an empty folder."""
        pass

    @abstractmethod
    def remove_tree(self, node_id: str) -> None:
        """Remove a folder and everything below it."""
        pass
