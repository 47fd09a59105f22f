"""
Local dashboard entity models.

These are the flat, uniquely-keyed collections kept in the local store and
exchanged in sync envelopes. Every entity has a stable string `id`;
serialized form uses the camelCase keys of the sync document.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


def _require_id(data: dict) -> str:
    value = data.get("id")
    if value is None or value == "":
        raise ValueError("Entity is missing an 'id'")
    return str(value)


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    return default


@dataclass(frozen=True)
class Bookmark:
    """
    A dashboard bookmark tile.

    Attributes:
        id: Unique identifier
        title: Display title
        url: Target URL
        color: Tile color
        category_id: Owning category
        created_at: Creation time, epoch milliseconds
        visit_count: Number of visits through the dashboard
        icon: Optional icon URL
        last_visited_at: Last visit, epoch milliseconds
    """
    id: str
    title: str
    url: str
    color: str = ""
    category_id: str = ""
    created_at: int = 0
    visit_count: int = 0
    icon: Optional[str] = None
    last_visited_at: Optional[int] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "color": self.color,
            "categoryId": self.category_id,
            "createdAt": self.created_at,
            "visitCount": self.visit_count,
        }
        if self.icon is not None:
            data["icon"] = self.icon
        if self.last_visited_at is not None:
            data["lastVisitedAt"] = self.last_visited_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Bookmark":
        return cls(
            id=_require_id(data),
            title=str(data.get("title", "")),
            url=str(data.get("url", "")),
            color=str(data.get("color", "")),
            category_id=str(data.get("categoryId", "")),
            created_at=_int(data.get("createdAt")),
            visit_count=_int(data.get("visitCount")),
            icon=data.get("icon"),
            last_visited_at=data.get("lastVisitedAt"),
        )


@dataclass(frozen=True)
class QuickLink:
    """A quick-access link shown above the search bar."""
    id: str
    title: str
    url: str
    color: str = ""
    order: int = 0
    icon: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "color": self.color,
            "order": self.order,
        }
        if self.icon is not None:
            data["icon"] = self.icon
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "QuickLink":
        return cls(
            id=_require_id(data),
            title=str(data.get("title", "")),
            url=str(data.get("url", "")),
            color=str(data.get("color", "")),
            order=_int(data.get("order")),
            icon=data.get("icon"),
        )


@dataclass(frozen=True)
class Category:
    """A bookmark category."""
    id: str
    name: str
    order: int = 0

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "order": self.order}

    @classmethod
    def from_dict(cls, data: dict) -> "Category":
        return cls(
            id=_require_id(data),
            name=str(data.get("name", "")),
            order=_int(data.get("order")),
        )


@dataclass(frozen=True)
class CustomVisit:
    """A manually recorded recent visit."""
    id: str
    url: str
    title: str
    visit_time: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "visitTime": self.visit_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CustomVisit":
        return cls(
            id=_require_id(data),
            url=str(data.get("url", "")),
            title=str(data.get("title", "")),
            visit_time=_int(data.get("visitTime")),
        )


Entity = Union[Bookmark, QuickLink, Category, CustomVisit]


class EntityKind(Enum):
    """The four synced collections, valued by their envelope field name."""
    BOOKMARKS = "bookmarks"
    QUICK_LINKS = "quickLinks"
    CATEGORIES = "categories"
    CUSTOM_RECENT_VISITS = "customRecentVisits"

    @property
    def entity_class(self) -> type:
        return ENTITY_CLASSES[self]

    @property
    def attribute(self) -> str:
        """Attribute name on Collections."""
        return ATTRIBUTE_NAMES[self]


ENTITY_CLASSES = {
    EntityKind.BOOKMARKS: Bookmark,
    EntityKind.QUICK_LINKS: QuickLink,
    EntityKind.CATEGORIES: Category,
    EntityKind.CUSTOM_RECENT_VISITS: CustomVisit,
}

ATTRIBUTE_NAMES = {
    EntityKind.BOOKMARKS: "bookmarks",
    EntityKind.QUICK_LINKS: "quick_links",
    EntityKind.CATEGORIES: "categories",
    EntityKind.CUSTOM_RECENT_VISITS: "custom_recent_visits",
}


def entity_signature(entity: Entity) -> str:
    """Serialized full value of an entity, used for equality in diffs."""
    return json.dumps(entity.to_dict(), sort_keys=True, ensure_ascii=False)


@dataclass
class Collections:
    """All four synced collections as one value."""
    bookmarks: list[Bookmark] = field(default_factory=list)
    quick_links: list[QuickLink] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    custom_recent_visits: list[CustomVisit] = field(default_factory=list)

    def get(self, kind: EntityKind) -> list:
        return getattr(self, kind.attribute)

    def counts(self) -> dict[EntityKind, int]:
        return {kind: len(self.get(kind)) for kind in EntityKind}
