"""
In-memory records reconstructed from a WordPress export.

These dataclasses are filled by :mod:`orchard_migrator.extractors` and
adjusted by the link normalizer; after that every stage treats them as
read-only.  :class:`WordpressExport` is the explicit context object for a
single pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional


class ItemType(str, Enum):
    POST = "post"
    PAGE = "page"
    ATTACHMENT = "attachment"
    NAV = "nav"
    OTHER = "other"

    @classmethod
    def from_raw(cls, value: Optional[str]) -> "ItemType":
        raw = (value or "").strip().lower()
        if raw == "nav_menu_item":
            return cls.NAV
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


class TermKind(str, Enum):
    CATEGORY = "category"
    TAG = "tag"


@dataclass
class SourceItem:
    id: int = 0
    type: ItemType = ItemType.OTHER
    raw_type: str = ""
    title: str = ""
    content: str = ""
    excerpt: str = ""
    status: str = ""
    published: Optional[datetime] = None
    creator: str = ""
    author_name: str = ""
    link: str = ""
    old_link: Optional[str] = None
    attachment_url: str = ""
    parent_id: int = 0
    thumbnail_id: Optional[int] = None
    slug: str = ""
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    @property
    def is_published(self) -> bool:
        return self.status == "publish"

    def add_category(self, nice_name: Optional[str]) -> None:
        if nice_name and nice_name not in self.categories:
            self.categories.append(nice_name)

    def add_tag(self, slug: Optional[str]) -> None:
        if slug and slug not in self.tags:
            self.tags.append(slug)


@dataclass
class TaxonomyTerm:
    kind: TermKind
    id: int = 0
    name: str = ""
    slug: str = ""
    parent: str = ""
    description: str = ""


@dataclass
class Author:
    id: int = 0
    login: str = ""
    display_name: str = ""
    email: str = ""


@dataclass(frozen=True)
class AssetReference:
    """A downloadable media file owned by an attachment item."""

    owner_id: int
    relative_path: str
    url: str


@dataclass
class WordpressExport:
    """Everything parsed from one export document."""

    title: str = ""
    description: str = ""
    items: List[SourceItem] = field(default_factory=list)
    categories: List[TaxonomyTerm] = field(default_factory=list)
    tags: List[TaxonomyTerm] = field(default_factory=list)
    authors: Dict[str, Author] = field(default_factory=dict)

    def items_of(self, *types: ItemType) -> Iterator[SourceItem]:
        return (item for item in self.items if item.type in types)

    def find_item(self, item_id: int) -> Optional[SourceItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def count(self, item_type: ItemType) -> int:
        return sum(1 for _ in self.items_of(item_type))
