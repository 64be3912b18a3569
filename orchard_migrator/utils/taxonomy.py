"""
Category and tag lookups for content builders.

Items reference categories by nice-name and tags by slug.  The resolver
maps those references to the deterministic content item ids used in the
recipe (``wpcat-{id}`` / ``wptag-{id}``) and builds the category forest
from the ``wp:category_parent`` names.

Parent names are arbitrary strings in the export, so the parent graph can
contain orphans and cycles.  Orphans become roots; cycles are cut with a
visited set and their members are promoted to roots so no term is lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from orchard_migrator.models.content_item import ContentItem
from orchard_migrator.models.records import TaxonomyTerm, TermKind, WordpressExport
from orchard_migrator.models.settings import (
    DEFAULT_CATEGORIES_TAXONOMY_ID,
    DEFAULT_TAGS_TAXONOMY_ID,
    RecipeSettings,
)
from orchard_migrator.utils.slugs import slugify

logger = logging.getLogger(__name__)

UNRESOLVED = ""

_ID_PREFIXES: Dict[TermKind, str] = {
    TermKind.CATEGORY: "wpcat",
    TermKind.TAG: "wptag",
}


@dataclass
class TermNode:
    term: TaxonomyTerm
    children: List["TermNode"] = field(default_factory=list)

    def walk(self, parent: Optional["TermNode"] = None) -> Iterator[Tuple["TermNode", Optional["TermNode"]]]:
        """Yield ``(node, parent)`` pairs in pre-order."""
        yield self, parent
        for child in self.children:
            yield from child.walk(self)


def term_content_item_id(term: TaxonomyTerm) -> str:
    return f"{_ID_PREFIXES[term.kind]}-{term.id}"


class TaxonomyResolver:
    def __init__(
        self,
        categories: Sequence[TaxonomyTerm],
        tags: Sequence[TaxonomyTerm],
        *,
        categories_taxonomy_id: str = DEFAULT_CATEGORIES_TAXONOMY_ID,
        tags_taxonomy_id: str = DEFAULT_TAGS_TAXONOMY_ID,
    ) -> None:
        self.taxonomy_ids: Dict[TermKind, str] = {
            TermKind.CATEGORY: categories_taxonomy_id,
            TermKind.TAG: tags_taxonomy_id,
        }
        self._terms: Dict[TermKind, List[TaxonomyTerm]] = {
            TermKind.CATEGORY: list(categories),
            TermKind.TAG: list(tags),
        }
        self._index: Dict[TermKind, Dict[str, TaxonomyTerm]] = {}
        for kind, terms in self._terms.items():
            index: Dict[str, TaxonomyTerm] = {}
            for term in terms:
                if term.slug in index:
                    logger.warning(
                        "Duplicate %s slug %r (ids %s and %s), keeping the first",
                        kind.value,
                        term.slug,
                        index[term.slug].id,
                        term.id,
                    )
                    continue
                index[term.slug] = term
            self._index[kind] = index

    @classmethod
    def from_export(cls, export: WordpressExport, settings: Optional[RecipeSettings] = None) -> "TaxonomyResolver":
        settings = settings or RecipeSettings()
        return cls(
            export.categories,
            export.tags,
            categories_taxonomy_id=settings.categories_taxonomy_id,
            tags_taxonomy_id=settings.tags_taxonomy_id,
        )

    def resolve(self, kind: TermKind, key: str) -> str:
        """Return the content item id for ``key``, or ``UNRESOLVED`` (``""``)."""
        term = self._index[kind].get(key)
        return term_content_item_id(term) if term else UNRESOLVED

    def resolve_all(self, kind: TermKind, keys: Iterable[str]) -> List[str]:
        """Resolve several references, dropping unknown ones and duplicates."""
        ids: List[str] = []
        for key in keys:
            term_id = self.resolve(kind, key)
            if term_id == UNRESOLVED:
                logger.warning("Unknown %s %r referenced, skipping it", kind.value, key)
                continue
            if term_id not in ids:
                ids.append(term_id)
        return ids

    def unique_terms(self, kind: TermKind) -> List[TaxonomyTerm]:
        """Terms of ``kind`` in source order, one per slug."""
        return list(self._index[kind].values())

    def category_forest(self) -> List[TermNode]:
        terms = self.unique_terms(TermKind.CATEGORY)
        known = {term.slug for term in terms}
        children: Dict[str, List[TaxonomyTerm]] = {}
        roots: List[TaxonomyTerm] = []
        for term in terms:
            if term.parent and term.parent in known:
                children.setdefault(term.parent, []).append(term)
            else:
                if term.parent:
                    logger.warning(
                        "Category %r names unknown parent %r, treating it as a root", term.slug, term.parent
                    )
                roots.append(term)

        visited: Set[str] = set()
        forest = [self._grow(root, children, visited) for root in roots]
        for term in terms:
            if term.slug not in visited:
                logger.warning("Category %r is part of a parent cycle, treating it as a root", term.slug)
                forest.append(self._grow(term, children, visited))
        return forest

    @staticmethod
    def _grow(root: TaxonomyTerm, children: Dict[str, List[TaxonomyTerm]], visited: Set[str]) -> TermNode:
        node = TermNode(root)
        visited.add(root.slug)
        stack = [node]
        while stack:
            current = stack.pop()
            for child in children.get(current.term.slug, ()):
                if child.slug in visited:
                    continue
                visited.add(child.slug)
                child_node = TermNode(child)
                current.children.append(child_node)
                stack.append(child_node)
        return node

    def category_items(self, created_utc: datetime) -> List[ContentItem]:
        """``PostCategory`` items in forest pre-order, parents before children."""
        items: List[ContentItem] = []
        paths: Dict[str, str] = {}
        for root in self.category_forest():
            for node, parent in root.walk():
                term = node.term
                slug = slugify(term.name) or slugify(term.slug) or str(term.id)
                path = f"{paths[parent.term.slug]}/{slug}" if parent else f"category/{slug}"
                paths[term.slug] = path
                items.append(
                    self._term_item(
                        term,
                        "PostCategory",
                        path,
                        created_utc,
                        TermPart={
                            "TaxonomyContentItemId": self.taxonomy_ids[TermKind.CATEGORY],
                            "ParentTermContentItemId": term_content_item_id(parent.term) if parent else None,
                        },
                    )
                )
        return items

    def tag_items(self, created_utc: datetime) -> List[ContentItem]:
        return [
            self._term_item(
                term,
                "Tag",
                f"tag/{slugify(term.name) or slugify(term.slug) or term.id}",
                created_utc,
                TermPart={"TaxonomyContentItemId": self.taxonomy_ids[TermKind.TAG]},
            )
            for term in self.unique_terms(TermKind.TAG)
        ]

    def term_items(self, created_utc: datetime) -> Tuple[List[ContentItem], List[ContentItem]]:
        return self.category_items(created_utc), self.tag_items(created_utc)

    @staticmethod
    def _term_item(term: TaxonomyTerm, content_type: str, path: str, created_utc: datetime, **parts) -> ContentItem:
        return ContentItem(
            ContentItemId=term_content_item_id(term),
            ContentItemVersionId=None,
            ContentType=content_type,
            DisplayText=term.name,
            Latest=True,
            Published=True,
            ModifiedUtc=created_utc,
            Author="WP Import",
            TitlePart={"Title": term.name},
            AutoroutePart={"Path": path, "SetHomepage": False},
            **{content_type: {}},
            **parts,
        )
