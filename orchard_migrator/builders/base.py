"""
The contract every theme's content builder implements.

A builder turns source items of one type (posts or pages) into Orchard
Core content items for a particular theme.  Capabilities are declared on
the class: the WordPress type it consumes, the content type it emits,
and whether it needs a parent list id and/or a taxonomy resolver.  A
missing parent id is rejected when the builder is constructed, before any
content is produced.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Optional

from orchard_migrator.models.content_item import ContentItem
from orchard_migrator.models.records import AssetReference, ItemType, SourceItem, TermKind, WordpressExport
from orchard_migrator.models.settings import RecipeSettings
from orchard_migrator.utils.errors import BuilderConfigurationError
from orchard_migrator.utils.taxonomy import TaxonomyResolver

logger = logging.getLogger(__name__)


@dataclass
class BuildContext:
    export: WordpressExport
    assets: List[AssetReference]
    taxonomy: Optional[TaxonomyResolver] = None
    assets_by_owner: Dict[int, AssetReference] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for asset in self.assets:
            self.assets_by_owner.setdefault(asset.owner_id, asset)

    def thumbnail_paths(self, item: SourceItem) -> List[str]:
        """Media paths of ``item``'s featured image, empty when it has none."""
        if not item.thumbnail_id:
            return []
        asset = self.assets_by_owner.get(item.thumbnail_id)
        return [asset.relative_path] if asset else []


class ContentBuilder(ABC):
    source_type: ClassVar[ItemType]
    content_type: ClassVar[str]
    id_prefix: ClassVar[str]
    requires_parent_id: ClassVar[bool] = False
    requires_taxonomy: ClassVar[bool] = False

    def __init__(self, settings: Optional[RecipeSettings] = None, parent_id: Optional[str] = None) -> None:
        self.settings = settings or RecipeSettings()
        self.parent_id = parent_id
        if self.requires_parent_id and not (parent_id or "").strip():
            raise BuilderConfigurationError(
                f"{type(self).__name__} needs the id of the list that will contain "
                f"{self.content_type} items (postsListId)"
            )

    def build(
        self,
        export: WordpressExport,
        assets: Iterable[AssetReference],
        taxonomy: Optional[TaxonomyResolver] = None,
    ) -> List[ContentItem]:
        """Build content items for every source item of ``source_type``, in source order."""
        if self.requires_taxonomy and taxonomy is None:
            raise BuilderConfigurationError(f"{type(self).__name__} needs a taxonomy resolver")
        context = BuildContext(export=export, assets=list(assets), taxonomy=taxonomy)
        items = [self.build_item(item, context) for item in export.items_of(self.source_type)]
        logger.info("Built %d %s items", len(items), self.content_type)
        return items

    @abstractmethod
    def build_item(self, item: SourceItem, context: BuildContext) -> ContentItem:
        raise NotImplementedError

    def item_id(self, item: SourceItem) -> str:
        return f"{self.id_prefix}-{item.id}"

    def owner_for(self, item: SourceItem) -> str:
        """Map the WordPress author to an Orchard Core user id when one is configured."""
        return (
            self.settings.author_ids.get(item.creator)
            or self.settings.author_ids.get(item.author_name)
            or item.creator
        )

    def common_fields(self, item: SourceItem) -> Dict[str, Any]:
        item_id = self.item_id(item)
        return {
            "ContentItemId": item_id,
            "ContentItemVersionId": item_id,
            "ContentType": self.content_type,
            "DisplayText": item.title,
            "Latest": True,
            "Published": item.is_published,
            "ModifiedUtc": item.published,
            "PublishedUtc": item.published,
            "CreatedUtc": item.published,
            "Owner": self.owner_for(item),
            "Author": item.creator,
        }

    @staticmethod
    def autoroute(item: SourceItem) -> Dict[str, Any]:
        return {"Path": item.link.strip("/"), "SetHomepage": False}

    def contained(self) -> Dict[str, Any]:
        return {"ListContentItemId": self.parent_id, "Order": 0}

    @staticmethod
    def term_field(item: SourceItem, kind: TermKind, taxonomy: TaxonomyResolver) -> Dict[str, Any]:
        keys = item.categories if kind == TermKind.CATEGORY else item.tags
        return {
            "TermContentItemIds": taxonomy.resolve_all(kind, keys),
            "TaxonomyContentItemId": taxonomy.taxonomy_ids[kind],
        }
