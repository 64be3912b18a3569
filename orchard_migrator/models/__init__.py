"""
Data models shared across the pipeline.

* :mod:`orchard_migrator.models.records` – records parsed from the export
* :mod:`orchard_migrator.models.content_item` – Orchard Core content items
* :mod:`orchard_migrator.models.settings` – recipe configuration
"""

from .content_item import ContentItem, iter_content_item_ids
from .records import (
    AssetReference,
    Author,
    ItemType,
    SourceItem,
    TaxonomyTerm,
    TermKind,
    WordpressExport,
)
from .settings import RecipeSettings, Theme, load_settings

__all__ = [
    "AssetReference",
    "Author",
    "ContentItem",
    "ItemType",
    "RecipeSettings",
    "SourceItem",
    "TaxonomyTerm",
    "TermKind",
    "Theme",
    "WordpressExport",
    "iter_content_item_ids",
    "load_settings",
]
