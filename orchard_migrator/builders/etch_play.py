"""
Builders for the EtchPlay boilerplate theme.

Posts become ``NewsPost`` items whose body is an editor.js document
serialized into ``Content.Data``.  Pages become ``Page`` items holding a
single ``Section`` with an ``Html`` child; the section is what the
theme's page layout renders.
"""

from __future__ import annotations

from typing import Any, Dict

from orchard_migrator.models.content_item import ContentItem
from orchard_migrator.models.records import ItemType, SourceItem, TermKind
from orchard_migrator.parsers.body_converters import BodyConverter, html_to_blocks_json, strip_shortcodes

from .base import BuildContext, ContentBuilder

SECTION_TITLE = "Imported Content"
SECTION_DEFAULT = "default"


class EtchPlayPostBuilder(ContentBuilder):
    source_type = ItemType.POST
    content_type = "NewsPost"
    id_prefix = "wppost"
    requires_parent_id = True
    requires_taxonomy = True

    body_converter: BodyConverter = staticmethod(html_to_blocks_json)

    def build_item(self, item: SourceItem, context: BuildContext) -> ContentItem:
        return ContentItem(
            **self.common_fields(item),
            ContainedPart=self.contained(),
            AutoroutePart=self.autoroute(item),
            NewsPost={
                "Content": {"Data": self.body_converter(item.content), "Html": None},
                "Thumbnail": {"Paths": context.thumbnail_paths(item)},
                "ThumbnailAlt": {"Text": ""},
                "Author": {"Text": item.author_name or item.creator},
                "FurtherReading": {"ContentItemIds": []},
                "Categories": self.term_field(item, TermKind.CATEGORY, context.taxonomy),
                "Tags": self.term_field(item, TermKind.TAG, context.taxonomy),
            },
            TitlePart={"Title": item.title},
        )


class EtchPlayPageBuilder(ContentBuilder):
    source_type = ItemType.PAGE
    content_type = "Page"
    id_prefix = "wppage"

    body_converter: BodyConverter = staticmethod(strip_shortcodes)

    def _nested(self, item: SourceItem, item_id: str, content_type: str, **parts: Any) -> Dict[str, Any]:
        fields = self.common_fields(item)
        fields.update(
            ContentItemId=item_id,
            ContentItemVersionId=item_id,
            ContentType=content_type,
            DisplayText=None,
        )
        fields.update(parts)
        return fields

    def build_item(self, item: SourceItem, context: BuildContext) -> ContentItem:
        html = self._nested(
            item,
            f"wppagewidget-{item.id}",
            "Html",
            Html={"Body": {"Html": self.body_converter(item.content)}},
        )
        section = self._nested(
            item,
            f"wppagesection-{item.id}",
            "Section",
            Section={
                "BackgroundColour": {"Text": SECTION_DEFAULT},
                "Alignment": {"Text": SECTION_DEFAULT},
                "Children": {"ContentItems": [html]},
            },
            TitlePart={"Title": SECTION_TITLE},
        )
        return ContentItem(
            **self.common_fields(item),
            Page={"Content": {"ContentItems": [section]}},
            AutoroutePart=self.autoroute(item),
            TitlePart={"Title": item.title},
        )
