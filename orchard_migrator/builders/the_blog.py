from __future__ import annotations

from orchard_migrator.models.content_item import ContentItem
from orchard_migrator.models.records import ItemType, SourceItem, TermKind
from orchard_migrator.parsers.body_converters import BodyConverter, html_to_markdown, passthrough

from .base import BuildContext, ContentBuilder

# FlowPart alignment 3 is "justify"; widgets span the full row
FLOW_ALIGNMENT_JUSTIFY = 3
FLOW_FULL_WIDTH = 100


class TheBlogPostBuilder(ContentBuilder):
    """Posts become ``BlogPost`` items with a Markdown body, contained in the blog list."""

    source_type = ItemType.POST
    content_type = "BlogPost"
    id_prefix = "wppost"
    requires_parent_id = True
    requires_taxonomy = True

    body_converter: BodyConverter = staticmethod(html_to_markdown)

    def build_item(self, item: SourceItem, context: BuildContext) -> ContentItem:
        return ContentItem(
            **self.common_fields(item),
            ContainedPart=self.contained(),
            MarkdownBodyPart={"Markdown": self.body_converter(item.content)},
            AutoroutePart=self.autoroute(item),
            BlogPost={
                "Subtitle": {"Text": item.excerpt or None},
                "Image": {"Paths": context.thumbnail_paths(item)},
                "Category": self.term_field(item, TermKind.CATEGORY, context.taxonomy),
                "Tags": self.term_field(item, TermKind.TAG, context.taxonomy),
            },
            TitlePart={"Title": item.title},
        )


class TheBlogPageBuilder(ContentBuilder):
    """Pages become ``Page`` items whose flow holds a single raw HTML widget."""

    source_type = ItemType.PAGE
    content_type = "Page"
    id_prefix = "wppage"

    body_converter: BodyConverter = staticmethod(passthrough)

    def build_item(self, item: SourceItem, context: BuildContext) -> ContentItem:
        fields = self.common_fields(item)
        widget = {
            **fields,
            "ContentItemId": f"wppagewidget-{item.id}",
            "ContentItemVersionId": f"wppagewidget-{item.id}",
            "ContentType": "RawHtml",
            "DisplayText": None,
            "RawHtml": {"Content": {"Html": self.body_converter(item.content)}},
            "FlowMetadata": {"Alignment": FLOW_ALIGNMENT_JUSTIFY, "Size": FLOW_FULL_WIDTH},
        }
        return ContentItem(
            **fields,
            Page={},
            AutoroutePart=self.autoroute(item),
            FlowPart={"Widgets": [widget]},
            TitlePart={"Title": item.title},
        )
