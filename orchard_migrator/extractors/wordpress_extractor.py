"""
Streaming reader for WordPress WXR exports.

The export is consumed as a forward-only stream of start/end tokens from
:func:`xml.etree.ElementTree.iterparse`; it is never loaded as a whole
tree.  Each recognised element (``item``, ``wp:category``, ``wp:tag``,
``wp:author`` and the channel ``title``/``description``) is handed to a
small sub-parser that consumes exactly that element's subtree and
returns a typed record.  Anything else is skipped.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from typing import IO, Dict, Iterator, Optional, Union

from orchard_migrator.models.records import (
    Author,
    ItemType,
    SourceItem,
    TaxonomyTerm,
    TermKind,
    WordpressExport,
)
from orchard_migrator.utils.errors import ExportParseError

logger = logging.getLogger(__name__)

THUMBNAIL_META_KEY = "_thumbnail_id"
WP_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_KNOWN_PREFIXES: Dict[str, str] = {
    "http://purl.org/rss/1.0/modules/content/": "content",
    "http://purl.org/dc/elements/1.1/": "dc",
    "http://wellformedweb.org/CommentAPI/": "wfw",
}

_ITEM_TEXT_FIELDS: Dict[str, str] = {
    "title": "title",
    "link": "link",
    "dc:creator": "creator",
    "excerpt:encoded": "excerpt",
    "wp:status": "status",
    "wp:post_name": "slug",
    "wp:attachment_url": "attachment_url",
}

_ITEM_INT_FIELDS: Dict[str, str] = {
    "wp:post_id": "id",
    "wp:post_parent": "parent_id",
}


@dataclass
class _Token:
    kind: str  # "start" or "end"
    name: str  # qualified name, e.g. "wp:post_id"
    element: ET.Element
    depth: int


def _text(element: ET.Element) -> str:
    return (element.text or "").strip()


def _to_int(value: str, field_name: str) -> int:
    if not value:
        return 0
    try:
        return int(value)
    except ValueError as exc:
        raise ExportParseError(f"Field {field_name!r} is not an integer: {value!r}") from exc


def parse_wp_date(value: str) -> Optional[datetime]:
    """Parse ``wp:post_date``; the all-zero date used by drafts gives ``None``."""
    if not value or value.startswith("0000-00-00"):
        return None
    try:
        return datetime.strptime(value, WP_DATE_FORMAT)
    except ValueError:
        logger.warning("Unrecognised post date %r, leaving it empty", value)
        return None


class _TokenCursor:
    """Forward-only cursor over the export's element tokens."""

    def __init__(self, source: Union[str, IO[bytes]]) -> None:
        self._events = ET.iterparse(source, events=("start", "end", "start-ns"))
        self._declared: Dict[str, str] = {}
        self.depth = 0

    def __iter__(self) -> "_TokenCursor":
        return self

    def __next__(self) -> _Token:
        while True:
            try:
                event, payload = next(self._events)
            except ET.ParseError as exc:
                raise ExportParseError(f"Malformed export document: {exc}") from exc
            if event == "start-ns":
                prefix, uri = payload
                self._declared.setdefault(uri, prefix)
                continue
            if event == "start":
                self.depth += 1
                return _Token("start", self._qualify(payload.tag), payload, self.depth)
            token = _Token("end", self._qualify(payload.tag), payload, self.depth)
            self.depth -= 1
            return token

    def _qualify(self, tag: str) -> str:
        if not tag.startswith("{"):
            return tag
        uri, _, local = tag[1:].partition("}")
        return f"{self._prefix_for(uri)}:{local}"

    def _prefix_for(self, uri: str) -> str:
        if uri in _KNOWN_PREFIXES:
            return _KNOWN_PREFIXES[uri]
        # WXR 1.0, 1.1 and 1.2 only differ in the version segment
        if uri.startswith("http://wordpress.org/export/"):
            return "excerpt" if uri.rstrip("/").endswith("/excerpt") else "wp"
        return self._declared.get(uri, uri)

    def subtree(self, opening: _Token) -> Iterator[_Token]:
        """
        Yield the tokens inside ``opening``'s subtree and stop after its
        closing tag.  The closing tag is matched on name, kind *and* depth
        so that a same-named descendant cannot end the record early.
        """
        for token in self:
            if token.kind == "end" and token.depth == opening.depth and token.name == opening.name:
                return
            yield token
        raise ExportParseError(f"Unterminated <{opening.name}> element at end of document")


class WordpressExtractor:
    """Turn a WXR export into a :class:`WordpressExport`.

    Args:
        source: Path to the export file, or a binary file object.
    """

    def __init__(self, source: Union[str, IO[bytes]]) -> None:
        self.source = source

    def extract(self) -> WordpressExport:
        """Read the whole export.

        Returns:
            WordpressExport: Items, categories, tags, authors and the site
            title/description, in document order.

        Raises:
            FileNotFoundError: If ``source`` is a path that does not exist.
            ExportParseError: If the document is malformed or truncated.
        """
        if isinstance(self.source, str):
            with open(self.source, "rb") as f:
                export = self._consume(_TokenCursor(f))
        else:
            export = self._consume(_TokenCursor(self.source))
        self._resolve_authors(export)
        logger.info(
            "Parsed export %r: %d items, %d categories, %d tags",
            export.title,
            len(export.items),
            len(export.categories),
            len(export.tags),
        )
        return export

    def _consume(self, cursor: _TokenCursor) -> WordpressExport:
        export = WordpressExport()
        seen_ids = set()
        channel_depth: Optional[int] = None
        have_title = have_description = False

        for token in cursor:
            if token.kind != "start":
                continue
            name = token.name
            if channel_depth is None:
                if name == "channel":
                    channel_depth = token.depth
                continue
            # records are direct children of <channel>; anything else is drained whole
            if token.depth != channel_depth + 1:
                continue
            if name == "item":
                item = self._parse_item(cursor, token)
                if item.id in seen_ids:
                    logger.warning("Duplicate item id %s in export, keeping the first", item.id)
                    continue
                seen_ids.add(item.id)
                export.items.append(item)
            elif name == "wp:category":
                export.categories.append(self._parse_category(cursor, token))
            elif name == "wp:tag":
                export.tags.append(self._parse_tag(cursor, token))
            elif name == "wp:author":
                author = self._parse_author(cursor, token)
                export.authors.setdefault(author.login, author)
            elif name == "title" and not have_title:
                export.title = self._read_text(cursor, token)
                have_title = True
            elif name == "description" and not have_description:
                export.description = self._read_text(cursor, token)
                have_description = True
            else:
                self._skip(cursor, token)
        return export

    @staticmethod
    def _skip(cursor: _TokenCursor, opening: _Token) -> None:
        for _ in cursor.subtree(opening):
            pass
        opening.element.clear()

    @staticmethod
    def _read_text(cursor: _TokenCursor, opening: _Token) -> str:
        for _ in cursor.subtree(opening):
            pass
        return _text(opening.element)

    @staticmethod
    def _read_fields(cursor: _TokenCursor, opening: _Token) -> Dict[str, str]:
        """Collect the text of every direct child of ``opening``."""
        fields: Dict[str, str] = {}
        for token in cursor.subtree(opening):
            if token.kind == "end" and token.depth == opening.depth + 1:
                fields.setdefault(token.name, _text(token.element))
        opening.element.clear()
        return fields

    def _parse_item(self, cursor: _TokenCursor, opening: _Token) -> SourceItem:
        item = SourceItem()
        field_depth = opening.depth + 1
        content: Optional[str] = None
        description: Optional[str] = None
        # ``meta`` is not None while inside a wp:postmeta block
        meta: Optional[Dict[str, str]] = None

        for token in cursor.subtree(opening):
            if meta is not None:
                if token.kind == "end" and token.depth == field_depth:
                    self._apply_meta(item, meta)
                    meta = None
                elif token.kind == "end" and token.depth == field_depth + 1:
                    meta[token.name] = (token.element.text or "").strip()
                continue

            if token.depth != field_depth:
                continue

            if token.kind == "start":
                if token.name == "wp:postmeta":
                    meta = {}
                elif token.name == "category":
                    domain = token.element.get("domain")
                    nice_name = token.element.get("nicename")
                    if domain == "category":
                        item.add_category(nice_name)
                    elif domain == "post_tag":
                        item.add_tag(nice_name)
                continue

            name = token.name
            if name in _ITEM_TEXT_FIELDS:
                setattr(item, _ITEM_TEXT_FIELDS[name], _text(token.element))
            elif name in _ITEM_INT_FIELDS:
                setattr(item, _ITEM_INT_FIELDS[name], _to_int(_text(token.element), name))
            elif name == "content:encoded":
                content = token.element.text or ""
            elif name == "description":
                description = token.element.text or ""
            elif name == "wp:post_date":
                item.published = parse_wp_date(_text(token.element))
            elif name == "wp:post_type":
                item.raw_type = _text(token.element)
                item.type = ItemType.from_raw(item.raw_type)

        item.content = content if content is not None else (description or "")
        opening.element.clear()
        return item

    @staticmethod
    def _apply_meta(item: SourceItem, meta: Dict[str, str]) -> None:
        if meta.get("wp:meta_key") != THUMBNAIL_META_KEY:
            return
        value = meta.get("wp:meta_value", "")
        try:
            item.thumbnail_id = int(value)
        except ValueError:
            logger.warning("Item %s has a non-numeric thumbnail id %r", item.id, value)

    def _parse_category(self, cursor: _TokenCursor, opening: _Token) -> TaxonomyTerm:
        fields = self._read_fields(cursor, opening)
        return TaxonomyTerm(
            kind=TermKind.CATEGORY,
            id=_to_int(fields.get("wp:term_id", ""), "wp:term_id"),
            name=fields.get("wp:cat_name", ""),
            slug=fields.get("wp:category_nicename", ""),
            parent=fields.get("wp:category_parent", ""),
            description=fields.get("wp:category_description", ""),
        )

    def _parse_tag(self, cursor: _TokenCursor, opening: _Token) -> TaxonomyTerm:
        fields = self._read_fields(cursor, opening)
        return TaxonomyTerm(
            kind=TermKind.TAG,
            id=_to_int(fields.get("wp:term_id", ""), "wp:term_id"),
            name=fields.get("wp:tag_name", ""),
            slug=fields.get("wp:tag_slug", ""),
            description=fields.get("wp:tag_description", ""),
        )

    def _parse_author(self, cursor: _TokenCursor, opening: _Token) -> Author:
        fields = self._read_fields(cursor, opening)
        return Author(
            id=_to_int(fields.get("wp:author_id", ""), "wp:author_id"),
            login=fields.get("wp:author_login", ""),
            display_name=fields.get("wp:author_display_name", ""),
            email=fields.get("wp:author_email", ""),
        )

    @staticmethod
    def _resolve_authors(export: WordpressExport) -> None:
        for item in export.items:
            author = export.authors.get(item.creator)
            item.author_name = (author.display_name if author else "") or item.creator


def extract_export(source: Union[str, IO[bytes]]) -> WordpressExport:
    """Convenience wrapper around :class:`WordpressExtractor`."""
    return WordpressExtractor(source).extract()
