"""
Parsers and converters used by the migration pipeline.

This subpackage exposes :class:`HtmlBlockConverter` (HTML to editor.js
blocks) and the body conversions from
:mod:`orchard_migrator.parsers.body_converters`.
"""

from .body_converters import html_to_blocks_json, html_to_markdown, passthrough, strip_shortcodes
from .html_blocks import HtmlBlockConverter, youtube_embed_url

__all__ = [
    "HtmlBlockConverter",
    "html_to_blocks_json",
    "html_to_markdown",
    "passthrough",
    "strip_shortcodes",
    "youtube_embed_url",
]
