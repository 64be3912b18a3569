"""
Post body conversions used by the content builders.

WordPress stores bodies as HTML.  Depending on the theme, the target body
part wants the HTML verbatim, Markdown, or an editor.js block document
serialized to a JSON string.  Shortcodes (``[caption]``, ``[gallery]`` ...)
have no Orchard Core counterpart and can be stripped first.
"""

from __future__ import annotations

import json
import re
from typing import Callable, Optional

from markdownify import markdownify

from .html_blocks import HtmlBlockConverter

__all__ = [
    "html_to_blocks_json",
    "html_to_markdown",
    "passthrough",
    "strip_shortcodes",
]

_SHORTCODE = re.compile(r"\[[^\]]*\]")


def passthrough(html: Optional[str]) -> str:
    return html or ""


def strip_shortcodes(html: Optional[str]) -> str:
    """Remove every ``[...]`` shortcode tag, keeping the enclosed text."""
    return _SHORTCODE.sub("", html or "")


def html_to_markdown(html: Optional[str]) -> str:
    """Convert HTML to Markdown with ATX (``#``) headings."""
    if not html or not html.strip():
        return ""
    return markdownify(html, heading_style="ATX").strip()


def html_to_blocks_json(html: Optional[str], converter: Optional[HtmlBlockConverter] = None) -> str:
    """Convert HTML to a compact editor.js JSON string."""
    converter = converter or HtmlBlockConverter()
    return json.dumps(converter.convert(html or ""), ensure_ascii=False, separators=(",", ":"))


BodyConverter = Callable[[Optional[str]], str]
