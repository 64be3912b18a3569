from __future__ import annotations

import re
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .block_schema import document, embed, header, paragraph, raw

# Paragraph boundaries, longest first so "\r\n\r\n" is not split twice
_SEGMENT_SPLIT = re.compile(r"\r\n\r\n|\r\r|\n\n|\n")

_IMG_TAG = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
_DIMENSION_ATTR = re.compile(
    r"""\s+(?:width|height)\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>"']+)""", re.IGNORECASE
)
_EMPTY_PARAGRAPH = re.compile(r"<p(?:\s[^>]*)?>(?:\s|&nbsp;|&#160;|\xa0)*</p>", re.IGNORECASE)

_HEADING = re.compile(r"^<h([1-6])[\s>]", re.IGNORECASE)
_PARAGRAPH = re.compile(r"^<p(?:\s[^>]*)?>(.*)</p>$", re.IGNORECASE | re.DOTALL)

YOUTUBE_HOSTS = frozenset(
    {
        "youtube.com",
        "www.youtube.com",
        "m.youtube.com",
        "youtu.be",
        "www.youtu.be",
        "youtube-nocookie.com",
        "www.youtube-nocookie.com",
    }
)
_YOUTUBE_ID = re.compile(r"(?:[?&]v=|/embed/|/shorts/|/v/|youtu\.be/)([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])")


def youtube_embed_url(line: str) -> Optional[str]:
    """
    Return the embed URL for a line that is nothing but a YouTube link,
    or ``None`` when the line is anything else.
    """
    candidate = line.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return None
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or (parsed.hostname or "").lower() not in YOUTUBE_HOSTS:
        return None
    match = _YOUTUBE_ID.search(candidate)
    if not match:
        return None
    return f"https://www.youtube.com/embed/{match.group(1)}"


def strip_image_dimensions(html: str) -> str:
    return _IMG_TAG.sub(lambda m: _DIMENSION_ATTR.sub("", m.group(0)), html)


def remove_empty_paragraphs(html: str) -> str:
    return _EMPTY_PARAGRAPH.sub("", html)


def _plain_text(markup: str) -> str:
    # get_text drops the tags and decodes entities in one pass
    return BeautifulSoup(markup, "html.parser").get_text().strip()


class HtmlBlockConverter:
    """
    Convert a WordPress post body into an editor.js block document.

    The body is split into segments on blank lines (and single line
    breaks, which is how the classic and block editors separate
    top-level elements); every segment then becomes at most one block.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def convert(self, html: str) -> Dict[str, Any]:
        cleaned = remove_empty_paragraphs(strip_image_dimensions(html or ""))
        blocks: List[Dict[str, Any]] = []
        for segment in _SEGMENT_SPLIT.split(cleaned):
            block = self.classify(segment)
            if block is not None:
                blocks.append(block)
        return document(blocks, int(self._clock()))

    @staticmethod
    def classify(segment: str) -> Optional[Dict[str, Any]]:
        line = segment.strip()
        if line.startswith("<!--"):
            return None

        heading = _HEADING.match(line)
        if heading:
            return header(_plain_text(line), int(heading.group(1)))

        embed_url = youtube_embed_url(line)
        if embed_url:
            return embed("youtube", line, embed_url)

        para = _PARAGRAPH.match(line)
        # several paragraphs on one line are kept as raw markup
        if para and "</p>" not in para.group(1).lower():
            return paragraph(para.group(1))

        if line.startswith("<"):
            return raw(line)

        if not line:
            return None

        return paragraph(line)
