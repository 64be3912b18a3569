from __future__ import annotations

import re
import unicodedata
from html import unescape
from typing import Iterable

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9\-]")
_REPEATED_DASHES = re.compile(r"-{2,}")


def _strip_accents(text: str) -> str:
    return "".join(
        c for c in unicodedata.normalize("NFD", text) if unicodedata.category(c) != "Mn"
    )


def slugify(value: str, removals: Iterable[str] = ("?",)) -> str:
    """
    Turn free text into a URL slug.

    Each string in ``removals`` is deleted first.  Then entities are
    decoded, accents stripped, the text lowercased, whitespace runs turned
    into ``-`` and anything that is not ``[a-z0-9-]`` dropped, so
    ``"What's New?"`` becomes ``whats-new``.
    """
    text = unescape(value or "")
    for removal in removals:
        if removal:
            text = text.replace(removal, "")
    text = _strip_accents(text).encode("ascii", "ignore").decode("ascii")
    text = _WHITESPACE.sub("-", text.strip().lower())
    text = _DISALLOWED.sub("", text)
    return _REPEATED_DASHES.sub("-", text).strip("-")
