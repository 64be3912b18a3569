"""
Permalink rewriting for migrated posts and pages.

Two mutually exclusive strategies are available, selected by
``RecipeSettings.create_redirects``:

* relative mode keeps the WordPress path, minus scheme and host;
* redirect mode moves the original path to ``SourceItem.old_link`` and
  builds a fresh slug-based link, so that a redirect can be generated
  from one to the other.

Running redirect mode twice over the same items slugifies the already
rewritten links again; callers run the normalizer once per export.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from orchard_migrator.models.records import ItemType, SourceItem
from orchard_migrator.models.settings import RecipeSettings
from orchard_migrator.utils.slugs import slugify
from orchard_migrator.utils.urls import sanitise_relative_path

logger = logging.getLogger(__name__)

_DATE_TOKENS = {
    "yyyy": "%Y",
    "yy": "%y",
    "MM": "%m",
    "dd": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
}
_DATE_TOKEN_PATTERN = re.compile("|".join(sorted(_DATE_TOKENS, key=len, reverse=True)))


def to_strftime(pattern: str) -> str:
    """Translate a ``yyyy/MM/dd`` style pattern into a ``strftime`` format."""
    escaped = (pattern or "").replace("%", "%%")
    return _DATE_TOKEN_PATTERN.sub(lambda m: _DATE_TOKENS[m.group(0)], escaped)


class LinkNormalizer:
    def __init__(
        self,
        *,
        create_redirects: bool = False,
        permalink_structure: str = "yyyy/MM/dd",
        strip_trailing_slashes: bool = True,
        slug_removals: Sequence[str] = ("?",),
    ) -> None:
        self.create_redirects = create_redirects
        self.date_format = to_strftime(permalink_structure)
        self.strip_trailing_slashes = strip_trailing_slashes
        self.slug_removals = tuple(slug_removals)

    @classmethod
    def from_settings(cls, settings: RecipeSettings) -> "LinkNormalizer":
        return cls(
            create_redirects=settings.create_redirects,
            permalink_structure=settings.permalink_structure,
            strip_trailing_slashes=settings.strip_trailing_slashes,
            slug_removals=settings.slug_removals,
        )

    def normalize(self, items: Iterable[SourceItem]) -> None:
        """Rewrite ``link`` (and ``old_link`` in redirect mode) of every post and page."""
        count = 0
        for item in items:
            if item.type not in (ItemType.POST, ItemType.PAGE):
                continue
            if self.create_redirects:
                item.old_link = "/" + sanitise_relative_path(item.link).strip("/")
                item.link = self.new_link(item)
            else:
                item.link = sanitise_relative_path(item.link, self.strip_trailing_slashes)
            count += 1
        logger.info(
            "Normalized %d links (%s mode)", count, "redirect" if self.create_redirects else "relative"
        )

    def slug_for(self, item: SourceItem) -> str:
        return (
            slugify(item.title, self.slug_removals)
            or slugify(item.slug, self.slug_removals)
            or str(item.id)
        )

    def new_link(self, item: SourceItem) -> str:
        """``/{slug}`` for pages, ``/{date}/{slug}`` for dated posts."""
        slug = self.slug_for(item)
        if item.type == ItemType.POST and item.published is not None:
            date_part = item.published.strftime(self.date_format).strip("/")
            if date_part:
                return f"/{date_part}/{slug}"
        return f"/{slug}"
