"""
Redirects from the old WordPress permalinks to the new Orchard Core paths.

:func:`redirect_items` produces one permanent ``Redirect`` content item per
migrated post or page whose link was rewritten in redirect mode.
:func:`generate_redirects_csv` writes the same mapping to a CSV file so
that it can also be configured on a proxy or CDN.
"""

from __future__ import annotations

import csv
import os
from datetime import datetime
from typing import Iterable, List

from orchard_migrator.models.content_item import ContentItem
from orchard_migrator.models.records import ItemType, SourceItem


def _redirectable(items: Iterable[SourceItem]) -> List[SourceItem]:
    return [
        item
        for item in items
        if item.type in (ItemType.PAGE, ItemType.POST) and item.old_link
    ]


def redirect_items(items: Iterable[SourceItem], *, created_utc: datetime) -> List[ContentItem]:
    return [
        ContentItem(
            ContentItemId=f"redirect-{item.id}",
            ContentItemVersionId=f"redirect-{item.id}",
            ContentType="Redirect",
            DisplayText=item.title,
            Latest=True,
            Published=item.is_published,
            ModifiedUtc=created_utc,
            PublishedUtc=created_utc,
            CreatedUtc=created_utc,
            Owner="WP Import",
            Author="WP Import",
            TitlePart={"Title": item.title},
            RedirectPart={
                "FromUrl": item.old_link,
                "ToUrl": item.link,
                "IsPermanent": True,
            },
        )
        for item in _redirectable(items)
    ]


def generate_redirects_csv(
    items: Iterable[SourceItem], *, old_domain: str = "", out_path: str = "reports/redirect_map.csv"
) -> str:
    """Generate a CSV mapping old WordPress paths to new Orchard Core paths.

    Parameters
    ----------
    items:
        Normalized source items.  Only posts and pages that carry an
        ``old_link`` are written.
    old_domain:
        Optional base URL of the legacy site, prefixed to the old path.
    out_path:
        Location of the CSV file to be written.  The parent directory is
        created automatically.

    Returns
    -------
    str
        The path of the generated CSV file.
    """
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["OldURL", "NewURL"])
        for item in _redirectable(items):
            old_url = f"{old_domain.rstrip('/')}{item.old_link}" if old_domain else item.old_link
            writer.writerow([old_url, item.link])
    return out_path
