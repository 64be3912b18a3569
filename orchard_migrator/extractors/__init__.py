"""
Extractors for WordPress export files.

This subpackage streams a WordPress WXR export into the typed records of
:mod:`orchard_migrator.models.records`: items (posts, pages, attachments,
menu entries), categories, tags and authors.
"""

from .wordpress_extractor import WordpressExtractor, extract_export, parse_wp_date

__all__ = ["WordpressExtractor", "extract_export", "parse_wp_date"]
