"""
Utility helpers used by the migration tool.

This subpackage exposes structured error reporting, URL and slug
helpers, permalink normalization, taxonomy resolution and redirect
generation.
"""

from .errors import ERRORS, MigrationError, report_error, report_ok
from .permalinks import LinkNormalizer
from .redirects import generate_redirects_csv, redirect_items
from .slugs import slugify
from .taxonomy import UNRESOLVED, TaxonomyResolver
from .urls import safe_target_path, sanitise_relative_path

__all__ = [
    "ERRORS",
    "LinkNormalizer",
    "MigrationError",
    "TaxonomyResolver",
    "UNRESOLVED",
    "generate_redirects_csv",
    "redirect_items",
    "report_error",
    "report_ok",
    "safe_target_path",
    "sanitise_relative_path",
    "slugify",
]
