"""
Media download and recipe packaging.

This subpackage provides :class:`AssetFetcher`, which downloads the
export's attachments with bounded concurrency and immediate retries, and
:class:`BundleAssembler`, which merges the template recipe with the media
and content steps, writes ``recipe.json`` and zips the result.
"""

from .asset_fetcher import AssetFetcher, FetchResult, derive_assets
from .bundle_assembler import BundleAssembler, load_recipe_template

__all__ = [
    "AssetFetcher",
    "BundleAssembler",
    "FetchResult",
    "derive_assets",
    "load_recipe_template",
]
