"""
Assemble the Orchard Core recipe and package it as a zip archive.

The recipe is the theme's template recipe with two steps appended: a
``media`` step listing the files shipped in the archive and a ``content``
step holding every generated content item.  Files are staged under
``<working folder>/recipe`` next to ``recipe.json``; :meth:`package`
zips that directory and removes it.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import shutil
import zipfile
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from orchard_migrator.models.content_item import ContentItem, iter_content_item_ids
from orchard_migrator.models.records import AssetReference
from orchard_migrator.utils.errors import RecipeTemplateError
from orchard_migrator.utils.urls import safe_target_path

from .asset_fetcher import FetchResult

logger = logging.getLogger(__name__)

RECIPE_FILE = "recipe.json"
STAGING_DIR = "recipe"
ARCHIVE_NAME = "recipe.zip"


def load_recipe_template(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a template recipe; it must be a JSON object with a ``steps`` list."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            template = json.load(f)
    except FileNotFoundError as e:
        raise RecipeTemplateError(f"Recipe template not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise RecipeTemplateError(f"Could not read recipe template {path}: {e}") from e
    if not isinstance(template, dict) or not isinstance(template.get("steps"), list):
        raise RecipeTemplateError(f"Recipe template {path} has no 'steps' list")
    return template


def staged_path(relative_path: str) -> str:
    """The archive-relative path a media file is staged under."""
    return safe_target_path(Path(), relative_path).as_posix()


class BundleAssembler:
    def __init__(self, working_folder: Union[str, Path]) -> None:
        self.working_folder = Path(working_folder)
        self.staging_dir = self.working_folder / STAGING_DIR

    def media_step(self, assets: Iterable[AssetReference]) -> Dict[str, Any]:
        files: List[Dict[str, str]] = []
        seen = set()
        for asset in assets:
            if asset.relative_path in seen:
                continue
            seen.add(asset.relative_path)
            files.append({"SourcePath": staged_path(asset.relative_path), "TargetPath": asset.relative_path})
        return {"name": "media", "Files": files}

    def content_step(
        self,
        categories: Sequence[ContentItem],
        tags: Sequence[ContentItem],
        pages: Sequence[ContentItem],
        posts: Sequence[ContentItem],
        redirects: Sequence[ContentItem] = (),
    ) -> Dict[str, Any]:
        """
        Flatten the generated items into a ``content`` step.

        Terms come first so that every item referencing them is imported
        after them.  Raises ``ValueError`` when two items (nested ones
        included) share a ContentItemId.
        """
        data = [item.to_recipe() for group in (categories, tags, pages, posts, redirects) for item in group]
        counts = Counter(item_id for entry in data for item_id in iter_content_item_ids(entry))
        duplicates = sorted(item_id for item_id, n in counts.items() if n > 1)
        if duplicates:
            raise ValueError(f"Duplicate ContentItemIds in content step: {', '.join(duplicates)}")
        return {"name": "content", "data": data}

    @staticmethod
    def prune_failed(media_step: Dict[str, Any], failures: Iterable[Dict[str, str]]) -> int:
        """Drop manifest entries whose file failed to download; return how many were removed."""
        failed = {failure["path"] for failure in failures}
        if not failed:
            return 0
        kept = [entry for entry in media_step["Files"] if entry["TargetPath"] not in failed]
        removed = len(media_step["Files"]) - len(kept)
        media_step["Files"] = kept
        if removed:
            logger.info("Removed %d failed media files from the recipe", removed)
        return removed

    @staticmethod
    def assemble(template: Dict[str, Any], media_step: Dict[str, Any], content_step: Dict[str, Any]) -> Dict[str, Any]:
        recipe = copy.deepcopy(template)
        recipe["steps"] = list(recipe.get("steps") or []) + [media_step, content_step]
        return recipe

    def write(self, recipe: Dict[str, Any]) -> Path:
        """Start a fresh staging folder holding only ``recipe.json``."""
        if self.staging_dir.exists():
            logger.info("Removing leftover staging folder %s", self.staging_dir)
            shutil.rmtree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)
        path = self.staging_dir / RECIPE_FILE
        with open(path, "w", encoding="utf-8") as f:
            json.dump(recipe, f, ensure_ascii=False, indent=2)
        logger.info("Recipe written to %s", path)
        return path

    def stage_files(self, results: Iterable[FetchResult]) -> int:
        """Copy downloaded (or already present) files into the staging tree."""
        staged = 0
        for result in results:
            if not result.ok or result.path is None:
                continue
            destination = safe_target_path(self.staging_dir, result.asset.relative_path)
            if destination.exists():
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(result.path, destination)
            staged += 1
        return staged

    def package(self, archive_path: Optional[Union[str, Path]] = None) -> Path:
        """Zip the staging directory to ``archive_path`` and delete the staging directory."""
        archive = Path(archive_path) if archive_path else self.working_folder / ARCHIVE_NAME
        archive.parent.mkdir(parents=True, exist_ok=True)
        if archive.exists():
            archive.unlink()
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for root, _dirs, files in os.walk(self.staging_dir):
                for name in sorted(files):
                    path = Path(root) / name
                    zf.write(path, path.relative_to(self.staging_dir).as_posix())
        shutil.rmtree(self.staging_dir)
        logger.info("Recipe archive created: %s", archive)
        return archive
