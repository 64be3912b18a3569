"""
High-level orchestration of the WordPress → Orchard Core migration.

This module defines a :class:`RecipeMigrationTool` class that ties
together the extractor, link normalizer, taxonomy resolver, theme
builders, media fetcher and bundle assembler into a complete pipeline.
One call to :meth:`RecipeMigrationTool.run` turns a WordPress export
(WXR) into an Orchard Core recipe archive.

Media downloads run on a background executor while the content items
are being built; the recipe is only assembled once every download has
finished so that files which failed can be removed from the media step.

Settings are supplied as a :class:`RecipeSettings` instance, usually
built with :func:`orchard_migrator.models.settings.load_settings` from
the ``recipe`` section of ``config/migration_config.json``.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from orchard_migrator.builders import create_builders
from orchard_migrator.extractors.wordpress_extractor import extract_export
from orchard_migrator.migrators.asset_fetcher import AssetFetcher, derive_assets
from orchard_migrator.migrators.bundle_assembler import BundleAssembler, load_recipe_template
from orchard_migrator.models.records import ItemType, WordpressExport
from orchard_migrator.models.settings import RecipeSettings
from orchard_migrator.utils.errors import REPORT_DIR, report_ok
from orchard_migrator.utils.permalinks import LinkNormalizer
from orchard_migrator.utils.redirects import redirect_items
from orchard_migrator.utils.taxonomy import TaxonomyResolver

logger = logging.getLogger("orchard_migrator")

MEDIA_DIR = "media"
LOG_FILE = "migration.log"

# Used when no template recipe is given: the media and content steps only
DEFAULT_TEMPLATE: Dict[str, Any] = {
    "name": "WordPressImport",
    "displayName": "WordPress import",
    "description": "Content imported from a WordPress export",
    "author": "WP Import",
    "website": "",
    "version": "1.0.0",
    "issetuprecipe": False,
    "categories": ["content"],
    "tags": ["wordpress"],
    "steps": [],
}


@dataclass
class MigrationReport:
    archive: Path
    counts: Dict[str, int] = field(default_factory=dict)
    failures: List[Dict[str, str]] = field(default_factory=list)
    export: Optional[WordpressExport] = None

    @property
    def ok(self) -> bool:
        return not self.failures


class RecipeMigrationTool:
    """
    Encapsulates all state required to turn one WordPress export into an
    Orchard Core recipe.  Builders are created up front, so a theme that
    is missing required configuration fails before anything is written.
    """

    def __init__(
        self,
        settings: Optional[RecipeSettings] = None,
        working_folder: Union[str, Path] = "work",
        template: Union[None, str, Path, Dict[str, Any]] = None,
        *,
        http_get: Callable[..., requests.Response] = requests.get,
        report_dir: str = REPORT_DIR,
        created_utc: Optional[datetime] = None,
    ) -> None:
        self.settings = settings or RecipeSettings()
        self.working_folder = Path(working_folder)
        self.template = template
        self.http_get = http_get
        self.report_dir = report_dir
        self.created_utc = created_utc
        self.page_builder, self.post_builder = create_builders(self.settings)
        self._configure_log_file()

    def _configure_log_file(self) -> None:
        os.makedirs(self.report_dir, exist_ok=True)
        path = os.path.abspath(os.path.join(self.report_dir, LOG_FILE))
        for handler in logger.handlers:
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
                return
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
        if logger.level == logging.NOTSET:
            logger.setLevel(logging.INFO)

    def log_message(self, message: str, level: str = "INFO") -> None:
        logger.log(logging.getLevelName(level.upper()), message)

    def _load_template(self) -> Dict[str, Any]:
        if self.template is None:
            return DEFAULT_TEMPLATE
        if isinstance(self.template, dict):
            return self.template
        return load_recipe_template(self.template)

    def run(self, export_path: Union[str, Path], archive_path: Union[None, str, Path] = None) -> MigrationReport:
        template = self._load_template()
        created_utc = self.created_utc or datetime.now(timezone.utc)

        self.log_message(f"Reading WordPress export {export_path}")
        export = extract_export(str(export_path))

        LinkNormalizer.from_settings(self.settings).normalize(export.items)
        assets = derive_assets(export, self.settings.excluded_extensions)
        self.log_message(f"Found {len(assets)} media files to fetch")

        fetcher = AssetFetcher.from_settings(
            self.working_folder / MEDIA_DIR,
            self.settings,
            http_get=self.http_get,
            report_dir=self.report_dir,
        )
        with ThreadPoolExecutor(max_workers=1) as background:
            pending = background.submit(fetcher.fetch, assets, self.settings.download_concurrency)

            taxonomy = TaxonomyResolver.from_export(export, self.settings)
            categories, tags = taxonomy.term_items(created_utc)
            pages = self.page_builder.build(export, assets, taxonomy)
            posts = self.post_builder.build(export, assets, taxonomy)
            redirects = (
                redirect_items(export.items, created_utc=created_utc) if self.settings.create_redirects else []
            )

            results = pending.result()

        assembler = BundleAssembler(self.working_folder)
        media = assembler.media_step(assets)
        assembler.prune_failed(media, fetcher.failures)
        content = assembler.content_step(categories, tags, pages, posts, redirects)
        assembler.write(assembler.assemble(template, media, content))
        assembler.stage_files(results)
        archive = assembler.package(archive_path)

        counts = {
            "categories": len(categories),
            "tags": len(tags),
            "pages": len(pages),
            "posts": len(posts),
            "redirects": len(redirects),
            "media": len(media["Files"]),
            "attachments": export.count(ItemType.ATTACHMENT),
            "failed_media": len(fetcher.failures),
        }
        report_ok("RECIPE_WRITTEN", {"archive": str(archive)}, counts, report_dir=self.report_dir)
        for failure in fetcher.failures:
            self.log_message(f"Media not migrated: {failure['url']} ({failure['reason']})", "WARNING")
        self.log_message(f"Recipe archive written to {archive}")
        return MigrationReport(
            archive=archive,
            counts=counts,
            failures=[{"url": f["url"], "reason": f["reason"]} for f in fetcher.failures],
            export=export,
        )
