from __future__ import annotations

import json
import os
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Theme(str, Enum):
    THE_BLOG = "TheBlog"
    ETCH_PLAY_BOILERPLATE = "EtchPlayBoilerplate"


# Container ids shipped with each theme's template recipe
_DEFAULT_POSTS_LIST_IDS: Dict[Theme, str] = {
    Theme.THE_BLOG: "4m2pj0mpy25450jcz817odyhbg",
    Theme.ETCH_PLAY_BOILERPLATE: "49q1qde4sg4q27vb9jt1gac6w5",
}

DEFAULT_CATEGORIES_TAXONOMY_ID = "4zwnd978ed66tvxj1cb69mbc5z"
DEFAULT_TAGS_TAXONOMY_ID = "49ymvebjd46550a9z95j4udiej"


class RecipeSettings(BaseModel):
    """Options that shape the generated recipe.

    Field names follow the camelCase keys of the ``recipe`` section of
    ``config/migration_config.json``; snake_case names are accepted too.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    theme: Theme = Theme.THE_BLOG
    create_redirects: bool = Field(False, alias="createRedirects")
    permalink_structure: str = Field("yyyy/MM/dd", alias="permalinkStructure")
    strip_trailing_slashes: bool = Field(True, alias="stripTrailingSlashes")
    slug_removals: List[str] = Field(default_factory=lambda: ["?"], alias="slugRemovals")

    posts_list_id: Optional[str] = Field(None, alias="postsListId")
    categories_taxonomy_id: str = Field(DEFAULT_CATEGORIES_TAXONOMY_ID, alias="categoriesTaxonomyId")
    tags_taxonomy_id: str = Field(DEFAULT_TAGS_TAXONOMY_ID, alias="tagsTaxonomyId")
    author_ids: Dict[str, str] = Field(default_factory=dict, alias="authorIds")

    excluded_extensions: List[str] = Field(default_factory=lambda: ["php"], alias="excludedExtensions")
    download_concurrency: int = Field(4, ge=1, alias="downloadConcurrency")
    download_timeout: float = Field(10.0, gt=0, alias="downloadTimeout")
    download_retries: int = Field(5, ge=0, alias="downloadRetries")

    @field_validator("excluded_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, v: Optional[List[str]]):
        if not v:
            return []
        return [str(ext).strip().lstrip(".").lower() for ext in v if str(ext).strip()]

    def resolved_posts_list_id(self) -> str:
        """Return the configured posts container id, or the theme default.

        An explicitly empty value is returned as-is so that builders can
        reject it.
        """
        if self.posts_list_id is None:
            return _DEFAULT_POSTS_LIST_IDS[self.theme]
        return self.posts_list_id


def load_settings(config_file: Optional[str] = None, overrides: Optional[Dict[str, object]] = None) -> RecipeSettings:
    """
    Build :class:`RecipeSettings` from the ``recipe`` section of a JSON
    config file.  Missing files yield the defaults.  ``WP2OC_THEME`` in
    the environment overrides the theme; ``overrides`` wins over both.
    """
    config: Dict[str, object] = {}
    if config_file and os.path.exists(config_file):
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)

    section = dict(config.get("recipe") or {})
    env_theme = os.getenv("WP2OC_THEME")
    if env_theme:
        section["theme"] = env_theme
    if overrides:
        section.update(overrides)
    return RecipeSettings.model_validate(section)
