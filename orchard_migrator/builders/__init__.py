"""
Theme specific content builders.

Each theme contributes one page builder and one post builder; the
``THEMES`` registry maps a :class:`~orchard_migrator.models.settings.Theme`
to that pair.  Adding a theme means subclassing :class:`ContentBuilder`
and registering the pair here.
"""

from typing import Dict, Tuple, Type

from orchard_migrator.models.settings import RecipeSettings, Theme

from .base import BuildContext, ContentBuilder
from .etch_play import EtchPlayPageBuilder, EtchPlayPostBuilder
from .the_blog import TheBlogPageBuilder, TheBlogPostBuilder

THEMES: Dict[Theme, Tuple[Type[ContentBuilder], Type[ContentBuilder]]] = {
    Theme.THE_BLOG: (TheBlogPageBuilder, TheBlogPostBuilder),
    Theme.ETCH_PLAY_BOILERPLATE: (EtchPlayPageBuilder, EtchPlayPostBuilder),
}


def create_builders(settings: RecipeSettings) -> Tuple[ContentBuilder, ContentBuilder]:
    """Instantiate the ``(page, post)`` builders for the configured theme."""
    page_cls, post_cls = THEMES[Theme(settings.theme)]
    parent_id = settings.resolved_posts_list_id()
    return (
        page_cls(settings, parent_id if page_cls.requires_parent_id else None),
        post_cls(settings, parent_id if post_cls.requires_parent_id else None),
    )


__all__ = [
    "THEMES",
    "BuildContext",
    "ContentBuilder",
    "EtchPlayPageBuilder",
    "EtchPlayPostBuilder",
    "TheBlogPageBuilder",
    "TheBlogPostBuilder",
    "create_builders",
]
