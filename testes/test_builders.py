import json
import os
import sys
import unittest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from orchard_migrator.builders import (
    THEMES,
    EtchPlayPageBuilder,
    EtchPlayPostBuilder,
    TheBlogPageBuilder,
    TheBlogPostBuilder,
    create_builders,
)
from orchard_migrator.extractors.wordpress_extractor import extract_export
from orchard_migrator.migrators.asset_fetcher import derive_assets
from orchard_migrator.models.content_item import iter_content_item_ids
from orchard_migrator.models.settings import RecipeSettings, Theme
from orchard_migrator.utils.errors import BuilderConfigurationError
from orchard_migrator.utils.permalinks import LinkNormalizer
from orchard_migrator.utils.taxonomy import TaxonomyResolver

SAMPLE_EXPORT = os.path.join(os.path.dirname(__file__), "data", "sample_export.xml")


def load(settings):
    export = extract_export(SAMPLE_EXPORT)
    LinkNormalizer.from_settings(settings).normalize(export.items)
    return export, derive_assets(export), TaxonomyResolver.from_export(export, settings)


class TestThemeRegistry(unittest.TestCase):
    def test_registry_pairs(self):
        self.assertEqual(THEMES[Theme.THE_BLOG], (TheBlogPageBuilder, TheBlogPostBuilder))
        self.assertEqual(THEMES[Theme.ETCH_PLAY_BOILERPLATE], (EtchPlayPageBuilder, EtchPlayPostBuilder))

    def test_create_builders_uses_theme_default_list_id(self):
        page, post = create_builders(RecipeSettings(theme="EtchPlayBoilerplate"))
        self.assertIsInstance(page, EtchPlayPageBuilder)
        self.assertIsInstance(post, EtchPlayPostBuilder)
        self.assertEqual(post.parent_id, "49q1qde4sg4q27vb9jt1gac6w5")
        self.assertIsNone(page.parent_id)

    def test_empty_parent_id_fails_at_construction(self):
        with self.assertRaises(BuilderConfigurationError):
            TheBlogPostBuilder(RecipeSettings(), parent_id="")
        with self.assertRaises(BuilderConfigurationError):
            create_builders(RecipeSettings(postsListId=""))

    def test_pages_do_not_need_a_parent(self):
        TheBlogPageBuilder(RecipeSettings(), parent_id=None)

    def test_missing_taxonomy_is_rejected(self):
        settings = RecipeSettings()
        export, assets, _ = load(settings)
        with self.assertRaises(BuilderConfigurationError):
            TheBlogPostBuilder(settings, parent_id="list").build(export, assets, None)


def test_the_blog_post_shape():
    settings = RecipeSettings(authorIds={"admin": "user-1"})
    export, assets, taxonomy = load(settings)
    posts = TheBlogPostBuilder(settings, parent_id="blog-list").build(export, assets, taxonomy)

    assert [p.content_item_id for p in posts] == ["wppost-100", "wppost-101"]
    data = posts[0].to_recipe()
    assert data["ContentType"] == "BlogPost"
    assert data["Published"] is True
    assert data["Owner"] == "user-1"
    assert data["Author"] == "admin"
    assert data["ContainedPart"] == {"ListContentItemId": "blog-list", "Order": 0}
    assert data["MarkdownBodyPart"]["Markdown"].startswith("## Title")
    assert data["AutoroutePart"]["Path"] == "2020/03/whats-new"
    assert data["BlogPost"]["Category"]["TermContentItemIds"] == ["wpcat-1", "wpcat-2"]
    assert data["BlogPost"]["Tags"]["TermContentItemIds"] == ["wptag-10"]
    assert data["BlogPost"]["Image"]["Paths"] == ["wp-content/uploads/2020/03/photo.jpg"]
    assert data["TitlePart"]["Title"] == "What's New?"

    draft = posts[1].to_recipe()
    assert draft["Published"] is False
    assert draft["PublishedUtc"] is None


def test_the_blog_page_keeps_html_verbatim():
    settings = RecipeSettings()
    export, assets, taxonomy = load(settings)
    [page] = TheBlogPageBuilder(settings).build(export, assets, taxonomy)
    data = page.to_recipe()
    assert data["ContentItemId"] == "wppage-200"
    assert data["ContentType"] == "Page"
    [widget] = data["FlowPart"]["Widgets"]
    assert widget["ContentItemId"] == "wppagewidget-200"
    assert widget["ContentType"] == "RawHtml"
    assert widget["RawHtml"]["Content"]["Html"] == '<p>About [caption id="1"]us[/caption]</p>'
    assert widget["FlowMetadata"] == {"Alignment": 3, "Size": 100}


def test_etch_play_post_shape():
    settings = RecipeSettings(theme="EtchPlayBoilerplate", createRedirects=True)
    export, assets, taxonomy = load(settings)
    posts = EtchPlayPostBuilder(settings, parent_id="news-list").build(export, assets, taxonomy)
    data = posts[0].to_recipe()
    assert data["ContentType"] == "NewsPost"
    assert data["AutoroutePart"]["Path"] == "2020/03/04/whats-new"
    news = data["NewsPost"]
    blocks = json.loads(news["Content"]["Data"])
    assert [b["type"] for b in blocks["blocks"]] == ["header", "paragraph"]
    assert news["Thumbnail"]["Paths"] == ["wp-content/uploads/2020/03/photo.jpg"]
    assert news["Author"]["Text"] == "Alice Admin"
    assert news["Categories"]["TaxonomyContentItemId"] == settings.categories_taxonomy_id
    assert news["Tags"]["TermContentItemIds"] == ["wptag-10"]
    assert posts[1].to_recipe()["NewsPost"]["Thumbnail"]["Paths"] == [
        "wp-content/uploads/2020/03/missing.png"
    ]


def test_etch_play_page_nests_section_and_html():
    settings = RecipeSettings(theme="EtchPlayBoilerplate")
    export, assets, taxonomy = load(settings)
    [page] = EtchPlayPageBuilder(settings).build(export, assets, taxonomy)
    data = page.to_recipe()
    [section] = data["Page"]["Content"]["ContentItems"]
    assert section["ContentType"] == "Section"
    assert section["TitlePart"]["Title"] == "Imported Content"
    [html] = section["Section"]["Children"]["ContentItems"]
    assert html["ContentType"] == "Html"
    assert html["Html"]["Body"]["Html"] == "<p>About us</p>"
    assert sorted(iter_content_item_ids(data)) == ["wppage-200", "wppagesection-200", "wppagewidget-200"]
