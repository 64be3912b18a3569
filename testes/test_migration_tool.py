import json
import logging
import os
import sys
import zipfile
from datetime import datetime, timezone

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
import requests

from orchard_migrator.migration_tool import RecipeMigrationTool
from orchard_migrator.models.settings import RecipeSettings
from orchard_migrator.utils.errors import BuilderConfigurationError, ExportParseError

SAMPLE_EXPORT = os.path.join(os.path.dirname(__file__), "data", "sample_export.xml")
PHOTO_URL = "http://example.com/wp-content/uploads/2020/03/photo.jpg"
MISSING_URL = "http://example.com/wp-content/uploads/2020/03/missing.png"


def fake_get(url, **kwargs):
    response = requests.Response()
    response.url = url
    response.status_code = 200 if url == PHOTO_URL else 404
    response._content = b"jpeg" if url == PHOTO_URL else b""
    response._content_consumed = True
    return response


@pytest.fixture(autouse=True)
def detach_log_files():
    yield
    logger = logging.getLogger("orchard_migrator")
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()


def make_tool(tmp_path, **settings):
    return RecipeMigrationTool(
        RecipeSettings(**settings),
        tmp_path / "work",
        {"name": "Template", "steps": [{"name": "feature", "enable": []}]},
        http_get=fake_get,
        report_dir=str(tmp_path / "reports"),
        created_utc=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def read_recipe(archive):
    with zipfile.ZipFile(archive) as zf:
        return json.loads(zf.read("recipe.json")), sorted(zf.namelist())


def test_end_to_end_the_blog(tmp_path):
    report = make_tool(tmp_path).run(SAMPLE_EXPORT)

    assert report.archive == tmp_path / "work" / "recipe.zip"
    assert not (tmp_path / "work" / "recipe").exists()
    assert report.failures == [{"url": MISSING_URL, "reason": "HTTP 404"}]
    assert report.counts["posts"] == 2
    assert report.counts["pages"] == 1
    assert report.counts["redirects"] == 0

    recipe, names = read_recipe(report.archive)
    assert names == ["recipe.json", "wp-content/uploads/2020/03/photo.jpg"]
    feature, media, content = recipe["steps"]
    assert feature["name"] == "feature"
    assert media["Files"] == [
        {"SourcePath": "wp-content/uploads/2020/03/photo.jpg", "TargetPath": "wp-content/uploads/2020/03/photo.jpg"}
    ]
    ids = [entry["ContentItemId"] for entry in content["data"]]
    assert ids == ["wpcat-1", "wpcat-2", "wpcat-3", "wptag-10", "wptag-11", "wppage-200", "wppost-100", "wppost-101"]
    assert content["data"][-2]["ContainedPart"]["ListContentItemId"] == "4m2pj0mpy25450jcz817odyhbg"


def test_end_to_end_etch_play_with_redirects(tmp_path):
    report = make_tool(tmp_path, theme="EtchPlayBoilerplate", createRedirects=True).run(
        SAMPLE_EXPORT, tmp_path / "out" / "site.zip"
    )

    assert report.archive == tmp_path / "out" / "site.zip"
    recipe, _ = read_recipe(report.archive)
    content = recipe["steps"][-1]["data"]
    redirects = [entry for entry in content if entry["ContentType"] == "Redirect"]
    assert [r["RedirectPart"]["ToUrl"] for r in redirects] == ["/2020/03/04/whats-new", "/draft-idea", "/about-us"]
    assert report.counts["redirects"] == 3
    news = next(entry for entry in content if entry["ContentType"] == "NewsPost")
    assert news["AutoroutePart"]["Path"] == "2020/03/04/whats-new"


def test_second_run_reuses_downloaded_media(tmp_path):
    make_tool(tmp_path).run(SAMPLE_EXPORT)
    calls = []

    def counting_get(url, **kwargs):
        calls.append(url)
        return fake_get(url, **kwargs)

    tool = make_tool(tmp_path)
    tool.http_get = counting_get
    tool.run(SAMPLE_EXPORT)
    assert calls == [MISSING_URL]


def test_configuration_error_aborts_before_output(tmp_path):
    with pytest.raises(BuilderConfigurationError):
        make_tool(tmp_path, postsListId="")
    assert not (tmp_path / "work").exists()


def test_malformed_export_aborts_before_output(tmp_path):
    broken = tmp_path / "broken.xml"
    broken.write_text("<rss><channel><item><wp:post_id>1", encoding="utf-8")
    with pytest.raises(ExportParseError):
        make_tool(tmp_path).run(str(broken))
    assert not (tmp_path / "work" / "recipe.zip").exists()


def test_log_message_goes_to_migration_log(tmp_path):
    tool = make_tool(tmp_path)
    tool.log_message("hello from the test", "WARNING")
    log = (tmp_path / "reports" / "migration.log").read_text(encoding="utf-8")
    assert "WARNING" in log and "hello from the test" in log


def test_media_copies_under_one_path_stay_consistent_with_archive(tmp_path):
    export = tmp_path / "dupes.xml"
    export.write_text(
        '<rss xmlns:wp="http://wordpress.org/export/1.2/"><channel>'
        "<item><wp:post_id>1</wp:post_id><wp:post_type>attachment</wp:post_type>"
        "<wp:attachment_url>http://example.com/up/a.jpg</wp:attachment_url></item>"
        "<item><wp:post_id>2</wp:post_id><wp:post_type>attachment</wp:post_type>"
        "<wp:attachment_url>https://example.com/up/a.jpg</wp:attachment_url></item>"
        "</channel></rss>",
        encoding="utf-8",
    )

    def get(url, **kwargs):
        response = requests.Response()
        response.url = url
        response.status_code = 200 if url.startswith("https:") else 404
        response._content = b"jpeg" if url.startswith("https:") else b""
        response._content_consumed = True
        return response

    tool = make_tool(tmp_path)
    tool.http_get = get
    report = tool.run(str(export))

    recipe, names = read_recipe(report.archive)
    media = recipe["steps"][1]
    assert media["Files"] == []
    assert names == ["recipe.json"]
    assert report.failures == [{"url": "http://example.com/up/a.jpg", "reason": "HTTP 404"}]
