import json
import os
import sys
import threading

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
import requests

from orchard_migrator.extractors.wordpress_extractor import extract_export
from orchard_migrator.migrators.asset_fetcher import (
    DOWNLOADED,
    FAILED,
    SKIPPED,
    AssetFetcher,
    derive_assets,
)
from orchard_migrator.models.records import AssetReference

SAMPLE_EXPORT = os.path.join(os.path.dirname(__file__), "data", "sample_export.xml")


def make_response(status: int, body: bytes = b"", url: str = "http://example.com/") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = url
    response._content = body
    response._content_consumed = True
    return response


class FakeGet:
    """Replays a scripted list of outcomes per URL and records each call."""

    def __init__(self, script):
        self.script = {url: list(outcomes) for url, outcomes in script.items()}
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, url, **kwargs):
        with self._lock:
            self.calls.append((url, kwargs))
            outcome = self.script[url].pop(0) if len(self.script[url]) > 1 else self.script[url][0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def count(self, url):
        return sum(1 for called, _ in self.calls if called == url)


def ref(path, owner=1):
    return AssetReference(owner_id=owner, relative_path=path, url=f"http://example.com/{path}")


def test_derive_assets_from_attachments():
    export = extract_export(SAMPLE_EXPORT)
    assets = derive_assets(export)
    assert [(a.owner_id, a.relative_path) for a in assets] == [
        (300, "wp-content/uploads/2020/03/photo.jpg"),
        (301, "wp-content/uploads/2020/03/missing.png"),
    ]


def test_derive_assets_skips_excluded_extensions():
    export = extract_export(SAMPLE_EXPORT)
    export.find_item(301).attachment_url = "http://example.com/download.php"
    assert [a.owner_id for a in derive_assets(export, ["php"])] == [300]


def test_derive_assets_keeps_one_reference_per_media_path():
    export = extract_export(SAMPLE_EXPORT)
    export.find_item(301).attachment_url = "https://example.com/wp-content/uploads/2020/03/photo.jpg"
    assets = derive_assets(export)
    assert [(a.owner_id, a.url) for a in assets] == [
        (300, "http://example.com/wp-content/uploads/2020/03/photo.jpg"),
    ]


def test_successful_download_writes_file(tmp_path):
    asset = ref("wp-content/uploads/a.jpg")
    fake = FakeGet({asset.url: [make_response(200, b"jpeg-bytes")]})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    [result] = fetcher.fetch([asset])

    assert result.status == DOWNLOADED
    assert result.attempts == 1 and result.retries == 0
    assert (tmp_path / "media" / "wp-content" / "uploads" / "a.jpg").read_bytes() == b"jpeg-bytes"
    _, kwargs = fake.calls[0]
    assert kwargs["headers"] == {"Connection": "close"}
    assert kwargs["allow_redirects"] is True
    assert kwargs["timeout"] == (10.0, 10.0)
    assert fetcher.failures == []


def test_404_fails_without_retry(tmp_path):
    asset = ref("gone.jpg")
    fake = FakeGet({asset.url: [make_response(404)]})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    [result] = fetcher.fetch([asset])

    assert result.status == FAILED
    assert result.retries == 0
    assert fake.count(asset.url) == 1
    assert fetcher.failures == [{"url": asset.url, "path": "gone.jpg", "reason": "HTTP 404"}]
    assert not (tmp_path / "media" / "gone.jpg").exists()


def test_403_and_other_statuses_fail_immediately(tmp_path):
    forbidden, broken = ref("forbidden.jpg"), ref("broken.jpg")
    fake = FakeGet({forbidden.url: [make_response(403)], broken.url: [make_response(500)]})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    results = fetcher.fetch([forbidden, broken])

    assert [r.status for r in results] == [FAILED, FAILED]
    assert fake.count(forbidden.url) == 1
    assert fake.count(broken.url) == 1


def test_timeouts_exhaust_five_retries(tmp_path):
    asset = ref("slow.jpg")
    fake = FakeGet({asset.url: [requests.Timeout("read timed out")]})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    [result] = fetcher.fetch([asset])

    assert result.status == FAILED
    assert result.attempts == 6
    assert result.retries == 5
    assert fake.count(asset.url) == 6
    assert "5 retries" in fetcher.failures[0]["reason"]


def test_transient_error_then_success(tmp_path):
    asset = ref("flaky.jpg")
    fake = FakeGet(
        {
            asset.url: [
                requests.ConnectionError("reset"),
                make_response(408),
                requests.exceptions.ChunkedEncodingError("cut"),
                make_response(200, b"ok"),
            ]
        }
    )
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    [result] = fetcher.fetch([asset])

    assert result.status == DOWNLOADED
    assert result.retries == 3
    assert (tmp_path / "media" / "flaky.jpg").read_bytes() == b"ok"


def test_unexpected_exception_fails_once(tmp_path):
    asset = ref("weird.jpg")
    fake = FakeGet({asset.url: [ValueError("boom")]})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    [result] = fetcher.fetch([asset])

    assert result.status == FAILED
    assert fake.count(asset.url) == 1
    assert result.reason == "ValueError: boom"


def test_existing_file_is_skipped_without_request(tmp_path):
    asset = ref("cached/photo.jpg")
    target = tmp_path / "media" / "cached" / "photo.jpg"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"cached")
    fake = FakeGet({})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    [result] = fetcher.fetch([asset])

    assert result.status == SKIPPED
    assert result.ok
    assert fake.calls == []


def test_spaces_in_url_are_encoded(tmp_path):
    asset = AssetReference(owner_id=1, relative_path="my photo.jpg", url="http://example.com/my photo.jpg")
    fake = FakeGet({"http://example.com/my%20photo.jpg": [make_response(200, b"x")]})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    [result] = fetcher.fetch([asset])

    assert result.status == DOWNLOADED
    assert fake.calls[0][0] == "http://example.com/my%20photo.jpg"


def test_results_keep_input_order_and_share_duplicate_urls(tmp_path):
    first, second = ref("a.jpg", owner=1), ref("b.jpg", owner=2)
    duplicate = AssetReference(owner_id=3, relative_path="a.jpg", url=first.url)
    fake = FakeGet({first.url: [make_response(200, b"a")], second.url: [make_response(404)]})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    results = fetcher.fetch([first, second, duplicate], concurrency=4)

    assert [r.asset.owner_id for r in results] == [1, 2, 3]
    assert [r.status for r in results] == [DOWNLOADED, FAILED, DOWNLOADED]
    assert fake.count(first.url) == 1


def test_failures_are_written_to_error_report(tmp_path):
    asset = ref("gone.jpg")
    fake = FakeGet({asset.url: [make_response(404)]})
    reports = tmp_path / "reports"
    AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(reports)).fetch([asset])

    lines = (reports / "errors.jsonl").read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[0])
    assert entry["code"] == "MEDIA_DOWNLOAD"
    assert entry["url"] == asset.url
    assert entry["error"] == "HTTP 404"


@pytest.mark.parametrize("retries", [0, 2])
def test_retry_budget_is_configurable(tmp_path, retries):
    asset = ref("slow.jpg")
    fake = FakeGet({asset.url: [requests.Timeout("t")]})
    fetcher = AssetFetcher(
        tmp_path / "media", max_retries=retries, http_get=fake, report_dir=str(tmp_path / "reports")
    )
    fetcher.fetch([asset])
    assert fake.count(asset.url) == retries + 1


def test_references_sharing_a_path_are_downloaded_once(tmp_path):
    plain = AssetReference(owner_id=1, relative_path="up/a.jpg", url="http://example.com/up/a.jpg")
    secure = AssetReference(owner_id=2, relative_path="up/a.jpg", url="https://example.com/up/a.jpg")
    fake = FakeGet({plain.url: [make_response(404)], secure.url: [make_response(200, b"a")]})
    fetcher = AssetFetcher(tmp_path / "media", http_get=fake, report_dir=str(tmp_path / "reports"))

    results = fetcher.fetch([plain, secure], concurrency=4)

    assert [r.status for r in results] == [FAILED, FAILED]
    assert fake.count(secure.url) == 0
    assert not (tmp_path / "media" / "up" / "a.jpg").exists()
