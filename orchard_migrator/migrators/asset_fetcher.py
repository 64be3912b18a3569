"""
Download media attachments referenced by the export.

Every attachment item with a URL becomes an :class:`AssetReference`.  The
fetcher downloads references concurrently into a persistent download
directory, mirroring each reference's sanitized relative path, so a
second run skips files it already has.

Retry policy
------------
Timeouts, connection errors, interrupted (chunked) transfers and HTTP 408
are transient: the request is retried immediately, up to ``max_retries``
times.  HTTP 404/403, any other HTTP error status and any other exception
fail the asset at once.  A failed asset never aborts the run; it is
returned as a ``failed`` :class:`FetchResult`, appended to
:attr:`AssetFetcher.failures` and written to the error report.

Usage example::

    fetcher = AssetFetcher("work/media", timeout=10, max_retries=5)
    results = fetcher.fetch(derive_assets(export), concurrency=4)
    for failure in fetcher.failures:
        print(failure["url"], failure["reason"])
"""

from __future__ import annotations

import logging
import os
import posixpath
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Union
from urllib.parse import urlparse

import requests

from orchard_migrator.models.records import AssetReference, ItemType, WordpressExport
from orchard_migrator.models.settings import RecipeSettings
from orchard_migrator.utils.errors import REPORT_DIR, report_error, report_ok
from orchard_migrator.utils.urls import safe_target_path, sanitise_relative_path

logger = logging.getLogger(__name__)

DOWNLOADED = "downloaded"
SKIPPED = "skipped"
FAILED = "failed"

TRANSIENT_ERRORS = (
    requests.Timeout,
    requests.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
)
RETRYABLE_STATUS = frozenset({408})

REQUEST_HEADERS = {"Connection": "close"}
CHUNK_SIZE = 64 * 1024


def derive_assets(
    export: WordpressExport,
    excluded_extensions: Iterable[str] = ("php",),
) -> List[AssetReference]:
    """
    Collect one :class:`AssetReference` per attachment item, in source order.

    Attachments without a URL, without a path, or whose URL ends in an
    excluded extension are skipped.  When several URLs clean up to the same
    media path (e.g. the http and https copies of one upload) only the first
    is kept.
    """
    excluded = {ext.lower().lstrip(".") for ext in excluded_extensions}
    refs: List[AssetReference] = []
    seen_paths: Set[str] = set()
    for item in export.items_of(ItemType.ATTACHMENT):
        url = (item.attachment_url or "").strip()
        if not url:
            continue
        extension = posixpath.splitext(urlparse(url).path)[1].lstrip(".").lower()
        if extension in excluded:
            logger.info("Skipping attachment %s with excluded extension: %s", item.id, url)
            continue
        relative_path = sanitise_relative_path(url)
        if not relative_path:
            logger.warning("Attachment %s has no file path in its URL, skipping it: %s", item.id, url)
            continue
        if relative_path in seen_paths:
            logger.info(
                "Attachment %s shares media path %s with an earlier one, skipping: %s", item.id, relative_path, url
            )
            continue
        seen_paths.add(relative_path)
        refs.append(AssetReference(owner_id=item.id, relative_path=relative_path, url=url))
    return refs


@dataclass
class FetchResult:
    asset: AssetReference
    status: str
    path: Optional[Path] = None
    attempts: int = 0
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (DOWNLOADED, SKIPPED)

    @property
    def retries(self) -> int:
        return max(0, self.attempts - 1)


class AssetFetcher:
    """Concurrent, retrying downloader for :class:`AssetReference` objects."""

    def __init__(
        self,
        download_dir: Union[str, Path],
        *,
        timeout: float = 10.0,
        max_retries: int = 5,
        http_get: Callable[..., requests.Response] = requests.get,
        report_dir: str = REPORT_DIR,
    ) -> None:
        self.download_dir = Path(download_dir)
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.report_dir = report_dir
        self._http_get = http_get
        self._lock = threading.Lock()
        self.failures: List[Dict[str, str]] = []

    @classmethod
    def from_settings(cls, download_dir: Union[str, Path], settings: RecipeSettings, **kwargs) -> "AssetFetcher":
        return cls(
            download_dir,
            timeout=settings.download_timeout,
            max_retries=settings.download_retries,
            **kwargs,
        )

    def target_path(self, ref: AssetReference) -> Path:
        return safe_target_path(self.download_dir, ref.relative_path)

    def fetch(self, refs: Iterable[AssetReference], concurrency: int = 4) -> List[FetchResult]:
        """
        Download every reference and return one result per reference, in
        input order.  References sharing a media path are downloaded once.
        """
        refs = list(refs)
        unique: Dict[str, AssetReference] = {}
        for ref in refs:
            unique.setdefault(ref.relative_path, ref)

        with ThreadPoolExecutor(max_workers=max(1, concurrency)) as pool:
            futures = {path: pool.submit(self.fetch_one, ref) for path, ref in unique.items()}
            by_path = {path: future.result() for path, future in futures.items()}

        results: List[FetchResult] = []
        for ref in refs:
            result = by_path[ref.relative_path]
            results.append(result if result.asset == ref else replace(result, asset=ref))

        logger.info(
            "Media: %d downloaded, %d skipped, %d failed",
            sum(1 for r in by_path.values() if r.status == DOWNLOADED),
            sum(1 for r in by_path.values() if r.status == SKIPPED),
            sum(1 for r in by_path.values() if r.status == FAILED),
        )
        return results

    def fetch_one(self, ref: AssetReference) -> FetchResult:
        """Download a single reference.  Never raises."""
        target = self.target_path(ref)
        subject = {"url": ref.url, "path": ref.relative_path}
        if target.exists():
            logger.debug("Already downloaded, skipping: %s", ref.url)
            with self._lock:
                report_ok("MEDIA_SKIPPED", subject, report_dir=self.report_dir)
            return FetchResult(ref, SKIPPED, path=target)

        url = ref.url.replace(" ", "%20")
        attempts = 0
        while True:
            attempts += 1
            try:
                self._download(url, target)
            except TRANSIENT_ERRORS as e:
                if attempts <= self.max_retries:
                    logger.debug("Transient error for %s (attempt %d): %s", url, attempts, e)
                    continue
                return self._fail(ref, attempts, f"gave up after {self.max_retries} retries: {e}")
            except requests.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status in RETRYABLE_STATUS:
                    if attempts <= self.max_retries:
                        logger.debug("HTTP %s for %s (attempt %d)", status, url, attempts)
                        continue
                    return self._fail(ref, attempts, f"gave up after {self.max_retries} retries: HTTP {status}")
                return self._fail(ref, attempts, f"HTTP {status}")
            except Exception as e:  # noqa: BLE001 - any other error fails this asset only
                return self._fail(ref, attempts, f"{type(e).__name__}: {e}")

            with self._lock:
                report_ok("MEDIA_DOWNLOADED", subject, {"attempts": attempts}, report_dir=self.report_dir)
            return FetchResult(ref, DOWNLOADED, path=target, attempts=attempts)

    def _download(self, url: str, target: Path) -> None:
        response = self._http_get(
            url,
            headers=REQUEST_HEADERS,
            timeout=(self.timeout, self.timeout),
            allow_redirects=True,
            stream=True,
        )
        try:
            response.raise_for_status()
            target.parent.mkdir(parents=True, exist_ok=True)
            partial = target.with_name(target.name + ".part")
            try:
                with open(partial, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            fh.write(chunk)
                os.replace(partial, target)
            finally:
                if partial.exists():
                    partial.unlink()
        finally:
            response.close()

    def _fail(self, ref: AssetReference, attempts: int, reason: str) -> FetchResult:
        logger.error("FAIL: %s : %s", ref.url, reason)
        with self._lock:
            self.failures.append({"url": ref.url, "path": ref.relative_path, "reason": reason})
            report_error("MEDIA_DOWNLOAD", {"url": ref.url, "path": ref.relative_path}, reason, report_dir=self.report_dir)
        return FetchResult(ref, FAILED, attempts=attempts, reason=reason)
