from __future__ import annotations

import re
from pathlib import Path

# Characters that are not allowed in a file name on at least one platform
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitise_relative_path(url: str, strip_trailing_slashes: bool = False) -> str:
    """
    Remove the scheme and host from ``url`` and return the rest of the path
    without its leading slash.

    ``http://example.com/2020/01/post-title/`` becomes
    ``2020/01/post-title/`` (or ``2020/01/post-title`` when
    ``strip_trailing_slashes`` is set).  A bare host yields ``""``.
    """
    url = url or ""
    without_scheme = url.split("//", 1)[1] if "//" in url else url
    _, sep, relative = without_scheme.partition("/")
    if not sep:
        relative = ""
    if strip_trailing_slashes:
        relative = relative.rstrip("/")
    return relative


def safe_filename(name: str) -> str:
    """Replace characters that are invalid in file names with ``_``."""
    return _INVALID_FILENAME_CHARS.sub("_", name)


def safe_target_path(root: Path, relative_path: str) -> Path:
    """
    Map a sanitized relative URL path to a file below ``root``.

    Path separators become directories; every segment has invalid file
    name characters replaced.  ``.``/``..`` segments are dropped so the
    result can never escape ``root``.
    """
    directory, _, filename = relative_path.rpartition("/")
    segments = [
        safe_filename(segment)
        for segment in directory.split("/")
        if segment and segment not in (".", "..")
    ]
    filename = safe_filename(filename)
    if filename in ("", ".", ".."):
        filename = "_"
    return Path(root).joinpath(*segments, filename)
