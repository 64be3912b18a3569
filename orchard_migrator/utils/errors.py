"""
Error types and structured event reporting for the migration.

Fatal problems (a malformed export, a builder missing its required
container id, an unreadable recipe template) are raised as subclasses of
:class:`MigrationError` and abort the run before any output is written.

Per-asset outcomes never abort the run.  They are appended to JSON Lines
files under ``reports/migration`` so that the information can be reviewed
or parsed after a run:

``report_error``
    Record a failed event for an asset or content item.  An optional
    exception or reason string is serialized to the log.

``report_ok``
    Record a successful event.  Additional key/value information can be
    attached to the entry via the ``extra`` parameter.

The ``ERRORS`` dictionary maps event codes to human readable messages.
Codes not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """Base class for unrecoverable migration failures."""


class ExportParseError(MigrationError):
    """The WordPress export is malformed or truncated."""


class BuilderConfigurationError(MigrationError):
    """A content builder is missing configuration it cannot run without."""


class RecipeTemplateError(MigrationError):
    """The template recipe is missing or does not contain a ``steps`` list."""


class PreFlightCheckError(MigrationError):
    """Custom exception for pre-flight check failures."""
    pass


# Mapping of event codes used throughout the migration to descriptive messages.
# The keys include both error and success codes as the same lookup is used by
# :func:`report_error` and :func:`report_ok`.
ERRORS: Dict[str, str] = {
    "MEDIA_DOWNLOAD": "Failed to download media file",
    "MEDIA_DOWNLOADED": "Media file downloaded",
    "MEDIA_SKIPPED": "Media file already present, download skipped",
    "TERM_UNRESOLVED": "Taxonomy term referenced by an item was not found",
    "RECIPE_WRITTEN": "Recipe archive created",
}

REPORT_DIR = os.path.join("reports", "migration")
_ERROR_LOG = "errors.jsonl"
_OK_LOG = "success.jsonl"


def _write_jsonl(path: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``path``."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")


def report_error(
    code: str,
    subject: Dict[str, Any],
    exc: Optional[Union[Exception, str]] = None,
    *,
    report_dir: str = REPORT_DIR,
) -> Dict[str, Any]:
    """Log an error event for ``subject`` and return the written entry.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    subject:
        Dictionary describing what failed.  For media this is usually
        ``{"url": ..., "path": ...}``; its keys are merged into the entry.
    exc:
        Optional exception instance or reason string.  Its string
        representation is included in the log entry.
    report_dir:
        Directory holding the JSON Lines files.
    """
    message = ERRORS.get(code, code)
    entry: Dict[str, Any] = {"code": code, "message": message}
    entry.update(subject)
    if exc is not None:
        entry["error"] = str(exc)
    logger.debug("%s - %s", message, subject)
    _write_jsonl(os.path.join(report_dir, _ERROR_LOG), entry)
    return entry


def report_ok(
    code: str,
    subject: Dict[str, Any],
    extra: Optional[Dict[str, Any]] = None,
    *,
    report_dir: str = REPORT_DIR,
) -> Dict[str, Any]:
    """Log a successful event for ``subject`` and return the written entry."""
    message = ERRORS.get(code, code)
    entry: Dict[str, Any] = {"code": code, "message": message}
    entry.update(subject)
    if extra:
        entry.update(extra)
    _write_jsonl(os.path.join(report_dir, _OK_LOG), entry)
    return entry
