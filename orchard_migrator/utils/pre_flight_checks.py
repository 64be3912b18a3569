import logging
import os
from typing import Optional

from orchard_migrator.models.settings import RecipeSettings
from orchard_migrator.utils.errors import PreFlightCheckError

logger = logging.getLogger(__name__)

# Bytes read from the export to recognise an RSS/WXR document
_SNIFF_BYTES = 2048


def run_pre_flight_checks(export_path: str, settings: RecipeSettings, template_path: Optional[str] = None,
                          working_folder: Optional[str] = None) -> None:
    """
    Verifies that the inputs of a migration run are usable before any work is done.

    Args:
        export_path: Path of the WordPress export (WXR) file.
        settings: The recipe settings for this run.
        template_path: Optional template recipe; when given it must exist.
        working_folder: Optional working folder; it must be creatable and writable.

    Raises:
        PreFlightCheckError: If any check fails.
    """
    logger.info("Running pre-flight checks...")

    # Check 1: the export exists and looks like a WordPress RSS export
    if not export_path or not os.path.isfile(export_path):
        raise PreFlightCheckError(f"WordPress export not found: {export_path}")
    try:
        with open(export_path, "rb") as f:
            head = f.read(_SNIFF_BYTES)
    except OSError as e:
        raise PreFlightCheckError(f"Could not read the WordPress export {export_path}: {e}")
    if b"<rss" not in head:
        raise PreFlightCheckError(f"{export_path} does not look like a WordPress export (no <rss> element)")

    # Check 2: the template recipe exists
    if template_path and not os.path.isfile(template_path):
        raise PreFlightCheckError(f"Recipe template not found: {template_path}")

    # Check 3: the theme has a container for posts
    if not settings.resolved_posts_list_id().strip():
        raise PreFlightCheckError("postsListId is empty; posts would have no list to belong to.")

    # Check 4: the working folder is writable
    if working_folder:
        try:
            os.makedirs(working_folder, exist_ok=True)
        except OSError as e:
            raise PreFlightCheckError(f"Could not create the working folder {working_folder}: {e}")
        if not os.access(working_folder, os.W_OK):
            raise PreFlightCheckError(f"The working folder {working_folder} is not writable.")

    logger.info("Pre-flight checks passed successfully.")
