"""
Entry point for the WordPress to Orchard Core migration tool.
"""

import argparse
import logging
import sys

from orchard_migrator.migration_tool import RecipeMigrationTool
from orchard_migrator.models.settings import load_settings
from orchard_migrator.utils.errors import MigrationError
from orchard_migrator.utils.pre_flight_checks import run_pre_flight_checks
from orchard_migrator.utils.redirects import generate_redirects_csv

CONFIG_FILE = "config/migration_config.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert a WordPress export (WXR) into an Orchard Core recipe archive."
    )
    parser.add_argument("export", help="Path to the WordPress export XML file")
    parser.add_argument("--config", default=CONFIG_FILE, help="JSON config file with a 'recipe' section")
    parser.add_argument("--template", help="Template recipe the media and content steps are appended to")
    parser.add_argument("--working-folder", default="work", help="Folder for downloads and the archive")
    parser.add_argument("--archive", help="Archive path (default: <working folder>/recipe.zip)")
    parser.add_argument("--theme", choices=["TheBlog", "EtchPlayBoilerplate"], help="Target Orchard Core theme")
    parser.add_argument("--redirects", action="store_true", help="Rewrite links and add redirect items")
    parser.add_argument("--old-domain", default="", help="Legacy site URL used in the redirect CSV")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug messages")
    return parser


def main(argv=None) -> int:
    """
    Main function to run the WordPress to Orchard Core migration tool.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    overrides = {}
    if args.theme:
        overrides["theme"] = args.theme
    if args.redirects:
        overrides["createRedirects"] = True

    try:
        settings = load_settings(args.config, overrides)
        run_pre_flight_checks(args.export, settings, args.template, args.working_folder)
        tool = RecipeMigrationTool(settings, args.working_folder, args.template)
        tool.log_message("Starting WordPress to Orchard Core migration.")
        report = tool.run(args.export, args.archive)
    except MigrationError as e:
        logging.getLogger("orchard_migrator").error("Migration aborted: %s", e)
        return 1

    if settings.create_redirects:
        path = generate_redirects_csv(report.export.items, old_domain=args.old_domain)
        tool.log_message(f"Redirect CSV written to {path}")

    tool.log_message(f"Migration process finished: {report.counts}")
    if report.failures:
        tool.log_message(f"{len(report.failures)} media files could not be downloaded.", level="WARNING")
    return 0


if __name__ == "__main__":
    sys.exit(main())
