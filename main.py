"""
Entry point for the WordPress to Contentful migration tool.
"""

import argparse
import asyncio
import sys

from wp_contentful.migration_tool import ContentfulMigrationTool
from wp_contentful.sequencer import FAMILY_ORDER
from wp_contentful.utils.errors import FatalMigrationError

CONFIG_FILE = "config/migration_config.json"
STEPS = ("export", "assets", "content", "validate", "all")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Migrates a WordPress site (posts, pages, taxonomies, authors, media) to Contentful."
    )
    parser.add_argument("step", choices=STEPS, help="Migration step to run ('all' runs every step in order)")
    parser.add_argument(
        "--config",
        default=CONFIG_FILE,
        help=f"JSON configuration file (default: {CONFIG_FILE}); environment variables fill missing keys",
    )
    parser.add_argument("--data-dir", help="Directory for the export and identity maps (default: data)")
    parser.add_argument("--batch-size", type=int, help="Entities created concurrently per batch (default: 5)")
    parser.add_argument("--delay-ms", type=int, help="Pause between batches in milliseconds (default: 1000)")
    parser.add_argument(
        "--family",
        action="append",
        choices=FAMILY_ORDER,
        help="Restrict the content step to this family (repeatable)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Transform everything but write nothing to Contentful")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    tool = ContentfulMigrationTool(config_file=args.config)
    migration = tool.config["migration"]
    if args.data_dir:
        migration["data_dir"] = args.data_dir
    if args.batch_size is not None:
        migration["batch_size"] = args.batch_size
    if args.delay_ms is not None:
        migration["delay_ms"] = args.delay_ms
    if args.dry_run:
        migration["dry_run"] = True

    tool.log_message(f"Starting WordPress to Contentful migration: {args.step}")
    try:
        if args.step in ("export", "all"):
            tool.export()
        if args.step in ("assets", "all"):
            asyncio.run(tool.migrate_assets())
        if args.step in ("content", "all"):
            asyncio.run(tool.migrate_content(args.family))
        if args.step in ("validate", "all"):
            tool.validate()
    except FatalMigrationError as e:
        tool.log_message(str(e), "ERROR")
        return 1

    tool.log_message("Migration process finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
