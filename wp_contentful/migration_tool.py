"""
High-level orchestration of the WordPress → Contentful migration.

This module defines :class:`ContentfulMigrationTool`, which ties the
extractor, mappers, writers and identity maps together into the four
steps of a migration:

1. ``export``: snapshot the WordPress REST API into ``data/wp-export.json``.
2. ``migrate_assets``: media library → published Contentful assets,
   recorded in ``data/asset-map.json``.
3. ``migrate_content``: authors, tags, categories, posts and pages →
   published entries, recorded in ``data/entry-map.json``.
4. ``validate``: compare the export with the identity maps and write
   ``data/validation-report.json``.

Every step can be re-run; entities already present in an identity map
are skipped.  Configuration is supplied via a JSON file path or directly
as a dictionary, and missing keys are filled from environment variables
and defaults.  With ``migration.dry_run`` enabled nothing is written to
Contentful and the identity maps are left untouched.
"""

from __future__ import annotations

import json
import os
from functools import partial
from typing import Any, Dict, Iterable, Optional

from wp_contentful.extractors.wordpress_extractor import (
    EXPORT_FILE,
    ExportFileReader,
    WordPressClient,
    download_media,
    resolve_export_path,
)
from wp_contentful.mappers.assets import AssetMapper
from wp_contentful.mappers.entries import CONTENT_TYPES, SECTION_CONTENT_TYPE, EntryMapper
from wp_contentful.migrators.contentful_migrator import ContentfulWriter, DryRunWriter, get_entry
from wp_contentful.pipeline import FamilyStats, migrate_family
from wp_contentful.protocols import DestinationWriter
from wp_contentful.sequencer import FAMILY_ORDER, order_families, prepare
from wp_contentful.utils.errors import FatalMigrationError
from wp_contentful.utils.identity_map import IdentityMap
from wp_contentful.utils.log import log_message
from wp_contentful.utils.pre_flight_checks import run_contentful_pre_flight_checks
from wp_contentful import validation

ASSET_MAP_FILE = "asset-map.json"
ENTRY_MAP_FILE = "entry-map.json"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    try:
        return int(value) if value else default
    except ValueError:
        log_message(f"Ignoring non-numeric {name}={value!r}", "WARNING")
        return default


class ContentfulMigrationTool:
    """
    Encapsulates the state and behavior required to migrate a WordPress
    site to Contentful.

    :param config: Configuration dictionary; ignored when ``config_file``
        exists.
    :param config_file: Path of a JSON configuration file.
    :param writer: Destination writer to use instead of the one derived
        from the configuration.
    :param downloader: Media downloader ``url -> (content, content_type)``.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        config_file: Optional[str] = None,
        writer: Optional[DestinationWriter] = None,
        downloader: Any = None,
    ) -> None:
        if config_file and os.path.exists(config_file):
            with open(config_file, "r", encoding="utf-8") as f:
                config = json.load(f)
        elif config is None:
            config = {}

        config.setdefault("contentful", {})
        config["contentful"].setdefault("space_id", os.getenv("CONTENTFUL_SPACE_ID", ""))
        config["contentful"].setdefault("environment", os.getenv("CONTENTFUL_ENVIRONMENT", "master"))
        config["contentful"].setdefault("management_token", os.getenv("CONTENTFUL_MANAGEMENT_TOKEN", ""))
        config["contentful"].setdefault("base_url", "https://api.contentful.com")
        config["contentful"].setdefault("upload_url", "https://upload.contentful.com")
        config["contentful"].setdefault("locale", "en-US")

        config.setdefault("wordpress", {})
        config["wordpress"].setdefault("api_url", os.getenv("WP_API_URL", ""))
        config["wordpress"].setdefault("username", os.getenv("WP_USERNAME", ""))
        config["wordpress"].setdefault("app_password", os.getenv("WP_APP_PASSWORD", ""))
        config["wordpress"].setdefault("embed", os.getenv("WP_EMBED", "").lower() == "true")

        config.setdefault("migration", {})
        config["migration"].setdefault("data_dir", "data")
        config["migration"].setdefault("batch_size", _env_int("BATCH_SIZE", 5))
        config["migration"].setdefault("delay_ms", _env_int("DELAY_MS", 1000))
        config["migration"].setdefault("max_asset_size_mb", _env_int("MAX_ASSET_SIZE_MB", 500))
        config["migration"].setdefault("dry_run", False)

        self.config = config
        self._writer = writer
        self._downloader = downloader
        self._skip_preflight = writer is not None
        self._verified_types: set = set()
        self._preflight_done = False

    # ------------------------------------------------------------------
    # Settings and paths
    # ------------------------------------------------------------------

    @property
    def dry_run(self) -> bool:
        return bool(self.config["migration"]["dry_run"])

    @property
    def data_dir(self) -> str:
        return self.config["migration"]["data_dir"]

    @property
    def batch_size(self) -> int:
        return max(1, int(self.config["migration"]["batch_size"]))

    @property
    def delay(self) -> float:
        return max(0, int(self.config["migration"]["delay_ms"])) / 1000.0

    @property
    def asset_map_path(self) -> str:
        return os.path.join(self.data_dir, ASSET_MAP_FILE)

    @property
    def entry_map_path(self) -> str:
        return os.path.join(self.data_dir, ENTRY_MAP_FILE)

    def log_message(self, message: str, level: str = "INFO") -> None:
        log_message(message, level)

    def _reader(self) -> ExportFileReader:
        reader = ExportFileReader(resolve_export_path(self.data_dir))
        if reader.is_poc:
            self.log_message("Using PoC export (wp-export-poc.json)")
        return reader

    def _auth(self) -> Optional[tuple]:
        wp = self.config["wordpress"]
        if wp.get("username") and wp.get("app_password"):
            return (wp["username"], wp["app_password"])
        return None

    def _download(self, url: str):
        max_bytes = int(self.config["migration"]["max_asset_size_mb"]) * 1024 * 1024
        return download_media(url, auth=self._auth(), max_bytes=max_bytes)

    def writer(self, required_content_types: Iterable[str] = ()) -> DestinationWriter:
        """Return the destination writer, running pre-flight checks before the first write."""
        if self._writer is None:
            self._writer = DryRunWriter() if self.dry_run else ContentfulWriter(self.config["contentful"])
        required = set(required_content_types)
        if self._skip_preflight or self.dry_run:
            return self._writer
        if not self._preflight_done or not required <= self._verified_types:
            self.log_message("Running Contentful pre-flight checks...")
            run_contentful_pre_flight_checks(self.config["contentful"], required)
            self.log_message("Pre-flight checks passed.")
            self._verified_types |= required
            self._preflight_done = True
        return self._writer

    def _persist(self, identity_map: IdentityMap):
        if self.dry_run:
            return lambda: None
        return identity_map.save

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def export(self) -> Dict[str, Any]:
        wp = self.config["wordpress"]
        client = WordPressClient(
            wp.get("api_url"),
            wp.get("username") or None,
            wp.get("app_password") or None,
            embed=bool(wp.get("embed")),
        )
        out_path = os.path.join(self.data_dir, EXPORT_FILE)
        self.log_message(f"Exporting WordPress content from {client.api_url}")
        export = client.export(out_path)
        for name, count in export["_meta"]["counts"].items():
            self.log_message(f"  {name}: {count}")
        self.log_message(f"Export written to {out_path}")
        return export

    async def migrate_assets(self) -> FamilyStats:
        reader = self._reader()
        media = reader.list_entities("media")
        self.log_message(f"Found {len(media)} media items to migrate")
        if reader.raw_count("media") and not media:
            raise FatalMigrationError(
                "The export has media entries but they are invalid. Re-run the export step and "
                "set WP_USERNAME/WP_APP_PASSWORD if the WordPress site requires authentication."
            )

        asset_map = IdentityMap.load(self.asset_map_path)
        if len(asset_map):
            self.log_message(f"Resuming from previous run ({len(asset_map)} assets already migrated)")
        if not media:
            if not self.dry_run:
                asset_map.save()
            return FamilyStats()

        mapper = AssetMapper(self.writer(), self._downloader or self._download)
        stats = await migrate_family(
            "media",
            media,
            asset_map,
            mapper.create_asset,
            batch_size=self.batch_size,
            delay=self.delay,
            persist=self._persist(asset_map),
        )
        self.log_summary({"media": stats})
        return stats

    async def migrate_content(self, families: Optional[Iterable[str]] = None) -> Dict[str, FamilyStats]:
        reader = self._reader()
        if not os.path.exists(self.asset_map_path):
            if not self.dry_run:
                raise FatalMigrationError(f"{ASSET_MAP_FILE} not found. Run the assets step first.")
            self.log_message(f"{ASSET_MAP_FILE} not found; dry run continues without assets", "WARNING")

        asset_map = IdentityMap.load(self.asset_map_path)
        entry_map = IdentityMap.load(self.entry_map_path)
        if len(entry_map):
            self.log_message(f"Resuming from previous run ({len(entry_map)} entries already migrated)")

        selected = order_families(families or FAMILY_ORDER)
        required = {CONTENT_TYPES[f] for f in selected if f in CONTENT_TYPES}
        if "pages" in selected:
            required.add(SECTION_CONTENT_TYPE)
        mapper = EntryMapper(self.writer(required), entry_map, asset_map)

        results: Dict[str, FamilyStats] = {}
        for family in selected:
            entities = prepare(family, reader.list_entities(family))
            self.log_message(f"Migrating {family} ({len(entities)})")
            results[family] = await migrate_family(
                family,
                entities,
                entry_map,
                mapper.creator_for(family),
                batch_size=self.batch_size,
                delay=self.delay,
                persist=self._persist(entry_map),
            )
        self.log_summary(results)
        return results

    def validate(self) -> Dict[str, Any]:
        reader = self._reader()
        if not os.path.exists(self.entry_map_path):
            raise FatalMigrationError(f"{ENTRY_MAP_FILE} not found. Run the content step first.")
        entry_map = IdentityMap.load(self.entry_map_path)
        asset_map = IdentityMap.load(self.asset_map_path)

        cfg = self.config["contentful"]
        fetch_entry = None
        if cfg.get("management_token") and cfg.get("space_id") and not self.dry_run:
            fetch_entry = partial(get_entry, cfg)
        report = validation.build_report(reader, entry_map, asset_map, fetch_entry, cfg.get("locale") or "en-US")
        validation.log_report(report)
        path = validation.write_report(report, self.data_dir)
        if report["issues"]:
            self.log_message(f"{len(report['issues'])} families are incomplete, see {path}", "WARNING")
        else:
            self.log_message(f"All families migrated. Report written to {path}")
        return report

    def log_summary(self, results: Dict[str, FamilyStats]) -> None:
        self.log_message("Summary:")
        for family, stats in results.items():
            self.log_message(
                f"  {family.capitalize():<11} {stats.migrated}/{stats.total} "
                f"({stats.skipped} skipped, {stats.failed} failed)"
            )
            for source_id, message in stats.failures:
                self.log_message(f"    {family} {source_id}: {message}", "ERROR")
