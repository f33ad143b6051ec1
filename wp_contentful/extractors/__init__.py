"""
Readers for the WordPress side of the migration.

This subpackage provides the REST exporter that snapshots a WordPress
site into ``data/wp-export.json``, the file-backed reader that hands
the snapshot's records to the migration steps as pydantic models, and
the media downloader used by the asset step.
"""

from .wordpress_extractor import (
    FAMILY_SOURCES,
    ExportFileReader,
    WordPressClient,
    download_media,
    resolve_export_path,
)

__all__ = ["FAMILY_SOURCES", "ExportFileReader", "WordPressClient", "download_media", "resolve_export_path"]
