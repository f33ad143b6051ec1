"""
Utility helpers used by the migration tool.

This subpackage exposes the error taxonomy, structured event logging,
console/file logging, the persistent identity maps and text sanitizers.
"""

from .errors import (
    ERRORS,
    AssetProcessingTimeout,
    FatalMigrationError,
    MigrationError,
    SourceReadError,
    report_error,
    report_ok,
)
from .identity_map import IdentityMap, map_key
from .log import log_message
from .text import sanitize_text, sanitize_title

__all__ = [
    "ERRORS",
    "AssetProcessingTimeout",
    "FatalMigrationError",
    "MigrationError",
    "SourceReadError",
    "report_error",
    "report_ok",
    "IdentityMap",
    "map_key",
    "log_message",
    "sanitize_text",
    "sanitize_title",
]
