"""
Error types and structured logging helpers for migration events.

The exception classes below form the error taxonomy of the migration:

``FatalMigrationError``
    A required run input is missing (no export file, no asset map before
    the content step, no credentials).  The run aborts before any write.

``AssetProcessingTimeout``
    Contentful did not finish processing an uploaded asset within the
    allowed number of polls.  Callers treat it as a per-entity failure.

``SourceReadError``
    A whole family could not be listed from the source.

Per-entity events are appended to JSON Lines files under
``reports/migration`` so that a run can be reviewed or parsed afterwards:

``report_error``
    Record a failure for an entity.  An optional exception can be
    supplied and will be serialized to the log.

``report_ok``
    Record a successful step for an entity.  Additional key/value
    information (destination id, transformer warnings) can be attached
    via ``extra``.

The ``ERRORS`` dictionary maps event codes to human readable messages.
Codes not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional


class MigrationError(Exception):
    """Base class for all migration errors."""


class FatalMigrationError(MigrationError):
    """A run-level precondition failed; nothing has been written."""


class SourceReadError(MigrationError):
    """The source system could not provide a family's entities."""


class AssetProcessingTimeout(MigrationError):
    """Raised when an uploaded asset is still unprocessed after all polls."""

    def __init__(self, asset_id: str, attempts: int) -> None:
        super().__init__(f"Asset {asset_id} processing timeout after {attempts} attempts")
        self.asset_id = asset_id
        self.attempts = attempts


# Mapping of event codes used throughout the migration to descriptive messages.
ERRORS: Dict[str, str] = {
    "ASSET_UPLOAD": "Failed to migrate media item to Contentful",
    "ASSET_TIMEOUT": "Contentful did not finish processing the asset",
    "ENTRY_CREATE": "Failed to create or publish entry",
    "ASSET_MIGRATED": "Asset created and published",
    "ENTRY_MIGRATED": "Entry created and published",
}

_REPORT_DIR = os.path.join("reports", "migration")
_ERROR_LOG = os.path.join(_REPORT_DIR, "errors.jsonl")
_OK_LOG = os.path.join(_REPORT_DIR, "success.jsonl")


def _write_jsonl(path: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``path``."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")


def report_error(code: str, family: str, source_id: Any, exc: Optional[BaseException] = None) -> None:
    """Log a failure event for one source entity.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    family:
        The entity family (``posts``, ``media``...).
    source_id:
        WordPress id of the entity that failed.
    exc:
        Optional exception instance that triggered the error.
    """
    entry: Dict[str, Any] = {
        "code": code,
        "message": ERRORS.get(code, code),
        "family": family,
        "source_id": source_id,
    }
    if exc is not None:
        entry["error"] = str(exc)
    _write_jsonl(_ERROR_LOG, entry)


def report_ok(code: str, family: str, source_id: Any, extra: Optional[Dict[str, Any]] = None) -> None:
    """Log a successful event for one source entity.

    ``extra`` is merged into the log entry.
    """
    entry: Dict[str, Any] = {
        "code": code,
        "message": ERRORS.get(code, code),
        "family": family,
        "source_id": source_id,
    }
    if extra:
        entry.update(extra)
    _write_jsonl(_OK_LOG, entry)
