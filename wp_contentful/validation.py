"""
Post-migration validation.

The report compares the number of records in the WordPress export with
the number of mappings in the identity maps, checks a sample of posts
for references whose target was never migrated and, when an entry
fetcher is given, spot checks a few migrated posts against Contentful.
It is written to ``data/validation-report.json``.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from wp_contentful.extractors.wordpress_extractor import ExportFileReader
from wp_contentful.utils.identity_map import IdentityMap, map_key
from wp_contentful.utils.log import log_message
from wp_contentful.utils.text import sanitize_text

# label, export family, map prefix (None: asset map)
COUNTED_FAMILIES = (
    ("Posts", "posts", "post"),
    ("Pages", "pages", "page"),
    ("Categories", "categories", "cat"),
    ("Tags", "tags", "tag"),
    ("Media/Assets", "media", None),
    ("Users/Authors", "authors", "author"),
)

REFERENCE_SAMPLE = 20
SPOT_CHECK_SAMPLE = 5

EntryFetcher = Callable[[str], Dict[str, Any]]


def count_comparison(
    reader: ExportFileReader,
    entry_map: IdentityMap,
    asset_map: Mapping[str, str],
) -> Dict[str, Any]:
    wordpress: Dict[str, int] = {}
    migrated: Dict[str, int] = {}
    issues: List[Dict[str, Any]] = []
    for label, family, prefix in COUNTED_FAMILIES:
        expected = reader.count(family)
        if prefix is None:
            actual = len(asset_map)
        else:
            actual = entry_map.count_prefix(prefix)
        wordpress[family] = expected
        migrated[family] = actual
        if actual < expected:
            issues.append({
                "type": "incomplete_migration",
                "contentType": label,
                "expected": expected,
                "actual": actual,
                "missing": expected - actual,
            })
    return {"counts": {"wordpress": wordpress, "migrated": migrated}, "issues": issues}


def reference_integrity(
    reader: ExportFileReader,
    entry_map: Mapping[str, str],
    asset_map: Mapping[str, str],
    sample: int = REFERENCE_SAMPLE,
) -> Dict[str, int]:
    """Count post references whose target has no mapping."""
    orphaned = {"categories": 0, "tags": 0, "assets": 0}
    for post in reader.list_entities("posts")[:sample]:
        orphaned["categories"] += sum(1 for c in post.categories if map_key("cat", c) not in entry_map)
        orphaned["tags"] += sum(1 for t in post.tags if map_key("tag", t) not in entry_map)
        if post.featured_media and str(post.featured_media) not in asset_map:
            orphaned["assets"] += 1
    return orphaned


def spot_check(
    reader: ExportFileReader,
    entry_map: Mapping[str, str],
    fetch_entry: EntryFetcher,
    locale: str = "en-US",
    sample: int = SPOT_CHECK_SAMPLE,
) -> List[Dict[str, Any]]:
    checks: List[Dict[str, Any]] = []
    for post in reader.list_entities("posts")[:sample]:
        entry_id = entry_map.get(map_key("post", post.id))
        check: Dict[str, Any] = {"wpId": post.id, "contentfulId": entry_id, "issues": []}
        if not entry_id:
            check["status"] = "missing"
            check["issues"].append("Entry not found in Contentful")
            checks.append(check)
            continue
        try:
            entry = fetch_entry(entry_id)
        except Exception as e:
            check["status"] = "error"
            check["issues"].append(f"Fetch error: {e}")
            checks.append(check)
            continue

        fields = entry.get("fields") or {}

        def value(name: str) -> Any:
            return (fields.get(name) or {}).get(locale)

        expected_title = sanitize_text(post.title.rendered)
        if value("title") != expected_title:
            check["issues"].append({"field": "title", "expected": expected_title, "actual": value("title")})
        if value("slug") != post.slug:
            check["issues"].append({"field": "slug", "expected": post.slug, "actual": value("slug")})
        if post.featured_media and not value("featuredImage"):
            check["issues"].append({
                "field": "featuredImage",
                "message": "WordPress has featured image but Contentful does not",
            })
        check["status"] = "ok" if not check["issues"] else "issues"
        checks.append(check)
    return checks


def build_report(
    reader: ExportFileReader,
    entry_map: IdentityMap,
    asset_map: Mapping[str, str],
    fetch_entry: Optional[EntryFetcher] = None,
    locale: str = "en-US",
) -> Dict[str, Any]:
    report = {"timestamp": datetime.now(timezone.utc).isoformat()}
    report.update(count_comparison(reader, entry_map, asset_map))
    report["orphanedReferences"] = reference_integrity(reader, entry_map, asset_map)
    report["spotChecks"] = spot_check(reader, entry_map, fetch_entry, locale) if fetch_entry else []
    return report


def log_report(report: Dict[str, Any]) -> None:
    log_message("Content Type        WordPress    Migrated    Status")
    counts = report["counts"]
    for label, family, _ in COUNTED_FAMILIES:
        expected = counts["wordpress"][family]
        actual = counts["migrated"][family]
        status = "✓" if actual >= expected else "⚠"
        log_message(f"{label:<20}{expected:>8}    {actual:>8}       {status}")
    orphaned = report["orphanedReferences"]
    if any(orphaned.values()):
        log_message(
            f"Orphaned references in sampled posts: {orphaned['categories']} categories, "
            f"{orphaned['tags']} tags, {orphaned['assets']} featured images",
            "WARNING",
        )
    for check in report["spotChecks"]:
        level = "INFO" if check["status"] == "ok" else "WARNING"
        log_message(f"Spot check post {check['wpId']}: {check['status']}", level)


def write_report(report: Dict[str, Any], data_dir: str) -> str:
    path = os.path.join(data_dir, "validation-report.json")
    os.makedirs(data_dir, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
    return path
