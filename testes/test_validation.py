import json
import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from wp_contentful.extractors.wordpress_extractor import ExportFileReader
from wp_contentful.utils.identity_map import IdentityMap
from wp_contentful.validation import count_comparison, reference_integrity, spot_check

EXPORT = {
    "posts": [
        {"id": 1, "slug": "one", "title": {"rendered": "One &amp; only"}, "categories": [3, 4], "tags": [8],
         "featured_media": 6},
        {"id": 2, "slug": "two", "title": {"rendered": "Two"}},
    ],
    "media": [{"id": 6}],
}


@pytest.fixture
def reader(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "wp-export.json"
    path.write_text(json.dumps(EXPORT), encoding="utf-8")
    return ExportFileReader(str(path))


def test_count_comparison_lists_incomplete_families(reader):
    result = count_comparison(reader, IdentityMap(data={"post_1": "e1", "section_4": "s4"}), {"6": "a6"})
    assert result["counts"]["wordpress"]["posts"] == 2
    assert result["counts"]["migrated"]["media"] == 1
    assert result["issues"] == [{
        "type": "incomplete_migration", "contentType": "Posts", "expected": 2, "actual": 1, "missing": 1,
    }]


def test_reference_integrity_counts_orphans(reader):
    orphaned = reference_integrity(reader, {"cat_3": "c3"}, {})
    assert orphaned == {"categories": 1, "tags": 1, "assets": 1}


def test_spot_check_compares_title_slug_and_image(reader):
    entries = {
        "e1": {"fields": {"title": {"en-US": "One & only"}, "slug": {"en-US": "one-renamed"}}},
    }
    checks = spot_check(reader, {"post_1": "e1"}, lambda entry_id: entries[entry_id])
    first, second = checks
    assert first["status"] == "issues"
    assert {i["field"] for i in first["issues"]} == {"slug", "featuredImage"}
    assert second["status"] == "missing"


def test_spot_check_records_fetch_errors(reader):
    def fetch(entry_id):
        raise RuntimeError("404")

    checks = spot_check(reader, {"post_1": "e1", "post_2": "e2"}, fetch)
    assert [c["status"] for c in checks] == ["error", "error"]
