import asyncio
import json
import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from wp_contentful import pipeline
from wp_contentful.models.wordpress import WPMedia, WPTag
from wp_contentful.pipeline import migrate_family
from wp_contentful.utils.errors import AssetProcessingTimeout
from wp_contentful.utils.identity_map import IdentityMap


@pytest.fixture(autouse=True)
def in_tmp_dir(tmp_path, monkeypatch):
    # log files and JSONL reports are written relative to the working directory
    monkeypatch.chdir(tmp_path)


def tags(*ids):
    return [WPTag(id=i, name=f"tag {i}") for i in ids]


class Recorder:
    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.calls = []

    async def __call__(self, entity):
        self.calls.append(entity.id)
        if entity.id in self.fail_ids:
            raise RuntimeError(f"boom {entity.id}")
        return f"cf-{entity.id}", []


def run(coro):
    return asyncio.run(coro)


def test_all_entities_migrated_and_keyed_with_prefix():
    identity_map = IdentityMap()
    create = Recorder()
    stats = run(migrate_family("tags", tags(1, 2, 3), identity_map, create, delay=0, persist=lambda: None))
    assert (stats.total, stats.migrated, stats.skipped, stats.failed) == (3, 3, 0, 0)
    assert identity_map.to_dict() == {"tag_1": "cf-1", "tag_2": "cf-2", "tag_3": "cf-3"}


def test_second_run_is_idempotent():
    identity_map = IdentityMap()
    create = Recorder()
    run(migrate_family("tags", tags(1, 2, 3), identity_map, create, delay=0, persist=lambda: None))
    before = identity_map.to_dict()
    stats = run(migrate_family("tags", tags(1, 2, 3), identity_map, create, delay=0, persist=lambda: None))
    assert stats.skipped == 3 and stats.migrated == 0
    assert identity_map.to_dict() == before
    assert sorted(create.calls) == [1, 2, 3]


def test_partial_failure_is_isolated_and_resumable():
    identity_map = IdentityMap()
    stats = run(migrate_family("tags", tags(1, 2, 3), identity_map, Recorder(fail_ids={2}), delay=0, persist=lambda: None))
    assert (stats.migrated, stats.failed) == (2, 1)
    assert stats.failures == [(2, "boom 2")]
    assert "tag_2" not in identity_map

    retry = Recorder()
    stats = run(migrate_family("tags", tags(1, 2, 3), identity_map, retry, delay=0, persist=lambda: None))
    assert retry.calls == [2]
    assert (stats.migrated, stats.skipped) == (1, 2)


def test_failures_are_reported_as_jsonl(tmp_path):
    run(migrate_family("tags", tags(1, 2), IdentityMap(), Recorder(fail_ids={1}), delay=0, persist=lambda: None))
    errors = (tmp_path / "reports" / "migration" / "errors.jsonl").read_text(encoding="utf-8").splitlines()
    record = json.loads(errors[0])
    assert record["code"] == "ENTRY_CREATE"
    assert record["source_id"] == 1
    assert record["error"] == "boom 1"
    ok = json.loads((tmp_path / "reports" / "migration" / "success.jsonl").read_text(encoding="utf-8"))
    assert ok["destination_id"] == "cf-2"


def test_asset_timeouts_get_their_own_code(tmp_path):
    async def create(entity):
        raise AssetProcessingTimeout("asset-1", 20)

    identity_map = IdentityMap()
    stats = run(migrate_family("media", [WPMedia(id=8)], identity_map, create, delay=0, persist=lambda: None))
    assert stats.failed == 1
    record = json.loads((tmp_path / "reports" / "migration" / "errors.jsonl").read_text(encoding="utf-8"))
    assert record["code"] == "ASSET_TIMEOUT"


def test_media_uses_bare_ids():
    identity_map = IdentityMap()
    run(migrate_family("media", [WPMedia(id=8)], identity_map, Recorder(), delay=0, persist=lambda: None))
    assert identity_map.to_dict() == {"8": "cf-8"}


def test_persist_after_every_batch_and_delay_between_batches(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(pipeline.asyncio, "sleep", fake_sleep)
    identity_map = IdentityMap()
    snapshots = []
    stats = run(migrate_family(
        "tags",
        tags(1, 2, 3, 4, 5),
        identity_map,
        Recorder(),
        batch_size=2,
        delay=0.5,
        persist=lambda: snapshots.append(len(identity_map)),
    ))
    assert stats.migrated == 5
    assert snapshots == [2, 4, 5]
    assert sleeps == [0.5, 0.5]


def test_default_persist_saves_the_map(tmp_path):
    identity_map = IdentityMap(str(tmp_path / "data" / "entry-map.json"))
    run(migrate_family("tags", tags(1), identity_map, Recorder(), delay=0))
    assert json.loads((tmp_path / "data" / "entry-map.json").read_text(encoding="utf-8")) == {"tag_1": "cf-1"}


def test_duplicate_source_ids_in_one_run_are_created_once():
    identity_map = IdentityMap()
    create = Recorder()
    stats = run(migrate_family("tags", tags(1, 1), identity_map, create, delay=0, persist=lambda: None))
    assert create.calls == [1]
    assert (stats.migrated, stats.skipped) == (1, 1)


def test_duplicate_after_a_failed_copy_gets_another_attempt():
    identity_map = IdentityMap()
    calls = []

    async def flaky(entity):
        calls.append(entity.id)
        if len(calls) == 1:
            raise RuntimeError("timeout")
        return "cf-1", []

    stats = run(migrate_family("tags", tags(1, 1), identity_map, flaky, batch_size=1, delay=0, persist=lambda: None))
    assert calls == [1, 1]
    assert (stats.migrated, stats.skipped, stats.failed) == (1, 0, 1)
    assert identity_map["tag_1"] == "cf-1"


def test_warnings_are_forwarded():
    async def create(entity):
        return "cf", ["Table converted to text (not supported in Rich Text)"]

    seen = []
    run(migrate_family(
        "tags", tags(4), IdentityMap(), create, delay=0, persist=lambda: None,
        on_warning=lambda source_id, w: seen.append((source_id, w)),
    ))
    assert seen == [(4, "Table converted to text (not supported in Rich Text)")]


def test_empty_family():
    stats = run(migrate_family("tags", [], IdentityMap(), Recorder(), delay=0, persist=lambda: None))
    assert (stats.total, stats.migrated) == (0, 0)
