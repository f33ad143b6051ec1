import json
import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from wp_contentful.utils.identity_map import IdentityMap, map_key


def test_map_key():
    assert map_key("post", 42) == "post_42"
    assert map_key(None, 42) == "42"


def test_missing_file_loads_empty(tmp_path):
    m = IdentityMap.load(str(tmp_path / "entry-map.json"))
    assert len(m) == 0
    assert "post_1" not in m


def test_set_never_overwrites():
    m = IdentityMap()
    assert m.set("post_1", "a") is True
    assert m.set("post_1", "b") is False
    assert m["post_1"] == "a"


def test_save_and_reload_round_trip(tmp_path):
    path = tmp_path / "data" / "asset-map.json"
    m = IdentityMap(str(path))
    m.set("12", "asset-12")
    m.save()
    assert json.loads(path.read_text(encoding="utf-8")) == {"12": "asset-12"}
    assert IdentityMap.load(str(path)).to_dict() == {"12": "asset-12"}
    assert [p.name for p in path.parent.iterdir()] == ["asset-map.json"]


def test_failed_save_keeps_previous_snapshot(tmp_path, monkeypatch):
    path = tmp_path / "entry-map.json"
    m = IdentityMap(str(path), {"post_1": "a"})
    m.save()
    m.set("post_2", "b")

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(json, "dump", broken_dump)
    with pytest.raises(OSError):
        m.save()
    monkeypatch.undo()
    assert json.loads(path.read_text(encoding="utf-8")) == {"post_1": "a"}
    assert [p.name for p in tmp_path.iterdir()] == ["entry-map.json"]


def test_load_rejects_non_object(tmp_path):
    path = tmp_path / "entry-map.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        IdentityMap.load(str(path))


def test_count_prefix():
    m = IdentityMap(data={"post_1": "a", "post_2": "b", "page_1": "c", "author_1": "d"})
    assert m.count_prefix("post") == 2
    assert m.count_prefix("page") == 1
