"""
Persistent identity maps from WordPress ids to Contentful ids.

One :class:`IdentityMap` is kept per family group: ``asset-map.json``
holds media id → asset id, ``entry-map.json`` holds ``<prefix>_<id>`` →
entry id for authors, categories, tags, posts and pages.  A map is read
once at the start of a run and rewritten wholesale after every batch.

Entries are append-only: :meth:`IdentityMap.set` never replaces an
existing mapping, which is what makes a re-run skip entities that were
already created.  Saves go through a temporary file in the same
directory followed by :func:`os.replace`, so a crash mid-save leaves the
previous snapshot intact.
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Dict, Iterator, Mapping, Optional


def map_key(prefix: Optional[str], source_id: Any) -> str:
    """Build the stable map key for ``source_id``.

    Assets use the bare id (``"42"``); entries use ``"post_42"`` style keys.
    """
    return f"{prefix}_{source_id}" if prefix else str(source_id)


class IdentityMap(Mapping[str, str]):
    """A string → string table persisted as a JSON object."""

    def __init__(self, path: Optional[str] = None, data: Optional[Dict[str, str]] = None) -> None:
        self.path = path
        self._data: Dict[str, str] = {str(k): str(v) for k, v in (data or {}).items()}

    @classmethod
    def load(cls, path: str) -> "IdentityMap":
        """Load the map stored at ``path``; a missing file gives an empty map."""
        if not os.path.exists(path):
            return cls(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Identity map {path} does not contain a JSON object")
        return cls(path, data)

    def __getitem__(self, key: str) -> str:
        return self._data[str(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return str(key) in self._data

    def set(self, key: str, destination_id: str) -> bool:
        """Record ``key`` → ``destination_id`` unless ``key`` is already mapped.

        Returns ``True`` when the mapping was added.
        """
        key = str(key)
        if key in self._data:
            return False
        self._data[key] = str(destination_id)
        return True

    def count_prefix(self, prefix: str) -> int:
        return sum(1 for k in self._data if k.startswith(f"{prefix}_"))

    def to_dict(self) -> Dict[str, str]:
        return dict(self._data)

    def save(self, path: Optional[str] = None) -> str:
        """Atomically write the map to ``path`` (or the path it was loaded from)."""
        target = path or self.path
        if not target:
            raise ValueError("IdentityMap.save() needs a path")
        directory = os.path.dirname(os.path.abspath(target))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".identity-map-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        return target
