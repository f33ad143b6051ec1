"""
Ordering of families and entities for the migration.

Families are migrated leaves first so that every reference an entity
carries points at something already created: authors, then flat
taxonomy, then hierarchical taxonomy, then content, then hierarchical
content.  Inside a hierarchical family parents come before children
as far as the WordPress parent ids allow.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")

FAMILY_ORDER = ("authors", "tags", "categories", "posts", "pages")
HIERARCHICAL_FAMILIES = frozenset({"categories", "pages"})

# family -> identity map key prefix; media uses bare ids
MAP_PREFIXES = {
    "authors": "author",
    "categories": "cat",
    "tags": "tag",
    "posts": "post",
    "pages": "page",
    "media": None,
}


def map_prefix(family: str) -> Optional[str]:
    try:
        return MAP_PREFIXES[family]
    except KeyError:
        raise ValueError(f"Unknown family '{family}'") from None


def order_families(families: Iterable[str]) -> List[str]:
    """Return ``families`` in migration order; unknown names go last, as given."""
    requested = list(dict.fromkeys(families))
    known = [f for f in FAMILY_ORDER if f in requested]
    return known + [f for f in requested if f not in FAMILY_ORDER]


def _parent_of(entity: Any) -> int:
    parent = entity.get("parent") if isinstance(entity, dict) else getattr(entity, "parent", None)
    try:
        return int(parent or 0)
    except (TypeError, ValueError):
        return 0


def sort_hierarchical(entities: Iterable[T]) -> List[T]:
    """
    Stable sort by numeric parent id, entities without a parent first.

    This only approximates a topological order: a child whose parent has
    a larger id than the child's own parent may still come first, in
    which case its parent link is omitted.
    """
    return sorted(entities, key=_parent_of)


def prepare(family: str, entities: Iterable[T]) -> List[T]:
    if family in HIERARCHICAL_FAMILIES:
        return sort_hierarchical(entities)
    return list(entities)


def batched(items: Sequence[T], size: int) -> Iterator[List[T]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
