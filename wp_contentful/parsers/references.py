"""
Recovery of WordPress ids from markup.

Images rarely say which media library item they came from, so the media
id is recovered with an ordered list of strategies; the first one that
returns an id wins:

1. ``data-id`` attribute (written by the Gutenberg image block),
2. ``wp-image-<id>`` class (classic editor),
3. the first all-digit segment of the ``src`` path.

The third strategy is a heuristic.  Any numeric path segment matches, so
``/uploads/2023/05/photo.jpg`` yields ``2023``; that id only resolves when
the asset map happens to contain it.

Links to other documents are recognised only in the query-parameter
forms ``?p=<id>`` and ``?page_id=<id>``.  Permalink-style URLs are not
resolved and fall back to external links.
"""

from __future__ import annotations

import re
from typing import Callable, Mapping, Optional, Tuple

_WP_IMAGE_CLASS_RE = re.compile(r"wp-image-(\d+)", re.ASCII)
_URL_SEGMENT_RE = re.compile(r"/(\d+)/", re.ASCII)
_POST_PARAM_RE = re.compile(r"[?&]p=(\d+)", re.ASCII)
_PAGE_PARAM_RE = re.compile(r"[?&]page_id=(\d+)", re.ASCII)
_DIGITS_RE = re.compile(r"\d+", re.ASCII)

Attrs = Mapping[str, object]


def _attr(attrs: Attrs, name: str) -> str:
    value = attrs.get(name)
    if isinstance(value, (list, tuple)):
        # bs4 returns multi-valued attributes such as class as lists
        return " ".join(str(v) for v in value)
    return str(value) if value is not None else ""


def media_id_from_data_attribute(attrs: Attrs) -> Optional[int]:
    value = _attr(attrs, "data-id").strip()
    return int(value) if _DIGITS_RE.fullmatch(value) else None


def media_id_from_class(attrs: Attrs) -> Optional[int]:
    match = _WP_IMAGE_CLASS_RE.search(_attr(attrs, "class"))
    return int(match.group(1)) if match else None


def media_id_from_url_segment(attrs: Attrs) -> Optional[int]:
    match = _URL_SEGMENT_RE.search(_attr(attrs, "src"))
    return int(match.group(1)) if match else None


MEDIA_ID_STRATEGIES: Tuple[Callable[[Attrs], Optional[int]], ...] = (
    media_id_from_data_attribute,
    media_id_from_class,
    media_id_from_url_segment,
)


def extract_media_id(attrs: Attrs) -> Optional[int]:
    for strategy in MEDIA_ID_STRATEGIES:
        media_id = strategy(attrs)
        if media_id is not None:
            return media_id
    return None


def extract_post_id(url: Optional[str]) -> Optional[int]:
    if not url:
        return None
    match = _POST_PARAM_RE.search(url)
    return int(match.group(1)) if match else None


def extract_post_reference(url: Optional[str]) -> Optional[Tuple[Tuple[str, ...], int]]:
    """Map-key prefixes to try and the WordPress id a link points at.

    ``?p=<id>`` addresses any post type, so posts are tried before pages;
    ``?page_id=<id>`` only addresses pages.
    """
    post_id = extract_post_id(url)
    if post_id is not None:
        return ("post", "page"), post_id
    match = _PAGE_PARAM_RE.search(url or "")
    if match:
        return ("page",), int(match.group(1))
    return None
