from __future__ import annotations

from html import unescape
import re
from typing import Any, Optional

_TAG_RE = re.compile(r"<[^>]*>")


def sanitize_text(value: Any) -> str:
    """Decode HTML entities (numeric and named) and strip tags.

    WordPress returns rendered titles and excerpts such as
    ``"Tips &#038; Tricks"`` or ``"<p>Short intro</p>\\n"``; Contentful
    symbol/text fields want the plain string.
    """
    if not value:
        return ""
    text = unescape(str(value))
    text = _TAG_RE.sub("", text)
    return text.strip()


def truncate(value: Optional[str], limit: int) -> str:
    return (value or "")[:limit]


def sanitize_title(value: Any, default: str = "Untitled Asset") -> str:
    return sanitize_text(value) or default
