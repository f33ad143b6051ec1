"""
String rewrites applied to WordPress HTML before it is parsed.

Both passes are pure functions of their input.  Shortcodes carry
presentation logic that has no Rich Text equivalent, so the enclosed
text is kept and the brackets are dropped; Gutenberg block comments are
editor annotations and are removed outright.
"""

from __future__ import annotations

import re

_CAPTION_RE = re.compile(r"\[caption[^\]]*\](.*?)\[/caption\]", re.IGNORECASE | re.DOTALL)
_SELF_CLOSING_RE = re.compile(r"\[[^\]]+/\]")
_PAIRED_RE = re.compile(r"\[(\w+)[^\]]*\](.*?)\[/\1\]", re.IGNORECASE | re.DOTALL)
_ANY_SHORTCODE_RE = re.compile(r"\[[^\]]+\]")

_GUTENBERG_OPEN_RE = re.compile(r"<!--\s*wp:[^>]+-->")
_GUTENBERG_CLOSE_RE = re.compile(r"<!--\s*/wp:[^>]+-->")


def strip_shortcodes(html: str) -> str:
    """Unwrap ``[tag]…[/tag]`` pairs and delete every other bracketed token.

    >>> strip_shortcodes('[caption id="1"]<img src="a.jpg"/> Cat[/caption]')
    '<img src="a.jpg"/> Cat'
    >>> strip_shortcodes('Before [gallery ids="1,2"] after')
    'Before  after'
    """
    html = _CAPTION_RE.sub(r"\1", html)
    html = _SELF_CLOSING_RE.sub("", html)
    # Nested pairs unwrap one level per pass.
    while True:
        unwrapped = _PAIRED_RE.sub(r"\2", html)
        if unwrapped == html:
            break
        html = unwrapped
    return _ANY_SHORTCODE_RE.sub("", html)


def strip_gutenberg_comments(html: str) -> str:
    html = _GUTENBERG_OPEN_RE.sub("", html)
    return _GUTENBERG_CLOSE_RE.sub("", html)


def preprocess_html(html: str, *, strip_shortcodes_enabled: bool = True) -> str:
    if strip_shortcodes_enabled:
        html = strip_shortcodes(html)
    return strip_gutenberg_comments(html)
