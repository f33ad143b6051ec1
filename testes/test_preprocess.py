import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
pytest.importorskip("bs4")

from wp_contentful.parsers.preprocess import preprocess_html, strip_gutenberg_comments, strip_shortcodes
from wp_contentful.parsers.rich_text import html_to_rich_text


def test_caption_keeps_inner_content():
    assert strip_shortcodes('[caption id="1"]<img src="a.jpg"/> Cat[/caption]') == '<img src="a.jpg"/> Cat'


def test_self_closing_shortcode_removed():
    assert strip_shortcodes('a [gallery ids="1,2" /] b') == "a  b"


def test_paired_shortcodes_unwrap_nested():
    assert strip_shortcodes("[row][column width=6]Text[/column][/row]") == "Text"


def test_unknown_shortcode_removed():
    assert strip_shortcodes("Before [contact-form-7 id=3] after") == "Before  after"


def test_gutenberg_comments_removed():
    html = '<!-- wp:paragraph {"align":"center"} --><p>Hi</p><!-- /wp:paragraph --><!-- wp:separator /-->'
    assert strip_gutenberg_comments(html) == "<p>Hi</p>"


def test_ordinary_comments_are_left_to_the_parser():
    assert preprocess_html("<!-- keep --><p>x</p>") == "<!-- keep --><p>x</p>"


def test_shortcode_stripping_can_be_disabled():
    doc = html_to_rich_text("<p>[button]Go[/button]</p>", strip_shortcodes=False).document
    assert doc["content"][0]["content"][0]["value"] == "[button]Go[/button]"


def test_shortcodes_inside_document():
    doc = html_to_rich_text("<p>[highlight]Key[/highlight] point [spacer]</p>").document
    assert [t["value"] for t in doc["content"][0]["content"]] == ["Key point "]
