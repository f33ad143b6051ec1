import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
pytest.importorskip("bs4")

from wp_contentful.parsers.references import (
    extract_media_id,
    extract_post_id,
    media_id_from_class,
    media_id_from_data_attribute,
    media_id_from_url_segment,
)
from wp_contentful.parsers.rich_text import html_to_rich_text

UPLOAD = "https://site.com/wp-content/uploads/2024/01/photo.jpg"


def test_data_id_wins_over_class_and_url():
    attrs = {"data-id": "7", "class": "wp-image-42", "src": UPLOAD}
    assert extract_media_id(attrs) == 7


def test_class_wins_over_url_segment():
    assert extract_media_id({"class": ["alignnone", "size-full", "wp-image-42"], "src": UPLOAD}) == 42


def test_url_segment_false_positive_is_the_year():
    # Upload paths carry year/month segments; the first one is taken.
    assert extract_media_id({"src": UPLOAD}) == 2024


def test_no_strategy_matches():
    assert extract_media_id({"src": "https://cdn.com/photo.jpg"}) is None
    assert extract_media_id({}) is None


def test_single_strategies():
    assert media_id_from_data_attribute({"data-id": "abc"}) is None
    assert media_id_from_class({"class": "wp-image-"}) is None
    assert media_id_from_url_segment({"src": "/a/12/b.png"}) == 12


def test_extract_post_id():
    assert extract_post_id("https://site.com/?p=42") == 42
    assert extract_post_id("https://site.com/?cat=1&p=8") == 8
    assert extract_post_id("https://site.com/?page_id=3") is None
    assert extract_post_id(None) is None


def test_mapped_image_becomes_embedded_asset():
    html = f'<img class="wp-image-42" src="{UPLOAD}" alt="Photo">'
    result = html_to_rich_text(html, asset_map={"42": "asset-42"})
    node = result.document["content"][0]
    assert node["nodeType"] == "embedded-asset-block"
    assert node["data"]["target"]["sys"] == {"type": "Link", "linkType": "Asset", "id": "asset-42"}
    assert node["content"] == []
    assert result.warnings == []


def test_unmapped_image_falls_back_to_italic_alt_text():
    result = html_to_rich_text('<img src="https://cdn.com/cat.jpg" alt="A cat">', asset_map={"1": "a"})
    para = result.document["content"][0]
    assert para["nodeType"] == "paragraph"
    run = para["content"][0]
    assert run["value"] == "[Image: A cat]"
    assert run["marks"] == [{"type": "italic"}]
    assert result.warnings and result.warnings[0].startswith("Asset not found for image")


def test_fallback_uses_src_without_alt():
    result = html_to_rich_text('<img src="https://cdn.com/cat.jpg">')
    assert result.document["content"][0]["content"][0]["value"] == "[Image: https://cdn.com/cat.jpg]"


def test_image_inside_paragraph_follows_the_paragraph():
    html = '<p>Before <img class="wp-image-3" src="x.jpg"> after</p>'
    doc = html_to_rich_text(html, asset_map={"3": "asset-3"}).document
    assert [n["nodeType"] for n in doc["content"]] == ["paragraph", "embedded-asset-block"]
    assert [t["value"] for t in doc["content"][0]["content"]] == ["Before ", " after"]


def test_figure_emits_asset_then_caption():
    html = '<figure><img class="wp-image-5" src="x.jpg"><figcaption>The <em>caption</em></figcaption></figure>'
    doc = html_to_rich_text(html, asset_map={"5": "asset-5"}).document
    assert [n["nodeType"] for n in doc["content"]] == ["embedded-asset-block", "paragraph"]
    assert [t["value"] for t in doc["content"][1]["content"]] == ["The ", "caption"]


def test_figure_without_caption():
    doc = html_to_rich_text('<figure class="wp-block-image"><img src="https://cdn.com/a.png" alt="A"></figure>').document
    assert len(doc["content"]) == 1
    assert doc["content"][0]["content"][0]["value"] == "[Image: A]"


def test_caption_shortcode_around_image():
    html = '[caption id="attachment_9" align="alignnone"]<img class="wp-image-9" src="x.jpg"> Sunset[/caption]'
    doc = html_to_rich_text(html, asset_map={"9": "asset-9"}).document
    assert [n["nodeType"] for n in doc["content"]] == ["embedded-asset-block", "paragraph"]
    assert doc["content"][1]["content"][0]["value"] == " Sunset"


def test_data_id_with_non_ascii_digits_is_ignored():
    assert media_id_from_data_attribute({"data-id": "²"}) is None
    result = html_to_rich_text('<img data-id="²" src="x.jpg">')
    assert result.document["content"][0]["content"][0]["value"] == "[Image: x.jpg]"
    assert result.warnings == ["Asset not found for image: x.jpg"]


def test_gallery_keeps_every_image():
    html = (
        '<figure class="wp-block-gallery">'
        '<figure class="wp-block-image"><img class="wp-image-1" src="a.jpg"></figure>'
        '<figure class="wp-block-image"><img class="wp-image-2" src="b.jpg"><figcaption>Second</figcaption></figure>'
        '<figcaption>Trip</figcaption></figure>'
    )
    result = html_to_rich_text(html, asset_map={"1": "a1", "2": "a2"})
    content = result.document["content"]
    assert [n["nodeType"] for n in content] == ["embedded-asset-block", "embedded-asset-block", "paragraph", "paragraph"]
    assert [n["data"]["target"]["sys"]["id"] for n in content[:2]] == ["a1", "a2"]
    assert [n["content"][0]["value"] for n in content[2:]] == ["Second", "Trip"]
    assert result.warnings == []


def test_gallery_list_items_hold_their_images():
    html = (
        '<figure class="wp-block-gallery"><ul class="blocks-gallery-grid">'
        '<li class="blocks-gallery-item"><figure><img data-id="1" src="a.jpg"></figure></li>'
        '<li class="blocks-gallery-item"><figure><img data-id="2" src="b.jpg"></figure></li>'
        '</ul></figure>'
    )
    doc = html_to_rich_text(html, asset_map={"1": "a1", "2": "a2"}).document
    gallery = doc["content"][0]
    assert gallery["nodeType"] == "unordered-list"
    targets = [item["content"][0]["data"]["target"]["sys"]["id"] for item in gallery["content"]]
    assert targets == ["a1", "a2"]


def test_list_item_images_stay_with_their_item():
    html = (
        '<ul><li><img class="wp-image-3" src="x.jpg"></li>'
        '<li>Text <img class="wp-image-4" src="y.jpg"><ul><li><img class="wp-image-5" src="z.jpg"></li></ul></li></ul>'
    )
    result = html_to_rich_text(html, asset_map={"3": "asset-3", "4": "asset-4", "5": "asset-5"})
    first, second = result.document["content"][0]["content"]
    assert [n["nodeType"] for n in first["content"]] == ["embedded-asset-block"]
    assert [n["nodeType"] for n in second["content"]] == ["paragraph", "embedded-asset-block", "unordered-list"]
    assert second["content"][1]["data"]["target"]["sys"]["id"] == "asset-4"
    nested_item = second["content"][2]["content"][0]
    assert nested_item["content"][0]["data"]["target"]["sys"]["id"] == "asset-5"
    assert result.warnings == []


def test_unmapped_list_item_image_falls_back_with_warning():
    result = html_to_rich_text('<ol><li><img src="https://cdn.com/a.png" alt="Chart"></li></ol>')
    item = result.document["content"][0]["content"][0]
    assert item["content"][0]["content"][0]["value"] == "[Image: Chart]"
    assert len(result.warnings) == 1
