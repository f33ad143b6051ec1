"""
WordPress HTML → Contentful Rich Text conversion.

:class:`RichTextTransformer` walks the parsed HTML recursively and builds
a Rich Text document that passes Contentful's validation: headings are
collapsed to levels 2–4, blockquotes only hold paragraphs, lists keep
their nesting, and no block or inline array is ever left empty.

Images and links are resolved against the identity maps the transformer
was created with.  An image whose media id is not in the asset map
becomes an italic ``[Image: …]`` paragraph; a link to a WordPress post
that has not been migrated yet stays an external hyperlink.  Tables,
video, audio and iframes have no Rich Text counterpart and are degraded
or skipped.  Every such degradation is reported as a warning in the
:class:`TransformResult` of the call that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, NamedTuple, Optional

from bs4 import BeautifulSoup, NavigableString, ParserRejectedMarkup, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from .preprocess import preprocess_html
from .references import extract_media_id, extract_post_reference
from .rich_text_schema import (
    PARAGRAPH,
    TEXT,
    Node,
    add_mark,
    blockquote,
    document,
    embedded_asset,
    empty_document,
    entry_hyperlink,
    heading,
    horizontal_rule,
    hyperlink,
    is_inline,
    list_container,
    list_item,
    paragraph,
    text_node,
    validate_document,
)

__all__ = [
    "TransformOptions",
    "TransformResult",
    "RichTextTransformer",
    "html_to_rich_text",
]

MARK_FOR_TAG = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "u": "underline",
    "code": "code",
    "mark": "bold",  # no highlight mark in Rich Text
    "sub": "subscript",
    "sup": "superscript",
}

HEADING_FOR_TAG = {"h1": 2, "h2": 2, "h3": 3, "h4": 4, "h5": 4, "h6": 4}

SKIPPED_MEDIA_TAGS = frozenset({"video", "audio", "iframe"})
# A figure holding any of these is more than an image with a caption.
FIGURE_BLOCK_TAGS = ["figure", "table", "blockquote", "ul", "ol", "p", "pre", *HEADING_FOR_TAG, *sorted(SKIPPED_MEDIA_TAGS)]
DISCARDED_TAGS = ("script", "style", "noscript")

_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


@dataclass
class TransformOptions:
    preserve_whitespace: bool = False
    strip_shortcodes: bool = True


class TransformResult(NamedTuple):
    document: Node
    warnings: List[str]


def _normalize_ws(text: str) -> str:
    return (text or "").replace("\xa0", " ")


def _is_blank(content: List[Node]) -> bool:
    return all(n.get("nodeType") == TEXT and not (n.get("value") or "").strip() for n in content)


def _inside_any(node: Tag, containers: List[Tag]) -> bool:
    return any(parent is c for parent in node.parents for c in containers)


class _TreeWalk:
    """State of a single :meth:`RichTextTransformer.transform` call."""

    def __init__(self, asset_map: Mapping[str, str], entry_map: Mapping[str, str], options: TransformOptions) -> None:
        self.asset_map = asset_map
        self.entry_map = entry_map
        self.options = options
        self.warnings: List[str] = []

    # --- Block context ---

    def process_nodes(self, nodes) -> List[Node]:
        results: List[Node] = []
        for node in list(nodes):
            results.extend(self.process_node(node))
        return results

    def process_node(self, node: Any) -> List[Node]:
        if isinstance(node, _SKIPPED_STRINGS):
            return []
        if isinstance(node, NavigableString):
            text = _normalize_ws(str(node))
            if not text.strip() and not self.options.preserve_whitespace:
                return []
            return [text_node(text)]
        if not isinstance(node, Tag):
            return []

        tag = (node.name or "").lower()
        if tag in ("p", "pre"):
            return self.create_paragraph(node)
        if tag in HEADING_FOR_TAG:
            return self.create_heading(node, HEADING_FOR_TAG[tag])
        if tag in ("ul", "ol"):
            return self.create_list(node, ordered=tag == "ol")
        if tag == "blockquote":
            return self.create_blockquote(node)
        if tag == "hr":
            return [horizontal_rule()]
        if tag == "table":
            self.warnings.append("Table converted to text (not supported in Rich Text)")
            return self.table_to_text(node)
        if tag == "img":
            return [self.create_embedded_asset(node)]
        if tag == "figure":
            return self.process_figure(node)
        if tag in SKIPPED_MEDIA_TAGS:
            self._skip_media(tag)
            return []
        if tag == "a":
            return [self.create_hyperlink(node)] + self.embedded_images(node)
        if tag == "br":
            return [text_node("\n")]
        if tag in MARK_FOR_TAG:
            return add_mark(self.process_inline(node), MARK_FOR_TAG[tag]) + self.embedded_images(node)
        # Containers and unknown elements carry no meaning of their own.
        return self.process_nodes(node.children)

    def coalesce(self, nodes: List[Node]) -> List[Node]:
        """Wrap runs of inline nodes found in block context into paragraphs."""
        blocks: List[Node] = []
        run: List[Node] = []

        def flush() -> None:
            if run and (self.options.preserve_whitespace or not _is_blank(run)):
                blocks.append(paragraph(list(run)))
            run.clear()

        for n in nodes:
            if is_inline(n):
                run.append(n)
            else:
                flush()
                blocks.append(n)
        flush()
        return blocks

    def create_paragraph(self, node: Tag) -> List[Node]:
        content = self.process_inline(node)
        blocks = [] if _is_blank(content) else [paragraph(content)]
        return blocks + self.embedded_images(node)

    def create_heading(self, node: Tag, level: int) -> List[Node]:
        content = self.process_inline(node)
        blocks = [] if _is_blank(content) else [heading(level, content)]
        return blocks + self.embedded_images(node)

    def create_list(self, node: Tag, *, ordered: bool) -> List[Node]:
        items: List[Node] = []
        for li in node.find_all("li", recursive=False):
            nested_lists = li.find_all(["ul", "ol"], recursive=False)
            inline = self.process_inline(li, exclude_nested_lists=bool(nested_lists))
            item_content: List[Node] = [] if _is_blank(inline) else [paragraph(inline)]
            # Images of nested items belong to those items.
            item_content.extend(
                self.create_embedded_asset(img) for img in li.find_all("img") if not _inside_any(img, nested_lists)
            )
            for nested in nested_lists:
                item_content.extend(self.create_list(nested, ordered=nested.name.lower() == "ol"))
            if item_content:
                items.append(list_item(item_content))
        if not items:
            return []
        return [list_container(ordered, items)]

    def create_blockquote(self, node: Tag) -> List[Node]:
        blocks = self.coalesce(self.process_nodes(node.children))
        paragraphs = [b for b in blocks if b.get("nodeType") == PARAGRAPH]
        dropped = len(blocks) - len(paragraphs)
        if dropped:
            self.warnings.append(f"{dropped} non-paragraph block(s) removed from blockquote")
        if not paragraphs:
            inline = self.process_inline(node)
            if _is_blank(inline):
                return []
            paragraphs = [paragraph(inline)]
        return [blockquote(paragraphs)]

    def table_to_text(self, table: Tag) -> List[Node]:
        rows: List[str] = []
        for tr in table.find_all("tr"):
            cells = [cell.get_text().strip() for cell in tr.find_all(["td", "th"])]
            rows.append(" | ".join(cells))
        text = "\n".join(rows)
        if not text.strip():
            return []
        return [paragraph([text_node(text)])]

    def process_figure(self, node: Tag) -> List[Node]:
        images = node.find_all("img")
        if len(images) == 1 and node.find(FIGURE_BLOCK_TAGS) is None:
            results = [self.create_embedded_asset(images[0])]
            caption = node.find("figcaption")
        else:
            # Anything beyond a single image is walked as ordinary content.
            caption = node.find("figcaption", recursive=False)
            results = self.process_nodes(child for child in node.children if child is not caption)
        if isinstance(caption, Tag):
            content = self.process_inline(caption)
            if not _is_blank(content):
                results.append(paragraph(content))
        return results

    def embedded_images(self, node: Tag) -> List[Node]:
        """Asset blocks for images nested in inline markup of ``node``.

        Inline processing never emits images, so they surface here, after
        the block that contained them.
        """
        return [self.create_embedded_asset(img) for img in node.find_all("img")]

    def create_embedded_asset(self, img: Tag) -> Node:
        src = str(img.get("src") or "")
        media_id = extract_media_id(img.attrs)
        asset_id = self.asset_map.get(str(media_id)) if media_id is not None else None
        if asset_id:
            return embedded_asset(asset_id)

        self.warnings.append(f"Asset not found for image: {src[:100]}")
        alt = str(img.get("alt") or "")
        return paragraph([text_node(f"[Image: {alt or src}]", ["italic"])])

    def _skip_media(self, tag: str) -> None:
        if tag == "iframe":
            self.warnings.append("iframe skipped (embed content manually)")
        else:
            self.warnings.append(f"{tag} element skipped (not directly supported)")

    # --- Inline context ---

    def process_inline(self, node: Tag, exclude_nested_lists: bool = False) -> List[Node]:
        results = self._inline_children(node, exclude_nested_lists)
        return results or [text_node("")]

    def _inline_children(self, node: Tag, exclude_nested_lists: bool) -> List[Node]:
        results: List[Node] = []
        for child in node.children:
            if isinstance(child, _SKIPPED_STRINGS):
                continue
            if isinstance(child, NavigableString):
                text = _normalize_ws(str(child))
                if text:
                    results.append(text_node(text))
                continue
            if not isinstance(child, Tag):
                continue

            tag = (child.name or "").lower()
            if tag in ("ul", "ol") and exclude_nested_lists:
                continue
            if tag in MARK_FOR_TAG:
                results.extend(add_mark(self._inline_children(child, exclude_nested_lists), MARK_FOR_TAG[tag]))
            elif tag == "a":
                results.append(self.create_hyperlink(child))
            elif tag == "br":
                results.append(text_node("\n"))
            elif tag == "img":
                continue
            elif tag in SKIPPED_MEDIA_TAGS:
                self._skip_media(tag)
            else:
                results.extend(self._inline_children(child, exclude_nested_lists))
        return results

    def create_hyperlink(self, node: Tag) -> Node:
        href = str(node.get("href") or "")
        content = self._link_text(self._inline_children(node, False))
        if _is_blank(content):
            content = [text_node(href or "link")]

        entry_id = self._resolve_entry(href)
        if entry_id:
            return entry_hyperlink(entry_id, content)
        return hyperlink(href, content)

    @staticmethod
    def _link_text(nodes: List[Node]) -> List[Node]:
        # Links only hold text runs; nested anchors are flattened.
        out: List[Node] = []
        for n in nodes:
            if n.get("nodeType") == TEXT:
                out.append(n)
            else:
                out.extend(c for c in n.get("content", []) if c.get("nodeType") == TEXT)
        return out

    def _resolve_entry(self, href: str) -> Optional[str]:
        reference = extract_post_reference(href)
        if reference is None:
            return None
        prefixes, source_id = reference
        for prefix in prefixes:
            entry_id = self.entry_map.get(f"{prefix}_{source_id}")
            if entry_id:
                return entry_id
        return None


class RichTextTransformer:
    """
    Converts WordPress HTML into Contentful Rich Text documents.

    :param asset_map: WordPress media id (as string) → Contentful asset id.
    :param entry_map: ``post_<id>`` / ``page_<id>`` → Contentful entry id.
    :param options: :class:`TransformOptions`.

    The maps are read at call time, so mappings committed between two
    calls are visible to the second one.
    """

    def __init__(
        self,
        asset_map: Optional[Mapping[str, str]] = None,
        entry_map: Optional[Mapping[str, str]] = None,
        options: Optional[TransformOptions] = None,
    ) -> None:
        self.asset_map: Mapping[str, str] = asset_map if asset_map is not None else {}
        self.entry_map: Mapping[str, str] = entry_map if entry_map is not None else {}
        self.options = options or TransformOptions()

    def transform(self, wp_html: Any) -> TransformResult:
        """Convert ``wp_html``; never raises, always returns a valid document."""
        if not isinstance(wp_html, str) or not wp_html.strip():
            return TransformResult(empty_document(), [])

        walk = _TreeWalk(self.asset_map, self.entry_map, self.options)
        try:
            html = preprocess_html(wp_html, strip_shortcodes_enabled=self.options.strip_shortcodes)
            soup = BeautifulSoup(html, "html.parser")
            for bad in soup.find_all(DISCARDED_TAGS):
                bad.decompose()
            content = walk.coalesce(walk.process_nodes(soup.children))
        except RecursionError:
            walk.warnings.append("HTML nested too deeply; content replaced by an empty document")
            return TransformResult(empty_document(), walk.warnings)
        except ParserRejectedMarkup as e:
            walk.warnings.append(f"HTML could not be parsed ({e}); content replaced by an empty document")
            return TransformResult(empty_document(), walk.warnings)
        return TransformResult(validate_document(document(content)), walk.warnings)


def html_to_rich_text(
    html: Any,
    asset_map: Optional[Mapping[str, str]] = None,
    entry_map: Optional[Mapping[str, str]] = None,
    **options: Any,
) -> TransformResult:
    """One-shot helper around :class:`RichTextTransformer`."""
    return RichTextTransformer(asset_map, entry_map, TransformOptions(**options)).transform(html)
