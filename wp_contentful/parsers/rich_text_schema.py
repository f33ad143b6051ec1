from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


Node = Dict[str, Any]

DOCUMENT = "document"
PARAGRAPH = "paragraph"
HEADING_2 = "heading-2"
HEADING_3 = "heading-3"
HEADING_4 = "heading-4"
UL_LIST = "unordered-list"
OL_LIST = "ordered-list"
LIST_ITEM = "list-item"
QUOTE = "blockquote"
HR = "hr"
EMBEDDED_ASSET = "embedded-asset-block"
EMBEDDED_ENTRY = "embedded-entry-block"

TEXT = "text"
HYPERLINK = "hyperlink"
ENTRY_HYPERLINK = "entry-hyperlink"

INLINE_TYPES = frozenset({TEXT, HYPERLINK, ENTRY_HYPERLINK})
CHILDLESS_BLOCKS = frozenset({HR, EMBEDDED_ASSET, EMBEDDED_ENTRY})
HEADING_LEVELS = (2, 3, 4)

MARKS = ("bold", "italic", "underline", "code", "subscript", "superscript")


# --- Builders for Rich Text nodes ---

def document(content: List[Node]) -> Node:
    return {"nodeType": DOCUMENT, "data": {}, "content": content}


def text_node(value: str, marks: Optional[Iterable[str]] = None) -> Node:
    return {
        "nodeType": TEXT,
        "value": value,
        "marks": [{"type": m} for m in _ordered_marks(marks or ())],
        "data": {},
    }


def paragraph(content: List[Node]) -> Node:
    return {"nodeType": PARAGRAPH, "data": {}, "content": content}


def heading(level: int, content: List[Node]) -> Node:
    lvl = max(HEADING_LEVELS[0], min(HEADING_LEVELS[-1], int(level)))
    return {"nodeType": f"heading-{lvl}", "data": {}, "content": content}


def list_container(ordered: bool, items: List[Node]) -> Node:
    return {"nodeType": OL_LIST if ordered else UL_LIST, "data": {}, "content": items}


def list_item(content: List[Node]) -> Node:
    return {"nodeType": LIST_ITEM, "data": {}, "content": content}


def blockquote(content: List[Node]) -> Node:
    return {"nodeType": QUOTE, "data": {}, "content": content}


def horizontal_rule() -> Node:
    return {"nodeType": HR, "data": {}, "content": []}


def link(entity_id: str, link_type: str = "Entry") -> Node:
    """A Contentful link object, as used in reference fields and node data."""
    return {"sys": {"type": "Link", "linkType": link_type, "id": entity_id}}


def embedded_asset(asset_id: str) -> Node:
    return {"nodeType": EMBEDDED_ASSET, "data": {"target": link(asset_id, "Asset")}, "content": []}


def hyperlink(uri: str, content: List[Node]) -> Node:
    return {"nodeType": HYPERLINK, "data": {"uri": uri}, "content": content}


def entry_hyperlink(entry_id: str, content: List[Node]) -> Node:
    return {"nodeType": ENTRY_HYPERLINK, "data": {"target": link(entry_id)}, "content": content}


def empty_paragraph() -> Node:
    return paragraph([text_node("")])


def empty_document() -> Node:
    return document([empty_paragraph()])


# --- Marks ---

def _ordered_marks(marks: Iterable[str]) -> List[str]:
    wanted = set(marks)
    known = [m for m in MARKS if m in wanted]
    return known + sorted(wanted.difference(MARKS))


def mark_types(node: Node) -> List[str]:
    return [m.get("type") for m in node.get("marks", []) if isinstance(m, dict)]


def add_mark(nodes: List[Node], mark: str) -> List[Node]:
    """Union ``mark`` onto every text run in ``nodes``, descending into links."""
    out: List[Node] = []
    for n in nodes:
        if n.get("nodeType") == TEXT:
            out.append({**n, "marks": [{"type": m} for m in _ordered_marks(mark_types(n) + [mark])]})
        elif n.get("nodeType") in (HYPERLINK, ENTRY_HYPERLINK):
            out.append({**n, "content": add_mark(n.get("content", []), mark)})
        else:
            out.append(n)
    return out


def is_inline(node: Node) -> bool:
    return node.get("nodeType") in INLINE_TYPES


# --- Validator/normalizer ---

def validate_document(doc: Node) -> Node:
    """
    Enforce the Rich Text shape rules the Contentful API validates:

    - the document holds at least one block;
    - stray inline nodes at document level are wrapped in a paragraph;
    - blocks other than ``hr`` and embeds never have an empty ``content``
      (empty paragraphs get an empty text run, other empty blocks are
      dropped);
    - blockquotes only hold paragraphs.
    """
    content = doc.get("content") if isinstance(doc, dict) else None
    if not isinstance(content, list):
        return empty_document()

    fixed: List[Node] = []
    for n in content:
        if not isinstance(n, dict):
            continue
        if is_inline(n):
            fixed.append(paragraph([n]))
            continue
        block = _validate_block(n)
        if block is not None:
            fixed.append(block)
    return document(fixed or [empty_paragraph()])


def _validate_block(node: Node) -> Optional[Node]:
    t = node.get("nodeType")
    if t in CHILDLESS_BLOCKS:
        return {**node, "content": []}
    children = [c for c in node.get("content") or [] if isinstance(c, dict)]
    if t in (PARAGRAPH, HEADING_2, HEADING_3, HEADING_4):
        inlines = [_validate_inline(c) for c in children if is_inline(c)]
        if not inlines:
            return empty_paragraph() if t == PARAGRAPH else None
        return {**node, "content": inlines}
    if t in (UL_LIST, OL_LIST):
        items = [i for i in (_validate_block(c) for c in children if c.get("nodeType") == LIST_ITEM) if i]
        return {**node, "content": items} if items else None
    if t in (LIST_ITEM, QUOTE):
        blocks = [b for b in (_validate_block(c) for c in children if not is_inline(c)) if b]
        if t == QUOTE:
            blocks = [b for b in blocks if b.get("nodeType") == PARAGRAPH]
        return {**node, "content": blocks} if blocks else None
    return None


def _validate_inline(node: Node) -> Node:
    if node.get("nodeType") == TEXT:
        return node
    content = [_validate_inline(c) for c in node.get("content") or [] if isinstance(c, dict) and c.get("nodeType") == TEXT]
    return {**node, "content": content or [text_node("")]}
