"""
Field mapping from WordPress records to Contentful entries.

Each ``*_fields`` function turns one WordPress record into the plain
(unlocalized) field dictionary of its Contentful content type.  Text is
sanitized, references are looked up in the identity maps and omitted
when the target has not been migrated, and HTML bodies go through the
:class:`~wp_contentful.parsers.rich_text.RichTextTransformer`.

:class:`EntryMapper` binds those builders to a destination writer and
exposes one coroutine per family with the signature the pipeline
expects: ``await create(record) -> (entry_id, warnings)``.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from wp_contentful.models.wordpress import WPCategory, WPContent, WPPage, WPPost, WPTag, WPUser
from wp_contentful.parsers.rich_text import RichTextTransformer
from wp_contentful.parsers.rich_text_schema import link
from wp_contentful.protocols import DestinationWriter
from wp_contentful.utils.identity_map import IdentityMap, map_key
from wp_contentful.utils.text import sanitize_text, truncate

# family -> Contentful content type id
CONTENT_TYPES: Dict[str, str] = {
    "authors": "author",
    "categories": "category",
    "tags": "tag",
    "posts": "blogPost",
    "pages": "page",
}
SECTION_CONTENT_TYPE = "richTextSection"
SECTION_PREFIX = "section"
PAGE_TEMPLATES = ("default", "full-width", "sidebar", "landing")
SEO_DESCRIPTION_LIMIT = 160

Fields = Dict[str, Any]
CreateResult = Tuple[str, List[str]]


def _entry_link(entry_map: Mapping[str, str], prefix: str, source_id: Any) -> Optional[Dict[str, Any]]:
    if not source_id:
        return None
    entry_id = entry_map.get(map_key(prefix, source_id))
    return link(entry_id) if entry_id else None


def _asset_link(asset_map: Mapping[str, str], media_id: Any) -> Optional[Dict[str, Any]]:
    if not media_id:
        return None
    asset_id = asset_map.get(str(media_id))
    return link(asset_id, "Asset") if asset_id else None


def _seo_fields(record: WPContent) -> Fields:
    yoast = record.yoast_head_json or {}
    fields: Fields = {}
    if yoast.get("title"):
        fields["seoTitle"] = yoast["title"]
    if yoast.get("description"):
        fields["seoDescription"] = truncate(yoast["description"], SEO_DESCRIPTION_LIMIT)
    return fields


def author_fields(user: WPUser) -> Fields:
    return {
        "name": sanitize_text(user.name),
        "slug": user.slug,
        "bio": sanitize_text(user.description),
        "wpId": user.id,
    }


def category_fields(category: WPCategory, entry_map: Mapping[str, str]) -> Fields:
    fields: Fields = {
        "name": sanitize_text(category.name),
        "slug": category.slug,
        "description": sanitize_text(category.description),
        "wpId": category.id,
    }
    parent = _entry_link(entry_map, "cat", category.parent)
    if parent:
        fields["parent"] = parent
    return fields


def tag_fields(tag: WPTag) -> Fields:
    return {"name": sanitize_text(tag.name), "slug": tag.slug, "wpId": tag.id}


def post_fields(
    post: WPPost,
    content: Dict[str, Any],
    entry_map: Mapping[str, str],
    asset_map: Mapping[str, str],
) -> Fields:
    """
    Build the ``blogPost`` fields for ``post``.

    ``content`` is the already transformed Rich Text document.  Category
    and tag links keep the order of the WordPress record; ids without a
    mapping are dropped, and empty link lists are omitted entirely.
    """
    fields: Fields = {
        "title": sanitize_text(post.title.rendered),
        "slug": post.slug,
        "publishDate": post.date,
        "modifiedDate": post.modified,
        "excerpt": sanitize_text(post.excerpt.rendered),
        "content": content,
        "wpId": post.id,
    }
    categories = [ref for ref in (_entry_link(entry_map, "cat", c) for c in post.categories) if ref]
    tags = [ref for ref in (_entry_link(entry_map, "tag", t) for t in post.tags) if ref]
    if categories:
        fields["categories"] = categories
    if tags:
        fields["tags"] = tags
    author = _entry_link(entry_map, "author", post.author)
    if author:
        fields["author"] = author
    image = _asset_link(asset_map, post.featured_media)
    if image:
        fields["featuredImage"] = image
    fields.update(_seo_fields(post))
    return fields


def page_title(page: WPPage) -> str:
    return sanitize_text(page.title.rendered) or "Content"


def section_fields(page: WPPage, content: Dict[str, Any]) -> Fields:
    return {
        "internalTitle": f"{page_title(page)} (Content)",
        "content": content,
        "wpId": page.id,
    }


def page_fields(
    page: WPPage,
    section_id: str,
    entry_map: Mapping[str, str],
    asset_map: Mapping[str, str],
) -> Fields:
    fields: Fields = {
        "title": page_title(page),
        "slug": page.slug,
        "sections": [link(section_id)],
        "template": page.template if page.template in PAGE_TEMPLATES else "default",
        "wpId": page.id,
    }
    parent = _entry_link(entry_map, "page", page.parent)
    if parent:
        fields["parent"] = parent
    image = _asset_link(asset_map, page.featured_media)
    if image:
        fields["featuredImage"] = image
    fields.update(_seo_fields(page))
    return fields


class EntryMapper:
    """
    Creates and publishes the Contentful entries of every content family.

    :param writer: A destination writer (``ContentfulWriter`` or
        ``DryRunWriter``).
    :param entry_map: Live entry identity map; also used to resolve
        cross-document links inside bodies.  Page sections are committed
        to it under ``section_<page id>``.
    :param asset_map: Asset identity map from the asset step.
    """

    def __init__(
        self,
        writer: DestinationWriter,
        entry_map: IdentityMap,
        asset_map: Mapping[str, str],
        transformer: Optional[RichTextTransformer] = None,
    ) -> None:
        self.writer = writer
        self.entry_map = entry_map
        self.asset_map = asset_map
        self.transformer = transformer or RichTextTransformer(asset_map, entry_map)

    async def _create_published(self, type_id: str, fields: Fields) -> str:
        entry_id = await self.writer.create_entity(type_id, fields)
        await self.writer.publish(entry_id)
        return entry_id

    async def create_author(self, user: WPUser) -> CreateResult:
        return await self._create_published(CONTENT_TYPES["authors"], author_fields(user)), []

    async def create_category(self, category: WPCategory) -> CreateResult:
        fields = category_fields(category, self.entry_map)
        return await self._create_published(CONTENT_TYPES["categories"], fields), []

    async def create_tag(self, tag: WPTag) -> CreateResult:
        return await self._create_published(CONTENT_TYPES["tags"], tag_fields(tag)), []

    async def create_post(self, post: WPPost) -> CreateResult:
        result = self.transformer.transform(post.content.rendered)
        fields = post_fields(post, result.document, self.entry_map, self.asset_map)
        return await self._create_published(CONTENT_TYPES["posts"], fields), result.warnings

    async def create_page(self, page: WPPage) -> CreateResult:
        # The body lives in its own section entry, mapped under its own key
        # so a page that fails after the section was published reuses it.
        result = self.transformer.transform(page.content.rendered)
        section_key = map_key(SECTION_PREFIX, page.id)
        section_id = self.entry_map.get(section_key)
        if not section_id:
            section_id = await self._create_published(SECTION_CONTENT_TYPE, section_fields(page, result.document))
            self.entry_map.set(section_key, section_id)
        fields = page_fields(page, section_id, self.entry_map, self.asset_map)
        return await self._create_published(CONTENT_TYPES["pages"], fields), result.warnings

    def creator_for(self, family: str) -> Callable[[Any], Awaitable[CreateResult]]:
        creators = {
            "authors": self.create_author,
            "categories": self.create_category,
            "tags": self.create_tag,
            "posts": self.create_post,
            "pages": self.create_page,
        }
        try:
            return creators[family]
        except KeyError:
            raise ValueError(f"No entry creator for family '{family}'") from None
