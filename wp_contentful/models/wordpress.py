from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Rendered(BaseModel):
    """A WordPress REST text field (``{"rendered": "..."}``)."""

    model_config = ConfigDict(extra="allow")

    rendered: str = ""


def _as_rendered(v: Any) -> Any:
    # Some exports flatten rendered fields to plain strings.
    if v is None:
        return {"rendered": ""}
    if isinstance(v, str):
        return {"rendered": v}
    return v


def _as_int(v: Any) -> int:
    if v in (None, "", False):
        return 0
    return int(v)


class WPRecord(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int
    slug: str = ""

    @field_validator("slug", mode="before")
    @classmethod
    def _slug(cls, v: Any) -> str:
        return v or ""


class WPUser(WPRecord):
    name: Optional[str] = ""
    description: Optional[str] = ""


class WPTerm(WPRecord):
    name: Optional[str] = ""
    description: Optional[str] = ""


class WPTag(WPTerm):
    pass


class WPCategory(WPTerm):
    parent: int = 0

    @field_validator("parent", mode="before")
    @classmethod
    def _parent(cls, v: Any) -> int:
        return _as_int(v)


class WPMedia(WPRecord):
    title: Rendered = Field(default_factory=Rendered)
    caption: Rendered = Field(default_factory=Rendered)
    guid: Rendered = Field(default_factory=Rendered)
    alt_text: Optional[str] = ""
    mime_type: Optional[str] = None
    source_url: Optional[str] = None

    @field_validator("title", "caption", "guid", mode="before")
    @classmethod
    def _rendered(cls, v: Any) -> Any:
        return _as_rendered(v)

    def download_url(self) -> Optional[str]:
        return self.source_url or self.guid.rendered or None

    def file_name(self) -> str:
        url = self.download_url() or ""
        name = url.split("?")[0].rstrip("/").split("/")[-1]
        return name or f"asset-{self.id}"


class WPContent(WPRecord):
    title: Rendered = Field(default_factory=Rendered)
    content: Rendered = Field(default_factory=Rendered)
    excerpt: Rendered = Field(default_factory=Rendered)
    date: Optional[str] = None
    modified: Optional[str] = None
    author: int = 0
    featured_media: int = 0
    yoast_head_json: Optional[dict[str, Any]] = None

    @field_validator("title", "content", "excerpt", mode="before")
    @classmethod
    def _rendered(cls, v: Any) -> Any:
        return _as_rendered(v)

    @field_validator("author", "featured_media", mode="before")
    @classmethod
    def _ints(cls, v: Any) -> int:
        return _as_int(v)


class WPPost(WPContent):
    categories: list[int] = Field(default_factory=list)
    tags: list[int] = Field(default_factory=list)

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> list[int]:
        return [int(x) for x in (v or []) if x not in (None, "")]


class WPPage(WPContent):
    parent: int = 0
    template: str = ""

    @field_validator("parent", mode="before")
    @classmethod
    def _parent(cls, v: Any) -> int:
        return _as_int(v)

    @field_validator("template", mode="before")
    @classmethod
    def _template(cls, v: Any) -> str:
        return v or ""
