from __future__ import annotations

import asyncio
import re
from typing import Callable, List, Optional, Tuple

from wp_contentful.extractors.wordpress_extractor import download_media
from wp_contentful.models.wordpress import WPMedia
from wp_contentful.protocols import DestinationWriter
from wp_contentful.utils.text import sanitize_title

_TAG_RE = re.compile(r"<[^>]*>")

Downloader = Callable[[str], Tuple[bytes, Optional[str]]]


def asset_description(media: WPMedia) -> str:
    """Alt text wins; otherwise the caption with its markup removed."""
    if media.alt_text:
        return media.alt_text
    return _TAG_RE.sub("", media.caption.rendered or "").strip()


class AssetMapper:
    """
    Moves one WordPress media item into a published Contentful asset.

    The binary is downloaded from ``source_url`` (or ``guid.rendered``)
    because the upload API only accepts file content.

    :param writer: A destination writer.
    :param downloader: ``url -> (content, content_type)``; blocking, run
        in a worker thread.
    """

    def __init__(self, writer: DestinationWriter, downloader: Optional[Downloader] = None) -> None:
        self.writer = writer
        self.downloader: Downloader = downloader or download_media

    async def create_asset(self, media: WPMedia) -> Tuple[str, List[str]]:
        url = media.download_url()
        if not url:
            raise ValueError("No source_url or guid.rendered for media item")

        content, served_type = await asyncio.to_thread(self.downloader, url)
        content_type = media.mime_type or served_type or "application/octet-stream"
        asset_id = await self.writer.create_asset(
            content,
            content_type,
            media.file_name(),
            title=sanitize_title(media.title.rendered),
            description=asset_description(media),
        )
        await self.writer.wait_until_processed(asset_id)
        await self.writer.publish_asset(asset_id)
        return asset_id, []
