"""
Contentful Management API helper functions for WordPress → Contentful migration.

This module implements low-level interactions with the Contentful
Management API (CMA).  Functions defined here create and publish
entries, upload binary files through the upload API, create assets from
those uploads, trigger asset processing and poll until Contentful has
finished deriving the file metadata.  A rate limiter keeps the tool under
the CMA's default limit of 10 requests per second, and every request goes
through :func:`wp_contentful.utils.http.with_retries` so that 429 and 5xx
responses are retried.

:class:`ContentfulWriter` wraps the blocking functions in coroutines for
the asynchronous migration pipeline; :class:`DryRunWriter` has the same
interface and never touches the network.

Usage example::

    cfg = {"space_id": ..., "environment": "master", "management_token": ...,
           "base_url": "https://api.contentful.com",
           "upload_url": "https://upload.contentful.com", "locale": "en-US"}
    entry = create_entry(cfg, "tag", localize(cfg, {"name": "News", "slug": "news"}))
    publish_entry(cfg, entry["sys"]["id"], entry["sys"]["version"])
"""

from __future__ import annotations

import asyncio
import itertools
import threading
import time
from typing import Any, Callable, Dict, Optional

import requests

from wp_contentful.parsers.rich_text_schema import link
from wp_contentful.utils.errors import AssetProcessingTimeout
from wp_contentful.utils.http import RateLimiter, with_retries

CMA_JSON = "application/vnd.contentful.management.v1+json"

###############################################################################
# Request helpers
###############################################################################

_limiter = RateLimiter(7)
_limiter_lock = threading.Lock()


def _throttle() -> None:
    # Requests are issued from worker threads; the limiter state is shared.
    with _limiter_lock:
        _limiter.wait()


def contentful_headers(cfg: Dict[str, Any], content_type: Optional[str] = CMA_JSON) -> Dict[str, str]:
    """
    Construct the default headers required for CMA requests.

    :param cfg: A configuration dictionary with the ``management_token``.
    :param content_type: Request body content type, if any.
    :return: A dictionary of headers including Authorization.
    """
    headers = {"Authorization": f"Bearer {cfg['management_token']}"}
    if content_type:
        headers["Content-Type"] = content_type
    return headers


def environment_url(cfg: Dict[str, Any]) -> str:
    return f"{cfg['base_url'].rstrip('/')}/spaces/{cfg['space_id']}/environments/{cfg.get('environment') or 'master'}"


def localize(cfg: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Wrap plain field values in the configured locale: ``{"title": {"en-US": ...}}``."""
    locale = cfg.get("locale") or "en-US"
    return {name: {locale: value} for name, value in fields.items()}


def _send(
    method: str,
    url: str,
    cfg: Dict[str, Any],
    *,
    content_type: Optional[str] = CMA_JSON,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 60,
    **kwargs: Any,
) -> Dict[str, Any]:
    all_headers = {**contentful_headers(cfg, content_type), **(headers or {})}

    def do_request() -> requests.Response:
        _throttle()
        return requests.request(method, url, headers=all_headers, timeout=timeout, **kwargs)

    resp = with_retries(do_request)
    return resp.json() if resp.content else {}


###############################################################################
# Entry helpers
###############################################################################

def create_entry(cfg: Dict[str, Any], content_type_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create an entry of ``content_type_id``.

    :param fields: Localized fields (see :func:`localize`).
    :return: The created entry; ``sys.id`` and ``sys.version`` are needed
             to publish it.
    :raises requests.HTTPError: on failure.
    """
    return _send(
        "POST",
        f"{environment_url(cfg)}/entries",
        cfg,
        headers={"X-Contentful-Content-Type": content_type_id},
        json={"fields": fields},
    )


def get_entry(cfg: Dict[str, Any], entry_id: str) -> Dict[str, Any]:
    return _send("GET", f"{environment_url(cfg)}/entries/{entry_id}", cfg, content_type=None)


def publish_entry(cfg: Dict[str, Any], entry_id: str, version: int) -> Dict[str, Any]:
    return _send(
        "PUT",
        f"{environment_url(cfg)}/entries/{entry_id}/published",
        cfg,
        content_type=None,
        headers={"X-Contentful-Version": str(version)},
    )


###############################################################################
# Asset helpers
###############################################################################

def create_upload(cfg: Dict[str, Any], content: bytes) -> Dict[str, Any]:
    """Send raw file content to the upload API; returns the upload resource."""
    url = f"{cfg['upload_url'].rstrip('/')}/spaces/{cfg['space_id']}/uploads"
    return _send("POST", url, cfg, content_type="application/octet-stream", data=content, timeout=300)


def create_asset(
    cfg: Dict[str, Any],
    upload_id: str,
    *,
    content_type: str,
    file_name: str,
    title: str,
    description: str = "",
) -> Dict[str, Any]:
    """Create an asset whose file comes from a previous :func:`create_upload`."""
    fields = localize(cfg, {
        "title": title,
        "description": description[:500],
        "file": {
            "contentType": content_type,
            "fileName": file_name,
            "uploadFrom": link(upload_id, "Upload"),
        },
    })
    return _send("POST", f"{environment_url(cfg)}/assets", cfg, json={"fields": fields})


def get_asset(cfg: Dict[str, Any], asset_id: str) -> Dict[str, Any]:
    return _send("GET", f"{environment_url(cfg)}/assets/{asset_id}", cfg, content_type=None)


def process_asset(cfg: Dict[str, Any], asset_id: str, version: int) -> None:
    locale = cfg.get("locale") or "en-US"
    _send(
        "PUT",
        f"{environment_url(cfg)}/assets/{asset_id}/files/{locale}/process",
        cfg,
        content_type=None,
        headers={"X-Contentful-Version": str(version)},
    )


def is_processed(cfg: Dict[str, Any], asset: Dict[str, Any]) -> bool:
    locale = cfg.get("locale") or "en-US"
    file_info = ((asset.get("fields") or {}).get("file") or {}).get(locale) or {}
    return bool(file_info.get("url"))


def wait_for_processing(
    cfg: Dict[str, Any],
    asset_id: str,
    *,
    max_attempts: int = 20,
    interval: float = 2.0,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """
    Poll the asset until its file has a URL, i.e. processing finished.

    :return: The processed asset (its ``sys.version`` is needed to publish).
    :raises AssetProcessingTimeout: when ``max_attempts`` polls were not enough.
    """
    for attempt in range(max_attempts):
        asset = get_asset(cfg, asset_id)
        if is_processed(cfg, asset):
            return asset
        if attempt < max_attempts - 1:
            sleep_fn(interval)
    raise AssetProcessingTimeout(asset_id, max_attempts)


def publish_asset(cfg: Dict[str, Any], asset_id: str, version: int) -> Dict[str, Any]:
    return _send(
        "PUT",
        f"{environment_url(cfg)}/assets/{asset_id}/published",
        cfg,
        content_type=None,
        headers={"X-Contentful-Version": str(version)},
    )


###############################################################################
# Destination writers
###############################################################################

class ContentfulWriter:
    """
    Asynchronous destination writer backed by the CMA.

    The blocking request functions above run in worker threads through
    :func:`asyncio.to_thread`; entity bookkeeping stays on the event loop.
    The latest known ``sys.version`` of every created resource is cached
    so that publishing does not need an extra read.
    """

    def __init__(self, cfg: Dict[str, Any], *, max_processing_attempts: int = 20, processing_interval: float = 2.0) -> None:
        self.cfg = cfg
        self.max_processing_attempts = max_processing_attempts
        self.processing_interval = processing_interval
        self._versions: Dict[str, int] = {}

    def _remember(self, resource: Dict[str, Any]) -> str:
        sys = resource.get("sys") or {}
        resource_id = sys.get("id")
        if not resource_id:
            raise ValueError(f"Contentful response without sys.id: {resource}")
        self._versions[resource_id] = int(sys.get("version") or 1)
        return resource_id

    async def create_entity(self, type_id: str, fields: Dict[str, Any]) -> str:
        entry = await asyncio.to_thread(create_entry, self.cfg, type_id, localize(self.cfg, fields))
        return self._remember(entry)

    async def publish(self, entry_id: str) -> None:
        version = self._versions.get(entry_id)
        if version is None:
            self._remember(await asyncio.to_thread(get_entry, self.cfg, entry_id))
            version = self._versions[entry_id]
        await asyncio.to_thread(publish_entry, self.cfg, entry_id, version)

    async def create_asset(
        self,
        content: bytes,
        content_type: str,
        file_name: str,
        *,
        title: str = "",
        description: str = "",
    ) -> str:
        """Upload ``content``, create the asset and start processing it."""
        upload = await asyncio.to_thread(create_upload, self.cfg, content)
        asset = await asyncio.to_thread(
            create_asset,
            self.cfg,
            upload["sys"]["id"],
            content_type=content_type,
            file_name=file_name,
            title=title or file_name,
            description=description,
        )
        asset_id = self._remember(asset)
        await asyncio.to_thread(process_asset, self.cfg, asset_id, self._versions[asset_id])
        return asset_id

    async def wait_until_processed(self, asset_id: str) -> None:
        asset = await asyncio.to_thread(
            wait_for_processing,
            self.cfg,
            asset_id,
            max_attempts=self.max_processing_attempts,
            interval=self.processing_interval,
        )
        self._remember(asset)

    async def publish_asset(self, asset_id: str) -> None:
        version = self._versions.get(asset_id)
        if version is None:
            self._remember(await asyncio.to_thread(get_asset, self.cfg, asset_id))
            version = self._versions[asset_id]
        await asyncio.to_thread(publish_asset, self.cfg, asset_id, version)


class DryRunWriter:
    """Writer that only records what would have been written."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.created: Dict[str, Dict[str, Any]] = {}

    async def create_entity(self, type_id: str, fields: Dict[str, Any]) -> str:
        entry_id = f"dry-{type_id}-{next(self._ids)}"
        self.created[entry_id] = {"type": type_id, "fields": fields}
        return entry_id

    async def publish(self, entry_id: str) -> None:
        return None

    async def create_asset(self, content: bytes, content_type: str, file_name: str, *, title: str = "", description: str = "") -> str:
        asset_id = f"dry-asset-{next(self._ids)}"
        self.created[asset_id] = {"type": "asset", "fileName": file_name, "contentType": content_type, "size": len(content)}
        return asset_id

    async def wait_until_processed(self, asset_id: str) -> None:
        return None

    async def publish_asset(self, asset_id: str) -> None:
        return None
