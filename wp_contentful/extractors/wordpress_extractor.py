"""
Reading the WordPress side of the migration.

Two readers are provided:

:class:`WordPressClient`
    Pages through the WordPress REST API (``/wp-json/wp/v2``) and writes
    every collection the migration needs into one export file.

:class:`ExportFileReader`
    Serves the entities of one family from that export file as pydantic
    models.  The migration steps only ever read from the export file, so a
    run can be repeated without touching the WordPress site again.
"""

from __future__ import annotations

import json
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type

import requests
from pydantic import ValidationError

from wp_contentful.models.wordpress import WPCategory, WPMedia, WPPage, WPPost, WPRecord, WPTag, WPUser
from wp_contentful.utils.errors import FatalMigrationError, SourceReadError
from wp_contentful.utils.http import with_retries
from wp_contentful.utils.log import log_message

EXPORT_FILE = "wp-export.json"
POC_EXPORT_FILE = "wp-export-poc.json"

# family -> (export collection, model)
FAMILY_SOURCES: Dict[str, Tuple[str, Type[WPRecord]]] = {
    "authors": ("users", WPUser),
    "categories": ("categories", WPCategory),
    "tags": ("tags", WPTag),
    "media": ("media", WPMedia),
    "posts": ("posts", WPPost),
    "pages": ("pages", WPPage),
}

CORE_ENDPOINTS = ("posts", "pages", "categories", "tags", "media", "users")
# Registered types that are not content (or are exported under their own endpoint).
_IGNORED_TYPES = {
    "post", "page", "attachment", "nav_menu_item", "wp_block", "wp_template",
    "wp_template_part", "wp_navigation", "wp_font_family", "wp_font_face", "wp_global_styles",
}


def resolve_export_path(data_dir: str) -> str:
    """The proof-of-concept subset wins over the full export when present."""
    poc = os.path.join(data_dir, POC_EXPORT_FILE)
    if os.path.exists(poc):
        return poc
    return os.path.join(data_dir, EXPORT_FILE)


def _valid_items(items: Any) -> List[Dict[str, Any]]:
    # Some hosts return empty strings or nulls in place of records.
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


class ExportFileReader:
    """Source reader backed by a ``wp-export.json`` file."""

    def __init__(self, path: str) -> None:
        if not os.path.exists(path):
            raise FatalMigrationError(f"{os.path.basename(path)} not found. Run the export step first.")
        self.path = path
        with open(path, "r", encoding="utf-8") as f:
            self.data: Dict[str, Any] = json.load(f)

    @property
    def is_poc(self) -> bool:
        return os.path.basename(self.path) == POC_EXPORT_FILE

    def raw(self, family: str) -> List[Dict[str, Any]]:
        collection, _ = self._source(family)
        return _valid_items(self.data.get(collection))

    def count(self, family: str) -> int:
        return len(self.raw(family))

    def raw_count(self, family: str) -> int:
        """Number of items in the collection, including ones that are not records."""
        collection, _ = self._source(family)
        items = self.data.get(collection)
        return len(items) if isinstance(items, list) else 0

    def list_entities(self, family: str) -> List[WPRecord]:
        _, model = self._source(family)
        entities: List[WPRecord] = []
        for item in self.raw(family):
            try:
                entities.append(model.model_validate(item))
            except ValidationError as e:
                log_message(f"Skipping malformed {family} record {item.get('id')!r}: {e.error_count()} error(s)", "WARNING")
        return entities

    @staticmethod
    def _source(family: str) -> Tuple[str, Type[WPRecord]]:
        try:
            return FAMILY_SOURCES[family]
        except KeyError:
            raise SourceReadError(f"Unknown family '{family}'") from None


class WordPressClient:
    """
    Minimal WordPress REST API client used by the export step.

    :param api_url: Base URL of the REST API, e.g.
        ``https://example.com/wp-json/wp/v2``.
    :param username: Optional user for application-password auth.
    :param app_password: Optional application password.
    :param embed: Request ``_embed`` data.  Off by default because some
        hosts answer ``_embed=true`` with an empty body.
    """

    def __init__(
        self,
        api_url: str,
        username: Optional[str] = None,
        app_password: Optional[str] = None,
        *,
        embed: bool = False,
        per_page: int = 100,
        page_delay: float = 0.2,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_url:
            raise FatalMigrationError("WP_API_URL is not set")
        if not api_url.startswith(("https://", "http://")):
            raise FatalMigrationError(
                "WP_API_URL should start with https:// or http:// (e.g. https://yoursite.com/wp-json/wp/v2)"
            )
        self.api_url = api_url.rstrip("/")
        self.embed = embed
        self.per_page = per_page
        self.page_delay = page_delay
        self.session = session or requests.Session()
        if username and app_password:
            self.session.auth = (username, app_password)

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.api_url}/{endpoint.lstrip('/')}" if endpoint else f"{self.api_url}/"
        return with_retries(lambda: self.session.get(url, params=params, timeout=90))

    def check_connection(self) -> None:
        try:
            self._get("")
        except requests.RequestException as e:
            raise FatalMigrationError(f"Error connecting to WordPress API: {e}") from e

    def fetch_all_paginated(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Fetch every page of ``endpoint``; returns the concatenated records."""
        page = 1
        items: List[Dict[str, Any]] = []
        log_message(f"Fetching {endpoint}...")
        while True:
            query = {"per_page": self.per_page, "page": page, **(params or {})}
            if self.embed:
                query["_embed"] = "true"
            try:
                resp = self._get(endpoint, query)
            except requests.HTTPError as e:
                # WordPress answers 400 when asked for a page past the end
                if e.response is not None and e.response.status_code == 400 and page > 1:
                    break
                raise SourceReadError(f"Failed to fetch {endpoint} page {page}: {e}") from e
            except requests.RequestException as e:
                raise SourceReadError(f"Failed to fetch {endpoint} page {page}: {e}") from e

            data = self._parse_page(endpoint, resp.text)
            items.extend(data)

            total_pages = int(resp.headers.get("X-WP-TotalPages") or 1)
            log_message(f"  {endpoint}: page {page}/{total_pages} ({len(items)} items)", "DEBUG")
            if page >= total_pages:
                break
            page += 1
            time.sleep(self.page_delay)
        return items

    @staticmethod
    def _parse_page(endpoint: str, raw: str) -> List[Any]:
        try:
            data = json.loads(raw)
        except ValueError as e:
            preview = " ".join(raw[:120].split())
            log_message(f"{endpoint} returned invalid JSON ({e}); first chars: {preview!r}", "WARNING")
            return []
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            return data["data"]
        log_message(f"Unexpected response format for {endpoint}: {type(data).__name__}", "WARNING")
        return []

    def get_post_types(self) -> List[str]:
        try:
            types = self._get("types").json()
        except (requests.RequestException, ValueError) as e:
            log_message(f"Could not fetch post types ({e}), using defaults", "WARNING")
            return ["post", "page"]
        return [t for t in types if t not in _IGNORED_TYPES] if isinstance(types, dict) else []

    def export(self, out_path: str) -> Dict[str, Any]:
        """Export all core collections plus custom post types to ``out_path``."""
        self.check_connection()
        export: Dict[str, Any] = {}
        for endpoint in CORE_ENDPOINTS:
            records = self.fetch_all_paginated(endpoint)
            valid = _valid_items(records)
            if len(valid) != len(records):
                log_message(
                    f"Filtered {len(records) - len(valid)} invalid {endpoint} items. "
                    "Set WP_USERNAME/WP_APP_PASSWORD if the site requires authentication.",
                    "WARNING",
                )
            export[endpoint] = valid

        custom_types = self.get_post_types()
        for post_type in custom_types:
            try:
                export[post_type] = _valid_items(self.fetch_all_paginated(post_type))
            except SourceReadError as e:
                log_message(f"Could not export {post_type}: {e}", "WARNING")
                export[post_type] = []

        export["_meta"] = {
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "sourceUrl": self.api_url,
            "counts": {k: len(v) for k, v in export.items() if isinstance(v, list)},
        }
        os.makedirs(os.path.dirname(os.path.abspath(out_path)), exist_ok=True)
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(export, f, indent=2, ensure_ascii=False)
        return export


def download_media(
    url: str,
    *,
    auth: Optional[Tuple[str, str]] = None,
    max_bytes: int = 500 * 1024 * 1024,
    timeout: float = 120,
) -> Tuple[bytes, Optional[str]]:
    """
    Download a media file from WordPress.

    :return: The file content and the ``Content-Type`` the server sent.
    :raises SourceReadError: if the file is larger than ``max_bytes`` or the
        server does not answer 200.
    """
    with requests.get(url, auth=auth, stream=True, timeout=timeout) as resp:
        if resp.status_code != 200:
            raise SourceReadError(f"Download of {url} failed with status {resp.status_code}")
        declared = resp.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise SourceReadError(f"{url} is larger than {max_bytes} bytes")
        chunks: List[bytes] = []
        size = 0
        for chunk in resp.iter_content(chunk_size=64 * 1024):
            size += len(chunk)
            if size > max_bytes:
                raise SourceReadError(f"{url} is larger than {max_bytes} bytes")
            chunks.append(chunk)
        return b"".join(chunks), resp.headers.get("Content-Type")
