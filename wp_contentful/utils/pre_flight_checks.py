from __future__ import annotations

from typing import Any, Dict, Iterable

import requests

from .errors import FatalMigrationError


class PreFlightCheckError(FatalMigrationError):
    """Custom exception for pre-flight check failures."""


def run_contentful_pre_flight_checks(cfg: Dict[str, Any], required_content_types: Iterable[str] = ()) -> None:
    """
    Verifies that the Contentful environment is correctly configured for migration.

    Args:
        cfg: The ``contentful`` section of the configuration.
        required_content_types: Content type ids the migration will create
            entries of.

    Raises:
        PreFlightCheckError: If any check fails.
    """
    token = cfg.get("management_token")
    space_id = cfg.get("space_id")
    if not token:
        raise PreFlightCheckError("CONTENTFUL_MANAGEMENT_TOKEN is not set.")
    if not space_id:
        raise PreFlightCheckError("CONTENTFUL_SPACE_ID is not set.")

    base_url = (cfg.get("base_url") or "https://api.contentful.com").rstrip("/")
    env_url = f"{base_url}/spaces/{space_id}/environments/{cfg.get('environment') or 'master'}"
    headers = {"Authorization": f"Bearer {token}"}

    # Check 1: token, space and environment
    try:
        response = requests.get(env_url, headers=headers, timeout=10)
        response.raise_for_status()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        if status == 401:
            raise PreFlightCheckError("The Contentful management token is invalid or expired.") from e
        if status == 404:
            raise PreFlightCheckError(f"Space '{space_id}' or environment '{cfg.get('environment')}' not found.") from e
        raise PreFlightCheckError(f"Unexpected error checking the Contentful environment: {e}") from e
    except requests.RequestException as e:
        raise PreFlightCheckError(f"Network error connecting to Contentful: {e}") from e

    # Check 2: content model
    required = set(required_content_types)
    if not required:
        return
    try:
        response = requests.get(f"{env_url}/content_types", headers=headers, params={"limit": 1000}, timeout=10)
        response.raise_for_status()
    except requests.RequestException as e:
        raise PreFlightCheckError(f"Could not list Contentful content types: {e}") from e
    existing = {item.get("sys", {}).get("id") for item in response.json().get("items", [])}
    missing = sorted(required - existing)
    if missing:
        raise PreFlightCheckError(f"Missing content types in Contentful: {', '.join(missing)}")
