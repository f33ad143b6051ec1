"""
Collaborator interfaces of the migration core.

The pipeline and the mappers only rely on these methods, so the
export-file reader, the Contentful writer and the dry-run writer can be
swapped for in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol


class SourceReader(Protocol):
    def list_entities(self, family: str) -> List[Any]:
        """All records of ``family``; raises ``SourceReadError`` when the family cannot be listed."""
        ...


class DestinationWriter(Protocol):
    async def create_entity(self, type_id: str, fields: Dict[str, Any]) -> str:
        ...

    async def publish(self, entry_id: str) -> None:
        ...

    async def create_asset(
        self,
        content: bytes,
        content_type: str,
        file_name: str,
        *,
        title: str = "",
        description: str = "",
    ) -> str:
        ...

    async def wait_until_processed(self, asset_id: str) -> None:
        """Returns once the asset is processed; raises ``AssetProcessingTimeout`` otherwise."""
        ...

    async def publish_asset(self, asset_id: str) -> None:
        ...
