"""
Batch engine shared by the asset and content steps.

:func:`migrate_family` walks one family's entities in fixed-size
batches.  Entities already present in the identity map are skipped, so
running the same family twice creates nothing the second time.  The
entities of a batch are created concurrently; a mapping is committed
only after its entity was fully created and published, the map is
persisted after every batch, and a failing entity is recorded and
counted without stopping the others.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Set, Tuple

from wp_contentful.sequencer import batched, map_prefix
from wp_contentful.utils.errors import AssetProcessingTimeout, report_error, report_ok
from wp_contentful.utils.identity_map import IdentityMap, map_key
from wp_contentful.utils.log import log_message

Creator = Callable[[Any], Awaitable[Tuple[str, List[str]]]]


@dataclass
class FamilyStats:
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[Tuple[Any, str]] = field(default_factory=list)

    def summary(self) -> str:
        return f"{self.migrated}/{self.total} migrated, {self.skipped} skipped, {self.failed} failed"


def _error_code(family: str, exc: BaseException) -> str:
    if isinstance(exc, AssetProcessingTimeout):
        return "ASSET_TIMEOUT"
    return "ASSET_UPLOAD" if family == "media" else "ENTRY_CREATE"


async def migrate_family(
    family: str,
    entities: Sequence[Any],
    identity_map: IdentityMap,
    create: Creator,
    *,
    batch_size: int = 5,
    delay: float = 1.0,
    persist: Optional[Callable[[], Any]] = None,
    on_warning: Optional[Callable[[Any, str], None]] = None,
) -> FamilyStats:
    """
    Migrate ``entities`` of ``family`` through ``create``.

    :param identity_map: Map the committed ids go into; keys are built
        with the family's prefix (``post_42``) or the bare id for media.
    :param create: Coroutine function ``record -> (destination_id, warnings)``.
    :param delay: Seconds to wait between batches (not after the last one).
    :param persist: Called after every batch; defaults to
        ``identity_map.save``.
    :param on_warning: Receives ``(source_id, warning)`` for every
        transformer warning of a migrated entity.
    :return: The :class:`FamilyStats` of this run.
    """
    prefix = map_prefix(family)
    stats = FamilyStats(total=len(entities))
    save = persist if persist is not None else identity_map.save
    claimed: Set[str] = set()

    async def migrate_one(entity: Any) -> None:
        source_id = entity.id
        key = map_key(prefix, source_id)
        if key in identity_map or key in claimed:
            stats.skipped += 1
            return
        claimed.add(key)
        try:
            destination_id, warnings = await create(entity)
        except Exception as e:
            # A later copy of the same record gets its own attempt.
            claimed.discard(key)
            stats.failed += 1
            stats.failures.append((source_id, str(e)))
            report_error(_error_code(family, e), family, source_id, e)
            log_message(f"✗ {family} {source_id}: {e}", "ERROR")
            return

        identity_map.set(key, destination_id)
        stats.migrated += 1
        report_ok(
            "ASSET_MIGRATED" if family == "media" else "ENTRY_MIGRATED",
            family,
            source_id,
            {"destination_id": destination_id, "warnings": warnings},
        )
        log_message(f"✓ {family} {source_id} -> {destination_id}")
        for warning in warnings:
            log_message(f"  ⚠ {family} {source_id}: {warning}", "WARNING")
            if on_warning is not None:
                on_warning(source_id, warning)

    batches = list(batched(list(entities), batch_size))
    done = 0
    for index, batch in enumerate(batches):
        await asyncio.gather(*(migrate_one(entity) for entity in batch))
        save()
        done += len(batch)
        log_message(f"  {family}: progress {done}/{stats.total}")
        if index < len(batches) - 1 and delay > 0:
            await asyncio.sleep(delay)

    log_message(f"{family}: {stats.summary()}")
    return stats
