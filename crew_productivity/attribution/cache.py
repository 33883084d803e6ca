"""Attribution snapshot cache with a per-policy freshness window."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

import structlog

from crew_productivity.attribution.engine import AttributionBatch, attribute_entries, build_task_map
from crew_productivity.schema import (
    DEFAULT_ATTRIBUTION_POLICY,
    AttributionPolicy,
    AttributionSnapshot,
    now_utc,
)
from crew_productivity.store import Store

logger = structlog.get_logger()

CACHE_TTL = timedelta(hours=24)


async def get_cached_attribution(
    store: Store,
    policy: AttributionPolicy = DEFAULT_ATTRIBUTION_POLICY,
    ttl: timedelta = CACHE_TTL,
    now: Optional[datetime] = None,
) -> AttributionBatch:
    """Return the stored snapshot for ``policy`` if younger than ``ttl``, else recompute."""

    now = now or now_utc()
    snapshot = await store.get_attribution_snapshot(policy)

    if snapshot is not None:
        age = now - snapshot.computed_at
        if age < ttl:
            logger.debug("attribution_cache_hit", policy=policy.value, age_seconds=age.total_seconds())
            return AttributionBatch(results=snapshot.results, summary=snapshot.summary)

    logger.info("attribution_cache_miss", policy=policy.value, stale=snapshot is not None)
    return await recompute_attribution(store, policy, now=now)


async def recompute_attribution(
    store: Store,
    policy: AttributionPolicy = DEFAULT_ATTRIBUTION_POLICY,
    now: Optional[datetime] = None,
) -> AttributionBatch:
    """Run the engine over every stored task and entry and persist a fresh snapshot."""

    entries = await store.get_all_time_entries()
    tasks = await store.get_all_tasks()
    batch = attribute_entries(entries, build_task_map(tasks), policy)

    await store.set_attribution_snapshot(
        AttributionSnapshot(
            policy=policy,
            results=batch.results,
            summary=batch.summary,
            computed_at=now or now_utc(),
        )
    )
    logger.info(
        "attribution_recomputed",
        policy=policy.value,
        entries=batch.summary.total_entries,
        attributed=batch.summary.attributed,
    )
    return batch


async def invalidate_attribution_cache(store: Store) -> None:
    """Drop every cached attribution snapshot."""

    await store.clear_attribution_snapshots()
    logger.info("attribution_cache_invalidated")
