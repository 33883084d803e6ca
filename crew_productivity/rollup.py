"""Attribution-aware rollup feeding every KPI consumer.

Qualifying tasks are expanded with their direct subtasks and a single shared
attribution pass runs over the union, so heuristic decisions stay globally
consistent across owners.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from crew_productivity.attribution.engine import attribute_entries, build_task_map
from crew_productivity.schema import (
    DEFAULT_ATTRIBUTION_POLICY,
    AttributedEntry,
    AttributionPolicy,
    AttributionSummary,
    Task,
    TimeEntry,
)
from crew_productivity.store import Store


@dataclass
class AttributedRollup:
    entries_by_task: dict[str, list[AttributedEntry]]
    summary: AttributionSummary
    all_attributed: list[AttributedEntry]


def expand_with_subtasks(qualifying_tasks: Iterable[Task], all_tasks: list[Task]) -> list[str]:
    """Ids of the qualifying tasks plus their direct children, in first-seen order."""

    ids: dict[str, None] = {}
    for task in qualifying_tasks:
        ids[task.id] = None
        for candidate in all_tasks:
            if candidate.parent_id == task.id:
                ids[candidate.id] = None
    return list(ids)


def group_attributed_entries(
    qualifying_tasks: list[Task],
    all_tasks: list[Task],
    entries: list[TimeEntry],
    policy: AttributionPolicy = DEFAULT_ATTRIBUTION_POLICY,
) -> AttributedRollup:
    """Attribute pre-fetched entries and group them by owner within the qualifying set."""

    qualifying_ids = {task.id for task in qualifying_tasks}
    batch = attribute_entries(entries, build_task_map(all_tasks), policy)

    entries_by_task: dict[str, list[AttributedEntry]] = defaultdict(list)
    for result in batch.results:
        if result.owner_task_id and result.owner_task_id in qualifying_ids:
            entries_by_task[result.owner_task_id].append(result)

    return AttributedRollup(
        entries_by_task=dict(entries_by_task),
        summary=batch.summary,
        all_attributed=batch.results,
    )


async def build_attributed_rollup(
    store: Store,
    qualifying_tasks: list[Task],
    all_tasks: list[Task],
    policy: AttributionPolicy = DEFAULT_ATTRIBUTION_POLICY,
) -> AttributedRollup:
    """Fetch entries for qualifying tasks and their subtasks, then attribute and group them."""

    entries: list[TimeEntry] = []
    for task_id in expand_with_subtasks(qualifying_tasks, all_tasks):
        entries.extend(await store.get_time_entries_by_task(task_id))

    return group_attributed_entries(qualifying_tasks, all_tasks, entries, policy)
