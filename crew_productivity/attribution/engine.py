"""Deterministic attribution of time entries to measurable tasks.

Ownership is resolved by walking the one-level task hierarchy (self, then
parent). When direct resolution fails, a fixed-order heuristic chain may
suggest the parent as owner; whether that suggestion changes the outcome is
decided by the attribution policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from crew_productivity.schema import (
    DEFAULT_ATTRIBUTION_POLICY,
    AttributedEntry,
    AttributionPolicy,
    AttributionReason,
    AttributionStatus,
    AttributionSummary,
    HeuristicName,
    Task,
    TimeEntry,
    person_hours,
)

ENGINE_VERSION = "v1"


@dataclass(frozen=True)
class OwnerResolution:
    owner_task_id: Optional[str]
    status: AttributionStatus
    reason: AttributionReason


@dataclass(frozen=True)
class HeuristicResult:
    suggested_owner_task_id: Optional[str]
    heuristic_used: Optional[HeuristicName]


@dataclass
class AttributionBatch:
    results: list[AttributedEntry]
    summary: AttributionSummary


_NO_SUGGESTION = HeuristicResult(suggested_owner_task_id=None, heuristic_used=None)


def is_measurable(task: Task) -> bool:
    """A task is measurable when it has a positive quantity, a unit and a category."""

    return (
        task.work_quantity is not None
        and task.work_quantity > 0
        and task.work_unit is not None
        and task.work_category is not None
    )


def _lookup(task_id: Optional[str], tasks: Iterable[Task] | Mapping[str, Task]) -> Optional[Task]:
    if task_id is None:
        return None
    if isinstance(tasks, Mapping):
        return tasks.get(task_id)
    return next((t for t in tasks if t.id == task_id), None)


def find_measurable_owner(task: Task, all_tasks: Iterable[Task] | Mapping[str, Task]) -> OwnerResolution:
    """Resolve the measurable owner of ``task``: self first, then its parent."""

    if is_measurable(task):
        return OwnerResolution(task.id, AttributionStatus.ATTRIBUTED, AttributionReason.SELF)

    # one-level hierarchy: a grandparent is never consulted
    parent = _lookup(task.parent_id, all_tasks)
    if parent is not None and is_measurable(parent):
        return OwnerResolution(parent.id, AttributionStatus.ATTRIBUTED, AttributionReason.ANCESTOR)

    return OwnerResolution(None, AttributionStatus.UNATTRIBUTED, AttributionReason.NO_MEASURABLE_OWNER)


def resolve_with_heuristics(task: Task, all_tasks: Iterable[Task] | Mapping[str, Task]) -> HeuristicResult:
    """Suggest the parent as owner when its work type matches the child's."""

    parent = _lookup(task.parent_id, all_tasks)
    if parent is None or not is_measurable(parent):
        return _NO_SUGGESTION

    same_category_unit = parent.work_category == task.work_category and parent.work_unit == task.work_unit
    if same_category_unit and parent.build_phase == task.build_phase:
        return HeuristicResult(parent.id, HeuristicName.EXACT_MATCH)
    if same_category_unit:
        return HeuristicResult(parent.id, HeuristicName.CATEGORY_MATCH)
    return _NO_SUGGESTION


def attribute_entry(
    entry: TimeEntry,
    tasks: Mapping[str, Task],
    policy: AttributionPolicy = DEFAULT_ATTRIBUTION_POLICY,
) -> AttributedEntry:
    """Attribute a single time entry to its measurable owner."""

    hours = person_hours(entry)
    task = tasks.get(entry.task_id)

    if task is None:
        return AttributedEntry(
            entry_id=entry.id,
            task_id=entry.task_id,
            owner_task_id=None,
            status=AttributionStatus.UNATTRIBUTED,
            reason=AttributionReason.NO_MEASURABLE_OWNER,
            person_hours=hours,
        )

    resolution = find_measurable_owner(task, tasks)
    if resolution.status is AttributionStatus.ATTRIBUTED:
        return AttributedEntry(
            entry_id=entry.id,
            task_id=entry.task_id,
            owner_task_id=resolution.owner_task_id,
            status=resolution.status,
            reason=resolution.reason,
            person_hours=hours,
        )

    heuristic = resolve_with_heuristics(task, tasks)

    if policy is AttributionPolicy.SOFT_ALLOW_PICK_NEAREST and heuristic.suggested_owner_task_id:
        return AttributedEntry(
            entry_id=entry.id,
            task_id=entry.task_id,
            owner_task_id=heuristic.suggested_owner_task_id,
            status=AttributionStatus.ATTRIBUTED,
            reason=resolution.reason,
            person_hours=hours,
            suggested_owner_task_id=heuristic.suggested_owner_task_id,
            heuristic_used=heuristic.heuristic_used,
        )

    # soft_allow_flag / strict_block: the suggestion is metadata only
    return AttributedEntry(
        entry_id=entry.id,
        task_id=entry.task_id,
        owner_task_id=resolution.owner_task_id,
        status=resolution.status,
        reason=resolution.reason,
        person_hours=hours,
        suggested_owner_task_id=heuristic.suggested_owner_task_id,
        heuristic_used=heuristic.heuristic_used,
    )


def summarize_attribution(results: list[AttributedEntry]) -> AttributionSummary:
    """Fold attributed entries into aggregate counts and person-hours."""

    summary = AttributionSummary(engine_version=ENGINE_VERSION, total_entries=len(results))
    for result in results:
        summary.total_person_hours += result.person_hours

        if result.status is AttributionStatus.ATTRIBUTED:
            summary.attributed += 1
            summary.attributed_person_hours += result.person_hours
            if result.heuristic_used is not None:
                summary.ambiguous_resolved_by_policy += 1
            continue

        if result.status is AttributionStatus.UNATTRIBUTED:
            summary.unattributed += 1
        else:
            summary.ambiguous += 1
        summary.excluded_person_hours += result.person_hours
        if result.suggested_owner_task_id:
            summary.ambiguous_suggested_resolutions += 1

    return summary


def attribute_entries(
    entries: Iterable[TimeEntry],
    tasks: Mapping[str, Task],
    policy: AttributionPolicy = DEFAULT_ATTRIBUTION_POLICY,
) -> AttributionBatch:
    """Batch-attribute entries and produce a summary."""

    results = [attribute_entry(entry, tasks, policy) for entry in entries]
    return AttributionBatch(results=results, summary=summarize_attribution(results))


def build_task_map(tasks: Iterable[Task]) -> dict[str, Task]:
    return {task.id: task for task in tasks}
