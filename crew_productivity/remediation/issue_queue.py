"""Remediation queues built from attribution results and task metadata.

Three disjoint queues:
1. needs_measurable_owner: unattributed entries with no heuristic suggestion
2. ambiguous_owner: entries carrying a suggestion that was not applied
3. no_work_context: completed top-level tasks that are not measurable
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from crew_productivity.attribution.engine import is_measurable
from crew_productivity.schema import AttributedEntry, AttributionStatus, Task, TaskStatus


class IssueCategory(str, Enum):
    NEEDS_MEASURABLE_OWNER = "needs_measurable_owner"
    AMBIGUOUS_OWNER = "ambiguous_owner"
    NO_WORK_CONTEXT = "no_work_context"


class MatchType(str, Enum):
    PARENT = "parent"
    PROJECT_PEER = "project_peer"
    WORK_TYPE_MATCH = "work_type_match"


@dataclass
class IssueQueueItem:
    category: IssueCategory
    task_id: str
    entry_id: Optional[str]
    task_title: str
    description: str
    suggested_target_id: Optional[str] = None
    suggested_target_title: Optional[str] = None
    person_hours: float = 0.0  # 0 for task-level issues
    missing_fields: list[str] = field(default_factory=list)


@dataclass
class IssueQueueResult:
    needs_measurable_owner: list[IssueQueueItem]
    ambiguous_owner: list[IssueQueueItem]
    no_work_context: list[IssueQueueItem]
    total_issues: int
    total_affected_hours: float


@dataclass(frozen=True)
class NearestMeasurable:
    target_id: str
    target_title: str
    match_type: MatchType


def _missing_context(task: Task) -> list[str]:
    missing = []
    if task.work_category is None:
        missing.append("work category")
    if task.work_unit is None:
        missing.append("work unit")
    if task.work_quantity is None or task.work_quantity <= 0:
        missing.append("work quantity")
    return missing


def build_issue_queues(attributed_entries: Sequence[AttributedEntry], tasks: Sequence[Task]) -> IssueQueueResult:
    task_map = {task.id: task for task in tasks}

    needs_owner: list[IssueQueueItem] = []
    ambiguous: list[IssueQueueItem] = []
    no_context: list[IssueQueueItem] = []

    for entry in attributed_entries:
        task = task_map.get(entry.task_id)
        title = task.title if task else entry.task_id
        suggested = task_map.get(entry.suggested_owner_task_id) if entry.suggested_owner_task_id else None

        if entry.status is AttributionStatus.UNATTRIBUTED and entry.suggested_owner_task_id:
            ambiguous.append(
                IssueQueueItem(
                    category=IssueCategory.AMBIGUOUS_OWNER,
                    task_id=entry.task_id,
                    entry_id=entry.entry_id,
                    task_title=title,
                    description="Entry has a suggested owner but was not auto-applied",
                    suggested_target_id=entry.suggested_owner_task_id,
                    suggested_target_title=suggested.title if suggested else entry.suggested_owner_task_id,
                    person_hours=entry.person_hours,
                )
            )
        elif entry.status is AttributionStatus.UNATTRIBUTED:
            needs_owner.append(
                IssueQueueItem(
                    category=IssueCategory.NEEDS_MEASURABLE_OWNER,
                    task_id=entry.task_id,
                    entry_id=entry.entry_id,
                    task_title=title,
                    description="No measurable task found in hierarchy",
                    person_hours=entry.person_hours,
                )
            )
        elif entry.status is AttributionStatus.AMBIGUOUS:
            ambiguous.append(
                IssueQueueItem(
                    category=IssueCategory.AMBIGUOUS_OWNER,
                    task_id=entry.task_id,
                    entry_id=entry.entry_id,
                    task_title=title,
                    description="Multiple valid measurable owners",
                    suggested_target_id=entry.suggested_owner_task_id,
                    suggested_target_title=suggested.title if suggested else None,
                    person_hours=entry.person_hours,
                )
            )

    for task in tasks:
        # subtasks inherit work context from their parent
        if task.status is not TaskStatus.COMPLETED or task.parent_id is not None or is_measurable(task):
            continue
        missing = _missing_context(task)
        no_context.append(
            IssueQueueItem(
                category=IssueCategory.NO_WORK_CONTEXT,
                task_id=task.id,
                entry_id=None,
                task_title=task.title,
                description=f"Missing: {', '.join(missing)}",
                missing_fields=missing,
            )
        )

    queued = [*needs_owner, *ambiguous, *no_context]
    return IssueQueueResult(
        needs_measurable_owner=needs_owner,
        ambiguous_owner=ambiguous,
        no_work_context=no_context,
        total_issues=len(queued),
        total_affected_hours=sum(item.person_hours for item in queued),
    )


def find_nearest_measurable(task_id: str, tasks: Sequence[Task]) -> Optional[NearestMeasurable]:
    """Nearest measurable task: parent, then project peer, then same work category."""

    task = next((t for t in tasks if t.id == task_id), None)
    if task is None:
        return None

    if task.parent_id:
        parent = next((t for t in tasks if t.id == task.parent_id), None)
        if parent is not None and is_measurable(parent):
            return NearestMeasurable(parent.id, parent.title, MatchType.PARENT)

    if task.project_id:
        peer = next(
            (
                t
                for t in tasks
                if t.id != task_id and t.project_id == task.project_id and t.parent_id is None and is_measurable(t)
            ),
            None,
        )
        if peer is not None:
            return NearestMeasurable(peer.id, peer.title, MatchType.PROJECT_PEER)

    if task.work_category:
        match = next(
            (
                t
                for t in tasks
                if t.id != task_id
                and t.parent_id is None
                and is_measurable(t)
                and t.work_category == task.work_category
            ),
            None,
        )
        if match is not None:
            return NearestMeasurable(match.id, match.title, MatchType.WORK_TYPE_MATCH)

    return None
