"""Maintenance scan: repair suggestions for archived records and archival candidates."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Sequence

import structlog

from crew_productivity.archive.integrity import IntegrityIssue, IssueType, check_integrity, is_archive_ready
from crew_productivity.schema import Task, TaskStatus, TimeEntry
from crew_productivity.store import Store

logger = structlog.get_logger()


class RepairAction(str, Enum):
    ADD_WORK_DATA = "add_work_data"
    FIX_PARENT_LINK = "fix_parent_link"
    REMOVE_DUPLICATE = "remove_duplicate"
    REMOVE_ZERO_ENTRY = "remove_zero_entry"
    REMOVE_ORPHAN = "remove_orphan"


ISSUE_TO_ACTION: dict[IssueType, RepairAction] = {
    IssueType.MISSING_WORK_DATA: RepairAction.ADD_WORK_DATA,
    IssueType.BROKEN_PARENT_LINK: RepairAction.FIX_PARENT_LINK,
    IssueType.DUPLICATE_ENTRY: RepairAction.REMOVE_DUPLICATE,
    IssueType.ZERO_DURATION_ENTRY: RepairAction.REMOVE_ZERO_ENTRY,
    IssueType.ORPHANED_ENTRY: RepairAction.REMOVE_ORPHAN,
}

ACTION_DESCRIPTIONS: dict[RepairAction, str] = {
    RepairAction.ADD_WORK_DATA: "Add missing work category, unit, or quantity",
    RepairAction.FIX_PARENT_LINK: "Fix or clear broken parent task reference",
    RepairAction.REMOVE_DUPLICATE: "Remove duplicate time entry",
    RepairAction.REMOVE_ZERO_ENTRY: "Remove zero-duration time entry",
    RepairAction.REMOVE_ORPHAN: "Remove orphaned time entry referencing missing task",
}


@dataclass
class RepairSuggestion:
    task_id: str
    action: RepairAction
    description: str
    issue: IntegrityIssue


@dataclass
class BlockedTask:
    task_id: str
    issues: list[IntegrityIssue]


@dataclass
class MaintenanceReport:
    archived_issues: list[RepairSuggestion] = field(default_factory=list)
    archive_candidates: list[str] = field(default_factory=list)
    blocked_from_archival: list[BlockedTask] = field(default_factory=list)
    archived_count: int = 0
    pending_count: int = 0


def to_repair_suggestion(issue: IntegrityIssue) -> RepairSuggestion:
    action = ISSUE_TO_ACTION[issue.type]
    return RepairSuggestion(
        task_id=issue.task_id or "unknown",
        action=action,
        description=ACTION_DESCRIPTIONS[action],
        issue=issue,
    )


def run_maintenance_scan(
    tasks: Sequence[Task],
    entries_by_task: Mapping[str, Sequence[TimeEntry]],
) -> MaintenanceReport:
    """Batch integrity report over pre-loaded data. Nothing is mutated."""

    archived = [task for task in tasks if task.archived_at is not None]
    pending = [task for task in tasks if task.status is TaskStatus.COMPLETED and task.archived_at is None]

    archived_entries = [entry for task in archived for entry in entries_by_task.get(task.id, ())]
    report = MaintenanceReport(
        archived_issues=[to_repair_suggestion(issue) for issue in check_integrity(archived, archived_entries)],
        archived_count=len(archived),
        pending_count=len(pending),
    )

    for task in pending:
        readiness = is_archive_ready(task, tasks, entries_by_task.get(task.id, ()))
        if readiness.ready:
            report.archive_candidates.append(task.id)
        else:
            report.blocked_from_archival.append(BlockedTask(task.id, readiness.issues))

    return report


async def run_maintenance_scan_from_store(store: Store) -> MaintenanceReport:
    """Load every task and its entries from ``store`` and scan them."""

    tasks = await store.get_all_tasks()
    entries_by_task: dict[str, list[TimeEntry]] = {}
    for task in tasks:
        entries = await store.get_time_entries_by_task(task.id)
        if entries:
            entries_by_task[task.id] = entries

    report = run_maintenance_scan(tasks, entries_by_task)
    logger.info(
        "maintenance_scan_completed",
        archived=report.archived_count,
        pending=report.pending_count,
        candidates=len(report.archive_candidates),
        blocked=len(report.blocked_from_archival),
        repairs=len(report.archived_issues),
    )
    return report
