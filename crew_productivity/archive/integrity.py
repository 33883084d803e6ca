"""Archival integrity checks over tasks and their time entries.

Checks, in order:
1. missing work data on completed tasks (warning)
2. broken parent links
3. duplicate entries (same task, start and end)
4. zero or negative duration entries
5. orphaned entries (task not in the given set)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from crew_productivity.schema import Task, TaskStatus, TimeEntry


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class IssueType(str, Enum):
    MISSING_WORK_DATA = "missing_work_data"
    BROKEN_PARENT_LINK = "broken_parent_link"
    DUPLICATE_ENTRY = "duplicate_entry"
    ZERO_DURATION_ENTRY = "zero_duration_entry"
    ORPHANED_ENTRY = "orphaned_entry"


@dataclass(frozen=True)
class IntegrityIssue:
    type: IssueType
    severity: IssueSeverity
    task_id: Optional[str]
    entry_id: Optional[str]
    message: str


@dataclass
class ArchiveReadiness:
    ready: bool
    issues: list[IntegrityIssue]


def missing_work_fields(task: Task) -> list[str]:
    missing = []
    if task.work_category is None:
        missing.append("workCategory")
    if task.work_unit is None:
        missing.append("workUnit")
    if task.work_quantity is None or task.work_quantity <= 0:
        missing.append("workQuantity")
    return missing


def check_integrity(tasks: Sequence[Task], entries: Sequence[TimeEntry]) -> list[IntegrityIssue]:
    """Run all integrity checks. An empty list means every check passed."""

    issues: list[IntegrityIssue] = []
    task_ids = {task.id for task in tasks}

    for task in tasks:
        if task.status is not TaskStatus.COMPLETED:
            continue
        missing = missing_work_fields(task)
        if missing:
            issues.append(
                IntegrityIssue(
                    IssueType.MISSING_WORK_DATA,
                    IssueSeverity.WARNING,
                    task.id,
                    None,
                    f"Missing: {', '.join(missing)}",
                )
            )

    for task in tasks:
        if task.parent_id is not None and task.parent_id not in task_ids:
            issues.append(
                IntegrityIssue(
                    IssueType.BROKEN_PARENT_LINK,
                    IssueSeverity.ERROR,
                    task.id,
                    None,
                    f'Parent task "{task.parent_id}" not found',
                )
            )

    seen: set[tuple] = set()
    for entry in entries:
        key = (entry.task_id, entry.start_utc, entry.end_utc)
        if key in seen:
            issues.append(
                IntegrityIssue(
                    IssueType.DUPLICATE_ENTRY,
                    IssueSeverity.ERROR,
                    entry.task_id,
                    entry.id,
                    "Duplicate entry: same task, start, and end time",
                )
            )
        seen.add(key)

    for entry in entries:
        if entry.end_utc <= entry.start_utc:
            kind = "zero" if entry.end_utc == entry.start_utc else "negative"
            issues.append(
                IntegrityIssue(
                    IssueType.ZERO_DURATION_ENTRY,
                    IssueSeverity.ERROR,
                    entry.task_id,
                    entry.id,
                    f"Entry has {kind} duration",
                )
            )

    for entry in entries:
        if entry.task_id not in task_ids:
            issues.append(
                IntegrityIssue(
                    IssueType.ORPHANED_ENTRY,
                    IssueSeverity.ERROR,
                    entry.task_id,
                    entry.id,
                    f'Entry references non-existent task "{entry.task_id}"',
                )
            )

    return issues


def is_archive_ready(task: Task, all_tasks: Sequence[Task], entries: Sequence[TimeEntry]) -> ArchiveReadiness:
    """Check ``task`` (with its parent for context) and its own entries; warnings never block."""

    scope = [task, *(t for t in all_tasks if t.id == task.parent_id)]
    own_entries = [entry for entry in entries if entry.task_id == task.id]

    issues = [
        issue
        for issue in check_integrity(scope, own_entries)
        if issue.task_id == task.id or issue.entry_id is not None
    ]
    has_errors = any(issue.severity is IssueSeverity.ERROR for issue in issues)
    return ArchiveReadiness(ready=not has_errors, issues=issues)
