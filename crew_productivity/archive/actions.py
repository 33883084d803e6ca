"""Archive workflow: promote completed tasks to archive-grade behind the integrity gate."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import structlog

from crew_productivity.archive.integrity import IntegrityIssue, is_archive_ready
from crew_productivity.attribution.engine import ENGINE_VERSION
from crew_productivity.errors import PreconditionError, TaskNotFoundError
from crew_productivity.schema import TaskNote, TaskStatus, create_audit_note, generate_id, now_utc
from crew_productivity.store import Store

logger = structlog.get_logger()


@dataclass
class ArchiveResult:
    success: bool
    task_id: str
    issues: list[IntegrityIssue] = field(default_factory=list)


async def archive_task(store: Store, task_id: str) -> ArchiveResult:
    """Archive one completed task. Errors block archival; warnings are reported but allowed."""

    task = await store.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    if task.status is not TaskStatus.COMPLETED:
        raise PreconditionError(f"Task {task_id} is not completed")
    if task.archived_at is not None:
        return ArchiveResult(success=True, task_id=task_id)

    all_tasks = await store.get_all_tasks()
    entries = await store.get_time_entries_by_task(task_id)
    readiness = is_archive_ready(task, all_tasks, entries)

    if not readiness.ready:
        logger.info("task_archive_blocked", task_id=task_id, issues=len(readiness.issues))
        return ArchiveResult(success=False, task_id=task_id, issues=readiness.issues)

    now = now_utc()
    await store.update_task(replace(task, archived_at=now, archive_version=ENGINE_VERSION, updated_at=now))
    await store.add_task_note(
        TaskNote(
            id=generate_id(),
            task_id=task_id,
            text=create_audit_note(
                "Task archived",
                f"Archived with engine {ENGINE_VERSION}. {len(readiness.issues)} warnings.",
            ),
            created_at=now,
        )
    )
    logger.info("task_archived", task_id=task_id, warnings=len(readiness.issues))
    return ArchiveResult(success=True, task_id=task_id, issues=readiness.issues)


async def archive_all_completed(store: Store) -> list[ArchiveResult]:
    """Attempt archival of every completed, not-yet-archived task in turn."""

    results = []
    for task in await store.get_all_tasks():
        if task.status is TaskStatus.COMPLETED and task.archived_at is None:
            results.append(await archive_task(store, task.id))
    return results
