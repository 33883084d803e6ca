"""Best-effort batch remediation with an audit trail.

Every item produces its own outcome: ``None`` on success or a
:class:`BulkFailure`. A failing item never rolls back or aborts the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

import structlog

from crew_productivity.remediation.issue_queue import IssueQueueItem
from crew_productivity.schema import TaskNote, create_audit_note, generate_id, now_utc
from crew_productivity.store import Store

logger = structlog.get_logger()


@dataclass(frozen=True)
class BulkFailure:
    item_id: str
    error: str


@dataclass
class BulkFixResult:
    attempted: int = 0
    succeeded: int = 0
    failed: list[BulkFailure] = field(default_factory=list)

    def record(self, outcome: Optional[BulkFailure]) -> None:
        if outcome is None:
            self.succeeded += 1
        else:
            self.failed.append(outcome)


@dataclass(frozen=True)
class WorkContextPatch:
    work_category: str
    work_unit: str
    work_quantity: float
    build_phase: Optional[str] = None


async def _reassign_one(store: Store, entry_id: str, target_id: str, reason: str) -> Optional[BulkFailure]:
    try:
        entry = await store.get_time_entry(entry_id)
        if entry is None:
            return BulkFailure(entry_id, "Entry not found")

        source_id = entry.task_id
        if source_id == target_id:
            return None

        now = now_utc()
        await store.update_time_entry(replace(entry, task_id=target_id, updated_at=now))

        source = await store.get_task(source_id)
        target = await store.get_task(target_id)
        source_title = source.title if source else source_id
        target_title = target.title if target else target_id

        await store.add_task_note(
            TaskNote(
                id=generate_id(),
                task_id=source_id,
                text=create_audit_note("Bulk reassign away", f'Moved to "{target_title}". Reason: {reason}'),
                created_at=now,
            )
        )
        await store.add_task_note(
            TaskNote(
                id=generate_id(),
                task_id=target_id,
                text=create_audit_note("Bulk reassign here", f'Moved from "{source_title}". Reason: {reason}'),
                created_at=now,
            )
        )
        return None
    except Exception as exc:  # noqa: BLE001
        return BulkFailure(entry_id, str(exc) or exc.__class__.__name__)


async def bulk_reassign_to_suggested(store: Store, items: Iterable[IssueQueueItem], reason: str) -> BulkFixResult:
    """Move each queued entry to its suggested owner, noting the move on both tasks."""

    eligible = [item for item in items if item.entry_id is not None and item.suggested_target_id is not None]
    result = BulkFixResult(attempted=len(eligible))

    for item in eligible:
        result.record(await _reassign_one(store, item.entry_id, item.suggested_target_id, reason))

    logger.info(
        "bulk_reassign_completed",
        attempted=result.attempted,
        succeeded=result.succeeded,
        failed=len(result.failed),
    )
    return result


async def _set_context_one(store: Store, task_id: str, patch: WorkContextPatch) -> Optional[BulkFailure]:
    try:
        task = await store.get_task(task_id)
        if task is None:
            return BulkFailure(task_id, "Task not found")

        now = now_utc()
        await store.update_task(
            replace(
                task,
                work_category=patch.work_category,
                work_unit=patch.work_unit,
                work_quantity=patch.work_quantity,
                build_phase=patch.build_phase,
                updated_at=now,
            )
        )
        await store.add_task_note(
            TaskNote(
                id=generate_id(),
                task_id=task_id,
                text=create_audit_note(
                    "Bulk work context set",
                    f"Set {patch.work_category} / {patch.work_unit} / {patch.work_quantity:g}",
                ),
                created_at=now,
            )
        )
        return None
    except Exception as exc:  # noqa: BLE001
        return BulkFailure(task_id, str(exc) or exc.__class__.__name__)


async def bulk_set_work_context(store: Store, task_ids: list[str], patch: WorkContextPatch) -> BulkFixResult:
    """Apply the same work context to each task, with one audit note per task."""

    result = BulkFixResult(attempted=len(task_ids))
    for task_id in task_ids:
        result.record(await _set_context_one(store, task_id, patch))

    logger.info(
        "bulk_work_context_completed",
        attempted=result.attempted,
        succeeded=result.succeeded,
        failed=len(result.failed),
    )
    return result
