"""Move a single time entry to another task with audit notes on both sides."""

from __future__ import annotations

from dataclasses import replace

import structlog

from crew_productivity.errors import EntryNotFoundError
from crew_productivity.schema import TaskNote, create_audit_note, generate_id, now_utc
from crew_productivity.store import Store

logger = structlog.get_logger()


async def reassign_time_entry(store: Store, entry_id: str, new_task_id: str, reason: str) -> None:
    entry = await store.get_time_entry(entry_id)
    if entry is None:
        raise EntryNotFoundError(entry_id)

    old_task_id = entry.task_id
    if old_task_id == new_task_id:
        return

    old_task = await store.get_task(old_task_id)
    new_task = await store.get_task(new_task_id)
    old_title = old_task.title if old_task else old_task_id
    new_title = new_task.title if new_task else new_task_id

    now = now_utc()
    await store.update_time_entry(replace(entry, task_id=new_task_id, updated_at=now))
    await store.add_task_note(
        TaskNote(
            id=generate_id(),
            task_id=old_task_id,
            text=create_audit_note("Entry reassigned away", f'Moved to "{new_title}". Reason: {reason}'),
            created_at=now,
        )
    )
    await store.add_task_note(
        TaskNote(
            id=generate_id(),
            task_id=new_task_id,
            text=create_audit_note("Entry reassigned here", f'Moved from "{old_title}". Reason: {reason}'),
            created_at=now,
        )
    )
    logger.info("entry_reassigned", entry_id=entry_id, from_task=old_task_id, to_task=new_task_id)
