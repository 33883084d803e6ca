"""Record store collaborator.

The analytics engine never owns persistence; workflow actions talk to any
object satisfying :class:`Store`. :class:`InMemoryStore` backs the scripts
and tests.
"""

from __future__ import annotations

import copy
from typing import Optional, Protocol

from crew_productivity.planning.plan_model import Plan
from crew_productivity.schema import (
    AttributionPolicy,
    AttributionSnapshot,
    Task,
    TaskNote,
    TaskTemplate,
    TimeEntry,
)


class Store(Protocol):
    async def get_task(self, task_id: str) -> Optional[Task]: ...

    async def update_task(self, task: Task) -> None: ...

    async def get_all_tasks(self) -> list[Task]: ...

    async def get_time_entry(self, entry_id: str) -> Optional[TimeEntry]: ...

    async def update_time_entry(self, entry: TimeEntry) -> None: ...

    async def delete_time_entry(self, entry_id: str) -> None: ...

    async def get_all_time_entries(self) -> list[TimeEntry]: ...

    async def get_time_entries_by_task(self, task_id: str) -> list[TimeEntry]: ...

    async def add_task_note(self, note: TaskNote) -> None: ...

    async def get_task_notes(self, task_id: str) -> list[TaskNote]: ...

    async def get_attribution_snapshot(self, policy: AttributionPolicy) -> Optional[AttributionSnapshot]: ...

    async def set_attribution_snapshot(self, snapshot: AttributionSnapshot) -> None: ...

    async def clear_attribution_snapshots(self) -> None: ...

    async def get_plan(self, plan_id: str) -> Optional[Plan]: ...

    async def save_plan(self, plan: Plan) -> None: ...

    async def delete_plan(self, plan_id: str) -> None: ...

    async def get_all_plans(self) -> list[Plan]: ...


class InMemoryStore:
    """Dict-backed store. Records are copied on the way in and out."""

    def __init__(
        self,
        tasks: Optional[list[Task]] = None,
        entries: Optional[list[TimeEntry]] = None,
        templates: Optional[list[TaskTemplate]] = None,
    ):
        self.tasks: dict[str, Task] = {t.id: copy.deepcopy(t) for t in tasks or []}
        self.entries: dict[str, TimeEntry] = {e.id: copy.deepcopy(e) for e in entries or []}
        self.templates: dict[str, TaskTemplate] = {t.id: copy.deepcopy(t) for t in templates or []}
        self.notes: list[TaskNote] = []
        self.snapshots: dict[AttributionPolicy, AttributionSnapshot] = {}
        self.plans: dict[str, Plan] = {}

    async def get_task(self, task_id: str) -> Optional[Task]:
        task = self.tasks.get(task_id)
        return copy.deepcopy(task) if task is not None else None

    async def update_task(self, task: Task) -> None:
        self.tasks[task.id] = copy.deepcopy(task)

    async def get_all_tasks(self) -> list[Task]:
        return [copy.deepcopy(t) for t in self.tasks.values()]

    async def get_time_entry(self, entry_id: str) -> Optional[TimeEntry]:
        entry = self.entries.get(entry_id)
        return copy.deepcopy(entry) if entry is not None else None

    async def update_time_entry(self, entry: TimeEntry) -> None:
        self.entries[entry.id] = copy.deepcopy(entry)

    async def delete_time_entry(self, entry_id: str) -> None:
        self.entries.pop(entry_id, None)

    async def get_all_time_entries(self) -> list[TimeEntry]:
        return [copy.deepcopy(e) for e in self.entries.values()]

    async def get_time_entries_by_task(self, task_id: str) -> list[TimeEntry]:
        return [copy.deepcopy(e) for e in self.entries.values() if e.task_id == task_id]

    async def add_task_note(self, note: TaskNote) -> None:
        self.notes.append(copy.deepcopy(note))

    async def get_task_notes(self, task_id: str) -> list[TaskNote]:
        return [copy.deepcopy(n) for n in self.notes if n.task_id == task_id]

    async def get_all_templates(self) -> list[TaskTemplate]:
        return [copy.deepcopy(t) for t in self.templates.values()]

    async def get_attribution_snapshot(self, policy: AttributionPolicy) -> Optional[AttributionSnapshot]:
        snapshot = self.snapshots.get(policy)
        return copy.deepcopy(snapshot) if snapshot is not None else None

    async def set_attribution_snapshot(self, snapshot: AttributionSnapshot) -> None:
        self.snapshots[snapshot.policy] = copy.deepcopy(snapshot)

    async def clear_attribution_snapshots(self) -> None:
        self.snapshots.clear()

    async def get_plan(self, plan_id: str) -> Optional[Plan]:
        plan = self.plans.get(plan_id)
        return copy.deepcopy(plan) if plan is not None else None

    async def save_plan(self, plan: Plan) -> None:
        self.plans[plan.id] = copy.deepcopy(plan)

    async def delete_plan(self, plan_id: str) -> None:
        self.plans.pop(plan_id, None)

    async def get_all_plans(self) -> list[Plan]:
        return [copy.deepcopy(p) for p in self.plans.values()]
