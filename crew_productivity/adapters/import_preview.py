"""Preview an import against existing templates and tasks before applying it.

Items are matched by mapping key (templates first, then tasks): an identical
match is skipped, a differing match is updated, anything else is created.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from crew_productivity.adapters.csv_adapter import ImportedWorkPackage, work_package_mapping_key
from crew_productivity.schema import Task, TaskTemplate

_DIFF_FIELDS = ("work_quantity", "estimated_minutes", "default_workers", "target_productivity")


class ImportAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


@dataclass
class ImportPreviewItem:
    action: ImportAction
    item: ImportedWorkPackage
    reason: Optional[str] = None
    existing_id: Optional[str] = None
    changed_fields: list[str] = field(default_factory=list)


@dataclass
class ImportPreview:
    items: list[ImportPreviewItem]
    summary: dict[ImportAction, int]
    duplicate_keys: list[str]


def _task_mapping_key(task: Task) -> Optional[str]:
    if not (task.work_category and task.work_unit and task.build_phase):
        return None
    return work_package_mapping_key(task.title, task.work_category, task.work_unit, task.build_phase)


def _changed_fields(imported: ImportedWorkPackage, existing: Task | TaskTemplate) -> list[str]:
    return [name for name in _DIFF_FIELDS if getattr(imported, name) != getattr(existing, name)]


def _match(item: ImportedWorkPackage, existing: Task | TaskTemplate, kind: str) -> ImportPreviewItem:
    changed = _changed_fields(item, existing)
    if not changed:
        return ImportPreviewItem(ImportAction.SKIP, item, f"Identical {kind} already exists", existing.id)
    return ImportPreviewItem(
        ImportAction.UPDATE, item, f"{kind.capitalize()} differs: {', '.join(changed)}", existing.id, changed
    )


def generate_import_preview(
    items: Sequence[ImportedWorkPackage],
    existing_tasks: Sequence[Task],
    existing_templates: Sequence[TaskTemplate],
) -> ImportPreview:
    templates_by_key = {
        work_package_mapping_key(t.title, t.work_category, t.work_unit, t.build_phase): t for t in existing_templates
    }
    tasks_by_key = {key: t for t in existing_tasks if (key := _task_mapping_key(t)) is not None}

    counts = Counter(item.mapping_key for item in items)
    duplicate_keys = [key for key, count in counts.items() if count > 1]

    preview: list[ImportPreviewItem] = []
    for item in items:
        template = templates_by_key.get(item.mapping_key)
        if template is not None:
            preview.append(_match(item, template, "template"))
            continue
        task = tasks_by_key.get(item.mapping_key)
        if task is not None:
            preview.append(_match(item, task, "task"))
            continue
        preview.append(ImportPreviewItem(ImportAction.CREATE, item))

    summary = {action: sum(1 for p in preview if p.action is action) for action in ImportAction}
    return ImportPreview(items=preview, summary=summary, duplicate_keys=duplicate_keys)
