"""JSON adapter for task/entry datasets."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from crew_productivity.schema import (
    SyncStatus,
    Task,
    TaskStatus,
    TaskTemplate,
    TimeEntry,
    TimerSource,
    parse_utc,
)


@dataclass
class Dataset:
    tasks: list[Task] = field(default_factory=list)
    entries: list[TimeEntry] = field(default_factory=list)
    templates: list[TaskTemplate] = field(default_factory=list)


def _optional_float(item: dict, key: str, label: str) -> Optional[float]:
    raw = item.get(key)
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: invalid {key}") from exc


def _optional_int(item: dict, key: str, label: str) -> Optional[int]:
    raw = item.get(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: invalid {key}") from exc


def _optional_time(item: dict, key: str, label: str):
    raw = item.get(key)
    if raw is None:
        return None
    try:
        return parse_utc(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: malformed {key}") from exc


def _require(item: Any, fields: tuple[str, ...], label: str) -> None:
    if not isinstance(item, dict):
        raise ValueError(f"{label}: expected an object")
    missing = [name for name in fields if item.get(name) in (None, "")]
    if missing:
        raise ValueError(f"{label}: missing required fields {missing}")


def _parse_task(item: dict, index: int) -> Task:
    label = f"Task {index}"
    _require(item, ("id", "title"), label)
    try:
        status = TaskStatus(item.get("status", "active"))
    except ValueError as exc:
        raise ValueError(f"{label}: invalid status '{item.get('status')}'") from exc

    task = Task(
        id=str(item["id"]),
        title=str(item["title"]),
        status=status,
        project_id=item.get("projectId"),
        parent_id=item.get("parentId"),
        blocked_reason=item.get("blockedReason"),
        work_category=item.get("workCategory"),
        work_unit=item.get("workUnit"),
        work_quantity=_optional_float(item, "workQuantity", label),
        build_phase=item.get("buildPhase"),
        estimated_minutes=_optional_float(item, "estimatedMinutes", label),
        default_workers=_optional_int(item, "defaultWorkers", label),
        target_productivity=_optional_float(item, "targetProductivity", label),
        archived_at=_optional_time(item, "archivedAt", label),
        archive_version=item.get("archiveVersion"),
    )
    created = _optional_time(item, "createdAt", label)
    updated = _optional_time(item, "updatedAt", label)
    if created is not None:
        task.created_at = created
    task.updated_at = updated or task.created_at
    return task


def _parse_entry(item: dict, index: int) -> TimeEntry:
    label = f"Entry {index}"
    _require(item, ("id", "taskId", "startUtc", "endUtc"), label)
    try:
        workers = int(item.get("workers", 1))
        source = TimerSource(item.get("source", "manual"))
        sync_status = SyncStatus(item.get("syncStatus", "pending"))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label}: invalid workers, source or syncStatus") from exc

    entry = TimeEntry(
        id=str(item["id"]),
        task_id=str(item["taskId"]),
        start_utc=_optional_time(item, "startUtc", label),
        end_utc=_optional_time(item, "endUtc", label),
        workers=workers,
        source=source,
        sync_status=sync_status,
    )
    entry.created_at = _optional_time(item, "createdAt", label) or entry.end_utc
    entry.updated_at = _optional_time(item, "updatedAt", label) or entry.created_at
    return entry


def _parse_template(item: dict, index: int) -> TaskTemplate:
    label = f"Template {index}"
    _require(item, ("id", "title", "workCategory", "workUnit", "buildPhase"), label)
    return TaskTemplate(
        id=str(item["id"]),
        title=str(item["title"]),
        work_category=item["workCategory"],
        work_unit=item["workUnit"],
        build_phase=item["buildPhase"],
        work_quantity=_optional_float(item, "workQuantity", label),
        estimated_minutes=_optional_float(item, "estimatedMinutes", label),
        default_workers=_optional_int(item, "defaultWorkers", label),
        target_productivity=_optional_float(item, "targetProductivity", label),
    )


def parse_payload(payload: Any) -> Dataset:
    if not isinstance(payload, dict):
        raise ValueError("JSON payload must be an object with tasks and entries")

    return Dataset(
        tasks=[_parse_task(item, i) for i, item in enumerate(payload.get("tasks") or [], start=1)],
        entries=[_parse_entry(item, i) for i, item in enumerate(payload.get("entries") or [], start=1)],
        templates=[_parse_template(item, i) for i, item in enumerate(payload.get("templates") or [], start=1)],
    )


def parse(file_path: str) -> Dataset:
    """Parse a JSON dataset file into tasks, entries and templates."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)
    return parse_payload(payload)
