"""Core data schema for tasks, time entries and attribution results."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class TaskStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class TimerSource(str, Enum):
    MANUAL = "manual"
    RESUMED = "resumed"
    LOGGED = "logged"


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    CONFLICT = "conflict"


class AttributionPolicy(str, Enum):
    """How heuristic owner suggestions affect attribution."""

    SOFT_ALLOW_FLAG = "soft_allow_flag"
    STRICT_BLOCK = "strict_block"
    SOFT_ALLOW_PICK_NEAREST = "soft_allow_pick_nearest"


DEFAULT_ATTRIBUTION_POLICY = AttributionPolicy.SOFT_ALLOW_FLAG


class AttributionStatus(str, Enum):
    ATTRIBUTED = "attributed"
    UNATTRIBUTED = "unattributed"
    AMBIGUOUS = "ambiguous"


class AttributionReason(str, Enum):
    SELF = "self"
    ANCESTOR = "ancestor"
    NO_MEASURABLE_OWNER = "noMeasurableOwner"
    MULTIPLE_OWNERS = "multipleOwners"


class HeuristicName(str, Enum):
    EXACT_MATCH = "exact-match"
    CATEGORY_MATCH = "category-match"


WORK_CATEGORIES = (
    "carpet-tiles",
    "carpet-roll",
    "furniture",
    "walls",
    "flooring",
    "graphics",
    "lighting",
    "rigging",
)
WORK_UNITS = ("m2", "m", "pcs", "orders")
BUILD_PHASES = ("build-up", "tear-down")

AUDIT_PREFIX = "[AUDIT]"


@dataclass
class Task:
    """Work task, optionally nested one level under a parent."""

    id: str
    title: str
    status: TaskStatus = TaskStatus.ACTIVE
    project_id: Optional[str] = None
    parent_id: Optional[str] = None
    blocked_reason: Optional[str] = None
    work_category: Optional[str] = None
    work_unit: Optional[str] = None
    work_quantity: Optional[float] = None
    build_phase: Optional[str] = None
    estimated_minutes: Optional[float] = None
    default_workers: Optional[int] = None
    target_productivity: Optional[float] = None
    archived_at: Optional[datetime] = None
    archive_version: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: now_utc())
    updated_at: datetime = field(default_factory=lambda: now_utc())


@dataclass
class TimeEntry:
    """Finished timing session logged against a task."""

    id: str
    task_id: str
    start_utc: datetime
    end_utc: datetime
    workers: int = 1
    source: TimerSource = TimerSource.MANUAL
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: datetime = field(default_factory=lambda: now_utc())
    updated_at: datetime = field(default_factory=lambda: now_utc())


@dataclass
class TaskNote:
    id: str
    task_id: str
    text: str
    created_at: datetime


@dataclass
class TaskTemplate:
    """Reusable work package definition."""

    id: str
    title: str
    work_category: str
    work_unit: str
    build_phase: str
    work_quantity: Optional[float] = None
    estimated_minutes: Optional[float] = None
    default_workers: Optional[int] = None
    target_productivity: Optional[float] = None


@dataclass
class AttributedEntry:
    """Derived ownership decision for one time entry."""

    entry_id: str
    task_id: str
    owner_task_id: Optional[str]
    status: AttributionStatus
    reason: AttributionReason
    person_hours: float
    suggested_owner_task_id: Optional[str] = None
    heuristic_used: Optional[HeuristicName] = None


@dataclass
class AttributionSummary:
    engine_version: str
    total_entries: int = 0
    attributed: int = 0
    unattributed: int = 0
    ambiguous: int = 0
    total_person_hours: float = 0.0
    attributed_person_hours: float = 0.0
    excluded_person_hours: float = 0.0
    ambiguous_suggested_resolutions: int = 0
    ambiguous_resolved_by_policy: int = 0


@dataclass
class AttributionSnapshot:
    policy: AttributionPolicy
    results: list[AttributedEntry]
    summary: AttributionSummary
    computed_at: datetime


def generate_id() -> str:
    return str(uuid.uuid4())


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def parse_utc(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""

    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def duration_hours(start: datetime, end: datetime) -> float:
    """Elapsed hours between two instants, clamped at zero."""

    return max(0.0, (end - start).total_seconds() / 3600.0)


def person_hours(entry: TimeEntry) -> float:
    return duration_hours(entry.start_utc, entry.end_utc) * entry.workers


def create_audit_note(title: str, detail: str) -> str:
    return f"{AUDIT_PREFIX} {title}: {detail}"


def is_audit_note(text: str) -> bool:
    return text.startswith(AUDIT_PREFIX)
