"""Work-type productivity KPIs with confidence, stability and trend signals."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Mapping, Optional, Sequence

import numpy as np

from crew_productivity.schema import AttributedEntry, Task, TaskStatus, now_utc, parse_utc

MIN_SAMPLE_COUNT = 3
MED_SAMPLE_COUNT = 5
HIGH_SAMPLE_COUNT = 10

RECENT_PERIOD_DAYS = 30
TREND_THRESHOLD = 0.05


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INSUFFICIENT = "insufficient"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass(frozen=True)
class WorkTypeKey:
    work_category: str
    work_unit: str
    build_phase: Optional[str] = None


@dataclass
class WorkTypeKpi:
    key: WorkTypeKey
    sample_count: int
    avg_productivity: float  # units per person-hour
    total_quantity: float
    total_person_hours: float
    confidence: ConfidenceLevel
    cv: Optional[float]
    outlier_count: int


@dataclass
class WorkTypeTrend:
    key: WorkTypeKey
    recent: Optional[WorkTypeKpi]
    baseline: Optional[WorkTypeKpi]
    direction: Optional[TrendDirection]
    change_percent: Optional[float]


@dataclass
class _Group:
    key: WorkTypeKey
    total_quantity: float = 0.0
    total_person_hours: float = 0.0
    sample_count: int = 0
    rates: list[float] = field(default_factory=list)


def classify_confidence(sample_count: int) -> ConfidenceLevel:
    if sample_count < MIN_SAMPLE_COUNT:
        return ConfidenceLevel.INSUFFICIENT
    if sample_count < MED_SAMPLE_COUNT:
        return ConfidenceLevel.LOW
    if sample_count < HIGH_SAMPLE_COUNT:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH


def compute_cv(rates: Sequence[float]) -> Optional[float]:
    """Coefficient of variation (population std / mean) of per-task rates."""

    if len(rates) < 2:
        return None
    values = np.asarray(rates, dtype=float)
    mean = float(values.mean())
    if mean == 0:
        return None
    return float(values.std()) / mean


def detect_outliers(rates: Sequence[float]) -> list[int]:
    """Indices of rates outside the 1.5×IQR fences.

    Quartiles are read at ``floor(n*0.25)`` and ``floor(n*0.75)`` of the sorted
    values without interpolation. Fewer than four samples yield no outliers.
    """

    if len(rates) < 4:
        return []

    values = np.asarray(rates, dtype=float)
    ordered = np.sort(values)
    n = len(ordered)
    q1 = ordered[int(np.floor(n * 0.25))]
    q3 = ordered[int(np.floor(n * 0.75))]
    iqr = q3 - q1
    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr

    return [int(i) for i in np.flatnonzero((values < lower) | (values > upper))]


def work_type_key_string(key: WorkTypeKey) -> str:
    return f"{key.work_category}:{key.work_unit}:{key.build_phase if key.build_phase is not None else '_'}"


def find_kpi_by_key(kpis: Sequence[WorkTypeKpi], key: WorkTypeKey) -> Optional[WorkTypeKpi]:
    target = work_type_key_string(key)
    return next((kpi for kpi in kpis if work_type_key_string(kpi.key) == target), None)


def _qualifies(task: Task, archive_only: bool) -> bool:
    return (
        task.status is TaskStatus.COMPLETED
        and task.work_category is not None
        and task.work_unit is not None
        and task.work_quantity is not None
        and task.work_quantity > 0
        and (not archive_only or task.archived_at is not None)
    )


def compute_work_type_kpis(
    tasks: Sequence[Task],
    entries_by_task: Mapping[str, Sequence[AttributedEntry]],
    archive_only: bool = False,
) -> list[WorkTypeKpi]:
    """Group completed measurable tasks by work type and compute weighted productivity."""

    groups: dict[str, _Group] = {}

    for task in tasks:
        if not _qualifies(task, archive_only):
            continue

        task_hours = sum(entry.person_hours for entry in entries_by_task.get(task.id, ()))
        if task_hours <= 0:
            continue

        key = WorkTypeKey(task.work_category, task.work_unit, task.build_phase)
        group = groups.setdefault(work_type_key_string(key), _Group(key=key))
        group.total_quantity += task.work_quantity
        group.total_person_hours += task_hours
        group.sample_count += 1
        group.rates.append(task.work_quantity / task_hours)

    results = [
        WorkTypeKpi(
            key=group.key,
            sample_count=group.sample_count,
            avg_productivity=group.total_quantity / group.total_person_hours,
            total_quantity=group.total_quantity,
            total_person_hours=group.total_person_hours,
            confidence=classify_confidence(group.sample_count),
            cv=compute_cv(group.rates),
            outlier_count=len(detect_outliers(group.rates)),
        )
        for group in groups.values()
    ]
    results.sort(key=lambda k: (k.key.work_category, k.key.work_unit, k.key.build_phase or ""))
    return results


def split_by_period(
    tasks: Sequence[Task],
    recent_days: int = RECENT_PERIOD_DAYS,
    now: Optional[datetime] = None,
) -> tuple[list[Task], list[Task]]:
    """Partition tasks into (recent, baseline) by ``updated_at``; the cutoff is inclusive."""

    cutoff = parse_utc(now or now_utc()) - timedelta(days=recent_days)
    recent: list[Task] = []
    baseline: list[Task] = []
    for task in tasks:
        (recent if task.updated_at >= cutoff else baseline).append(task)
    return recent, baseline


def compute_trend_direction(
    recent: Optional[WorkTypeKpi],
    baseline: Optional[WorkTypeKpi],
) -> tuple[Optional[TrendDirection], Optional[float]]:
    """Compare recent against baseline productivity; returns (direction, relative change)."""

    if recent is None or baseline is None:
        return None, None
    if ConfidenceLevel.INSUFFICIENT in (recent.confidence, baseline.confidence):
        return None, None
    if baseline.avg_productivity == 0:
        return None, None

    change = (recent.avg_productivity - baseline.avg_productivity) / baseline.avg_productivity
    if change > TREND_THRESHOLD:
        return TrendDirection.IMPROVING, change
    if change < -TREND_THRESHOLD:
        return TrendDirection.DECLINING, change
    return TrendDirection.STABLE, change


def compute_work_type_trends(
    tasks: Sequence[Task],
    entries_by_task: Mapping[str, Sequence[AttributedEntry]],
    recent_days: int = RECENT_PERIOD_DAYS,
    now: Optional[datetime] = None,
    archive_only: bool = False,
) -> list[WorkTypeTrend]:
    """Trend per work type across the union of keys seen in either period."""

    recent_tasks, baseline_tasks = split_by_period(tasks, recent_days, now)
    recent_kpis = compute_work_type_kpis(recent_tasks, entries_by_task, archive_only)
    baseline_kpis = compute_work_type_kpis(baseline_tasks, entries_by_task, archive_only)

    keys: dict[str, WorkTypeKey] = {}
    for kpi in [*recent_kpis, *baseline_kpis]:
        keys.setdefault(work_type_key_string(kpi.key), kpi.key)

    trends = []
    for key in keys.values():
        recent_kpi = find_kpi_by_key(recent_kpis, key)
        baseline_kpi = find_kpi_by_key(baseline_kpis, key)
        direction, change = compute_trend_direction(recent_kpi, baseline_kpi)
        trends.append(WorkTypeTrend(key, recent_kpi, baseline_kpi, direction, change))
    return trends
