"""Team-facing summary of attribution health and remediation progress."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from crew_productivity.remediation.issue_queue import IssueQueueResult
from crew_productivity.schema import AttributionSummary


class QualityGrade(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


GRADE_THRESHOLDS = (
    (95.0, QualityGrade.EXCELLENT),
    (85.0, QualityGrade.GOOD),
    (70.0, QualityGrade.FAIR),
)


@dataclass
class DataQualityProgress:
    attribution_rate: float  # 0-100
    total_entries: int
    attributed_hours: float
    excluded_hours: float
    needs_measurable_owner: int
    ambiguous_owner: int
    no_work_context: int
    total_open_issues: int
    affected_hours: float
    grade: QualityGrade


def classify_quality_grade(attribution_rate: float) -> QualityGrade:
    for threshold, grade in GRADE_THRESHOLDS:
        if attribution_rate >= threshold:
            return grade
    return QualityGrade.POOR


def compute_data_quality_progress(summary: AttributionSummary, issues: IssueQueueResult) -> DataQualityProgress:
    # no entries counts as fully attributed
    rate = summary.attributed / summary.total_entries * 100.0 if summary.total_entries else 100.0

    return DataQualityProgress(
        attribution_rate=round(rate, 1),
        total_entries=summary.total_entries,
        attributed_hours=summary.attributed_person_hours,
        excluded_hours=summary.excluded_person_hours,
        needs_measurable_owner=len(issues.needs_measurable_owner),
        ambiguous_owner=len(issues.ambiguous_owner),
        no_work_context=len(issues.no_work_context),
        total_open_issues=issues.total_issues,
        affected_hours=issues.total_affected_hours,
        grade=classify_quality_grade(rate),
    )
