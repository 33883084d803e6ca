"""KPI-backed suggestions and risk flags for plan line items."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from crew_productivity.kpi import ConfidenceLevel, WorkTypeKpi, find_kpi_by_key
from crew_productivity.planning.plan_model import PlanLineItem, line_item_work_type_key

HIGH_CV_THRESHOLD = 0.4


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


@dataclass
class LineItemSuggestion:
    line_item_id: str
    kpi: Optional[WorkTypeKpi]
    suggested_rate: Optional[float]
    suggested_time_hours: Optional[float]
    confidence: Optional[ConfidenceLevel]
    risk: RiskLevel
    risk_reasons: list[str]


@dataclass
class PlanSuggestions:
    items: list[LineItemSuggestion]
    high_risk_count: int
    no_data_count: int


def classify_risk(kpi: Optional[WorkTypeKpi]) -> tuple[RiskLevel, list[str]]:
    """Risk level and human-readable reasons for relying on ``kpi``."""

    if kpi is None:
        return RiskLevel.HIGH, ["No historical data available"]

    reasons: list[str] = []
    if kpi.confidence is ConfidenceLevel.INSUFFICIENT:
        reasons.append(f"Insufficient samples ({kpi.sample_count})")
    elif kpi.confidence is ConfidenceLevel.LOW:
        reasons.append(f"Low confidence ({kpi.sample_count} samples)")

    high_cv = kpi.cv is not None and kpi.cv > HIGH_CV_THRESHOLD
    if high_cv:
        reasons.append(f"High variability (CV {kpi.cv * 100:.0f}%)")

    if kpi.outlier_count > 0:
        plural = "s" if kpi.outlier_count > 1 else ""
        reasons.append(f"{kpi.outlier_count} outlier{plural} in data")

    if not reasons:
        return RiskLevel.NONE, []
    if kpi.confidence is ConfidenceLevel.INSUFFICIENT or high_cv:
        return RiskLevel.HIGH, reasons
    if kpi.confidence is ConfidenceLevel.LOW or kpi.outlier_count > 0:
        return RiskLevel.MEDIUM, reasons
    return RiskLevel.LOW, reasons


def generate_plan_suggestions(line_items: Sequence[PlanLineItem], kpis: Sequence[WorkTypeKpi]) -> PlanSuggestions:
    items = []
    for item in line_items:
        kpi = find_kpi_by_key(kpis, line_item_work_type_key(item))
        risk, reasons = classify_risk(kpi)

        suggested_rate = None
        suggested_time = None
        confidence = None
        if kpi is not None and kpi.confidence is not ConfidenceLevel.INSUFFICIENT:
            suggested_rate = kpi.avg_productivity
            confidence = kpi.confidence
            if suggested_rate > 0 and item.crew > 0:
                suggested_time = item.work_quantity / (suggested_rate * item.crew)

        items.append(
            LineItemSuggestion(
                line_item_id=item.id,
                kpi=kpi,
                suggested_rate=suggested_rate,
                suggested_time_hours=suggested_time,
                confidence=confidence,
                risk=risk,
                risk_reasons=reasons,
            )
        )

    return PlanSuggestions(
        items=items,
        high_risk_count=sum(1 for s in items if s.risk is RiskLevel.HIGH),
        no_data_count=sum(1 for s in items if s.kpi is None),
    )
