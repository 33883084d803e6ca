"""Side-by-side comparison of two plan scenarios."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from crew_productivity.planning.plan_model import Plan, PlanLineItem, plan_total_person_hours

COMPARED_FIELDS = ("work_quantity", "crew", "time_hours", "productivity_rate")


class DeltaStatus(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass
class FieldDelta:
    field: str
    value_a: float
    value_b: float
    delta: float
    percent_change: Optional[float]  # None when value_a is 0


@dataclass
class LineItemDelta:
    line_item_id: str
    title: str
    status: DeltaStatus
    changes: list[FieldDelta] = field(default_factory=list)


@dataclass
class PlanTotalsDelta:
    person_hours_a: float
    person_hours_b: float
    person_hours_delta: float
    line_items_a: int
    line_items_b: int


@dataclass
class PlanComparison:
    plan_a_title: str
    plan_b_title: str
    line_items: list[LineItemDelta]
    total_delta: PlanTotalsDelta


def line_item_match_key(item: PlanLineItem) -> str:
    return f"{item.title}::{item.work_category}:{item.work_unit}:{item.build_phase}"


def _field_delta(name: str, a: float, b: float) -> FieldDelta:
    return FieldDelta(
        field=name,
        value_a=a,
        value_b=b,
        delta=b - a,
        percent_change=(b - a) / a if a != 0 else None,
    )


def diff_line_items(a: PlanLineItem, b: PlanLineItem) -> list[FieldDelta]:
    return [
        _field_delta(name, getattr(a, name), getattr(b, name))
        for name in COMPARED_FIELDS
        if getattr(a, name) != getattr(b, name)
    ]


def compare_plans(plan_a: Plan, plan_b: Plan) -> PlanComparison:
    """Match line items by title and work type, then classify each as added/removed/changed/unchanged."""

    items_a = {line_item_match_key(item): item for item in plan_a.line_items}
    items_b = {line_item_match_key(item): item for item in plan_b.line_items}

    deltas = []
    for key in dict.fromkeys([*items_a, *items_b]):
        a = items_a.get(key)
        b = items_b.get(key)
        if a is not None and b is not None:
            changes = diff_line_items(a, b)
            status = DeltaStatus.CHANGED if changes else DeltaStatus.UNCHANGED
            deltas.append(LineItemDelta(a.id, a.title, status, changes))
        elif a is not None:
            deltas.append(LineItemDelta(a.id, a.title, DeltaStatus.REMOVED))
        else:
            deltas.append(LineItemDelta(b.id, b.title, DeltaStatus.ADDED))

    hours_a = plan_total_person_hours(plan_a)
    hours_b = plan_total_person_hours(plan_b)
    return PlanComparison(
        plan_a_title=plan_a.title,
        plan_b_title=plan_b.title,
        line_items=deltas,
        total_delta=PlanTotalsDelta(
            person_hours_a=hours_a,
            person_hours_b=hours_b,
            person_hours_delta=hours_b - hours_a,
            line_items_a=len(plan_a.line_items),
            line_items_b=len(plan_b.line_items),
        ),
    )
