"""Planning workspace model.

A plan is a list of work packages (line items) with editable assumptions.
Edit helpers return new plans rather than mutating their input.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from crew_productivity.kpi import WorkTypeKey
from crew_productivity.schema import generate_id, now_utc


class PlanStatus(str, Enum):
    DRAFT = "draft"
    LOCKED = "locked"


class RateSource(str, Enum):
    TEMPLATE = "template"
    HISTORICAL = "historical"
    MANUAL = "manual"


@dataclass
class PlanLineItem:
    id: str
    title: str
    work_category: str
    work_unit: str
    build_phase: Optional[str]
    work_quantity: float
    crew: int
    time_hours: float
    productivity_rate: float
    rate_source: RateSource = RateSource.MANUAL
    rationale: Optional[str] = None


@dataclass
class Plan:
    id: str
    title: str
    status: PlanStatus = PlanStatus.DRAFT
    line_items: list[PlanLineItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)
    locked_at: Optional[datetime] = None


def line_item_work_type_key(item: PlanLineItem) -> WorkTypeKey:
    return WorkTypeKey(item.work_category, item.work_unit, item.build_phase)


def plan_total_person_hours(plan: Plan) -> float:
    return sum(item.time_hours * item.crew for item in plan.line_items)


def plan_totals_by_unit(plan: Plan) -> dict[str, float]:
    totals: dict[str, float] = defaultdict(float)
    for item in plan.line_items:
        totals[item.work_unit] += item.work_quantity
    return dict(totals)


def create_plan(title: str) -> Plan:
    now = now_utc()
    return Plan(id=generate_id(), title=title, created_at=now, updated_at=now)


def create_line_item(
    title: str,
    work_category: str,
    work_unit: str,
    build_phase: Optional[str],
    work_quantity: float,
    productivity_rate: float,
    rate_source: RateSource = RateSource.MANUAL,
    crew: int = 1,
) -> PlanLineItem:
    """New line item; time is derived from the rate for a single-worker crew."""

    time_hours = work_quantity / productivity_rate if productivity_rate > 0 else 0.0
    return PlanLineItem(
        id=generate_id(),
        title=title,
        work_category=work_category,
        work_unit=work_unit,
        build_phase=build_phase,
        work_quantity=work_quantity,
        crew=crew,
        time_hours=time_hours,
        productivity_rate=productivity_rate,
        rate_source=rate_source,
    )


def lock_plan(plan: Plan) -> Plan:
    now = now_utc()
    return replace(plan, status=PlanStatus.LOCKED, locked_at=now, updated_at=now)


def unlock_plan(plan: Plan) -> Plan:
    return replace(plan, status=PlanStatus.DRAFT, locked_at=None, updated_at=now_utc())


def update_line_item(plan: Plan, line_item_id: str, **updates) -> Plan:
    if "id" in updates:
        raise ValueError("Line item id cannot be changed")
    items = [replace(item, **updates) if item.id == line_item_id else item for item in plan.line_items]
    return replace(plan, line_items=items, updated_at=now_utc())


def add_line_item(plan: Plan, item: PlanLineItem) -> Plan:
    return replace(plan, line_items=[*plan.line_items, item], updated_at=now_utc())


def remove_line_item(plan: Plan, line_item_id: str) -> Plan:
    items = [item for item in plan.line_items if item.id != line_item_id]
    return replace(plan, line_items=items, updated_at=now_utc())
