"""Demo script for crew-productivity-engine."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from crew_productivity.adapters.csv_adapter import export_kpis
from crew_productivity.adapters.json_adapter import parse
from crew_productivity.kpi import compute_work_type_kpis
from crew_productivity.planning.plan_model import add_line_item, create_line_item, create_plan
from crew_productivity.planning.suggestions import generate_plan_suggestions
from crew_productivity.remediation.issue_queue import build_issue_queues
from crew_productivity.rollup import build_attributed_rollup
from crew_productivity.schema import AttributionPolicy, TaskStatus
from crew_productivity.store import InMemoryStore


async def run() -> None:
    dataset = parse(str(Path(__file__).resolve().parent / "sample_dataset.json"))
    store = InMemoryStore(dataset.tasks, dataset.entries)
    tasks = await store.get_all_tasks()
    completed = [t for t in tasks if t.status is TaskStatus.COMPLETED]

    for policy in (AttributionPolicy.SOFT_ALLOW_FLAG, AttributionPolicy.SOFT_ALLOW_PICK_NEAREST):
        rollup = await build_attributed_rollup(store, completed, tasks, policy)
        kpis = compute_work_type_kpis(tasks, rollup.entries_by_task)
        print(f"[{policy.value}]", rollup.summary)
        print(export_kpis(kpis, "estimator_summary"))

    issues = build_issue_queues(rollup.all_attributed, tasks)
    print("Open issues:", issues.total_issues, "affected hours:", round(issues.total_affected_hours, 2))

    plan = add_line_item(create_plan("Hall 4"), create_line_item("Carpet", "carpet-tiles", "m2", "build-up", 250, 15))
    for suggestion in generate_plan_suggestions(plan.line_items, kpis).items:
        print("Suggestion:", suggestion.suggested_rate, suggestion.risk.value, suggestion.risk_reasons)


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
