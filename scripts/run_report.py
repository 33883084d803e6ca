"""Run the attribution and productivity report over a JSON task/entry dataset."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from crew_productivity.adapters import json_adapter
from crew_productivity.adapters.csv_adapter import ExportProfile, export_kpis
from crew_productivity.archive.maintenance import run_maintenance_scan_from_store
from crew_productivity.attribution.cache import get_cached_attribution
from crew_productivity.config import get_settings
from crew_productivity.kpi import compute_work_type_kpis, compute_work_type_trends
from crew_productivity.logging_config import configure_logging
from crew_productivity.remediation.data_quality import compute_data_quality_progress
from crew_productivity.remediation.issue_queue import build_issue_queues
from crew_productivity.rollup import build_attributed_rollup
from crew_productivity.schema import AttributionPolicy, TaskStatus
from crew_productivity.store import InMemoryStore


def _json_default(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Unserializable value {value!r}")


async def build_report(
    store: InMemoryStore,
    policy: AttributionPolicy,
    recent_days: int,
    archive_only: bool,
    ttl: timedelta,
) -> tuple[dict, list]:
    tasks = await store.get_all_tasks()
    attribution = await get_cached_attribution(store, policy, ttl)

    completed = [task for task in tasks if task.status is TaskStatus.COMPLETED]
    rollup = await build_attributed_rollup(store, completed, tasks, policy)
    kpis = compute_work_type_kpis(tasks, rollup.entries_by_task, archive_only=archive_only)
    trends = compute_work_type_trends(tasks, rollup.entries_by_task, recent_days, archive_only=archive_only)

    issues = build_issue_queues(attribution.results, tasks)
    maintenance = await run_maintenance_scan_from_store(store)

    return {
        "policy": policy.value,
        "attribution": asdict(attribution.summary),
        "data_quality": asdict(compute_data_quality_progress(attribution.summary, issues)),
        "kpis": [asdict(kpi) for kpi in kpis],
        "trends": [asdict(trend) for trend in trends],
        "issues": asdict(issues),
        "maintenance": asdict(maintenance),
    }, kpis


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run crew productivity report")
    parser.add_argument("--data", required=True, help="Path to JSON dataset with tasks and entries")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in AttributionPolicy],
        default=settings.attribution_policy.value,
        help="Attribution policy",
    )
    parser.add_argument(
        "--profile",
        choices=[p.value for p in ExportProfile],
        default=settings.export_profile,
        help="KPI CSV export profile",
    )
    args = parser.parse_args()

    configure_logging(settings.log_level)

    dataset = json_adapter.parse(args.data)
    store = InMemoryStore(dataset.tasks, dataset.entries, dataset.templates)
    report, kpis = asyncio.run(
        build_report(
            store,
            AttributionPolicy(args.policy),
            settings.recent_period_days,
            settings.archive_only_kpis,
            timedelta(hours=settings.snapshot_ttl_hours),
        )
    )

    print(json.dumps(report, indent=2, default=_json_default))

    outputs_dir = Path("outputs")
    outputs_dir.mkdir(parents=True, exist_ok=True)
    report_path = outputs_dir / "productivity_report.json"
    report_path.write_text(json.dumps(report, indent=2, default=_json_default), encoding="utf-8")
    csv_path = outputs_dir / f"kpis_{args.profile}.csv"
    csv_path.write_text(export_kpis(kpis, args.profile) + "\n", encoding="utf-8")
    print(f"Saved report to {report_path} and KPI export to {csv_path}")


if __name__ == "__main__":
    main()
