from datetime import datetime, timedelta, timezone

import pytest

from crew_productivity.kpi import (
    ConfidenceLevel,
    TrendDirection,
    WorkTypeKey,
    WorkTypeKpi,
    classify_confidence,
    compute_cv,
    compute_trend_direction,
    compute_work_type_kpis,
    compute_work_type_trends,
    detect_outliers,
    find_kpi_by_key,
    split_by_period,
    work_type_key_string,
)
from crew_productivity.rollup import group_attributed_entries
from crew_productivity.schema import (
    AttributedEntry,
    AttributionPolicy,
    AttributionReason,
    AttributionStatus,
    Task,
    TaskStatus,
    TimeEntry,
)

NOW = datetime(2026, 6, 30, 12, 0, tzinfo=timezone.utc)


def done(task_id, quantity, category="carpet-tiles", unit="m2", phase=None, updated_at=NOW, **kwargs):
    return Task(
        id=task_id,
        title=task_id,
        status=TaskStatus.COMPLETED,
        work_category=category,
        work_unit=unit,
        work_quantity=quantity,
        build_phase=phase,
        updated_at=updated_at,
        **kwargs,
    )


def hours_for(task_id, hours):
    return [
        AttributedEntry(
            entry_id=f"{task_id}-e",
            task_id=task_id,
            owner_task_id=task_id,
            status=AttributionStatus.ATTRIBUTED,
            reason=AttributionReason.SELF,
            person_hours=hours,
        )
    ]


def kpi(rate, confidence=ConfidenceLevel.MEDIUM):
    return WorkTypeKpi(
        key=WorkTypeKey("walls", "m"),
        sample_count=5,
        avg_productivity=rate,
        total_quantity=rate * 10,
        total_person_hours=10,
        confidence=confidence,
        cv=None,
        outlier_count=0,
    )


@pytest.mark.parametrize(
    "count,expected",
    [
        (0, ConfidenceLevel.INSUFFICIENT),
        (2, ConfidenceLevel.INSUFFICIENT),
        (3, ConfidenceLevel.LOW),
        (4, ConfidenceLevel.LOW),
        (5, ConfidenceLevel.MEDIUM),
        (9, ConfidenceLevel.MEDIUM),
        (10, ConfidenceLevel.HIGH),
    ],
)
def test_confidence_cutoffs(count, expected):
    assert classify_confidence(count) is expected


def test_cv_is_population_based():
    assert compute_cv([10, 20]) == pytest.approx(1 / 3)
    assert compute_cv([10, 10, 10]) == 0
    assert compute_cv([7]) is None
    assert compute_cv([0, 0]) is None


def test_outliers_use_floor_index_quartiles():
    assert detect_outliers([10, 10, 10, 10, 100]) == [4]
    assert detect_outliers([1, 2, 100]) == []
    assert detect_outliers([10, 11, 12, 13]) == []


def test_key_string_marks_missing_phase():
    assert work_type_key_string(WorkTypeKey("walls", "m")) == "walls:m:_"
    assert work_type_key_string(WorkTypeKey("walls", "m", "tear-down")) == "walls:m:tear-down"


def test_end_to_end_rate_from_raw_entries():
    task = done("t", 100)
    start = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)
    entries = [
        TimeEntry(id="e1", task_id="t", start_utc=start, end_utc=start + timedelta(hours=2)),
        TimeEntry(id="e2", task_id="t", start_utc=start, end_utc=start + timedelta(hours=4)),
    ]
    rollup = group_attributed_entries([task], [task], entries, AttributionPolicy.SOFT_ALLOW_FLAG)
    kpis = compute_work_type_kpis([task], rollup.entries_by_task)

    assert len(kpis) == 1
    assert round(kpis[0].avg_productivity, 2) == 16.67
    assert kpis[0].sample_count == 1
    assert kpis[0].confidence is ConfidenceLevel.INSUFFICIENT
    assert kpis[0].cv is None


def test_rate_is_quantity_weighted_not_mean_of_rates():
    tasks = [done("a", 100), done("b", 10)]
    entries = {"a": hours_for("a", 10), "b": hours_for("b", 10)}
    kpis = compute_work_type_kpis(tasks, entries)

    assert kpis[0].avg_productivity == pytest.approx(110 / 20)
    assert kpis[0].total_quantity == 110
    assert kpis[0].total_person_hours == 20


def test_kpis_skip_unqualified_tasks():
    tasks = [
        done("ok", 50),
        done("zero", 0),
        done("no-hours", 50),
        Task(id="active", title="active", work_category="carpet-tiles", work_unit="m2", work_quantity=50),
        done("other", 20, category="furniture", unit="pcs"),
    ]
    entries = {"ok": hours_for("ok", 5), "zero": hours_for("zero", 5), "active": hours_for("active", 5), "other": hours_for("other", 4)}
    kpis = compute_work_type_kpis(tasks, entries)

    assert [work_type_key_string(k.key) for k in kpis] == ["carpet-tiles:m2:_", "furniture:pcs:_"]
    assert kpis[0].sample_count == 1


def test_archive_only_filters_unarchived():
    tasks = [done("a", 50, archived_at=NOW), done("b", 50)]
    entries = {"a": hours_for("a", 5), "b": hours_for("b", 5)}
    kpis = compute_work_type_kpis(tasks, entries, archive_only=True)
    assert kpis[0].sample_count == 1


def test_split_by_period_boundary_is_recent():
    cutoff = NOW - timedelta(days=30)
    tasks = [done("edge", 1, updated_at=cutoff), done("old", 1, updated_at=cutoff - timedelta(seconds=1))]
    recent, baseline = split_by_period(tasks, 30, NOW)
    assert [t.id for t in recent] == ["edge"]
    assert [t.id for t in baseline] == ["old"]


def test_trend_direction_thresholds():
    assert compute_trend_direction(kpi(12), kpi(10))[0] is TrendDirection.IMPROVING
    assert compute_trend_direction(kpi(12), kpi(10))[1] == pytest.approx(0.2)
    assert compute_trend_direction(kpi(9), kpi(10))[0] is TrendDirection.DECLINING
    assert compute_trend_direction(kpi(10.4), kpi(10))[0] is TrendDirection.STABLE


def test_trend_direction_needs_both_sides_with_confidence():
    assert compute_trend_direction(None, kpi(10)) == (None, None)
    assert compute_trend_direction(kpi(10, ConfidenceLevel.INSUFFICIENT), kpi(10)) == (None, None)
    assert compute_trend_direction(kpi(10), kpi(0)) == (None, None)


def test_work_type_trends_union_keys():
    old = NOW - timedelta(days=60)
    tasks = [done(f"r{i}", 12, updated_at=NOW) for i in range(3)]
    tasks += [done(f"b{i}", 10, updated_at=old) for i in range(3)]
    tasks.append(done("f", 5, category="furniture", unit="pcs", updated_at=old))
    entries = {t.id: hours_for(t.id, 1) for t in tasks}

    trends = compute_work_type_trends(tasks, entries, 30, NOW)
    by_key = {work_type_key_string(t.key): t for t in trends}

    assert set(by_key) == {"carpet-tiles:m2:_", "furniture:pcs:_"}
    assert by_key["carpet-tiles:m2:_"].direction is TrendDirection.IMPROVING
    assert by_key["furniture:pcs:_"].recent is None
    assert by_key["furniture:pcs:_"].direction is None


def test_find_kpi_by_key():
    kpis = compute_work_type_kpis([done("a", 10, phase="build-up")], {"a": hours_for("a", 2)})
    assert find_kpi_by_key(kpis, WorkTypeKey("carpet-tiles", "m2", "build-up")) is kpis[0]
    assert find_kpi_by_key(kpis, WorkTypeKey("carpet-tiles", "m2")) is None


def test_split_by_period_accepts_naive_now():
    naive_now = NOW.replace(tzinfo=None)
    tasks = [done("new", 1, updated_at=NOW - timedelta(days=1)), done("old", 1, updated_at=NOW - timedelta(days=45))]
    recent, baseline = split_by_period(tasks, 30, naive_now)
    assert [t.id for t in recent] == ["new"]
    assert [t.id for t in baseline] == ["old"]
