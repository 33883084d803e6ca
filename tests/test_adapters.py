import json

import pytest

from crew_productivity.adapters.csv_adapter import (
    ExportProfile,
    export_kpis,
    parse as parse_csv,
    parse_kpi_csv,
    parse_work_packages,
)
from crew_productivity.adapters.import_preview import ImportAction, generate_import_preview
from crew_productivity.adapters.json_adapter import parse as parse_json
from crew_productivity.adapters.json_adapter import parse_payload
from crew_productivity.kpi import ConfidenceLevel, WorkTypeKey, WorkTypeKpi, work_type_key_string
from crew_productivity.schema import Task, TaskStatus, TaskTemplate

HEADER = "title,workCategory,workUnit,buildPhase,workQuantity,estimatedMinutes,defaultWorkers,targetProductivity\n"


def sample_kpis():
    return [
        WorkTypeKpi(WorkTypeKey("carpet-tiles", "m2", "tear-down"), 4, 100 / 6, 320.04, 19.205, ConfidenceLevel.LOW, 0.12345, 0),
        WorkTypeKpi(WorkTypeKey("furniture", "pcs", None), 12, 3.0, 240, 80, ConfidenceLevel.HIGH, None, 1),
        WorkTypeKpi(WorkTypeKey("carpet-tiles", "m2", "build-up"), 6, 12.5, 500, 40, ConfidenceLevel.MEDIUM, 0.2, 0),
    ]


def test_csv_parse_success(tmp_path):
    path = tmp_path / "packages.csv"
    path.write_text(
        HEADER
        + '"Hall ""A"" carpet",carpet-tiles,m2,build-up,120,90,2,8.5\n'
        + "Booth chairs,furniture,pcs,tear-down,,,,\n",
        encoding="utf-8",
    )
    result = parse_csv(str(path))

    assert result.valid
    first, second = result.items
    assert first.title == 'Hall "A" carpet'
    assert first.work_quantity == 120
    assert first.default_workers == 2
    assert first.mapping_key == 'Hall "A" carpet::carpet-tiles:m2:build-up'
    assert second.work_quantity is None


def test_csv_quoted_comma_stays_in_field():
    result = parse_work_packages(HEADER + '"Walls, north side",walls,m,build-up,12,,,\n')
    assert result.items[0].title == "Walls, north side"


def test_csv_invalid_rows_report_row_numbers():
    result = parse_work_packages(
        HEADER
        + "Good,walls,m,build-up,5,,,\n"
        + "Bad,sofa,m,build-up,-5,,30,\n"
        + ",walls,m,setup,abc,,,\n"
    )

    assert not result.valid
    assert [item.title for item in result.items] == ["Good"]
    by_row = {}
    for error in result.errors:
        by_row.setdefault(error.row, []).append(error.field)
    assert by_row[3] == ["workCategory", "workQuantity", "defaultWorkers"]
    assert by_row[4] == ["title", "buildPhase", "workQuantity"]
    invalid = next(e for e in result.errors if e.field == "workCategory")
    assert invalid.message.startswith('Invalid work category: "sofa". Valid: carpet-tiles')


def test_csv_missing_headers_and_empty_input():
    missing = parse_work_packages("title,workCategory\nA,walls\n")
    assert missing.errors[0].field == "headers"
    assert missing.errors[0].message == "Missing required headers: workunit, buildphase"

    empty = parse_work_packages(HEADER)
    assert empty.errors[0].row == 0
    assert empty.errors[0].field == "csv"


def test_export_ops_summary_is_byte_stable():
    text = export_kpis(sample_kpis(), ExportProfile.OPS_SUMMARY)
    assert text.splitlines() == [
        "mappingKey,workCategory,workUnit,buildPhase,sampleCount,avgProductivity,totalQuantity,totalPersonHours",
        "carpet-tiles:m2:tear-down,carpet-tiles,m2,tear-down,4,16.67,320,19.21",
        "furniture:pcs:_,furniture,pcs,,12,3,240,80",
        "carpet-tiles:m2:build-up,carpet-tiles,m2,build-up,6,12.5,500,40",
    ]
    assert export_kpis(sample_kpis(), "ops_summary") == text


def test_export_estimator_summary_adds_quality_columns():
    rows = parse_kpi_csv(export_kpis(sample_kpis(), ExportProfile.ESTIMATOR_SUMMARY))
    assert [(r["confidence"], r["cv"], r["outlierCount"]) for r in rows] == [
        ("low", "0.123", "0"),
        ("high", "", "1"),
        ("medium", "0.2", "0"),
    ]


def test_export_phase_summary_orders_by_phase_then_category():
    rows = parse_kpi_csv(export_kpis(sample_kpis(), ExportProfile.PHASE_SUMMARY))
    assert [r["mappingKey"] for r in rows] == ["furniture:pcs:_", "carpet-tiles:m2:build-up", "carpet-tiles:m2:tear-down"]


def test_export_mapping_keys_round_trip():
    kpis = sample_kpis()
    rows = parse_kpi_csv(export_kpis(kpis, ExportProfile.OPS_SUMMARY))
    assert [r["mappingKey"] for r in rows] == [work_type_key_string(k.key) for k in kpis]


def test_unknown_profile_rejected():
    with pytest.raises(ValueError):
        export_kpis(sample_kpis(), "everything")


def test_import_preview_create_update_skip():
    parsed = parse_work_packages(
        HEADER
        + "Carpet hall,carpet-tiles,m2,build-up,100,,2,\n"
        + "Carpet hall,carpet-tiles,m2,tear-down,80,,,\n"
        + "Lights,lighting,pcs,build-up,40,,,\n"
        + "Lights,lighting,pcs,build-up,40,,,\n"
        + "Truss,rigging,m,build-up,12,,,\n"
    )
    templates = [TaskTemplate("tpl1", "Carpet hall", "carpet-tiles", "m2", "build-up", work_quantity=100, default_workers=2)]
    tasks = [
        Task(id="t1", title="Carpet hall", status=TaskStatus.COMPLETED, work_category="carpet-tiles", work_unit="m2", build_phase="tear-down", work_quantity=60),
        Task(id="t2", title="Lights", work_category="lighting", work_unit="pcs", build_phase="build-up", work_quantity=40),
    ]

    preview = generate_import_preview(parsed.items, tasks, templates)

    actions = [(p.action, p.existing_id) for p in preview.items]
    assert actions == [
        (ImportAction.SKIP, "tpl1"),
        (ImportAction.UPDATE, "t1"),
        (ImportAction.SKIP, "t2"),
        (ImportAction.SKIP, "t2"),
        (ImportAction.CREATE, None),
    ]
    assert preview.items[1].changed_fields == ["work_quantity"]
    assert preview.summary == {ImportAction.CREATE: 1, ImportAction.UPDATE: 1, ImportAction.SKIP: 3}
    assert preview.duplicate_keys == ["Lights::lighting:pcs:build-up"]


def test_json_parse_success(tmp_path):
    path = tmp_path / "dataset.json"
    payload = {
        "tasks": [
            {"id": "a", "title": "Carpet", "status": "completed", "workCategory": "carpet-tiles", "workUnit": "m2", "workQuantity": 50},
            {"id": "b", "title": "Edges", "parentId": "a", "updatedAt": "2026-01-02T10:00:00"},
        ],
        "entries": [
            {"id": "e1", "taskId": "b", "startUtc": "2026-01-02T08:00:00Z", "endUtc": "2026-01-02T09:30:00Z", "workers": 2}
        ],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    dataset = parse_json(str(path))

    assert [t.id for t in dataset.tasks] == ["a", "b"]
    assert dataset.tasks[0].status is TaskStatus.COMPLETED
    assert dataset.tasks[1].parent_id == "a"
    assert dataset.tasks[1].updated_at.tzinfo is not None
    assert dataset.entries[0].workers == 2
    assert dataset.templates == []


def test_json_parse_malformed(tmp_path):
    path = tmp_path / "dataset.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        parse_json(str(path))


@pytest.mark.parametrize(
    "payload,message",
    [
        ([], "JSON payload must be an object"),
        ({"tasks": [{"id": "a"}]}, "Task 1: missing required fields ['title']"),
        ({"tasks": [{"id": "a", "title": "A", "status": "paused"}]}, "Task 1: invalid status 'paused'"),
        ({"entries": [{"id": "e", "taskId": "a", "startUtc": "yesterday", "endUtc": "2026-01-01T00:00:00Z"}]}, "Entry 1: malformed startUtc"),
    ],
)
def test_json_payload_errors(payload, message):
    with pytest.raises(ValueError) as exc_info:
        parse_payload(payload)
    assert message in str(exc_info.value)


def test_csv_rejects_non_finite_numbers():
    result = parse_work_packages(
        HEADER
        + "Hall,carpet-tiles,m2,build-up,nan,,,\n"
        + "Hall B,carpet-tiles,m2,build-up,10,nan,,inf\n"
        + "Hall C,carpet-tiles,m2,build-up,-Infinity,,,\n"
    )

    assert not result.valid
    assert result.items == []
    assert [(e.row, e.field) for e in result.errors] == [
        (2, "workQuantity"),
        (3, "estimatedMinutes"),
        (3, "targetProductivity"),
        (4, "workQuantity"),
    ]
    assert result.errors[0].message == '"nan" is not a valid number'


def test_json_default_workers_coerced_to_int():
    dataset = parse_payload(
        {
            "tasks": [{"id": "a", "title": "A", "defaultWorkers": "3"}],
            "templates": [
                {"id": "tpl", "title": "T", "workCategory": "walls", "workUnit": "m", "buildPhase": "build-up", "defaultWorkers": 2}
            ],
        }
    )
    assert dataset.tasks[0].default_workers == 3
    assert dataset.templates[0].default_workers == 2


def test_json_invalid_default_workers_is_labelled():
    with pytest.raises(ValueError) as exc_info:
        parse_payload({"tasks": [{"id": "a", "title": "A", "defaultWorkers": "three"}]})
    assert "Task 1: invalid defaultWorkers" in str(exc_info.value)


def test_json_null_collections_are_empty():
    dataset = parse_payload({"tasks": None, "entries": None, "templates": None})
    assert (dataset.tasks, dataset.entries, dataset.templates) == ([], [], [])
