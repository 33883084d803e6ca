"""CSV interchange for work packages (import) and work-type KPIs (export).

Stable mapping keys make exports and imports round-trip:
* KPI rows: ``category:unit:phase`` (``_`` for no phase)
* work packages: ``title::category:unit:phase``
"""

from __future__ import annotations

import csv
import io
import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Sequence

from crew_productivity.kpi import WorkTypeKpi, work_type_key_string
from crew_productivity.schema import BUILD_PHASES, WORK_CATEGORIES, WORK_UNITS

IMPORT_COLUMNS = (
    "title",
    "workCategory",
    "workUnit",
    "buildPhase",
    "workQuantity",
    "estimatedMinutes",
    "defaultWorkers",
    "targetProductivity",
)
_REQUIRED_HEADERS = ("title", "workcategory", "workunit", "buildphase")

_BASE_HEADERS = [
    "mappingKey",
    "workCategory",
    "workUnit",
    "buildPhase",
    "sampleCount",
    "avgProductivity",
    "totalQuantity",
    "totalPersonHours",
]


class ExportProfile(str, Enum):
    OPS_SUMMARY = "ops_summary"
    ESTIMATOR_SUMMARY = "estimator_summary"
    PHASE_SUMMARY = "phase_summary"


@dataclass
class ImportedWorkPackage:
    mapping_key: str
    title: str
    work_category: str
    work_unit: str
    build_phase: str
    work_quantity: Optional[float] = None
    estimated_minutes: Optional[float] = None
    default_workers: Optional[float] = None
    target_productivity: Optional[float] = None


@dataclass(frozen=True)
class ImportValidationError:
    row: int
    field: str
    message: str


@dataclass
class ImportParseResult:
    items: list[ImportedWorkPackage] = field(default_factory=list)
    errors: list[ImportValidationError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def work_package_mapping_key(title: str, work_category: str, work_unit: str, build_phase: Optional[str]) -> str:
    return f"{title}::{work_category}:{work_unit}:{build_phase}"


# --- export ---


def _fmt_number(value: float, places: int) -> str:
    """Half-up rounding to ``places`` decimals with trailing zeros dropped."""

    rounded = Decimal(repr(float(value))).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    text = format(rounded.normalize(), "f")
    return "0" if text in ("-0", "") else text


def _write_rows(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def _base_fields(kpi: WorkTypeKpi) -> list[str]:
    return [
        str(kpi.sample_count),
        _fmt_number(kpi.avg_productivity, 2),
        _fmt_number(kpi.total_quantity, 1),
        _fmt_number(kpi.total_person_hours, 2),
    ]


def export_ops_summary(kpis: Sequence[WorkTypeKpi]) -> str:
    rows = [
        [work_type_key_string(k.key), k.key.work_category, k.key.work_unit, k.key.build_phase or "", *_base_fields(k)]
        for k in kpis
    ]
    return _write_rows(_BASE_HEADERS, rows)


def export_estimator_summary(kpis: Sequence[WorkTypeKpi]) -> str:
    """Ops columns plus confidence, CV and outlier count for estimators."""

    headers = [*_BASE_HEADERS, "confidence", "cv", "outlierCount"]
    rows = [
        [
            work_type_key_string(k.key),
            k.key.work_category,
            k.key.work_unit,
            k.key.build_phase or "",
            *_base_fields(k),
            k.confidence.value,
            _fmt_number(k.cv, 3) if k.cv is not None else "",
            str(k.outlier_count),
        ]
        for k in kpis
    ]
    return _write_rows(headers, rows)


def export_phase_summary(kpis: Sequence[WorkTypeKpi]) -> str:
    """KPIs ordered by build phase, then category."""

    headers = ["buildPhase", "mappingKey", "workCategory", "workUnit", *_BASE_HEADERS[4:]]
    ordered = sorted(kpis, key=lambda k: (k.key.build_phase or "", k.key.work_category))
    rows = [
        [k.key.build_phase or "", work_type_key_string(k.key), k.key.work_category, k.key.work_unit, *_base_fields(k)]
        for k in ordered
    ]
    return _write_rows(headers, rows)


_EXPORTERS = {
    ExportProfile.OPS_SUMMARY: export_ops_summary,
    ExportProfile.ESTIMATOR_SUMMARY: export_estimator_summary,
    ExportProfile.PHASE_SUMMARY: export_phase_summary,
}


def export_kpis(kpis: Sequence[WorkTypeKpi], profile: ExportProfile | str) -> str:
    return _EXPORTERS[ExportProfile(profile)](kpis)


def parse_kpi_csv(text: str) -> list[dict[str, str]]:
    """Read an exported KPI CSV back into rows keyed by header."""

    return [dict(row) for row in csv.DictReader(io.StringIO(text))]


# --- import ---


def _parse_optional_number(
    value: Optional[str], row: int, field_name: str, errors: list[ImportValidationError]
) -> Optional[float]:
    if not value:
        return None
    try:
        number = float(value)
    except ValueError:
        number = math.nan
    if not math.isfinite(number):
        errors.append(ImportValidationError(row, field_name, f'"{value}" is not a valid number'))
        return None
    return number


def _check_choice(
    value: str, choices: Sequence[str], row: int, field_name: str, label: str, errors: list[ImportValidationError]
) -> None:
    if not value:
        errors.append(ImportValidationError(row, field_name, f"{label} is required"))
    elif value not in choices:
        errors.append(
            ImportValidationError(
                row, field_name, f'Invalid {label.lower()}: "{value}". Valid: {", ".join(choices)}'
            )
        )


def _parse_row(row: dict[str, str], row_number: int) -> tuple[Optional[ImportedWorkPackage], list[ImportValidationError]]:
    errors: list[ImportValidationError] = []

    title = row.get("title", "")
    if not title:
        errors.append(ImportValidationError(row_number, "title", "Title is required"))

    category = row.get("workcategory", "")
    unit = row.get("workunit", "")
    phase = row.get("buildphase", "")
    _check_choice(category, WORK_CATEGORIES, row_number, "workCategory", "Work category", errors)
    _check_choice(unit, WORK_UNITS, row_number, "workUnit", "Work unit", errors)
    _check_choice(phase, BUILD_PHASES, row_number, "buildPhase", "Build phase", errors)

    quantity = _parse_optional_number(row.get("workquantity"), row_number, "workQuantity", errors)
    minutes = _parse_optional_number(row.get("estimatedminutes"), row_number, "estimatedMinutes", errors)
    workers = _parse_optional_number(row.get("defaultworkers"), row_number, "defaultWorkers", errors)
    target = _parse_optional_number(row.get("targetproductivity"), row_number, "targetProductivity", errors)

    if quantity is not None and quantity <= 0:
        errors.append(ImportValidationError(row_number, "workQuantity", "Work quantity must be positive"))
    if workers is not None and not 1 <= workers <= 20:
        errors.append(ImportValidationError(row_number, "defaultWorkers", "Default workers must be between 1 and 20"))

    if errors:
        return None, errors

    return (
        ImportedWorkPackage(
            mapping_key=work_package_mapping_key(title, category, unit, phase),
            title=title,
            work_category=category,
            work_unit=unit,
            build_phase=phase,
            work_quantity=quantity,
            estimated_minutes=minutes,
            default_workers=workers,
            target_productivity=target,
        ),
        [],
    )


def parse_work_packages(text: str) -> ImportParseResult:
    """Parse CSV text into validated work packages. The first record is the header."""

    reader = csv.reader(io.StringIO(text.strip()))
    header = next(reader, None)
    records = [(reader.line_num, fields) for fields in reader]
    records = [(line, fields) for line, fields in records if any(f.strip() for f in fields)]

    if header is None or not records:
        return ImportParseResult(
            errors=[ImportValidationError(0, "csv", "CSV must have a header row and at least one data row")]
        )

    headers = [h.strip().lower() for h in header]
    missing = [h for h in _REQUIRED_HEADERS if h not in headers]
    if missing:
        return ImportParseResult(
            errors=[ImportValidationError(0, "headers", f"Missing required headers: {', '.join(missing)}")]
        )

    result = ImportParseResult()
    for row_number, fields in records:
        row = {h: (fields[i] if i < len(fields) else "").strip() for i, h in enumerate(headers)}
        item, errors = _parse_row(row, row_number)
        if item is None:
            result.errors.extend(errors)
        else:
            result.items.append(item)
    return result


def parse(file_path: str) -> ImportParseResult:
    """Parse a work-package CSV file."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        return parse_work_packages(handle.read())
