"""
Export bundle writer.

Writes the cleaned tables and the configuration produced in a session:

    clients_cleaned.csv / workers_cleaned.csv / tasks_cleaned.csv
    rules.json          {rules, metadata: {exportedAt, totalRules, activeRules}}
    priorities.json     {priorityWeights, metadata: {exportedAt, totalWeight}}
    export_summary.json {exportSummary: {...}}
    <name>.xlsx         optional; Clients / Workers / Tasks / Validation sheets

``ALLOC_DOCTOR_EXPORT_TIME`` pins ``exportedAt`` so two exports of the same
state are byte-identical.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from alloc_doctor.models import ENTITY_KINDS, HEADERS_BY_KIND, BusinessRule, PriorityWeights, ValidationError
from alloc_doctor.state import AppState

EXPORT_TIME_ENV = "ALLOC_DOCTOR_EXPORT_TIME"

CSV_FILENAMES = {
    "client": "clients_cleaned.csv",
    "worker": "workers_cleaned.csv",
    "task": "tasks_cleaned.csv",
}
RULES_FILENAME = "rules.json"
PRIORITIES_FILENAME = "priorities.json"
SUMMARY_FILENAME = "export_summary.json"

SHEET_TITLES = {"client": "Clients", "worker": "Workers", "task": "Tasks"}
SHEET_COLORS = {"client": "1565C0", "worker": "4CAF50", "task": "6A1B9A"}
VALIDATION_COLOR = "E53935"
VALIDATION_HEADERS = ["id", "type", "entity", "entityId", "field", "message", "suggestion"]

FILL_ERROR = PatternFill("solid", fgColor="FCE4D6")
FILL_WARNING = PatternFill("solid", fgColor="FFF2CC")


def exported_at() -> str:
    pinned = os.environ.get(EXPORT_TIME_ENV, "").strip()
    if pinned:
        return pinned
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ══════════════════════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════════════════════

def table_frame(kind: str, records: Iterable[Any]) -> pd.DataFrame:
    """Rows in fixed header order; missing columns are blank."""
    headers = HEADERS_BY_KIND[kind]
    rows = [record.to_record() if hasattr(record, "to_record") else dict(record) for record in records]
    return pd.DataFrame(rows, columns=headers, dtype=object)


def rules_payload(rules: Iterable[BusinessRule], *, timestamp: Optional[str] = None) -> dict[str, Any]:
    rules = list(rules)
    return {
        "rules": [rule.to_dict() for rule in rules],
        "metadata": {
            "exportedAt": timestamp or exported_at(),
            "totalRules": len(rules),
            "activeRules": sum(1 for rule in rules if rule.active),
        },
    }


def priorities_payload(weights: PriorityWeights, *, timestamp: Optional[str] = None) -> dict[str, Any]:
    return {
        "priorityWeights": weights.to_dict(),
        "metadata": {
            "exportedAt": timestamp or exported_at(),
            "totalWeight": weights.total(),
        },
    }


def summary_payload(state: AppState, *, timestamp: Optional[str] = None) -> dict[str, Any]:
    rules = state.business_rules
    errors = state.validation_errors
    return {
        "exportSummary": {
            "exportedAt": timestamp or exported_at(),
            "dataStats": {
                "clients": len(state.clients),
                "workers": len(state.workers),
                "tasks": len(state.tasks),
                "rules": len(rules),
                "activeRules": sum(1 for rule in rules if rule.active),
            },
            "validationSummary": {
                "totalIssues": len(errors),
                "errors": sum(1 for error in errors if error.type == "error"),
                "warnings": sum(1 for error in errors if error.type == "warning"),
            },
            "priorityWeights": state.priority_weights.to_dict(),
            "businessRules": [
                {
                    "id": rule.id,
                    "type": rule.type,
                    "name": rule.name,
                    "active": rule.active,
                    "priority": rule.priority,
                }
                for rule in rules
            ],
        }
    }


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOK
# ══════════════════════════════════════════════════════════════════════════════

def _style_sheet(ws, col_widths: list[int], header_color: str):
    """Bold white header on a colored fill, frozen header row, column widths."""
    fill = PatternFill("solid", fgColor=header_color)
    font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def _infer_col_widths(rows: list[list], min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    widths = [max(min_width, min(max_width, len(str(v)) + 2)) for v in rows[0]]
    for row in rows[1 : sample + 1]:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(str(val)) + 2))
    return widths


def _cell_value(value: Any) -> Any:
    return "" if value is None else value


def write_workbook(state: AppState, output_path: Path) -> Path:
    wb = openpyxl.Workbook()
    wb.remove(wb.active)

    for kind in ENTITY_KINDS:
        ws = wb.create_sheet(SHEET_TITLES[kind])
        headers = HEADERS_BY_KIND[kind]
        rows_for_width = [headers]
        ws.append(headers)
        for record in state.collection(kind):
            values = record.to_record()
            row_out = [_cell_value(values[header]) for header in headers]
            ws.append(row_out)
            rows_for_width.append(row_out)
        _style_sheet(ws, _infer_col_widths(rows_for_width), SHEET_COLORS[kind])

    ws = wb.create_sheet("Validation")
    rows_for_width = [VALIDATION_HEADERS]
    ws.append(VALIDATION_HEADERS)
    for error in state.validation_errors:
        row_out = _validation_row(error)
        ws.append(row_out)
        rows_for_width.append(row_out)
        fill = FILL_ERROR if error.type == "error" else FILL_WARNING
        ws.cell(ws.max_row, 2).fill = fill
    _style_sheet(ws, _infer_col_widths(rows_for_width), VALIDATION_COLOR)
    for cell in ws["F"][1:]:
        cell.alignment = Alignment(wrap_text=True, vertical="top")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    return output_path


def _validation_row(error: ValidationError) -> list[Any]:
    return [
        error.id,
        error.type,
        error.entity,
        error.entity_id,
        error.field or "",
        error.message,
        error.suggestion or "",
    ]


# ══════════════════════════════════════════════════════════════════════════════
# BUNDLE
# ══════════════════════════════════════════════════════════════════════════════

def _write_json(path: Path, payload: dict[str, Any]) -> Path:
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def write_export_bundle(
    state: AppState,
    output_dir: Path,
    *,
    workbook_name: Optional[str] = None,
) -> dict[str, Any]:
    """
    Write every export file for ``state`` into ``output_dir``.

    Entity tables with no rows are skipped, as are their CSV files. Returns
    ``{"files": [...], "skipped": [...], "summary": <summary payload>}``.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = exported_at()
    written: list[Path] = []
    skipped: list[str] = []

    for kind in ENTITY_KINDS:
        records = state.collection(kind)
        if not records:
            skipped.append(CSV_FILENAMES[kind])
            continue
        path = output_dir / CSV_FILENAMES[kind]
        table_frame(kind, records).to_csv(path, index=False, na_rep="")
        written.append(path)

    written.append(_write_json(output_dir / RULES_FILENAME, rules_payload(state.business_rules, timestamp=timestamp)))
    written.append(
        _write_json(output_dir / PRIORITIES_FILENAME, priorities_payload(state.priority_weights, timestamp=timestamp))
    )
    summary = summary_payload(state, timestamp=timestamp)
    written.append(_write_json(output_dir / SUMMARY_FILENAME, summary))

    if workbook_name:
        name = workbook_name if workbook_name.lower().endswith(".xlsx") else f"{workbook_name}.xlsx"
        written.append(write_workbook(state, output_dir / name))

    return {"files": [str(path) for path in written], "skipped": skipped, "summary": summary}
