"""
alloc-doctor reporter

Builds the JSON validation report and its plain-text rendering from one
``AppState`` snapshot.
"""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import Any

from alloc_doctor.contracts import build_run_summary, wrap_payload
from alloc_doctor.issue_taxonomy import CHECK_DEFINITIONS
from alloc_doctor.state import AppState
from alloc_doctor.validator import summarize_issues

SEVERITY_HEADINGS = {
    "error": "Errors (block allocation)",
    "warning": "Warnings (capacity or feasibility risks)",
}

VERDICT_LABELS = {
    "HEALTHY": "No issues found; data is ready for allocation",
    "NEEDS ATTENTION": "Only warnings; allocation can run but may be constrained",
    "BLOCKED": "Errors must be fixed before allocation",
}


def build_validation_report(
    state: AppState,
    *,
    input_paths: dict[str, Path | None],
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    summary = summarize_issues(list(state.validation_errors))
    run_summary = build_run_summary(
        command="validate",
        input_paths=input_paths,
        status="ok" if summary["errors"] == 0 else "issues",
        warnings=warnings,
        metrics={
            "clients": len(state.clients),
            "workers": len(state.workers),
            "tasks": len(state.tasks),
            "issues_found": summary["issue_count"],
        },
    )
    body = {
        "strict": state.strict,
        "summary": summary,
        "issues": [error.to_dict() for error in state.validation_errors],
    }
    return wrap_payload("alloc_doctor.validate", body, run_summary)


def _group_by_check(issues: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for issue in issues:
        grouped[issue.get("check", "")].append(issue)
    return grouped


def _issue_line(issue: dict[str, Any]) -> str:
    location = f"{issue['entity']} {issue['entityId'] or '[blank id]'}"
    if issue.get("row") is not None:
        location += f" (row {issue['row']})"
    if issue.get("field"):
        location += f" [{issue['field']}]"
    line = f"  - {location}: {issue['message']}"
    if issue.get("suggestion"):
        line += f" -> {issue['suggestion']}"
    return line


def render_validation_text(report: dict[str, Any], *, verbose: bool = False) -> str:
    summary = report.get("summary", {})
    metrics = report.get("run_summary", {}).get("metrics", {})
    verdict = summary.get("verdict", "[unknown]")
    lines = [
        "alloc-doctor validate",
        f"Clients: {metrics.get('clients', 0)}  Workers: {metrics.get('workers', 0)}  Tasks: {metrics.get('tasks', 0)}",
        f"Verdict: {verdict} ({VERDICT_LABELS.get(verdict, '')})",
        f"Errors: {summary.get('errors', 0)}",
        f"Warnings: {summary.get('warnings', 0)}",
    ]

    issues = report.get("issues", [])
    for severity, heading in SEVERITY_HEADINGS.items():
        matching = [issue for issue in issues if issue["type"] == severity]
        if not matching:
            continue
        lines.append("")
        lines.append(heading)
        for check, grouped in _group_by_check(matching).items():
            description = CHECK_DEFINITIONS.get(check, {}).get("description", check)
            lines.append(f"{check} ({len(grouped)}): {description}")
            shown = grouped if verbose else grouped[:5]
            lines.extend(_issue_line(issue) for issue in shown)
            if len(grouped) > len(shown):
                lines.append(f"  ... {len(grouped) - len(shown)} more (use --verbose)")

    warnings = report.get("run_summary", {}).get("warnings", [])
    if warnings:
        lines.append("")
        lines.append("Loader warnings:")
        lines.extend(f"- {warning}" for warning in warnings)
    return "\n".join(lines) + "\n"
