"""
Shared alloc-doctor check taxonomy.

This keeps check ids, severity and explain text in one place so the
validator, the reporter and ``alloc-doctor explain`` do not drift.
"""

from __future__ import annotations

from typing import Any

from alloc_doctor.models import ValidationError


CHECK_DEFINITIONS = {
    "missing": {
        "severity": "error",
        "description": "A client row is missing ClientID, ClientName or PriorityLevel.",
        "evidence": "The field is empty or absent on the row.",
        "disable_hint": "Fill in the field; rows without an identity cannot be allocated.",
    },
    "duplicate": {
        "severity": "error",
        "description": "An ID appears more than once in its collection.",
        "evidence": "The second and later rows carrying the same ID are flagged; the first is kept as the original.",
        "disable_hint": "Rename or merge the repeated rows so every ID is unique.",
    },
    "invalid-slots": {
        "severity": "error",
        "description": "Worker AvailableSlots is not valid JSON.",
        "evidence": "The value could not be parsed as JSON.",
        "disable_hint": "Write slots as a JSON array such as [1,2,3].",
    },
    "malformed-slots": {
        "severity": "error",
        "description": "Worker AvailableSlots parsed but is not an array of numbers.",
        "evidence": "The parsed value is not a list, or holds non-numeric items.",
        "disable_hint": "Write slots as a JSON array of phase numbers such as [1,2,3].",
    },
    "priority-range": {
        "severity": "error",
        "description": "Client PriorityLevel is outside 1-5.",
        "evidence": "The value is below 1, above 5, or not a number.",
        "disable_hint": "Use an integer priority between 1 (lowest) and 5 (highest).",
    },
    "duration-range": {
        "severity": "error",
        "description": "Task Duration is below 1.",
        "evidence": "The value is below 1 or not a number.",
        "disable_hint": "Durations are counted in phases and must be at least 1.",
    },
    "broken-json": {
        "severity": "error",
        "description": "Client AttributesJSON is not valid JSON.",
        "evidence": "A non-empty AttributesJSON value failed to parse.",
        "disable_hint": "Leave the cell empty or provide a valid JSON object.",
    },
    "unknown-task": {
        "severity": "error",
        "description": "A client requests a TaskID that does not exist.",
        "evidence": "An ID from RequestedTaskIDs has no matching task row.",
        "disable_hint": "Add the task or remove the reference from RequestedTaskIDs.",
    },
    "circular-corun": {
        "severity": "error",
        "description": "Co-run rules that form a cycle.",
        "evidence": "Reserved stage; currently reports nothing.",
        "disable_hint": "Nothing to disable yet.",
    },
    "overloaded": {
        "severity": "warning",
        "description": "A worker declares a higher MaxLoadPerPhase than they have available slots.",
        "evidence": "len(AvailableSlots) < MaxLoadPerPhase.",
        "disable_hint": "Lower MaxLoadPerPhase or add available slots.",
    },
    "phase-saturation": {
        "severity": "warning",
        "description": "Phase demand exceeding worker slot supply.",
        "evidence": "Reserved stage; currently reports nothing.",
        "disable_hint": "Nothing to disable yet.",
    },
    "skill-coverage": {
        "severity": "error",
        "description": "A task requires a skill no worker has.",
        "evidence": "The skill is missing from the union of all worker Skills.",
        "disable_hint": "Add a worker with the skill or drop the requirement.",
    },
    "max-concurrent": {
        "severity": "warning",
        "description": "Task MaxConcurrent is larger than the number of qualified workers.",
        "evidence": "Fewer workers hold every required skill than the task allows to run in parallel.",
        "disable_hint": "Reduce MaxConcurrent or train/add qualified workers.",
    },
    "rule-conflict": {
        "severity": "error",
        "description": "Business rules that contradict each other.",
        "evidence": "Reserved stage; currently reports nothing.",
        "disable_hint": "Nothing to disable yet.",
    },
    "unexpected-field": {
        "severity": "error",
        "description": "A record carries a column that is not part of its entity schema (strict mode only).",
        "evidence": "The column name is not one of the entity's fixed headers.",
        "disable_hint": "Drop the column, rename it to a known header, or validate without --strict.",
    },
}


def severity_for(check: str) -> str:
    return CHECK_DEFINITIONS[check]["severity"]


def explain_check(check: str) -> dict[str, Any] | None:
    definition = CHECK_DEFINITIONS.get(check)
    if definition is None:
        return None
    return {"check": check, **definition}


def build_issue(
    *,
    check: str,
    issue_id: str,
    message: str,
    entity: str,
    entity_id: Any,
    field: str | None = None,
    suggestion: str | None = None,
    row: int | None = None,
) -> ValidationError:
    return ValidationError(
        id=issue_id,
        type=severity_for(check),
        message=message,
        entity=entity,
        entity_id="" if entity_id is None else str(entity_id),
        field=field,
        suggestion=suggestion,
        check=check,
        row=row,
    )
