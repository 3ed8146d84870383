"""
Validation pipeline for client/worker/task snapshots.

``validate_all`` runs every check in a fixed order and concatenates their
results. Each check is a plain function over the three collections, returns
``ValidationError`` records, and never raises for bad data: malformed values
become diagnostics for that row only.

Error ids are built from the check name and the entity/field involved, so an
unrelated edit does not change the id of an existing diagnostic.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Iterable

from alloc_doctor.issue_taxonomy import build_issue
from alloc_doctor.models import (
    Client,
    EntityRecord,
    Task,
    ValidationError,
    Worker,
    as_number,
    is_blank,
    is_number,
    record_type,
    split_list,
    strict_json_loads,
    unique_in_order,
)

REQUIRED_CLIENT_FIELDS = ("ClientID", "ClientName", "PriorityLevel")
PRIORITY_RANGE = (1, 5)
MIN_DURATION = 1

CheckFn = Callable[[tuple, tuple, tuple], list[ValidationError]]


def _entity_keys(records: Iterable[EntityRecord]) -> list[str]:
    """
    Per-row keys used inside error ids, aligned with the collection.

    Rows without an ID fall back to their position. A repeated ID keeps the
    bare ID on its first row and gets the occurrence number on later rows
    (``C001``, ``C001-2``), matching the duplicate check's ids.
    """
    keys = []
    seen: Counter = Counter()
    for row, record in enumerate(records, start=1):
        entity_id = record.entity_id
        if is_blank(entity_id):
            keys.append(f"row{row}")
            continue
        seen[entity_id] += 1
        keys.append(entity_id if seen[entity_id] == 1 else f"{entity_id}-{seen[entity_id]}")
    return keys


def _as_records(kind: str, items: Iterable[Any]) -> tuple:
    cls = record_type(kind)
    return tuple(item if isinstance(item, cls) else cls.from_record(item) for item in items)


def _decode_slots(worker: Worker) -> Any:
    return strict_json_loads(worker.available_slots)


# ══════════════════════════════════════════════════════════════════════════════
# CHECKS
# ══════════════════════════════════════════════════════════════════════════════

def check_missing_fields(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    keys = _entity_keys(clients)
    for row, client in enumerate(clients, start=1):
        key = keys[row - 1]
        for field_name in REQUIRED_CLIENT_FIELDS:
            if is_blank(client.get(field_name)):
                errors.append(
                    build_issue(
                        check="missing",
                        issue_id=f"missing-{key}-{field_name}",
                        message=f"Missing required field: {field_name}",
                        entity="client",
                        entity_id=client.client_id,
                        field=field_name,
                        suggestion=f"Please provide a value for {field_name}",
                        row=row,
                    )
                )
    return errors


def _duplicates_in(kind: str, label: str, records: tuple) -> list[ValidationError]:
    errors = []
    seen: Counter = Counter()
    for row, record in enumerate(records, start=1):
        entity_id = record.entity_id
        if is_blank(entity_id):
            continue
        seen[entity_id] += 1
        occurrence = seen[entity_id]
        if occurrence < 2:
            continue
        errors.append(
            build_issue(
                check="duplicate",
                issue_id=f"duplicate-{kind}-{entity_id}-{occurrence}",
                message=f"Duplicate {label}: {entity_id}",
                entity=kind,
                entity_id=entity_id,
                suggestion=f"Ensure all {label}s are unique",
                row=row,
            )
        )
    return errors


def check_duplicate_ids(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    return (
        _duplicates_in("client", "ClientID", clients)
        + _duplicates_in("worker", "WorkerID", workers)
        + _duplicates_in("task", "TaskID", tasks)
    )


def check_malformed_lists(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    suggestion = "AvailableSlots should be an array of numbers, e.g., [1,2,3]"
    keys = _entity_keys(workers)
    for row, worker in enumerate(workers, start=1):
        key = keys[row - 1]
        try:
            slots = _decode_slots(worker)
        except ValueError:
            errors.append(
                build_issue(
                    check="invalid-slots",
                    issue_id=f"invalid-slots-{key}",
                    message=f"Invalid AvailableSlots format: {worker.available_slots}",
                    entity="worker",
                    entity_id=worker.worker_id,
                    field="AvailableSlots",
                    suggestion=suggestion,
                    row=row,
                )
            )
            continue
        if not isinstance(slots, list) or not all(is_number(slot) for slot in slots):
            errors.append(
                build_issue(
                    check="malformed-slots",
                    issue_id=f"malformed-slots-{key}",
                    message=f"Malformed AvailableSlots: {worker.available_slots}",
                    entity="worker",
                    entity_id=worker.worker_id,
                    field="AvailableSlots",
                    suggestion=suggestion,
                    row=row,
                )
            )
    return errors


def check_out_of_range(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    low, high = PRIORITY_RANGE
    keys = _entity_keys(clients)
    for row, client in enumerate(clients, start=1):
        value = client.priority_level
        if is_blank(value):
            continue
        number = as_number(value)
        if number is None:
            message = f"PriorityLevel is not a number: {value}"
        elif number < low or number > high:
            message = f"PriorityLevel out of range: {value}"
        else:
            continue
        errors.append(
            build_issue(
                check="priority-range",
                issue_id=f"priority-range-{keys[row - 1]}",
                message=message,
                entity="client",
                entity_id=client.client_id,
                field="PriorityLevel",
                suggestion=f"PriorityLevel must be between {low} and {high}",
                row=row,
            )
        )

    keys = _entity_keys(tasks)
    for row, task in enumerate(tasks, start=1):
        value = task.duration
        if is_blank(value):
            continue
        number = as_number(value)
        if number is not None and number >= MIN_DURATION:
            continue
        errors.append(
            build_issue(
                check="duration-range",
                issue_id=f"duration-range-{keys[row - 1]}",
                message=f"Duration must be at least {MIN_DURATION}: {value}",
                entity="task",
                entity_id=task.task_id,
                field="Duration",
                suggestion="Duration should be a positive number",
                row=row,
            )
        )
    return errors


def check_broken_json(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    keys = _entity_keys(clients)
    for row, client in enumerate(clients, start=1):
        if is_blank(client.attributes_json):
            continue
        try:
            strict_json_loads(client.attributes_json)
        except ValueError:
            errors.append(
                build_issue(
                    check="broken-json",
                    issue_id=f"broken-json-{keys[row - 1]}",
                    message="Invalid JSON in AttributesJSON",
                    entity="client",
                    entity_id=client.client_id,
                    field="AttributesJSON",
                    suggestion="Please provide valid JSON format",
                    row=row,
                )
            )
    return errors


def check_unknown_references(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    task_ids = {task.task_id for task in tasks}
    keys = _entity_keys(clients)
    for row, client in enumerate(clients, start=1):
        key = keys[row - 1]
        for task_id in unique_in_order(split_list(client.requested_task_ids)):
            if task_id in task_ids:
                continue
            errors.append(
                build_issue(
                    check="unknown-task",
                    issue_id=f"unknown-task-{key}-{task_id}",
                    message=f"Unknown TaskID referenced: {task_id}",
                    entity="client",
                    entity_id=client.client_id,
                    field="RequestedTaskIDs",
                    suggestion=f"TaskID {task_id} does not exist in tasks data",
                    row=row,
                )
            )
    return errors


def check_circular_coruns(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    # Reserved: co-run cycles need the business-rule graph, which the
    # three entity collections do not carry.
    return []


def check_overloaded_workers(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    keys = _entity_keys(workers)
    for row, worker in enumerate(workers, start=1):
        try:
            slots = _decode_slots(worker)
        except ValueError:
            # reported by check_malformed_lists
            continue
        max_load = as_number(worker.max_load_per_phase)
        if not isinstance(slots, list) or max_load is None:
            continue
        if len(slots) < max_load:
            errors.append(
                build_issue(
                    check="overloaded",
                    issue_id=f"overloaded-{keys[row - 1]}",
                    message=(
                        f"Worker has more MaxLoadPerPhase ({worker.max_load_per_phase}) "
                        f"than AvailableSlots ({len(slots)})"
                    ),
                    entity="worker",
                    entity_id=worker.worker_id,
                    suggestion="Consider reducing MaxLoadPerPhase or increasing AvailableSlots",
                    row=row,
                )
            )
    return errors


def check_phase_saturation(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    # Reserved: phase-level demand vs. slot supply analysis.
    return []


def check_skill_coverage(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    worker_skills: set[str] = set()
    for worker in workers:
        worker_skills.update(split_list(worker.skills))

    keys = _entity_keys(tasks)
    for row, task in enumerate(tasks, start=1):
        key = keys[row - 1]
        for skill in unique_in_order(split_list(task.required_skills)):
            if skill in worker_skills:
                continue
            errors.append(
                build_issue(
                    check="skill-coverage",
                    issue_id=f"skill-coverage-{key}-{skill}",
                    message=f"No worker has required skill: {skill}",
                    entity="task",
                    entity_id=task.task_id,
                    field="RequiredSkills",
                    suggestion=f'Add workers with skill "{skill}" or remove this skill requirement',
                    row=row,
                )
            )
    return errors


def qualified_worker_count(task: Task, workers: tuple) -> int:
    required = set(split_list(task.required_skills))
    return sum(1 for worker in workers if required <= set(split_list(worker.skills)))


def check_max_concurrency(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    keys = _entity_keys(tasks)
    for row, task in enumerate(tasks, start=1):
        max_concurrent = as_number(task.max_concurrent)
        if max_concurrent is None:
            continue
        qualified = qualified_worker_count(task, workers)
        if max_concurrent > qualified:
            errors.append(
                build_issue(
                    check="max-concurrent",
                    issue_id=f"max-concurrent-{keys[row - 1]}",
                    message=f"MaxConcurrent ({task.max_concurrent}) exceeds qualified workers ({qualified})",
                    entity="task",
                    entity_id=task.task_id,
                    field="MaxConcurrent",
                    suggestion=(
                        f"Consider reducing MaxConcurrent to {qualified} "
                        "or adding more qualified workers"
                    ),
                    row=row,
                )
            )
    return errors


def check_conflicting_rules(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    # Reserved: rule-vs-rule conflict detection.
    return []


def check_unexpected_fields(clients: tuple, workers: tuple, tasks: tuple) -> list[ValidationError]:
    errors = []
    for kind, records in (("client", clients), ("worker", workers), ("task", tasks)):
        keys = _entity_keys(records)
        for row, record in enumerate(records, start=1):
            key = keys[row - 1]
            for field_name in record.extras:
                errors.append(
                    build_issue(
                        check="unexpected-field",
                        issue_id=f"unexpected-field-{kind}-{key}-{field_name}",
                        message=f"Unexpected {kind} field: {field_name}",
                        entity=kind,
                        entity_id=record.entity_id,
                        field=field_name,
                        suggestion=f"Remove the {field_name} column or rename it to a known {kind} header",
                        row=row,
                    )
                )
    return errors


CHECKS: tuple[tuple[str, CheckFn], ...] = (
    ("missing", check_missing_fields),
    ("duplicate", check_duplicate_ids),
    ("malformed-lists", check_malformed_lists),
    ("out-of-range", check_out_of_range),
    ("broken-json", check_broken_json),
    ("unknown-references", check_unknown_references),
    ("circular-corun", check_circular_coruns),
    ("overloaded", check_overloaded_workers),
    ("phase-saturation", check_phase_saturation),
    ("skill-coverage", check_skill_coverage),
    ("max-concurrent", check_max_concurrency),
    ("rule-conflict", check_conflicting_rules),
)


def validate_all(
    clients: Iterable[Client | dict],
    workers: Iterable[Worker | dict],
    tasks: Iterable[Task | dict],
    *,
    strict: bool = False,
) -> list[ValidationError]:
    """Run every check over one snapshot, in pipeline order."""
    client_rows = _as_records("client", clients)
    worker_rows = _as_records("worker", workers)
    task_rows = _as_records("task", tasks)

    errors: list[ValidationError] = []
    for _, check in CHECKS:
        errors.extend(check(client_rows, worker_rows, task_rows))
    if strict:
        errors.extend(check_unexpected_fields(client_rows, worker_rows, task_rows))
    return errors


def summarize_issues(errors: list[ValidationError]) -> dict[str, Any]:
    error_count = sum(1 for error in errors if error.type == "error")
    warning_count = sum(1 for error in errors if error.type == "warning")
    by_entity = {kind: {"errors": 0, "warnings": 0} for kind in ("client", "worker", "task")}
    for error in errors:
        bucket = by_entity.setdefault(error.entity, {"errors": 0, "warnings": 0})
        bucket["errors" if error.type == "error" else "warnings"] += 1

    if error_count:
        verdict = "BLOCKED"
    elif warning_count:
        verdict = "NEEDS ATTENTION"
    else:
        verdict = "HEALTHY"

    return {
        "verdict": verdict,
        "issue_count": len(errors),
        "errors": error_count,
        "warnings": warning_count,
        "by_entity": by_entity,
        "by_check": dict(Counter(error.check for error in errors)),
    }
