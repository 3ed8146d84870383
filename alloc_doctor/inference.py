"""
Pattern inference over client/worker/task snapshots.

Two entry points:

    generate_rule_recommendations(clients, workers, tasks)
        Business-rule candidates from skill overlap, per-group load spread,
        and skill scarcity. Sorted by descending confidence.

    suggest_corrections(records, entity, tasks=...)
        Field-level fixes. Only clients have rules today.

Everything here is arithmetic over the current snapshot; there is no model
and no randomness, so the same data always yields the same suggestions.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Any, Iterable

from alloc_doctor.models import (
    ENTITY_KINDS,
    Client,
    Correction,
    RuleRecommendation,
    Task,
    as_number,
    record_type,
    split_list,
    unique_in_order,
)

CORUN_BASE_CONFIDENCE = 0.5
CORUN_STEP = 0.1
CONFIDENCE_CAP = 0.9

OVERLOAD_SPREAD = 1.5
OVERLOAD_HEADROOM = 1.2
OVERLOAD_CONFIDENCE = 0.75

SKILL_GAP_RATIO = 0.5
SKILL_GAP_BASE_CONFIDENCE = 0.5
SKILL_GAP_STEP = 0.1

COMPLEX_TASK_DURATION = 3
COMPLEX_TASK_SKILLS = 2
LOW_PRIORITY_CUTOFF = 3
SUGGESTED_PRIORITY = 4
PRIORITY_CORRECTION_CONFIDENCE = 0.75


def _records(kind: str, items: Iterable[Any]) -> tuple:
    cls = record_type(kind)
    return tuple(item if isinstance(item, cls) else cls.from_record(item) for item in items)


# ══════════════════════════════════════════════════════════════════════════════
# RULE RECOMMENDATIONS
# ══════════════════════════════════════════════════════════════════════════════

def analyze_task_patterns(tasks: tuple) -> list[dict[str, Any]]:
    """Group tasks whose required-skill sets are identical."""
    groups: dict[tuple[str, ...], list[str]] = {}
    for task in tasks:
        skills = tuple(sorted(set(split_list(task.required_skills))))
        if not skills:
            continue
        groups.setdefault(skills, []).append(task.task_id)

    patterns = []
    for skills, task_ids in groups.items():
        if len(task_ids) < 2:
            continue
        patterns.append(
            {
                "tasks": task_ids,
                "common_skills": list(skills),
                "confidence": min(CONFIDENCE_CAP, CORUN_BASE_CONFIDENCE + CORUN_STEP * len(task_ids)),
            }
        )
    return patterns


def analyze_worker_overload(workers: tuple) -> list[dict[str, Any]]:
    """Worker groups where one member's load cap is far above the group mean."""
    capacities: dict[str, list[float]] = {}
    for worker in workers:
        load = as_number(worker.max_load_per_phase)
        if load is None:
            continue
        capacities.setdefault(worker.worker_group, []).append(load)

    overloaded = []
    for group, loads in capacities.items():
        mean = sum(loads) / len(loads)
        if max(loads) > mean * OVERLOAD_SPREAD:
            overloaded.append(
                {
                    "worker_group": group,
                    "suggested_limit": math.floor(mean * OVERLOAD_HEADROOM),
                    "confidence": OVERLOAD_CONFIDENCE,
                }
            )
    return overloaded


def analyze_skill_gaps(workers: tuple, tasks: tuple) -> list[dict[str, Any]]:
    demand: Counter = Counter()
    for task in tasks:
        demand.update(unique_in_order(split_list(task.required_skills)))
    supply: Counter = Counter()
    for worker in workers:
        supply.update(unique_in_order(split_list(worker.skills)))

    gaps = []
    for skill, task_count in demand.items():
        worker_count = supply.get(skill, 0)
        if worker_count / task_count < SKILL_GAP_RATIO:
            gaps.append(
                {
                    "skill": skill,
                    "task_count": task_count,
                    "worker_count": worker_count,
                    "confidence": min(
                        CONFIDENCE_CAP,
                        SKILL_GAP_BASE_CONFIDENCE + (task_count - worker_count) * SKILL_GAP_STEP,
                    ),
                }
            )
    return gaps


def generate_rule_recommendations(
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
) -> list[RuleRecommendation]:
    worker_rows = _records("worker", workers)
    task_rows = _records("task", tasks)
    recommendations: list[RuleRecommendation] = []

    for group in analyze_task_patterns(task_rows):
        task_ids = group["tasks"]
        recommendations.append(
            RuleRecommendation(
                id=f"corun-rec-{'-'.join(task_ids)}",
                type="coRun",
                description=f"Tasks {', '.join(task_ids)} often have similar requirements",
                confidence=group["confidence"],
                parameters={"tasks": list(task_ids)},
                reasoning=(
                    f"These tasks share {len(group['common_skills'])} common skills "
                    "and have similar durations"
                ),
            )
        )

    for group in analyze_worker_overload(worker_rows):
        name = group["worker_group"]
        recommendations.append(
            RuleRecommendation(
                id=f"loadlimit-rec-{name}",
                type="loadLimit",
                description=f"Limit {name} to {group['suggested_limit']} tasks per phase",
                confidence=group["confidence"],
                parameters={"workerGroup": name, "maxSlotsPerPhase": group["suggested_limit"]},
                reasoning=f"Workers in {name} are currently overloaded based on capacity analysis",
            )
        )

    for gap in analyze_skill_gaps(worker_rows, task_rows):
        skill = gap["skill"]
        recommendations.append(
            RuleRecommendation(
                id=f"skill-rec-{skill}",
                type="patternMatch",
                description=f"Consider adding workers with {skill} skill",
                confidence=gap["confidence"],
                parameters={"skill": skill},
                reasoning=(
                    f"{gap['task_count']} tasks require {skill} "
                    f"but only {gap['worker_count']} workers have this skill"
                ),
            )
        )

    return sorted(recommendations, key=lambda item: item.confidence, reverse=True)


# ══════════════════════════════════════════════════════════════════════════════
# CORRECTIONS
# ══════════════════════════════════════════════════════════════════════════════

def is_complex_task(task: Task) -> bool:
    duration = as_number(task.duration)
    if duration is not None and duration > COMPLEX_TASK_DURATION:
        return True
    return len(split_list(task.required_skills)) > COMPLEX_TASK_SKILLS


def _client_corrections(clients: tuple, tasks: tuple) -> list[Correction]:
    tasks_by_id: dict[str, Task] = {}
    for task in tasks:
        tasks_by_id.setdefault(task.task_id, task)

    corrections = []
    for row, client in enumerate(clients):
        requested = split_list(client.requested_task_ids)
        complex_tasks = [
            task_id for task_id in requested if task_id in tasks_by_id and is_complex_task(tasks_by_id[task_id])
        ]
        priority = as_number(client.priority_level)
        if not complex_tasks or priority is None or priority >= LOW_PRIORITY_CUTOFF:
            continue
        corrections.append(
            Correction(
                id=client.client_id,
                entity="client",
                field="PriorityLevel",
                current_value=client.priority_level,
                suggested_value=SUGGESTED_PRIORITY,
                confidence=PRIORITY_CORRECTION_CONFIDENCE,
                reasoning=f"Client has {len(complex_tasks)} complex tasks but low priority",
                row=row,
            )
        )
    return corrections


def suggest_corrections(
    records: Iterable[Any],
    entity: str,
    *,
    tasks: Iterable[Any],
) -> list[Correction]:
    """
    Field-level fixes for one collection.

    ``tasks`` is required: client suggestions depend on which requested tasks
    are complex. Each correction carries the 0-based ``row`` it applies to.
    """
    if entity not in ENTITY_KINDS:
        raise ValueError(f"Unknown entity kind '{entity}'. Expected one of: {', '.join(ENTITY_KINDS)}")
    rows = _records(entity, records)
    if entity == "client":
        return _client_corrections(rows, _records("task", tasks))
    # Worker and task correction rules are not defined yet.
    return []


def suggest_all_corrections(
    clients: Iterable[Client | dict],
    workers: Iterable[Any],
    tasks: Iterable[Any],
) -> list[Correction]:
    task_rows = _records("task", tasks)
    return (
        suggest_corrections(clients, "client", tasks=task_rows)
        + suggest_corrections(workers, "worker", tasks=task_rows)
        + suggest_corrections(task_rows, "task", tasks=task_rows)
    )
