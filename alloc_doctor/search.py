"""
Keyword search across the three collections.

Queries are matched with a small fixed table of regexes and phrases
("tasks with duration more than 3", "high priority clients",
"workers with skill python"). A query must name the entity kind it wants;
each kind contributes one SearchResult when anything matches.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

from alloc_doctor.models import SearchResult, as_number, record_type, strict_json_loads

DURATION_RE = re.compile(r"duration.*?(\d+)", re.IGNORECASE)
PHASE_RE = re.compile(r"phase.*?(\d+)", re.IGNORECASE)
SKILL_RE = re.compile(r"skill.*?([a-zA-Z]+)", re.IGNORECASE)
PRIORITY_RE = re.compile(r"priority.*?(\d+)", re.IGNORECASE)

TASK_CONFIDENCE = 0.85
CLIENT_CONFIDENCE = 0.80
WORKER_CONFIDENCE = 0.80

HIGH_PRIORITY = 4
LOW_PRIORITY = 2


def _mentions(query: str, value: str) -> bool:
    value = value.strip().lower()
    return bool(value) and value in query


def _skill_term(query: str) -> str | None:
    # "skills python" should look for "python", not the trailing "s".
    match = re.search(r"skills?\s+([a-zA-Z]+)", query) or SKILL_RE.search(query)
    return match.group(1).lower() if match else None


def _task_matches(task, query: str) -> bool:
    duration_match = DURATION_RE.search(query)
    if duration_match:
        target = int(duration_match.group(1))
        duration = as_number(task.duration)
        if duration is not None:
            if "more than" in query and duration > target:
                return True
            if "less than" in query and duration < target:
                return True
            if "equal" in query and duration == target:
                return True

    phase_match = PHASE_RE.search(query)
    if phase_match and phase_match.group(1) in str(task.preferred_phases):
        return True

    skill = _skill_term(query)
    if skill and skill in task.required_skills.lower():
        return True

    return _mentions(query, task.task_name) or _mentions(query, task.category)


def _client_matches(client, query: str) -> bool:
    priority = as_number(client.priority_level)
    priority_match = PRIORITY_RE.search(query)
    if priority is not None:
        if priority_match and priority == int(priority_match.group(1)):
            return True
        if "high priority" in query and priority >= HIGH_PRIORITY:
            return True
        if "low priority" in query and priority <= LOW_PRIORITY:
            return True
    return _mentions(query, client.client_name) or _mentions(query, client.group_tag)


def _has_available_slots(worker) -> bool:
    try:
        slots = strict_json_loads(worker.available_slots)
    except ValueError:
        return False
    return isinstance(slots, list) and len(slots) > 0


def _worker_matches(worker, query: str) -> bool:
    skill = _skill_term(query)
    if skill and skill in worker.skills.lower():
        return True
    if "available" in query and _has_available_slots(worker):
        return True
    return _mentions(query, worker.worker_name) or _mentions(query, worker.worker_group)


def search_records(
    query: str,
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
) -> list[SearchResult]:
    normalized = (query or "").strip().lower()
    if not normalized:
        return []

    results: list[SearchResult] = []
    plan = (
        ("task", tasks, _task_matches, TASK_CONFIDENCE),
        ("client", clients, _client_matches, CLIENT_CONFIDENCE),
        ("worker", workers, _worker_matches, WORKER_CONFIDENCE),
    )
    for kind, items, matcher, confidence in plan:
        if kind not in normalized:
            continue
        cls = record_type(kind)
        rows = [item if isinstance(item, cls) else cls.from_record(item) for item in items]
        matches = tuple(row for row in rows if matcher(row, normalized))
        if matches:
            results.append(SearchResult(entity=kind, matches=matches, confidence=confidence, query=query))
    return results
