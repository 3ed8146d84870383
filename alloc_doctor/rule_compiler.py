"""
Phrase-to-rule translation.

``convert_to_rule`` walks an ordered table of rule categories. The first
category whose keywords appear in the text decides the outcome: its pattern
either yields a BusinessRule or the text is reported as not understood
(``None``). Later categories are not consulted once one has matched.
"""

from __future__ import annotations

import hashlib
import re
from typing import Callable

from alloc_doctor.models import BusinessRule

TASK_PHRASE_RE = re.compile(r"tasks?\s*([a-zA-Z0-9,\s-]+)", re.IGNORECASE)
TASK_ID_RE = re.compile(r"\b[A-Za-z]+-?\d+\b")
MIN_CORUN_TASKS = 2
LOAD_LIMIT_RE = re.compile(r"(\d+).*?tasks?", re.IGNORECASE)
PHASE_WINDOW_RE = re.compile(r"phases?\s*(\d+(?:-\d+)?|\[\d+(?:,\d+)*\])", re.IGNORECASE)

CORUN_KEYWORDS = ("together", "same time", "co-run")
LOAD_LIMIT_KEYWORDS = ("limit", "maximum", "no more than")
PHASE_KEYWORDS = ("only", "must")


def _rule_id(prefix: str, text: str) -> str:
    digest = hashlib.sha1(" ".join(text.lower().split()).encode("utf-8")).hexdigest()[:10]
    return f"{prefix}-{digest}"


def extract_task_ids(text: str) -> tuple[list[str], str | None]:
    """
    Task IDs named after the word "task"/"tasks", in text order.

    The phrase following "task(s)" is captured whole (it runs to the end of
    the alphanumeric stretch, so it also swallows words like "must run
    together"); only ID-shaped tokens from it are returned. IDs are letters
    followed by digits, with an optional hyphen between them (``T001``, ``T-001``).
    """
    match = TASK_PHRASE_RE.search(text)
    if not match:
        return [], None
    phrase = match.group(1).strip()
    return TASK_ID_RE.findall(phrase), phrase


def _corun_rule(text: str) -> BusinessRule | None:
    task_ids, phrase = extract_task_ids(text)
    task_ids = list(dict.fromkeys(task_ids))
    if len(task_ids) < MIN_CORUN_TASKS:
        return None
    return BusinessRule(
        id=_rule_id("corun", text),
        type="coRun",
        name="Co-run Tasks",
        description=f"Tasks {', '.join(task_ids)} must run together",
        parameters={"tasks": task_ids, "phrase": phrase},
        priority=1,
        active=True,
    )


def _load_limit_rule(text: str) -> BusinessRule | None:
    match = LOAD_LIMIT_RE.search(text)
    if not match:
        return None
    max_tasks = int(match.group(1))
    return BusinessRule(
        id=_rule_id("loadlimit", text),
        type="loadLimit",
        name="Load Limit",
        description=f"Maximum {max_tasks} tasks per phase",
        parameters={"maxSlotsPerPhase": max_tasks},
        priority=1,
        active=True,
    )


def _phase_window_rule(text: str) -> BusinessRule | None:
    match = PHASE_WINDOW_RE.search(text)
    if not match:
        return None
    phase_spec = match.group(1)
    return BusinessRule(
        id=_rule_id("phasewindow", text),
        type="phaseWindow",
        name="Phase Window",
        description=f"Restrict to phases {phase_spec}",
        parameters={"allowedPhases": phase_spec},
        priority=1,
        active=True,
    )


def _is_corun(lowered: str) -> bool:
    return any(keyword in lowered for keyword in CORUN_KEYWORDS)


def _is_load_limit(lowered: str) -> bool:
    return any(keyword in lowered for keyword in LOAD_LIMIT_KEYWORDS)


def _is_phase_window(lowered: str) -> bool:
    return "phase" in lowered and any(keyword in lowered for keyword in PHASE_KEYWORDS)


RULE_PATTERNS: tuple[tuple[str, Callable[[str], bool], Callable[[str], BusinessRule | None]], ...] = (
    ("coRun", _is_corun, _corun_rule),
    ("loadLimit", _is_load_limit, _load_limit_rule),
    ("phaseWindow", _is_phase_window, _phase_window_rule),
)


def match_category(text: str) -> str | None:
    lowered = (text or "").lower()
    for category, keywords_match, _ in RULE_PATTERNS:
        if keywords_match(lowered):
            return category
    return None


def convert_to_rule(text: str) -> BusinessRule | None:
    """Translate one sentence into a BusinessRule, or None when not understood."""
    if not text or not text.strip():
        return None
    lowered = text.lower()
    for _, keywords_match, build in RULE_PATTERNS:
        if keywords_match(lowered):
            return build(text)
    return None
