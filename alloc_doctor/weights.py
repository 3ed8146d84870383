"""Priority-weight normalization and named presets."""

from __future__ import annotations

import math
from dataclasses import replace

from alloc_doctor.models import WEIGHT_FIELDS, PriorityWeights, is_number, weight_attr

WEIGHT_TOLERANCE = 1e-6

DEFAULT_WEIGHTS = PriorityWeights(
    priority_level=0.30,
    task_fulfillment=0.25,
    fairness=0.20,
    workload_balance=0.15,
    skill_match=0.05,
    phase_preference=0.05,
)

PRESETS = {
    "maximize-fulfillment": {
        "name": "Maximize Fulfillment",
        "description": "Prioritize completing as many client requests as possible",
        "weights": PriorityWeights(0.15, 0.35, 0.15, 0.15, 0.15, 0.05),
    },
    "fair-distribution": {
        "name": "Fair Distribution",
        "description": "Ensure equitable resource allocation across all clients",
        "weights": PriorityWeights(0.20, 0.20, 0.30, 0.15, 0.10, 0.05),
    },
    "minimize-workload": {
        "name": "Minimize Workload",
        "description": "Focus on balancing worker capacity and preventing overload",
        "weights": PriorityWeights(0.15, 0.20, 0.15, 0.35, 0.10, 0.05),
    },
    "skill-optimization": {
        "name": "Skill Optimization",
        "description": "Prioritize optimal skill matching for better outcomes",
        "weights": PriorityWeights(0.20, 0.20, 0.15, 0.15, 0.25, 0.05),
    },
    "priority-focused": {
        "name": "Priority Focused",
        "description": "Heavily weight client priority levels",
        "weights": PriorityWeights(0.40, 0.25, 0.15, 0.10, 0.05, 0.05),
    },
}


def normalize(weights: PriorityWeights, changed_field: str, new_value: float) -> PriorityWeights:
    """
    Set one weight, then rescale all six so they sum to 1.0.

    ``changed_field`` may be camelCase (``"skillMatch"``) or snake_case.
    When every weight ends up 0 there is nothing to scale by and the record
    is returned with only the changed field applied.
    """
    attr = weight_attr(changed_field)
    if not is_number(new_value) or new_value < 0 or not math.isfinite(new_value):
        raise ValueError(f"Priority weight {changed_field} must be a finite non-negative number, got {new_value!r}")

    updated = replace(weights, **{attr: float(new_value)})
    total = updated.total()
    if not math.isfinite(total):
        raise ValueError(f"Priority weights must be finite, got a total of {total}")
    if total == 0:
        return updated
    return PriorityWeights(**{name: getattr(updated, name) / total for _, name in WEIGHT_FIELDS})


def is_normalized(weights: PriorityWeights) -> bool:
    return abs(weights.total() - 1.0) < WEIGHT_TOLERANCE


def apply_preset(name: str) -> PriorityWeights:
    try:
        return PRESETS[name]["weights"]
    except KeyError:
        raise KeyError(f"Unknown preset '{name}'. Available: {', '.join(sorted(PRESETS))}") from None


def rescale(weights: PriorityWeights) -> PriorityWeights:
    """Bring an externally supplied record back to a total of 1.0."""
    total = weights.total()
    if not math.isfinite(total):
        raise ValueError(f"Priority weights must be finite, got a total of {total}")
    if total == 0:
        return weights
    return PriorityWeights(**{name: getattr(weights, name) / total for _, name in WEIGHT_FIELDS})
