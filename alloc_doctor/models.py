"""
Entity records and value types shared by every alloc-doctor component.

Records are frozen snapshots. Edits go through ``dataclasses.replace`` (see
``state.py``) so a validation run always sees one consistent version of the
three collections.

Header-named dicts (``{"ClientID": ..., "PriorityLevel": ...}``) are the
boundary format: loaders produce them, exporters write them, and
``from_record`` / ``to_record`` translate to the snake_case attributes used
in code.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar

ENTITY_KINDS = ("client", "worker", "task")
SEVERITIES = ("error", "warning")
RULE_TYPES = (
    "coRun",
    "slotRestriction",
    "loadLimit",
    "phaseWindow",
    "patternMatch",
    "precedenceOverride",
)

CLIENT_HEADERS = ["ClientID", "ClientName", "PriorityLevel", "RequestedTaskIDs", "GroupTag", "AttributesJSON"]
WORKER_HEADERS = [
    "WorkerID",
    "WorkerName",
    "Skills",
    "AvailableSlots",
    "MaxLoadPerPhase",
    "WorkerGroup",
    "QualificationLevel",
]
TASK_HEADERS = ["TaskID", "TaskName", "Category", "Duration", "RequiredSkills", "PreferredPhases", "MaxConcurrent"]

HEADERS_BY_KIND = {
    "client": CLIENT_HEADERS,
    "worker": WORKER_HEADERS,
    "task": TASK_HEADERS,
}
ID_FIELD_BY_KIND = {"client": "ClientID", "worker": "WorkerID", "task": "TaskID"}
NUMERIC_FIELDS = {"PriorityLevel", "Duration", "MaxLoadPerPhase", "MaxConcurrent", "QualificationLevel"}

_RANGE_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


# ══════════════════════════════════════════════════════════════════════════════
# VALUE HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def split_list(value: Any) -> list[str]:
    """Comma-split a tag/reference list, trimming items and dropping empties."""
    if is_blank(value):
        return []
    return [item.strip() for item in str(value).split(",") if item.strip()]


def unique_in_order(items: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not (
        isinstance(value, float) and math.isnan(value)
    )


def as_number(value: Any) -> int | float | None:
    """Return a numeric value, parsing numeric strings; None when not a number."""
    if is_number(value):
        return value
    if isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def _reject_constant(token: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {token}")


def strict_json_loads(text: Any) -> Any:
    """json.loads that also rejects NaN/Infinity and non-string input."""
    if isinstance(text, (list, dict)):
        return text
    if not isinstance(text, str):
        raise ValueError(f"Expected JSON text, got {type(text).__name__}")
    return json.loads(text, parse_constant=_reject_constant)


def coerce_number(value: Any) -> Any:
    """
    Turn numeric text into int/float for the numeric entity columns.

    Blank cells become None; non-numeric text is returned untouched so the
    validator can report it instead of the loader hiding it.
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    number = as_number(value)
    if number is None:
        return value
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _json_list_text(items: list[Any]) -> str:
    return json.dumps(items, separators=(",", ":"))


def _token_value(token: str) -> Any:
    try:
        return int(token)
    except ValueError:
        return token


def normalize_slots(value: Any) -> Any:
    """JSON text stays as written; a plain comma list becomes a JSON array string."""
    if isinstance(value, (list, tuple)):
        return _json_list_text(list(value))
    if is_blank(value):
        return ""
    text = str(value)
    try:
        strict_json_loads(text)
        return text
    except ValueError:
        return _json_list_text([_token_value(token.strip()) for token in text.split(",")])


def normalize_phases(value: Any) -> Any:
    """Expand ``"1-3"`` ranges and comma lists into JSON array strings."""
    if isinstance(value, (list, tuple)):
        return _json_list_text(list(value))
    if is_blank(value):
        return ""
    text = str(value)
    match = _RANGE_RE.match(text)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        return _json_list_text(list(range(start, end + 1)))
    try:
        strict_json_loads(text)
        return text
    except ValueError:
        return _json_list_text([_token_value(token.strip()) for token in text.split(",")])


def normalize_field(header: str, value: Any) -> Any:
    if header in NUMERIC_FIELDS:
        return coerce_number(value)
    if header == "AvailableSlots":
        return normalize_slots(value)
    if header == "PreferredPhases":
        return normalize_phases(value)
    if is_blank(value):
        return ""
    return value if isinstance(value, str) else str(value)


def normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    """Apply ingestion normalization to every known column of a header-named row."""
    return {key: normalize_field(key, value) for key, value in record.items()}


# ══════════════════════════════════════════════════════════════════════════════
# ENTITY RECORDS
# ══════════════════════════════════════════════════════════════════════════════

def _text(value: Any) -> str:
    if is_blank(value):
        return ""
    return value if isinstance(value, str) else str(value)


def _raw_number(value: Any) -> Any:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return value


class EntityRecord:
    KIND: ClassVar[str]
    FIELDS: ClassVar[tuple[tuple[str, str], ...]]

    @classmethod
    def from_record(cls, record: dict[str, Any]):
        known = {header for header, _ in cls.FIELDS}
        values: dict[str, Any] = {}
        for header, attr in cls.FIELDS:
            raw = record.get(header)
            values[attr] = _raw_number(raw) if header in NUMERIC_FIELDS else _text(raw)
        extras = {key: value for key, value in record.items() if key not in known}
        return cls(**values, extras=extras)

    def to_record(self, *, include_extras: bool = False) -> dict[str, Any]:
        payload = {header: getattr(self, attr) for header, attr in self.FIELDS}
        if include_extras:
            payload.update(self.extras)
        return payload

    def get(self, header: str) -> Any:
        for name, attr in self.FIELDS:
            if name == header:
                return getattr(self, attr)
        return self.extras.get(header)

    def with_field(self, header: str, value: Any):
        for name, attr in self.FIELDS:
            if name == header:
                return replace(self, **{attr: value})
        if header in self.extras:
            extras = dict(self.extras)
            extras[header] = value
            return replace(self, extras=extras)
        raise ValueError(f"Unknown {self.KIND} field: {header}")

    @property
    def entity_id(self) -> str:
        return getattr(self, self.FIELDS[0][1])


@dataclass(frozen=True)
class Client(EntityRecord):
    KIND: ClassVar[str] = "client"
    FIELDS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("ClientID", "client_id"),
        ("ClientName", "client_name"),
        ("PriorityLevel", "priority_level"),
        ("RequestedTaskIDs", "requested_task_ids"),
        ("GroupTag", "group_tag"),
        ("AttributesJSON", "attributes_json"),
    )

    client_id: str = ""
    client_name: str = ""
    priority_level: Any = None
    requested_task_ids: str = ""
    group_tag: str = ""
    attributes_json: str = ""
    extras: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Worker(EntityRecord):
    KIND: ClassVar[str] = "worker"
    FIELDS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("WorkerID", "worker_id"),
        ("WorkerName", "worker_name"),
        ("Skills", "skills"),
        ("AvailableSlots", "available_slots"),
        ("MaxLoadPerPhase", "max_load_per_phase"),
        ("WorkerGroup", "worker_group"),
        ("QualificationLevel", "qualification_level"),
    )

    worker_id: str = ""
    worker_name: str = ""
    skills: str = ""
    available_slots: str = ""
    max_load_per_phase: Any = None
    worker_group: str = ""
    qualification_level: Any = None
    extras: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Task(EntityRecord):
    KIND: ClassVar[str] = "task"
    FIELDS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("TaskID", "task_id"),
        ("TaskName", "task_name"),
        ("Category", "category"),
        ("Duration", "duration"),
        ("RequiredSkills", "required_skills"),
        ("PreferredPhases", "preferred_phases"),
        ("MaxConcurrent", "max_concurrent"),
    )

    task_id: str = ""
    task_name: str = ""
    category: str = ""
    duration: Any = None
    required_skills: str = ""
    preferred_phases: str = ""
    max_concurrent: Any = None
    extras: dict[str, Any] = field(default_factory=dict, compare=False)


RECORD_TYPES = {"client": Client, "worker": Worker, "task": Task}


def record_type(kind: str) -> type[EntityRecord]:
    try:
        return RECORD_TYPES[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind '{kind}'. Expected one of: {', '.join(ENTITY_KINDS)}") from None


def build_records(kind: str, rows: list[dict[str, Any]]) -> tuple:
    cls = record_type(kind)
    return tuple(cls.from_record(row) for row in rows)


# ══════════════════════════════════════════════════════════════════════════════
# OUTPUT VALUE TYPES
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ValidationError:
    """One diagnostic produced by the validator. A record, never raised."""

    id: str
    type: str
    message: str
    entity: str
    entity_id: str
    field: str | None = None
    suggestion: str | None = None
    check: str = ""
    row: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "entity": self.entity,
            "entityId": self.entity_id,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.suggestion is not None:
            payload["suggestion"] = self.suggestion
        payload["check"] = self.check
        if self.row is not None:
            payload["row"] = self.row
        return payload


@dataclass(frozen=True)
class BusinessRule:
    id: str
    type: str
    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)
    priority: int = 1
    active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters),
            "priority": self.priority,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "BusinessRule":
        if not isinstance(payload, dict):
            raise ValueError("Business rule must be a JSON object")
        rule_type = payload.get("type")
        if rule_type not in RULE_TYPES:
            raise ValueError(f"Unknown business rule type: {rule_type!r}")
        priority = payload.get("priority", 1)
        if isinstance(priority, bool) or not isinstance(priority, int) or not 1 <= priority <= 3:
            raise ValueError(f"Business rule priority must be 1, 2 or 3, got {priority!r}")
        parameters = payload.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise ValueError("Business rule parameters must be a JSON object")
        rule_id = payload.get("id")
        if not rule_id:
            raise ValueError("Business rule is missing an id")
        return cls(
            id=str(rule_id),
            type=rule_type,
            name=str(payload.get("name", "")),
            description=str(payload.get("description", "")),
            parameters=dict(parameters),
            priority=priority,
            active=bool(payload.get("active", True)),
        )


WEIGHT_FIELDS = (
    ("priorityLevel", "priority_level"),
    ("taskFulfillment", "task_fulfillment"),
    ("fairness", "fairness"),
    ("workloadBalance", "workload_balance"),
    ("skillMatch", "skill_match"),
    ("phasePreference", "phase_preference"),
)
_WEIGHT_ATTRS = {camel: attr for camel, attr in WEIGHT_FIELDS}
_WEIGHT_ATTRS.update({attr: attr for _, attr in WEIGHT_FIELDS})


def weight_attr(name: str) -> str:
    """Resolve a camelCase or snake_case weight name to its attribute."""
    try:
        return _WEIGHT_ATTRS[name]
    except KeyError:
        names = ", ".join(camel for camel, _ in WEIGHT_FIELDS)
        raise ValueError(f"Unknown priority weight '{name}'. Expected one of: {names}") from None


@dataclass(frozen=True)
class PriorityWeights:
    priority_level: float = 0.0
    task_fulfillment: float = 0.0
    fairness: float = 0.0
    workload_balance: float = 0.0
    skill_match: float = 0.0
    phase_preference: float = 0.0

    def total(self) -> float:
        return sum(getattr(self, attr) for _, attr in WEIGHT_FIELDS)

    def to_dict(self) -> dict[str, float]:
        return {camel: getattr(self, attr) for camel, attr in WEIGHT_FIELDS}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PriorityWeights":
        values = {}
        for key, value in payload.items():
            number = as_number(value)
            if number is None or number < 0 or not math.isfinite(number):
                raise ValueError(f"Priority weight {key} must be a finite non-negative number, got {value!r}")
            values[weight_attr(key)] = float(number)
        return cls(**values)


@dataclass(frozen=True)
class RuleRecommendation:
    id: str
    type: str
    description: str
    confidence: float
    parameters: dict[str, Any] = field(default_factory=dict)
    reasoning: str = ""

    def to_rule(self) -> BusinessRule:
        return BusinessRule(
            id=self.id,
            type=self.type,
            name=self.description,
            description=self.reasoning,
            parameters=dict(self.parameters),
            priority=1,
            active=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "confidence": self.confidence,
            "parameters": dict(self.parameters),
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class Correction:
    id: str
    entity: str
    field: str
    current_value: Any
    suggested_value: Any
    confidence: float
    reasoning: str
    # 0-based position in the collection the correction was computed from.
    row: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "id": self.id,
            "entity": self.entity,
            "field": self.field,
            "currentValue": self.current_value,
            "suggestedValue": self.suggested_value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }
        if self.row is not None:
            payload["row"] = self.row
        return payload

@dataclass(frozen=True)
class SearchResult:
    entity: str
    matches: tuple
    confidence: float
    query: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "matches": [record.to_record() for record in self.matches],
            "confidence": self.confidence,
            "query": self.query,
        }
