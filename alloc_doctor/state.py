"""
Immutable application state.

``AppState`` holds one snapshot of the three collections together with the
diagnostics for that snapshot, the business rules and the priority weights.
Every transition returns a new ``AppState``; transitions that change entity
data re-run ``validate_all`` so ``validation_errors`` always matches the
collections it sits next to.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from alloc_doctor.models import (
    ENTITY_KINDS,
    BusinessRule,
    Correction,
    PriorityWeights,
    RuleRecommendation,
    ValidationError,
    normalize_field,
    record_type,
)
from alloc_doctor.validator import validate_all
from alloc_doctor.weights import DEFAULT_WEIGHTS, apply_preset, normalize

_COLLECTION_ATTR = {"client": "clients", "worker": "workers", "task": "tasks"}


@dataclass(frozen=True)
class AppState:
    clients: tuple = ()
    workers: tuple = ()
    tasks: tuple = ()
    validation_errors: tuple[ValidationError, ...] = ()
    business_rules: tuple[BusinessRule, ...] = ()
    priority_weights: PriorityWeights = field(default_factory=lambda: DEFAULT_WEIGHTS)
    strict: bool = False

    @classmethod
    def from_records(
        cls,
        *,
        clients: Iterable[Any] = (),
        workers: Iterable[Any] = (),
        tasks: Iterable[Any] = (),
        strict: bool = False,
        business_rules: Iterable[BusinessRule] = (),
        priority_weights: PriorityWeights | None = None,
    ) -> "AppState":
        state = cls(
            clients=_coerce("client", clients),
            workers=_coerce("worker", workers),
            tasks=_coerce("task", tasks),
            business_rules=tuple(business_rules),
            priority_weights=priority_weights or DEFAULT_WEIGHTS,
            strict=strict,
        )
        return state.revalidate()

    def collection(self, kind: str) -> tuple:
        return getattr(self, _attr_for(kind))

    def revalidate(self) -> "AppState":
        errors = validate_all(self.clients, self.workers, self.tasks, strict=self.strict)
        return replace(self, validation_errors=tuple(errors))

    # ── entity data ───────────────────────────────────────────────────────────

    def with_collection(self, kind: str, records: Iterable[Any]) -> "AppState":
        updated = replace(self, **{_attr_for(kind): _coerce(kind, records)})
        return updated.revalidate()

    def edit_cell(self, kind: str, row_index: int, field_name: str, value: Any) -> "AppState":
        rows = list(self.collection(kind))
        if not 0 <= row_index < len(rows):
            raise IndexError(f"{kind} row {row_index} out of range (0..{len(rows) - 1})")
        rows[row_index] = rows[row_index].with_field(field_name, normalize_field(field_name, value))
        return self.with_collection(kind, rows)

    def apply_correction(self, correction: Correction) -> "AppState":
        """
        Write a suggested value into the row the correction was computed for.

        The row must still carry the correction's entity id; a correction with
        no ``row`` applies only when exactly one row has that id.
        """
        rows = self.collection(correction.entity)
        if correction.row is not None:
            index = correction.row
            if not 0 <= index < len(rows) or rows[index].entity_id != correction.id:
                raise IndexError(f"{correction.entity} row {index} no longer holds {correction.id}")
        else:
            matches = [index for index, row in enumerate(rows) if row.entity_id == correction.id]
            if len(matches) != 1:
                raise ValueError(
                    f"Correction for {correction.entity} {correction.id} matches {len(matches)} rows; "
                    "pass the row it applies to"
                )
            index = matches[0]
        return self.edit_cell(correction.entity, index, correction.field, correction.suggested_value)

    # ── business rules ────────────────────────────────────────────────────────

    def add_rule(self, rule: BusinessRule) -> "AppState":
        return replace(self, business_rules=self.business_rules + (rule,))

    def remove_rule(self, rule_id: str) -> "AppState":
        return replace(self, business_rules=tuple(rule for rule in self.business_rules if rule.id != rule_id))

    def toggle_rule(self, rule_id: str) -> "AppState":
        return replace(
            self,
            business_rules=tuple(
                replace(rule, active=not rule.active) if rule.id == rule_id else rule
                for rule in self.business_rules
            ),
        )

    def accept_recommendation(self, recommendation: RuleRecommendation) -> "AppState":
        return self.add_rule(recommendation.to_rule())

    # ── priority weights ──────────────────────────────────────────────────────

    def set_weight(self, field_name: str, value: float) -> "AppState":
        return replace(self, priority_weights=normalize(self.priority_weights, field_name, value))

    def apply_preset(self, name: str) -> "AppState":
        return replace(self, priority_weights=apply_preset(name))

    def reset_weights(self) -> "AppState":
        return replace(self, priority_weights=DEFAULT_WEIGHTS)

    # ── summaries ─────────────────────────────────────────────────────────────

    @property
    def has_data(self) -> bool:
        return bool(self.clients or self.workers or self.tasks)

    def errors_of_type(self, severity: str) -> list[ValidationError]:
        return [error for error in self.validation_errors if error.type == severity]


def _attr_for(kind: str) -> str:
    if kind not in _COLLECTION_ATTR:
        raise ValueError(f"Unknown entity kind '{kind}'. Expected one of: {', '.join(ENTITY_KINDS)}")
    return _COLLECTION_ATTR[kind]


def _coerce(kind: str, records: Iterable[Any]) -> tuple:
    cls = record_type(kind)
    return tuple(item if isinstance(item, cls) else cls.from_record(item) for item in records)
