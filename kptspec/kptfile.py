"""Readiness gates and conditions on a Kptfile."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from .condition_type import Condition, ConditionStatus, ObjectReference, get_condition_type
from .kubeobj import KubeObject

INFO_FIELD = "info"
READINESS_GATES_FIELD = "readinessGates"
STATUS_FIELD = "status"
CONDITIONS_FIELD = "conditions"


@dataclass(frozen=True)
class ReadinessGate:
    condition_type: str


@dataclass
class KptFile:
    """Accessors for the info and status sections of a Kptfile object."""

    kptfile: KubeObject

    def get_readiness_gates(self) -> list[ReadinessGate]:
        gates = self.kptfile.get_nested(INFO_FIELD, READINESS_GATES_FIELD)
        if not isinstance(gates, list):
            return []
        return [
            ReadinessGate(str(g.get("conditionType") or ""))
            for g in gates
            if isinstance(g, dict)
        ]

    def has_readiness_gate(self, condition_type: str) -> bool:
        return any(g.condition_type == condition_type for g in self.get_readiness_gates())

    def set_readiness_gates(self, *condition_types: str) -> None:
        """Add readiness gates that are not present yet."""
        gates = self.get_readiness_gates()
        for condition_type in condition_types:
            if not any(g.condition_type == condition_type for g in gates):
                gates.append(ReadinessGate(condition_type))
        self.kptfile.set_nested(
            [{"conditionType": g.condition_type} for g in gates],
            INFO_FIELD,
            READINESS_GATES_FIELD,
        )

    def get_conditions(self) -> list[Condition]:
        """Return a copy of the package conditions."""
        conditions = self.kptfile.get_nested(STATUS_FIELD, CONDITIONS_FIELD)
        if not isinstance(conditions, list):
            return []
        return [Condition.from_dict(c) for c in conditions if isinstance(c, dict)]

    def get_condition(self, condition_type: str) -> Condition | None:
        return next((c for c in self.get_conditions() if c.type == condition_type), None)

    def _write_conditions(self, conditions: list[Condition]) -> None:
        self.kptfile.set_nested(
            [c.to_dict() for c in conditions], STATUS_FIELD, CONDITIONS_FIELD
        )

    def set_conditions(self, *conditions: Condition) -> None:
        """Overwrite conditions of the same type, append the others."""
        existing = self.get_conditions()
        for new in conditions:
            for index, old in enumerate(existing):
                if old.type == new.type:
                    existing[index] = dataclasses.replace(new)
                    break
            else:
                existing.append(dataclasses.replace(new))
        self._write_conditions(existing)

    def delete_condition(self, condition_type: str) -> None:
        self._write_conditions(
            [c for c in self.get_conditions() if c.type != condition_type]
        )

    def delete_condition_ref(self, ref: ObjectReference) -> None:
        self.delete_condition(get_condition_type(ref))

    def set_condition_ref_failed(self, ref: ObjectReference, message: str) -> None:
        """Mark the reference's condition False with a message, creating it if needed."""
        condition_type = get_condition_type(ref)
        condition = self.get_condition(condition_type)
        if condition is not None:
            condition.message = message
            condition.status = ConditionStatus.FALSE
            self.set_conditions(condition)
            return
        self.set_conditions(
            Condition(type=condition_type, status=ConditionStatus.FALSE, message=message)
        )

    def is_ready(self, prefix: str) -> bool:
        """True when conditions with the prefix exist and none of them is False."""
        found = False
        for condition in self.get_conditions():
            if condition.type.startswith(prefix):
                found = True
                if condition.status is ConditionStatus.FALSE:
                    return False
        return found