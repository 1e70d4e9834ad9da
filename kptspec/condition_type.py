"""Object references, conditions and condition type strings."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ObjectReference:
    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""

    def gvk(self) -> ObjectReference:
        """Return the reference reduced to apiVersion and kind."""
        return ObjectReference(api_version=self.api_version, kind=self.kind)

    def is_empty(self) -> bool:
        return not (self.api_version or self.kind or self.name or self.namespace)


class ConditionStatus(str, enum.Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


@dataclass
class Condition:
    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, str]:
        out = {"type": self.type, "status": self.status.value}
        if self.reason:
            out["reason"] = self.reason
        if self.message:
            out["message"] = self.message
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Condition:
        status = data.get("status", ConditionStatus.UNKNOWN.value)
        if isinstance(status, bool):
            status = "True" if status else "False"
        return cls(
            type=str(data.get("type") or ""),
            status=ConditionStatus(str(status)),
            reason=str(data.get("reason") or ""),
            message=str(data.get("message") or ""),
        )


def _group_version(api_version: str) -> str | None:
    """Normalise an apiVersion; None when it cannot be parsed."""
    if not api_version or api_version == "/":
        return ""
    parts = api_version.split("/")
    if len(parts) == 1:
        return api_version
    if len(parts) == 2:
        group, version = parts
        return f"{group}/{version}" if group else version
    return None


def get_condition_type(ref: ObjectReference) -> str:
    """Build a condition type from apiVersion, kind and name, skipping empty parts."""
    parts = []
    if ref.api_version:
        group_version = _group_version(ref.api_version)
        if group_version:
            parts.append(group_version)
    if ref.kind:
        parts.append(ref.kind)
    if ref.name:
        parts.append(ref.name)
    return ".".join(parts)


def get_gvkn_from_condition_type(condition_type: str) -> ObjectReference:
    """Parse 'group/version.kind.name'; an empty reference when it does not fit."""
    split = condition_type.split("/")
    group = ""
    vkn = condition_type
    if len(split) > 1:
        group, vkn = split[0], split[1]
    pieces = vkn.split(".")
    if len(pieces) == 3:
        version, kind, name = pieces
        return ObjectReference(api_version=f"{group}/{version}", kind=kind, name=name)
    return ObjectReference()


def _refs_valid(refs: Sequence[ObjectReference]) -> bool:
    if not 1 <= len(refs) <= 2:
        return False
    return all(r.api_version and r.kind and r.name for r in refs)


def get_condition_by_ref(
    refs: Sequence[ObjectReference],
    message: str,
    status: ConditionStatus,
    existing: Condition | None = None,
) -> Condition:
    """Build the condition for a [for] or [for, child] reference path."""
    if not _refs_valid(refs):
        raise ValueError(
            f"cannot set resource in resource list as the object has no valid refs: {list(refs)}"
        )
    condition_type = get_condition_type(refs[0])
    reason = ""
    if len(refs) > 1:
        condition_type = get_condition_type(refs[1])
        reason = get_condition_type(refs[0])
    return Condition(type=condition_type, status=status, reason=reason, message=message)