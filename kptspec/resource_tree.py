"""The tree of resources and conditions kept by the inventory."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .condition_type import Condition, ObjectReference
from .kubeobj import KubeObject


class InventoryError(Exception):
    """Raised when the inventory cannot be walked or updated."""


class GvkKind(str, enum.Enum):
    FOR = "for"
    OWN = "own"
    WATCH = "watch"


class ResourceKind(str, enum.Enum):
    # only conditions are created for these resources
    CHILD_REMOTE_CONDITION = "remoteCondition"
    # conditions and resources are created
    CHILD_REMOTE = "remote"
    # conditions are created as true
    CHILD_LOCAL = "local"
    # an initial resource of the package that must not be deleted
    CHILD_INITIAL = "initial"


@dataclass(frozen=True)
class SdkObjectReference:
    gvk_kind: GvkKind
    ref: ObjectReference


@dataclass(frozen=True)
class GvkKindCtx:
    gvk_kind: GvkKind | None = None
    own_kind: ResourceKind | None = None
    callback: Callable[[KubeObject | None], None] | None = None


@dataclass
class ResourceCtx:
    kind_ctx: GvkKindCtx = field(default_factory=GvkKindCtx)
    existing_condition: Condition | None = None
    existing_resource: KubeObject | None = None
    new_resource: KubeObject | None = None
    failed: bool = False

    def copy(self) -> ResourceCtx:
        """Copy the context; the condition is copied, the objects are shared."""
        return dataclasses.replace(
            self,
            existing_condition=(
                dataclasses.replace(self.existing_condition)
                if self.existing_condition is not None
                else None
            ),
        )


def get_sdk_refs(
    kind: GvkKind, refs: Sequence[ObjectReference]
) -> list[SdkObjectReference]:
    """Turn a reference path into tree keys, checking its depth against the kind."""
    if not refs:
        raise InventoryError("cannot walk resource tree with empty ref")
    if len(refs) == 1:
        if kind not in (GvkKind.FOR, GvkKind.WATCH):
            raise InventoryError("refs with len 1 only allowed for for/watch")
        return [SdkObjectReference(kind, refs[0])]
    if len(refs) == 2:
        if kind is GvkKind.FOR:
            raise InventoryError("refs with len 2 only allowed for own/watch")
        return [SdkObjectReference(GvkKind.FOR, refs[0]), SdkObjectReference(kind, refs[1])]
    raise InventoryError(f"refs with len > 2, got {len(refs)}")


@dataclass
class ResourceNode:
    ctx: ResourceCtx = field(default_factory=ResourceCtx)
    children: dict[SdkObjectReference, ResourceNode] = field(default_factory=dict)

    def set(
        self,
        refs: Sequence[SdkObjectReference],
        kind_ctx: GvkKindCtx,
        item: Any,
        new_resource: bool,
        failed: bool,
    ) -> None:
        """Store a condition or object at the path, creating nodes as needed."""
        if not refs:
            self.ctx.failed = failed
            if isinstance(item, Condition):
                self.ctx.existing_condition = dataclasses.replace(item)
            elif isinstance(item, KubeObject):
                self.ctx.kind_ctx = kind_ctx
                if new_resource:
                    self.ctx.new_resource = item
                else:
                    self.ctx.existing_resource = item
            else:
                raise InventoryError(f"unsupported object: {item!r}")
            return
        child = self.children.setdefault(refs[0], ResourceNode())
        child.set(refs[1:], kind_ctx, item, new_resource, failed)

    def delete(self, refs: Sequence[SdkObjectReference]) -> None:
        """Clear the existing condition at the path."""
        if not refs:
            self.ctx.existing_condition = None
            return
        child = self.children.get(refs[0])
        if child is None:
            raise InventoryError("not found")
        child.delete(refs[1:])

    def get(self, refs: Sequence[SdkObjectReference]) -> dict[ObjectReference, ResourceCtx]:
        """Return copies of the contexts at the path; an empty ref matches every child of its kind."""
        if not refs:
            if not self.children:
                return {ObjectReference(): self.ctx.copy()}
            return {key.ref: node.ctx.copy() for key, node in self.children.items()}
        head = refs[0]
        if head.ref.is_empty():
            return {
                key.ref: node.ctx.copy()
                for key, node in self.children.items()
                if key.gvk_kind == head.gvk_kind
            }
        child = self.children.get(head)
        if child is None:
            return {}
        return child.get(refs[1:])

    def list(self) -> list[list[SdkObjectReference]]:
        """List the paths of the first two levels of the tree."""
        entries: list[list[SdkObjectReference]] = []
        for parent, node in self.children.items():
            entries.append([parent])
            entries.extend([parent, key] for key in node.children)
        return entries