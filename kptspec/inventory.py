"""Inventory of the for, own and watch resources handled by a function."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .condition_type import Condition, ConditionStatus, ObjectReference, get_condition_type
from .kubeobj import KubeObject
from .resource_tree import (
    GvkKind,
    GvkKindCtx,
    InventoryError,
    ResourceCtx,
    ResourceKind,
    ResourceNode,
    SdkObjectReference,
    get_sdk_refs,
)

logger = logging.getLogger(__name__)

SPECIALIZER_OWNER = "specializer.nephio.org/owner"
SPECIALIZER_DELETE = "specializer.nephio.org/delete"
SPECIALIZER_DEBUG = "specializer.nephio.org/debug"
SPECIALIZER_FOR = "specializer.nephio.org/for"
SPECIALIZER_VLAN_CLAIM_NAME = "specializer.nephio.org/vlanClaimName"
SPECIALIZER_NAMESPACE = "specializer.nephio.org/namespace"

WatchCallback = Callable[[KubeObject | None], None]
PopulateOwnResourcesFn = Callable[[KubeObject], list[KubeObject]]
UpdateResourceFn = Callable[[KubeObject | None, list[KubeObject]], list[KubeObject]]

_WILDCARD = ObjectReference(api_version="*", kind="*")


def update_resource_fn_nop(for_obj: KubeObject | None, objs: list[KubeObject]) -> list[KubeObject]:
    """An update function that produces no objects, whatever it is given."""
    return list(objs)[:0]


@dataclass
class Config:
    """What a function handles: its for resource, owned children and watches."""

    for_ref: ObjectReference = field(default_factory=ObjectReference)
    owns: Mapping[ObjectReference, ResourceKind] = field(default_factory=dict)
    watch: Mapping[ObjectReference, WatchCallback | None] = field(default_factory=dict)
    populate_own_resources_fn: PopulateOwnResourcesFn | None = None
    update_resource_fn: UpdateResourceFn | None = None
    root: bool = False


@dataclass
class DiffObject:
    ref: ObjectReference
    obj: KubeObject | None = None
    own_kind: ResourceKind | None = None


@dataclass
class InventoryDiff:
    delete_for_condition: bool = False
    update_for_condition: bool = False
    delete_objs: list[DiffObject] = field(default_factory=list)
    update_objs: list[DiffObject] = field(default_factory=list)
    create_objs: list[DiffObject] = field(default_factory=list)
    delete_conditions: list[DiffObject] = field(default_factory=list)
    create_conditions: list[DiffObject] = field(default_factory=list)
    update_delete_annotations: list[DiffObject] = field(default_factory=list)


@dataclass
class ReadyCtx:
    ready: bool = True
    failed: bool = False
    for_obj: KubeObject | None = None
    for_condition: Condition | None = None
    owns: dict[ObjectReference, KubeObject] = field(default_factory=dict)
    watches: dict[ObjectReference, KubeObject] = field(default_factory=dict)


def _validate_gvk_ref(ref: ObjectReference) -> None:
    if not ref.api_version or not ref.kind:
        raise InventoryError(f"invalid gvk reference: {ref}")


def _is_wildcard_ref(ref: ObjectReference) -> bool:
    return ref.api_version == "*" and ref.kind == "*"


def refs_string(*refs: ObjectReference) -> str:
    return ", ".join(get_condition_type(r) for r in refs)


def _spec(obj: KubeObject) -> dict[str, Any]:
    spec = obj.get_nested("spec")
    if spec is None:
        raise InventoryError("cannot get spec from obj, not found")
    if not isinstance(spec, dict):
        raise InventoryError("cannot get spec from obj, spec is not a mapping")
    return spec


def _for_needs_update(for_ctx: ResourceCtx) -> bool:
    cond = for_ctx.existing_condition
    return cond is None or cond.status is not ConditionStatus.FALSE


class Inventory:
    """Holds the configured GVKs and the resources and conditions found at runtime."""

    def __init__(self, config: Config) -> None:
        self._lock = threading.RLock()
        self._gvk_resources: dict[ObjectReference, GvkKindCtx] = {}
        self._resources = ResourceNode()
        self.ready = True
        self.debug = False
        self._initialize(config)

    def _initialize(self, config: Config) -> None:
        _validate_gvk_ref(config.for_ref)
        if _is_wildcard_ref(config.for_ref):
            raise InventoryError("no wildcard refs allowed in for reference")
        self.add_gvk_object_reference(GvkKindCtx(gvk_kind=GvkKind.FOR), config.for_ref)
        for ref, own_kind in config.owns.items():
            _validate_gvk_ref(ref)
            if _is_wildcard_ref(ref) and own_kind is not ResourceKind.CHILD_INITIAL:
                raise InventoryError("only childLocal wildcard refs allowed in own reference")
            self.add_gvk_object_reference(GvkKindCtx(gvk_kind=GvkKind.OWN, own_kind=own_kind), ref)
        for ref, callback in config.watch.items():
            _validate_gvk_ref(ref)
            if _is_wildcard_ref(ref):
                raise InventoryError("no wildcard refs allowed in watch resource reference")
            self.add_gvk_object_reference(GvkKindCtx(gvk_kind=GvkKind.WATCH, callback=callback), ref)
        if config.update_resource_fn is None:
            raise InventoryError("a function always needs a GenerateResource function")

    def add_gvk_object_reference(self, kind_ctx: GvkKindCtx, ref: ObjectReference) -> None:
        with self._lock:
            key = ref.gvk()
            existing = self._gvk_resources.get(key)
            if existing is not None:
                kind = existing.gvk_kind.value if existing.gvk_kind else ""
                raise InventoryError(f"another resource with a different kind {kind} already exists")
            self._gvk_resources[key] = kind_ctx

    def is_gvk_match(self, ref: ObjectReference | None) -> GvkKindCtx | None:
        """Return the kind context for the reference's GVK, falling back to a wildcard."""
        if ref is None:
            return None
        with self._lock:
            found = self._gvk_resources.get(ref.gvk())
            if found is None:
                found = self._gvk_resources.get(_WILDCARD)
            return found

    def set(
        self,
        kind_ctx: GvkKindCtx,
        refs: Sequence[ObjectReference],
        item: Any,
        new_resource: bool,
        failed: bool,
    ) -> None:
        with self._lock:
            sdk_refs = get_sdk_refs(kind_ctx.gvk_kind, refs)
            self._resources.set(sdk_refs, kind_ctx, item, new_resource, failed)

    def delete(self, kind_ctx: GvkKindCtx, refs: Sequence[ObjectReference]) -> None:
        with self._lock:
            sdk_refs = get_sdk_refs(kind_ctx.gvk_kind, refs)
            self._resources.delete(sdk_refs)

    def get(self, kind: GvkKind, refs: Sequence[ObjectReference]) -> dict[ObjectReference, ResourceCtx]:
        with self._lock:
            try:
                sdk_refs = get_sdk_refs(kind, refs)
            except InventoryError as exc:
                logger.info("cannot get sdkrefs: %s", exc)
                return {}
            return self._resources.get(sdk_refs)

    def list(self) -> list[list[SdkObjectReference]]:
        with self._lock:
            return self._resources.list()

    def set_debug(self) -> None:
        self.debug = True

    def diff(self) -> dict[ObjectReference, InventoryDiff]:
        """Compare existing resources and conditions with the newly generated ones."""
        with self._lock:
            diff_map: dict[ObjectReference, InventoryDiff] = {}
            for for_ref, for_ctx in self.get(GvkKind.FOR, [ObjectReference()]).items():
                d = diff_map[for_ref] = InventoryDiff()
                owns = self.get(GvkKind.OWN, [for_ref, ObjectReference()])
                if for_ctx.existing_resource is None:
                    self._diff_missing_for(d, for_ref, owns)
                else:
                    self._diff_present_for(d, for_ref, for_ctx, owns)
            return diff_map

    def _diff_missing_for(
        self, d: InventoryDiff, for_ref: ObjectReference, owns: dict[ObjectReference, ResourceCtx]
    ) -> None:
        for own_ref, ctx in owns.items():
            if self.debug:
                logger.info("delete resource and conditions: objRef: %s", refs_string(for_ref, own_ref))
            d.delete_for_condition = True
            own_kind = ctx.kind_ctx.own_kind
            if ctx.existing_condition is not None:
                d.delete_conditions.append(DiffObject(ref=own_ref, own_kind=own_kind))
            if ctx.existing_resource is not None and own_kind is not ResourceKind.CHILD_INITIAL:
                d.delete_objs.append(DiffObject(own_ref, ctx.existing_resource, own_kind))

    def _diff_present_for(
        self,
        d: InventoryDiff,
        for_ref: ObjectReference,
        for_ctx: ResourceCtx,
        owns: dict[ObjectReference, ResourceCtx],
    ) -> None:
        kept = (ResourceKind.CHILD_INITIAL, ResourceKind.CHILD_LOCAL)
        for own_ref, ctx in owns.items():
            own_kind = ctx.kind_ctx.own_kind
            existing, new, cond = ctx.existing_resource, ctx.new_resource, ctx.existing_condition
            if self.debug:
                logger.info(
                    "diff: objRef: %s, existingResource: %s, newResource: %s, existing condition: %s",
                    refs_string(for_ref, own_ref), existing is not None, new is not None, cond is not None,
                )
            # conditions
            if new is None and cond is None:
                if _for_needs_update(for_ctx):
                    d.update_for_condition = True
                if self.ready:
                    d.create_conditions.append(DiffObject(ref=own_ref, own_kind=own_kind))
            elif new is None:
                if _for_needs_update(for_ctx):
                    d.update_for_condition = True
                if own_kind not in kept:
                    d.delete_conditions.append(DiffObject(ref=own_ref, own_kind=own_kind))
            elif cond is None:
                if _for_needs_update(for_ctx):
                    d.update_for_condition = True
                d.create_conditions.append(DiffObject(own_ref, new, own_kind))

            # resources
            if existing is None and new is not None:
                if _for_needs_update(for_ctx):
                    d.update_for_condition = True
                d.create_objs.append(DiffObject(own_ref, new, own_kind))
            elif existing is not None and new is None:
                if _for_needs_update(for_ctx):
                    d.update_for_condition = True
                if own_kind not in kept:
                    d.delete_objs.append(DiffObject(own_ref, existing, own_kind))
            elif existing is not None and new is not None:
                if own_kind is ResourceKind.CHILD_REMOTE_CONDITION:
                    continue
                try:
                    existing_spec = _spec(existing)
                    new_spec = _spec(new)
                except InventoryError as exc:
                    logger.info("cannot get spec from obj, err: %s", exc)
                    continue
                if existing_spec != new_spec:
                    if _for_needs_update(for_ctx):
                        d.update_for_condition = True
                    d.update_objs.append(DiffObject(own_ref, new, own_kind))
                # the for object was deleted and recreated: clear the delete annotation
                if SPECIALIZER_DELETE in existing.annotations:
                    if _for_needs_update(for_ctx):
                        d.update_for_condition = True
                    d.update_delete_annotations.append(DiffObject(own_ref, new, own_kind))

    def get_ready_map(self) -> dict[ObjectReference, ReadyCtx]:
        """Readiness of each for resource, judged from its owned and watched children."""
        with self._lock:
            ready_map: dict[ObjectReference, ReadyCtx] = {}
            for for_ref, for_ctx in self.get(GvkKind.FOR, [ObjectReference()]).items():
                rc = ready_map[for_ref] = ReadyCtx(
                    ready=True,
                    failed=for_ctx.failed,
                    for_obj=for_ctx.existing_resource,
                    for_condition=for_ctx.existing_condition,
                )
                for ref, ctx in self.get(GvkKind.OWN, [for_ref, ObjectReference()]).items():
                    if self.debug:
                        logger.info("getReadyMap: own ref: %s, condition %s", ref, ctx.existing_condition)
                    cond = ctx.existing_condition
                    if cond is None or cond.status is ConditionStatus.FALSE:
                        rc.ready = False
                    if ctx.existing_resource is not None:
                        rc.owns[ref] = ctx.existing_resource
                for ref, ctx in self.get(GvkKind.WATCH, [for_ref, ObjectReference()]).items():
                    if self.debug:
                        logger.info("getReadyMap: watch ref: %s, condition %s", ref, ctx.existing_condition)
                    cond = ctx.existing_condition
                    if cond is None or cond.status is ConditionStatus.FALSE:
                        # a watch equal to the for's owner does not block readiness
                        for_cond = for_ctx.existing_condition
                        if for_cond is not None and get_condition_type(ref) != for_cond.reason:
                            rc.ready = False
                    if ctx.existing_resource is not None:
                        rc.watches[ref] = ctx.existing_resource
            return ready_map