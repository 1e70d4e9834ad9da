"""Condition and resource updates applied to the Kptfile, resource list and inventory."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from .condition_type import Condition, ConditionStatus, ObjectReference, get_condition_by_ref
from .inventory import SPECIALIZER_DELETE, DiffObject, refs_string
from .resource_tree import GvkKind, GvkKindCtx, InventoryError, ResourceKind

if TYPE_CHECKING:
    from .inventory import Config, Inventory
    from .kptfile import KptFile
    from .kubeobj import KubeObject, ResourceList

logger = logging.getLogger(__name__)

RECOVERABLE_ERRORS = (InventoryError, ValueError, TypeError)


def _valid_refs(refs: Sequence[ObjectReference]) -> bool:
    if not 1 <= len(refs) <= 2:
        return False
    return all(r.api_version and r.kind and r.name for r in refs)


def _raise_joined(errors: list[Exception]) -> None:
    if errors:
        raise InventoryError("\n".join(str(e) for e in errors))


class UpdatesMixin:
    """Updates of conditions and child objects.

    The host class provides ``config``, ``inventory``, ``rl``, ``kptfile`` and ``debug``.
    """

    config: Config
    inventory: Inventory
    rl: ResourceList
    kptfile: KptFile
    debug: bool

    def _report(self, what: str, refs: Sequence[ObjectReference], exc: Exception) -> None:
        logger.info("%s objref: %s, err: %s", what, refs_string(*refs), exc)
        self.rl.add_error(exc)

    def _delete_child_object(
        self,
        kind: GvkKind,
        refs: Sequence[ObjectReference],
        obj: DiffObject,
        message: str,
    ) -> None:
        """Mark a child for deletion: set its condition False and the delete annotation."""
        condition = get_condition_by_ref(refs, message, ConditionStatus.FALSE, None)
        errors: list[Exception] = []
        try:
            self.kptfile.set_conditions(condition)
        except RECOVERABLE_ERRORS as exc:
            errors.append(exc)
            self._report("cannot set condition in kptfile", refs, exc)
        try:
            if obj.obj is None:
                raise InventoryError("no object to annotate")
            obj.obj.set_annotation(SPECIALIZER_DELETE, "true")
        except RECOVERABLE_ERRORS as exc:
            errors.append(exc)
            self._report("cannot set annotation on obj", refs, exc)
        try:
            self._set_object_in_resource_list(GvkKind.OWN, refs, obj)
        except RECOVERABLE_ERRORS as exc:
            errors.append(exc)
            self._report("cannot set resource in resourceList", refs, exc)
        _raise_joined(errors)

    def _upsert_child_object(
        self,
        kind: GvkKind,
        refs: Sequence[ObjectReference],
        obj: DiffObject,
        existing: Condition | None,
        message: str,
        status: ConditionStatus,
        always_update: bool,
    ) -> None:
        """Set the condition of an object and, where due, put the object in the resource list."""
        condition = get_condition_by_ref(refs, message, status, existing)
        # an existing condition may carry data set by another function, e.g. the reason
        if existing is not None:
            condition = dataclasses.replace(existing, message=message, status=status)
        errors: list[Exception] = []
        try:
            self.kptfile.set_conditions(condition)
        except RECOVERABLE_ERRORS as exc:
            errors.append(exc)
            self._report("cannot set condition in kptfile", refs, exc)
        if always_update:
            target_kind: GvkKind | None = kind
        elif obj.own_kind in (ResourceKind.CHILD_REMOTE, ResourceKind.CHILD_LOCAL):
            target_kind = GvkKind.OWN
        else:
            target_kind = None
        if target_kind is not None:
            try:
                self._set_object_in_resource_list(target_kind, refs, obj)
            except RECOVERABLE_ERRORS as exc:
                errors.append(exc)
                self._report("cannot set resource in resourceList", refs, exc)
        _raise_joined(errors)

    def _delete_condition(self, kind: GvkKind, refs: Sequence[ObjectReference]) -> None:
        """Delete the condition from the Kptfile and the inventory."""
        condition = get_condition_by_ref(refs, "", ConditionStatus.FALSE, None)
        errors: list[Exception] = []
        try:
            self.kptfile.delete_condition(condition.type)
        except RECOVERABLE_ERRORS as exc:
            errors.append(exc)
            self._report("cannot delete condition from Kptfile", refs, exc)
        try:
            self.inventory.delete(GvkKindCtx(gvk_kind=kind), list(refs))
        except RECOVERABLE_ERRORS as exc:
            errors.append(exc)
            self._report("cannot delete condition from inventory", refs, exc)
        _raise_joined(errors)

    def _set_condition(
        self,
        kind: GvkKind,
        refs: Sequence[ObjectReference],
        message: str,
        status: ConditionStatus,
        failed: bool,
    ) -> None:
        """Set the condition in the Kptfile and the inventory."""
        condition = get_condition_by_ref(refs, message, status, None)
        errors: list[Exception] = []
        try:
            self.kptfile.set_conditions(condition)
        except RECOVERABLE_ERRORS as exc:
            errors.append(exc)
            self._report("cannot set condition in Kptfile", refs, exc)
        try:
            self.inventory.set(GvkKindCtx(gvk_kind=kind), list(refs), condition, False, failed)
        except RECOVERABLE_ERRORS as exc:
            errors.append(exc)
            self._report("cannot set condition in inventory", refs, exc)
        _raise_joined(errors)

    def _set_object_in_resource_list(
        self, kind: GvkKind, refs: Sequence[ObjectReference], obj: DiffObject
    ) -> None:
        """Upsert the object in the resource list and record it as existing in the inventory."""
        if self.debug:
            logger.info("setObjectInResourceList: kind: %s, refs: %s, obj: %s", kind, list(refs), obj.obj)
        if not _valid_refs(refs):
            raise InventoryError(
                f"cannot set resource in resourcelist as the object has no valid refs: {list(refs)}"
            )
        if obj.obj is None:
            raise InventoryError("cannot set resource in resourcelist without an object")
        self.rl.upsert(obj.obj)
        try:
            self.inventory.set(GvkKindCtx(gvk_kind=kind), list(refs), obj.obj, False, False)
        except InventoryError as exc:
            logger.info("error updating stage1 resource to the inventory: %s", exc)
            self.rl.add_error(exc)
            raise

    def _delete_obj_from_resource_list(self, obj: KubeObject) -> None:
        self.rl.remove(obj)