"""Filling the inventory, calling global watches and stage 2 resource updates."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping

from .condition_type import (
    Condition,
    ConditionStatus,
    ObjectReference,
    get_condition_type,
    get_gvkn_from_condition_type,
)
from .inventory import SPECIALIZER_OWNER, DiffObject, refs_string
from .kubeobj import KubeObject
from .resource_tree import GvkKind
from .updates import RECOVERABLE_ERRORS, UpdatesMixin

logger = logging.getLogger(__name__)


def _is_valid_gvk(ref: ObjectReference) -> bool:
    return bool(ref.api_version and ref.kind)


def _is_valid_gvkn(ref: ObjectReference) -> bool:
    return bool(ref.api_version and ref.kind and ref.name)


def _same_gvk(a: ObjectReference, b: ObjectReference) -> bool:
    return a.api_version == b.api_version and a.kind == b.kind


def _object_ref(obj: KubeObject) -> ObjectReference:
    return ObjectReference(api_version=obj.api_version, kind=obj.kind, name=obj.name)


class PopulateMixin(UpdatesMixin):
    """Inventory population, global watch callbacks and the stage 2 update of resources."""

    def _populate_inventory(self) -> None:
        """Record the existing conditions and resources that concern this function."""
        # The for-owner reference links watched resources owned by another
        # resource to a specific for resource; without it watches are global.
        for_owner_ref: ObjectReference | None = None
        # maps the for-owner name to the name of the for resource
        owner_names: dict[str, str] = {}

        conditions = self.kptfile.get_conditions()
        for condition in conditions:
            obj_ref = get_gvkn_from_condition_type(condition.type)
            kind_ctx = self.inventory.is_gvk_match(obj_ref)
            if kind_ctx is not None and kind_ctx.gvk_kind is GvkKind.FOR:
                owner_ref = get_gvkn_from_condition_type(condition.reason)
                if _is_valid_gvk(owner_ref):
                    for_owner_ref = owner_ref.gvk()
                    owner_names[owner_ref.name] = obj_ref.name
                    if self.debug:
                        logger.info(
                            "forOwnerRefNameMap: refKind: %s, refName: %s, forOwnRefName: %s",
                            obj_ref.kind, obj_ref.name, owner_ref.name,
                        )

        for condition in conditions:
            obj_ref = get_gvkn_from_condition_type(condition.type)
            owner_ref = get_gvkn_from_condition_type(condition.reason)
            self._populate(owner_names, for_owner_ref, obj_ref, owner_ref, dataclasses.replace(condition))

        for obj in list(self.rl.items):
            obj_ref = _object_ref(obj)
            owner_ref = get_gvkn_from_condition_type(obj.get_annotation(SPECIALIZER_OWNER))
            self._populate(owner_names, for_owner_ref, obj_ref, owner_ref, obj)

    def _populate(
        self,
        owner_names: Mapping[str, str],
        for_owner_ref: ObjectReference | None,
        obj_ref: ObjectReference,
        owner_ref: ObjectReference,
        item: Condition | KubeObject,
    ) -> None:
        """Store one condition or object in the inventory according to its GVK kind."""
        kind_ctx = self.inventory.is_gvk_match(obj_ref.gvk())
        if kind_ctx is None:
            if self.debug:
                logger.info("stage1: populate no match, ref: %s", obj_ref)
            return

        if kind_ctx.gvk_kind is GvkKind.FOR:
            if self.debug:
                logger.info("stage1: set existing object in inventory, kind %s, ref: %s", kind_ctx.gvk_kind, obj_ref)
            self.inventory.set(kind_ctx, [obj_ref], item, False, False)
            return

        if kind_ctx.gvk_kind is GvkKind.OWN:
            owner_ctx = self.inventory.is_gvk_match(owner_ref)
            if owner_ctx is None or owner_ctx.gvk_kind is not GvkKind.FOR:
                # added by another kind; with wildcards this keeps unrelated objects out
                if self.debug:
                    logger.info("stage1: populate ownkind different owner, ownerRef %s, ref: %s", owner_ref, obj_ref)
                return
            if self.debug:
                logger.info("stage1: set existing object in inventory, kind %s, ref: %s ownerRef: %s",
                            kind_ctx.gvk_kind, obj_ref, owner_ref)
            self.inventory.set(kind_ctx, [owner_ref, obj_ref], item, False, False)
            return

        if kind_ctx.gvk_kind is GvkKind.WATCH:
            if for_owner_ref is not None and (
                _same_gvk(for_owner_ref, owner_ref) or _same_gvk(for_owner_ref, obj_ref)
            ):
                # a specific watch: take the name through the owner, or through the
                # object itself when the object is of the for-owner kind
                name = owner_names.get(owner_ref.name, "")
                if _same_gvk(for_owner_ref, obj_ref):
                    name = owner_names.get(obj_ref.name, "")
                for_ref = ObjectReference(
                    api_version=self.config.for_ref.api_version,
                    kind=self.config.for_ref.kind,
                    name=name,
                )
                if self.debug:
                    logger.info("stage1: set existing object in inventory, kind %s, forRef: %s, ref: %s",
                                kind_ctx.gvk_kind, for_ref, obj_ref)
                self.inventory.set(kind_ctx, [for_ref, obj_ref], item, False, False)
            elif not _is_valid_gvkn(owner_ref):
                # a global watch; objects owned by another for are intermediate and skipped
                if self.debug:
                    logger.info("stage1: set existing object in inventory, kind %s, ref: %s",
                                kind_ctx.gvk_kind, obj_ref)
                self.inventory.set(kind_ctx, [obj_ref], item, False, False)

    def _call_global_watches(self) -> None:
        """Hand each global watch object to its callback; a failing callback makes the inventory not ready."""
        for ctx in self.inventory.get(GvkKind.WATCH, [ObjectReference()]).values():
            if self.debug:
                logger.info("stage1: global watch: %s", ctx.existing_resource)
            callback = ctx.kind_ctx.callback
            if callback is None:
                continue
            try:
                callback(ctx.existing_resource)
            except Exception as exc:
                if self.debug:
                    logger.info("stage1: global watch returned an error %s", exc)
                self.inventory.ready = False
                raise

    def _update_resources(self) -> None:
        """Stage 2: let the function update ready for resources and store what it returns."""
        if self.debug:
            logger.info("updateResource isReady: %s", self.inventory.ready)
        ready_map = self.inventory.get_ready_map()
        if not self.inventory.ready:
            for ready_ctx in ready_map.values():
                if ready_ctx.for_obj is not None and not self.config.owns:
                    self._delete_obj_from_resource_list(ready_ctx.for_obj)
            return

        for for_ref, ready_ctx in ready_map.items():
            if self.debug:
                logger.info("updateResource readyMap: objRef %s, readyCtx: %s", refs_string(for_ref), ready_ctx)
            if not ready_ctx.ready or ready_ctx.failed:
                continue
            if self.config.update_resource_fn is None:
                continue
            objs = [*ready_ctx.owns.values(), *ready_ctx.watches.values()]
            try:
                new_objs = self._handle_update_resource(
                    for_ref, ready_ctx.for_obj, ready_ctx.for_condition, objs
                )
            except Exception as exc:  # errors of the callback end up in the condition
                logger.info("cannot handleUpdateResource objRef %s, err: %s", refs_string(for_ref), exc)
                try:
                    self.kptfile.set_condition_ref_failed(for_ref, str(exc))
                except RECOVERABLE_ERRORS as err:
                    logger.info("set condition failed error, err: %s", err)
                    self.rl.add_error(err)
                continue

            for new_obj in new_objs:
                obj_ref = _object_ref(new_obj)
                kind_ctx = self.inventory.is_gvk_match(obj_ref.gvk())
                if kind_ctx is None:
                    message = (
                        "stage 2 fn returned an object that is not owned in the config: "
                        f"ref: {refs_string(obj_ref)}"
                    )
                    logger.info(message)
                    self.rl.add_error(message)
                    continue
                if kind_ctx.gvk_kind is GvkKind.FOR:
                    refs = [for_ref]
                elif kind_ctx.gvk_kind is GvkKind.OWN:
                    refs = [for_ref, obj_ref]
                else:
                    message = f"stage 2 fn returned an unexpected watch kind ref: {refs_string(obj_ref)}"
                    logger.info(message)
                    self.rl.add_error(message)
                    continue
                try:
                    self._upsert_child_object(
                        kind_ctx.gvk_kind,
                        refs,
                        DiffObject(ref=obj_ref, obj=new_obj),
                        ready_ctx.for_condition,
                        "update done",
                        ConditionStatus.TRUE,
                        True,
                    )
                except RECOVERABLE_ERRORS as exc:
                    logger.info(
                        "cannot update resourcelist and inventory after handleUpdateResource: objRef %s, err: %s",
                        refs_string(for_ref), exc,
                    )

    def _handle_update_resource(
        self,
        for_ref: ObjectReference,
        for_obj: KubeObject | None,
        for_condition: Condition | None,
        objs: list[KubeObject],
    ) -> list[KubeObject]:
        """Call the update function and carry the owner of the for condition over to its results."""
        assert self.config.update_resource_fn is not None
        new_objs = list(self.config.update_resource_fn(for_obj, objs) or [])
        if not new_objs:
            if self.debug:
                logger.info("update function returned no resources, objRef: %s", refs_string(for_ref))
            return []
        if for_condition is not None and for_condition.reason:
            for new_obj in new_objs:
                try:
                    new_obj.set_annotation(SPECIALIZER_OWNER, for_condition.reason)
                except RECOVERABLE_ERRORS as exc:
                    logger.info("error setting new annotation: %s", exc)
                    self.rl.add_error(exc)
                    raise
        return new_objs

    def _for_condition_type(self, ref: ObjectReference) -> str:
        return get_condition_type(ref)