"""Stage 1: generating child resources and applying the inventory diff."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .condition_type import ConditionStatus, ObjectReference, get_condition_type
from .inventory import SPECIALIZER_OWNER, DiffObject, refs_string
from .resource_tree import GvkKind, InventoryError, ResourceKind
from .updates import RECOVERABLE_ERRORS, UpdatesMixin

logger = logging.getLogger(__name__)


def _ref_sort_key(ref: ObjectReference) -> str:
    return (
        f"&ObjectReference{{Kind:{ref.kind},Namespace:{ref.namespace},Name:{ref.name},"
        f"UID:,APIVersion:{ref.api_version},ResourceVersion:,FieldPath:,}}"
    )


def sorted_refs(refs: Iterable[ObjectReference]) -> list[ObjectReference]:
    """Return the references in a deterministic order."""
    return sorted(refs, key=_ref_sort_key)


def _sort_objects(objs: list[DiffObject]) -> None:
    objs.sort(key=lambda o: _ref_sort_key(o.ref))


class ChildrenMixin(UpdatesMixin):
    """Population of new child resources and the updates that follow from the diff."""

    def _fail_for(self, for_ref: ObjectReference, message: str) -> None:
        try:
            self.kptfile.set_condition_ref_failed(for_ref, message)
        except RECOVERABLE_ERRORS as exc:
            logger.info("stage1: cannot set the condition objRef: %s err: %s", refs_string(for_ref), exc)
            self.rl.add_error(exc)

    def _join_error(self, exc: Exception) -> None:
        logger.info("join error, err: %s", exc)
        self.rl.add_error(exc)

    def _populate_children(self) -> None:
        """Ask the function for the children of each for resource and record them as new."""
        if self.debug:
            logger.info("stage1: populate children")
        populate = self.config.populate_own_resources_fn
        for for_ref, ctx in self.inventory.get(GvkKind.FOR, [ObjectReference()]).items():
            for_obj = ctx.existing_resource
            if self.debug:
                logger.info("stage1: populateOwnResourcesFn objRef: %s", refs_string(for_ref))
            if populate is None or for_obj is None:
                continue
            try:
                new_objs = populate(for_obj)
            except Exception as exc:  # errors of the callback end up in the condition
                message = f"stage1: cannot populate new resource err: {exc}"
                try:
                    self._set_condition(GvkKind.FOR, [for_ref], message, ConditionStatus.FALSE, True)
                except RECOVERABLE_ERRORS as err:
                    logger.info("stage1: cannot set the condition objRef: %s err: %s", refs_string(for_ref), err)
                    self.rl.add_error(err)
                continue
            for new_obj in new_objs or []:
                obj_ref = ObjectReference(
                    api_version=new_obj.api_version, kind=new_obj.kind, name=new_obj.name
                )
                kind_ctx = self.inventory.is_gvk_match(obj_ref)
                if kind_ctx is None:
                    message = (
                        "stage1: cannot find new resource in gvkmap: objRef: "
                        f"{refs_string(for_ref, obj_ref)}"
                    )
                    if self.debug:
                        logger.info(message)
                    self._fail_for(for_ref, message)
                    continue
                try:
                    new_obj.set_annotation(SPECIALIZER_OWNER, get_condition_type(for_ref))
                except RECOVERABLE_ERRORS as exc:
                    self._fail_for(
                        for_ref,
                        f"stage1: cannot set new annotation objRef: {refs_string(for_ref)}, err: {exc}",
                    )
                    continue
                try:
                    self.inventory.set(kind_ctx, [for_ref, obj_ref], new_obj, True, False)
                except InventoryError as exc:
                    self._fail_for(
                        for_ref,
                        "stage1: cannot set new resource to the inventory objRef: "
                        f"{refs_string(for_ref)}, err: {exc}",
                    )

    def _update_children(self) -> None:
        """Apply the diff between existing and new children to conditions and resources."""
        diff_map = self.inventory.diff()
        if not self.inventory.ready:
            for for_ref, diff in diff_map.items():
                if diff.delete_for_condition:
                    if self.debug:
                        logger.info("stage1: diff action -> delete for condition objRef: %s", refs_string(for_ref))
                    try:
                        self._delete_condition(GvkKind.FOR, [for_ref])
                    except RECOVERABLE_ERRORS as exc:
                        self._join_error(exc)
                for obj in diff.delete_objs:
                    if self.debug:
                        logger.info("stage1: diff action -> delete child objRef: %s", refs_string(for_ref, obj.ref))
                    try:
                        self._delete_child_object(GvkKind.OWN, [for_ref, obj.ref], obj, "not ready")
                    except RECOVERABLE_ERRORS as exc:
                        self._join_error(exc)
            return

        for for_ref in sorted_refs(diff_map):
            diff = diff_map[for_ref]
            if diff.update_for_condition:
                if self.debug:
                    logger.info("stage1: diff action -> update for condition objRef: %s", refs_string(for_ref))
                try:
                    self._set_condition(
                        GvkKind.FOR, [for_ref], "update for condition", ConditionStatus.FALSE, False
                    )
                except RECOVERABLE_ERRORS as exc:
                    self._join_error(exc)

            _sort_objects(diff.create_conditions)
            for obj in diff.create_conditions:
                if self.debug:
                    logger.info("stage1: diff action -> create condition objRef: %s", refs_string(for_ref, obj.ref))
                status = ConditionStatus.FALSE
                message = "create condition"
                if obj.own_kind is ResourceKind.CHILD_LOCAL:
                    status = ConditionStatus.TRUE
                    message = "child local resource -> done"
                if obj.own_kind is ResourceKind.CHILD_INITIAL:
                    message = "create initial resource condition"
                try:
                    self._set_condition(GvkKind.OWN, [for_ref, obj.ref], message, status, False)
                except RECOVERABLE_ERRORS as exc:
                    self._join_error(exc)

            for obj in diff.delete_conditions:
                if self.debug:
                    logger.info("stage1: diff action -> delete condition objRef: %s", refs_string(for_ref, obj.ref))
                try:
                    self._delete_condition(GvkKind.OWN, [for_ref, obj.ref])
                except RECOVERABLE_ERRORS as exc:
                    self._join_error(exc)

            _sort_objects(diff.create_objs)
            for obj in diff.create_objs:
                if self.debug:
                    logger.info("stage1: diff action -> create obj: ref: %s, ownkind: %s",
                                get_condition_type(obj.ref), obj.own_kind)
                status = (
                    ConditionStatus.TRUE
                    if obj.own_kind is ResourceKind.CHILD_LOCAL
                    else ConditionStatus.FALSE
                )
                try:
                    self._upsert_child_object(
                        GvkKind.OWN, [for_ref, obj.ref], obj, None, "create initial resource", status, False
                    )
                except RECOVERABLE_ERRORS as exc:
                    self._join_error(exc)

            _sort_objects(diff.update_objs)
            for obj in diff.update_objs:
                if self.debug:
                    logger.info("stage1: diff action -> update obj: %s", get_condition_type(obj.ref))
                try:
                    self._upsert_child_object(
                        GvkKind.OWN, [for_ref, obj.ref], obj, None, "update resource",
                        ConditionStatus.FALSE, False,
                    )
                except RECOVERABLE_ERRORS as exc:
                    self._join_error(exc)

            for obj in diff.delete_objs:
                if self.debug:
                    logger.info("stage1: diff action -> delete obj: %s", get_condition_type(obj.ref))
                try:
                    self._delete_child_object(GvkKind.OWN, [for_ref, obj.ref], obj, "delete resource")
                except RECOVERABLE_ERRORS as exc:
                    self._join_error(exc)

            # the for object was deleted and recreated: refresh children that carry the delete annotation
            for obj in diff.update_delete_annotations:
                if self.debug:
                    logger.info("stage1: diff action -> update delete annotation")
                try:
                    self._upsert_child_object(
                        GvkKind.OWN, [for_ref, obj.ref], obj, None, "update resource",
                        ConditionStatus.FALSE, False,
                    )
                except RECOVERABLE_ERRORS as exc:
                    self._join_error(exc)