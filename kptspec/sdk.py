"""The condition-driven pipeline that specializes the resources of a kpt package."""

from __future__ import annotations

import enum
import logging

from .children import ChildrenMixin
from .condition_type import Condition, ConditionStatus, ObjectReference, get_condition_type
from .inventory import SPECIALIZER_DEBUG, Config, Inventory
from .kptfile import KptFile
from .kubeobj import ResourceList
from .populate import PopulateMixin
from .resource_tree import InventoryError
from .updates import RECOVERABLE_ERRORS

logger = logging.getLogger(__name__)


class ConditionReason(str, enum.Enum):
    """Reasons the specialization is at."""

    READY = "Ready"
    FAILED = "Failed"
    SPECIALIZE = "Specialize"


def specialization_condition_type() -> str:
    """The condition type that tracks the overall specialization of the package."""
    return get_condition_type(
        ObjectReference(api_version="nephio.org", kind="Specializer", name="specialize")
    )


def _initialized() -> Condition:
    return Condition(
        type=specialization_condition_type(),
        status=ConditionStatus.FALSE,
        reason=ConditionReason.SPECIALIZE.value,
        message="initialized",
    )


def _failed(message: str) -> Condition:
    return Condition(
        type=specialization_condition_type(),
        status=ConditionStatus.FALSE,
        reason=ConditionReason.FAILED.value,
        message=message,
    )


def _not_ready() -> Condition:
    return Condition(
        type=specialization_condition_type(),
        status=ConditionStatus.FALSE,
        reason=ConditionReason.SPECIALIZE.value,
        message="not ready",
    )


def _ready() -> Condition:
    return Condition(
        type=specialization_condition_type(),
        status=ConditionStatus.TRUE,
        reason=ConditionReason.READY.value,
        message="",
    )


class KptCondSdk(ChildrenMixin, PopulateMixin):
    """Runs a function's for/own/watch configuration against a resource list."""

    def __init__(self, rl: ResourceList | None, config: Config) -> None:
        self.inventory = Inventory(config)
        self.config = config
        self.rl = rl  # type: ignore[assignment]
        self.kptfile = None  # type: ignore[assignment]
        self.debug = False

    def run(self) -> bool:
        """Process the resource list; raise when the package cannot be handled at all."""
        if self.rl is None:
            raise ValueError("a resource list is required")
        if not self.rl.items:
            self.rl.add_info("no resources present in the resourcelist")
            return True

        kptfile_obj = self.rl.get_root_kptfile()
        if kptfile_obj is None:
            message = "mandatory Kptfile is missing from the package"
            logger.info(message)
            self.rl.add_error(message)
            raise ValueError(message)
        self.kptfile = KptFile(kptfile_obj)

        if self.config.root:
            try:
                self._ensure_conditions_and_gates()
            except RECOVERABLE_ERRORS as exc:
                message = "cannot ensure specialize conditions and readiness gates"
                logger.info("%s, error: %s", message, exc)
                self.rl.add_error(f"{message}, error: {exc}")
                raise ValueError(f"{message}: {exc}") from exc

        self._set_debug()
        try:
            self._populate_inventory()
        except RECOVERABLE_ERRORS as exc:
            self._fail_for_conditions(f"stage1: cannot populate inventory, err: {exc}")
            return True
        if self.debug:
            self._list_inventory()

        try:
            self._call_global_watches()
        except Exception as exc:  # the callback's error is reported through conditions
            if self.config.root:
                try:
                    self.kptfile.set_conditions(_failed(str(exc)))
                except RECOVERABLE_ERRORS as err:
                    logger.info("set conditions, err: %s", err)
                    self.rl.add_error(err)
            else:
                self._fail_for_conditions(str(exc))

        # stage 1: generate children as if nothing existed, then apply the diff
        if self.inventory.ready and self.config.owns:
            self._populate_children()
        if self.debug:
            self._list_inventory()
        self._update_children()

        # stage 2: update the for resources and their adjacent resources
        self._update_resources()

        if self.config.root and self.inventory.ready:
            prefix = get_condition_type(
                ObjectReference(
                    api_version=self.config.for_ref.api_version, kind=self.config.for_ref.kind
                )
            )
            condition = _ready() if self.kptfile.is_ready(prefix) else _not_ready()
            try:
                self.kptfile.set_conditions(condition)
            except RECOVERABLE_ERRORS as exc:
                logger.info("set conditions, err: %s", exc)
                self.rl.add_error(exc)
        return True

    def _for_objects(self):
        for_ref = self.config.for_ref
        return [
            obj
            for obj in self.rl.items
            if obj.api_version == for_ref.api_version and obj.kind == for_ref.kind
        ]

    def _set_debug(self) -> None:
        """Enable debugging when a for resource carries the debug annotation."""
        for obj in self._for_objects():
            if obj.get_annotation(SPECIALIZER_DEBUG):
                self.debug = True
                self.inventory.set_debug()

    def _ensure_conditions_and_gates(self) -> None:
        condition_type = specialization_condition_type()
        self.kptfile.set_readiness_gates(condition_type)
        if self.kptfile.get_condition(condition_type) is None:
            try:
                self.kptfile.set_conditions(_initialized())
            except RECOVERABLE_ERRORS as exc:
                logger.info("set conditions, err: %s", exc)
                self.rl.add_error(exc)

    def _fail_for_conditions(self, message: str) -> None:
        for obj in self._for_objects():
            ref = ObjectReference(api_version=obj.api_version, kind=obj.kind, name=obj.name)
            try:
                self.kptfile.set_condition_ref_failed(ref, message)
            except (InventoryError, *RECOVERABLE_ERRORS) as exc:
                logger.info("set fail for condition failed, err: %s", exc)
                self.rl.add_error(exc)

    def _list_inventory(self) -> None:
        for entry in self.inventory.list():
            logger.info("resources entry: %s", entry)