import pytest

from kptspec.condition_type import Condition, ConditionStatus, ObjectReference, get_condition_type
from kptspec.inventory import SPECIALIZER_DELETE, Config, DiffObject, Inventory, update_resource_fn_nop
from kptspec.kptfile import KptFile
from kptspec.kubeobj import KubeObject, ResourceList, parse_kube_object
from kptspec.resource_tree import GvkKind, GvkKindCtx, InventoryError, ResourceKind
from kptspec.updates import UpdatesMixin

KPTFILE = """apiVersion: kpt.dev/v1
kind: Kptfile
metadata:
  name: xxx
info:
  description: xxx
"""

FOR_REF = ObjectReference(api_version="a.a/v1", kind="A", name="a")
CHILD_REF = ObjectReference(api_version="b.b/v1", kind="B", name="child")


class Host(UpdatesMixin):
    def __init__(self):
        self.config = Config(
            for_ref=ObjectReference(api_version="a.a/v1", kind="A"),
            owns={ObjectReference(api_version="b.b/v1", kind="B"): ResourceKind.CHILD_REMOTE},
            update_resource_fn=update_resource_fn_nop,
        )
        self.inventory = Inventory(self.config)
        self.rl = ResourceList(items=[parse_kube_object(KPTFILE)])
        self.kptfile = KptFile(self.rl.get_root_kptfile())
        self.debug = False


def child_obj():
    return KubeObject(
        {"apiVersion": "b.b/v1", "kind": "B", "metadata": {"name": "child"}, "spec": {"x": 1}}
    )


@pytest.fixture
def host():
    return Host()


def test_set_condition_updates_kptfile_and_inventory(host):
    host._set_condition(GvkKind.FOR, [FOR_REF], "hello", ConditionStatus.FALSE, True)
    cond = host.kptfile.get_condition(get_condition_type(FOR_REF))
    assert cond.status is ConditionStatus.FALSE
    assert cond.message == "hello"
    ctx = host.inventory.get(GvkKind.FOR, [FOR_REF])[ObjectReference()]
    assert ctx.existing_condition == cond
    assert ctx.failed is True


def test_set_condition_invalid_refs_raises(host):
    with pytest.raises(ValueError):
        host._set_condition(GvkKind.FOR, [ObjectReference(kind="A")], "m", ConditionStatus.FALSE, False)


def test_delete_condition_removes_everywhere(host):
    host._set_condition(GvkKind.FOR, [FOR_REF], "hello", ConditionStatus.FALSE, False)
    host._delete_condition(GvkKind.FOR, [FOR_REF])
    assert host.kptfile.get_condition(get_condition_type(FOR_REF)) is None
    ctx = host.inventory.get(GvkKind.FOR, [FOR_REF])[ObjectReference()]
    assert ctx.existing_condition is None


def test_delete_condition_unknown_path_raises(host):
    with pytest.raises(InventoryError):
        host._delete_condition(GvkKind.OWN, [FOR_REF, CHILD_REF])
    assert host.rl.results


def test_upsert_remote_child_sets_object(host):
    obj = child_obj()
    host._upsert_child_object(
        GvkKind.OWN, [FOR_REF, CHILD_REF], DiffObject(CHILD_REF, obj, ResourceKind.CHILD_REMOTE),
        None, "created", ConditionStatus.FALSE, False,
    )
    cond = host.kptfile.get_condition(get_condition_type(CHILD_REF))
    assert cond.reason == get_condition_type(FOR_REF)
    assert cond.message == "created"
    assert any(item.same_identity(obj) for item in host.rl.items)
    ctx = host.inventory.get(GvkKind.OWN, [FOR_REF, CHILD_REF])[ObjectReference()]
    assert ctx.existing_resource == obj


def test_upsert_remote_condition_child_keeps_resource_list(host):
    obj = child_obj()
    host._upsert_child_object(
        GvkKind.OWN, [FOR_REF, CHILD_REF],
        DiffObject(CHILD_REF, obj, ResourceKind.CHILD_REMOTE_CONDITION),
        None, "created", ConditionStatus.FALSE, False,
    )
    assert len(host.rl.items) == 1
    assert host.kptfile.get_condition(get_condition_type(CHILD_REF)).message == "created"


def test_upsert_with_existing_condition_keeps_reason(host):
    existing = Condition(
        type=get_condition_type(FOR_REF), status=ConditionStatus.FALSE, reason="owner", message="old"
    )
    obj = KubeObject({"apiVersion": "a.a/v1", "kind": "A", "metadata": {"name": "a"}})
    host._upsert_child_object(
        GvkKind.FOR, [FOR_REF], DiffObject(FOR_REF, obj), existing, "update done",
        ConditionStatus.TRUE, True,
    )
    cond = host.kptfile.get_condition(get_condition_type(FOR_REF))
    assert cond.reason == "owner"
    assert cond.status is ConditionStatus.TRUE
    assert cond.message == "update done"
    assert existing.message == "old"


def test_delete_child_object_annotates(host):
    obj = child_obj()
    host._delete_child_object(
        GvkKind.OWN, [FOR_REF, CHILD_REF], DiffObject(CHILD_REF, obj, ResourceKind.CHILD_REMOTE), "gone"
    )
    assert obj.get_annotation(SPECIALIZER_DELETE) == "true"
    cond = host.kptfile.get_condition(get_condition_type(CHILD_REF))
    assert cond.status is ConditionStatus.FALSE
    assert cond.message == "gone"
    assert any(item.same_identity(obj) for item in host.rl.items)


def test_set_object_in_resource_list_invalid_refs(host):
    with pytest.raises(InventoryError):
        host._set_object_in_resource_list(
            GvkKind.OWN, [FOR_REF, ObjectReference(kind="B")], DiffObject(CHILD_REF, child_obj())
        )


def test_set_object_in_resource_list_records_existing(host):
    obj = child_obj()
    host._set_object_in_resource_list(GvkKind.OWN, [FOR_REF, CHILD_REF], DiffObject(CHILD_REF, obj))
    ctx = host.inventory.get(GvkKind.OWN, [FOR_REF, CHILD_REF])[ObjectReference()]
    assert ctx.existing_resource is obj
    assert ctx.kind_ctx == GvkKindCtx(gvk_kind=GvkKind.OWN)


def test_delete_obj_from_resource_list(host):
    obj = child_obj()
    host.rl.upsert(obj)
    host._delete_obj_from_resource_list(obj.copy())
    assert not any(item.same_identity(obj) for item in host.rl.items)
    assert len(host.rl.items) == 1