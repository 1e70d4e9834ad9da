import pytest

from kptspec.condition_type import Condition, ConditionStatus, ObjectReference
from kptspec.kubeobj import KubeObject
from kptspec.resource_tree import (
    GvkKind,
    GvkKindCtx,
    InventoryError,
    ResourceCtx,
    ResourceKind,
    ResourceNode,
    SdkObjectReference,
    get_sdk_refs,
)

A = ObjectReference(api_version="a", kind="a", name="a")
B = ObjectReference(api_version="b", kind="b", name="b")
C = ObjectReference(api_version="c", kind="c", name="c")


def put(tree, kind, refs, item=None, new_resource=False, failed=False):
    item = KubeObject() if item is None else item
    tree.set(get_sdk_refs(kind, refs), GvkKindCtx(gvk_kind=kind), item, new_resource, failed)


@pytest.mark.parametrize(
    "kind, refs",
    [
        (GvkKind.FOR, []),
        (GvkKind.FOR, [A, B]),
        (GvkKind.OWN, [A]),
        (GvkKind.OWN, [A, B, C]),
        (GvkKind.WATCH, [A, B, C]),
    ],
)
def test_sdk_refs_errors(kind, refs):
    with pytest.raises(InventoryError):
        get_sdk_refs(kind, refs)


def test_sdk_refs_two_levels_start_with_for():
    refs = get_sdk_refs(GvkKind.OWN, [A, B])
    assert refs == [SdkObjectReference(GvkKind.FOR, A), SdkObjectReference(GvkKind.OWN, B)]


@pytest.mark.parametrize(
    "kind, refs",
    [
        (GvkKind.FOR, [A]),
        (GvkKind.WATCH, [A]),
        (GvkKind.WATCH, [A, B]),
        (GvkKind.OWN, [A, B]),
    ],
)
def test_set_then_get_single(kind, refs):
    tree = ResourceNode()
    obj = KubeObject({"kind": "x"})
    put(tree, kind, refs, obj)
    got = tree.get(get_sdk_refs(kind, refs))
    assert list(got.values())[0].existing_resource is obj
    assert len(got) == 1


def test_new_resource_kept_apart():
    tree = ResourceNode()
    existing, new = KubeObject({"kind": "e"}), KubeObject({"kind": "n"})
    put(tree, GvkKind.OWN, [A, B], existing)
    put(tree, GvkKind.OWN, [A, B], new, new_resource=True)
    ctx = tree.get(get_sdk_refs(GvkKind.OWN, [A, B]))[ObjectReference()]
    assert (ctx.existing_resource, ctx.new_resource) == (existing, new)


def test_wildcard_get_filters_kind():
    tree = ResourceNode()
    put(tree, GvkKind.FOR, [A])
    put(tree, GvkKind.WATCH, [B])
    put(tree, GvkKind.WATCH, [C])
    got = tree.get(get_sdk_refs(GvkKind.WATCH, [ObjectReference()]))
    assert set(got) == {B, C}


def test_wildcard_own_get():
    tree = ResourceNode()
    for child in (B, C):
        put(tree, GvkKind.OWN, [A, child])
    got = tree.get(get_sdk_refs(GvkKind.OWN, [A, ObjectReference()]))
    assert set(got) == {B, C}


def test_get_missing_is_empty():
    assert ResourceNode().get(get_sdk_refs(GvkKind.WATCH, [A])) == {}


def test_list_two_levels():
    tree = ResourceNode()
    b1 = ObjectReference(api_version="b1", kind="b1", name="b1")
    put(tree, GvkKind.WATCH, [A])
    put(tree, GvkKind.WATCH, [b1, ObjectReference(api_version="b11", kind="b11", name="b11")])
    put(tree, GvkKind.WATCH, [b1, ObjectReference(api_version="b12", kind="b12", name="b12")])
    assert len(tree.list()) == 4


def test_delete_clears_condition():
    tree = ResourceNode()
    refs = get_sdk_refs(GvkKind.WATCH, [A])
    tree.set(refs, GvkKindCtx(), Condition(type="t", status=ConditionStatus.FALSE), False, False)
    tree.delete(refs)
    assert tree.get(refs)[ObjectReference()].existing_condition is None


def test_delete_not_found():
    tree = ResourceNode()
    put(tree, GvkKind.WATCH, [A, B])
    with pytest.raises(InventoryError):
        tree.delete(get_sdk_refs(GvkKind.WATCH, [B]))


def test_unsupported_item():
    with pytest.raises(InventoryError):
        ResourceNode().set(get_sdk_refs(GvkKind.FOR, [A]), GvkKindCtx(), "text", False, False)


def test_failed_flag_and_kind_ctx_stored():
    tree = ResourceNode()
    kind_ctx = GvkKindCtx(gvk_kind=GvkKind.OWN, own_kind=ResourceKind.CHILD_LOCAL)
    refs = get_sdk_refs(GvkKind.OWN, [A, B])
    tree.set(refs, kind_ctx, KubeObject(), False, True)
    ctx = tree.get(refs)[ObjectReference()]
    assert ctx.failed is True
    assert ctx.kind_ctx == kind_ctx


def test_copy_detaches_condition():
    cond = Condition(type="t", status=ConditionStatus.FALSE)
    ctx = ResourceCtx(existing_condition=cond)
    clone = ctx.copy()
    clone.existing_condition.message = "changed"
    assert cond.message == ""
    assert clone.existing_condition.type == cond.type