import pytest

from kptspec.kubeobj import (
    PATH_ANNOTATION,
    KubeObject,
    ResourceList,
    Severity,
    parse_kube_object,
)

OBJ = """
apiVersion: a.a/v1
kind: A
metadata:
  name: a
  labels:
    a: a
spec:
  x: 1
"""


def make(api_version, kind, name, **extra):
    data = {"apiVersion": api_version, "kind": kind, "metadata": {"name": name}}
    data.update(extra)
    return KubeObject(data)


def test_parse_reads_identity():
    obj = parse_kube_object(OBJ)
    assert (obj.api_version, obj.kind, obj.name) == ("a.a/v1", "A", "a")


def test_parse_accepts_bytes():
    assert parse_kube_object(OBJ.encode()).data == parse_kube_object(OBJ).data


def test_parse_rejects_multiple_documents():
    with pytest.raises(ValueError):
        parse_kube_object(OBJ + "---\n" + OBJ)


def test_parse_rejects_non_mapping():
    with pytest.raises(ValueError):
        parse_kube_object("- a\n- b\n")


def test_yaml_round_trip():
    obj = parse_kube_object(OBJ)
    assert parse_kube_object(obj.to_yaml()).data == obj.data


def test_annotations_set_and_get():
    obj = parse_kube_object(OBJ)
    obj.set_annotation("k", "v")
    assert obj.get_annotation("k") == "v"
    assert obj.get_nested("metadata", "labels") == {"a": "a"}


def test_missing_annotation_is_empty():
    assert parse_kube_object(OBJ).get_annotation("missing") == ""


def test_set_annotation_requires_string():
    with pytest.raises(TypeError):
        parse_kube_object(OBJ).set_annotation("k", 1)


def test_nested_set_creates_path():
    obj = parse_kube_object(OBJ)
    obj.set_nested(["g"], "info", "readinessGates")
    assert obj.get_nested("info", "readinessGates") == ["g"]
    assert obj.get_nested("info", "missing") is None


def test_nested_set_through_scalar_fails():
    obj = parse_kube_object(OBJ)
    with pytest.raises(ValueError):
        obj.set_nested("v", "spec", "x", "y")


def test_copy_is_independent():
    obj = parse_kube_object(OBJ)
    clone = obj.copy()
    clone.set_annotation("k", "v")
    assert obj.get_annotation("k") == ""
    assert clone.get_annotation("k") == "v"


def test_same_identity_ignores_spec():
    first = make("v1", "K", "n", spec={"a": 1})
    second = make("v1", "K", "n", spec={"a": 2})
    other = make("v1", "K", "m")
    assert first.same_identity(second)
    assert not first.same_identity(other)


def test_upsert_replaces_same_identity():
    rl = ResourceList()
    rl.upsert(make("v1", "K", "n", spec={"a": 1}))
    replacement = make("v1", "K", "n", spec={"a": 2})
    rl.upsert(replacement)
    assert rl.items == [replacement]


def test_upsert_appends_new():
    rl = ResourceList()
    objs = [make("v1", "K", "n"), make("v1", "K", "m")]
    for obj in objs:
        rl.upsert(obj)
    assert rl.items == objs


def test_remove():
    keep = make("v1", "K", "m")
    gone = make("v1", "K", "n")
    rl = ResourceList(items=[gone, keep])
    rl.remove(make("v1", "K", "n"))
    assert rl.items == [keep]


def test_root_kptfile_is_shallowest():
    root = make("kpt.dev/v1", "Kptfile", "root")
    root.set_annotation(PATH_ANNOTATION, "Kptfile")
    nested = make("kpt.dev/v1", "Kptfile", "nested")
    nested.set_annotation(PATH_ANNOTATION, "sub/Kptfile")
    rl = ResourceList(items=[nested, root, make("v1", "K", "n")])
    assert rl.get_root_kptfile() is root


def test_root_kptfile_absent():
    assert ResourceList(items=[make("v1", "K", "n")]).get_root_kptfile() is None


def test_results_record_severity():
    rl = ResourceList()
    rl.add_error(ValueError("boom"))
    rl.add_info("fine")
    assert [(r.message, r.severity) for r in rl.results] == [
        ("boom", Severity.ERROR),
        ("fine", Severity.INFO),
    ]