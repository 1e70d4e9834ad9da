# kptspec

`kptspec` is a library for writing condition-driven specializers for kpt
packages. A specializer names the resource kind it is *for*, the child
resource kinds it *owns* and the kinds it *watches*. `kptspec` reads the
package's resources and Kptfile conditions into an inventory. It asks the
specializer for the children each for resource needs, and compares them with
what is already there. It then creates, updates or marks children for
deletion, and keeps the Kptfile conditions and readiness gates in step.

## Installation

```
pip install kptspec
```

The tests need the `test` extra:

```
pip install "kptspec[test]"
pytest
```

## Modules

- `kptspec.kubeobj` holds the object model and YAML parsing.
  - `KubeObject` is a KRM object backed by a plain dict. It provides
    `get_annotation`, `set_annotation`, `get_nested`, `set_nested`, `copy`,
    `to_yaml` and `same_identity`.
  - `parse_kube_object` parses exactly one YAML document. It raises
    `ValueError` on bad input.
  - `ResourceList` holds `items` and `results` (`Result` with a `Severity`). It
    provides `upsert`, which replaces an item with the same apiVersion, kind,
    namespace and name, or appends the object. It also provides `remove`,
    `get_root_kptfile`, `add_error` and `add_info`.
- `kptspec.kptrl.get_resource_list(resources)` turns a mapping of file path to
  file content into a `ResourceList`.
  - Only `*.yaml`, `*.yml` and `Kptfile` files are read, in sorted path order.
  - Each object is annotated with its path and its index within the file.
- `kptspec.condition_type` handles references and condition types.
  - It defines `ObjectReference`, `Condition` and `ConditionStatus`.
  - `get_condition_type` encodes a reference as a condition type, for example
    `a.a/a.b.c`.
  - `get_gvkn_from_condition_type` decodes a condition type back into a
    reference.
  - `get_condition_by_ref` builds the condition for a `[for]` or
    `[for, child]` path.
- `kptspec.kptfile.KptFile` wraps a Kptfile `KubeObject`.
  - It reads and writes readiness gates and conditions.
  - `set_conditions` overwrites conditions of the same type and appends new
    ones.
  - `delete_condition` and `set_condition_ref_failed` update single
    conditions.
  - `is_ready(prefix)` is true when conditions with that prefix exist and none
    of them is `False`.
- `kptspec.resource_tree` holds the inventory's tree of resource contexts:
  - `ResourceNode`, `ResourceCtx`, `GvkKind`, `ResourceKind` and
    `InventoryError`.
- `kptspec.inventory` provides `Config`, `Inventory`, `InventoryDiff`,
  `ReadyCtx` and `update_resource_fn_nop`.
  - `Inventory.diff()` compares existing children with newly generated ones.
  - `Inventory.get_ready_map()` judges the readiness of each for resource.
- `kptspec.sdk` provides `KptCondSdk`, which runs the whole pipeline, and
  `specialization_condition_type()`.
- `kptspec.updates`, `kptspec.children` and `kptspec.populate` hold the mixins
  that `KptCondSdk` is built from.

## Example

```python
from kptspec.condition_type import ObjectReference
from kptspec.inventory import Config
from kptspec.kptrl import get_resource_list
from kptspec.resource_tree import ResourceKind
from kptspec.sdk import KptCondSdk

files = {
    "Kptfile": open("pkg/Kptfile").read(),
    "deploy.yaml": open("pkg/deploy.yaml").read(),
}
rl = get_resource_list(files)


def populate(for_obj):
    # Return the child objects this specializer wants for for_obj.
    return []


def update(for_obj, children):
    # Return the updated for object (and any extra owned objects).
    return [for_obj]


cfg = Config(
    for_ref=ObjectReference(api_version="example.org/v1", kind="Deployment"),
    owns={ObjectReference(api_version="example.org/v1", kind="Claim"): ResourceKind.CHILD_REMOTE},
    populate_own_resources_fn=populate,
    update_resource_fn=update,
)

sdk = KptCondSdk(rl, cfg)
sdk.run()

for result in rl.results:
    print(result.severity, result.message)
```

### Configuration errors

An invalid configuration raises `InventoryError` when `KptCondSdk` (or
`Inventory`) is created. Each of these is rejected:

- a `for_ref` without apiVersion and kind
- a missing `update_resource_fn`
- the same group/version/kind declared twice
- a wildcard reference where none is allowed

### What `run()` does

- It raises `ValueError` when the resource list has items but no Kptfile.
- Errors from the callbacks and from individual updates do not raise. They are
  written into the Kptfile conditions of the affected for resource, or added
  to `rl.results`.
- With `Config(root=True)` it also does the following:
  - adds the `nephio.org.Specializer.specialize` readiness gate;
  - initializes that condition;
  - at the end, sets the condition to ready or not ready.

### Debug output

Setting the annotation `specializer.nephio.org/debug` on a for resource turns
on detailed logging. The messages are written through the standard `logging`
module at INFO level.

## Kptfile conditions

```python
from kptspec.condition_type import Condition, ConditionStatus
from kptspec.kptfile import KptFile
from kptspec.kubeobj import parse_kube_object

kf = KptFile(parse_kube_object(open("pkg/Kptfile").read()))
kf.set_readiness_gates("nephio.org.Specializer.specialize")
kf.set_conditions(Condition(type="a", status=ConditionStatus.FALSE, reason="a", message="a"))
print(kf.is_ready("a"))  # False
```

## What this package does not do

`kptspec` is a library only. It has no command-line program. It does not read
a function's input from standard input or write a resource list document to
standard output. It does not write the package's files back to disk.

`get_resource_list` takes file contents you have already read. After `run()`,
the updated objects are in `rl.items`, and each can be rendered with
`KubeObject.to_yaml()`. Storing them is up to the caller.