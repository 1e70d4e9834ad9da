"""KRM objects, results and resource lists."""

from __future__ import annotations

import copy as _copy
import enum
from dataclasses import dataclass, field
from typing import Any

import yaml

PATH_ANNOTATION = "internal.config.kubernetes.io/path"
LEGACY_PATH_ANNOTATION = "config.kubernetes.io/path"
INDEX_ANNOTATION = "internal.config.kubernetes.io/index"
KPTFILE_KIND = "Kptfile"


class KubeObject:
    """A mutable KRM object backed by a plain mapping."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = data if data is not None else {}

    @property
    def api_version(self) -> str:
        return str(self.data.get("apiVersion") or "")

    @property
    def kind(self) -> str:
        return str(self.data.get("kind") or "")

    @property
    def name(self) -> str:
        return str(self.get_nested("metadata", "name") or "")

    @property
    def namespace(self) -> str:
        return str(self.get_nested("metadata", "namespace") or "")

    @property
    def annotations(self) -> dict[str, str]:
        found = self.get_nested("metadata", "annotations")
        return dict(found) if isinstance(found, dict) else {}

    def get_annotation(self, key: str) -> str:
        """Return the annotation value, or an empty string when absent."""
        return str(self.annotations.get(key, ""))

    def set_annotation(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"annotation {key!r} must be a string")
        current = self.get_nested("metadata", "annotations")
        annotations = dict(current) if isinstance(current, dict) else {}
        annotations[key] = value
        self.set_nested(annotations, "metadata", "annotations")

    def get_nested(self, *fields: str) -> Any:
        """Return the value at the given field path, or None."""
        node: Any = self.data
        for name in fields:
            if not isinstance(node, dict) or name not in node:
                return None
            node = node[name]
        return node

    def set_nested(self, value: Any, *fields: str) -> None:
        """Set a value at the given field path, creating mappings on the way."""
        if not fields:
            raise ValueError("a field path is required")
        node = self.data
        for name in fields[:-1]:
            child = node.get(name)
            if child is None:
                child = node[name] = {}
            elif not isinstance(child, dict):
                raise ValueError(f"field {name!r} is not a mapping")
            node = child
        node[fields[-1]] = value

    def copy(self) -> KubeObject:
        return KubeObject(_copy.deepcopy(self.data))

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.data, sort_keys=False)

    def same_identity(self, other: KubeObject) -> bool:
        """True when both objects share apiVersion, kind, namespace and name."""
        return (self.api_version, self.kind, self.namespace, self.name) == (
            other.api_version,
            other.kind,
            other.namespace,
            other.name,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KubeObject):
            return NotImplemented
        return self.data == other.data

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"KubeObject({self.api_version}/{self.kind} {self.name!r})"


def parse_kube_object(data: str | bytes) -> KubeObject:
    """Parse a single YAML document into a KubeObject."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    try:
        documents = [d for d in yaml.safe_load_all(data) if d is not None]
    except yaml.YAMLError as exc:
        raise ValueError(f"cannot parse object: {exc}") from exc
    if len(documents) != 1:
        raise ValueError(f"expected exactly one object, got {len(documents)}")
    if not isinstance(documents[0], dict):
        raise ValueError("object is not a mapping")
    return KubeObject(documents[0])


class Severity(enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Result:
    message: str
    severity: Severity


@dataclass
class ResourceList:
    """The items of a package and the results reported about them."""

    items: list[KubeObject] = field(default_factory=list)
    results: list[Result] = field(default_factory=list)

    def add_error(self, message: str | BaseException) -> None:
        self.results.append(Result(str(message), Severity.ERROR))

    def add_info(self, message: str) -> None:
        self.results.append(Result(str(message), Severity.INFO))

    def upsert(self, obj: KubeObject) -> None:
        """Replace the item with the same identity, or append the object."""
        for index, item in enumerate(self.items):
            if item.same_identity(obj):
                self.items[index] = obj
                return
        self.items.append(obj)

    def get_root_kptfile(self) -> KubeObject | None:
        """Return the Kptfile with the shallowest path, if any."""
        root: KubeObject | None = None
        min_depth: int | None = None
        for item in self.items:
            if item.kind != KPTFILE_KIND:
                continue
            path = item.get_annotation(PATH_ANNOTATION) or item.get_annotation(
                LEGACY_PATH_ANNOTATION
            )
            depth = len(path.split("/"))
            if min_depth is None or depth <= min_depth:
                min_depth = depth
                root = item
        return root

    def remove(self, obj: KubeObject) -> None:
        """Remove every item with the same identity as the object."""
        self.items = [item for item in self.items if not item.same_identity(obj)]