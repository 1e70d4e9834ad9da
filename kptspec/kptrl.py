"""Building a resource list from package file contents."""

from __future__ import annotations

import fnmatch
import posixpath
from collections.abc import Mapping

import yaml

from .kubeobj import INDEX_ANNOTATION, PATH_ANNOTATION, KubeObject, ResourceList

_INCLUDE_PATTERNS = ("*.yaml", "*.yml", "Kptfile")


def _include_file(path: str) -> bool:
    base = posixpath.basename(path)
    return any(fnmatch.fnmatchcase(base, pattern) for pattern in _INCLUDE_PATTERNS)


def get_resource_list(resources: Mapping[str, str]) -> ResourceList:
    """Parse the YAML files and Kptfiles of a package, keyed by path, into a resource list."""
    rl = ResourceList()
    for path in sorted(resources):
        if not _include_file(path):
            continue
        try:
            documents = list(yaml.safe_load_all(resources[path]))
        except yaml.YAMLError as exc:
            raise ValueError(f"cannot parse {path}: {exc}") from exc
        index = 0
        for document in documents:
            if document is None:
                continue
            if not isinstance(document, dict):
                raise ValueError(f"{path}: document {index} is not a mapping")
            obj = KubeObject(document)
            obj.set_annotation(PATH_ANNOTATION, path)
            obj.set_annotation(INDEX_ANNOTATION, str(index))
            index += 1
            rl.upsert(obj)
    return rl