"""Kptfile conditions, resource inventories and a condition-driven specializer pipeline for kpt packages."""

__version__ = "0.1.0"

__all__ = [
    "kubeobj",
    "condition_type",
    "kptfile",
    "kptrl",
    "resource_tree",
    "inventory",
    "updates",
    "children",
    "populate",
    "sdk",
]