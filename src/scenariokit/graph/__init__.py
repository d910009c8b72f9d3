# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Row-level building blocks: flattening, descriptors, dependency extraction and
reference injection, scenario shape validation.
"""

from .descriptors import DescriptorCache, DescriptorTree, FieldDescriptor, FieldKind, build_tree
from .flatten import flatten, unflatten
from .references import dependencies, inject
from .spec import ScenarioSpec, validate_scenario

__all__ = [
    "DescriptorCache",
    "DescriptorTree",
    "FieldDescriptor",
    "FieldKind",
    "ScenarioSpec",
    "build_tree",
    "dependencies",
    "flatten",
    "inject",
    "unflatten",
    "validate_scenario",
]
