# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
scenariokit public error API.
"""

from .errors import (
    ConfigurationError,
    CreationError,
    DuplicateReferenceError,
    MissingKeysError,
    ReferenceNotReady,
    ScenarioError,
    UnresolvableReferenceError,
    WipeError,
)

__all__ = [
    "ConfigurationError",
    "CreationError",
    "DuplicateReferenceError",
    "MissingKeysError",
    "ReferenceNotReady",
    "ScenarioError",
    "UnresolvableReferenceError",
    "WipeError",
]
