# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Scenario shape validation.

A scenario is a mapping `collection name -> list of rows`, each row a mapping.
Validation is strict about the outer shape and about the engine-owned row keys
(the row's own label and its explicit `after` dependencies); everything else in
a row is left for the store's own schema validation.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import RootModel, ValidationError, field_validator

from ..api.errors import ConfigurationError
from ..core.types import Row

__all__ = ["ScenarioSpec", "validate_scenario", "validate_row_keys"]


class ScenarioSpec(RootModel[dict[str, list[dict[str, Any]]]]):
    """Validated scenario: collection -> rows (copied; the caller's data is never mutated)."""

    @field_validator("root")
    @classmethod
    def _collection_names(cls, v: dict[str, list[dict[str, Any]]]) -> dict[str, list[dict[str, Any]]]:
        for name in v:
            if not name:
                raise ValueError("collection names must be non-empty strings")
        return v


def validate_scenario(data: Any) -> dict[str, list[Row]]:
    """Return a validated copy of `data` or raise ConfigurationError."""
    if isinstance(data, list | tuple):
        raise ConfigurationError(
            "Invalid scenario invoke style - scenario(array) is not supported. "
            "Did you mean import_collection(collection, rows)?"
        )
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Invalid scenario invoke style - scenario({type(data).__name__})")
    try:
        spec = ScenarioSpec.model_validate(dict(data))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid scenario: {e}") from e
    return spec.root


def validate_row_keys(collection: str, index: int, row: Mapping[str, Any], *, ref_key: str, after_key: str) -> None:
    """The label must be a non-empty string; `after` a label or a list of labels."""
    if ref_key in row:
        label = row[ref_key]
        if not isinstance(label, str) or not label:
            raise ConfigurationError(f"{collection}[{index}]: {ref_key!r} must be a non-empty string, got {label!r}")
    if after_key in row:
        after = row[after_key]
        items = [after] if isinstance(after, str) else after
        if not isinstance(items, list) or not all(isinstance(x, str) and x for x in items):
            raise ConfigurationError(
                f"{collection}[{index}]: {after_key!r} must be a label or a list of labels, got {after!r}"
            )
