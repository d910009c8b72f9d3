# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Schema reflection for pydantic models.

Reference fields are marked with `Ref` metadata:

    class User(BaseModel):
        name: str
        favourite: ObjectRef | None = None                  # single reference
        items: list[ObjectRef] = []                           # array of references
        best: Annotated[str | None, Ref("widgets")] = None   # with a target collection

`describe_model()` turns a model into per-path `PathInfo`, the shape the engine
expects from any store: nested models become `Embedded` paths and lists of
models `DocumentArray` paths.
"""

import types
from dataclasses import dataclass
from typing import Annotated, Any, Union, get_args, get_origin

from pydantic import BaseModel

from ..core.types import ID_FIELDS

from .base import (
    INSTANCE_ARRAY,
    INSTANCE_DOCUMENT_ARRAY,
    INSTANCE_EMBEDDED,
    INSTANCE_OBJECT_ID,
    PathInfo,
)

__all__ = ["Ref", "ObjectRef", "describe_model", "id_field_names"]


@dataclass(frozen=True)
class Ref:
    """Marks a field as holding the id of a record in `collection`."""

    collection: str | None = None


ObjectRef = Annotated[str, Ref()]

_TYPE_NAMES: dict[Any, str] = {
    str: "String",
    int: "Number",
    float: "Number",
    bool: "Boolean",
    dict: "Mixed",
    Any: "Mixed",
}


def _unwrap(annotation: Any) -> tuple[Any, list[Any]]:
    """Strip Optional[...] and Annotated[...] layers, collecting metadata."""
    meta: list[Any] = []
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            base, *extra = get_args(annotation)
            meta.extend(extra)
            annotation = base
            continue
        if origin is Union or origin is types.UnionType:
            args = [a for a in get_args(annotation) if a is not type(None)]
            if len(args) == 1:
                annotation = args[0]
                continue
        return annotation, meta


def _find_ref(meta: list[Any]) -> Ref | None:
    for m in meta:
        if isinstance(m, Ref):
            return m
    return None


def _is_model(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, BaseModel)


def _type_name(tp: Any) -> str:
    return _TYPE_NAMES.get(tp) or getattr(tp, "__name__", None) or "Mixed"


def _path_info(annotation: Any, metadata: list[Any]) -> PathInfo:
    ann, meta = _unwrap(annotation)
    ref = _find_ref(metadata) or _find_ref(meta)
    if ref is not None:
        return PathInfo(INSTANCE_OBJECT_ID, ref=ref.collection)

    if get_origin(ann) in (list, tuple, set, frozenset):
        args = get_args(ann)
        elem, elem_meta = _unwrap(args[0]) if args else (Any, [])
        elem_ref = _find_ref(elem_meta)
        if elem_ref is not None:
            return PathInfo(INSTANCE_ARRAY, caster=INSTANCE_OBJECT_ID, ref=elem_ref.collection)
        if _is_model(elem):
            return PathInfo(INSTANCE_DOCUMENT_ARRAY, schema=describe_model(elem))
        return PathInfo(INSTANCE_ARRAY, caster=_type_name(elem))

    if _is_model(ann):
        return PathInfo(INSTANCE_EMBEDDED, schema=describe_model(ann))
    return PathInfo(_type_name(ann))


def describe_model(model: type[BaseModel]) -> dict[str, PathInfo]:
    """Reflect `model` into `path -> PathInfo`, keyed by the stored field name (alias first)."""
    out: dict[str, PathInfo] = {}
    for name, info in model.model_fields.items():
        out[info.alias or name] = _path_info(info.annotation, list(info.metadata))
    return out


def id_field_names(model: type[BaseModel]) -> set[str]:
    """Model attribute names that map to the record identity (`id` / `_id`)."""
    return {name for name, info in model.model_fields.items() if name in ID_FIELDS or info.alias in ID_FIELDS}
