# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
DB-agnostic store interface plus a motor-compatible implementation.
"""

from .base import DocumentStore, PathInfo, SchemaInfo, StoreError
from .models import ObjectRef, Ref, describe_model
from .mongo import MongoStore

__all__ = [
    "DocumentStore",
    "MongoStore",
    "ObjectRef",
    "PathInfo",
    "Ref",
    "SchemaInfo",
    "StoreError",
    "describe_model",
]
