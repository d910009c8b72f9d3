# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
DocumentStore over a motor-compatible database handle.

`db[name]` must return a collection exposing `insert_one`, `delete_many` and
`find` (async cursor), as motor's `AsyncIOMotorDatabase` does. Each collection
is described by a pydantic model (see `scenariokit.storage.models`); rows are
validated against it before insertion.

Ids are returned and exported in their string form. Reference fields are
stored as those strings too; callers that need native ObjectIds in references
should convert them in the model (e.g. with a validator).
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from ..core.log import get_logger
from ..core.types import DEFAULT_REVISION, REVISION_FIELD
from .base import PathInfo, StoreError
from .models import describe_model, id_field_names

__all__ = ["MongoStore"]


class MongoStore:
    def __init__(self, db: Any, models: Mapping[str, type[BaseModel]]) -> None:
        self.db = db
        self.models = dict(models)
        self.log = get_logger("storage.mongo")
        self._schemas: dict[str, dict[str, PathInfo]] = {}

    def _model(self, collection: str) -> type[BaseModel]:
        model = self.models.get(collection)
        if model is None:
            raise StoreError(f"Unknown collection {collection!r}")
        return model

    async def list_collections(self) -> list[str]:
        return list(self.models)

    async def get_schema(self, collection: str) -> dict[str, PathInfo] | None:
        if collection not in self.models:
            return None
        schema = self._schemas.get(collection)
        if schema is None:
            schema = describe_model(self.models[collection])
            self._schemas[collection] = schema
        return schema

    async def create(self, collection: str, row: Mapping[str, Any]) -> str:
        model = self._model(collection)
        try:
            doc = model.model_validate(dict(row))
        except ValidationError as e:
            raise StoreError(f"Validation failed for {collection!r}: {e}") from e

        payload = doc.model_dump(by_alias=True, exclude_none=True, exclude=id_field_names(model))
        payload.setdefault(REVISION_FIELD, DEFAULT_REVISION)
        res = await self.db[collection].insert_one(payload)
        rid = str(res.inserted_id)
        self.log.debug("store.insert", event="store.insert", collection=collection, id=rid)
        return rid

    async def remove_all(self, collection: str) -> None:
        self._model(collection)
        res = await self.db[collection].delete_many({})
        self.log.debug(
            "store.remove_all",
            event="store.remove_all",
            collection=collection,
            deleted=getattr(res, "deleted_count", None),
        )

    async def find_all(self, collection: str) -> list[dict[str, Any]]:
        self._model(collection)
        out: list[dict[str, Any]] = []
        async for doc in self.db[collection].find({}):
            rec = dict(doc)
            if "_id" in rec:
                rec["_id"] = str(rec["_id"])
            out.append(rec)
        return out
