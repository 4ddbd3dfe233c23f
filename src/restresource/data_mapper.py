"""Map raw response envelopes onto entity models and back."""

from __future__ import annotations

from typing import Any, Generic, Mapping

from pydantic import BaseModel, ValidationError

from .exceptions import EntityMappingError
from .models import ArrayMeta, EntityCollection, EntityMeta, EntityT


def _rename_keys(data: Mapping[str, Any], mapping: Mapping[str, str]) -> dict[str, Any]:
    return {mapping.get(key, key): value for key, value in data.items()}


class DataMapper(Generic[EntityT]):
    """Rename remote keys to entity fields and validate them.

    ``field_map`` maps remote keys to local field names. Collections are read
    either from a bare list or from ``{items_key: [...], meta_key: {...}}``.
    """

    def __init__(
        self,
        entity_type: type[EntityT],
        field_map: Mapping[str, str] | None = None,
        *,
        items_key: str = "data",
        meta_key: str = "meta",
    ) -> None:
        self.entity_type = entity_type
        self.field_map = dict(field_map or {})
        self.items_key = items_key
        self.meta_key = meta_key
        self._reverse_map = {local: remote for remote, local in self.field_map.items()}

    def to_entity(self, payload: Any) -> EntityT:
        if not isinstance(payload, Mapping):
            raise EntityMappingError(
                f"Cannot map {type(payload).__name__} onto {self.entity_type.__name__}",
                body=payload,
            )
        data = _rename_keys({k: v for k, v in payload.items() if k != "_status"}, self.field_map)
        try:
            entity = self.entity_type.model_validate(data)
        except ValidationError as exc:
            raise EntityMappingError(
                f"Invalid {self.entity_type.__name__} payload",
                body=payload,
                cause=exc,
            ) from exc
        entity._meta = EntityMeta(status=payload.get("_status"))
        return entity

    def to_collection(self, payload: Any) -> EntityCollection[EntityT]:
        meta_source: dict[str, Any] = {}
        if isinstance(payload, Mapping):
            items = payload.get(self.items_key)
            meta_source.update(payload.get(self.meta_key) or {})
            meta_source["_status"] = payload.get("_status")
        else:
            items = payload

        if not isinstance(items, list):
            raise EntityMappingError(
                f"Expected a list of {self.entity_type.__name__} items",
                body=payload,
            )

        entities = [self.to_entity(item) for item in items]
        meta = ArrayMeta.model_validate(meta_source)
        if meta.count is None:
            meta = meta.model_copy(update={"count": len(entities)})
        return EntityCollection(items=entities, meta=meta)

    def to_payload(self, entity: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(entity, BaseModel):
            data = entity.model_dump(exclude_none=True)
        elif isinstance(entity, Mapping):
            data = dict(entity)
        else:
            raise EntityMappingError(
                f"Cannot build a payload from {type(entity).__name__}",
                body=entity,
            )
        return _rename_keys(data, self._reverse_map)
