"""Repositories composing a resource with a data mapper."""

from __future__ import annotations

import inspect
from typing import Any, Generic, Mapping, Union

from pydantic import BaseModel

from .client import FetchResource
from .data_mapper import DataMapper
from .models import EntityCollection, EntityT
from .request_options import FetchOptions
from .resource import AsyncBaseResource, BaseResource, ResourceResponse

EntityInput = Union[BaseModel, Mapping[str, Any]]


class _BaseRepository(Generic[EntityT]):
    def __init__(self, resource: Any, mapper: DataMapper[EntityT], path: str) -> None:
        self.resource = resource
        self.mapper = mapper
        self.path = path

    def _entity_path(self, entity_id: int | str) -> str:
        return self.resource.resolve_destination([entity_id], self.path)


class BaseRepository(_BaseRepository[EntityT]):
    """Synchronous repository."""

    resource: BaseResource

    def get_all(
        self,
        query: Mapping[str, Any] | None = None,
        *,
        options: FetchOptions | None = None,
    ) -> EntityCollection[EntityT]:
        return self.mapper.to_collection(self.resource.get(self.path, query, options))

    def get_one(self, entity_id: int | str, *, options: FetchOptions | None = None) -> EntityT:
        return self.mapper.to_entity(self.resource.get(self._entity_path(entity_id), None, options))

    def create(self, entity: EntityInput, *, options: FetchOptions | None = None) -> EntityT:
        payload = self.mapper.to_payload(entity)
        return self.mapper.to_entity(self.resource.post(self.path, payload, options))

    def update(
        self,
        entity_id: int | str,
        entity: EntityInput,
        *,
        partial: bool = False,
        options: FetchOptions | None = None,
    ) -> EntityT:
        payload = self.mapper.to_payload(entity)
        send = self.resource.patch if partial else self.resource.put
        return self.mapper.to_entity(send(self._entity_path(entity_id), payload, options))

    def remove(self, entity_id: int | str, *, options: FetchOptions | None = None) -> ResourceResponse:
        return self.resource.delete(self._entity_path(entity_id), None, options)


class AsyncBaseRepository(_BaseRepository[EntityT]):
    """Asynchronous repository."""

    resource: AsyncBaseResource

    async def get_all(
        self,
        query: Mapping[str, Any] | None = None,
        *,
        options: FetchOptions | None = None,
    ) -> EntityCollection[EntityT]:
        return self.mapper.to_collection(await self.resource.get(self.path, query, options))

    async def get_one(self, entity_id: int | str, *, options: FetchOptions | None = None) -> EntityT:
        return self.mapper.to_entity(await self.resource.get(self._entity_path(entity_id), None, options))

    async def create(self, entity: EntityInput, *, options: FetchOptions | None = None) -> EntityT:
        payload = self.mapper.to_payload(entity)
        return self.mapper.to_entity(await self.resource.post(self.path, payload, options))

    async def update(
        self,
        entity_id: int | str,
        entity: EntityInput,
        *,
        partial: bool = False,
        options: FetchOptions | None = None,
    ) -> EntityT:
        payload = self.mapper.to_payload(entity)
        send = self.resource.patch if partial else self.resource.put
        return self.mapper.to_entity(await send(self._entity_path(entity_id), payload, options))

    async def remove(self, entity_id: int | str, *, options: FetchOptions | None = None) -> ResourceResponse:
        return await self.resource.delete(self._entity_path(entity_id), None, options)


def create_repository(
    resource: BaseResource | AsyncBaseResource,
    entity_type: type[EntityT],
    path: str,
    *,
    field_map: Mapping[str, str] | None = None,
    items_key: str = "data",
    meta_key: str = "meta",
) -> BaseRepository[EntityT] | AsyncBaseRepository[EntityT]:
    """Build the repository matching the resource's calling convention."""
    mapper = DataMapper(entity_type, field_map, items_key=items_key, meta_key=meta_key)
    if inspect.iscoroutinefunction(resource.get):
        return AsyncBaseRepository(resource, mapper, path)
    return BaseRepository(resource, mapper, path)


class RepositoryBuilder(Generic[EntityT]):
    """Fluent construction of a repository and, optionally, its resource."""

    def __init__(self, entity_type: type[EntityT]) -> None:
        self._entity_type = entity_type
        self._resource: BaseResource | AsyncBaseResource | None = None
        self._base_path: str | None = None
        self._headers: dict[str, str] = {}
        self._path = ""
        self._field_map: dict[str, str] = {}
        self._items_key = "data"
        self._meta_key = "meta"

    def with_resource(self, resource: BaseResource | AsyncBaseResource) -> RepositoryBuilder[EntityT]:
        self._resource = resource
        return self

    def with_base_path(self, base_url: str) -> RepositoryBuilder[EntityT]:
        self._base_path = base_url
        return self

    def with_headers(self, headers: Mapping[str, str]) -> RepositoryBuilder[EntityT]:
        self._headers.update(headers)
        return self

    def at(self, path: str) -> RepositoryBuilder[EntityT]:
        self._path = path
        return self

    def map_fields(
        self,
        field_map: Mapping[str, str],
        *,
        items_key: str | None = None,
        meta_key: str | None = None,
    ) -> RepositoryBuilder[EntityT]:
        self._field_map.update(field_map)
        if items_key is not None:
            self._items_key = items_key
        if meta_key is not None:
            self._meta_key = meta_key
        return self

    def build(self) -> BaseRepository[EntityT] | AsyncBaseRepository[EntityT]:
        resource = self._resource if self._resource is not None else FetchResource()
        if self._base_path is not None:
            resource.set_base_path(self._base_path)
        if self._headers:
            resource.set_headers(self._headers)
        return create_repository(
            resource,
            self._entity_type,
            self._path,
            field_map=self._field_map,
            items_key=self._items_key,
            meta_key=self._meta_key,
        )
