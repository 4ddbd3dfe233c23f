"""Entity and metadata models produced by the data mapper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Iterator, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class ResourceModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BaseMeta(ResourceModel):
    status: int | None = Field(default=None, alias="_status")


class EntityMeta(BaseMeta):
    """Response details attached to a single mapped entity."""


class ArrayMeta(BaseMeta):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    total: int | None = None
    count: int | None = None
    page: int | None = None
    per_page: int | None = None


class BaseEntity(ResourceModel):
    id: int | str | None = None

    _meta: EntityMeta = PrivateAttr(default_factory=EntityMeta)

    @property
    def meta(self) -> EntityMeta:
        return self._meta


EntityT = TypeVar("EntityT", bound=BaseEntity)


@dataclass
class EntityCollection(Generic[EntityT]):
    items: list[EntityT] = field(default_factory=list)
    meta: ArrayMeta = field(default_factory=ArrayMeta)

    def __iter__(self) -> Iterator[EntityT]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> EntityT:
        return self.items[index]
