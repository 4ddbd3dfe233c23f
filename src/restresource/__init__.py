"""HTTP resource abstraction over httpx with a thin repository layer."""

from .client import AsyncFetchResource, FetchResource
from .data_mapper import DataMapper
from .encoding import FormData, build_query_string, to_form_data
from .exceptions import (
    EntityMappingError,
    ResourceConfigurationError,
    ResourceError,
    ResourceHTTPError,
    ResourceRejectedError,
)
from .models import ArrayMeta, BaseEntity, BaseMeta, EntityCollection, EntityMeta
from .repository import AsyncBaseRepository, BaseRepository, RepositoryBuilder, create_repository
from .request_options import (
    DEFAULT_FETCH_OPTIONS,
    ContentType,
    ErrorContext,
    FetchOptions,
    GateDecision,
    QueryArrayMode,
)
from .resource import AsyncBaseResource, BaseResource, ResourceResponse

__all__ = [
    "ArrayMeta",
    "AsyncBaseRepository",
    "AsyncBaseResource",
    "AsyncFetchResource",
    "BaseEntity",
    "BaseMeta",
    "BaseRepository",
    "BaseResource",
    "ContentType",
    "DEFAULT_FETCH_OPTIONS",
    "DataMapper",
    "EntityCollection",
    "EntityMappingError",
    "EntityMeta",
    "ErrorContext",
    "FetchOptions",
    "FetchResource",
    "FormData",
    "GateDecision",
    "QueryArrayMode",
    "RepositoryBuilder",
    "ResourceConfigurationError",
    "ResourceError",
    "ResourceHTTPError",
    "ResourceRejectedError",
    "ResourceResponse",
    "build_query_string",
    "create_repository",
    "to_form_data",
]
