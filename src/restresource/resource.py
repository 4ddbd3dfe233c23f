"""Resource capability set implemented by every transport."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, Union

from .request_options import FetchOptions

# A parsed object carrying ``_status``, or the body unchanged when it is not an object.
ResourceResponse = Union[dict[str, Any], list[Any], str]


class BaseResource(Protocol):
    """CRUD-style HTTP verbs against a configured base path."""

    def post(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse: ...

    def put(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse: ...

    def patch(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse: ...

    def get(
        self,
        url: str,
        query_params: Mapping[str, Any] | None = None,
        options: FetchOptions | None = None,
    ) -> ResourceResponse: ...

    def delete(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse: ...

    def set_headers(self, headers: Mapping[str, str]) -> None: ...

    def clear_headers(self) -> None: ...

    def set_base_path(self, base_url: str) -> None: ...

    def resolve_destination(self, path_parts: Sequence[int | str], base_path: str) -> str: ...

    def get_all_entities(self) -> Any: ...

    def get_query_string(
        self,
        params: Mapping[str, Any] | None = None,
        options: FetchOptions | None = None,
    ) -> str: ...


class AsyncBaseResource(Protocol):
    """Awaitable counterpart of :class:`BaseResource`."""

    async def post(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse: ...

    async def put(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse: ...

    async def patch(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse: ...

    async def get(
        self,
        url: str,
        query_params: Mapping[str, Any] | None = None,
        options: FetchOptions | None = None,
    ) -> ResourceResponse: ...

    async def delete(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse: ...

    def set_headers(self, headers: Mapping[str, str]) -> None: ...

    def clear_headers(self) -> None: ...

    def set_base_path(self, base_url: str) -> None: ...

    def resolve_destination(self, path_parts: Sequence[int | str], base_path: str) -> str: ...

    async def get_all_entities(self) -> Any: ...

    def get_query_string(
        self,
        params: Mapping[str, Any] | None = None,
        options: FetchOptions | None = None,
    ) -> str: ...
