"""Resource-specific exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx


class ResourceError(Exception):
    """Base exception for all resource failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: object = None,
        response: "httpx.Response | None" = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.response = response
        self.cause = cause

    def __str__(self) -> str:
        if self.status_code is None:
            return str(self.args[0])
        return f"{self.status_code}: {self.args[0]}"


class ResourceConfigurationError(ResourceError):
    """Raised when a resource is used before it is configured."""


class ResourceRejectedError(ResourceError):
    """Raised when the pre-flight hook declines to send a request."""


class ResourceHTTPError(ResourceError):
    """Raised for HTTP non-success responses.

    ``body`` holds the parsed response body, ``_status`` included when the
    body is an object.
    """


class EntityMappingError(ResourceError):
    """Raised when a payload cannot be mapped onto an entity."""
