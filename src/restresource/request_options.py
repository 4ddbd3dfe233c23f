"""Request options shared by every resource."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Union

if TYPE_CHECKING:
    import httpx


class ContentType(str, Enum):
    JSON = "application/json"
    FORM_DATA = "multipart/form-data"
    RAW = "raw"


class QueryArrayMode(str, Enum):
    ARRAY = "array"
    COMMA = "comma"


@dataclass(frozen=True)
class GateDecision:
    """Answer of a ``can_send_request`` hook."""

    can: bool
    error: object = None


@dataclass(frozen=True)
class ErrorContext:
    """Argument passed to the ``handle_error`` hook."""

    response: "httpx.Response"
    parsed_body: Any


GateResult = Union[GateDecision, bool, tuple]
GateHook = Callable[[], Union[GateResult, Awaitable[GateResult]]]
ErrorHook = Callable[[ErrorContext], Any]


@dataclass(frozen=True)
class FetchOptions:
    headers: Mapping[str, str] | None = None
    content_type: ContentType | None = None
    trailing_slash: bool | None = None
    query_params_mode: QueryArrayMode | None = None
    time_offset: bool | None = None
    can_send_request: GateHook | None = None
    handle_error: ErrorHook | None = None
    query_params: Mapping[str, Any] | None = None
    timeout: float | None = None

    def merge(self, other: FetchOptions | None) -> FetchOptions:
        """Return these options overridden by every value ``other`` sets."""
        if other is None:
            return self
        overrides: dict[str, Any] = {}
        for item in fields(other):
            value = getattr(other, item.name)
            if value is None:
                continue
            if item.name == "headers" and self.headers:
                value = {**self.headers, **value}
            overrides[item.name] = value
        return replace(self, **overrides)


DEFAULT_FETCH_OPTIONS = FetchOptions(
    headers={"Accept": "application/json"},
    content_type=ContentType.JSON,
    trailing_slash=False,
    query_params_mode=QueryArrayMode.COMMA,
    time_offset=False,
)


def coerce_gate_decision(result: GateResult) -> GateDecision:
    if isinstance(result, GateDecision):
        return result
    if isinstance(result, tuple):
        can, error = result
        return GateDecision(can=bool(can), error=error)
    return GateDecision(can=bool(result))
