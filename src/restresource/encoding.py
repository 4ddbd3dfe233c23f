"""Query string, form-data and body encoders."""

from __future__ import annotations

import io
import json
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Sequence
from urllib.parse import quote

from .request_options import ContentType, QueryArrayMode

# Characters left untouched by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: Any) -> str:
    return quote(_stringify(value), safe=_URI_COMPONENT_SAFE)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def local_time_offset() -> int:
    """Minutes east of UTC for the local clock."""
    offset = datetime.now().astimezone().utcoffset()
    if offset is None:
        return 0
    return int(offset.total_seconds() // 60)


def build_query_string(
    params: Mapping[str, Any] | None = None,
    mode: QueryArrayMode | str = QueryArrayMode.COMMA,
    *,
    time_offset: bool = False,
) -> str:
    """Encode ``params`` into a query string without the leading ``?``.

    Sequences are rendered as repeated ``key[]=value`` pairs in array mode and
    as a single ``key=v1,v2`` pair in comma mode. ``None`` values are omitted.
    """
    values = dict(params or {})
    if time_offset:
        values["timeoffset"] = local_time_offset()

    parts: list[str] = []
    for key, value in values.items():
        name = encode_uri_component(key)
        if _is_sequence(value):
            if QueryArrayMode(mode) is QueryArrayMode.ARRAY:
                parts.extend(f"{name}[]={encode_uri_component(item)}" for item in value)
            else:
                parts.append(f"{name}=" + ",".join(encode_uri_component(item) for item in value))
        elif value is not None:
            parts.append(f"{name}={encode_uri_component(value)}")
    return "&".join(part for part in parts if part)


@dataclass
class FormData:
    """Ordered multipart form fields."""

    fields: list[tuple[str, Any]] = field(default_factory=list)

    def append(self, key: str, value: Any) -> None:
        self.fields.append((key, value))

    def get_all(self, key: str) -> list[Any]:
        return [value for name, value in self.fields if name == key]

    def to_httpx_files(self) -> list[tuple[str, tuple[str | None, Any]]]:
        rendered: list[tuple[str, tuple[str | None, Any]]] = []
        for key, value in self.fields:
            if isinstance(value, (bytes, bytearray)):
                rendered.append((key, (key, bytes(value))))
            elif isinstance(value, io.IOBase):
                filename = os.path.basename(getattr(value, "name", "") or key)
                rendered.append((key, (filename, value)))
            else:
                rendered.append((key, (None, str(value).encode("utf-8"))))
        return rendered


def _is_file(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray, io.IOBase))


def to_form_data(
    body: Mapping[str, Any] | Sequence[Any],
    form: FormData | None = None,
    namespace: str | None = None,
) -> FormData:
    """Flatten a nested mapping into multipart form fields.

    Nested mappings use ``parent[child]`` keys and sequence items use
    ``parent[]``. Falsy values are skipped.
    """
    if not isinstance(body, Mapping) and not _is_sequence(body):
        raise TypeError(f"Form data body must be a mapping or a sequence, got {type(body).__name__}")
    form_data = form if form is not None else FormData()
    items =body.items() if isinstance(body, Mapping) else enumerate(body)
    in_sequence = not isinstance(body, Mapping)
    for prop, value in items:
        if not value:
            continue
        if namespace:
            form_key = f"{namespace}[]" if in_sequence else f"{namespace}[{prop}]"
        else:
            form_key = str(prop)

        if isinstance(value, (datetime, date)):
            form_data.append(form_key, value.isoformat())
        elif _is_file(value):
            form_data.append(form_key, value)
        elif isinstance(value, Mapping) or _is_sequence(value):
            to_form_data(value, form_data, form_key)
        else:
            form_data.append(form_key, _stringify(value))
    return form_data


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", by_alias=True)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_json(body: Any) -> str:
    return json.dumps(body, default=_json_default, separators=(",", ":"))


def encode_body(body: Any, content_type: ContentType | None) -> Any:
    """Encode a request body according to the content-type policy.

    Returns a JSON string, a :class:`FormData`, or ``body`` unchanged.
    """
    if body is None:
        return None
    if content_type is ContentType.FORM_DATA:
        return to_form_data(body)
    if content_type is ContentType.RAW:
        return body
    return encode_json(body)
