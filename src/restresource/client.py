"""Fetch-backed resources for synchronous and asynchronous callers."""

from __future__ import annotations

import inspect
import os
import re
from dataclasses import replace
from typing import Any, Mapping, Sequence

import httpx
from loguru import logger

from .encoding import FormData, build_query_string, encode_body
from .exceptions import ResourceConfigurationError, ResourceHTTPError, ResourceRejectedError
from .request_options import (
    DEFAULT_FETCH_OPTIONS,
    ContentType,
    ErrorContext,
    FetchOptions,
    GateDecision,
    QueryArrayMode,
    coerce_gate_decision,
)
from .resource import ResourceResponse
from .security import sanitize_headers

_DUPLICATE_SLASHES = re.compile(r"([^:]/)/+")


def _collapse_slashes(url: str) -> str:
    return _DUPLICATE_SLASHES.sub(r"\1", url)


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _is_json_response(response: httpx.Response) -> bool:
    return "json" in response.headers.get("content-type", "").lower()


def extract_response_content(response: httpx.Response) -> Any:
    """Parse JSON bodies, fall back to text for everything else."""
    if _is_json_response(response) and response.content:
        return response.json()
    return response.text


def _error_message(body: Any, response: httpx.Response) -> str:
    if isinstance(body, Mapping):
        for key in ("error", "message", "detail"):
            if isinstance(body.get(key), str):
                return body[key]
    return response.reason_phrase or "request failed"


def _without_content_type(headers: Mapping[str, str]) -> dict[str, str]:
    return {key: value for key, value in headers.items() if key.lower() != "content-type"}


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    return any(key.lower() == name for key in headers)


class _BaseFetchResource:
    default_timeout = 30.0
    base_url_env_var = "RESTRESOURCE_BASE_URL"
    timeout_env_var = "RESTRESOURCE_TIMEOUT"

    def __init__(
        self,
        base_url: str | None = None,
        default_options: FetchOptions | None = None,
        *,
        timeout: float | None = None,
        follow_redirects: bool = True,
    ) -> None:
        self.base_url = base_url or os.getenv(self.base_url_env_var)
        self.timeout = timeout if timeout is not None else _float_env(self.timeout_env_var, self.default_timeout)
        self.default_options = DEFAULT_FETCH_OPTIONS.merge(default_options)
        self._client_kwargs = {
            "timeout": self.timeout,
            "follow_redirects": follow_redirects,
            "trust_env": False,
        }

    def set_headers(self, headers: Mapping[str, str]) -> None:
        merged = dict(self.default_options.headers or {})
        merged.update({str(key): str(value) for key, value in headers.items()})
        self.default_options = replace(self.default_options, headers=merged)

    def clear_headers(self) -> None:
        self.default_options = replace(self.default_options, headers=None)

    def set_base_path(self, base_url: str) -> None:
        self.base_url = base_url

    def resolve_destination(self, path_parts: Sequence[int | str], base_path: str) -> str:
        return _collapse_slashes(base_path + "".join(f"/{part}" for part in path_parts))

    def get_query_string(
        self,
        params: Mapping[str, Any] | None = None,
        options: FetchOptions | None = None,
    ) -> str:
        merged = self.default_options.merge(options)
        return self._query_string(params, merged)

    @staticmethod
    def _query_string(params: Mapping[str, Any] | None, options: FetchOptions) -> str:
        return build_query_string(
            params,
            options.query_params_mode or QueryArrayMode.COMMA,
            time_offset=bool(options.time_offset),
        )

    @staticmethod
    def _get_options(query_params: Mapping[str, Any] | None, options: FetchOptions | None) -> FetchOptions | None:
        if query_params is None:
            return options
        return replace(options or FetchOptions(), query_params=query_params)

    def _resolve_request_url(self, url: str, options: FetchOptions) -> str:
        if not self.base_url:
            raise ResourceConfigurationError(
                f"{type(self).__name__}: base_url is not defined, call set_base_path() first"
            )
        url_part = f"/{url}{'/' if options.trailing_slash else ''}"
        return _collapse_slashes(self.base_url + url_part)

    def _create_request(
        self,
        method: str,
        url: str,
        options: FetchOptions | None = None,
        body: Any = None,
    ) -> tuple[httpx.Request, FetchOptions]:
        merged = self.default_options.merge(options)
        request_url = self._resolve_request_url(url, merged)
        content_type = ContentType(merged.content_type or ContentType.JSON)
        encoded = encode_body(body, content_type)
        query = self._query_string(merged.query_params, merged)
        request_url = "?".join(part for part in (request_url, query) if part)

        headers = dict(merged.headers or {})
        kwargs: dict[str, Any] = {}
        if isinstance(encoded, FormData):
            headers = _without_content_type(headers)
            kwargs["files"] = encoded.to_httpx_files()
        elif isinstance(encoded, Mapping):
            kwargs["data"] = encoded
        elif encoded is not None:
            if content_type is ContentType.JSON and not _has_header(headers, "content-type"):
                headers["Content-Type"] = ContentType.JSON.value
            kwargs["content"] = encoded

        timeout = merged.timeout if merged.timeout is not None else self.timeout
        request = self._httpx.build_request(
            method,
            request_url,
            headers=headers,
            timeout=timeout,
            **kwargs,
        )
        return request, merged

    @staticmethod
    def _rejection(decision: GateDecision) -> BaseException:
        if isinstance(decision.error, BaseException):
            return decision.error
        return ResourceRejectedError("Request rejected by can_send_request", body=decision.error)

    @staticmethod
    def _parse_response(response: httpx.Response) -> ResourceResponse:
        data = extract_response_content(response)
        if isinstance(data, dict):
            data["_status"] = response.status_code
        return data

    @staticmethod
    def _http_error(response: httpx.Response, data: Any) -> ResourceHTTPError:
        logger.warning(
            "{} {} failed with status {}",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        return ResourceHTTPError(
            _error_message(data, response),
            status_code=response.status_code,
            body=data,
            response=response,
        )

    @staticmethod
    def _log_request(request: httpx.Request) -> None:
        logger.debug(
            "{} {} headers={}",
            request.method,
            request.url,
            sanitize_headers(request.headers),
        )


class FetchResource(_BaseFetchResource):
    """Synchronous resource."""

    def __init__(
        self,
        base_url: str | None = None,
        default_options: FetchOptions | None = None,
        *,
        timeout: float | None = None,
        follow_redirects: bool = True,
        httpx_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(
            base_url,
            default_options,
            timeout=timeout,
            follow_redirects=follow_redirects,
        )
        self._httpx = httpx_client or httpx.Client(**self._client_kwargs)

    def __enter__(self) -> "FetchResource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._httpx.close()

    def post(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse:
        return self._send(*self._create_request("POST", url, options, body))

    def put(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse:
        return self._send(*self._create_request("PUT", url, options, body))

    def patch(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse:
        return self._send(*self._create_request("PATCH", url, options, body))

    def get(
        self,
        url: str,
        query_params: Mapping[str, Any] | None = None,
        options: FetchOptions | None = None,
    ) -> ResourceResponse:
        return self._send(*self._create_request("GET", url, self._get_options(query_params, options)))

    def delete(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse:
        return self._send(*self._create_request("DELETE", url, options, body))

    def get_all_entities(self) -> Any:
        raise NotImplementedError(f"{type(self).__name__}.get_all_entities(): need to provide method")

    def _send(self, request: httpx.Request, options: FetchOptions) -> ResourceResponse:
        if options.can_send_request is not None:
            result = options.can_send_request()
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                raise ResourceConfigurationError(
                    "can_send_request returned an awaitable, use AsyncFetchResource for async hooks"
                )
            decision = coerce_gate_decision(result)
            if not decision.can:
                logger.info("{} {} rejected by can_send_request", request.method, request.url)
                raise self._rejection(decision)

        self._log_request(request)
        try:
            response = self._httpx.send(request)
        except httpx.TransportError as exc:
            logger.debug("{} {} transport error: {}", request.method, request.url, exc)
            raise

        data = self._parse_response(response)
        if response.is_success:
            return data
        if options.handle_error is not None:
            outcome = options.handle_error(ErrorContext(response=response, parsed_body=data))
            if inspect.isawaitable(outcome):
                if inspect.iscoroutine(outcome):
                    outcome.close()
                raise ResourceConfigurationError(
                    "handle_error returned an awaitable, use AsyncFetchResource for async hooks"
                )
        raise self._http_error(response, data)


class AsyncFetchResource(_BaseFetchResource):
    """Asynchronous resource."""

    def __init__(
        self,
        base_url: str | None = None,
        default_options: FetchOptions | None = None,
        *,
        timeout: float | None = None,
        follow_redirects: bool = True,
        httpx_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            base_url,
            default_options,
            timeout=timeout,
            follow_redirects=follow_redirects,
        )
        self._httpx = httpx_client or httpx.AsyncClient(**self._client_kwargs)

    async def __aenter__(self) -> "AsyncFetchResource":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._httpx.aclose()

    async def post(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse:
        return await self._send(*self._create_request("POST", url, options, body))

    async def put(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse:
        return await self._send(*self._create_request("PUT", url, options, body))

    async def patch(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse:
        return await self._send(*self._create_request("PATCH", url, options, body))

    async def get(
        self,
        url: str,
        query_params: Mapping[str, Any] | None = None,
        options: FetchOptions | None = None,
    ) -> ResourceResponse:
        return await self._send(*self._create_request("GET", url, self._get_options(query_params, options)))

    async def delete(self, url: str, body: Any = None, options: FetchOptions | None = None) -> ResourceResponse:
        return await self._send(*self._create_request("DELETE", url, options, body))

    async def get_all_entities(self) -> Any:
        raise NotImplementedError(f"{type(self).__name__}.get_all_entities(): need to provide method")

    async def _send(self, request: httpx.Request, options: FetchOptions) -> ResourceResponse:
        if options.can_send_request is not None:
            result = options.can_send_request()
            if inspect.isawaitable(result):
                result = await result
            decision = coerce_gate_decision(result)
            if not decision.can:
                logger.info("{} {} rejected by can_send_request", request.method, request.url)
                raise self._rejection(decision)

        self._log_request(request)
        try:
            response = await self._httpx.send(request)
        except httpx.TransportError as exc:
            logger.debug("{} {} transport error: {}", request.method, request.url, exc)
            raise

        data = self._parse_response(response)
        if response.is_success:
            return data
        if options.handle_error is not None:
            outcome = options.handle_error(ErrorContext(response=response, parsed_body=data))
            if inspect.isawaitable(outcome):
                await outcome
        raise self._http_error(response, data)
