from __future__ import annotations

import asyncio
import json
from typing import Callable

import httpx
import pytest
from loguru import logger

import restresource.encoding as encoding
from restresource import (
    AsyncFetchResource,
    ContentType,
    ErrorContext,
    FetchOptions,
    FetchResource,
    GateDecision,
    QueryArrayMode,
    ResourceConfigurationError,
    ResourceHTTPError,
    ResourceRejectedError,
)

BASE_URL = "https://api.example.com/v1"

Handler = Callable[[httpx.Request], httpx.Response]


def make_resource(handler: Handler, base_url: str | None = BASE_URL, **kwargs) -> FetchResource:
    transport = httpx.MockTransport(handler)
    return FetchResource(base_url, httpx_client=httpx.Client(transport=transport), **kwargs)


def make_async_resource(handler: Handler, base_url: str | None = BASE_URL, **kwargs) -> AsyncFetchResource:
    transport = httpx.MockTransport(handler)
    return AsyncFetchResource(base_url, httpx_client=httpx.AsyncClient(transport=transport), **kwargs)


def test_json_object_response_gets_status_attached() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": 1, "name": "Ann"})

    with make_resource(send_request) as resource:
        assert resource.get("users/1") == {"id": 1, "name": "Ann", "_status": 200}


def test_text_response_is_returned_unchanged_without_status() -> None:
    # Only object bodies carry ``_status``; text bodies come back as-is.
    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="pong")

    with make_resource(send_request) as resource:
        assert resource.get("ping") == "pong"


def test_json_array_response_is_returned_unchanged() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[1, 2, 3])

    with make_resource(send_request) as resource:
        assert resource.get("numbers") == [1, 2, 3]


def test_empty_json_response_returns_empty_text() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204, headers={"content-type": "application/json"})

    with make_resource(send_request) as resource:
        assert resource.delete("users/1") == ""


def test_error_status_raises_parsed_body_after_error_hook() -> None:
    events: list[str] = []
    contexts: list[ErrorContext] = []

    def handle_error(context: ErrorContext) -> None:
        events.append("hook")
        contexts.append(context)

    def send_request(request: httpx.Request) -> httpx.Response:
        events.append("send")
        return httpx.Response(404, json={"error": "not found"})

    with make_resource(send_request, default_options=FetchOptions(handle_error=handle_error)) as resource:
        with pytest.raises(ResourceHTTPError, match="not found") as exc_info:
            resource.get("users/99")

    assert events == ["send", "hook"]
    assert exc_info.value.body == {"error": "not found", "_status": 404}
    assert exc_info.value.status_code == 404
    assert contexts[0].parsed_body is exc_info.value.body
    assert contexts[0].response.status_code == 404


def test_error_status_without_hook_still_raises() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with make_resource(send_request) as resource:
        with pytest.raises(ResourceHTTPError) as exc_info:
            resource.post("jobs", {"name": "x"})

    assert exc_info.value.body == "boom"
    assert exc_info.value.response is not None


def test_error_status_is_logged_as_warning() -> None:
    messages: list[str] = []
    sink_id = logger.add(messages.append, level="WARNING", format="{message}")

    def send_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={})

    try:
        with make_resource(send_request) as resource:
            with pytest.raises(ResourceHTTPError):
                resource.get("missing")
    finally:
        logger.remove(sink_id)

    assert any("failed with status 404" in message for message in messages)


def test_missing_base_path_fails_before_sending(monkeypatch) -> None:
    monkeypatch.delenv("RESTRESOURCE_BASE_URL", raising=False)
    sent: list[httpx.Request] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(200, json={})

    with make_resource(send_request, base_url=None) as resource:
        with pytest.raises(ResourceConfigurationError, match="base_url is not defined"):
            resource.get("users")
        resource.set_base_path(BASE_URL)
        resource.get("users")

    assert len(sent) == 1


def test_base_path_and_timeout_fall_back_to_environment(monkeypatch) -> None:
    monkeypatch.setenv("RESTRESOURCE_BASE_URL", "https://env.example.com")
    monkeypatch.setenv("RESTRESOURCE_TIMEOUT", "5")
    captured: dict[str, str] = {}

    def send_request(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        return httpx.Response(200, json={})

    with make_resource(send_request, base_url=None) as resource:
        resource.get("users")

    assert captured["url"] == "https://env.example.com/users"
    assert resource.timeout == 5.0


def test_resolve_destination_collapses_duplicate_slashes() -> None:
    resource = make_resource(lambda request: httpx.Response(200))

    assert resource.resolve_destination(["users", 5], "/api/") == "/api/users/5"
    assert resource.resolve_destination([], "https://x.io/a//b") == "https://x.io/a/b"
    resource.close()


def test_request_url_honours_trailing_slash_and_collapses_slashes() -> None:
    captured: list[str] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        captured.append(str(request.url))
        return httpx.Response(200, json={})

    with make_resource(send_request, base_url="https://api.example.com/v1/") as resource:
        resource.get("/users")
        resource.get("users", options=FetchOptions(trailing_slash=True))

    assert captured == [
        "https://api.example.com/v1/users",
        "https://api.example.com/v1/users/",
    ]


def test_get_encodes_query_params_with_configured_mode() -> None:
    captured: list[httpx.URL] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        captured.append(request.url)
        return httpx.Response(200, json={})

    with make_resource(send_request) as resource:
        resource.get("users", {"ids": [1, 2], "q": "a b", "skip": None})
        resource.get(
            "users",
            {"ids": [1, 2]},
            FetchOptions(query_params_mode=QueryArrayMode.ARRAY),
        )

    assert captured[0].params.get("ids") == "1,2"
    assert captured[0].params.get("q") == "a b"
    assert "skip" not in captured[0].params
    assert captured[1].params.get_list("ids[]") == ["1", "2"]


def test_post_sends_query_params_from_options(monkeypatch) -> None:
    monkeypatch.setattr(encoding, "local_time_offset", lambda: -300)
    captured: list[httpx.URL] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        captured.append(request.url)
        return httpx.Response(201, json={})

    options = FetchOptions(query_params={"dry_run": True}, time_offset=True)
    with make_resource(send_request) as resource:
        resource.post("jobs", {"name": "x"}, options)

    assert captured[0].params.get("dry_run") == "true"
    assert captured[0].params.get("timeoffset") == "-300"


def test_get_query_string_uses_merged_options(monkeypatch) -> None:
    monkeypatch.setattr(encoding, "local_time_offset", lambda: 60)
    resource = make_resource(
        lambda request: httpx.Response(200),
        default_options=FetchOptions(query_params_mode=QueryArrayMode.ARRAY),
    )

    assert resource.get_query_string({"a": [1, 2]}) == "a[]=1&a[]=2"
    assert resource.get_query_string({"a": [1, 2]}, FetchOptions(query_params_mode=QueryArrayMode.COMMA)) == "a=1,2"
    assert resource.get_query_string({"a": 1}, FetchOptions(time_offset=True)) == "a=1&timeoffset=60"
    resource.close()


def test_json_body_is_serialized_with_content_type() -> None:
    captured: dict[str, object] = {}

    def send_request(request: httpx.Request) -> httpx.Response:
        captured["content_type"] = request.headers.get("content-type")
        captured["body"] = json.loads(request.content.decode())
        return httpx.Response(201, json={"id": 7})

    with make_resource(send_request) as resource:
        response = resource.post("users", {"name": "Ann"})

    assert response == {"id": 7, "_status": 201}
    assert captured["content_type"] == "application/json"
    assert captured["body"] == {"name": "Ann"}


def test_form_data_body_is_sent_as_multipart() -> None:
    captured: dict[str, object] = {}

    def send_request(request: httpx.Request) -> httpx.Response:
        captured["content_type"] = request.headers.get("content-type")
        captured["body"] = request.content
        return httpx.Response(200, json={})

    options = FetchOptions(
        content_type=ContentType.FORM_DATA,
        headers={"Content-Type": "application/json"},
    )
    with make_resource(send_request) as resource:
        resource.put("users/1", {"user": {"name": "Ann", "roles": ["admin"]}}, options)

    assert str(captured["content_type"]).startswith("multipart/form-data; boundary=")
    body = captured["body"]
    assert b'name="user[name]"' in body
    assert b'name="user[roles][]"' in body
    assert b"Ann" in body


def test_raw_body_is_passed_through() -> None:
    captured: list[httpx.Request] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, text="ok")

    raw = FetchOptions(content_type=ContentType.RAW, headers={"Content-Type": "text/csv"})
    with make_resource(send_request) as resource:
        resource.patch("imports", b"a,b\n1,2\n", raw)
        resource.post("login", {"user": "ann"}, FetchOptions(content_type=ContentType.RAW))

    assert captured[0].content == b"a,b\n1,2\n"
    assert captured[0].headers["content-type"] == "text/csv"
    assert captured[1].content == b"user=ann"
    assert captured[1].headers["content-type"] == "application/x-www-form-urlencoded"


def test_header_management_merges_and_clears() -> None:
    captured: list[httpx.Headers] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        captured.append(request.headers)
        return httpx.Response(200, json={})

    with make_resource(send_request) as resource:
        resource.set_headers({"Authorization": "Bearer abc"})
        resource.get("me", options=FetchOptions(headers={"X-Trace": "1"}))
        resource.clear_headers()
        resource.get("me")

    assert captured[0]["authorization"] == "Bearer abc"
    assert captured[0]["accept"] == "application/json"
    assert captured[0]["x-trace"] == "1"
    assert "authorization" not in captured[1]
    assert "x-trace" not in captured[1]


def test_gating_hook_exception_is_raised_without_sending() -> None:
    sent: list[httpx.Request] = []

    def send_request(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(200, json={})

    offline = PermissionError("offline")
    options = FetchOptions(can_send_request=lambda: GateDecision(can=False, error=offline))
    with make_resource(send_request, default_options=options) as resource:
        with pytest.raises(PermissionError) as exc_info:
            resource.get("users")

    assert exc_info.value is offline
    assert sent == []


def test_gating_hook_payload_is_wrapped() -> None:
    options = FetchOptions(can_send_request=lambda: (False, {"reason": "token expired"}))
    with make_resource(lambda request: httpx.Response(200), default_options=options) as resource:
        with pytest.raises(ResourceRejectedError) as exc_info:
            resource.delete("users/1")

    assert exc_info.value.body == {"reason": "token expired"}


def test_gating_hook_allows_request() -> None:
    options = FetchOptions(can_send_request=lambda: True)
    with make_resource(lambda request: httpx.Response(200, json={"ok": True})) as resource:
        assert resource.get("health", options=options) == {"ok": True, "_status": 200}


def test_sync_resource_rejects_async_gating_hook() -> None:
    async def can_send() -> bool:
        return True

    options = FetchOptions(can_send_request=can_send)
    with make_resource(lambda request: httpx.Response(200), default_options=options) as resource:
        with pytest.raises(ResourceConfigurationError, match="AsyncFetchResource"):
            resource.get("users")


def test_sync_resource_rejects_async_error_hook() -> None:
    async def handle_error(context: ErrorContext) -> None:
        raise AssertionError("async error hook must not run on the sync resource")

    options = FetchOptions(handle_error=handle_error)
    with make_resource(lambda request: httpx.Response(404, json={}), default_options=options) as resource:
        with pytest.raises(ResourceConfigurationError, match="handle_error returned an awaitable"):
            resource.get("users/1")


def test_transport_errors_propagate_unchanged() -> None:
    def send_request(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with make_resource(send_request) as resource:
        with pytest.raises(httpx.ConnectError, match="connection refused"):
            resource.get("users")


def test_get_all_entities_must_be_overridden() -> None:
    class UsersResource(FetchResource):
        def get_all_entities(self):
            return self.get("users")

    base = make_resource(lambda request: httpx.Response(200, json=[{"id": 1}]))
    with pytest.raises(NotImplementedError, match="need to provide method"):
        base.get_all_entities()
    base.close()

    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[{"id": 1}]))
    with UsersResource(BASE_URL, httpx_client=httpx.Client(transport=transport)) as users:
        assert users.get_all_entities() == [{"id": 1}]


def test_async_resource_round_trip() -> None:
    async def run() -> tuple[object, object]:
        def send_request(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(201, json={"id": 3})
            return httpx.Response(200, text="plain")

        async with make_async_resource(send_request) as resource:
            created = await resource.post("users", {"name": "Ann"})
            text = await resource.get("ping")
        return created, text

    created, text = asyncio.run(run())
    assert created == {"id": 3, "_status": 201}
    assert text == "plain"


def test_async_resource_awaits_hooks() -> None:
    events: list[str] = []

    async def can_send() -> GateDecision:
        events.append("gate")
        return GateDecision(can=True)

    async def handle_error(context: ErrorContext) -> None:
        events.append(f"error:{context.response.status_code}")

    async def run() -> ResourceHTTPError:
        options = FetchOptions(can_send_request=can_send, handle_error=handle_error)
        async with make_async_resource(
            lambda request: httpx.Response(422, json={"message": "invalid"}),
            default_options=options,
        ) as resource:
            with pytest.raises(ResourceHTTPError) as exc_info:
                await resource.patch("users/1", {"name": ""})
        return exc_info.value

    error = asyncio.run(run())
    assert events == ["gate", "error:422"]
    assert error.body == {"message": "invalid", "_status": 422}


def test_async_resource_gating_rejection_and_missing_base_path(monkeypatch) -> None:
    monkeypatch.delenv("RESTRESOURCE_BASE_URL", raising=False)

    async def run() -> None:
        async def can_send() -> tuple[bool, object]:
            return False, "maintenance"

        gated = make_async_resource(
            lambda request: httpx.Response(200),
            default_options=FetchOptions(can_send_request=can_send),
        )
        with pytest.raises(ResourceRejectedError) as exc_info:
            await gated.get("users")
        assert exc_info.value.body == "maintenance"
        await gated.aclose()

        unconfigured = make_async_resource(lambda request: httpx.Response(200), base_url=None)
        with pytest.raises(ResourceConfigurationError):
            await unconfigured.get("users")
        with pytest.raises(NotImplementedError):
            await unconfigured.get_all_entities()
        await unconfigured.aclose()

    asyncio.run(run())


def test_resource_errors_render_status_code_prefix() -> None:
    assert str(ResourceHTTPError("not found", status_code=404)) == "404: not found"
    assert str(ResourceConfigurationError("base_url is not defined")) == "base_url is not defined"
