"""Tests for the single-shot request transport."""

import json

import httpx
import pytest

from conftest import BASE_URL, mock_http
from havensync.core.config import Settings
from havensync.core.exceptions import ConfigurationError, PayloadError, TransportError
from havensync.core.transport import RequestTransport


async def test_missing_base_url_fails_before_any_io(mock_settings):
    def handler(request):
        raise AssertionError("no request expected")

    transport = RequestTransport(mock_settings, http_client=mock_http(handler))
    with pytest.raises(ConfigurationError):
        await transport.request("/projects", "GET")


async def test_sends_json_body_with_headers(live_settings):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["method"] = request.method
        seen["content_type"] = request.headers.get("content-type")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    transport = RequestTransport(live_settings, http_client=mock_http(handler))
    result = await transport.request("/ai/generate", "POST", {"prompt": "Hi"})

    assert result == {"ok": True}
    assert seen["url"] == f"{BASE_URL}/ai/generate"
    assert seen["method"] == "POST"
    assert seen["content_type"] == "application/json"
    assert seen["body"] == {"prompt": "Hi"}


async def test_includes_session_cookies():
    seen = {}

    def handler(request):
        seen["cookie"] = request.headers.get("cookie")
        return httpx.Response(200, json=[])

    settings = Settings(api_base_url=BASE_URL, cookies={"havenmind_session": "abc123"})
    transport = RequestTransport(settings, http_client=mock_http(handler))
    await transport.request("/projects", "GET")

    assert "havenmind_session=abc123" in seen["cookie"]


async def test_no_content_returns_none(live_settings):
    transport = RequestTransport(live_settings, http_client=mock_http(lambda r: httpx.Response(204)))
    assert await transport.request("/users/me", "PATCH", {"name": "Jo"}) is None


async def test_error_body_becomes_message(live_settings):
    transport = RequestTransport(
        live_settings,
        http_client=mock_http(lambda r: httpx.Response(429, text="quota exceeded")),
    )
    with pytest.raises(TransportError) as exc_info:
        await transport.request("/analytics/usage", "GET")

    assert exc_info.value.message == "quota exceeded"
    assert str(exc_info.value) == "quota exceeded"
    assert exc_info.value.status_code == 429


async def test_empty_error_body_uses_generic_message(live_settings):
    transport = RequestTransport(live_settings, http_client=mock_http(lambda r: httpx.Response(500)))
    with pytest.raises(TransportError) as exc_info:
        await transport.request("/projects", "GET")
    assert exc_info.value.message == "Unexpected API error"


async def test_network_failure_is_a_transport_error(live_settings):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused")

    transport = RequestTransport(live_settings, http_client=mock_http(handler))
    with pytest.raises(TransportError) as exc_info:
        await transport.request("/projects", "GET")

    assert "connection refused" in exc_info.value.message
    assert exc_info.value.status_code is None
    # Exactly one attempt, no retries
    assert len(calls) == 1


async def test_invalid_json_is_a_payload_error(live_settings):
    transport = RequestTransport(
        live_settings,
        http_client=mock_http(lambda r: httpx.Response(200, text="<html>")),
    )
    with pytest.raises(PayloadError):
        await transport.request("/projects", "GET")


async def test_multipart_upload_leaves_content_type_to_encoder(live_settings):
    seen = {}

    def handler(request):
        seen["content_type"] = request.headers.get("content-type")
        seen["body"] = request.content
        return httpx.Response(200, json={"id": "doc-1"})

    transport = RequestTransport(live_settings, http_client=mock_http(handler))
    await transport.request(
        "/documents",
        "POST",
        files={"file": ("receipt.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert seen["content_type"].startswith("multipart/form-data")
    assert b'filename="receipt.pdf"' in seen["body"]
    assert b"%PDF-1.4" in seen["body"]


async def test_context_manager_closes_owned_client(live_settings):
    async with RequestTransport(live_settings) as transport:
        assert not transport.http_client.is_closed
    assert transport.http_client.is_closed
