"""Regression tests for httpx transport error mapping."""

from __future__ import annotations

import httpx

import pytest

from fulfillment.adapters import (
    FulfillmentTransportError,
    FulfillmentTransportTimeoutError,
    HttpxTransport,
)
import fulfillment.adapters.transport as transport_module

_URL = "https://api.example.test/exec/TrackingServices.php"


def test_adapters_transport_post_returns_body_for_success_status(monkeypatch: pytest.MonkeyPatch) -> None:
    """Return raw bytes and forward encoded body and headers on 2xx replies.

    Args:
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        None: Assertions validate success passthrough.

    Raises:
        AssertionError: Raised when request or reply mapping is incorrect.
    """

    captured: dict[str, object] = {}

    def _post(_self: object, url: str, content: bytes, headers: dict[str, str]) -> httpx.Response:
        captured.update({"url": url, "content": content, "headers": headers})
        return httpx.Response(200, content=b"<ok/>", request=httpx.Request("POST", url))

    monkeypatch.setattr(transport_module.httpx.Client, "post", _post)

    reply = HttpxTransport().transport_post(_URL, "TrackingUpdateXML=%3Cx%2F%3E", {"Content-Type": "text/plain"})

    assert reply.status_code == 200
    assert reply.body == b"<ok/>"
    assert captured == {
        "url": _URL,
        "content": b"TrackingUpdateXML=%3Cx%2F%3E",
        "headers": {"Content-Type": "text/plain"},
    }


def test_adapters_transport_non_success_status_keeps_status_reason_and_body(monkeypatch: pytest.MonkeyPatch) -> None:
    """Raise transport errors that carry HTTP status, reason phrase and body.

    Args:
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        None: Assertions validate non-2xx mapping.

    Raises:
        AssertionError: Raised when diagnostic context is lost.
    """

    def _post(_self: object, url: str, content: bytes, headers: dict[str, str]) -> httpx.Response:
        _ = (content, headers)
        return httpx.Response(400, content=b"<ErrorResponse/>", request=httpx.Request("POST", url))

    monkeypatch.setattr(transport_module.httpx.Client, "post", _post)

    with pytest.raises(FulfillmentTransportError) as error_info:
        HttpxTransport().transport_post(_URL, "", {})

    assert error_info.value.status_code == 400
    assert error_info.value.reason == "Bad Request"
    assert error_info.value.body == b"<ErrorResponse/>"
    assert error_info.value.error_code == "400"


def test_adapters_transport_timeout_and_connection_failures_are_typed(monkeypatch: pytest.MonkeyPatch) -> None:
    """Map httpx timeout and connection failures onto adapter errors."""

    def _raise_timeout(_self: object, url: str, headers: dict[str, str]) -> httpx.Response:
        _ = (url, headers)
        raise httpx.ReadTimeout("timed out")

    def _raise_connect(_self: object, url: str, content: bytes, headers: dict[str, str]) -> httpx.Response:
        _ = (url, content, headers)
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(transport_module.httpx.Client, "get", _raise_timeout)
    monkeypatch.setattr(transport_module.httpx.Client, "post", _raise_connect)
    transport = HttpxTransport(request_timeout_seconds=1.5)

    with pytest.raises(FulfillmentTransportTimeoutError, match="timed out"):
        transport.transport_get(_URL, {})
    with pytest.raises(FulfillmentTransportError) as error_info:
        transport.transport_post(_URL, "", {})

    assert error_info.value.status_code is None
    assert error_info.value.reason == "connection refused"
    with pytest.raises(ValueError):
        HttpxTransport(request_timeout_seconds=0)


def test_adapters_transport_close_releases_pooled_client() -> None:
    """Close the pooled httpx client so later requests cannot reuse it.

    Returns:
        None: Assertions validate client shutdown.

    Raises:
        AssertionError: Raised when the client stays open.
    """

    transport = HttpxTransport()

    transport.transport_close()

    assert transport._client.is_closed is True
    with pytest.raises(RuntimeError):
        transport._client.post(_URL, content=b"")
