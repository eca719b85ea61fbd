"""Regression tests for the Amazon MWS fulfillment client."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Mapping
from urllib.parse import parse_qs

import pytest

from fulfillment.adapters import (
    AmazonMwsFulfillmentService,
    FulfillmentTransportError,
    FulfillmentValidationError,
    TransportResponse,
)
from fulfillment.domain import Address, FulfillmentOptions, LineItem, ThrottlePolicy

_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
_ADDRESS = Address(name="Jane Doe", address1="1 Main St", city="Ottawa", country="CA", zip="K1A0B1")


class _StubTransport:
    """Transport stub returning queued replies and recording requests."""

    def __init__(self, replies: list[TransportResponse | Exception]):
        self.replies = list(replies)
        self.calls: list[tuple[str, str, dict[str, str]]] = []

    def transport_post(self, url: str, body: str, headers: Mapping[str, str]) -> TransportResponse:
        self.calls.append((url, body, dict(headers)))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def transport_get(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        raise AssertionError("MWS client must not issue GET requests")

    def actions(self) -> list[str]:
        return [parse_qs(body)["Action"][0] for _, body, _ in self.calls]


def _reply(body: str) -> TransportResponse:
    return TransportResponse(status_code=200, body=body.encode("utf-8"))


def _inventory_page(action: str, members: dict[str, int], next_token: str | None) -> TransportResponse:
    member_xml = "".join(
        f"<member><SellerSKU>{sku}</SellerSKU><InStockSupplyQuantity>{quantity}</InStockSupplyQuantity></member>"
        for sku, quantity in members.items()
    )
    token_xml = f"<NextToken>{next_token}</NextToken>" if next_token else ""
    return _reply(
        f"<{action}Response><{action}Result><InventorySupplyList>{member_xml}</InventorySupplyList>"
        f"{token_xml}</{action}Result></{action}Response>"
    )


def _tracking_reply(order_id: str, tracking_number: str) -> TransportResponse:
    return _reply(
        "<GetFulfillmentOrderResponse><GetFulfillmentOrderResult>"
        f"<FulfillmentOrder><SellerFulfillmentOrderId>{order_id}</SellerFulfillmentOrderId></FulfillmentOrder>"
        "<FulfillmentShipment><member><FulfillmentShipmentPackage><member>"
        f"<TrackingNumber>{tracking_number}</TrackingNumber><CarrierCode>UPS</CarrierCode>"
        "</member></FulfillmentShipmentPackage></member></FulfillmentShipment>"
        "</GetFulfillmentOrderResult></GetFulfillmentOrderResponse>"
    )


def _error_body(code: str, message: str) -> bytes:
    return (
        f"<ErrorResponse><Error><Type>Sender</Type><Code>{code}</Code><Message>{message}</Message></Error>"
        "<RequestId>req-1</RequestId></ErrorResponse>"
    ).encode("utf-8")


def _service(transport: _StubTransport, sleep_calls: list[float] | None = None) -> AmazonMwsFulfillmentService:
    return AmazonMwsFulfillmentService(
        access_key_id="AKIDEXAMPLE",
        secret_key="secret",
        transport=transport,
        seller_id="SELLER",
        auth_token="amzn.mws.token",
        sleep_provider=(sleep_calls.append if sleep_calls is not None else None),
        clock_provider=lambda: _NOW,
    )


def test_adapters_mws_fetch_stock_levels_follows_tokens_and_merges_pages() -> None:
    """Follow continuation tokens and return the union of every page.

    Returns:
        None: Assertions validate pagination semantics.

    Raises:
        AssertionError: Raised when pages are skipped or not merged.
    """

    transport = _StubTransport(
        [
            _inventory_page("ListInventorySupply", {"A": 5}, "t1"),
            _inventory_page("ListInventorySupplyByNextToken", {"B": 3}, "t2"),
            _inventory_page("ListInventorySupplyByNextToken", {"C": 7}, None),
        ]
    )

    response = _service(transport).adapter_fetch_stock_levels()

    assert response.success is True
    assert dict(response.stock_levels) == {"A": 5, "B": 3, "C": 7}
    assert response.next_token is None
    assert transport.actions() == [
        "ListInventorySupply",
        "ListInventorySupplyByNextToken",
        "ListInventorySupplyByNextToken",
    ]
    assert parse_qs(transport.calls[1][1])["NextToken"] == ["t1"]
    assert parse_qs(transport.calls[2][1])["NextToken"] == ["t2"]


def test_adapters_mws_fetch_stock_levels_returns_failed_page_without_earlier_data() -> None:
    """Return the failing follow-up page as the final result."""

    transport = _StubTransport(
        [
            _inventory_page("ListInventorySupply", {"A": 5}, "t1"),
            FulfillmentTransportError(
                "HTTP 400",
                status_code=400,
                reason="Bad Request",
                body=_error_body("InvalidParameterValue", "Invalid NextToken"),
            ),
        ]
    )

    response = _service(transport).adapter_fetch_stock_levels()

    assert response.success is False
    assert response.message == "Invalid NextToken"
    assert dict(response.stock_levels) == {}
    assert response.params["faultcode"] == "InvalidParameterValue"
    assert len(transport.calls) == 2


def test_adapters_mws_fetch_stock_levels_stops_on_error_envelope_in_second_of_three_pages() -> None:
    """Return an error envelope delivered with HTTP 200 and skip the remaining page.

    Returns:
        None: Assertions validate mid-pagination provider failure handling.

    Raises:
        AssertionError: Raised when earlier pages leak or the third page is requested.
    """

    transport = _StubTransport(
        [
            _inventory_page("ListInventorySupply", {"A": 5}, "t1"),
            TransportResponse(status_code=200, body=_error_body("InvalidParameterValue", "Bad token")),
            _inventory_page("ListInventorySupplyByNextToken", {"C": 7}, None),
        ]
    )

    response = _service(transport).adapter_fetch_stock_levels()

    assert response.success is False
    assert response.message == "Bad token"
    assert dict(response.stock_levels) == {}
    assert response.params["faultcode"] == "InvalidParameterValue"
    assert transport.actions() == ["ListInventorySupply", "ListInventorySupplyByNextToken"]
    assert len(transport.replies) == 1


def test_adapters_mws_fetch_tracking_throttles_on_interval_multiples() -> None:
    """Sleep after every second call for five orders and chain all results.

    Returns:
        None: Assertions validate throttle count and chained tracking data.

    Raises:
        AssertionError: Raised when sleep count or merged data is incorrect.
    """

    order_ids = ["1", "2", "3", "4", "5"]
    transport = _StubTransport([_tracking_reply(order_id, f"TN{order_id}") for order_id in order_ids])
    sleep_calls: list[float] = []

    response = _service(transport, sleep_calls).adapter_fetch_tracking(
        order_ids,
        FulfillmentOptions(throttle=ThrottlePolicy(interval=2, sleep_seconds=0.25)),
    )

    assert response.success is True
    assert sleep_calls == [0.25, 0.25]
    assert dict(response.tracking_numbers) == {order_id: (f"TN{order_id}",) for order_id in order_ids}
    assert [parse_qs(body)["SellerFulfillmentOrderId"][0] for _, body, _ in transport.calls] == order_ids


def test_adapters_mws_fetch_tracking_stops_on_first_failure() -> None:
    """Return the first failed order result and skip remaining orders."""

    transport = _StubTransport(
        [
            _tracking_reply("1", "TN1"),
            FulfillmentTransportError("HTTP 503", status_code=503, reason="Service Unavailable", body=b"busy"),
            _tracking_reply("3", "TN3"),
        ]
    )

    response = _service(transport).adapter_fetch_tracking(["1", "2", "3"])

    assert response.success is False
    assert response.message == "503: Service Unavailable"
    assert response.params["http_body"] == "busy"
    assert len(transport.calls) == 2


def test_adapters_mws_fetch_tracking_treats_unknown_order_as_empty_success() -> None:
    """Convert the order-not-found fault into a successful empty result.

    Returns:
        None: Assertions validate order-not-found handling.

    Raises:
        AssertionError: Raised when the fault is reported as a failure.
    """

    transport = _StubTransport(
        [
            FulfillmentTransportError(
                "HTTP 400",
                status_code=400,
                reason="Bad Request",
                body=_error_body("InvalidParameterValue", "Requested order 'missing-1' not found"),
            )
        ]
    )

    response = _service(transport).adapter_fetch_tracking(["missing-1"])

    assert response.success is True
    assert dict(response.tracking_numbers) == {}
    assert dict(response.tracking_companies) == {}
    assert dict(response.tracking_urls) == {}


def test_adapters_mws_fetch_tracking_without_orders_sends_nothing() -> None:
    """Return an empty success without any network call for no order ids."""

    transport = _StubTransport([])

    response = _service(transport).adapter_fetch_tracking([])

    assert response.success is True
    assert response.message == "No orders requested"
    assert transport.calls == []


def test_adapters_mws_submit_order_validates_before_network_call() -> None:
    """Raise validation errors for incomplete orders without touching transport."""

    transport = _StubTransport([])
    service = _service(transport)

    with pytest.raises(FulfillmentValidationError):
        service.adapter_submit_order("1001", _ADDRESS, [LineItem(sku="ABC")])
    with pytest.raises(FulfillmentValidationError):
        service.adapter_submit_order(
            "1001",
            Address(name="Jane Doe"),
            [LineItem(sku="ABC")],
            FulfillmentOptions(order_date=_NOW, shipping_method="Standard Shipping"),
        )
    assert transport.calls == []


def test_adapters_mws_submit_order_sends_signed_request_with_headers(caplog: pytest.LogCaptureFixture) -> None:
    """Sign the POST body, set protocol headers and redact credentials in logs.

    Args:
        caplog: Pytest log capture fixture.

    Returns:
        None: Assertions validate outbound request and log redaction.

    Raises:
        AssertionError: Raised when request or logs are incorrect.
    """

    transport = _StubTransport(
        [
            _reply(
                "<CreateFulfillmentOrderResponse><ResponseMetadata><RequestId>req-9</RequestId>"
                "</ResponseMetadata></CreateFulfillmentOrderResponse>"
            )
        ]
    )

    with caplog.at_level(logging.INFO, logger="fulfillment.adapters.mws_service"):
        response = _service(transport).adapter_submit_order(
            "1001",
            _ADDRESS,
            [LineItem(sku="ABC", quantity=2)],
            FulfillmentOptions(order_date=_NOW, shipping_method="Standard Shipping"),
        )

    url, body, headers = transport.calls[0]
    params = parse_qs(body)
    assert response.success is True
    assert response.message == "Successfully submitted the order"
    assert response.params["request_id"] == "req-9"
    assert url == "https://mws.amazonservices.com/CreateFulfillmentOrder/2010-10-01"
    assert params["Action"] == ["CreateFulfillmentOrder"]
    assert params["SignatureVersion"] == ["2"]
    assert "Signature" in params
    assert headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert headers["User-Agent"].startswith("fulfillment-adapters/")
    assert headers["Content-MD5"]
    assert "AKIDEXAMPLE" not in caplog.text
    assert "amzn.mws.token" not in caplog.text
    assert "Signature=[filtered]" in caplog.text


def test_adapters_mws_fetch_service_status_reports_red_as_failure() -> None:
    """Parse service status and treat RED as unavailable."""

    transport = _StubTransport(
        [
            _reply(
                "<GetServiceStatusResponse><GetServiceStatusResult><Status>RED</Status>"
                "</GetServiceStatusResult></GetServiceStatusResponse>"
            )
        ]
    )

    response = _service(transport).adapter_fetch_service_status()

    assert response.success is False
    assert response.params["service_status"] == "RED"


def test_adapters_mws_fetch_current_orders_maps_order_statuses() -> None:
    """Return order ids mapped to their fulfillment status."""

    transport = _StubTransport(
        [
            _reply(
                "<ListAllFulfillmentOrdersResponse><ListAllFulfillmentOrdersResult><FulfillmentOrders>"
                "<member><SellerFulfillmentOrderId>1001</SellerFulfillmentOrderId>"
                "<FulfillmentOrderStatus>PROCESSING</FulfillmentOrderStatus></member>"
                "</FulfillmentOrders></ListAllFulfillmentOrdersResult></ListAllFulfillmentOrdersResponse>"
            )
        ]
    )

    response = _service(transport).adapter_fetch_current_orders()

    assert response.success is True
    assert response.params["orders"] == {"1001": "PROCESSING"}
    assert parse_qs(transport.calls[0][1])["QueryStartDateTime"] == ["2026-10-18T12:00:00Z"]


def test_adapters_mws_connection_failure_and_malformed_reply_become_failed_responses() -> None:
    """Convert connection errors and unparseable replies into failed responses.

    Returns:
        None: Assertions validate failure conversion.

    Raises:
        AssertionError: Raised when a failure escapes as an exception.
    """

    transport = _StubTransport(
        [
            FulfillmentTransportError("connection refused", reason="connection refused"),
            _reply("<html>maintenance</html>"),
        ]
    )
    service = _service(transport)

    connection_response = service.adapter_fetch_service_status()
    malformed_response = service.adapter_fetch_service_status()

    assert connection_response.success is False
    assert connection_response.message == "connection refused"
    assert malformed_response.success is False
    assert malformed_response.params["http_body"] == "<html>maintenance</html>"


def test_adapters_mws_validate_credentials_and_constructor_checks() -> None:
    """Report credential validity from a stock fetch and reject bad configuration."""

    accepted = _service(_StubTransport([_inventory_page("ListInventorySupply", {}, None)]))
    rejected = _service(
        _StubTransport(
            [
                FulfillmentTransportError(
                    "HTTP 401",
                    status_code=401,
                    reason="Unauthorized",
                    body=_error_body("InvalidAccessKeyId", "The AWS Access Key Id you provided does not exist."),
                )
            ]
        )
    )

    assert accepted.adapter_validate_credentials() is True
    assert rejected.adapter_validate_credentials() is False
    with pytest.raises(ValueError):
        AmazonMwsFulfillmentService(access_key_id=" ", secret_key="secret", transport=_StubTransport([]))
    with pytest.raises(ValueError):
        AmazonMwsFulfillmentService(access_key_id="AKID", secret_key="secret", transport=_StubTransport([]), region="xx")


def test_adapters_mws_registration_url_requires_app_id() -> None:
    """Require an application id before building the registration URL."""

    service = _service(_StubTransport([]))

    with pytest.raises(ValueError, match="app_id"):
        service.adapter_registration_url("/return")

    configured = AmazonMwsFulfillmentService(
        access_key_id="AKID",
        secret_key="secret",
        transport=_StubTransport([]),
        app_id="app-1",
    )
    assert "id=app-1" in configured.adapter_registration_url("/return")
