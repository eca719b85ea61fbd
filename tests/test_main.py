"""Regression tests for the command-line entrypoint."""

from __future__ import annotations

import json

import pytest

import fulfillment.main as main_module
from fulfillment.config import AppSettings
from fulfillment.domain import FulfillmentOptions, FulfillmentResponse


class _StubService:
    """Provider client stub recording canonical calls."""

    def __init__(self, response: FulfillmentResponse):
        self.response = response
        self.calls: list[tuple[str, object]] = []

    def adapter_fetch_stock_levels(self, options: FulfillmentOptions) -> FulfillmentResponse:
        self.calls.append(("stock_levels", options))
        return self.response

    def adapter_fetch_tracking(self, order_ids: list[str]) -> FulfillmentResponse:
        self.calls.append(("tracking", order_ids))
        return self.response

    def adapter_validate_credentials(self) -> bool:
        self.calls.append(("validate", None))
        return self.response.success


class _StubTransport:
    """Transport stub recording whether the CLI released it."""

    def __init__(self, request_timeout_seconds: float):
        self.request_timeout_seconds = request_timeout_seconds
        self.closed = False

    def transport_close(self) -> None:
        self.closed = True


def _patch_runtime(monkeypatch: pytest.MonkeyPatch, service: _StubService) -> list[_StubTransport]:
    transports: list[_StubTransport] = []

    def _build_transport(request_timeout_seconds: float) -> _StubTransport:
        transport = _StubTransport(request_timeout_seconds)
        transports.append(transport)
        return transport

    monkeypatch.setattr(main_module, "config_load_settings", lambda: AppSettings())
    monkeypatch.setattr(main_module, "config_configure_logging", lambda level: None)
    monkeypatch.setattr(main_module, "HttpxTransport", _build_transport)
    monkeypatch.setattr(main_module, "bootstrap_create_service", lambda provider, settings, transport: service)
    return transports


def test_main_stock_levels_prints_response_json(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Pass SKU filters through and print the canonical response.

    Args:
        monkeypatch: Pytest monkeypatch fixture.
        capsys: Pytest output capture fixture.

    Returns:
        None: Assertions validate CLI dispatch and output.

    Raises:
        AssertionError: Raised when dispatch or output is incorrect.
    """

    service = _StubService(FulfillmentResponse(success=True, message="ok", stock_levels={"A": 5}))
    transports = _patch_runtime(monkeypatch, service)

    main_module.main(["shipwire", "stock-levels", "--sku", "A", "--warehouse", "REN"])

    _, options = service.calls[0]
    assert isinstance(options, FulfillmentOptions)
    assert options.sku == "A"
    assert options.skus == ("A",)
    assert options.warehouse == "REN"
    assert json.loads(capsys.readouterr().out)["stock_levels"] == {"A": 5}
    assert transports[0].closed is True
    assert transports[0].request_timeout_seconds == 30.0


def test_main_exits_non_zero_for_failed_response(monkeypatch: pytest.MonkeyPatch) -> None:
    """Exit with status 1 when the provider reports failure."""

    service = _StubService(FulfillmentResponse(success=False, message="nope"))
    transports = _patch_runtime(monkeypatch, service)

    with pytest.raises(SystemExit) as exit_info:
        main_module.main(["amazon_mws", "tracking", "1001", "1002"])

    assert exit_info.value.code == 1
    assert service.calls == [("tracking", ["1001", "1002"])]
    assert [transport.closed for transport in transports] == [True]


def test_main_rejects_service_status_for_shipwire(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reject the MWS-only service status command for other providers."""

    _patch_runtime(monkeypatch, _StubService(FulfillmentResponse(success=True, message="ok")))

    with pytest.raises(SystemExit) as exit_info:
        main_module.main(["shipwire", "service-status"])

    assert exit_info.value.code == 2
