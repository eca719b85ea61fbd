"""Shipwire fulfillment client implementation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Final

from fulfillment.domain import (
    Address,
    FulfillmentOptions,
    FulfillmentRequest,
    FulfillmentResponse,
    LineItem,
    domain_redact_secrets,
)

from .errors import FulfillmentMalformedResponseError, FulfillmentTransportError
from .interfaces import FulfillmentServicePort, FulfillmentTransportPort
from .responses import (
    adapter_decode_body,
    adapter_failed_response_from_malformed,
    adapter_failed_response_from_transport,
)
from .shipwire_codec import (
    SHIPWIRE_INVALID_LOGIN_PATTERN,
    SHIPWIRE_POST_VARIABLES,
    SHIPWIRE_SERVICE_URLS,
    SHIPWIRE_SHIPPING_METHODS,
    ShipwireCodecConfig,
    ShipwireOperation,
    shipwire_build_fulfillment_document,
    shipwire_build_inventory_document,
    shipwire_build_rate_document,
    shipwire_build_tracking_document,
    shipwire_encode_form_body,
    shipwire_parse_response,
)

logger = logging.getLogger(__name__)


class ShipwireFulfillmentService(FulfillmentServicePort):
    """Client for the Shipwire XML document services."""

    _FORM_HEADERS: Final[dict[str, str]] = {"Content-Type": "application/x-www-form-urlencoded"}

    def __init__(
        self,
        login: str,
        password: str,
        transport: FulfillmentTransportPort,
        test_mode: bool = False,
        affiliate_id: str | None = None,
        include_pending_stock: bool = False,
        include_empty_stock: bool = False,
    ):
        """Initialize Shipwire client.

        Args:
            login: Shipwire account email address.
            password: Shipwire account password.
            transport: HTTP transport port.
            test_mode: Target the Shipwire test server.
            affiliate_id: Optional affiliate identifier sent with every non-rate document.
            include_pending_stock: Add pending quantities to reported stock levels.
            include_empty_stock: Report products with zero stock.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when login or password is blank.
        """

        normalized_login = login.strip()
        if not normalized_login:
            raise ValueError("login must not be blank")
        if not password:
            raise ValueError("password must not be blank")

        self._config = ShipwireCodecConfig(
            login=normalized_login,
            password=password,
            test_mode=test_mode,
            affiliate_id=(affiliate_id or "").strip() or None,
            include_pending_stock=include_pending_stock,
            include_empty_stock=include_empty_stock,
        )
        self._transport = transport

    @staticmethod
    def adapter_shipping_methods() -> dict[str, str]:
        """Return supported shipping method labels mapped to wire codes."""

        return dict(SHIPWIRE_SHIPPING_METHODS)

    def adapter_source_name(self) -> str:
        """Return stable adapter source label."""

        return "shipwire"

    def adapter_submit_order(
        self,
        order_id: str,
        shipping_address: Address,
        line_items: Sequence[LineItem],
        options: FulfillmentOptions | None = None,
    ) -> FulfillmentResponse:
        """Submit one order through the fulfillment service.

        Args:
            order_id: Caller order identifier.
            shipping_address: Destination address.
            line_items: Ordered line items.
            options: Per-call options; `shipping_method` is required.

        Returns:
            FulfillmentResponse: Canonical submission result.

        Raises:
            FulfillmentValidationError: Raised before any network call when input is incomplete.
        """

        request = FulfillmentRequest(
            order_id=order_id,
            shipping_address=shipping_address,
            line_items=tuple(line_items),
            options=options or FulfillmentOptions(),
        )
        document = shipwire_build_fulfillment_document(self._config, request)
        return self._adapter_commit(ShipwireOperation.FULFILLMENT, document)

    def adapter_fetch_stock_levels(self, options: FulfillmentOptions | None = None) -> FulfillmentResponse:
        """Fetch stock levels, optionally narrowed by warehouse and SKU.

        Args:
            options: Per-call options.

        Returns:
            FulfillmentResponse: Result with `stock_levels` populated.

        Raises:
            RuntimeError: This method converts runtime failures into failed responses.
        """

        document = shipwire_build_inventory_document(self._config, options or FulfillmentOptions())
        return self._adapter_commit(ShipwireOperation.INVENTORY, document)

    def adapter_fetch_tracking(
        self,
        order_ids: Sequence[str],
        options: FulfillmentOptions | None = None,
    ) -> FulfillmentResponse:
        """Fetch tracking data for all orders in one document.

        Args:
            order_ids: Caller order identifiers; empty asks for recent orders.
            options: Unused; accepted for a uniform operation surface.

        Returns:
            FulfillmentResponse: Result with tracking mappings populated.

        Raises:
            RuntimeError: This method converts runtime failures into failed responses.
        """

        _ = options
        document = shipwire_build_tracking_document(self._config, order_ids)
        return self._adapter_commit(ShipwireOperation.TRACKING, document)

    def adapter_fetch_rate_quote(
        self,
        order_id: str,
        shipping_address: Address,
        line_items: Sequence[LineItem],
        options: FulfillmentOptions | None = None,
    ) -> FulfillmentResponse:
        """Request shipping rate quotes for a prospective order.

        Args:
            order_id: Caller order identifier.
            shipping_address: Destination address; recipient identity is not sent.
            line_items: Ordered line items.
            options: Per-call options; `shipping_method` is optional.

        Returns:
            FulfillmentResponse: Result with `quote` and `warnings` populated.

        Raises:
            FulfillmentValidationError: Raised before any network call when input is incomplete.
        """

        request = FulfillmentRequest(
            order_id=order_id,
            shipping_address=shipping_address,
            line_items=tuple(line_items),
            options=options or FulfillmentOptions(),
        )
        document = shipwire_build_rate_document(self._config, request)
        return self._adapter_commit(ShipwireOperation.RATE, document)

    def adapter_validate_credentials(self) -> bool:
        """Return False only when Shipwire rejects the login and password."""

        response = self.adapter_fetch_tracking([])
        return SHIPWIRE_INVALID_LOGIN_PATTERN.search(response.message) is None

    def _adapter_commit(self, operation: ShipwireOperation, document: str) -> FulfillmentResponse:
        """Post one document and parse the reply.

        Args:
            operation: Document family.
            document: Serialized XML document.

        Returns:
            FulfillmentResponse: Parsed result, or a failed result for transport and shape failures.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        service_url = SHIPWIRE_SERVICE_URLS[operation]
        logger.info(
            "[%s][%s][%s] query=%s",
            self.adapter_source_name(),
            service_url,
            SHIPWIRE_POST_VARIABLES[operation],
            domain_redact_secrets(document, (self._config.password, self._config.affiliate_id)),
        )
        try:
            reply = self._transport.transport_post(
                service_url,
                shipwire_encode_form_body(operation, document),
                self._FORM_HEADERS,
            )
        except FulfillmentTransportError as error:
            logger.warning("[%s][%s] transport failure: %s", self.adapter_source_name(), operation.value, error)
            return adapter_failed_response_from_transport(error, test=self._config.test_mode)

        logger.debug("[%s][result] %s", self.adapter_source_name(), adapter_decode_body(reply.body))
        try:
            return shipwire_parse_response(operation, reply.body, self._config)
        except FulfillmentMalformedResponseError as error:
            logger.warning("[%s][%s] malformed response: %s", self.adapter_source_name(), operation.value, error)
            return adapter_failed_response_from_malformed(error, test=self._config.test_mode)
