"""Typed interfaces for adapter-layer responsibilities."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Mapping, Protocol

from fulfillment.domain import Address, FulfillmentOptions, FulfillmentResponse, LineItem


@dataclass(frozen=True)
class TransportResponse:
    """Raw reply returned by the transport boundary.

    Attributes:
        status_code: HTTP status code.
        body: Immutable raw body bytes.
        headers: Response headers.
    """

    status_code: int
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)


class FulfillmentTransportPort(Protocol):
    """Port definition for the HTTP transport used by provider clients."""

    def transport_post(self, url: str, body: str, headers: Mapping[str, str]) -> TransportResponse:
        """Send one HTTP POST and return the raw reply.

        Args:
            url: Absolute endpoint URL.
            body: Form-encoded request body.
            headers: Request headers.

        Returns:
            TransportResponse: Raw 2xx reply.

        Raises:
            FulfillmentTransportError: Raised for connection failures and non-2xx status.
            FulfillmentTransportTimeoutError: Raised when the request times out.
        """

    def transport_get(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        """Send one HTTP GET and return the raw reply.

        Args:
            url: Absolute endpoint URL including query string.
            headers: Request headers.

        Returns:
            TransportResponse: Raw 2xx reply.

        Raises:
            FulfillmentTransportError: Raised for connection failures and non-2xx status.
            FulfillmentTransportTimeoutError: Raised when the request times out.
        """


class FulfillmentServicePort(Protocol):
    """Canonical operation surface shared by every provider client."""

    def adapter_source_name(self) -> str:
        """Return provider identifier for diagnostics.

        Returns:
            str: Stable provider identifier.
        """

    def adapter_submit_order(
        self,
        order_id: str,
        shipping_address: Address,
        line_items: Sequence[LineItem],
        options: FulfillmentOptions | None = None,
    ) -> FulfillmentResponse:
        """Submit one order for fulfillment.

        Args:
            order_id: Caller order identifier.
            shipping_address: Destination address.
            line_items: Ordered line items.
            options: Per-call options.

        Returns:
            FulfillmentResponse: Canonical submission result.

        Raises:
            FulfillmentValidationError: Raised when required input is missing.
        """

    def adapter_fetch_stock_levels(self, options: FulfillmentOptions | None = None) -> FulfillmentResponse:
        """Fetch available stock per SKU.

        Args:
            options: Per-call options.

        Returns:
            FulfillmentResponse: Result with `stock_levels` populated.
        """

    def adapter_fetch_tracking(
        self,
        order_ids: Sequence[str],
        options: FulfillmentOptions | None = None,
    ) -> FulfillmentResponse:
        """Fetch tracking data for the given orders.

        Args:
            order_ids: Caller order identifiers.
            options: Per-call options.

        Returns:
            FulfillmentResponse: Result with tracking mappings populated.
        """

    def adapter_validate_credentials(self) -> bool:
        """Return whether the configured credentials are accepted.

        Returns:
            bool: True when the provider accepts the credentials.
        """
