"""Canonical value objects shared by every fulfillment provider adapter.

Callers build `Address`, `LineItem` and `FulfillmentOptions` once per call;
provider clients return one `FulfillmentResponse` per canonical operation.
All contracts are frozen so a response cannot be mutated after it is returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Address:
    """Shipping destination used by order and rate requests.

    Attributes:
        name: Recipient full name.
        address1: First street line.
        address2: Second street line.
        city: City name.
        state: State or province code.
        country: ISO country code.
        zip: Postal code.
        phone: Recipient phone number.
        email: Recipient email address.
        company: Recipient company name.
    """

    name: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    zip: str | None = None
    phone: str | None = None
    email: str | None = None
    company: str | None = None

    def address_missing_fields(self, field_names: tuple[str, ...]) -> tuple[str, ...]:
        """Return required field names whose values are missing or blank.

        Args:
            field_names: Field names required by the calling codec.

        Returns:
            tuple[str, ...]: Missing field names in requested order.

        Raises:
            AttributeError: Raised when an unknown field name is requested.
        """

        return tuple(name for name in field_names if not (getattr(self, name) or "").strip())


@dataclass(frozen=True)
class LineItem:
    """One ordered product line of a canonical order.

    Attributes:
        sku: Seller product code.
        quantity: Ordered units; providers substitute a default when absent.
        comment: Optional displayable comment.
        gift_message: Optional gift message.
        declared_value: Optional per-unit declared value.
        currency_code: Currency for the declared value.
        network_sku: Optional provider network SKU.
        disposition: Optional item disposition marker.
    """

    sku: str | None = None
    quantity: int | None = None
    comment: str | None = None
    gift_message: str | None = None
    declared_value: str | None = None
    currency_code: str | None = None
    network_sku: str | None = None
    disposition: str | None = None

    def __post_init__(self) -> None:
        if self.quantity is not None and self.quantity < 0:
            raise ValueError("quantity must be >= 0")


@dataclass(frozen=True)
class ThrottlePolicy:
    """Caller-controlled delay between sequential per-order calls.

    Attributes:
        interval: Sleep whenever the running call index is a multiple of this value.
        sleep_seconds: Delay duration in seconds.
    """

    interval: int
    sleep_seconds: float

    def __post_init__(self) -> None:
        if self.interval < 1:
            raise ValueError("interval must be >= 1")
        if self.sleep_seconds < 0:
            raise ValueError("sleep_seconds must be >= 0")

    def throttle_should_sleep(self, call_index: int) -> bool:
        """Return whether the given one-based call index triggers a delay."""

        return call_index % self.interval == 0


@dataclass(frozen=True)
class FulfillmentOptions:
    """Recognized per-call options shared by all canonical operations.

    Attributes:
        warehouse: Provider warehouse code.
        shipping_method: Shipping method label or code.
        note: Free-text order note.
        comment: Displayable order comment.
        order_date: Order timestamp shown to the recipient.
        throttle: Optional delay policy for sequential tracking calls.
        sku: Single SKU filter for stock level queries.
        skus: Bounded SKU list for stock level queries.
        query_start_time: Start of a time-window stock level query.
        response_group: Provider response detail level.
    """

    warehouse: str | None = None
    shipping_method: str | None = None
    note: str | None = None
    comment: str | None = None
    order_date: datetime | None = None
    throttle: ThrottlePolicy | None = None
    sku: str | None = None
    skus: tuple[str, ...] = ()
    query_start_time: datetime | None = None
    response_group: str | None = None


@dataclass(frozen=True)
class FulfillmentRequest:
    """Order-shaped request assembled by provider clients.

    Attributes:
        order_id: Caller order identifier.
        shipping_address: Destination address.
        line_items: Ordered line items.
        options: Recognized per-call options.
    """

    order_id: str
    shipping_address: Address
    line_items: tuple[LineItem, ...]
    options: FulfillmentOptions = field(default_factory=FulfillmentOptions)


def _frozen_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return _frozen_mapping(value)
    if isinstance(value, list):
        return tuple(_frozen_value(item) for item in value)
    return value


def _frozen_mapping(values: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Copy a mapping into a read-only proxy, freezing nested mappings and lists."""

    return MappingProxyType({key: _frozen_value(value) for key, value in (values or {}).items()})


def _thawed_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thawed_value(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thawed_value(item) for item in value]
    return value


@dataclass(frozen=True)
class FulfillmentResponse:
    """Canonical response envelope returned by every provider operation.

    Attributes:
        success: Provider-derived success flag.
        message: Whitespace-normalized human-readable message.
        params: Every parsed field of the provider reply.
        stock_levels: SKU to available quantity.
        tracking_numbers: Order id to tracking numbers.
        tracking_companies: Order id to carrier names.
        tracking_urls: Order id to tracking URLs.
        quote: Shipping method code to rate quote details.
        warnings: Provider warnings in document order.
        next_token: Opaque continuation token for paginated replies.
        test: Whether the reply came from a provider test environment.
    """

    success: bool
    message: str
    params: Mapping[str, Any] = field(default_factory=dict)
    stock_levels: Mapping[str, int] = field(default_factory=dict)
    tracking_numbers: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    tracking_companies: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    tracking_urls: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    quote: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()
    next_token: str | None = None
    test: bool = False

    def __post_init__(self) -> None:
        for attribute_name in (
            "params",
            "stock_levels",
            "tracking_numbers",
            "tracking_companies",
            "tracking_urls",
            "quote",
        ):
            object.__setattr__(self, attribute_name, _frozen_mapping(getattr(self, attribute_name)))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def response_to_dict(self) -> dict[str, Any]:
        """Return a plain JSON-serializable representation.

        Returns:
            dict[str, Any]: Response fields with mappings copied into dicts.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return {
            "success": self.success,
            "message": self.message,
            "params": _thawed_value(self.params),
            "stock_levels": dict(self.stock_levels),
            "tracking_numbers": {key: list(value) for key, value in self.tracking_numbers.items()},
            "tracking_companies": {key: list(value) for key, value in self.tracking_companies.items()},
            "tracking_urls": {key: list(value) for key, value in self.tracking_urls.items()},
            "quote": _thawed_value(self.quote),
            "warnings": list(self.warnings),
            "next_token": self.next_token,
            "test": self.test,
        }
