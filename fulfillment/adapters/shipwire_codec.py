"""Shipwire XML document codec.

Builds the four Shipwire request documents (order list, inventory update,
tracking update, rate request) and parses each reply family into a canonical
`FulfillmentResponse`. This module performs no I/O.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as element_tree
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final
from urllib.parse import quote_plus

from fulfillment.domain import (
    Address,
    FulfillmentOptions,
    FulfillmentRequest,
    FulfillmentResponse,
    LineItem,
    domain_snake_case,
)

from .errors import FulfillmentMalformedResponseError, FulfillmentOperationError, FulfillmentValidationError
from .responses import adapter_message_or_fallback
from .xml_documents import (
    xml_element_text,
    xml_parse_document,
    xml_require_attribute,
    xml_require_child,
    xml_require_int,
)


class ShipwireOperation(str, Enum):
    """Shipwire document families, one per service endpoint."""

    FULFILLMENT = "fulfillment"
    INVENTORY = "inventory"
    TRACKING = "tracking"
    RATE = "rate"


SHIPWIRE_SERVICE_URLS: Final[dict[ShipwireOperation, str]] = {
    ShipwireOperation.FULFILLMENT: "https://api.shipwire.com/exec/FulfillmentServices.php",
    ShipwireOperation.INVENTORY: "https://api.shipwire.com/exec/InventoryServices.php",
    ShipwireOperation.TRACKING: "https://api.shipwire.com/exec/TrackingServices.php",
    ShipwireOperation.RATE: "https://api.shipwire.com/exec/RateServices.php",
}

SHIPWIRE_SCHEMA_URLS: Final[dict[ShipwireOperation, str]] = {
    ShipwireOperation.FULFILLMENT: "http://www.shipwire.com/exec/download/OrderList.dtd",
    ShipwireOperation.INVENTORY: "http://www.shipwire.com/exec/download/InventoryUpdate.dtd",
    ShipwireOperation.TRACKING: "http://www.shipwire.com/exec/download/TrackingUpdate.dtd",
    ShipwireOperation.RATE: "http://www.shipwire.com/exec/download/RateRequest.dtd",
}

SHIPWIRE_POST_VARIABLES: Final[dict[ShipwireOperation, str]] = {
    ShipwireOperation.FULFILLMENT: "OrderListXML",
    ShipwireOperation.INVENTORY: "InventoryUpdateXML",
    ShipwireOperation.TRACKING: "TrackingUpdateXML",
    ShipwireOperation.RATE: "RateRequestXML",
}

SHIPWIRE_WAREHOUSES: Final[dict[str, str]] = {
    "CHI": "Chicago",
    "LAX": "Los Angeles",
    "REN": "Reno",
    "VAN": "Vancouver",
    "TOR": "Toronto",
    "UK": "United Kingdom",
}

# Label to wire code.
SHIPWIRE_SHIPPING_METHODS: Final[dict[str, str]] = {
    "1 Day Service": "1D",
    "2 Day Service": "2D",
    "Ground Service": "GD",
    "Freight Service": "FT",
    "International": "INTL",
}

SHIPWIRE_MAX_PRODUCT_CODE_LENGTH: Final[int] = 12
SHIPWIRE_ANY_WAREHOUSE: Final[str] = "00"
SHIPWIRE_REFERER: Final[str] = "Fulfillment Adapters"
SHIPWIRE_INVALID_LOGIN_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(Error with Valid Username/EmailAddress and Password Required)"
    r"|(Could not verify Username/EmailAddress and Password combination)"
)

_SHIPWIRE_SUCCESS_CODE: Final[str] = "0"
_SHIPWIRE_TEST_STATUS: Final[str] = "Test"
_SHIPWIRE_RATE_OK_STATUS: Final[str] = "OK"
_SHIPWIRE_REPLY_ROOTS: Final[dict[ShipwireOperation, str]] = {
    ShipwireOperation.FULFILLMENT: "SubmitOrderResponse",
    ShipwireOperation.INVENTORY: "InventoryUpdateResponse",
    ShipwireOperation.TRACKING: "TrackingUpdateResponse",
}
_SHIPWIRE_SUCCESS_MESSAGES: Final[dict[ShipwireOperation, str]] = {
    ShipwireOperation.FULFILLMENT: "Successfully submitted the order",
    ShipwireOperation.INVENTORY: "Successfully received the stock levels",
    ShipwireOperation.TRACKING: "Successfully received the tracking numbers",
    ShipwireOperation.RATE: "Successfully received the rate data",
}


@dataclass(frozen=True)
class ShipwireCodecConfig:
    """Account configuration consumed while building and parsing documents.

    Attributes:
        login: Shipwire account email address.
        password: Shipwire account password.
        test_mode: Send `Test` as server indicator and accept test statuses.
        affiliate_id: Optional affiliate identifier.
        include_pending_stock: Add pending quantities to stock levels.
        include_empty_stock: Ask for products with zero stock.
    """

    login: str
    password: str
    test_mode: bool = False
    affiliate_id: str | None = None
    include_pending_stock: bool = False
    include_empty_stock: bool = False


def shipwire_resolve_shipping_method(value: str | None, rate_mode: bool) -> str | None:
    """Resolve a shipping method label or code to its wire code.

    Args:
        value: Caller-supplied label or code.
        rate_mode: Whether the method is optional for this document.

    Returns:
        str | None: Wire code, or None when omitted in rate mode.

    Raises:
        FulfillmentValidationError: Raised when missing in order mode or unknown.
    """

    normalized_value = (value or "").strip()
    if not normalized_value:
        if rate_mode:
            return None
        raise FulfillmentValidationError("shipping_method is required to submit a Shipwire order")
    if normalized_value in SHIPWIRE_SHIPPING_METHODS:
        return SHIPWIRE_SHIPPING_METHODS[normalized_value]
    if normalized_value in SHIPWIRE_SHIPPING_METHODS.values():
        return normalized_value
    raise FulfillmentValidationError(f"unknown Shipwire shipping method: {normalized_value}")


def shipwire_validate_line_items(line_items: Sequence[LineItem]) -> None:
    """Reject line items whose product codes cannot be sent to Shipwire.

    Args:
        line_items: Ordered line items.

    Returns:
        None: Validation succeeds silently.

    Raises:
        FulfillmentValidationError: Raised when a code is missing or longer than 12 characters.
    """

    for index, line_item in enumerate(line_items):
        code = (line_item.sku or "").strip()
        if not code:
            raise FulfillmentValidationError(f"line item {index} is missing a product code")
        if len(code) > SHIPWIRE_MAX_PRODUCT_CODE_LENGTH:
            raise FulfillmentValidationError(
                f"line item {index} product code {code!r} exceeds "
                f"{SHIPWIRE_MAX_PRODUCT_CODE_LENGTH} characters"
            )


def shipwire_build_fulfillment_document(config: ShipwireCodecConfig, request: FulfillmentRequest) -> str:
    """Build the `OrderList` document for one order.

    Args:
        config: Account configuration.
        request: Canonical order request.

    Returns:
        str: Serialized XML document.

    Raises:
        FulfillmentValidationError: Raised when required order input is missing.
    """

    root = element_tree.Element("OrderList")
    _shipwire_add_credentials(root, config)
    element_tree.SubElement(root, "Referer").text = SHIPWIRE_REFERER
    _shipwire_add_order(root, request, rate_mode=False)
    return _shipwire_serialize_document(root, ShipwireOperation.FULFILLMENT)


def shipwire_build_inventory_document(config: ShipwireCodecConfig, options: FulfillmentOptions) -> str:
    """Build the `InventoryUpdate` document.

    Args:
        config: Account configuration.
        options: Per-call options; `warehouse` and `sku` narrow the query.

    Returns:
        str: Serialized XML document.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    root = element_tree.Element("InventoryUpdate")
    _shipwire_add_credentials(root, config)
    warehouse_element = element_tree.SubElement(root, "Warehouse")
    warehouse_name = SHIPWIRE_WAREHOUSES.get((options.warehouse or "").strip())
    if warehouse_name:
        warehouse_element.text = warehouse_name
    product_code_element = element_tree.SubElement(root, "ProductCode")
    if options.sku:
        product_code_element.text = options.sku
    if config.include_empty_stock:
        element_tree.SubElement(root, "IncludeEmpty")
    return _shipwire_serialize_document(root, ShipwireOperation.INVENTORY)


def shipwire_build_tracking_document(config: ShipwireCodecConfig, order_ids: Sequence[str]) -> str:
    """Build the `TrackingUpdate` document; no order ids asks for all recent orders."""

    root = element_tree.Element("TrackingUpdate")
    _shipwire_add_credentials(root, config)
    for order_id in order_ids:
        element_tree.SubElement(root, "OrderNo").text = str(order_id)
    return _shipwire_serialize_document(root, ShipwireOperation.TRACKING)


def shipwire_build_rate_document(config: ShipwireCodecConfig, request: FulfillmentRequest) -> str:
    """Build the `RateRequest` document.

    Rate requests always target the production server and never carry the
    affiliate id.

    Args:
        config: Account configuration.
        request: Canonical order request to quote.

    Returns:
        str: Serialized XML document.

    Raises:
        FulfillmentValidationError: Raised when required address or item input is missing.
    """

    root = element_tree.Element("RateRequest")
    element_tree.SubElement(root, "EmailAddress").text = config.login
    element_tree.SubElement(root, "Password").text = config.password
    element_tree.SubElement(root, "Server").text = "Production"
    _shipwire_add_order(root, request, rate_mode=True)
    return _shipwire_serialize_document(root, ShipwireOperation.RATE)


def shipwire_encode_form_body(operation: ShipwireOperation, document: str) -> str:
    """Wrap a document in the operation's form field, percent-encoded."""

    return f"{SHIPWIRE_POST_VARIABLES[operation]}={quote_plus(document)}"


def shipwire_parse_response(
    operation: ShipwireOperation,
    payload: bytes,
    config: ShipwireCodecConfig,
) -> FulfillmentResponse:
    """Parse one raw reply of the given document family.

    Args:
        operation: Document family the reply belongs to.
        payload: Raw reply bytes.
        config: Account configuration, consulted for test mode and pending stock.

    Returns:
        FulfillmentResponse: Canonical result.

    Raises:
        FulfillmentMalformedResponseError: Raised when the reply does not match the family shape.
        FulfillmentOperationError: Raised for an unknown operation.
    """

    if operation == ShipwireOperation.FULFILLMENT:
        return shipwire_parse_fulfillment_response(payload, config)
    if operation == ShipwireOperation.INVENTORY:
        return shipwire_parse_inventory_response(payload, config)
    if operation == ShipwireOperation.TRACKING:
        return shipwire_parse_tracking_response(payload, config)
    if operation == ShipwireOperation.RATE:
        return shipwire_parse_rate_response(payload, config)
    raise FulfillmentOperationError(f"Unknown Shipwire operation {operation!r}")


def shipwire_parse_fulfillment_response(payload: bytes, config: ShipwireCodecConfig) -> FulfillmentResponse:
    """Parse a `SubmitOrderResponse` reply.

    Every root child becomes a snake-cased param; the order is accepted only
    when `Status` is the numeric success code.

    Args:
        payload: Raw reply bytes.
        config: Account configuration.

    Returns:
        FulfillmentResponse: Canonical submission result.

    Raises:
        FulfillmentMalformedResponseError: Raised when the reply shape is unexpected.
    """

    root = _shipwire_parse_reply_root(payload, ShipwireOperation.FULFILLMENT)
    params = _shipwire_collect_child_params(root)
    success = params.get("status") == _SHIPWIRE_SUCCESS_CODE
    return FulfillmentResponse(
        success=success,
        message=_shipwire_message(ShipwireOperation.FULFILLMENT, success, params),
        params=params,
        test=config.test_mode,
    )


def shipwire_parse_inventory_response(payload: bytes, config: ShipwireCodecConfig) -> FulfillmentResponse:
    """Parse an `InventoryUpdateResponse` reply into stock levels.

    Args:
        payload: Raw reply bytes.
        config: Account configuration.

    Returns:
        FulfillmentResponse: Result with `stock_levels` populated.

    Raises:
        FulfillmentMalformedResponseError: Raised when a product lacks code or quantity.
    """

    root = _shipwire_parse_reply_root(payload, ShipwireOperation.INVENTORY)
    status = xml_element_text(root.find("Status"))
    expected_status = _SHIPWIRE_TEST_STATUS if config.test_mode else _SHIPWIRE_SUCCESS_CODE
    success = status == expected_status

    stock_levels: dict[str, int] = {}
    for product in root.iter("Product"):
        code = xml_require_attribute(product, "code", "inventory", payload)
        quantity = xml_require_int(xml_require_attribute(product, "quantity", "inventory", payload), "inventory", payload)
        if config.include_pending_stock:
            quantity += xml_require_int(product.get("pending") or "0", "inventory", payload)
        stock_levels[code] = quantity

    params: dict[str, Any] = {
        "status": status,
        "total_products": xml_element_text(root.find("TotalProducts")) if success else "0",
    }
    error_message = xml_element_text(root.find("ErrorMessage"))
    if error_message:
        params["error_message"] = error_message
    return FulfillmentResponse(
        success=success,
        message=_shipwire_message(ShipwireOperation.INVENTORY, success, params),
        params=params,
        stock_levels=stock_levels,
        test=config.test_mode,
    )


def shipwire_parse_tracking_response(payload: bytes, config: ShipwireCodecConfig) -> FulfillmentResponse:
    """Parse a `TrackingUpdateResponse` reply.

    Shipped `Order` children contribute tracking data keyed by order id; every
    other root child becomes a snake-cased param.

    Args:
        payload: Raw reply bytes.
        config: Account configuration.

    Returns:
        FulfillmentResponse: Result with tracking mappings populated.

    Raises:
        FulfillmentMalformedResponseError: Raised when a shipped order lacks its id.
    """

    root = _shipwire_parse_reply_root(payload, ShipwireOperation.TRACKING)
    params: dict[str, Any] = {}
    tracking_numbers: dict[str, tuple[str, ...]] = {}
    tracking_companies: dict[str, tuple[str, ...]] = {}
    tracking_urls: dict[str, tuple[str, ...]] = {}

    for node in root:
        if not (node.tag == "Order" and (node.get("shipped") or "").strip() == "YES"):
            params[domain_snake_case(node.tag)] = xml_element_text(node)
            continue

        tracking_node = node.find("TrackingNumber")
        if tracking_node is None:
            continue
        order_id = xml_require_attribute(node, "id", "tracking", payload)
        tracking_numbers[order_id] = (xml_element_text(tracking_node),)
        carrier = tracking_node.get("carrier")
        if carrier is not None:
            tracking_companies[order_id] = (carrier.strip(),)
        href = tracking_node.get("href")
        if href is not None:
            tracking_urls[order_id] = (href.strip(),)

    status = params.get("status")
    success = status == _SHIPWIRE_SUCCESS_CODE or (config.test_mode and status == _SHIPWIRE_TEST_STATUS)
    return FulfillmentResponse(
        success=success,
        message=_shipwire_message(ShipwireOperation.TRACKING, success, params),
        params=params,
        tracking_numbers=tracking_numbers,
        tracking_companies=tracking_companies,
        tracking_urls=tracking_urls,
        test=config.test_mode,
    )


def shipwire_parse_rate_response(payload: bytes, config: ShipwireCodecConfig) -> FulfillmentResponse:
    """Parse a `RateResponse` reply into per-method quotes and warnings.

    Args:
        payload: Raw reply bytes.
        config: Account configuration.

    Returns:
        FulfillmentResponse: Result with `quote` and `warnings` populated.

    Raises:
        FulfillmentMalformedResponseError: Raised when no `RateResponse` is present or a quote is incomplete.
    """

    root = xml_parse_document(payload, context_label="rate")
    rate_responses = list(root.iter("RateResponse"))
    if not rate_responses:
        raise FulfillmentMalformedResponseError(
            f"rate response missing RateResponse element (root={root.tag})",
            payload=payload,
        )

    params: dict[str, Any] = {}
    quote: dict[str, dict[str, Any]] = {}
    warnings: list[str] = []
    for rate_response in rate_responses:
        params["status"] = xml_element_text(rate_response.find("Status"))
        error_message = xml_element_text(rate_response.find("ErrorMessage"))
        if error_message:
            params["error_message"] = error_message
        for order in rate_response.findall("Order"):
            for quote_node in order.findall("Quotes/Quote"):
                method = xml_require_attribute(quote_node, "method", "rate", payload)
                quote[method] = _shipwire_parse_quote(quote_node, payload)
            warnings.extend(xml_element_text(warning) for warning in order.findall("Warnings/Warning"))

    success = params.get("status") == _SHIPWIRE_RATE_OK_STATUS
    return FulfillmentResponse(
        success=success,
        message=_shipwire_message(ShipwireOperation.RATE, success, params),
        params=params,
        quote=quote,
        warnings=tuple(warnings),
        test=config.test_mode,
    )


def _shipwire_parse_quote(quote_node: element_tree.Element, payload: bytes) -> dict[str, Any]:
    """Extract one quote's warehouse, service, cost, subtotals and delivery window."""

    cost = xml_require_child(quote_node, "Cost", "rate", payload)
    subtotals: dict[str, str] = {}
    for subtotal in quote_node.findall("Subtotals/Subtotal"):
        subtotal_type = xml_require_attribute(subtotal, "type", "rate", payload).lower()
        subtotal_cost = xml_require_child(subtotal, "Cost", "rate", payload)
        subtotals[subtotal_type] = xml_require_attribute(subtotal_cost, "originalCost", "rate", payload)
    estimate = xml_require_child(quote_node, "DeliveryEstimate", "rate", payload)
    return {
        "warehouse": xml_element_text(quote_node.find("Warehouse")),
        "service": xml_element_text(quote_node.find("Service")),
        "cost": {
            "total": xml_require_attribute(cost, "originalCost", "rate", payload),
            "currency": xml_require_attribute(cost, "currency", "rate", payload),
        },
        "subtotal": subtotals,
        "estimate": {
            "min_day": xml_element_text(estimate.find("Minimum")),
            "max_day": xml_element_text(estimate.find("Maximum")),
        },
    }


def _shipwire_parse_reply_root(payload: bytes, operation: ShipwireOperation) -> element_tree.Element:
    """Parse a reply and check its root element and `Status` child."""

    root = xml_parse_document(payload, context_label=operation.value)
    expected_root = _SHIPWIRE_REPLY_ROOTS[operation]
    if root.tag != expected_root:
        raise FulfillmentMalformedResponseError(
            f"{operation.value} response root is {root.tag}, expected {expected_root}",
            payload=payload,
        )
    xml_require_child(root, "Status", operation.value, payload)
    return root


def _shipwire_collect_child_params(root: element_tree.Element) -> dict[str, Any]:
    return {domain_snake_case(node.tag): xml_element_text(node) for node in root}


def _shipwire_message(operation: ShipwireOperation, success: bool, params: dict[str, Any]) -> str:
    if success:
        return _SHIPWIRE_SUCCESS_MESSAGES[operation]
    return adapter_message_or_fallback(
        params.get("error_message"),
        f"Shipwire {operation.value} request failed with status {params.get('status') or 'UNKNOWN'}",
    )


def _shipwire_add_credentials(root: element_tree.Element, config: ShipwireCodecConfig) -> None:
    element_tree.SubElement(root, "EmailAddress").text = config.login
    element_tree.SubElement(root, "Password").text = config.password
    element_tree.SubElement(root, "Server").text = "Test" if config.test_mode else "Production"
    if config.affiliate_id:
        element_tree.SubElement(root, "AffiliateId").text = config.affiliate_id


def _shipwire_add_order(root: element_tree.Element, request: FulfillmentRequest, rate_mode: bool) -> None:
    """Append the `Order` element shared by order list and rate documents.

    Args:
        root: Document root.
        request: Canonical order request.
        rate_mode: Omit recipient identity and allow a missing shipping method.

    Returns:
        None: Mutates the document tree.

    Raises:
        FulfillmentValidationError: Raised when required order input is missing.
    """

    options = request.options
    shipping_code = shipwire_resolve_shipping_method(options.shipping_method, rate_mode=rate_mode)
    shipwire_validate_line_items(request.line_items)

    order = element_tree.SubElement(root, "Order", {"id": str(request.order_id)})
    element_tree.SubElement(order, "Warehouse").text = options.warehouse or SHIPWIRE_ANY_WAREHOUSE
    _shipwire_add_address(order, request.shipping_address, rate_mode=rate_mode)
    if shipping_code is not None:
        element_tree.SubElement(order, "Shipping").text = shipping_code
    for index, line_item in enumerate(request.line_items):
        item = element_tree.SubElement(order, "Item", {"num": str(index)})
        element_tree.SubElement(item, "Code").text = (line_item.sku or "").strip()
        element_tree.SubElement(item, "Quantity").text = str(line_item.quantity if line_item.quantity is not None else 1)
    note = element_tree.SubElement(order, "Note")
    if options.note:
        note.text = options.note


def _shipwire_add_address(order: element_tree.Element, address: Address, rate_mode: bool) -> None:
    required_fields = ("city", "country", "zip") if rate_mode else ("name", "city", "country", "zip")
    missing_fields = address.address_missing_fields(required_fields)
    if missing_fields:
        raise FulfillmentValidationError(f"shipping address is missing required fields: {', '.join(missing_fields)}")

    address_info = element_tree.SubElement(order, "AddressInfo", {"type": "Ship"})
    if not rate_mode:
        name = element_tree.SubElement(address_info, "Name")
        element_tree.SubElement(name, "Full").text = address.name
    element_tree.SubElement(address_info, "Address1").text = address.address1 or ""
    element_tree.SubElement(address_info, "Address2").text = address.address2 or ""
    if not rate_mode and address.company:
        element_tree.SubElement(address_info, "Company").text = address.company
    element_tree.SubElement(address_info, "City").text = address.city
    if address.state:
        element_tree.SubElement(address_info, "State").text = address.state
    element_tree.SubElement(address_info, "Country").text = address.country
    element_tree.SubElement(address_info, "Zip").text = address.zip
    if not rate_mode:
        if address.phone:
            element_tree.SubElement(address_info, "Phone").text = address.phone
        if address.email:
            element_tree.SubElement(address_info, "Email").text = address.email


def _shipwire_serialize_document(root: element_tree.Element, operation: ShipwireOperation) -> str:
    element_tree.indent(root, space="  ")
    body = element_tree.tostring(root, encoding="unicode")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<!DOCTYPE {root.tag} SYSTEM "{SHIPWIRE_SCHEMA_URLS[operation]}">\n'
        f"{body}\n"
    )


__all__ = [
    "SHIPWIRE_INVALID_LOGIN_PATTERN",
    "SHIPWIRE_MAX_PRODUCT_CODE_LENGTH",
    "SHIPWIRE_POST_VARIABLES",
    "SHIPWIRE_SCHEMA_URLS",
    "SHIPWIRE_SERVICE_URLS",
    "SHIPWIRE_SHIPPING_METHODS",
    "SHIPWIRE_WAREHOUSES",
    "ShipwireCodecConfig",
    "ShipwireOperation",
    "shipwire_build_fulfillment_document",
    "shipwire_build_inventory_document",
    "shipwire_build_rate_document",
    "shipwire_build_tracking_document",
    "shipwire_encode_form_body",
    "shipwire_parse_fulfillment_response",
    "shipwire_parse_inventory_response",
    "shipwire_parse_rate_response",
    "shipwire_parse_response",
    "shipwire_parse_tracking_response",
    "shipwire_resolve_shipping_method",
    "shipwire_validate_line_items",
]
