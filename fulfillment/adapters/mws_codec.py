"""Amazon MWS query-parameter codec.

Builds the parameter maps for each MWS action and parses the XML replies into
canonical `FulfillmentResponse` objects. Signing lives in `mws_signing`; this
module performs no I/O.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as element_tree
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Final, Mapping

from fulfillment.domain import Address, FulfillmentOptions, FulfillmentRequest, FulfillmentResponse, LineItem

from .errors import (
    FulfillmentMalformedResponseError,
    FulfillmentOperationError,
    FulfillmentProviderError,
    FulfillmentValidationError,
)
from .mws_signing import MWS_SIGNATURE_METHOD, MWS_SIGNATURE_VERSION
from .responses import adapter_decode_body, adapter_message_or_fallback
from .xml_documents import xml_element_text, xml_parse_document, xml_require_child, xml_try_parse_document


class MwsAction(str, Enum):
    """MWS actions issued by the fulfillment client."""

    CREATE_FULFILLMENT_ORDER = "CreateFulfillmentOrder"
    LIST_INVENTORY_SUPPLY = "ListInventorySupply"
    LIST_INVENTORY_SUPPLY_BY_NEXT_TOKEN = "ListInventorySupplyByNextToken"
    GET_FULFILLMENT_ORDER = "GetFulfillmentOrder"
    GET_SERVICE_STATUS = "GetServiceStatus"
    LIST_ALL_FULFILLMENT_ORDERS = "ListAllFulfillmentOrders"


MWS_API_VERSION: Final[str] = "2010-10-01"
MWS_APPLICATION_IDENTIFIER: Final[str] = "fulfillment-adapters/1.0 (Language=Python)"
MWS_SUCCESS_STATUS: Final[str] = "Accepted"
MWS_FAILURE_STATUS: Final[str] = "Failure"

MWS_ENDPOINTS: Final[dict[str, str]] = {
    "ca": "mws.amazonservices.ca",
    "cn": "mws.amazonservices.com.cn",
    "de": "mws-eu.amazonservices.com",
    "es": "mws-eu.amazonservices.com",
    "fr": "mws-eu.amazonservices.com",
    "it": "mws-eu.amazonservices.com",
    "jp": "mws.amazonservices.jp",
    "uk": "mws-eu.amazonservices.com",
    "us": "mws.amazonservices.com",
}

# Standard 3-5 business days, Expedited 2, Priority 1.
MWS_SHIPPING_METHODS: Final[dict[str, str]] = {
    "Standard Shipping": "Standard",
    "Expedited Shipping": "Expedited",
    "Priority Shipping": "Priority",
}

MWS_ADDRESS_FIELDS: Final[dict[str, str]] = {
    "name": "DestinationAddress.Name",
    "address1": "DestinationAddress.Line1",
    "address2": "DestinationAddress.Line2",
    "city": "DestinationAddress.City",
    "state": "DestinationAddress.StateOrProvinceCode",
    "country": "DestinationAddress.CountryCode",
    "zip": "DestinationAddress.PostalCode",
    "phone": "DestinationAddress.PhoneNumber",
}

MWS_LINE_ITEM_FIELDS: Final[dict[str, str]] = {
    "comment": "Items.member.{index}.DisplayableComment",
    "gift_message": "Items.member.{index}.GiftMessage",
    "currency_code": "Items.member.{index}.PerUnitDeclaredValue.CurrencyCode",
    "declared_value": "Items.member.{index}.PerUnitDeclaredValue.Value",
    "network_sku": "Items.member.{index}.FulfillmentNetworkSKU",
    "disposition": "Items.member.{index}.OrderItemDisposition",
}
_MWS_ITEM_SKU_KEY: Final[str] = "Items.member.{index}.SellerSKU"
_MWS_ITEM_ID_KEY: Final[str] = "Items.member.{index}.SellerFulfillmentOrderItemId"
_MWS_ITEM_QUANTITY_KEY: Final[str] = "Items.member.{index}.Quantity"
_MWS_LIST_INVENTORY_SKU_KEY: Final[str] = "SellerSkus.member.{index}"

_MWS_REQUIRED_ADDRESS_FIELDS: Final[tuple[str, ...]] = ("name", "address1", "city", "country", "zip")
_MWS_MAX_NAME_LENGTH: Final[int] = 50
_MWS_DEFAULT_STATE: Final[str] = "N/A"
_MWS_DEFAULT_RESPONSE_GROUP: Final[str] = "Basic"
_MWS_DEFAULT_LOOKBACK: Final[timedelta] = timedelta(days=1)
_MWS_SERVICE_DOWN_STATUS: Final[str] = "RED"
_MWS_ORDER_NOT_FOUND_PATTERN: Final[re.Pattern[str]] = re.compile(r"^Requested order '.+' not found$")

_MWS_REPLY_ROOTS: Final[dict[MwsAction, str]] = {action: f"{action.value}Response" for action in MwsAction}


@dataclass(frozen=True)
class MwsCodecConfig:
    """Account configuration consumed while building request parameters.

    Attributes:
        access_key_id: AWS access key id.
        secret_key: Secret key used for signing.
        seller_id: Optional merchant id.
        auth_token: Optional MWS authorization token for delegated access.
        app_id: Optional registered application id.
        region: Region code selecting the endpoint host.
    """

    access_key_id: str
    secret_key: str
    seller_id: str | None = None
    auth_token: str | None = None
    app_id: str | None = None
    region: str = "us"


def mws_format_timestamp(value: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with second precision and `Z` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def mws_endpoint_url(region: str, action: MwsAction) -> str:
    """Return the absolute action URL for a region.

    Args:
        region: Region code from `MWS_ENDPOINTS`.
        action: MWS action.

    Returns:
        str: `https://{host}/{Action}/{version}` URL.

    Raises:
        FulfillmentValidationError: Raised for an unknown region code.
    """

    host = MWS_ENDPOINTS.get(region.strip().lower())
    if host is None:
        raise FulfillmentValidationError(f"unknown MWS region: {region}")
    return f"https://{host}/{action.value}/{MWS_API_VERSION}"


def mws_build_basic_query(
    config: MwsCodecConfig,
    action_params: Mapping[str, object],
    now: datetime,
) -> dict[str, str]:
    """Merge operation parameters with the boilerplate every request carries.

    Values supplied in `action_params` take precedence over boilerplate.

    Args:
        config: Account configuration.
        action_params: Operation-specific parameters including `Action`.
        now: Request timestamp.

    Returns:
        dict[str, str]: Unsigned request parameters.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    params = {str(key): str(value) for key, value in action_params.items()}
    params.setdefault("AWSAccessKeyId", config.access_key_id)
    params.setdefault("Timestamp", mws_format_timestamp(now))
    params.setdefault("Version", MWS_API_VERSION)
    params.setdefault("SignatureMethod", MWS_SIGNATURE_METHOD)
    params.setdefault("SignatureVersion", MWS_SIGNATURE_VERSION)
    if config.seller_id:
        params.setdefault("SellerId", config.seller_id)
    if config.auth_token:
        params.setdefault("MWSAuthToken", config.auth_token)
    return params


def mws_build_address(address: Address) -> dict[str, str]:
    """Map a canonical address onto `DestinationAddress.*` parameters.

    Args:
        address: Destination address.

    Returns:
        dict[str, str]: Address parameters for present values only.

    Raises:
        FulfillmentValidationError: Raised when name, address1, city, country or zip is missing.
    """

    missing_fields = address.address_missing_fields(_MWS_REQUIRED_ADDRESS_FIELDS)
    if missing_fields:
        raise FulfillmentValidationError(f"shipping address is missing required fields: {', '.join(missing_fields)}")

    name = address.name or ""
    if address.company:
        name = f"{address.company} - {name}"
    values = {
        "name": name[:_MWS_MAX_NAME_LENGTH],
        "address1": address.address1,
        "address2": address.address2,
        "city": address.city,
        "state": address.state or _MWS_DEFAULT_STATE,
        "country": address.country,
        "zip": (address.zip or "").upper(),
        "phone": address.phone,
    }
    return {MWS_ADDRESS_FIELDS[key]: value for key, value in values.items() if value}


def mws_build_items(line_items: Sequence[LineItem]) -> dict[str, str]:
    """Map line items onto 1-based `Items.member.N.*` parameters.

    Args:
        line_items: Ordered line items.

    Returns:
        dict[str, str]: Item parameters.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    params: dict[str, str] = {}
    for index, line_item in enumerate(line_items, start=1):
        params[_MWS_ITEM_SKU_KEY.format(index=index)] = line_item.sku or f"SKU-{index}"
        params[_MWS_ITEM_ID_KEY.format(index=index)] = line_item.sku or f"FULFILLMENT-ITEM-ID-{index}"
        params[_MWS_ITEM_QUANTITY_KEY.format(index=index)] = str(
            line_item.quantity if line_item.quantity is not None else 1
        )
        for field_name, key_template in MWS_LINE_ITEM_FIELDS.items():
            value = getattr(line_item, field_name)
            if value is not None:
                params[key_template.format(index=index)] = str(value)
    return params


def mws_resolve_shipping_method(value: str | None) -> str:
    """Resolve a shipping speed label or code to the wire category.

    Raises:
        FulfillmentValidationError: Raised when missing or unknown.
    """

    normalized_value = (value or "").strip()
    if not normalized_value:
        raise FulfillmentValidationError("shipping_method is required to submit an MWS fulfillment order")
    if normalized_value in MWS_SHIPPING_METHODS:
        return MWS_SHIPPING_METHODS[normalized_value]
    if normalized_value in MWS_SHIPPING_METHODS.values():
        return normalized_value
    raise FulfillmentValidationError(f"unknown MWS shipping method: {normalized_value}")


def mws_build_fulfillment_request(
    config: MwsCodecConfig,
    request: FulfillmentRequest,
    now: datetime,
) -> dict[str, str]:
    """Build `CreateFulfillmentOrder` parameters.

    Args:
        config: Account configuration.
        request: Canonical order request; `order_date` and `shipping_method` are required.
        now: Request timestamp.

    Returns:
        dict[str, str]: Unsigned request parameters.

    Raises:
        FulfillmentValidationError: Raised before any network call when input is incomplete.
    """

    options = request.options
    if options.order_date is None:
        raise FulfillmentValidationError("order_date is required to submit an MWS fulfillment order")
    shipping_category = mws_resolve_shipping_method(options.shipping_method)

    action_params: dict[str, object] = {
        "Action": MwsAction.CREATE_FULFILLMENT_ORDER.value,
        "SellerFulfillmentOrderId": str(request.order_id),
        "DisplayableOrderId": str(request.order_id),
        "DisplayableOrderDateTime": mws_format_timestamp(options.order_date),
        "ShippingSpeedCategory": shipping_category,
    }
    if options.comment:
        action_params["DisplayableOrderComment"] = options.comment

    params = mws_build_basic_query(config, action_params, now)
    params.update(mws_build_address(request.shipping_address))
    params.update(mws_build_items(request.line_items))
    return params


def mws_build_inventory_list_request(
    config: MwsCodecConfig,
    options: FulfillmentOptions,
    now: datetime,
) -> dict[str, str]:
    """Build `ListInventorySupply` parameters for a SKU list or a time window.

    Args:
        config: Account configuration.
        options: `skus` or `sku` selects SKU mode; otherwise `query_start_time`
            (default 24 hours before `now`) selects window mode.
        now: Request timestamp.

    Returns:
        dict[str, str]: Unsigned request parameters.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    action_params: dict[str, object] = {
        "Action": MwsAction.LIST_INVENTORY_SUPPLY.value,
        "ResponseGroup": options.response_group or _MWS_DEFAULT_RESPONSE_GROUP,
    }
    skus = tuple(options.skus) or ((options.sku,) if options.sku else ())
    if skus:
        for index, sku in enumerate(skus, start=1):
            action_params[_MWS_LIST_INVENTORY_SKU_KEY.format(index=index)] = sku
    else:
        start_time = options.query_start_time or (now - _MWS_DEFAULT_LOOKBACK)
        action_params["QueryStartDateTime"] = mws_format_timestamp(start_time)
    return mws_build_basic_query(config, action_params, now)


def mws_build_next_inventory_list_request(config: MwsCodecConfig, token: str, now: datetime) -> dict[str, str]:
    """Build the follow-up page request keyed solely by the continuation token."""

    return mws_build_basic_query(
        config,
        {"Action": MwsAction.LIST_INVENTORY_SUPPLY_BY_NEXT_TOKEN.value, "NextToken": token},
        now,
    )


def mws_build_tracking_request(config: MwsCodecConfig, order_id: str, now: datetime) -> dict[str, str]:
    """Build `GetFulfillmentOrder` parameters for one order."""

    return mws_build_basic_query(
        config,
        {"Action": MwsAction.GET_FULFILLMENT_ORDER.value, "SellerFulfillmentOrderId": str(order_id)},
        now,
    )


def mws_build_service_status_request(config: MwsCodecConfig, now: datetime) -> dict[str, str]:
    """Build `GetServiceStatus` parameters."""

    return mws_build_basic_query(config, {"Action": MwsAction.GET_SERVICE_STATUS.value}, now)


def mws_build_current_orders_request(
    config: MwsCodecConfig,
    start_time: datetime | None,
    now: datetime,
) -> dict[str, str]:
    """Build `ListAllFulfillmentOrders` parameters, defaulting to the last 24 hours."""

    return mws_build_basic_query(
        config,
        {
            "Action": MwsAction.LIST_ALL_FULFILLMENT_ORDERS.value,
            "QueryStartDateTime": mws_format_timestamp(start_time or (now - _MWS_DEFAULT_LOOKBACK)),
        },
        now,
    )


def mws_parse_response(action: MwsAction, payload: bytes) -> FulfillmentResponse:
    """Parse one raw reply of the given action.

    Args:
        action: Action the reply belongs to.
        payload: Raw reply bytes.

    Returns:
        FulfillmentResponse: Canonical result.

    Raises:
        FulfillmentProviderError: Raised when the reply is an `ErrorResponse` envelope.
        FulfillmentMalformedResponseError: Raised when the reply does not match the action shape.
        FulfillmentOperationError: Raised for an action without a reply parser.
    """

    if action == MwsAction.CREATE_FULFILLMENT_ORDER:
        return mws_parse_fulfillment_response(payload)
    if action in (MwsAction.LIST_INVENTORY_SUPPLY, MwsAction.LIST_INVENTORY_SUPPLY_BY_NEXT_TOKEN):
        return mws_parse_inventory_response(payload, action)
    if action == MwsAction.GET_FULFILLMENT_ORDER:
        return mws_parse_tracking_response(payload)
    if action == MwsAction.GET_SERVICE_STATUS:
        return mws_parse_service_status_response(payload)
    if action == MwsAction.LIST_ALL_FULFILLMENT_ORDERS:
        return mws_parse_current_orders_response(payload)
    raise FulfillmentOperationError(f"Unknown MWS action {action!r}")


def mws_parse_fulfillment_response(payload: bytes) -> FulfillmentResponse:
    """Parse a `CreateFulfillmentOrderResponse`; an accepted reply carries no body fields."""

    root = _mws_parse_reply_root(payload, MwsAction.CREATE_FULFILLMENT_ORDER)
    message = "Successfully submitted the order"
    params: dict[str, Any] = {"response_status": MWS_SUCCESS_STATUS, "response_comment": message}
    request_id = xml_element_text(root.find(".//ResponseMetadata/RequestId"))
    if request_id:
        params["request_id"] = request_id
    return FulfillmentResponse(success=True, message=message, params=params)


def mws_parse_inventory_response(
    payload: bytes,
    action: MwsAction = MwsAction.LIST_INVENTORY_SUPPLY,
) -> FulfillmentResponse:
    """Parse one inventory supply page.

    Args:
        payload: Raw reply bytes.
        action: First-page or next-token action.

    Returns:
        FulfillmentResponse: Page result with `stock_levels` and `next_token`.

    Raises:
        FulfillmentMalformedResponseError: Raised when a supply member lacks its SKU.
    """

    root = _mws_parse_reply_root(payload, action)
    stock_levels: dict[str, int] = {}
    for supply_list in root.iter("InventorySupplyList"):
        for member in supply_list.findall("member"):
            sku = xml_element_text(xml_require_child(member, "SellerSKU", "inventory", payload))
            quantity_text = xml_element_text(member.find("InStockSupplyQuantity")) or "0"
            try:
                stock_levels[sku] = int(quantity_text)
            except ValueError as error:
                raise FulfillmentMalformedResponseError(
                    f"inventory response contains non-numeric quantity {quantity_text!r}",
                    payload=payload,
                ) from error

    next_token = xml_element_text(root.find(".//NextToken")) or None
    params: dict[str, Any] = {"response_status": MWS_SUCCESS_STATUS, "next_token": next_token}
    return FulfillmentResponse(
        success=True,
        message="Successfully received the stock levels",
        params=params,
        stock_levels=stock_levels,
        next_token=next_token,
    )


def mws_parse_tracking_response(payload: bytes) -> FulfillmentResponse:
    """Parse a `GetFulfillmentOrderResponse` into per-order tracking data.

    Args:
        payload: Raw reply bytes.

    Returns:
        FulfillmentResponse: Result keyed by the seller fulfillment order id.

    Raises:
        FulfillmentMalformedResponseError: Raised when packages exist without an order id.
    """

    root = _mws_parse_reply_root(payload, MwsAction.GET_FULFILLMENT_ORDER)
    tracking_numbers = tuple(
        xml_element_text(node) for node in root.findall(".//FulfillmentShipmentPackage/member/TrackingNumber")
    )
    carrier_codes = tuple(
        xml_element_text(node) for node in root.findall(".//FulfillmentShipmentPackage/member/CarrierCode")
    )

    params: dict[str, Any] = {"response_status": MWS_SUCCESS_STATUS}
    order_status = xml_element_text(root.find(".//FulfillmentOrder/FulfillmentOrderStatus"))
    if order_status:
        params["fulfillment_order_status"] = order_status

    tracking_number_map: dict[str, tuple[str, ...]] = {}
    tracking_company_map: dict[str, tuple[str, ...]] = {}
    if tracking_numbers or carrier_codes:
        order_id = xml_element_text(
            xml_require_child(root, ".//FulfillmentOrder/SellerFulfillmentOrderId", "tracking", payload)
        )
        if tracking_numbers:
            tracking_number_map[order_id] = tracking_numbers
        if carrier_codes:
            tracking_company_map[order_id] = carrier_codes

    return FulfillmentResponse(
        success=True,
        message="Successfully received the tracking numbers",
        params=params,
        tracking_numbers=tracking_number_map,
        tracking_companies=tracking_company_map,
    )


def mws_parse_service_status_response(payload: bytes) -> FulfillmentResponse:
    """Parse a `GetServiceStatusResponse`; only `RED` counts as unavailable."""

    root = _mws_parse_reply_root(payload, MwsAction.GET_SERVICE_STATUS)
    status = xml_element_text(xml_require_child(root, ".//Status", "service_status", payload))
    params: dict[str, Any] = {"response_status": MWS_SUCCESS_STATUS, "service_status": status}
    timestamp = xml_element_text(root.find(".//Timestamp"))
    if timestamp:
        params["timestamp"] = timestamp
    success = bool(status) and status != _MWS_SERVICE_DOWN_STATUS
    return FulfillmentResponse(
        success=success,
        message=f"Service status is {status or 'UNKNOWN'}",
        params=params,
    )


def mws_parse_current_orders_response(payload: bytes) -> FulfillmentResponse:
    """Parse a `ListAllFulfillmentOrdersResponse` into an order id to status mapping."""

    root = _mws_parse_reply_root(payload, MwsAction.LIST_ALL_FULFILLMENT_ORDERS)
    orders: dict[str, str] = {}
    for member in root.findall(".//FulfillmentOrders/member"):
        order_id = xml_element_text(xml_require_child(member, "SellerFulfillmentOrderId", "current_orders", payload))
        orders[order_id] = xml_element_text(member.find("FulfillmentOrderStatus"))
    next_token = xml_element_text(root.find(".//NextToken")) or None
    return FulfillmentResponse(
        success=True,
        message="Successfully received the current orders",
        params={"response_status": MWS_SUCCESS_STATUS, "orders": orders},
        next_token=next_token,
    )


def mws_build_fault_error(status_code: int, reason: str, body: bytes) -> FulfillmentProviderError:
    """Translate an HTTP error reply into a provider error carrying fault params.

    When the body holds an `Error` envelope, its code and message become the
    fault; otherwise the raw status and body are kept as diagnostic context.

    Args:
        status_code: HTTP status code.
        reason: HTTP reason phrase.
        body: Raw reply body.

    Returns:
        FulfillmentProviderError: Error whose message is the normalized fault text.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    params: dict[str, Any] = {"http_code": str(status_code), "http_message": reason}
    root = xml_try_parse_document(body, strip_namespaces=True)
    error_node = None
    if root is not None:
        error_node = root if root.tag == "Error" else root.find(".//Error")
    if error_node is None:
        params["http_body"] = adapter_decode_body(body)
        params["response_status"] = MWS_FAILURE_STATUS
        params["response_comment"] = f"{status_code}: {reason}".strip()
        return FulfillmentProviderError(
            adapter_message_or_fallback(params["response_comment"], f"HTTP {status_code}"),
            error_code=str(status_code),
            params=params,
        )
    return _mws_fault_error_from_node(error_node, params)


def mws_fault_is_order_not_found(error: FulfillmentProviderError) -> bool:
    """Return whether the fault reports an unknown order id."""

    return _MWS_ORDER_NOT_FOUND_PATTERN.match(str(error.params.get("faultstring", ""))) is not None


def _mws_fault_error_from_node(error_node: element_tree.Element, params: dict[str, Any]) -> FulfillmentProviderError:
    fault_code = xml_element_text(error_node.find("Code"))
    fault_string = xml_element_text(error_node.find("Message"))
    params["response_status"] = MWS_FAILURE_STATUS
    params["faultcode"] = fault_code
    params["faultstring"] = fault_string
    params["response_message"] = fault_string
    params["response_comment"] = f"{fault_code}: {fault_string}"
    return FulfillmentProviderError(
        adapter_message_or_fallback(fault_string, params["response_comment"]),
        error_code=fault_code or None,
        params=params,
    )


def _mws_parse_reply_root(payload: bytes, action: MwsAction) -> element_tree.Element:
    """Parse a reply, surface `ErrorResponse` envelopes and check the root element."""

    root = xml_parse_document(payload, context_label=action.value, strip_namespaces=True)
    if root.tag == "ErrorResponse":
        error_node = root.find(".//Error")
        if error_node is None:
            raise FulfillmentMalformedResponseError(f"{action.value} error response missing Error element", payload=payload)
        raise _mws_fault_error_from_node(error_node, {})
    expected_root = _MWS_REPLY_ROOTS[action]
    if root.tag != expected_root:
        raise FulfillmentMalformedResponseError(
            f"{action.value} response root is {root.tag}, expected {expected_root}",
            payload=payload,
        )
    return root


__all__ = [
    "MWS_ADDRESS_FIELDS",
    "MWS_API_VERSION",
    "MWS_APPLICATION_IDENTIFIER",
    "MWS_ENDPOINTS",
    "MWS_FAILURE_STATUS",
    "MWS_LINE_ITEM_FIELDS",
    "MWS_SHIPPING_METHODS",
    "MWS_SUCCESS_STATUS",
    "MwsAction",
    "MwsCodecConfig",
    "mws_build_address",
    "mws_build_basic_query",
    "mws_build_current_orders_request",
    "mws_build_fault_error",
    "mws_build_fulfillment_request",
    "mws_build_inventory_list_request",
    "mws_build_items",
    "mws_build_next_inventory_list_request",
    "mws_build_service_status_request",
    "mws_build_tracking_request",
    "mws_endpoint_url",
    "mws_fault_is_order_not_found",
    "mws_format_timestamp",
    "mws_parse_current_orders_response",
    "mws_parse_fulfillment_response",
    "mws_parse_inventory_response",
    "mws_parse_response",
    "mws_parse_service_status_response",
    "mws_parse_tracking_response",
    "mws_resolve_shipping_method",
]
