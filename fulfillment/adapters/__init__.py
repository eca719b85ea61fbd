"""Adapter layer package for fulfillment provider integration boundaries."""

from .errors import (
    FulfillmentAdapterError,
    FulfillmentMalformedResponseError,
    FulfillmentOperationError,
    FulfillmentProviderError,
    FulfillmentTransportError,
    FulfillmentTransportTimeoutError,
    FulfillmentValidationError,
)
from .interfaces import FulfillmentServicePort, FulfillmentTransportPort, TransportResponse
from .mws_service import AmazonMwsFulfillmentService
from .shipwire_service import ShipwireFulfillmentService
from .transport import HttpxTransport

__all__ = [
    "AmazonMwsFulfillmentService",
    "FulfillmentAdapterError",
    "FulfillmentMalformedResponseError",
    "FulfillmentOperationError",
    "FulfillmentProviderError",
    "FulfillmentServicePort",
    "FulfillmentTransportError",
    "FulfillmentTransportPort",
    "FulfillmentTransportTimeoutError",
    "FulfillmentValidationError",
    "HttpxTransport",
    "ShipwireFulfillmentService",
    "TransportResponse",
]
