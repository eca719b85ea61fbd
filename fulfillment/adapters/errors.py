"""Project-native typed exceptions for fulfillment adapter failures."""

from __future__ import annotations

from typing import Any, Mapping


class FulfillmentAdapterError(Exception):
    """Base exception for adapter-level fulfillment failures.

    Attributes:
        error_code: Optional provider or transport error code.
    """

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


class FulfillmentValidationError(FulfillmentAdapterError, ValueError):
    """Required canonical input is missing or invalid; no request was sent."""


class FulfillmentOperationError(FulfillmentAdapterError, LookupError):
    """Codec was asked for an operation it does not implement."""


class FulfillmentTransportError(FulfillmentAdapterError, ConnectionError):
    """Transport-level connectivity failure or non-success HTTP status.

    Attributes:
        status_code: HTTP status code, or None when no response was received.
        reason: HTTP reason phrase or transport failure description.
        body: Raw response body, empty when no response was received.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reason: str = "",
        body: bytes = b"",
    ):
        super().__init__(message=message, error_code=str(status_code) if status_code is not None else None)
        self.status_code = status_code
        self.reason = reason
        self.body = body


class FulfillmentTransportTimeoutError(FulfillmentTransportError, TimeoutError):
    """Transport request exceeded the configured timeout."""


class FulfillmentProviderError(FulfillmentAdapterError, RuntimeError):
    """Well-formed provider reply that reports a failure.

    Attributes:
        params: Parsed fault fields for diagnostics.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        params: Mapping[str, Any] | None = None,
    ):
        super().__init__(message=message, error_code=error_code)
        self.params = dict(params or {})


class FulfillmentMalformedResponseError(FulfillmentAdapterError, RuntimeError):
    """Provider reply body does not match the expected wire format.

    Attributes:
        payload: Raw reply body that failed to parse.
    """

    def __init__(self, message: str, payload: bytes = b""):
        super().__init__(message=message)
        self.payload = payload
