"""Failed-response builders shared by provider clients."""

from __future__ import annotations

from typing import Any, Mapping

from fulfillment.domain import FulfillmentResponse, domain_normalize_message

from .errors import (
    FulfillmentMalformedResponseError,
    FulfillmentProviderError,
    FulfillmentTransportError,
)


def adapter_decode_body(payload: bytes) -> str:
    """Decode a raw body for diagnostics without failing on bad bytes."""

    return payload.decode("utf-8", errors="replace")


def adapter_message_or_fallback(message: str | None, fallback_message: str) -> str:
    """Return the normalized message, or the normalized fallback when blank.

    Args:
        message: Provider-supplied message text.
        fallback_message: Message used when provider text is blank.

    Returns:
        str: Non-empty normalized message.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return domain_normalize_message(message) or domain_normalize_message(fallback_message) or "Unknown error"


def adapter_failed_response_from_transport(
    error: FulfillmentTransportError,
    test: bool = False,
) -> FulfillmentResponse:
    """Convert a transport failure without a structured fault into a failed response.

    The raw status and body are preserved as diagnostic params.

    Args:
        error: Transport failure raised by the transport port.
        test: Test-environment marker of the calling client.

    Returns:
        FulfillmentResponse: Failed canonical response.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    params: dict[str, Any] = {"response_status": "Failure"}
    if error.status_code is None:
        message = adapter_message_or_fallback(error.reason, str(error))
        params["response_comment"] = message
        return FulfillmentResponse(success=False, message=message, params=params, test=test)

    params["http_code"] = str(error.status_code)
    params["http_message"] = error.reason
    params["http_body"] = adapter_decode_body(error.body)
    params["response_comment"] = f"{error.status_code}: {error.reason}".strip()
    message = adapter_message_or_fallback(params["response_comment"], str(error))
    return FulfillmentResponse(success=False, message=message, params=params, test=test)


def adapter_failed_response_from_provider(
    error: FulfillmentProviderError,
    test: bool = False,
) -> FulfillmentResponse:
    """Convert a parsed provider fault into a failed response.

    Args:
        error: Provider fault carrying parsed params.
        test: Test-environment marker of the calling client.

    Returns:
        FulfillmentResponse: Failed canonical response.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    message = adapter_message_or_fallback(str(error), f"Provider fault {error.error_code or 'UNKNOWN'}")
    return FulfillmentResponse(success=False, message=message, params=error.params, test=test)


def adapter_failed_response_from_malformed(
    error: FulfillmentMalformedResponseError,
    extra_params: Mapping[str, Any] | None = None,
    test: bool = False,
) -> FulfillmentResponse:
    """Convert an unparseable or wrongly-shaped reply into a failed response.

    Args:
        error: Malformed-response failure raised by a codec.
        extra_params: Additional diagnostic params.
        test: Test-environment marker of the calling client.

    Returns:
        FulfillmentResponse: Failed canonical response with the raw body attached.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    params: dict[str, Any] = {
        "response_status": "Failure",
        "http_body": adapter_decode_body(error.payload),
    }
    params.update(extra_params or {})
    message = adapter_message_or_fallback(str(error), "Malformed provider response")
    return FulfillmentResponse(success=False, message=message, params=params, test=test)


__all__ = [
    "adapter_decode_body",
    "adapter_failed_response_from_malformed",
    "adapter_failed_response_from_provider",
    "adapter_failed_response_from_transport",
    "adapter_message_or_fallback",
]
