"""Pooled httpx transport used by provider clients."""

from __future__ import annotations

from typing import Final, Mapping

import httpx

from .errors import FulfillmentTransportError, FulfillmentTransportTimeoutError
from .interfaces import FulfillmentTransportPort, TransportResponse


class HttpxTransport(FulfillmentTransportPort):
    """Transport implementation backed by one reusable `httpx.Client`."""

    _DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0

    def __init__(self, request_timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS):
        """Initialize transport with a pooled HTTP client.

        Args:
            request_timeout_seconds: Per-request timeout in seconds.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when timeout is not positive.
        """

        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._client = httpx.Client(timeout=request_timeout_seconds)

    def transport_post(self, url: str, body: str, headers: Mapping[str, str]) -> TransportResponse:
        """Send one HTTP POST and return the raw 2xx reply.

        Args:
            url: Absolute endpoint URL.
            body: Form-encoded request body.
            headers: Request headers.

        Returns:
            TransportResponse: Raw reply.

        Raises:
            FulfillmentTransportError: Raised for connection failures and non-2xx status.
            FulfillmentTransportTimeoutError: Raised when the request times out.
        """

        try:
            response = self._client.post(url, content=body.encode("utf-8"), headers=dict(headers))
        except httpx.TimeoutException as error:
            raise FulfillmentTransportTimeoutError(f"Fulfillment transport request timed out: {url}") from error
        except httpx.HTTPError as error:
            raise FulfillmentTransportError(f"Fulfillment transport request failed: {url}", reason=str(error)) from error
        return self._transport_check_status(url=url, response=response)

    def transport_get(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        """Send one HTTP GET and return the raw 2xx reply.

        Args:
            url: Absolute endpoint URL including query string.
            headers: Request headers.

        Returns:
            TransportResponse: Raw reply.

        Raises:
            FulfillmentTransportError: Raised for connection failures and non-2xx status.
            FulfillmentTransportTimeoutError: Raised when the request times out.
        """

        try:
            response = self._client.get(url, headers=dict(headers))
        except httpx.TimeoutException as error:
            raise FulfillmentTransportTimeoutError(f"Fulfillment transport request timed out: {url}") from error
        except httpx.HTTPError as error:
            raise FulfillmentTransportError(f"Fulfillment transport request failed: {url}", reason=str(error)) from error
        return self._transport_check_status(url=url, response=response)

    def transport_close(self) -> None:
        """Release pooled connections."""

        self._client.close()

    def _transport_check_status(self, url: str, response: httpx.Response) -> TransportResponse:
        """Convert an httpx reply into a transport result, rejecting non-2xx status.

        Args:
            url: Requested URL for error messages.
            response: Raw httpx response.

        Returns:
            TransportResponse: Immutable transport reply.

        Raises:
            FulfillmentTransportError: Raised when status is outside 2xx.
        """

        status_code = int(response.status_code)
        payload = bytes(response.content)
        if status_code < 200 or status_code >= 300:
            raise FulfillmentTransportError(
                f"Fulfillment upstream returned HTTP {status_code}: {url}",
                status_code=status_code,
                reason=response.reason_phrase or "",
                body=payload,
            )
        return TransportResponse(status_code=status_code, body=payload, headers=dict(response.headers))
