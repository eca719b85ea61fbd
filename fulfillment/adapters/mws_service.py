"""Amazon MWS fulfillment client implementation."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Callable, Mapping

from fulfillment.domain import (
    Address,
    FulfillmentOptions,
    FulfillmentRequest,
    FulfillmentResponse,
    LineItem,
    ThrottlePolicy,
    domain_merge_stock_level_pages,
    domain_merge_tracking_responses,
    domain_redact_secrets,
)

from .errors import (
    FulfillmentMalformedResponseError,
    FulfillmentProviderError,
    FulfillmentTransportError,
)
from .interfaces import FulfillmentServicePort, FulfillmentTransportPort
from .mws_codec import (
    MWS_APPLICATION_IDENTIFIER,
    MWS_SHIPPING_METHODS,
    MWS_SUCCESS_STATUS,
    MwsAction,
    MwsCodecConfig,
    mws_build_current_orders_request,
    mws_build_fault_error,
    mws_build_fulfillment_request,
    mws_build_inventory_list_request,
    mws_build_next_inventory_list_request,
    mws_build_service_status_request,
    mws_build_tracking_request,
    mws_endpoint_url,
    mws_fault_is_order_not_found,
    mws_parse_response,
)
from .mws_signing import (
    signing_build_registration_url,
    signing_build_signed_query,
    signing_content_md5,
    signing_verify_callback,
)
from .responses import (
    adapter_decode_body,
    adapter_failed_response_from_malformed,
    adapter_failed_response_from_provider,
    adapter_failed_response_from_transport,
)

logger = logging.getLogger(__name__)


class AmazonMwsFulfillmentService(FulfillmentServicePort):
    """Client for MWS Fulfillment Outbound and Fulfillment Inventory actions.

    Multi-call operations run strictly sequentially: stock level pagination
    follows continuation tokens, and tracking fetches one order per call with
    an optional caller-supplied throttle between calls.
    """

    def __init__(
        self,
        access_key_id: str,
        secret_key: str,
        transport: FulfillmentTransportPort,
        seller_id: str | None = None,
        auth_token: str | None = None,
        app_id: str | None = None,
        region: str = "us",
        sleep_provider: Callable[[float], None] | None = None,
        clock_provider: Callable[[], datetime] | None = None,
    ):
        """Initialize MWS client.

        Args:
            access_key_id: AWS access key id.
            secret_key: Secret key used for request signing.
            transport: HTTP transport port.
            seller_id: Optional merchant id.
            auth_token: Optional MWS authorization token.
            app_id: Optional registered application id.
            region: Region code selecting the endpoint host.
            sleep_provider: Optional sleep function used for tracking throttling.
            clock_provider: Optional provider of the current UTC time.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when credentials are blank or region is unknown.
        """

        normalized_access_key_id = access_key_id.strip()
        if not normalized_access_key_id:
            raise ValueError("access_key_id must not be blank")
        if not secret_key:
            raise ValueError("secret_key must not be blank")

        self._config = MwsCodecConfig(
            access_key_id=normalized_access_key_id,
            secret_key=secret_key,
            seller_id=(seller_id or "").strip() or None,
            auth_token=(auth_token or "").strip() or None,
            app_id=(app_id or "").strip() or None,
            region=region.strip().lower(),
        )
        # Fails fast on an unknown region code.
        mws_endpoint_url(self._config.region, MwsAction.GET_SERVICE_STATUS)
        self._transport = transport
        self._sleep_provider = sleep_provider or time.sleep
        self._clock_provider = clock_provider or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def adapter_shipping_methods() -> dict[str, str]:
        """Return supported shipping speed labels mapped to wire categories."""

        return dict(MWS_SHIPPING_METHODS)

    def adapter_source_name(self) -> str:
        """Return stable adapter source label."""

        return "amazon_mws"

    def adapter_submit_order(
        self,
        order_id: str,
        shipping_address: Address,
        line_items: Sequence[LineItem],
        options: FulfillmentOptions | None = None,
    ) -> FulfillmentResponse:
        """Create one fulfillment order.

        Args:
            order_id: Seller fulfillment order id.
            shipping_address: Destination address.
            line_items: Ordered line items.
            options: Per-call options; `order_date` and `shipping_method` are required.

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
        params = mws_build_fulfillment_request(self._config, request, self._clock_provider())
        return self._adapter_execute(MwsAction.CREATE_FULFILLMENT_ORDER, params)

    def adapter_fetch_stock_levels(self, options: FulfillmentOptions | None = None) -> FulfillmentResponse:
        """Fetch stock levels across every result page.

        A failed follow-up page is returned as the final result; stock levels
        accumulated from earlier pages are discarded.

        Args:
            options: `skus`/`sku` for a SKU query, otherwise a time-window query.

        Returns:
            FulfillmentResponse: Result with merged `stock_levels`.

        Raises:
            RuntimeError: This method converts runtime failures into failed responses.
        """

        response = self._adapter_execute(
            MwsAction.LIST_INVENTORY_SUPPLY,
            mws_build_inventory_list_request(self._config, options or FulfillmentOptions(), self._clock_provider()),
        )
        page_count = 1
        while response.success and response.next_token:
            page = self._adapter_execute(
                MwsAction.LIST_INVENTORY_SUPPLY_BY_NEXT_TOKEN,
                mws_build_next_inventory_list_request(self._config, response.next_token, self._clock_provider()),
            )
            page_count += 1
            if not page.success:
                logger.warning(
                    "[%s][stock_levels] page %d failed, discarding accumulated pages: %s",
                    self.adapter_source_name(),
                    page_count,
                    page.message,
                )
                return page
            response = domain_merge_stock_level_pages(response, page)
        return response

    def adapter_fetch_tracking(
        self,
        order_ids: Sequence[str],
        options: FulfillmentOptions | None = None,
    ) -> FulfillmentResponse:
        """Fetch tracking data one order at a time, in input order.

        The first failed order stops the loop and is returned as the result.

        Args:
            order_ids: Seller fulfillment order ids.
            options: Per-call options; `throttle` delays between calls.

        Returns:
            FulfillmentResponse: Result chaining every order's tracking data.

        Raises:
            RuntimeError: This method converts runtime failures into failed responses.
        """

        throttle = (options or FulfillmentOptions()).throttle
        chained_response: FulfillmentResponse | None = None
        for call_index, order_id in enumerate(order_ids, start=1):
            response = self._adapter_execute(
                MwsAction.GET_FULFILLMENT_ORDER,
                mws_build_tracking_request(self._config, order_id, self._clock_provider()),
            )
            if not response.success:
                return response
            if chained_response is not None:
                self._adapter_sleep_for_throttle(throttle, call_index)
                response = domain_merge_tracking_responses(chained_response, response)
            chained_response = response

        if chained_response is None:
            return _adapter_empty_tracking_response("No orders requested")
        return chained_response

    def adapter_fetch_service_status(self) -> FulfillmentResponse:
        """Return the MWS service health status."""

        return self._adapter_execute(
            MwsAction.GET_SERVICE_STATUS,
            mws_build_service_status_request(self._config, self._clock_provider()),
        )

    def adapter_fetch_current_orders(self, start_time: datetime | None = None) -> FulfillmentResponse:
        """List fulfillment orders updated since `start_time` (default 24 hours ago).

        Args:
            start_time: Query window start.

        Returns:
            FulfillmentResponse: Result with `params["orders"]` mapping order id to status.

        Raises:
            RuntimeError: This method converts runtime failures into failed responses.
        """

        return self._adapter_execute(
            MwsAction.LIST_ALL_FULFILLMENT_ORDERS,
            mws_build_current_orders_request(self._config, start_time, self._clock_provider()),
        )

    def adapter_validate_credentials(self) -> bool:
        """Return whether a stock level fetch succeeds with the configured credentials."""

        return self.adapter_fetch_stock_levels().success

    def adapter_registration_url(self, return_path_and_parameters: str) -> str:
        """Build the signed seller registration page URL.

        Args:
            return_path_and_parameters: Path the registration page redirects back to.

        Returns:
            str: Signed URL.

        Raises:
            ValueError: Raised when no application id is configured.
        """

        if not self._config.app_id:
            raise ValueError("app_id is required to build a registration URL")
        return signing_build_registration_url(
            access_key_id=self._config.access_key_id,
            app_id=self._config.app_id,
            secret=self._config.secret_key,
            return_path_and_parameters=return_path_and_parameters,
        )

    def adapter_verify_callback(
        self,
        verb: str,
        base_url: str,
        return_path_and_parameters: str,
        post_params: Mapping[str, str],
    ) -> bool:
        """Return whether an inbound callback carries a valid signature."""

        return signing_verify_callback(
            verb=verb,
            base_url=base_url,
            return_path_and_parameters=return_path_and_parameters,
            post_params=post_params,
            secret=self._config.secret_key,
        )

    def _adapter_execute(self, action: MwsAction, params: Mapping[str, str]) -> FulfillmentResponse:
        """Send one signed request and convert every failure into a response.

        Args:
            action: MWS action.
            params: Unsigned request parameters.

        Returns:
            FulfillmentResponse: Parsed result or failed result.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        try:
            payload = self._adapter_commit(action, params)
            return mws_parse_response(action, payload)
        except FulfillmentTransportError as error:
            logger.info(
                "[%s][ResponseError] response=%s, message=%s",
                self.adapter_source_name(),
                adapter_decode_body(error.body),
                error,
            )
            if error.status_code is None:
                return adapter_failed_response_from_transport(error)
            return self._adapter_handle_fault(mws_build_fault_error(error.status_code, error.reason, error.body))
        except FulfillmentProviderError as error:
            return self._adapter_handle_fault(error)
        except FulfillmentMalformedResponseError as error:
            logger.warning("[%s][%s] malformed response: %s", self.adapter_source_name(), action.value, error)
            return adapter_failed_response_from_malformed(error)

    def _adapter_commit(self, action: MwsAction, params: Mapping[str, str]) -> bytes:
        """Sign and POST one request.

        Args:
            action: MWS action.
            params: Unsigned request parameters.

        Returns:
            bytes: Raw reply body.

        Raises:
            FulfillmentTransportError: Raised for connection failures and non-2xx status.
        """

        url = mws_endpoint_url(self._config.region, action)
        query = signing_build_signed_query("POST", url, params, self._config.secret_key)
        signature = query.rsplit("&Signature=", 1)[-1]
        logger.info(
            "[%s][%s] query=%s",
            self.adapter_source_name(),
            action.value,
            domain_redact_secrets(
                query,
                (self._config.access_key_id, self._config.app_id, self._config.auth_token, signature),
            ),
        )
        reply = self._transport.transport_post(url, query, self._adapter_build_headers(query))
        logger.debug("[%s][%s] response=%s", self.adapter_source_name(), action.value, adapter_decode_body(reply.body))
        return reply.body

    def _adapter_build_headers(self, query: str) -> dict[str, str]:
        return {
            "User-Agent": MWS_APPLICATION_IDENTIFIER,
            "Content-MD5": signing_content_md5(query),
            "Content-Type": "application/x-www-form-urlencoded",
        }

    def _adapter_handle_fault(self, error: FulfillmentProviderError) -> FulfillmentResponse:
        """Translate a provider fault; an unknown order counts as no tracking yet."""

        if mws_fault_is_order_not_found(error):
            return _adapter_empty_tracking_response("No tracking data available for the requested order")
        return adapter_failed_response_from_provider(error)

    def _adapter_sleep_for_throttle(self, throttle: ThrottlePolicy | None, call_index: int) -> None:
        if throttle is None:
            return
        if throttle.throttle_should_sleep(call_index):
            self._sleep_provider(throttle.sleep_seconds)


def _adapter_empty_tracking_response(message: str) -> FulfillmentResponse:
    return FulfillmentResponse(
        success=True,
        message=message,
        params={"response_status": MWS_SUCCESS_STATUS},
        tracking_numbers={},
        tracking_companies={},
        tracking_urls={},
    )
