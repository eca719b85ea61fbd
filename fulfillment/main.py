"""Main module entrypoint for manual provider checks.

This module validates startup configuration, runs one canonical operation and
prints the canonical response as JSON.
"""

import argparse
import json
from collections.abc import Sequence

from fulfillment.adapters import AmazonMwsFulfillmentService, FulfillmentServicePort, HttpxTransport
from fulfillment.bootstrap import BOOTSTRAP_PROVIDERS, bootstrap_create_service
from fulfillment.config import config_configure_logging, config_load_settings
from fulfillment.domain import FulfillmentOptions, FulfillmentResponse


def main(argv: Sequence[str] | None = None) -> None:
    """Run selected provider command with validated startup configuration.

    Args:
        argv: Optional argument list; defaults to process arguments.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with status 1 when the operation fails.
    """

    argument_parser = argparse.ArgumentParser(description="Fulfillment adapters runtime entrypoint")
    argument_parser.add_argument("provider", choices=BOOTSTRAP_PROVIDERS, help="Fulfillment provider")
    command_parsers = argument_parser.add_subparsers(dest="command", required=True)
    command_parsers.add_parser("validate-credentials", help="Check the configured provider credentials")
    stock_parser = command_parsers.add_parser("stock-levels", help="Fetch stock levels")
    stock_parser.add_argument("--sku", dest="skus", action="append", default=[], help="SKU filter, repeatable")
    stock_parser.add_argument("--warehouse", dest="warehouse", type=str, help="Warehouse code filter")
    tracking_parser = command_parsers.add_parser("tracking", help="Fetch tracking data")
    tracking_parser.add_argument("order_ids", nargs="+", help="Order ids")
    command_parsers.add_parser("service-status", help="Fetch provider service status (amazon_mws only)")
    parsed_arguments = argument_parser.parse_args(argv)

    settings = config_load_settings()
    config_configure_logging(settings.log_level)
    transport = HttpxTransport(request_timeout_seconds=settings.request_timeout_seconds)
    try:
        service = bootstrap_create_service(parsed_arguments.provider, settings=settings, transport=transport)
        _main_run_command(argument_parser, parsed_arguments, service)
    finally:
        transport.transport_close()


def _main_run_command(
    argument_parser: argparse.ArgumentParser,
    parsed_arguments: argparse.Namespace,
    service: FulfillmentServicePort,
) -> None:
    """Dispatch one parsed command to the provider client."""

    if parsed_arguments.command == "validate-credentials":
        is_valid = service.adapter_validate_credentials()
        print(json.dumps({"provider": parsed_arguments.provider, "valid_credentials": is_valid}))
        if not is_valid:
            raise SystemExit(1)
        return

    if parsed_arguments.command == "stock-levels":
        skus = tuple(parsed_arguments.skus)
        options = FulfillmentOptions(
            warehouse=parsed_arguments.warehouse,
            sku=skus[0] if len(skus) == 1 else None,
            skus=skus,
        )
        main_print_response(service.adapter_fetch_stock_levels(options))
        return

    if parsed_arguments.command == "tracking":
        main_print_response(service.adapter_fetch_tracking(parsed_arguments.order_ids))
        return

    if not isinstance(service, AmazonMwsFulfillmentService):
        argument_parser.error("service-status is only supported by amazon_mws")
    main_print_response(service.adapter_fetch_service_status())


def main_print_response(response: FulfillmentResponse) -> None:
    """Print one response as JSON and exit non-zero on failure.

    Args:
        response: Canonical response.

    Returns:
        None: Prints to stdout as side effect.

    Raises:
        SystemExit: Raised with status 1 when the response is not successful.
    """

    print(json.dumps(response.response_to_dict(), indent=2, sort_keys=True))
    if not response.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
