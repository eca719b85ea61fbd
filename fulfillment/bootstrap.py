"""Application bootstrap wiring for provider clients."""

from fulfillment.adapters import AmazonMwsFulfillmentService, HttpxTransport, ShipwireFulfillmentService
from fulfillment.adapters.interfaces import FulfillmentTransportPort
from fulfillment.config import AppSettings, SettingsLoadError, config_load_settings

BOOTSTRAP_PROVIDERS = ("shipwire", "amazon_mws")


def bootstrap_create_shipwire_service(
    settings: AppSettings | None = None,
    transport: FulfillmentTransportPort | None = None,
) -> ShipwireFulfillmentService:
    """Build a Shipwire client from validated settings.

    Args:
        settings: Optional preloaded settings.
        transport: Optional transport override.

    Returns:
        ShipwireFulfillmentService: Configured client.

    Raises:
        SettingsLoadError: Raised when Shipwire credentials are not configured.
    """

    resolved_settings = settings or config_load_settings()
    if not resolved_settings.shipwire_login or not resolved_settings.shipwire_password:
        raise SettingsLoadError("SHIPWIRE_LOGIN and SHIPWIRE_PASSWORD must be set to use the Shipwire client")
    return ShipwireFulfillmentService(
        login=resolved_settings.shipwire_login,
        password=resolved_settings.shipwire_password,
        transport=transport or HttpxTransport(request_timeout_seconds=resolved_settings.request_timeout_seconds),
        test_mode=resolved_settings.shipwire_test_mode,
        affiliate_id=resolved_settings.shipwire_affiliate_id,
        include_pending_stock=resolved_settings.shipwire_include_pending_stock,
        include_empty_stock=resolved_settings.shipwire_include_empty_stock,
    )


def bootstrap_create_mws_service(
    settings: AppSettings | None = None,
    transport: FulfillmentTransportPort | None = None,
) -> AmazonMwsFulfillmentService:
    """Build an MWS client from validated settings.

    Args:
        settings: Optional preloaded settings.
        transport: Optional transport override.

    Returns:
        AmazonMwsFulfillmentService: Configured client.

    Raises:
        SettingsLoadError: Raised when MWS credentials are not configured.
    """

    resolved_settings = settings or config_load_settings()
    if not resolved_settings.mws_access_key_id or not resolved_settings.mws_secret_key:
        raise SettingsLoadError("MWS_ACCESS_KEY_ID and MWS_SECRET_KEY must be set to use the MWS client")
    return AmazonMwsFulfillmentService(
        access_key_id=resolved_settings.mws_access_key_id,
        secret_key=resolved_settings.mws_secret_key,
        transport=transport or HttpxTransport(request_timeout_seconds=resolved_settings.request_timeout_seconds),
        seller_id=resolved_settings.mws_seller_id,
        auth_token=resolved_settings.mws_auth_token,
        app_id=resolved_settings.mws_app_id,
        region=resolved_settings.mws_region,
    )


def bootstrap_create_service(
    provider: str,
    settings: AppSettings | None = None,
    transport: FulfillmentTransportPort | None = None,
) -> ShipwireFulfillmentService | AmazonMwsFulfillmentService:
    """Build the client for a provider name from `BOOTSTRAP_PROVIDERS`.

    Raises:
        SettingsLoadError: Raised when provider credentials are not configured.
        ValueError: Raised for an unknown provider name.
    """

    if provider == "shipwire":
        return bootstrap_create_shipwire_service(settings=settings, transport=transport)
    if provider == "amazon_mws":
        return bootstrap_create_mws_service(settings=settings, transport=transport)
    raise ValueError(f"unknown provider: {provider}")
