"""Typed runtime settings with dotenv support and startup validation."""

import logging

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_CONFIG_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_CONFIG_SUPPORTED_MWS_REGIONS = frozenset({"ca", "cn", "de", "es", "fr", "it", "jp", "uk", "us"})


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class AppSettings(BaseSettings):
    """Provider credentials and runtime options.

    Environment variable names map directly to field names in uppercase.
    Example: `shipwire_login` reads from `SHIPWIRE_LOGIN`.

    Attributes:
        log_level: Root log level name.
        request_timeout_seconds: HTTP request timeout.
        shipwire_login: Shipwire account email address.
        shipwire_password: Shipwire account password.
        shipwire_test_mode: Target the Shipwire test server.
        shipwire_affiliate_id: Optional Shipwire affiliate id.
        shipwire_include_pending_stock: Add pending quantities to stock levels.
        shipwire_include_empty_stock: Report products with zero stock.
        mws_access_key_id: AWS access key id.
        mws_secret_key: AWS secret key.
        mws_seller_id: MWS merchant id.
        mws_auth_token: MWS authorization token.
        mws_app_id: Registered MWS application id.
        mws_region: MWS endpoint region code.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    log_level: str = Field(default="INFO")
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    shipwire_login: str | None = Field(default=None)
    shipwire_password: str | None = Field(default=None)
    shipwire_test_mode: bool = Field(default=False)
    shipwire_affiliate_id: str | None = Field(default=None)
    shipwire_include_pending_stock: bool = Field(default=False)
    shipwire_include_empty_stock: bool = Field(default=False)
    mws_access_key_id: str | None = Field(default=None)
    mws_secret_key: str | None = Field(default=None)
    mws_seller_id: str | None = Field(default=None)
    mws_auth_token: str | None = Field(default=None)
    mws_app_id: str | None = Field(default=None)
    mws_region: str = Field(default="us")

    @field_validator(
        "shipwire_login",
        "shipwire_affiliate_id",
        "mws_access_key_id",
        "mws_seller_id",
        "mws_auth_token",
        "mws_app_id",
    )
    @classmethod
    def _validate_optional_string(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("mws_region")
    @classmethod
    def _validate_region(cls, value: str) -> str:
        normalized_value = value.strip().lower()
        if normalized_value not in _CONFIG_SUPPORTED_MWS_REGIONS:
            raise ValueError(f"mws_region must be one of {sorted(_CONFIG_SUPPORTED_MWS_REGIONS)}")
        return normalized_value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized_value = value.strip().upper()
        if not isinstance(logging.getLevelName(normalized_value), int):
            raise ValueError(f"unknown log level: {value}")
        return normalized_value


def config_load_settings() -> AppSettings:
    """Load and validate runtime settings from environment and dotenv.

    Returns:
        AppSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when settings are invalid.
    """

    try:
        return AppSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error


def config_configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the root logger.

    Args:
        level: Log level name.

    Returns:
        None: Configures logging as side effect.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_CONFIG_LOG_FORMAT))
        root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())
