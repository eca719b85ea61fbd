"""Canonical domain contracts used across provider adapter boundaries."""

from .merging import domain_merge_stock_level_pages, domain_merge_tracking_responses
from .models import (
    Address,
    FulfillmentOptions,
    FulfillmentRequest,
    FulfillmentResponse,
    LineItem,
    ThrottlePolicy,
)
from .text import domain_normalize_message, domain_redact_secrets, domain_snake_case

__all__ = [
    "Address",
    "FulfillmentOptions",
    "FulfillmentRequest",
    "FulfillmentResponse",
    "LineItem",
    "ThrottlePolicy",
    "domain_merge_stock_level_pages",
    "domain_merge_tracking_responses",
    "domain_normalize_message",
    "domain_redact_secrets",
    "domain_snake_case",
]
