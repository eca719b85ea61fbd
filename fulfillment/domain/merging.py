"""Explicit merge rules for multi-round-trip provider operations."""

from __future__ import annotations

from dataclasses import replace

from .models import FulfillmentResponse


def domain_merge_stock_level_pages(
    accumulated: FulfillmentResponse,
    page: FulfillmentResponse,
) -> FulfillmentResponse:
    """Fold one stock level page into the accumulated pagination result.

    The returned response carries the page's status, params and continuation
    token. Stock levels are the union of both mappings; when a SKU appears on
    both, the later page wins.

    Args:
        accumulated: Result accumulated from earlier pages.
        page: Newly fetched page.

    Returns:
        FulfillmentResponse: New response with merged stock levels.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    merged_stock_levels = {**accumulated.stock_levels, **page.stock_levels}
    return replace(page, stock_levels=merged_stock_levels)


def domain_merge_tracking_responses(
    previous: FulfillmentResponse,
    current: FulfillmentResponse,
) -> FulfillmentResponse:
    """Chain the previous per-order tracking result into the current one.

    The current response absorbs every tracking number, company and URL of
    the previous response. On an order id collision the previous entry is kept.

    Args:
        previous: Result chained from all earlier orders.
        current: Result of the order just fetched.

    Returns:
        FulfillmentResponse: New response holding both orders' tracking data.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return replace(
        current,
        tracking_numbers={**current.tracking_numbers, **previous.tracking_numbers},
        tracking_companies={**current.tracking_companies, **previous.tracking_companies},
        tracking_urls={**current.tracking_urls, **previous.tracking_urls},
    )


__all__ = ["domain_merge_stock_level_pages", "domain_merge_tracking_responses"]
