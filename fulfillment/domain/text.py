"""Shared text normalization helpers for provider replies and diagnostics."""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import quote, quote_plus
from xml.sax.saxutils import escape as xml_escape

_DOMAIN_REDACTION_MARKER = "[filtered]"
_DOMAIN_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_DOMAIN_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")
_DOMAIN_SPACE_RUN = re.compile(r" {2,}")


def domain_normalize_message(value: str | None) -> str | None:
    """Strip newlines and collapse runs of spaces in provider message text.

    Args:
        value: Raw provider message.

    Returns:
        str | None: Normalized message, or None when the value is blank.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if value is None:
        return None
    normalized_value = _DOMAIN_SPACE_RUN.sub(" ", value.replace("\r", "").replace("\n", "")).strip()
    if not normalized_value:
        return None
    return normalized_value


def domain_snake_case(tag_name: str) -> str:
    """Convert an XML element name such as `TotalOrders` to `total_orders`.

    Args:
        tag_name: CamelCase element name.

    Returns:
        str: Snake-cased parameter key.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    snake_value = _DOMAIN_ACRONYM_BOUNDARY.sub(r"\1_\2", tag_name)
    snake_value = _DOMAIN_WORD_BOUNDARY.sub(r"\1_\2", snake_value)
    return snake_value.replace("-", "_").lower()


def domain_redact_secrets(text: str, secrets: Iterable[str | None]) -> str:
    """Replace every credential occurrence in diagnostic text.

    Plain, XML-escaped, form-encoded and RFC 3986 encoded spellings of each
    secret are replaced, so both XML documents and signed query strings are
    covered.

    Args:
        text: Request or response text about to be surfaced.
        secrets: Credential values; blank entries are ignored.

    Returns:
        str: Text with credentials replaced by `[filtered]`.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    redacted_text = text
    for secret in secrets:
        if not secret:
            continue
        spellings = {
            secret,
            xml_escape(secret),
            xml_escape(secret, {'"': "&quot;"}),
            quote_plus(secret),
            quote(secret, safe="-_.~"),
        }
        for spelling in sorted(spellings, key=len, reverse=True):
            redacted_text = redacted_text.replace(spelling, _DOMAIN_REDACTION_MARKER)
    return redacted_text


__all__ = [
    "domain_normalize_message",
    "domain_redact_secrets",
    "domain_snake_case",
]
