"""XML parsing helpers shared by provider codecs.

Codecs parse in two passes: `xml_parse_document` plus a shape check first,
then field extraction through the `xml_require_*` helpers, which raise
`FulfillmentMalformedResponseError` instead of failing mid-traversal.
"""

from __future__ import annotations

import xml.etree.ElementTree as element_tree

from .errors import FulfillmentMalformedResponseError


def xml_parse_document(payload: bytes, context_label: str, strip_namespaces: bool = False) -> element_tree.Element:
    """Parse payload as XML and raise deterministic parsing errors.

    Args:
        payload: Candidate XML payload.
        context_label: Context label for error messages.
        strip_namespaces: Remove `{namespace}` prefixes from every tag when True.

    Returns:
        xml.etree.ElementTree.Element: Parsed root node.

    Raises:
        FulfillmentMalformedResponseError: Raised when payload is not valid XML.
    """

    try:
        root = element_tree.fromstring(payload)
    except element_tree.ParseError as error:
        raise FulfillmentMalformedResponseError(
            f"XML parse failed for context={context_label}",
            payload=payload,
        ) from error

    if strip_namespaces:
        for element in root.iter():
            if isinstance(element.tag, str) and "}" in element.tag:
                element.tag = element.tag.split("}", 1)[1]
    return root


def xml_try_parse_document(payload: bytes, strip_namespaces: bool = False) -> element_tree.Element | None:
    """Best-effort XML parse helper for error bodies.

    Args:
        payload: Candidate response payload.
        strip_namespaces: Remove namespace prefixes when True.

    Returns:
        xml.etree.ElementTree.Element | None: Parsed root element when XML, otherwise None.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    try:
        return xml_parse_document(payload=payload, context_label="best_effort", strip_namespaces=strip_namespaces)
    except FulfillmentMalformedResponseError:
        return None


def xml_element_text(element: element_tree.Element | None) -> str:
    """Return stripped element text, or an empty string for missing nodes."""

    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def xml_require_child(element: element_tree.Element, path: str, context_label: str, payload: bytes) -> element_tree.Element:
    """Return the first node at `path`, raising when the document lacks it.

    Args:
        element: Node to search from.
        path: ElementTree path expression.
        context_label: Context label for error messages.
        payload: Raw payload attached to the raised error.

    Returns:
        xml.etree.ElementTree.Element: Matching node.

    Raises:
        FulfillmentMalformedResponseError: Raised when no node matches.
    """

    child = element.find(path)
    if child is None:
        raise FulfillmentMalformedResponseError(
            f"{context_label} response missing {path} element",
            payload=payload,
        )
    return child


def xml_require_attribute(element: element_tree.Element, name: str, context_label: str, payload: bytes) -> str:
    """Return a stripped attribute value, raising when it is absent.

    Args:
        element: Node carrying the attribute.
        name: Attribute name.
        context_label: Context label for error messages.
        payload: Raw payload attached to the raised error.

    Returns:
        str: Stripped attribute value.

    Raises:
        FulfillmentMalformedResponseError: Raised when the attribute is missing.
    """

    value = element.get(name)
    if value is None:
        raise FulfillmentMalformedResponseError(
            f"{context_label} response {element.tag} element missing {name} attribute",
            payload=payload,
        )
    return value.strip()


def xml_require_int(value: str, context_label: str, payload: bytes) -> int:
    """Convert a numeric wire value, raising a malformed-response error otherwise."""

    try:
        return int(value.strip())
    except ValueError as error:
        raise FulfillmentMalformedResponseError(
            f"{context_label} response contains non-numeric quantity {value!r}",
            payload=payload,
        ) from error


__all__ = [
    "xml_element_text",
    "xml_parse_document",
    "xml_require_attribute",
    "xml_require_child",
    "xml_require_int",
    "xml_try_parse_document",
]
