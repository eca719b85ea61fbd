"""Amazon MWS signature version 2 helpers.

The string to sign is the upper-cased verb, host, path and canonical query
string joined by newlines. The canonical query string sorts parameters by key
and percent-encodes both sides per RFC 3986, so spaces become `%20`.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Final, Mapping
from urllib.parse import quote, urlsplit

MWS_SIGNATURE_VERSION: Final[str] = "2"
MWS_SIGNATURE_METHOD: Final[str] = "HmacSHA256"
MWS_REGISTRATION_URL: Final[str] = "https://sellercentral.amazon.com/gp/mws/registration/register.html"
_SIGNING_UNRESERVED: Final[str] = "-_.~"
_SIGNING_EXCLUDED_CALLBACK_KEYS: Final[frozenset[str]] = frozenset({"Signature", "SignedString"})


def signing_escape(value: object) -> str:
    """Percent-encode one key or value per RFC 3986.

    Args:
        value: Parameter key or value; converted with `str`.

    Returns:
        str: Encoded text with spaces as `%20`.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return quote(str(value), safe=_SIGNING_UNRESERVED)


def signing_build_canonical_query(params: Mapping[str, object]) -> str:
    """Build the sorted, percent-encoded `key=value&...` query string.

    Args:
        params: Request parameters.

    Returns:
        str: Deterministic canonical query string.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return "&".join(
        f"{signing_escape(key)}={signing_escape(value)}"
        for key, value in sorted(params.items(), key=lambda item: str(item[0]))
    )


def signing_build_string_to_sign(verb: str, host: str, path: str, params: Mapping[str, object]) -> str:
    """Build the newline-joined string covered by the signature.

    Args:
        verb: HTTP verb.
        host: Request host.
        path: Request path; empty means `/`.
        params: Request parameters without `Signature`.

    Returns:
        str: String to sign.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return "\n".join((verb.upper(), host, path or "/", signing_build_canonical_query(params)))


def signing_compute_signature(secret: str, string_to_sign: str) -> str:
    """Return base64 HMAC-SHA256 of the string to sign, without trailing newline."""

    digest = hmac.new(secret.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def signing_build_signed_query(verb: str, url: str, params: Mapping[str, object], secret: str) -> str:
    """Return the canonical query string with a trailing `Signature` pair.

    Args:
        verb: HTTP verb.
        url: Absolute request URL; host and path are signed.
        params: Request parameters without `Signature`.
        secret: Secret key.

    Returns:
        str: Form body ready for transmission.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    split_url = urlsplit(url)
    string_to_sign = signing_build_string_to_sign(verb, split_url.netloc, split_url.path, params)
    signature = signing_compute_signature(secret, string_to_sign)
    return f"{signing_build_canonical_query(params)}&Signature={signing_escape(signature)}"


def signing_secure_compare(left: str | bytes, right: str | bytes) -> bool:
    """Compare two signatures in constant time.

    Args:
        left: First value.
        right: Second value.

    Returns:
        bool: True only when both have equal length and identical bytes.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    left_bytes = left.encode("utf-8") if isinstance(left, str) else bytes(left)
    right_bytes = right.encode("utf-8") if isinstance(right, str) else bytes(right)
    return hmac.compare_digest(left_bytes, right_bytes)


def signing_verify_callback(
    verb: str,
    base_url: str,
    return_path_and_parameters: str,
    post_params: Mapping[str, str],
    secret: str,
) -> bool:
    """Verify an inbound signed callback such as the seller registration return.

    Args:
        verb: HTTP verb of the callback.
        base_url: Host the callback was delivered to.
        return_path_and_parameters: Path and query the callback was delivered to.
        post_params: Callback parameters including `Signature`.
        secret: Secret key.

    Returns:
        bool: True when the supplied signature matches.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    supplied_signature = post_params.get("Signature")
    if not supplied_signature:
        return False
    signed_params = {
        key: value for key, value in post_params.items() if key not in _SIGNING_EXCLUDED_CALLBACK_KEYS
    }
    string_to_sign = "\n".join(
        (verb, base_url, return_path_and_parameters, signing_build_canonical_query(signed_params))
    )
    return signing_secure_compare(signing_compute_signature(secret, string_to_sign), supplied_signature)


def signing_content_md5(body: str) -> str:
    """Return base64 MD5 digest of the outgoing body for `Content-MD5`."""

    return base64.b64encode(hashlib.md5(body.encode("utf-8")).digest()).decode("ascii")


def signing_build_registration_url(
    access_key_id: str,
    app_id: str,
    secret: str,
    return_path_and_parameters: str,
) -> str:
    """Build the signed seller registration URL.

    Args:
        access_key_id: AWS access key id.
        app_id: Registered application id.
        secret: Secret key.
        return_path_and_parameters: Path the registration page redirects back to.

    Returns:
        str: Signed registration page URL.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    params = {
        "returnPathAndParameters": return_path_and_parameters,
        "id": app_id,
        "AWSAccessKeyId": access_key_id,
        "SignatureMethod": MWS_SIGNATURE_METHOD,
        "SignatureVersion": MWS_SIGNATURE_VERSION,
    }
    return f"{MWS_REGISTRATION_URL}?{signing_build_signed_query('GET', MWS_REGISTRATION_URL, params, secret)}"


__all__ = [
    "MWS_REGISTRATION_URL",
    "MWS_SIGNATURE_METHOD",
    "MWS_SIGNATURE_VERSION",
    "signing_build_canonical_query",
    "signing_build_registration_url",
    "signing_build_signed_query",
    "signing_build_string_to_sign",
    "signing_compute_signature",
    "signing_content_md5",
    "signing_escape",
    "signing_secure_compare",
    "signing_verify_callback",
]
