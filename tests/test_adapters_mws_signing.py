"""Regression tests for MWS signature version 2 helpers."""

from __future__ import annotations

import base64
import hashlib
import hmac
from urllib.parse import parse_qs, unquote

from fulfillment.adapters.mws_signing import (
    MWS_REGISTRATION_URL,
    signing_build_canonical_query,
    signing_build_registration_url,
    signing_build_signed_query,
    signing_build_string_to_sign,
    signing_compute_signature,
    signing_content_md5,
    signing_escape,
    signing_secure_compare,
    signing_verify_callback,
)

_PARAMS = {
    "Version": "2010-10-01",
    "Action": "ListInventorySupply",
    "SellerSkus.member.1": "Blue Shirt",
    "AWSAccessKeyId": "AKIDEXAMPLE",
}


def test_adapters_mws_canonical_query_sorts_keys_and_encodes_space_as_percent_20() -> None:
    """Build a sorted, RFC 3986 encoded canonical query string.

    Returns:
        None: Assertions validate canonical query construction.

    Raises:
        AssertionError: Raised when ordering or encoding is incorrect.
    """

    canonical_query = signing_build_canonical_query(_PARAMS)

    assert canonical_query == (
        "AWSAccessKeyId=AKIDEXAMPLE&Action=ListInventorySupply"
        "&SellerSkus.member.1=Blue%20Shirt&Version=2010-10-01"
    )
    assert "+" not in canonical_query
    assert signing_build_canonical_query(dict(reversed(list(_PARAMS.items())))) == canonical_query


def test_adapters_mws_escape_keeps_unreserved_characters_only() -> None:
    """Leave RFC 3986 unreserved characters untouched and encode the rest."""

    assert signing_escape("a-b_c.d~e") == "a-b_c.d~e"
    assert signing_escape("a b+c/d=e&f*") == "a%20b%2Bc%2Fd%3De%26f%2A"
    assert signing_escape(2) == "2"


def test_adapters_mws_string_to_sign_uses_verb_host_path_and_query_lines() -> None:
    """Join upper-cased verb, host, path and canonical query with newlines.

    Returns:
        None: Assertions validate string-to-sign layout.

    Raises:
        AssertionError: Raised when layout is incorrect.
    """

    string_to_sign = signing_build_string_to_sign("post", "mws.amazonservices.com", "", {"B": "2", "A": "1"})

    assert string_to_sign == "POST\nmws.amazonservices.com\n/\nA=1&B=2"


def test_adapters_mws_signature_matches_reference_hmac_and_is_deterministic() -> None:
    """Produce base64 HMAC-SHA256 without trailing newline."""

    string_to_sign = signing_build_string_to_sign("POST", "mws.amazonservices.com", "/Orders/2010-10-01", _PARAMS)
    expected_signature = base64.b64encode(
        hmac.new(b"secret", string_to_sign.encode("utf-8"), hashlib.sha256).digest()
    ).decode("ascii")

    assert signing_compute_signature("secret", string_to_sign) == expected_signature
    assert signing_compute_signature("secret", string_to_sign) == signing_compute_signature("secret", string_to_sign)
    assert not expected_signature.endswith("\n")


def test_adapters_mws_signature_changes_when_any_signed_input_changes() -> None:
    """Change the signature for every verb, host, path and parameter mutation.

    Returns:
        None: Assertions validate signature sensitivity.

    Raises:
        AssertionError: Raised when a mutation does not change the signature.
    """

    baseline = signing_compute_signature(
        "secret",
        signing_build_string_to_sign("POST", "mws.amazonservices.com", "/A/2010-10-01", _PARAMS),
    )
    mutated_params = dict(_PARAMS, **{"SellerSkus.member.1": "Blue Shirts"})
    variants = [
        signing_build_string_to_sign("GET", "mws.amazonservices.com", "/A/2010-10-01", _PARAMS),
        signing_build_string_to_sign("POST", "mws.amazonservices.ca", "/A/2010-10-01", _PARAMS),
        signing_build_string_to_sign("POST", "mws.amazonservices.com", "/B/2010-10-01", _PARAMS),
        signing_build_string_to_sign("POST", "mws.amazonservices.com", "/A/2010-10-01", mutated_params),
    ]

    for variant in variants:
        assert signing_compute_signature("secret", variant) != baseline
    assert (
        signing_compute_signature(
            "secret2",
            signing_build_string_to_sign("POST", "mws.amazonservices.com", "/A/2010-10-01", _PARAMS),
        )
        != baseline
    )


def test_adapters_mws_signed_query_appends_escaped_signature_outside_signed_string() -> None:
    """Append the signature as the final pair without signing it."""

    url = "https://mws.amazonservices.com/ListInventorySupply/2010-10-01"
    signed_query = signing_build_signed_query("POST", url, _PARAMS, "secret")
    canonical_query, signature_pair = signed_query.rsplit("&", 1)
    expected_signature = signing_compute_signature(
        "secret",
        signing_build_string_to_sign("POST", "mws.amazonservices.com", "/ListInventorySupply/2010-10-01", _PARAMS),
    )

    assert canonical_query == signing_build_canonical_query(_PARAMS)
    assert signature_pair.startswith("Signature=")
    assert unquote(signature_pair.split("=", 1)[1]) == expected_signature


def test_adapters_mws_secure_compare_rejects_every_single_byte_mutation() -> None:
    """Return False for length mismatches and for every one-byte mutation.

    Returns:
        None: Assertions validate constant-time comparator results.

    Raises:
        AssertionError: Raised when a mutated value compares equal.
    """

    signature = signing_compute_signature("secret", "POST\nhost\n/\nA=1").encode("ascii")

    assert signing_secure_compare(signature, bytes(signature))
    assert signing_secure_compare(signature.decode("ascii"), signature)
    assert not signing_secure_compare(signature, signature[:-1])
    for position in range(len(signature)):
        mutated = bytearray(signature)
        mutated[position] ^= 0x01
        assert not signing_secure_compare(signature, bytes(mutated))


def test_adapters_mws_verify_callback_accepts_valid_and_rejects_tampered_params() -> None:
    """Verify inbound callback signatures excluding signature fields."""

    post_params = {"MerchantId": "M1", "Marketplace": "ATVPDKIKX0DER", "SignedString": "ignored"}
    string_to_sign = "\n".join(
        ("GET", "example.test", "/mws/return?x=1", signing_build_canonical_query({"MerchantId": "M1", "Marketplace": "ATVPDKIKX0DER"}))
    )
    post_params["Signature"] = signing_compute_signature("secret", string_to_sign)

    assert signing_verify_callback("GET", "example.test", "/mws/return?x=1", post_params, "secret")
    assert not signing_verify_callback(
        "GET", "example.test", "/mws/return?x=1", dict(post_params, MerchantId="M2"), "secret"
    )
    assert not signing_verify_callback("GET", "example.test", "/mws/return?x=1", {"MerchantId": "M1"}, "secret")


def test_adapters_mws_content_md5_and_registration_url() -> None:
    """Return base64 MD5 digests and a signed registration URL."""

    assert signing_content_md5("") == "1B2M2Y8AsgTpgAmY7PhCfg=="

    registration_url = signing_build_registration_url("AKID", "app-1", "secret", "/return?shop=1")
    base_url, query = registration_url.split("?", 1)
    parsed_query = parse_qs(query)

    assert base_url == MWS_REGISTRATION_URL
    assert parsed_query["id"] == ["app-1"]
    assert parsed_query["SignatureMethod"] == ["HmacSHA256"]
    assert parsed_query["returnPathAndParameters"] == ["/return?shop=1"]
    assert "Signature" in parsed_query
