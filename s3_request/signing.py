"""AWS Signature Version 4 primitives.

All functions here are pure: they take the request pieces and a timestamp and
return strings. Nothing is cached, the signing key in particular is derived
again for every request.
"""

import base64
import datetime
import email.utils
import hashlib
import hmac
from typing import Mapping
from urllib.parse import parse_qsl
from urllib.parse import quote

import httpx

from s3_request.errors import HashError


ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
TERMINATOR = "aws4_request"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
EMPTY_PAYLOAD_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

LONG_DATETIME = "%Y%m%dT%H%M%SZ"
SHORT_DATE = "%Y%m%d"

# Upper bound AWS accepts for X-Amz-Expires (7 days)
MAX_PRESIGN_EXPIRY_SECS = 604800

HeadersLike = httpx.Headers | Mapping[str, str]


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def content_md5(data: bytes) -> str:
    """Base64 MD5 digest for the Content-MD5 integrity header."""
    try:
        digest = hashlib.md5(data, usedforsecurity=False).digest()
    except ValueError as e:
        raise HashError(f"MD5 unavailable for Content-MD5: {e}") from e
    return base64.b64encode(digest).decode("ascii")


def long_date(dt: datetime.datetime) -> str:
    return dt.astimezone(datetime.timezone.utc).strftime(LONG_DATETIME)


def short_date(dt: datetime.datetime) -> str:
    return dt.astimezone(datetime.timezone.utc).strftime(SHORT_DATE)


def rfc2822_date(dt: datetime.datetime) -> str:
    return email.utils.format_datetime(dt.astimezone(datetime.timezone.utc))


def uri_encode(value: str, encode_slash: bool) -> str:
    """Percent-encode everything outside the RFC 3986 unreserved set.

    With ``encode_slash`` false the value is treated as a path and ``/`` is kept
    as separator; query keys and values are encoded with ``encode_slash`` true.
    """
    return quote(value, safe="" if encode_slash else "/")


def canonical_uri_string(url: httpx.URL) -> str:
    # url.path is already percent-decoded
    return uri_encode(url.path or "/", False)


def canonical_query_string(url: httpx.URL) -> str:
    raw_query = url.query.decode("ascii")
    if not raw_query:
        return ""
    params = parse_qsl(raw_query, keep_blank_values=True)
    encoded = sorted((uri_encode(k, True), uri_encode(v, True)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


def _grouped_headers(headers: HeadersLike) -> dict[str, str]:
    grouped: dict[str, list[str]] = {}
    for name, value in httpx.Headers(headers).multi_items():
        grouped.setdefault(name.lower(), []).append(" ".join(value.strip().split()))
    return {name: ",".join(values) for name, values in sorted(grouped.items())}


def canonical_header_string(headers: HeadersLike) -> str:
    return "\n".join(f"{name}:{value}" for name, value in _grouped_headers(headers).items())


def signed_header_string(headers: HeadersLike) -> str:
    return ";".join(_grouped_headers(headers))


def canonical_request(method: str, url: httpx.URL, headers: HeadersLike, payload_hash: str) -> str:
    """
    Create the SigV4 canonical request.

    Args:
        method: HTTP method
        url: Fully built request URL, query included
        headers: Every header taking part in the signature
        payload_hash: Hex SHA-256 of the body, or UNSIGNED-PAYLOAD for presigned URLs

    Returns:
        Canonical request string
    """
    return "\n".join(
        [
            str(method),
            canonical_uri_string(url),
            canonical_query_string(url),
            canonical_header_string(headers),
            "",
            signed_header_string(headers),
            payload_hash,
        ]
    )


def scope_string(dt: datetime.datetime, region: str) -> str:
    return f"{short_date(dt)}/{region}/{SERVICE}/{TERMINATOR}"


def string_to_sign(dt: datetime.datetime, region: str, canonical_req: str) -> str:
    hashed_canonical_request = sha256_hex(canonical_req.encode("utf-8"))
    return f"{ALGORITHM}\n{long_date(dt)}\n{scope_string(dt, region)}\n{hashed_canonical_request}"


def signing_key(dt: datetime.datetime, secret_key: str, region: str, service: str = SERVICE) -> bytes:
    """Derive the per-day, per-region SigV4 signing key."""

    def hmac_sha256(key: bytes, msg: str) -> bytes:
        return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()

    k_secret = ("AWS4" + secret_key).encode("utf-8")
    k_date = hmac_sha256(k_secret, short_date(dt))
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, TERMINATOR)


def sign(key: bytes, message: str) -> str:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).hexdigest()


def authorization_header(
    access_key: str,
    dt: datetime.datetime,
    region: str,
    signed_headers: str,
    signature: str,
) -> str:
    return (
        f"{ALGORITHM} Credential={access_key}/{scope_string(dt, region)}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )


def authorization_query_params_no_sig(
    access_key: str,
    dt: datetime.datetime,
    region: str,
    expiry_secs: int,
    custom_headers: Mapping[str, str] | None = None,
    token: str | None = None,
) -> list[tuple[str, str]]:
    """Query parameters carrying a presigned request's credentials, signature excluded."""
    signed_headers = sorted({"host", *(name.lower() for name in (custom_headers or {}))})

    params = [
        ("X-Amz-Algorithm", ALGORITHM),
        ("X-Amz-Credential", f"{access_key}/{scope_string(dt, region)}"),
        ("X-Amz-Date", long_date(dt)),
        ("X-Amz-Expires", str(expiry_secs)),
        ("X-Amz-SignedHeaders", ";".join(signed_headers)),
    ]
    if token:
        params.append(("X-Amz-Security-Token", token))
    return params
