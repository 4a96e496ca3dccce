"""Header assembly and header-based SigV4 authorization."""

from __future__ import annotations

import datetime
import logging

import httpx

from s3_request import command as cmd
from s3_request import signing
from s3_request.bucket_config import BucketConfig
from s3_request.errors import EncodingError
from s3_request.errors import MissingCredentialError


logger = logging.getLogger(__name__)

# Body-bearing writes that carry a Content-MD5 integrity header
CONTENT_MD5_COMMANDS: frozenset[type[cmd.Command]] = frozenset({cmd.PutObject, cmd.PutObjectTagging, cmd.UploadPart})

OCTET_STREAM_COMMANDS: frozenset[type[cmd.Command]] = frozenset({cmd.GetObject, cmd.GetObjectRange})


def set_header(headers: httpx.Headers, name: str, value: str) -> None:
    """Insert or replace a header, failing with EncodingError on non-ASCII values."""
    try:
        name.encode("ascii")
        value.encode("ascii")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Header {name!r} has a value that is not valid ASCII") from e
    headers[name] = value


def session_token(bucket: BucketConfig) -> str | None:
    """Token sent as x-amz-security-token; a session token wins over a legacy security token."""
    return bucket.credentials.session_token() or bucket.credentials.security_token()


def presign_token(bucket: BucketConfig) -> str | None:
    """Token sent as X-Amz-Security-Token on presigned URLs; here the security token wins."""
    return bucket.credentials.security_token() or bucket.credentials.session_token()


def authorization(
    bucket: BucketConfig,
    method: str,
    url: httpx.URL,
    headers: httpx.Headers,
    payload_hash: str,
    dt: datetime.datetime,
) -> str:
    """Compute the Authorization header value over exactly ``headers``."""
    access_key = bucket.credentials.access_key()
    secret_key = bucket.credentials.secret_key()
    if not access_key:
        raise MissingCredentialError("An access key is required to sign requests")
    if not secret_key:
        raise MissingCredentialError("A secret key is required to sign requests")

    region = bucket.region.name
    canonical_request = signing.canonical_request(method, url, headers, payload_hash)
    logger.debug(
        f"Signing {method} {url.path} over {signing.signed_header_string(headers)} "
        f"(canonical request {signing.sha256_hex(canonical_request.encode())})"
    )

    string_to_sign = signing.string_to_sign(dt, region, canonical_request)
    signature = signing.sign(signing.signing_key(dt, secret_key, region), string_to_sign)
    return signing.authorization_header(
        access_key, dt, region, signing.signed_header_string(headers), signature
    )


def signable_headers(bucket: BucketConfig, command: cmd.Command, dt: datetime.datetime) -> httpx.Headers:
    """Every header of a live request that takes part in the signature."""
    headers = httpx.Headers()
    for name, value in bucket.extra_headers.items():
        set_header(headers, name, value)

    set_header(headers, "Host", bucket.host())

    if isinstance(command, cmd.CopyObject):
        set_header(headers, "x-amz-copy-source", signing.uri_encode(command.source_path, False))

    if command.sends_content_headers:
        set_header(headers, "Content-Length", str(command.content_length()))
        set_header(headers, "Content-Type", command.media_type())

    set_header(headers, "x-amz-content-sha256", command.sha256())
    set_header(headers, "x-amz-date", signing.long_date(dt))

    token = session_token(bucket)
    if token:
        set_header(headers, "x-amz-security-token", token)

    if type(command) in CONTENT_MD5_COMMANDS:
        set_header(headers, "Content-MD5", signing.content_md5(command.body()))

    if type(command) in OCTET_STREAM_COMMANDS:
        set_header(headers, "Accept", "application/octet-stream")

    if isinstance(command, cmd.GetObjectRange):
        set_header(headers, "Range", command.range_header())
    elif isinstance(command, cmd.CreateBucket):
        for name, value in command.config.headers().items():
            set_header(headers, name, value)

    return headers


def assemble_headers(
    bucket: BucketConfig,
    command: cmd.Command,
    dt: datetime.datetime,
    url: httpx.URL,
) -> httpx.Headers:
    """
    Build the header set for a live (non-presigned) request.

    Authorization is computed last, over everything inserted before it. The
    Date header is added afterwards so it never takes part in the signature.

    Args:
        bucket: Bucket addressing, credentials and extra headers
        command: Operation being performed
        dt: Timestamp captured by the request descriptor
        url: URL built for the same descriptor

    Returns:
        Headers ready to send
    """
    headers = signable_headers(bucket, command, dt)

    # Omitted entirely when no secret key is configured: the request goes out unauthenticated
    if bucket.credentials.secret_key():
        set_header(
            headers,
            "Authorization",
            authorization(bucket, str(command.http_verb), url, headers, command.sha256(), dt),
        )

    set_header(headers, "Date", signing.rfc2822_date(dt))
    return headers
