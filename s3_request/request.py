"""Request descriptors: one command against one object, at one instant."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Mapping

import httpx
from pydantic import BaseModel

from s3_request import command as cmd
from s3_request import signing
from s3_request.bucket_config import BucketConfig
from s3_request.errors import MalformedInputError
from s3_request.errors import MissingCredentialError
from s3_request.errors import S3Error
from s3_request.headers import assemble_headers
from s3_request.headers import authorization
from s3_request.headers import presign_token
from s3_request.headers import session_token
from s3_request.headers import set_header
from s3_request.headers import signable_headers
from s3_request.url_builder import build_url


logger = logging.getLogger(__name__)


class PresignedPost(BaseModel):
    """Target URL and form fields for a browser-based POST upload."""

    url: str
    fields: dict[str, str]


def _check_expiry(expiry_secs: int) -> None:
    if not 1 <= expiry_secs <= signing.MAX_PRESIGN_EXPIRY_SECS:
        raise MalformedInputError(
            f"Presigned URL expiry must be between 1 and {signing.MAX_PRESIGN_EXPIRY_SECS} seconds, got {expiry_secs}"
        )


@dataclass(frozen=True)
class S3Request:
    """
    A command bound to a bucket, an object path and a capture timestamp.

    The timestamp is fixed at construction; the URL, headers and signature
    derived from one descriptor are always mutually consistent and rebuilding
    them yields identical output.
    """

    bucket: BucketConfig
    path: str
    command: cmd.Command
    timestamp: datetime.datetime

    @classmethod
    async def new(cls, bucket: BucketConfig, path: str, command: cmd.Command) -> S3Request:
        """Refresh the bucket credentials, then capture the request timestamp."""
        try:
            await bucket.credentials.refresh()
        except S3Error:
            raise
        except Exception as e:
            raise MissingCredentialError(f"Credentials refresh failed: {e}") from e

        now = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
        return cls(bucket=bucket, path=path, command=command, timestamp=now)

    @property
    def method(self) -> str:
        return str(self.command.http_verb)

    def url(self) -> httpx.URL:
        return build_url(self.bucket, self.path, self.command)

    def headers(self) -> httpx.Headers:
        return assemble_headers(self.bucket, self.command, self.timestamp, self.url())

    def body(self) -> bytes:
        return self.command.body()

    def canonical_request(self) -> str:
        """Canonical request covered by the Authorization header of this descriptor."""
        headers = signable_headers(self.bucket, self.command, self.timestamp)
        return signing.canonical_request(self.method, self.url(), headers, self.command.sha256())

    def string_to_sign(self) -> str:
        return signing.string_to_sign(self.timestamp, self.bucket.region.name, self.canonical_request())

    def authorization(self) -> str:
        """The Authorization header value. Requires both access and secret key."""
        headers = signable_headers(self.bucket, self.command, self.timestamp)
        return authorization(self.bucket, self.method, self.url(), headers, self.command.sha256(), self.timestamp)

    def _signing_credentials(self) -> tuple[str, str]:
        access_key = self.bucket.credentials.access_key()
        secret_key = self.bucket.credentials.secret_key()
        if not access_key or not secret_key:
            raise MissingCredentialError("Presigning requires both an access key and a secret key")
        return access_key, secret_key

    def _presign_params(self) -> tuple[int, Mapping[str, str] | None, Mapping[str, str] | None]:
        command = self.command
        if isinstance(command, cmd.PresignGet):
            return command.expiry_secs, None, command.custom_queries
        if isinstance(command, cmd.PresignPut):
            return command.expiry_secs, command.custom_headers, None
        if isinstance(command, cmd.PresignDelete):
            return command.expiry_secs, None, None
        raise MalformedInputError(f"{type(command).__name__} cannot be presigned as a URL")

    def presigned_url_no_sig(self) -> httpx.URL:
        """The presigned URL with every query parameter except X-Amz-Signature."""
        expiry, custom_headers, custom_queries = self._presign_params()
        _check_expiry(expiry)
        access_key, _ = self._signing_credentials()

        auth_params = signing.authorization_query_params_no_sig(
            access_key,
            self.timestamp,
            self.bucket.region.name,
            expiry,
            custom_headers,
            presign_token(self.bucket),
        )
        extra_pairs: list[tuple[str, str | None]] = [*auth_params, *(custom_queries or {}).items()]
        return build_url(self.bucket, self.path, self.command, extra_pairs)

    def presigned_headers(self) -> httpx.Headers:
        """Host plus caller-supplied custom headers: the signed set of a presigned request."""
        _, custom_headers, _ = self._presign_params()
        headers = httpx.Headers()
        set_header(headers, "Host", self.bucket.host())
        for name, value in (custom_headers or {}).items():
            set_header(headers, name, value)
        return headers

    def presigned(self) -> str:
        """
        Build a presigned URL for PresignGet, PresignPut or PresignDelete.

        Returns:
            The URL with X-Amz-Signature appended last

        Raises:
            MalformedInputError: for other commands or an out-of-range expiry
            MissingCredentialError: when the access or secret key is absent
        """
        url = self.presigned_url_no_sig()
        _, secret_key = self._signing_credentials()
        region = self.bucket.region.name

        canonical_request = signing.canonical_request(
            self.method, url, self.presigned_headers(), signing.UNSIGNED_PAYLOAD
        )
        string_to_sign = signing.string_to_sign(self.timestamp, region, canonical_request)
        signature = signing.sign(signing.signing_key(self.timestamp, secret_key, region), string_to_sign)

        logger.debug(f"Presigned {self.method} for {self.bucket.name}/{self.path.lstrip('/')}")
        return f"{url}&X-Amz-Signature={signature}"

    def presigned_post(self) -> PresignedPost:
        """
        Sign a POST policy.

        The string to sign is the caller-supplied policy document (normally
        base64-encoded JSON) verbatim, not a canonical request. The policy is
        expected to carry matching x-amz-credential and x-amz-date conditions.
        """
        if not isinstance(self.command, cmd.PresignPost):
            raise MalformedInputError(f"{type(self.command).__name__} is not a POST policy")
        access_key, secret_key = self._signing_credentials()
        region = self.bucket.region.name

        fields = {
            "x-amz-algorithm": signing.ALGORITHM,
            "x-amz-credential": f"{access_key}/{signing.scope_string(self.timestamp, region)}",
            "x-amz-date": signing.long_date(self.timestamp),
        }
        key = self.path.lstrip("/")
        if key:
            fields["key"] = key
        token = session_token(self.bucket)
        if token:
            fields["x-amz-security-token"] = token
        fields["policy"] = self.command.post_policy
        fields["x-amz-signature"] = signing.sign(
            signing.signing_key(self.timestamp, secret_key, region), self.command.post_policy
        )

        return PresignedPost(url=str(build_url(self.bucket, "", self.command)), fields=fields)
